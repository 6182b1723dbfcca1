# orderdesk/engine/reconciler.py
"""
Edit Diff Reconciler.

Given the line items an editor started from and the ones it ends with:

  to_delete = prior ids - current ids
  to_upsert = every current item (unchanged rows included)

No field-level change detection: the storage upsert keyed by `id` is a
no-op for unchanged rows. An id never appears in both sets.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable

from orderdesk.schemas.order import LineItemInput


@dataclass
class ReconcilePlan:
    to_upsert: list[LineItemInput] = field(default_factory=list)
    to_delete: set[uuid.UUID] = field(default_factory=set)

    @property
    def upsert_ids(self) -> set[uuid.UUID]:
        return {item.id for item in self.to_upsert}


def _identifier(entry: Any) -> uuid.UUID | None:
    if isinstance(entry, dict):
        raw = entry.get("id")
    elif isinstance(entry, (uuid.UUID, str)):
        raw = entry
    else:
        raw = getattr(entry, "id", None)

    if raw is None:
        return None
    if isinstance(raw, uuid.UUID):
        return raw
    return uuid.UUID(str(raw))


def assign_identifiers(items: Iterable[LineItemInput]) -> list[LineItemInput]:
    """Give every id-less item a fresh durable identifier."""
    return [
        item if item.id is not None else item.model_copy(update={"id": uuid.uuid4()})
        for item in items
    ]


def reconcile(
    prior_items: Iterable[Any],
    current_items: Iterable[LineItemInput],
) -> ReconcilePlan:
    """
    Compute the persistence operations for an edited line-item collection.

    Args:
        prior_items: the snapshot the edit started from; items, mappings
            with an "id" key, or bare identifiers
        current_items: the edited collection; id-less items are new and
            receive a fresh identifier here, so they can only be upserts

    Returns:
        ReconcilePlan with recomputed line totals on every upsert.

    Raises:
        ValueError: if two current items share an identifier.
    """
    prior_ids = {pid for pid in (_identifier(p) for p in prior_items) if pid is not None}

    to_upsert: list[LineItemInput] = []
    current_ids: set[uuid.UUID] = set()
    for item in assign_identifiers(current_items):
        if item.id in current_ids:
            raise ValueError(f"Duplicate line item id in edit: {item.id}")
        current_ids.add(item.id)
        to_upsert.append(
            item.model_copy(update={"line_total": item.compute_line_total()})
        )

    return ReconcilePlan(to_upsert=to_upsert, to_delete=prior_ids - current_ids)
