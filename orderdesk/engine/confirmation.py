# orderdesk/engine/confirmation.py
"""
Two-phase confirm-before-commit gate for free-text fields.

The vocabulary is advisory: operators may introduce a new customer, model
or color, but the first submission containing such a value is blocked so
typos surface before being committed. An immediate repeat submission of the
same data goes through.

State machine:

    DRAFT --submit with novel values--> PENDING_CONFIRMATION
    PENDING_CONFIRMATION --submit--> DRAFT (proceeds regardless)
    any --edit--> DRAFT
    any --persisted / persist failed--> DRAFT
"""
import hashlib
import hmac
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from orderdesk.engine.suggestions import SuggestionCategory, Vocabularies, is_novel


class ConfirmationState(str, Enum):
    DRAFT = "draft"
    PENDING_CONFIRMATION = "pending_confirmation"


class GateEvent(str, Enum):
    EDIT = "edit"
    BLOCKED = "blocked"
    PERSISTED = "persisted"
    PERSIST_FAILED = "persist_failed"


_TRANSITIONS: dict[GateEvent, ConfirmationState] = {
    GateEvent.EDIT: ConfirmationState.DRAFT,
    GateEvent.BLOCKED: ConfirmationState.PENDING_CONFIRMATION,
    GateEvent.PERSISTED: ConfirmationState.DRAFT,
    # failures are reported, never re-blocked
    GateEvent.PERSIST_FAILED: ConfirmationState.DRAFT,
}


def transition(state: ConfirmationState, event: GateEvent) -> ConfirmationState:
    """
    Next state for an event.

    Every event currently lands on a fixed state, whatever the source
    state; the source is kept in the signature so call sites read as a
    state machine.
    """
    return _TRANSITIONS[GateEvent(event)]


@dataclass(frozen=True)
class GateDecision:
    proceed: bool
    novel_fields: list[str] = field(default_factory=list)
    next_state: ConfirmationState = ConfirmationState.DRAFT


def collect_novel_fields(
    header: Any,
    items: Iterable[Any],
    vocabularies: Vocabularies,
) -> list[str]:
    """
    Human-readable labels for every non-blank value outside its vocabulary.

    Order: customer name, then per item (1-based) product model before color.
    """
    labels: list[str] = []

    customer = _get(header, "customer_name")
    if is_novel(customer, SuggestionCategory.CUSTOMER, vocabularies):
        labels.append(f"Customer name: '{customer}'")

    for index, item in enumerate(items, start=1):
        model = _get(item, "product_model")
        if is_novel(model, SuggestionCategory.MODEL, vocabularies):
            labels.append(f"Item {index} product model: '{model}'")

        color = _get(item, "color")
        if is_novel(color, SuggestionCategory.COLOR, vocabularies):
            labels.append(f"Item {index} color: '{color}'")

    return labels


def evaluate(
    header: Any,
    items: Iterable[Any],
    vocabularies: Vocabularies,
    state: ConfirmationState,
) -> GateDecision:
    """
    Decide whether a submission may proceed to persistence.

    - PENDING_CONFIRMATION: bypass, proceed, reset to DRAFT.
    - DRAFT with novel values: block and move to PENDING_CONFIRMATION;
      the caller must show `novel_fields` and wait for a repeated submit.
    - DRAFT without novel values: proceed, stay in DRAFT.
    """
    if ConfirmationState(state) is ConfirmationState.PENDING_CONFIRMATION:
        return GateDecision(
            proceed=True,
            next_state=transition(state, GateEvent.PERSISTED),
        )

    novel = collect_novel_fields(header, items, vocabularies)
    if novel:
        return GateDecision(
            proceed=False,
            novel_fields=novel,
            next_state=transition(state, GateEvent.BLOCKED),
        )
    return GateDecision(proceed=True, next_state=ConfirmationState.DRAFT)


def submission_fingerprint(header: Any, items: Iterable[Any], key: str | bytes) -> str:
    """
    HMAC-SHA256 over the submitted header and items, keyed by a server
    secret.

    A stateless client echoes this back as its confirmation token; the
    repeat only counts as confirmed if the data hashes identically, so any
    edit in between drops the session back to DRAFT. Only the server can
    mint a token, so a token proves the block was shown. Derived line
    totals are excluded.
    """
    payload = {
        "header": _as_dict(header),
        "items": [
            {k: v for k, v in _as_dict(item).items() if k != "line_total"}
            for item in items
        ],
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    if isinstance(key, str):
        key = key.encode("utf-8")
    return hmac.new(key, encoded.encode("utf-8"), hashlib.sha256).hexdigest()


def state_from_token(
    token: str | None,
    header: Any,
    items: Iterable[Any],
    key: str | bytes,
) -> ConfirmationState:
    """Rebuild the session state of a stateless caller from its token."""
    if not token:
        return ConfirmationState.DRAFT
    expected = submission_fingerprint(header, items, key)
    if hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        return ConfirmationState.PENDING_CONFIRMATION
    return ConfirmationState.DRAFT


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_dict(obj: Any) -> dict[str, Any]:
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    return dict(obj)
