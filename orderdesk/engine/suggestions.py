# orderdesk/engine/suggestions.py
"""
Suggestion matching against controlled vocabularies.

One normalisation rule (trim + casefold) is shared by the picklist filter
and by the novelty check, so a value picked from the list can never be
flagged as novel later.
"""
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)


class SuggestionCategory(str, Enum):
    CUSTOMER = "customer"
    MODEL = "model"
    COLOR = "color"


Vocabularies = Mapping[SuggestionCategory, Sequence[str]]


# Seed lists. Operators override them with VOCABULARY_PATH.
DEFAULT_VOCABULARIES: dict[SuggestionCategory, tuple[str, ...]] = {
    SuggestionCategory.CUSTOMER: ("Sharif", "Uruma"),
    SuggestionCategory.MODEL: (
        "9070", "9078", "9080", "9082", "9086", "9092", "9093", "9099",
        "9100", "9101", "9102", "9103", "9105", "9106", "9111",
        "9801", "9803", "9804", "9805", "9806", "9807", "9808", "9809",
        "9810", "9812", "9817", "9818", "9819", "9820",
        "D-02", "X-21",
        "2186", "2188", "2291", "2397", "2556", "2573", "2576",
        "9001", "9003", "9004", "9006", "9007", "9008", "9009",
    ),
    SuggestionCategory.COLOR: ("363-6", "363-11", "M9011-2", "HJ001"),
}


def _normalize(value: str | None) -> str:
    if value is None:
        return ""
    return str(value).strip().casefold()


def is_blank(value: str | None) -> bool:
    return _normalize(value) == ""


def is_known(
    value: str | None,
    category: SuggestionCategory,
    vocabularies: Vocabularies,
) -> bool:
    """Exact, case-insensitive match against the category's list."""
    needle = _normalize(value)
    if not needle:
        return False
    return any(_normalize(entry) == needle for entry in vocabularies.get(category, ()))


def is_novel(
    value: str | None,
    category: SuggestionCategory,
    vocabularies: Vocabularies,
) -> bool:
    """
    True when a provided value is absent from the vocabulary.

    Blank values mean "not yet provided" and are never novel.
    """
    if is_blank(value):
        return False
    return not is_known(value, category, vocabularies)


def filter_suggestions(
    value: str | None,
    category: SuggestionCategory,
    vocabularies: Vocabularies,
) -> list[str]:
    """
    Picklist entries for the current input.

      - blank input -> the whole list
      - otherwise   -> entries containing the input (case-insensitive)

    Duplicates are dropped, first occurrence wins.
    """
    needle = _normalize(value)
    seen: set[str] = set()
    result: list[str] = []
    for entry in vocabularies.get(category, ()):
        key = _normalize(entry)
        if key in seen:
            continue
        seen.add(key)
        if not needle or needle in key:
            result.append(entry)
    return result


def load_vocabularies(path: str | Path | None) -> dict[SuggestionCategory, tuple[str, ...]]:
    """
    Load vocabularies from a JSON object: {"customer": [...], "model": [...], "color": [...]}.

    Categories missing from the file keep their defaults; unknown keys are
    ignored with a warning. `path=None` returns the defaults.
    """
    vocabularies = dict(DEFAULT_VOCABULARIES)
    if path is None:
        return vocabularies

    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)

    if not isinstance(raw, dict):
        raise ValueError(f"Vocabulary file {path} must contain a JSON object")

    for key, values in raw.items():
        try:
            category = SuggestionCategory(key)
        except ValueError:
            logger.warning("Ignoring unknown vocabulary category %r in %s", key, path)
            continue
        vocabularies[category] = tuple(str(v) for v in values)

    logger.info(
        "Loaded vocabularies from %s (%s)",
        path,
        ", ".join(f"{c.value}={len(v)}" for c, v in vocabularies.items()),
    )
    return vocabularies
