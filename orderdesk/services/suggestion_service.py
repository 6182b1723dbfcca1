# orderdesk/services/suggestion_service.py
from functools import lru_cache

from orderdesk.core.config import get_settings
from orderdesk.engine.suggestions import (
    SuggestionCategory,
    Vocabularies,
    filter_suggestions,
    is_known,
    load_vocabularies,
)
from orderdesk.schemas.suggestion import SuggestionList


@lru_cache
def get_vocabularies() -> Vocabularies:
    """
    Cached vocabularies (VOCABULARY_PATH or the built-in seed lists).

    Also used as a FastAPI dependency so tests can swap in their own lists.
    """
    return load_vocabularies(get_settings().VOCABULARY_PATH)


class SuggestionService:
    """
    Picklist lookups for the customer / model / color inputs.
    """

    def list_suggestions(
        self,
        category: SuggestionCategory,
        query: str | None,
        vocabularies: Vocabularies,
    ) -> SuggestionList:
        query = query or ""
        return SuggestionList(
            category=category,
            query=query,
            suggestions=filter_suggestions(query, category, vocabularies),
            exact_match=is_known(query, category, vocabularies),
        )
