# orderdesk/schemas/suggestion.py
from sqlmodel import SQLModel

from orderdesk.engine.suggestions import SuggestionCategory


class SuggestionList(SQLModel):
    """
    Picklist for one input field.

    exact_match=True means the current value is already a known entry
    (the picker can be hidden and the value will not be flagged as novel).
    """

    category: SuggestionCategory
    query: str
    suggestions: list[str]
    exact_match: bool
