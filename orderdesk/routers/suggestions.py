# orderdesk/routers/suggestions.py
from fastapi import APIRouter, Depends

from orderdesk.core.auth import require_auth
from orderdesk.engine.suggestions import SuggestionCategory, Vocabularies
from orderdesk.schemas.suggestion import SuggestionList
from orderdesk.services.suggestion_service import SuggestionService, get_vocabularies

router = APIRouter(prefix="/suggestions", tags=["Suggestions"])

service = SuggestionService()


@router.get(
    "/{category}",
    response_model=SuggestionList,
    dependencies=[Depends(require_auth)],
)
def list_suggestions(
    category: SuggestionCategory,
    q: str | None = None,
    vocabularies: Vocabularies = Depends(get_vocabularies),
):
    """
    Picklist for the customer / model / color inputs.

    An empty `q` returns the whole list.
    """
    return service.list_suggestions(category, q, vocabularies)
