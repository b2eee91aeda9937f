import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models.action import ActionSuggestion
from ...models.user import User, UserRole
from ...schemas.action import SuggestionCreate, SuggestionDetail, SuggestionOut
from ...services.action_service import action_family_id, enrich_suggestions, family_child, family_template
from ...storage import Storage
from ..deps import IdPath, get_current_user, get_storage, require_head_or_parent

logger = logging.getLogger(__name__)

router = APIRouter()


def _family_suggestion(storage: Storage, suggestion_id: int, current: User, verb: str) -> ActionSuggestion:
    suggestion = storage.get_action_suggestion(suggestion_id)
    if not suggestion:
        raise HTTPException(404, "Action suggestion not found")
    if action_family_id(storage, suggestion) != current.family_id:
        raise HTTPException(403, f"You don't have permission to {verb} this suggestion")
    return suggestion


@router.get("", response_model=List[SuggestionDetail])
def list_suggestions(
    status_: Optional[str] = Query(default=None, alias="status"),
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user),
):
    child_id = current.id if current.role == UserRole.CHILD else None
    suggestions = storage.get_action_suggestions(current.family_id, status=status_, child_id=child_id)
    return enrich_suggestions(storage, suggestions)


@router.get("/pending", response_model=List[SuggestionDetail])
def pending_suggestions(storage: Storage = Depends(get_storage), current: User = Depends(require_head_or_parent)):
    return enrich_suggestions(storage, storage.get_action_suggestions(current.family_id, status="pending"))


@router.post("", response_model=SuggestionOut, status_code=status.HTTP_201_CREATED)
def suggest_action(
    payload: SuggestionCreate,
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user),
):
    if not current.family_id or not storage.get_family(current.family_id):
        raise HTTPException(400, "User is not part of a family")

    if current.role == UserRole.CHILD:
        # a child always suggests for themselves, whatever the body says
        child_id = current.id
    elif payload.child_id:
        if not family_child(storage, payload.child_id, current.family_id):
            raise HTTPException(400, "Invalid child id")
        child_id = payload.child_id
    else:
        raise HTTPException(400, "Child ID is required")

    if not family_template(storage, payload.action_template_id, current.family_id):
        raise HTTPException(400, "Invalid action template")

    s = storage.create_action_suggestion(
        action_template_id=payload.action_template_id,
        child_id=child_id,
        quantity=payload.quantity,
        description=payload.description,
        date=payload.date,
    )
    logger.info(f"Suggestion {s.id} created for child {child_id} by user {current.id}")
    return s


@router.patch("/{suggestion_id}/approve", response_model=SuggestionOut)
def approve(suggestion_id: IdPath, storage: Storage = Depends(get_storage), current: User = Depends(require_head_or_parent)):
    _family_suggestion(storage, suggestion_id, current, "approve")
    s = storage.approve_action_suggestion(suggestion_id, current.id)
    logger.info(f"Suggestion {suggestion_id} approved by user {current.id}")
    return s


@router.patch("/{suggestion_id}/decline", response_model=SuggestionOut)
def decline(suggestion_id: IdPath, storage: Storage = Depends(get_storage), current: User = Depends(require_head_or_parent)):
    _family_suggestion(storage, suggestion_id, current, "decline")
    s = storage.decline_action_suggestion(suggestion_id, current.id)
    logger.info(f"Suggestion {suggestion_id} declined by user {current.id}")
    return s
