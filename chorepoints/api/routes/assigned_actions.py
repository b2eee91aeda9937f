import logging
from typing import Any, List

from fastapi import APIRouter, Body, Depends, HTTPException, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ...models import utcnow
from ...models.action import AssignedAction
from ...models.user import User, UserRole
from ...schemas.action import (
    AssignedActionCreate,
    AssignedActionDetail,
    AssignedActionOut,
    AssignedActionUpdate,
)
from ...services.action_service import (
    action_family_id,
    enrich_assigned_actions,
    family_child,
    family_template,
)
from ...services.report_service import day_window
from ...storage import Storage
from ..deps import IdPath, get_current_user, get_storage, require_head_or_parent

logger = logging.getLogger(__name__)

router = APIRouter()

CHILD_EDITABLE = {"completed"}


def _action_for(storage: Storage, action_id: int, current: User, verb: str) -> AssignedAction:
    """Load an action the caller may touch: a child's own, or any in the caller's family."""
    action = storage.get_assigned_action(action_id)
    if not action:
        raise HTTPException(404, "Assigned action not found")
    if current.role == UserRole.CHILD:
        allowed = action.child_id == current.id
    else:
        allowed = action_family_id(storage, action) == current.family_id
    if not allowed:
        raise HTTPException(403, f"You don't have permission to {verb} this action")
    return action


@router.get("", response_model=List[AssignedActionDetail])
def list_assigned_actions(storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    if current.role == UserRole.CHILD:
        # children only see their own
        actions = storage.get_assigned_actions(current.id)
    else:
        actions = storage.get_assigned_actions_for_family(current.family_id)
    return enrich_assigned_actions(storage, actions)


@router.get("/today", response_model=List[AssignedActionDetail])
def todays_actions(storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    start, end = day_window(utcnow())
    if current.role == UserRole.CHILD:
        actions = storage.get_child_actions_for_period(current.id, start, end)
    else:
        actions = storage.get_family_actions_for_period(current.family_id, start, end)
    return enrich_assigned_actions(storage, actions)


@router.post("", response_model=AssignedActionOut, status_code=status.HTTP_201_CREATED)
def assign_action(
    payload: AssignedActionCreate,
    storage: Storage = Depends(get_storage),
    current: User = Depends(require_head_or_parent),
):
    if not family_template(storage, payload.action_template_id, current.family_id):
        raise HTTPException(400, "Invalid action template")
    if not family_child(storage, payload.child_id, current.family_id):
        raise HTTPException(400, "Invalid child id")

    a = storage.create_assigned_action(
        action_template_id=payload.action_template_id,
        child_id=payload.child_id,
        assigned_by=current.id,
        quantity=payload.quantity,
        description=payload.description,
        date=payload.date,
        completed=payload.completed,
    )
    logger.info(f"Action {a.id} (template {a.action_template_id} x{a.quantity}) assigned to child {a.child_id} by {current.id}")
    return a


@router.patch("/{action_id}", response_model=AssignedActionOut)
def edit_action(
    action_id: IdPath,
    body: dict[str, Any] = Body(...),
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user),
):
    _action_for(storage, action_id, current, "update")

    if current.role == UserRole.CHILD and set(body) - CHILD_EDITABLE:
        raise HTTPException(403, "You can only update the completed status")

    try:
        payload = AssignedActionUpdate.model_validate(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    data = payload.model_dump(exclude_unset=True)
    data = {k: v for k, v in data.items() if v is not None or k == "description"}
    if "action_template_id" in data and not family_template(storage, data["action_template_id"], current.family_id):
        raise HTTPException(400, "Invalid action template")
    if "child_id" in data and not family_child(storage, data["child_id"], current.family_id):
        raise HTTPException(400, "Invalid child id")

    return storage.update_assigned_action(action_id, data)


@router.patch("/{action_id}/complete", response_model=AssignedActionOut)
def complete_action(action_id: IdPath, storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    _action_for(storage, action_id, current, "complete")
    a = storage.update_assigned_action(action_id, {"completed": True})
    logger.info(f"Action {action_id} completed by user {current.id}")
    return a


@router.delete("/{action_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_action(action_id: IdPath, storage: Storage = Depends(get_storage), current: User = Depends(require_head_or_parent)):
    _action_for(storage, action_id, current, "delete")
    storage.delete_assigned_action(action_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
