import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from ...models.action import ActionTemplate
from ...models.user import User
from ...schemas.action import ActionTemplateCreate, ActionTemplateOut, ActionTemplateUpdate
from ...storage import Storage
from ..deps import IdPath, get_current_user, get_storage, require_head_or_parent

logger = logging.getLogger(__name__)

router = APIRouter()


def _owned_template(storage: Storage, template_id: int, current: User, verb: str) -> ActionTemplate:
    template = storage.get_action_template(template_id)
    if not template:
        raise HTTPException(404, "Action template not found")
    if template.family_id != current.family_id:
        raise HTTPException(403, f"You don't have permission to {verb} this template")
    return template


@router.get("", response_model=List[ActionTemplateOut])
def list_templates(storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    return storage.get_action_templates(current.family_id)


@router.post("", response_model=ActionTemplateOut, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: ActionTemplateCreate,
    storage: Storage = Depends(get_storage),
    current: User = Depends(require_head_or_parent),
):
    t = storage.create_action_template(
        family_id=current.family_id,
        name=payload.name,
        points=payload.points,
        description=payload.description,
        created_by=current.id,
    )
    logger.info(f"Action template {t.id} '{t.name}' ({t.points} pts) created by user {current.id}")
    return t


@router.patch("/{template_id}", response_model=ActionTemplateOut)
def update_template(
    template_id: IdPath,
    payload: ActionTemplateUpdate,
    storage: Storage = Depends(get_storage),
    current: User = Depends(require_head_or_parent),
):
    _owned_template(storage, template_id, current, "update")
    data = payload.model_dump(exclude_unset=True)
    # name and points are required columns; an explicit null leaves them alone
    data = {k: v for k, v in data.items() if v is not None or k == "description"}
    return storage.update_action_template(template_id, data)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: IdPath,
    storage: Storage = Depends(get_storage),
    current: User = Depends(require_head_or_parent),
):
    _owned_template(storage, template_id, current, "delete")
    storage.delete_action_template(template_id)
    logger.info(f"Action template {template_id} deleted by user {current.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
