"""Family membership and invitations.

``/family-members`` and ``/invitations`` are the current routes; the
``/family/...`` variants are kept for older clients.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ...models.user import User
from ...schemas.family import FamilyOut
from ...schemas.invite import InvitationAcceptOut, InvitationCreate, InvitationLinkOut, InvitationOut
from ...schemas.common import MessageOut
from ...schemas.user import UserOut
from ...services.family_service import accept_invitation, create_invitation, remove_member
from ...storage import Storage
from ..deps import IdPath, get_current_user, get_storage, require_head, require_head_or_parent

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/family", response_model=FamilyOut)
def my_family(storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    fam = storage.get_family(current.family_id) if current.family_id else None
    if not fam:
        raise HTTPException(404, "User is not part of a family")
    return fam


@router.get("/family-members", response_model=List[UserOut])
def family_members(storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    return storage.get_family_members(current.family_id)


@router.delete("/family-members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_family_member(member_id: IdPath, storage: Storage = Depends(get_storage), current: User = Depends(require_head)):
    remove_member(storage, caller=current, member_id=member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/invitations", response_model=List[InvitationOut])
def list_invitations(storage: Storage = Depends(get_storage), current: User = Depends(require_head)):
    return storage.get_invitations(current.family_id)


@router.post("/invitations", response_model=InvitationOut, status_code=status.HTTP_201_CREATED)
def make_invitation(payload: InvitationCreate, storage: Storage = Depends(get_storage), current: User = Depends(require_head)):
    return create_invitation(storage, inviter=current, email=payload.email, role=payload.role)


@router.get("/invitations/{token}/accept", response_model=InvitationAcceptOut)
def accept(token: str, storage: Storage = Depends(get_storage)):
    inv = accept_invitation(storage, token)
    return InvitationAcceptOut(
        message="Invitation accepted. Please register to join the family.",
        invitation_token=inv.token,
    )


# ------------------------------------------------------------------------
# Legacy /family/... routes
# ------------------------------------------------------------------------
@router.get("/family/members", response_model=List[UserOut])
def legacy_family_members(storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    if not current.family_id:
        raise HTTPException(400, "User is not part of a family")
    return storage.get_family_members(current.family_id)


@router.delete("/family/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def legacy_delete_family_member(member_id: IdPath, storage: Storage = Depends(get_storage), current: User = Depends(require_head)):
    remove_member(storage, caller=current, member_id=member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/family/invite", response_model=InvitationLinkOut, status_code=status.HTTP_201_CREATED)
def legacy_invite(payload: InvitationCreate, storage: Storage = Depends(get_storage), current: User = Depends(require_head_or_parent)):
    inv = create_invitation(storage, inviter=current, email=payload.email, role=payload.role)
    return InvitationLinkOut(
        **InvitationOut.model_validate(inv).model_dump(),
        invite_url=f"/api/family/accept-invite?token={inv.token}",
    )


@router.get("/family/accept-invite", response_model=MessageOut)
def legacy_accept(token: str = Query(default=""), storage: Storage = Depends(get_storage)):
    if not token:
        raise HTTPException(400, "Invitation token is required")
    accept_invitation(storage, token)
    return MessageOut(message="Invitation accepted")
