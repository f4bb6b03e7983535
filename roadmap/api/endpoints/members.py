from typing import Any, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.api.endpoints.auth import get_current_user, get_current_user_optional
from roadmap.db.session import get_db
from roadmap.models.user import User as UserModel
from roadmap.schemas.common import ApiResponse, ok
from roadmap.schemas.member import Invite, InviteCreate, Member, MemberList, MemberRoleUpdate
from roadmap.services import member as member_service

router = APIRouter()


@router.post("/projects/{project_id}/invites", response_model=ApiResponse[Invite], status_code=status.HTTP_201_CREATED)
async def create_invite(
    project_id: int,
    invite_in: InviteCreate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """
    Приглашение в проект по email. Токен действует 7 дней
    и возвращается пригласившему.
    """
    invite = await member_service.create_invite(db, project_id=project_id, obj_in=invite_in, user=current_user)
    return ok(invite, "Invite sent successfully")


@router.post("/invites/{token}/accept", response_model=ApiResponse[Member])
async def accept_invite(
    token: str,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    member = await member_service.accept_invite(db, token=token, user=current_user)
    return ok(member, "Invite accepted successfully")


@router.get("/projects/{project_id}/members", response_model=ApiResponse[MemberList])
async def read_members(
    project_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_current_user_optional),
) -> Any:
    project, members = await member_service.get_members(db, project_id=project_id, user=current_user)
    return ok({"owner": project.owner, "members": members})


@router.put("/projects/{project_id}/members/{member_id}", response_model=ApiResponse[Member])
async def update_member_role(
    project_id: int,
    member_id: int,
    role_in: MemberRoleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    member = await member_service.update_role(
        db, project_id=project_id, member_id=member_id, role=role_in.role, user=current_user
    )
    return ok(member, "Member role updated successfully")


@router.delete("/projects/{project_id}/members/{member_id}", response_model=ApiResponse[None])
async def remove_member(
    project_id: int,
    member_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    await member_service.remove(db, project_id=project_id, member_id=member_id, user=current_user)
    return ok(message="Member removed successfully")
