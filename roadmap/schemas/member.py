from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, field_validator

from roadmap.models.project import ProjectRole
from roadmap.schemas.user import UserBrief

# Роль владельца выдается только через Project.owner_id
ASSIGNABLE_ROLES = (ProjectRole.ADMIN, ProjectRole.EDITOR, ProjectRole.VIEWER, ProjectRole.MEMBER)


class InviteCreate(BaseModel):
    email: EmailStr
    role: ProjectRole = ProjectRole.MEMBER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("role")
    @classmethod
    def check_role(cls, v: ProjectRole) -> ProjectRole:
        if v not in ASSIGNABLE_ROLES:
            raise ValueError("Role must be one of admin, editor, viewer, member")
        return v


class Invite(BaseModel):
    id: int
    token: str
    email: str
    role: ProjectRole
    project_id: int
    expires_at: datetime
    accepted: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberRoleUpdate(BaseModel):
    role: ProjectRole

    @field_validator("role")
    @classmethod
    def check_role(cls, v: ProjectRole) -> ProjectRole:
        if v not in ASSIGNABLE_ROLES:
            raise ValueError("Role must be one of admin, editor, viewer, member")
        return v


class Member(BaseModel):
    id: int
    user_id: int
    project_id: int
    role: ProjectRole
    joined_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    class Config:
        from_attributes = True


class MemberList(BaseModel):
    owner: UserBrief
    members: List[Member]
