from pydantic import BaseModel

from roadmap.schemas.user import User


class AuthPayload(BaseModel):
    user: User
    token: str
