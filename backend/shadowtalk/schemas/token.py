from pydantic import BaseModel

from shadowtalk.schemas.user import UserResponse


class Token(BaseModel):
    token: str
    user: UserResponse


class JoinSession(BaseModel):
    token: str
