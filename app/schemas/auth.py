from pydantic import Field

from app.schemas.base import APIModel
from app.schemas.user import User

class Token(APIModel):
    access_token: str
    token_type: str = "bearer"
    user: User


class LoginRequest(APIModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
