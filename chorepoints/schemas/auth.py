from pydantic import EmailStr, Field, model_validator

from .common import CamelModel
from .user import UserOut


class RegisterIn(CamelModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6)
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr | None = None
    # a new family is founded unless an invitation token is given
    family_name: str | None = Field(default=None, min_length=2, max_length=100)
    invitation_token: str | None = None

    @model_validator(mode="after")
    def _family_or_invitation(self):
        if not self.family_name and not self.invitation_token:
            raise ValueError("familyName or invitationToken is required")
        return self


class LoginIn(CamelModel):
    username: str
    password: str


class TokenOut(CamelModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut
