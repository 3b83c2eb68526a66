from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from eventhub.domain.users.models import UserRole


class TokenPayload(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sub: str
    exp: int
    iat: int | None = None
    nbf: int | None = None
    iss: str | None = None
    aud: str | list[str] | None = None
    email: str | None = None


class UserReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: str | None
    last_name: str | None
    role: UserRole
    is_active: bool
    created_at: datetime


class UserRoleUpdateDTO(BaseModel):
    model_config = ConfigDict(extra='forbid')

    role: UserRole


class IdentityEmailDTO(BaseModel):
    id: str | None = None
    email_address: str = Field(min_length=3)


class IdentityUserDTO(BaseModel):
    """`data` object of identity provider user events; unknown keys are ignored."""
    id: str = Field(min_length=1)
    email_addresses: list[IdentityEmailDTO] = Field(default_factory=list)
    primary_email_address_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def primary_email(self) -> str | None:
        for address in self.email_addresses:
            if address.id and address.id == self.primary_email_address_id:
                return address.email_address
        return self.email_addresses[0].email_address if self.email_addresses else None
