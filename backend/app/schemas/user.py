from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.user import UserRole


class UserBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class CompanyRegistration(UserBase):
    company_name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("company_name")
    @classmethod
    def normalize_company_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Company name cannot be empty")
        return trimmed


class TeamMemberCreate(UserBase):
    role: UserRole
    password: str = Field(min_length=8, max_length=128)


class TeamMemberUpdate(BaseModel):
    role: UserRole | None = None
    is_active: bool | None = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class UserOut(UserBase):
    id: int
    company_id: int
    role: UserRole
    is_active: bool
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class CurrentUserOut(UserOut):
    capabilities: list[str]


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut
