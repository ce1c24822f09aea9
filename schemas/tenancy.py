"""Organization, language, user and contact input schemas."""
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class OrganizationCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    shortcode: str = Field(min_length=1)
    email: Optional[str] = None
    is_active: bool = True


class LanguageCreate(BaseModel):
    label: str = Field(min_length=1)
    locale: str = Field(min_length=1)
    is_active: bool = True


class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    organization_id: UUID
    name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: Optional[str] = None
    roles: List[str] = Field(default_factory=lambda: ["none"])
    is_restricted: bool = False


class ContactUpsert(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    organization_id: UUID
    phone: str = Field(min_length=1)
    name: Optional[str] = None
    status: Literal["valid", "invalid", "blocked"] = "valid"
    language_id: Optional[UUID] = None
