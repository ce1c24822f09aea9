"""Group and membership input schemas."""
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class GroupCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    organization_id: UUID
    label: str = Field(min_length=1)
    description: Optional[str] = None
    is_restricted: bool = False


class GroupUpdate(BaseModel):
    """Partial update; only fields present in the input are applied.

    label defaults to None without validation, so an explicit label=None is
    still rejected as "not a valid string".
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    label: str = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_restricted: bool = False


class UserGroupCreate(BaseModel):
    user_id: UUID
    group_id: UUID
    organization_id: Optional[UUID] = None


class ContactGroupCreate(BaseModel):
    contact_id: UUID
    group_id: UUID
    organization_id: Optional[UUID] = None


class UserGroupsUpdate(BaseModel):
    """Target membership set for one user. group_ids arrive as strings from callers."""

    user_id: UUID
    organization_id: UUID
    group_ids: List[UUID]
