"""Session template input schemas."""
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SessionTemplateCreate(BaseModel):
    organization_id: UUID
    label: str = Field(min_length=1)
    body: str = Field(min_length=1)
    language_id: UUID
    shortcode: Optional[str] = None
    is_source: bool = False
    is_active: bool = False
    is_reserved: bool = False
    parent_id: Optional[UUID] = None


class SessionTemplateUpdate(BaseModel):
    """Partial update; explicit None on a required column is rejected."""

    label: str = Field(default=None, min_length=1)
    body: str = Field(default=None, min_length=1)
    language_id: UUID = None
    shortcode: Optional[str] = None
    is_source: bool = False
    is_active: bool = False
    is_reserved: bool = False
    parent_id: Optional[UUID] = None
