from .groups import (
    GroupCreate,
    GroupUpdate,
    UserGroupCreate,
    ContactGroupCreate,
    UserGroupsUpdate,
)
from .tenancy import (
    OrganizationCreate,
    LanguageCreate,
    UserCreate,
    ContactUpsert,
)
from .templates import (
    SessionTemplateCreate,
    SessionTemplateUpdate,
)

__all__ = [
    "GroupCreate", "GroupUpdate", "UserGroupCreate", "ContactGroupCreate", "UserGroupsUpdate",
    "OrganizationCreate", "LanguageCreate", "UserCreate", "ContactUpsert",
    "SessionTemplateCreate", "SessionTemplateUpdate",
]
