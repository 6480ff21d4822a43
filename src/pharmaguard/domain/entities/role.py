"""Role entity for RBAC."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Role:
    """Role - named permission bundle with an optional parent.

    parent_id is a plain reference; the parent is looked up through the store.
    """

    id: str
    name: str
    display_name: str
    category: str = "custom"
    permissions: list[str] = field(default_factory=list)
    parent_id: str | None = None
    is_active: bool = True
    hierarchy_level: int = 0
    description: str = ""
    is_system_role: bool = False
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
