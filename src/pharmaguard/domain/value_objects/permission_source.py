"""Attribution of an effective permission."""

from enum import StrEnum


class PermissionSource(StrEnum):
    """Which signal granted (or denied) a permission."""

    DIRECT = "direct"
    ROLE = "role"
    INHERITED = "inherited"
    LEGACY = "legacy"
    DENIED = "denied"
