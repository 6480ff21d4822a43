"""Application ports - interfaces for external adapters."""

from pharmaguard.application.ports.cache import Cache
from pharmaguard.application.ports.permission_checker import PermissionChecker
from pharmaguard.application.ports.unit_of_work import UnitOfWork, UnitOfWorkFactory

__all__ = [
    "Cache",
    "PermissionChecker",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
