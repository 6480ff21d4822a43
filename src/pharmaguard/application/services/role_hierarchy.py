"""Role hierarchy store - role graph, inheritance and role mutations."""

from collections.abc import Iterable
from datetime import UTC, datetime
from uuid import uuid4

import structlog

from pharmaguard.application.ports import Cache
from pharmaguard.application.ports.repositories import RoleRepository
from pharmaguard.application.services.cache_invalidation import CacheInvalidator
from pharmaguard.application.services.permission_catalog import PermissionCatalog
from pharmaguard.domain.entities import Role
from pharmaguard.domain.exceptions import (
    CyclicHierarchy,
    DuplicateRole,
    HierarchyTooDeep,
    InvalidParent,
    RoleNotFound,
    UnknownPermission,
    ValidationError,
)

log = structlog.get_logger(__name__)

MAX_HIERARCHY_DEPTH = 10


class RoleHierarchyStore:
    """Roles with single-parent inheritance.

    Effective permissions of a role are its own plus those of every active
    ancestor. They are cached per role id and dropped on any mutation of
    the role or one of its ancestors.
    """

    def __init__(
        self,
        unit_of_work_factory: type,
        catalog: PermissionCatalog,
        role_cache: Cache,
        invalidator: CacheInvalidator,
        max_depth: int = MAX_HIERARCHY_DEPTH,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._catalog = catalog
        self._cache = role_cache
        self._invalidator = invalidator
        self._max_depth = max_depth

    # Reads

    async def get_role(self, role_id: str) -> Role:
        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
        if role is None:
            raise RoleNotFound(role_id)
        return role

    async def list_roles(self, include_inactive: bool = False) -> list[Role]:
        async with self._uow_factory() as uow:
            return await uow.roles.list_all(include_inactive=include_inactive)

    async def effective_permissions(self, role_id: str) -> frozenset[str]:
        """Own permissions plus inherited ones. Inactive roles grant nothing."""
        cached = self._cache.get(role_id)
        if isinstance(cached, frozenset):
            return cached

        generation = self._invalidator.role_generation(role_id)
        async with self._uow_factory() as uow:
            chain = await self._chain(uow.roles, role_id)

        if not chain[0].is_active:
            permissions: frozenset[str] = frozenset()
        else:
            permissions = frozenset(p for role in chain for p in role.permissions)
        if self._invalidator.role_generation(role_id) == generation:
            self._cache.set(role_id, permissions)
        return permissions

    async def role_permission_sources(self, role_id: str) -> dict[str, Role]:
        """Map each effective permission to the nearest role declaring it."""
        async with self._uow_factory() as uow:
            chain = await self._chain(uow.roles, role_id)
        if not chain[0].is_active:
            return {}
        sources: dict[str, Role] = {}
        for role in chain:
            for permission in role.permissions:
                sources.setdefault(permission, role)
        return sources

    async def inheritance_path(self, role_id: str) -> list[Role]:
        """Roles from role_id up to the root, role_id first."""
        async with self._uow_factory() as uow:
            return await self._chain(uow.roles, role_id)

    async def descendants(self, role_id: str) -> list[Role]:
        """All roles below role_id, breadth first."""
        async with self._uow_factory() as uow:
            if await uow.roles.get_by_id(role_id) is None:
                raise RoleNotFound(role_id)
            return await self._descendants(uow.roles, role_id)

    async def roles_with_permission(self, action: str) -> list[Role]:
        """Active roles that grant action, declared or inherited."""
        async with self._uow_factory() as uow:
            declaring = await uow.roles.list_with_permission(action)
            found: dict[str, Role] = {}
            for role in declaring:
                if not role.is_active:
                    continue
                found.setdefault(role.id, role)
                for child in await self._descendants(uow.roles, role.id, active_only=True):
                    found.setdefault(child.id, child)
        return sorted(found.values(), key=lambda r: (r.hierarchy_level, r.name))

    # Mutations

    async def create_role(
        self,
        name: str,
        display_name: str,
        *,
        actor: str,
        permissions: Iterable[str] = (),
        parent_id: str | None = None,
        category: str = "custom",
        description: str = "",
        is_system_role: bool = False,
    ) -> Role:
        permissions = list(dict.fromkeys(permissions))
        self._ensure_known(permissions)

        async with self._uow_factory() as uow:
            if await uow.roles.get_by_name(name):
                raise DuplicateRole(f"Role with name '{name}' already exists")

            level = 0
            if parent_id is not None:
                parent_chain = await self._active_parent_chain(uow.roles, parent_id)
                level = len(parent_chain)
                if level > self._max_depth:
                    raise HierarchyTooDeep(
                        f"Role hierarchy depth cannot exceed {self._max_depth} levels"
                    )

            now = datetime.now(UTC)
            role = Role(
                id=str(uuid4()),
                name=name,
                display_name=display_name,
                category=category,
                permissions=permissions,
                parent_id=parent_id,
                hierarchy_level=level,
                description=description,
                is_system_role=is_system_role,
                created_by=actor,
                created_at=now,
                updated_at=now,
            )
            await uow.roles.create(role)

        log.info("role_created", role_id=role.id, name=name, parent_id=parent_id, actor=actor)
        return role

    async def update_role(
        self,
        role_id: str,
        *,
        actor: str,
        display_name: str | None = None,
        description: str | None = None,
        category: str | None = None,
        permissions: Iterable[str] | None = None,
    ) -> Role:
        """Update role attributes. None leaves a field unchanged; use reparent() for the parent."""
        if permissions is not None:
            permissions = list(dict.fromkeys(permissions))
            self._ensure_known(permissions)

        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if role is None:
                raise RoleNotFound(role_id)
            if display_name is not None:
                role.display_name = display_name
            if description is not None:
                role.description = description
            if category is not None:
                role.category = category
            if permissions is not None:
                role.permissions = permissions
            role.updated_at = datetime.now(UTC)
            await uow.roles.update(role)
            affected = [role_id, *(r.id for r in await self._descendants(uow.roles, role_id))]

        self._invalidator.roles_changed(affected)
        log.info("role_updated", role_id=role_id, actor=actor)
        return role

    async def reparent(self, role_id: str, parent_id: str | None, *, actor: str) -> Role:
        """Move role under parent_id (None makes it a root)."""
        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if role is None:
                raise RoleNotFound(role_id)

            subtree = await self._descendants(uow.roles, role_id)
            level = 0
            if parent_id is not None:
                if parent_id == role_id:
                    raise CyclicHierarchy(role_id, [role_id])
                # the new parent must not sit anywhere below the role
                if any(r.id == parent_id for r in subtree):
                    raise CyclicHierarchy(role_id, [role_id, parent_id])
                parent_chain = await self._active_parent_chain(uow.roles, parent_id)
                level = len(parent_chain)

            height = max((r.hierarchy_level - role.hierarchy_level for r in subtree), default=0)
            if level + height > self._max_depth:
                raise HierarchyTooDeep(
                    f"Role hierarchy depth cannot exceed {self._max_depth} levels"
                )

            role.parent_id = parent_id
            role.hierarchy_level = level
            role.updated_at = datetime.now(UTC)
            await uow.roles.update(role)
            await self._relevel(uow.roles, role)

        self._invalidator.roles_changed([role_id, *(r.id for r in subtree)])
        log.info("role_reparented", role_id=role_id, parent_id=parent_id, actor=actor)
        return role

    async def deactivate_role(self, role_id: str, *, actor: str) -> Role:
        """Soft-delete a role. Its descendants stop inheriting through it."""
        async with self._uow_factory() as uow:
            role = await uow.roles.get_by_id(role_id)
            if role is None:
                raise RoleNotFound(role_id)
            if role.is_system_role:
                raise ValidationError("System roles cannot be deactivated")
            role.is_active = False
            role.updated_at = datetime.now(UTC)
            await uow.roles.update(role)
            affected = [role_id, *(r.id for r in await self._descendants(uow.roles, role_id))]

        self._invalidator.roles_changed(affected)
        log.info("role_deactivated", role_id=role_id, actor=actor)
        return role

    # Internals

    def _ensure_known(self, permissions: list[str]) -> None:
        unknown = self._catalog.unknown(permissions)
        if unknown:
            raise UnknownPermission(unknown)

    async def _chain(self, roles: RoleRepository, role_id: str) -> list[Role]:
        """Walk from role_id towards the root.

        Stops at an inactive ancestor. Raises RoleNotFound when a parent is
        missing and CyclicHierarchy when a role repeats.
        """
        role = await roles.get_by_id(role_id)
        if role is None:
            raise RoleNotFound(role_id)

        chain = [role]
        seen = [role.id]
        current = role
        while current.parent_id:
            if current.parent_id in seen:
                raise CyclicHierarchy(current.parent_id, seen)
            if len(chain) > self._max_depth:
                log.warning("role_hierarchy_too_deep", role_id=role_id, depth=len(chain))
                break
            parent = await roles.get_by_id(current.parent_id)
            if parent is None:
                log.error("role_parent_missing", role_id=current.id, parent_id=current.parent_id)
                raise RoleNotFound(current.parent_id)
            if not parent.is_active:
                break
            chain.append(parent)
            seen.append(parent.id)
            current = parent
        return chain

    async def _active_parent_chain(self, roles: RoleRepository, parent_id: str) -> list[Role]:
        parent = await roles.get_by_id(parent_id)
        if parent is None:
            raise RoleNotFound(parent_id)
        if not parent.is_active:
            raise InvalidParent(f"Parent role '{parent.name}' is inactive")
        return await self._chain(roles, parent_id)

    async def _descendants(
        self, roles: RoleRepository, role_id: str, active_only: bool = False
    ) -> list[Role]:
        found: list[Role] = []
        seen = {role_id}
        queue = [role_id]
        while queue:
            current = queue.pop(0)
            for child in await roles.list_children(current):
                if child.id in seen:
                    raise CyclicHierarchy(child.id, [role_id, current])
                if active_only and not child.is_active:
                    continue
                seen.add(child.id)
                found.append(child)
                queue.append(child.id)
        return found

    async def _relevel(self, roles: RoleRepository, root: Role) -> None:
        """Recompute hierarchy_level for everything below root."""
        queue = [root]
        while queue:
            current = queue.pop(0)
            for child in await roles.list_children(current.id):
                level = current.hierarchy_level + 1
                if child.hierarchy_level != level:
                    child.hierarchy_level = level
                    await roles.update(child)
                queue.append(child)
