"""Cache invalidation - single place that knows which cache holds what."""

from collections.abc import Iterable

import structlog

from pharmaguard.application.ports import Cache

log = structlog.get_logger(__name__)


def decision_key(user_id: str, workspace_id: str | None, action: str) -> str:
    """Resolver cache key. User id comes first so a user's entries share a prefix."""
    return f"{user_id}|{workspace_id or '-'}|{action}"


def resolution_key(user_id: str, workspace_id: str | None) -> str:
    return decision_key(user_id, workspace_id, "*")


class CacheInvalidator:
    """Drops cached role permissions, resolver decisions and workspace contexts.

    Every invalidation also bumps a generation counter. A reader takes the
    generation before it starts computing and stores its result only if the
    generation is unchanged afterwards, so a computation that straddles an
    invalidation never writes its stale result back.
    """

    def __init__(self, role_cache: Cache, decision_cache: Cache, context_cache: Cache) -> None:
        self._roles = role_cache
        self._decisions = decision_cache
        self._contexts = context_cache
        self._epoch = 0
        self._roles_version = 0
        self._role_generations: dict[str, int] = {}
        self._user_generations: dict[str, int] = {}

    def role_generation(self, role_id: str) -> tuple[int, int]:
        return self._epoch, self._role_generations.get(role_id, 0)

    def user_generation(self, user_id: str) -> tuple[int, int]:
        """Generation of a user's workspace context."""
        return self._epoch, self._user_generations.get(user_id, 0)

    def decision_generation(self, user_id: str) -> tuple[int, int, int]:
        """Generation of a user's decisions; any role change bumps it too."""
        return self._epoch, self._roles_version, self._user_generations.get(user_id, 0)

    def roles_changed(self, role_ids: Iterable[str]) -> None:
        """A role's permissions or parent changed.

        Any user may hold the role (directly or through a descendant), so
        every resolver decision is dropped.
        """
        role_ids = list(role_ids)
        for role_id in role_ids:
            self._role_generations[role_id] = self._role_generations.get(role_id, 0) + 1
            self._roles.delete(role_id)
        self._roles_version += 1
        self._decisions.clear()
        log.info("roles_invalidated", role_ids=role_ids)

    def user_changed(self, user_id: str) -> None:
        """A user's assignments or direct/denied lists changed."""
        self._bump_user(user_id)
        dropped = self._decisions.delete_prefix(f"{user_id}|")
        log.info("user_invalidated", user_id=user_id, decisions=dropped)

    def context_changed(self, user_id: str) -> None:
        """A user's workspace context changed; their decisions depend on it."""
        self._bump_user(user_id)
        self._contexts.delete(user_id)
        self._decisions.delete_prefix(f"{user_id}|")

    def workspace_users_changed(self, user_ids: Iterable[str]) -> None:
        user_ids = list(user_ids)
        for user_id in user_ids:
            self.context_changed(user_id)
        log.info("workspace_contexts_invalidated", users=len(user_ids))

    def clear_all(self) -> None:
        self._epoch += 1
        self._roles.clear()
        self._decisions.clear()
        self._contexts.clear()
        log.info("caches_cleared")

    def _bump_user(self, user_id: str) -> None:
        self._user_generations[user_id] = self._user_generations.get(user_id, 0) + 1
