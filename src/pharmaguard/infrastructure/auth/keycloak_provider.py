"""Keycloak OIDC provider - resolves bearer tokens to user ids."""

from dataclasses import dataclass, field

import structlog
from keycloak import KeycloakOpenID
from keycloak.exceptions import KeycloakError

log = structlog.get_logger(__name__)


@dataclass
class TokenIdentity:
    """Identity carried by an active access token.

    user_id is the token subject and must match an app_user id.
    """

    user_id: str
    email: str | None = None
    username: str | None = None
    realm_roles: list[str] = field(default_factory=list)


class KeycloakProvider:
    """Validates access tokens by introspection against Keycloak."""

    def __init__(
        self,
        server_url: str,
        realm: str,
        client_id: str,
        client_secret: str = "",
    ) -> None:
        self._keycloak = KeycloakOpenID(
            server_url=server_url,
            realm_name=realm,
            client_id=client_id,
            client_secret_key=client_secret,
        )

    def decode_token(self, token: str) -> TokenIdentity | None:
        """Introspect token; None when it is inactive or Keycloak rejects it."""
        try:
            token_info = self._keycloak.introspect(token)
        except KeycloakError as e:
            log.warning("token_introspection_failed", error=str(e))
            return None
        if not token_info.get("active") or not token_info.get("sub"):
            return None
        return TokenIdentity(
            user_id=token_info["sub"],
            email=token_info.get("email"),
            username=token_info.get("preferred_username"),
            realm_roles=token_info.get("realm_access", {}).get("roles", []),
        )
