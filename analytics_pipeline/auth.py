"""
Bearer token claims.

Tokens are issued by the identity provider and verified by the gateway in
front of the service, so claims are read here without checking the
signature.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from jose import JWTError, jwt

from analytics_pipeline.errors import ValidationError

ADMIN_ROLE = "admin"


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """The claims the service cares about."""

    sub: str
    roles: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles

    @classmethod
    def parse(cls, token: str) -> TokenClaims:
        """
        Read the claims of a JWT, with or without a ``Bearer`` prefix.

        Raises:
            ValidationError: The token is not a readable JWT
        """
        if token.lower().startswith("bearer "):
            token = token[len("bearer ") :]
        try:
            claims = jwt.get_unverified_claims(token.strip())
        except JWTError as e:
            raise ValidationError(f"invalid token: {e}") from e

        realm_access = claims.get("realm_access") or {}
        return cls(
            sub=str(claims.get("sub", "")),
            roles=tuple(realm_access.get("roles") or ()),
            groups=tuple(claims.get("groups") or ()),
            raw=claims,
        )


def bearer(token: str) -> str:
    """Authorization header value for ``token``, prefixing ``Bearer`` if absent."""
    if token.lower().startswith("bearer "):
        return token
    return f"Bearer {token}"
