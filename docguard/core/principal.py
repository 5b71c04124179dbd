from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from docguard.core.errors import ContractViolation

ClaimValue = Union[bool, str]


@dataclass(frozen=True)
class Principal:
    """
    The identity attempting an operation.

    `id` is only meaningful when `authenticated` is true. Predicates go through
    `uid`, which yields None for an unauthenticated principal so ownership
    checks fail closed instead of raising.
    """
    authenticated: bool = False
    id: Optional[str] = None
    claims: Mapping[str, ClaimValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "claims", MappingProxyType(dict(self.claims or {})))

    @property
    def uid(self) -> Optional[str]:
        if not self.authenticated or not self.id:
            return None
        return self.id

    def claim(self, name: str) -> Optional[ClaimValue]:
        if not self.authenticated:
            return None
        return self.claims.get(name)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(authenticated=False)

    @classmethod
    def user(cls, uid: str, **claims: ClaimValue) -> "Principal":
        return cls(authenticated=True, id=uid, claims=claims)

    @classmethod
    def from_dict(cls, raw: Any) -> "Principal":
        """
        Parse the wire form used by the CLI and the HTTP API:
          {"authenticated": true, "id": "u1", "claims": {"admin": true}}
        `auth` is accepted as an alias of `authenticated`.
        """
        if raw is None:
            raise ContractViolation("PRINCIPAL_REQUIRED", "A principal is required for every decision.")
        if not isinstance(raw, Mapping):
            raise ContractViolation(
                "PRINCIPAL_INVALID",
                "Principal must be an object.",
                details={"type": type(raw).__name__},
            )

        authenticated = raw.get("authenticated", raw.get("auth", False))
        if not isinstance(authenticated, bool):
            raise ContractViolation("PRINCIPAL_INVALID", "principal.authenticated must be a boolean.")

        uid = raw.get("id")
        if uid is not None and not isinstance(uid, str):
            raise ContractViolation("PRINCIPAL_INVALID", "principal.id must be a string.")

        claims = raw.get("claims")
        if claims is None:
            claims = {}
        if not isinstance(claims, Mapping):
            raise ContractViolation("PRINCIPAL_INVALID", "principal.claims must be an object.")
        bad = sorted(k for k, v in claims.items() if not isinstance(v, (bool, str)))
        if bad:
            raise ContractViolation(
                "PRINCIPAL_INVALID",
                "principal.claims values must be booleans or strings.",
                details={"claims": bad},
            )

        return cls(authenticated=authenticated, id=uid, claims=claims)

    def to_dict(self) -> Dict[str, Any]:
        return {"authenticated": self.authenticated, "id": self.id, "claims": dict(self.claims)}
