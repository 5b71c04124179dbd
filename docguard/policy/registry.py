from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Tuple

from docguard.core.errors import ConfigurationError
from docguard.policy.collection import DEFAULT_POLICY, CollectionPolicy


class PolicyRegistry:
    """
    Immutable collection name -> CollectionPolicy map.

    Lookups are exact-match; anything unregistered resolves to the deny-all
    default policy. Replace a registry wholesale instead of editing it.
    """

    def __init__(self, policies: Iterable[CollectionPolicy], *, profile: str = "custom") -> None:
        table: Dict[str, CollectionPolicy] = {}
        for policy in policies:
            if not isinstance(policy, CollectionPolicy):
                raise ConfigurationError(f"expected CollectionPolicy, got {type(policy).__name__}")
            if policy.name in table:
                raise ConfigurationError(f"duplicate policy for collection {policy.name!r}")
            table[policy.name] = policy
        self._policies = MappingProxyType(table)
        self.profile = profile

    def resolve(self, collection: str) -> Tuple[CollectionPolicy, bool]:
        """
        Return (policy, matched). `matched` is False when the default answered.
        """
        policy = self._policies.get(collection)
        if policy is None:
            return DEFAULT_POLICY, False
        return policy, True

    def __contains__(self, collection: object) -> bool:
        return collection in self._policies

    def __iter__(self) -> Iterator[str]:
        return iter(self._policies)

    def __len__(self) -> int:
        return len(self._policies)

    def describe(self) -> Dict[str, Any]:
        return {
            "profile": self.profile,
            "collections": {name: p.describe() for name, p in sorted(self._policies.items())},
            "default": DEFAULT_POLICY.describe(),
        }
