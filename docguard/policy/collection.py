from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping

from docguard.core.errors import ConfigurationError
from docguard.core.request import Operation
from docguard.policy.predicates import DENY_ALL, Rule


@dataclass(frozen=True)
class CollectionPolicy:
    """
    Per-collection rule table.

    Operations without an entry are denied, exactly like an explicit `false`.
    The table is frozen on construction.
    """
    name: str
    rules: Mapping[Operation, Rule] = field(default_factory=dict)

    def __post_init__(self) -> None:
        table: Dict[Operation, Rule] = {}
        for op, rule in dict(self.rules).items():
            if not isinstance(op, Operation):
                raise ConfigurationError(f"{self.name}: rule key {op!r} is not an Operation")
            if not isinstance(rule, Rule):
                raise ConfigurationError(f"{self.name}.{op.value}: expected a Rule, got {type(rule).__name__}")
            table[op] = rule
        object.__setattr__(self, "rules", MappingProxyType(table))

    def rule_for(self, operation: Operation) -> Rule:
        return self.rules.get(operation, DENY_ALL)

    def describe(self) -> Dict[str, Any]:
        return {op.value: self.rule_for(op).name for op in Operation}


DEFAULT_POLICY = CollectionPolicy(name="<default>")
