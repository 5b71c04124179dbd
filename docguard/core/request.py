from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from docguard.core.errors import ContractViolation
from docguard.core.principal import Principal

Document = Mapping[str, Any]


class Operation(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: Any) -> "Operation":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ContractViolation(
            "UNKNOWN_OPERATION",
            f"Unknown operation {value!r}.",
            details={"allowed": [op.value for op in cls]},
        )


class Effect(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"


@dataclass(frozen=True)
class AccessRequest:
    """
    Everything a rule may look at for one decision.

    `existing` is absent on create, `proposed` is absent on read and delete.
    `document_id` is the key of the target document when the caller knows it.
    `account` is the owner's stored users document, for rules that look past
    the target document; None when the caller did not load it.
    """
    collection: str
    operation: Operation
    principal: Principal
    existing: Optional[Document] = None
    proposed: Optional[Document] = None
    document_id: Optional[str] = None
    account: Optional[Document] = None
