from __future__ import annotations

from typing import Any, Dict, Optional


class DocguardError(Exception):
    """Base class for every error raised by docguard."""


class ContractViolation(DocguardError):
    """
    Malformed call into the evaluator (unknown operation, missing principal, ...).

    This is an integration bug on the caller side, not a policy decision.
    """

    def __init__(self, code: str, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigurationError(DocguardError):
    """Invalid policy definition or unknown profile."""
