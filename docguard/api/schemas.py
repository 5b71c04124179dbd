from __future__ import annotations

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict


class DecideRequest(BaseModel):
    collection: str = Field(..., description="Target collection name")
    # Kept as a plain string so unknown values surface as CONTRACT_VIOLATION, not a generic 422.
    operation: str = Field(..., description="create | read | update | delete")
    # Parsed by Principal.from_dict, the same strict parser the CLI uses; no bool/str coercion.
    principal: Optional[Any] = Field(
        None,
        description='Caller identity (required): {"authenticated": bool, "id": str, "claims": {str: bool|str}}',
    )
    existing: Optional[Dict[str, Any]] = Field(None, description="Stored document, absent on create")
    proposed: Optional[Dict[str, Any]] = Field(None, description="Incoming document, absent on read/delete")
    document_id: Optional[str] = Field(None, description="Key of the target document")
    account: Optional[Dict[str, Any]] = Field(None, description="Owner's users document, when the caller has it")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "collection": "users",
                "operation": "update",
                "principal": {"authenticated": True, "id": "u1", "claims": {}},
                "existing": {"id": "u1", "name": "A"},
                "proposed": {"id": "u1", "name": "B"},
                "document_id": "u1",
            }
        }
    )


class DecisionOut(BaseModel):
    effect: str
    collection: str
    operation: str
    policy: str
    rule: str
    matched: bool


class DecideResponse(BaseModel):
    ok: bool = True
    request_id: str
    decision: DecisionOut


class PoliciesResponse(BaseModel):
    ok: bool = True
    request_id: str
    registry: Dict[str, Any]


class ErrorResponse(BaseModel):
    ok: bool = False
    request_id: str
    error: Dict[str, Any]
    hint: Optional[str] = None
