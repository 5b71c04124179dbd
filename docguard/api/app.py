from __future__ import annotations

import logging
import uuid
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from docguard.api.schemas import DecideRequest, DecideResponse, DecisionOut, ErrorResponse, PoliciesResponse
from docguard.config import Settings
from docguard.core.errors import ContractViolation
from docguard.core.principal import Principal
from docguard.decision.evaluator import Evaluator
from docguard.decision.ledger import append_decision, decision_row
from docguard.policy.profiles import build_registry

log = logging.getLogger("docguard.api")

settings = Settings.from_env()
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.log_level)

evaluator = Evaluator(build_registry(settings.profile))


def _request_id() -> str:
    return uuid.uuid4().hex


def _error(request_id: str, status: int, code: str, message: str, *, details: Dict[str, Any] | None = None, hint: str | None = None):
    payload = ErrorResponse(
        request_id=request_id,
        error={
            "code": code,
            "message": message,
            "details": details or {},
        },
        hint=hint,
    ).model_dump()
    return JSONResponse(payload, status_code=status)


app = FastAPI(
    title="docguard API",
    version="0.1.0",
    description="Per-collection document access decisions (ALLOW / DENY).",
)


# -----------------------------
# Middleware: request_id
# -----------------------------
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or _request_id()
    request.state.request_id = rid
    resp = await call_next(request)
    resp.headers["x-request-id"] = rid
    return resp


# -----------------------------
# Exception handlers (structured errors)
# -----------------------------
@app.exception_handler(Exception)
async def handle_exception(request: Request, exc: Exception):
    rid = getattr(request.state, "request_id", _request_id())
    log.exception("Unhandled error rid=%s path=%s", rid, request.url.path)
    return _error(
        rid,
        500,
        "INTERNAL_ERROR",
        "Unexpected server error.",
        details={"type": exc.__class__.__name__},
        hint="Check server logs using the request_id header.",
    )


# -----------------------------
# Routes
# -----------------------------
@app.get("/healthz", response_model=dict)
def healthz(request: Request):
    return {
        "ok": True,
        "request_id": getattr(request.state, "request_id", ""),
        "profile": evaluator.registry.profile,
    }


@app.post(
    "/v1/decide",
    response_model=DecideResponse,
    responses={
        200: {
            "content": {
                "application/json": {
                    "example": {
                        "ok": True,
                        "request_id": "abc123",
                        "decision": {
                            "effect": "DENY",
                            "collection": "consents",
                            "operation": "update",
                            "policy": "consents",
                            "rule": "false",
                            "matched": True,
                        },
                    }
                }
            }
        },
        422: {
            "model": ErrorResponse,
            "content": {
                "application/json": {
                    "example": {
                        "ok": False,
                        "request_id": "abc123",
                        "error": {
                            "code": "CONTRACT_VIOLATION",
                            "message": "Unknown operation 'upsert'.",
                            "details": {"reason": "UNKNOWN_OPERATION"},
                        },
                        "hint": "Fix the calling integration; this is not an access decision.",
                    }
                }
            },
        },
        500: {"model": ErrorResponse},
    },
)
def decide_endpoint(req: DecideRequest, request: Request):
    rid = getattr(request.state, "request_id", _request_id())

    try:
        principal = Principal.from_dict(req.principal)
        decision = evaluator.evaluate(
            req.collection,
            req.operation,
            principal,
            req.existing,
            req.proposed,
            document_id=req.document_id,
            account=req.account,
        )
    except ContractViolation as e:
        log.warning("contract violation rid=%s code=%s", rid, e.code)
        details = dict(e.details)
        details["reason"] = e.code
        return _error(rid, 422, "CONTRACT_VIOLATION", e.message, details=details, hint="Fix the calling integration; this is not an access decision.")

    if settings.decision_log:
        append_decision(
            settings.decision_log,
            decision_row(decision, principal, request_id=rid, document_id=req.document_id),
        )

    resp = DecideResponse(request_id=rid, decision=DecisionOut(**decision.to_dict()))
    return JSONResponse(resp.model_dump(), status_code=200)


@app.get("/v1/policies", response_model=PoliciesResponse)
def policies_endpoint(request: Request):
    rid = getattr(request.state, "request_id", _request_id())
    resp = PoliciesResponse(request_id=rid, registry=evaluator.registry.describe())
    return JSONResponse(resp.model_dump(), status_code=200)
