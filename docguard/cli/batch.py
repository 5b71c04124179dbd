from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Mapping, Tuple

from docguard.core.errors import ContractViolation
from docguard.core.principal import Principal
from docguard.decision.evaluator import Decision, Evaluator
from docguard.decision.ledger import DecisionWriter


def _iter_lines(path: str) -> Iterable[Tuple[int, str]]:
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            yield lineno, line


def evaluate_request(evaluator: Evaluator, raw: Any) -> Tuple[Decision, Principal]:
    """
    Evaluate one request in wire form:
      {"collection": "...", "operation": "...", "principal": {...},
       "existing": {...}|null, "proposed": {...}|null, "document_id": "...",
       "account": {...}|null}
    """
    if not isinstance(raw, Mapping):
        raise ContractViolation("REQUEST_INVALID", "Request must be a JSON object.")

    principal = Principal.from_dict(raw.get("principal"))
    decision = evaluator.evaluate(
        raw.get("collection"),
        raw.get("operation"),
        principal,
        raw.get("existing"),
        raw.get("proposed"),
        document_id=raw.get("document_id"),
        account=raw.get("account"),
    )
    return decision, principal


def evaluate_requests_jsonl(evaluator: Evaluator, requests_path: str, decisions_path: str) -> Dict[str, Any]:
    """
    requests.jsonl -> decisions.jsonl.

    The output file is a per-run artifact and is overwritten; it is never the
    decision ledger (see cmd_batch).

    Malformed rows are written with an `error` object and counted as invalid;
    they never stop the run.
    """
    total = allowed = denied = invalid = 0

    with DecisionWriter(decisions_path, mode="w") as dw:
        for lineno, line in _iter_lines(requests_path):
            total += 1
            try:
                raw = json.loads(line)
            except json.JSONDecodeError as e:
                invalid += 1
                dw.write({"line": lineno, "error": {"code": "BAD_JSON", "message": str(e), "details": {}}})
                continue

            try:
                decision, principal = evaluate_request(evaluator, raw)
            except ContractViolation as e:
                invalid += 1
                dw.write({"line": lineno, "error": e.to_dict()})
                continue

            if decision.allowed:
                allowed += 1
            else:
                denied += 1

            dw.write_decision(
                decision,
                principal,
                request_id=raw.get("request_id"),
                document_id=raw.get("document_id"),
                ts=raw.get("ts") if isinstance(raw.get("ts"), str) else None,
                line=lineno,
            )

    return {
        "requests_path": requests_path,
        "decisions_path": decisions_path,
        "profile": evaluator.registry.profile,
        "total": total,
        "allowed": allowed,
        "denied": denied,
        "invalid": invalid,
    }
