from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from docguard.core.principal import Principal
from docguard.decision.evaluator import Decision


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def decision_row(
    decision: Decision,
    principal: Principal,
    *,
    request_id: Optional[str] = None,
    document_id: Optional[str] = None,
    ts: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "ts": ts or _utc_now_iso(),
        "request_id": request_id,
        "collection": decision.collection,
        "operation": decision.operation.value,
        "document_id": document_id,
        "principal_id": principal.uid,
        "effect": decision.effect.value,
        "policy": decision.policy,
        "rule": decision.rule,
        "matched": decision.matched,
    }


class DecisionWriter:
    """
    JSONL sink for decision rows, used for the ledger and for batch output.

        with DecisionWriter(path) as dw:
            dw.write_decision(decision, principal, request_id=rid)

    The default mode appends, which is the only mode the ledger is opened in.
    Batch output files are separate artifacts and are opened with mode="w".
    """

    def __init__(self, output_path: str, mode: str = "a") -> None:
        if mode not in ("a", "w"):
            raise ValueError(f"mode must be 'a' or 'w', got {mode!r}")
        self.output_path = output_path
        self.mode = mode
        self._fh: Optional[TextIO] = None

    def __enter__(self) -> "DecisionWriter":
        os.makedirs(os.path.dirname(self.output_path) or ".", exist_ok=True)
        self._fh = open(self.output_path, self.mode, encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._fh:
            self._fh.close()
            self._fh = None

    def write(self, row: Dict[str, Any]) -> None:
        if self._fh is None:
            raise RuntimeError("DecisionWriter is not opened. Use 'with DecisionWriter(...) as dw:'")
        self._fh.write(json.dumps(row, ensure_ascii=False) + "\n")

    def write_decision(self, decision: Decision, principal: Principal, **fields: Any) -> Dict[str, Any]:
        """Write one decision row; `fields` go to decision_row() except `line`, which is appended."""
        line = fields.pop("line", None)
        row = decision_row(decision, principal, **fields)
        if line is not None:
            row["line"] = line
        self.write(row)
        return row


def append_decision(path: str, row: Dict[str, Any]) -> None:
    with DecisionWriter(path) as dw:
        dw.write(row)
