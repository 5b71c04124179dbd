from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional

from docguard.cli.batch import evaluate_request, evaluate_requests_jsonl
from docguard.config import Settings
from docguard.core.errors import ConfigurationError, ContractViolation
from docguard.decision.evaluator import Evaluator
from docguard.decision.ledger import append_decision, decision_row
from docguard.policy.profiles import PROFILES, build_registry

EXIT_ALLOW = 0
EXIT_DENY = 1
EXIT_CONTRACT = 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="docguard", description="Document access policy CLI")
    p.add_argument(
        "--profile",
        default=None,
        choices=sorted(PROFILES),
        help="Policy profile (defaults to DOCGUARD_PROFILE or 'reference')",
    )
    sub = p.add_subparsers(dest="command", required=True)

    decide = sub.add_parser("decide", help="Evaluate one JSON request")
    decide.add_argument("--request", required=True, help="Request JSON file ('-' for stdin)")

    batch = sub.add_parser("batch", help="requests.jsonl -> decisions.jsonl")
    batch.add_argument("--requests", required=True, help="requests.jsonl path")
    batch.add_argument("--decisions", required=True, help="decisions.jsonl path")

    sub.add_parser("policies", help="Print the active policy table")

    return p


def _read_request(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def cmd_decide(args, evaluator: Evaluator, settings: Settings) -> int:
    try:
        raw = json.loads(_read_request(args.request))
    except json.JSONDecodeError as e:
        print(json.dumps({"ok": False, "error": {"code": "BAD_JSON", "message": str(e), "details": {}}}, indent=2))
        return EXIT_CONTRACT

    try:
        decision, principal = evaluate_request(evaluator, raw)
    except ContractViolation as e:
        print(json.dumps({"ok": False, "error": e.to_dict()}, indent=2))
        return EXIT_CONTRACT

    if settings.decision_log:
        append_decision(settings.decision_log, decision_row(decision, principal, document_id=raw.get("document_id")))

    print(json.dumps({"ok": True, "decision": decision.to_dict()}, indent=2))
    return EXIT_ALLOW if decision.allowed else EXIT_DENY


def cmd_batch(args, evaluator: Evaluator, settings: Settings) -> int:
    if not os.path.exists(args.requests):
        raise SystemExit(f"batch failed: requests file not found: {args.requests}")
    # batch output is truncated on every run; the ledger is append-only
    if settings.decision_log and os.path.abspath(args.decisions) == os.path.abspath(settings.decision_log):
        raise SystemExit(f"batch failed: --decisions must not be the decision ledger: {args.decisions}")
    summary = evaluate_requests_jsonl(evaluator, args.requests, args.decisions)
    print(json.dumps(summary, indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        raise SystemExit(f"configuration error: {e}")

    logging.basicConfig(level=settings.log_level, stream=sys.stderr)
    evaluator = Evaluator(build_registry(args.profile or settings.profile))

    if args.command == "decide":
        return cmd_decide(args, evaluator, settings)
    if args.command == "batch":
        return cmd_batch(args, evaluator, settings)
    if args.command == "policies":
        print(json.dumps(evaluator.registry.describe(), indent=2))
        return 0

    raise SystemExit(f"Unknown command: {args.command}")


if __name__ == "__main__":
    raise SystemExit(main())
