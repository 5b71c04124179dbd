from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from docguard.core.errors import ContractViolation
from docguard.core.principal import Principal
from docguard.core.request import AccessRequest, Document, Effect, Operation
from docguard.policy.registry import PolicyRegistry

log = logging.getLogger("docguard.evaluator")

RULE_ERROR = "rule_error"


@dataclass(frozen=True)
class Decision:
    effect: Effect
    collection: str
    operation: Operation
    policy: str
    rule: str
    matched: bool

    @property
    def allowed(self) -> bool:
        return self.effect is Effect.ALLOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "effect": self.effect.value,
            "collection": self.collection,
            "operation": self.operation.value,
            "policy": self.policy,
            "rule": self.rule,
            "matched": self.matched,
        }


def _check_document(name: str, doc: Any) -> Optional[Document]:
    if doc is None or isinstance(doc, Mapping):
        return doc
    raise ContractViolation(
        "DOCUMENT_INVALID",
        f"{name} must be an object or null.",
        details={"type": type(doc).__name__},
    )


class Evaluator:
    """
    Entry point: resolve the collection policy and run its rule.

    Decisions are pure functions of the arguments and the registry that is
    current when the call starts. `publish()` swaps the registry as a whole.
    """

    def __init__(self, registry: PolicyRegistry) -> None:
        if not isinstance(registry, PolicyRegistry):
            raise TypeError(f"expected PolicyRegistry, got {type(registry).__name__}")
        self._registry = registry
        self._publish_lock = threading.Lock()

    @property
    def registry(self) -> PolicyRegistry:
        return self._registry

    def publish(self, registry: PolicyRegistry) -> PolicyRegistry:
        """Replace the active registry; returns the previous one."""
        if not isinstance(registry, PolicyRegistry):
            raise TypeError(f"expected PolicyRegistry, got {type(registry).__name__}")
        with self._publish_lock:
            previous, self._registry = self._registry, registry
        log.info("published registry profile=%s collections=%d", registry.profile, len(registry))
        return previous

    def evaluate(
        self,
        collection: str,
        operation: Any,
        principal: Optional[Principal],
        existing: Optional[Document] = None,
        proposed: Optional[Document] = None,
        *,
        document_id: Optional[str] = None,
        account: Optional[Document] = None,
    ) -> Decision:
        op = Operation.parse(operation)
        if principal is None:
            raise ContractViolation("PRINCIPAL_REQUIRED", "A principal is required for every decision.")
        if not isinstance(principal, Principal):
            raise ContractViolation(
                "PRINCIPAL_INVALID",
                "principal must be a Principal.",
                details={"type": type(principal).__name__},
            )
        if not isinstance(collection, str):
            raise ContractViolation(
                "COLLECTION_INVALID",
                "collection must be a string.",
                details={"type": type(collection).__name__},
            )
        if document_id is not None and not isinstance(document_id, str):
            raise ContractViolation("DOCUMENT_ID_INVALID", "document_id must be a string or null.")

        request = AccessRequest(
            collection=collection,
            operation=op,
            principal=principal,
            existing=_check_document("existing", existing),
            proposed=_check_document("proposed", proposed),
            document_id=document_id,
            account=_check_document("account", account),
        )

        registry = self._registry
        policy, matched = registry.resolve(collection)
        rule = policy.rule_for(op)

        rule_name = rule.name
        try:
            ok = rule(request)
        except Exception:
            # fail closed; a crashing rule is a configuration bug, not an ALLOW
            log.exception("rule raised collection=%s operation=%s rule=%s", collection, op.value, rule.name)
            ok = False
            rule_name = RULE_ERROR

        decision = Decision(
            effect=Effect.ALLOW if ok else Effect.DENY,
            collection=collection,
            operation=op,
            policy=policy.name,
            rule=rule_name,
            matched=matched,
        )
        log.debug(
            "decision %s collection=%s operation=%s principal=%s rule=%s",
            decision.effect.value, collection, op.value, principal.uid, rule_name,
        )
        return decision

    def decide(
        self,
        collection: str,
        operation: Any,
        principal: Optional[Principal],
        existing: Optional[Document] = None,
        proposed: Optional[Document] = None,
        *,
        document_id: Optional[str] = None,
        account: Optional[Document] = None,
    ) -> Effect:
        return self.evaluate(
            collection, operation, principal, existing, proposed, document_id=document_id, account=account
        ).effect
