"""
Composable access predicates.

The boolean helpers (`is_owner`, `is_admin`, ...) are pure and total: they
return False instead of raising on absent documents or anonymous principals.
The `Rule` wrappers below bind them to an AccessRequest so a collection policy
can be written as a table of named rules.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from docguard.core.principal import Principal
from docguard.core.request import AccessRequest, Document
from docguard.diff.keys import diff_keys


def is_authenticated(principal: Principal) -> bool:
    return bool(principal.authenticated)


def is_owner(principal: Principal, target_user_id: Any) -> bool:
    uid = principal.uid
    if uid is None or not isinstance(target_user_id, str) or not target_user_id:
        return False
    return uid == target_user_id


def is_admin(principal: Principal) -> bool:
    return principal.claim("admin") is True


def is_not_scheduled_for_deletion(existing: Optional[Document]) -> bool:
    if existing is None:
        return True
    return not existing.get("deletionScheduled")


def protected_fields_unchanged(
    existing: Optional[Document],
    proposed: Optional[Document],
    protected_keys: Iterable[str],
) -> bool:
    # Only updates are constrained: the first write may set anything.
    if existing is None:
        return True
    return not (diff_keys(existing, proposed) & frozenset(protected_keys))


def field_of(doc: Optional[Document], name: str) -> Any:
    if not isinstance(doc, Mapping):
        return None
    return doc.get(name)


@dataclass(frozen=True)
class Rule:
    """A named predicate over one AccessRequest."""
    name: str
    check: Callable[[AccessRequest], bool]

    def __call__(self, request: AccessRequest) -> bool:
        return bool(self.check(request))


def all_of(*rules: Rule) -> Rule:
    if not rules:
        raise ValueError("all_of() needs at least one rule")
    if len(rules) == 1:
        return rules[0]

    def _check(request: AccessRequest) -> bool:
        return all(r(request) for r in rules)

    return Rule(" & ".join(r.name for r in rules), _check)


ALLOW_ALL = Rule("true", lambda request: True)
DENY_ALL = Rule("false", lambda request: False)

authenticated_only = Rule("is_authenticated", lambda r: is_authenticated(r.principal))
admin_only = Rule("is_admin", lambda r: is_admin(r.principal))
not_pending_deletion = Rule(
    "is_not_scheduled_for_deletion",
    lambda r: is_not_scheduled_for_deletion(r.existing),
)


def owner_of_key(fallback_fields: Tuple[str, ...] = ("userId", "id")) -> Rule:
    """
    Owner check against the document key.

    Without a key from the caller, the owner id is read from the first present
    `fallback_fields` entry of the stored document, or of the proposed one when
    nothing is stored yet.
    """

    def _check(r: AccessRequest) -> bool:
        target = r.document_id
        if target is None:
            source = r.existing if r.existing is not None else r.proposed
            for name in fallback_fields:
                target = field_of(source, name)
                if target is not None:
                    break
        return is_owner(r.principal, target)

    return Rule("is_owner(key)", _check)


def owner_field_of(side: str, name: str = "userId") -> Rule:
    """Owner check against a field of the existing or proposed document."""
    if side not in ("existing", "proposed"):
        raise ValueError(f"side must be 'existing' or 'proposed', got {side!r}")

    def _check(r: AccessRequest) -> bool:
        return is_owner(r.principal, field_of(getattr(r, side), name))

    return Rule(f"{side}.{name} == principal.id", _check)


def fields_protected(keys: Iterable[str]) -> Rule:
    frozen = frozenset(keys)

    def _check(r: AccessRequest) -> bool:
        return protected_fields_unchanged(r.existing, r.proposed, frozen)

    return Rule(f"protected_fields_unchanged({','.join(sorted(frozen))})", _check)


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and EMAIL_RE.match(value) is not None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def in_range_if_present(doc: Optional[Document], name: str, low: float, high: float) -> bool:
    """Absent (or null) passes; anything present must be a number in [low, high]."""
    value = field_of(doc, name)
    if value is None:
        return True
    return _is_number(value) and low <= value <= high


not_force_logged_out = Rule(
    "!forceLogout",
    lambda r: r.principal.claim("forceLogout") is not True,
)
account_not_pending_deletion = Rule(
    "account.is_not_scheduled_for_deletion",
    lambda r: is_not_scheduled_for_deletion(r.account),
)
valid_email = Rule("proposed.email is email", lambda r: is_valid_email(field_of(r.proposed, "email")))
consents_accepted = Rule(
    "proposed.tosAccepted & proposed.ppAccepted",
    lambda r: field_of(r.proposed, "tosAccepted") is True and field_of(r.proposed, "ppAccepted") is True,
)


def numbers_within(bounds: Mapping[str, Tuple[float, float]], container: Optional[str] = None) -> Rule:
    """
    Optional numeric fields of the proposed document must stay in range.

    With `container`, the fields are read from that nested object instead
    (e.g. `profile.height`); an absent container passes.
    """
    frozen = dict(bounds)
    prefix = f"{container}." if container else ""

    def _check(r: AccessRequest) -> bool:
        doc = field_of(r.proposed, container) if container else r.proposed
        if doc is not None and not isinstance(doc, Mapping):
            return False
        return all(in_range_if_present(doc, k, lo, hi) for k, (lo, hi) in frozen.items())

    return Rule(f"in_range({','.join(prefix + k for k in sorted(frozen))})", _check)


def value_in(name: str, allowed: Iterable[str]) -> Rule:
    choices = frozenset(allowed)

    def _check(r: AccessRequest) -> bool:
        value = field_of(r.proposed, name)
        return isinstance(value, str) and value in choices

    return Rule(f"proposed.{name} in ({','.join(sorted(choices))})", _check)


def list_within(name: str, limit: int) -> Rule:
    """`name` is optional; when present it must be a list of at most `limit` items."""

    def _check(r: AccessRequest) -> bool:
        value = field_of(r.proposed, name)
        if value is None:
            return True
        return isinstance(value, list) and len(value) <= limit

    return Rule(f"len(proposed.{name}) <= {limit}", _check)


def unless_force_logged_out(rule: Rule) -> Rule:
    if rule is DENY_ALL:
        return rule
    return all_of(not_force_logged_out, rule)
