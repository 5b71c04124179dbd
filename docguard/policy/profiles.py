from __future__ import annotations

from typing import Callable, Dict, List

from docguard.core.errors import ConfigurationError
from docguard.core.request import Operation
from docguard.policy.collection import CollectionPolicy
from docguard.policy.predicates import (
    DENY_ALL,
    account_not_pending_deletion,
    admin_only,
    all_of,
    authenticated_only,
    consents_accepted,
    fields_protected,
    list_within,
    not_pending_deletion,
    numbers_within,
    owner_field_of,
    owner_of_key,
    unless_force_logged_out,
    valid_email,
    value_in,
)
from docguard.policy.registry import PolicyRegistry

C, R, U, D = Operation.CREATE, Operation.READ, Operation.UPDATE, Operation.DELETE

# Only privileged backend functions may change these on an existing user.
USER_PROTECTED_FIELDS = frozenset({"tosAccepted", "ppAccepted", "deletionScheduled", "createdAt"})


def reference_policies() -> List[CollectionPolicy]:
    """
    users / sessions / consents, as shipped with the mobile app.

    Deletes are always denied: account and data removal runs in backend jobs
    that do not go through this engine. Only users.update is gated on the
    pending-deletion flag.
    """
    owner = owner_of_key()
    session_creator = all_of(authenticated_only, owner_field_of("proposed"))
    session_owner = all_of(authenticated_only, owner_field_of("existing"))

    return [
        CollectionPolicy(
            name="users",
            rules={
                C: owner,
                R: owner,
                U: all_of(owner, fields_protected(USER_PROTECTED_FIELDS), not_pending_deletion),
                D: DENY_ALL,
            },
        ),
        CollectionPolicy(
            name="sessions",
            rules={C: session_creator, R: session_owner, U: session_owner, D: DENY_ALL},
        ),
        # append-only consent audit trail
        CollectionPolicy(
            name="consents",
            rules={C: session_creator, R: session_owner, U: DENY_ALL, D: DENY_ALL},
        ),
    ]


# Values the mobile client sends; "sidelateral" is the older name of "sideraise".
EXERCISE_TYPES = frozenset({"squat", "armcurl", "sideraise", "sidelateral", "shoulderpress", "pushup"})
CONSENT_TYPES = frozenset({"tos", "pp"})
PROFILE_BOUNDS = {"height": (100, 250), "weight": (30, 300)}
MAX_POSE_FRAMES = 10000
MAX_REP_COUNT = 1000
SESSION_PROTECTED_FIELDS = frozenset({"sessionId", "userId", "createdAt"})


def extended_policies() -> List[CollectionPolicy]:
    """
    Reference policy with field validation, plus deletion requests and the
    admin-only collections.

    Every rule that can allow is also gated on the `forceLogout` claim.
    Session writes consult the owner's users document passed as `account`;
    without it the pending-deletion check passes.
    """
    owner = owner_of_key()
    owner_create = all_of(authenticated_only, owner_field_of("proposed"))
    owner_read = all_of(authenticated_only, owner_field_of("existing"))

    policies = [
        CollectionPolicy(
            name="users",
            rules={
                C: all_of(owner, valid_email, consents_accepted),
                R: owner,
                U: all_of(
                    owner,
                    fields_protected(USER_PROTECTED_FIELDS),
                    not_pending_deletion,
                    numbers_within(PROFILE_BOUNDS, container="profile"),
                ),
                D: DENY_ALL,
            },
        ),
        CollectionPolicy(
            name="sessions",
            rules={
                C: all_of(
                    owner_create,
                    account_not_pending_deletion,
                    value_in("exerciseType", EXERCISE_TYPES),
                    list_within("poseData", MAX_POSE_FRAMES),
                ),
                R: owner_read,
                U: all_of(
                    owner_read,
                    account_not_pending_deletion,
                    fields_protected(SESSION_PROTECTED_FIELDS),
                    numbers_within({"repCount": (0, MAX_REP_COUNT)}),
                    list_within("poseData", MAX_POSE_FRAMES),
                ),
                D: DENY_ALL,
            },
        ),
        CollectionPolicy(
            name="consents",
            rules={
                C: all_of(owner_create, value_in("consentType", CONSENT_TYPES)),
                R: owner_read,
                U: DENY_ALL,
                D: DENY_ALL,
            },
        ),
        CollectionPolicy(
            name="dataDeletionRequests",
            rules={C: owner_create, R: owner_read, U: DENY_ALL, D: DENY_ALL},
        ),
        CollectionPolicy(name="auditLogs", rules={R: admin_only}),
        CollectionPolicy(
            name="bigquerySyncFailures",
            rules={C: admin_only, R: admin_only, U: admin_only},
        ),
        CollectionPolicy(
            name="securityIncidents",
            rules={C: admin_only, R: admin_only, U: admin_only},
        ),
    ]
    return [
        CollectionPolicy(
            name=p.name,
            rules={op: unless_force_logged_out(rule) for op, rule in p.rules.items()},
        )
        for p in policies
    ]


PROFILES: Dict[str, Callable[[], List[CollectionPolicy]]] = {
    "reference": reference_policies,
    "extended": extended_policies,
}


def build_registry(profile: str = "reference") -> PolicyRegistry:
    key = (profile or "reference").strip().lower()
    if key not in PROFILES:
        raise ConfigurationError(f"Unknown profile '{profile}'. Allowed: {sorted(PROFILES)}")
    return PolicyRegistry(PROFILES[key](), profile=key)
