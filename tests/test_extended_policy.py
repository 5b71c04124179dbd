import pytest

from docguard.core.principal import Principal
from docguard.core.request import Effect, Operation
from docguard.decision.evaluator import Evaluator
from docguard.policy.profiles import EXERCISE_TYPES, build_registry

U1 = Principal.user("u1")
ADMIN = Principal.user("root", admin=True)
KICKED = Principal.user("u1", forceLogout=True)
KICKED_ADMIN = Principal.user("root", admin=True, forceLogout=True)


@pytest.fixture
def ev():
    return Evaluator(build_registry("extended"))


def _user_doc(uid="u1", **extra):
    doc = {
        "userId": uid,
        "email": f"{uid}@example.com",
        "tosAccepted": True,
        "ppAccepted": True,
        "deletionScheduled": False,
        "createdAt": "2025-01-01T00:00:00Z",
    }
    doc.update(extra)
    return doc


def _session(uid="u1", **extra):
    doc = {"sessionId": "s1", "userId": uid, "exerciseType": "squat", "status": "active"}
    doc.update(extra)
    return doc


def test_reference_profile_has_no_field_validation():
    ref = Evaluator(build_registry("reference"))
    assert ref.decide("users", "create", U1, None, _user_doc(email="nope"), document_id="u1") is Effect.ALLOW
    assert ref.decide("sessions", "create", U1, None, _session(exerciseType="yoga")) is Effect.ALLOW
    assert ref.decide("users", "read", KICKED, _user_doc(), document_id="u1") is Effect.ALLOW


def test_extended_allows_what_reference_allows_for_valid_documents(ev):
    assert ev.decide("users", "create", U1, None, _user_doc(), document_id="u1") is Effect.ALLOW
    assert ev.decide("users", "read", U1, _user_doc(), document_id="u1") is Effect.ALLOW
    assert ev.decide("sessions", "create", U1, None, _session()) is Effect.ALLOW
    assert ev.decide("sessions", "update", U1, _session(), _session(status="completed", repCount=10)) is Effect.ALLOW
    assert ev.decide("consents", "create", U1, None, {"userId": "u1", "consentType": "tos", "accepted": True}) is Effect.ALLOW


# -----------------------------
# users
# -----------------------------
@pytest.mark.parametrize("email", ["invalid-email", "a@b", "a b@c.d", "", None, 42])
def test_users_create_requires_valid_email(ev, email):
    assert ev.decide("users", "create", U1, None, _user_doc(email=email), document_id="u1") is Effect.DENY


@pytest.mark.parametrize("field", ["tosAccepted", "ppAccepted"])
@pytest.mark.parametrize("value", [False, None, "true", 1])
def test_users_create_requires_both_consents(ev, field, value):
    assert ev.decide("users", "create", U1, None, _user_doc(**{field: value}), document_id="u1") is Effect.DENY


def test_users_update_profile_within_range(ev):
    existing = _user_doc()
    ok = dict(existing, profile={"height": 170, "weight": 65.5, "gender": "male"})
    assert ev.decide("users", "update", U1, existing, ok, document_id="u1") is Effect.ALLOW
    edges = dict(existing, profile={"height": 100, "weight": 300})
    assert ev.decide("users", "update", U1, existing, edges, document_id="u1") is Effect.ALLOW


@pytest.mark.parametrize(
    "profile",
    [
        {"height": 300},
        {"height": 99},
        {"weight": 10},
        {"weight": 301},
        {"height": "170"},
        {"weight": True},
        "tall",
    ],
)
def test_users_update_profile_out_of_range_denied(ev, profile):
    existing = _user_doc()
    proposed = dict(existing, profile=profile)
    assert ev.decide("users", "update", U1, existing, proposed, document_id="u1") is Effect.DENY


# -----------------------------
# sessions
# -----------------------------
@pytest.mark.parametrize("exercise", sorted(EXERCISE_TYPES))
def test_sessions_create_known_exercise_allowed(ev, exercise):
    assert ev.decide("sessions", "create", U1, None, _session(exerciseType=exercise)) is Effect.ALLOW


@pytest.mark.parametrize("exercise", ["invalid_exercise", "", None, ["squat"]])
def test_sessions_create_unknown_exercise_denied(ev, exercise):
    assert ev.decide("sessions", "create", U1, None, _session(exerciseType=exercise)) is Effect.DENY


def test_sessions_pose_data_limit(ev):
    frames = [[0.1, 0.2]] * 10000
    assert ev.decide("sessions", "create", U1, None, _session(poseData=frames)) is Effect.ALLOW
    assert ev.decide("sessions", "create", U1, None, _session(poseData=frames + [[0.3]])) is Effect.DENY
    assert ev.decide("sessions", "create", U1, None, _session(poseData="frames")) is Effect.DENY


def test_sessions_writes_denied_while_account_pending_deletion(ev):
    doomed = _user_doc(deletionScheduled=True)
    assert ev.decide("sessions", "create", U1, None, _session(), account=doomed) is Effect.DENY
    assert ev.decide("sessions", "update", U1, _session(), _session(status="completed"), account=doomed) is Effect.DENY
    # reads stay open (data export)
    assert ev.decide("sessions", "read", U1, _session(), account=doomed) is Effect.ALLOW
    assert ev.decide("sessions", "create", U1, None, _session(), account=_user_doc()) is Effect.ALLOW


def test_sessions_update_guards(ev):
    existing = _session(repCount=3)
    assert ev.decide("sessions", "update", U1, existing, dict(existing, repCount=1000)) is Effect.ALLOW
    assert ev.decide("sessions", "update", U1, existing, dict(existing, repCount=1001)) is Effect.DENY
    assert ev.decide("sessions", "update", U1, existing, dict(existing, repCount=-1)) is Effect.DENY
    assert ev.decide("sessions", "update", U1, existing, dict(existing, sessionId="s2")) is Effect.DENY


def test_consents_create_requires_known_type(ev):
    doc = {"userId": "u1", "consentType": "invalid_type", "accepted": True}
    assert ev.decide("consents", "create", U1, None, doc) is Effect.DENY
    assert ev.decide("consents", "create", U1, None, dict(doc, consentType="pp")) is Effect.ALLOW


# -----------------------------
# forceLogout
# -----------------------------
def test_force_logout_denies_every_client_access(ev):
    assert ev.decide("users", "read", KICKED, _user_doc(), document_id="u1") is Effect.DENY
    assert ev.decide("sessions", "create", KICKED, None, _session()) is Effect.DENY
    assert ev.decide("sessions", "read", KICKED, _session()) is Effect.DENY
    assert ev.decide("dataDeletionRequests", "create", KICKED, None, {"userId": "u1"}) is Effect.DENY
    assert ev.decide("auditLogs", "read", KICKED_ADMIN, {"action": "x"}) is Effect.DENY


def test_force_logout_only_when_true(ev):
    p = Principal.user("u1", forceLogout="true")
    assert ev.decide("users", "read", p, _user_doc(), document_id="u1") is Effect.ALLOW
    p = Principal.user("u1", forceLogout=False)
    assert ev.decide("users", "read", p, _user_doc(), document_id="u1") is Effect.ALLOW


def test_force_logout_named_in_decision(ev):
    d = ev.evaluate("users", "read", KICKED, _user_doc(), document_id="u1")
    assert d.effect is Effect.DENY
    assert d.rule.startswith("!forceLogout & ")


def test_extended_deletes_stay_plain_deny(ev):
    assert ev.registry.describe()["collections"]["users"]["delete"] == "false"


# -----------------------------
# extra collections
# -----------------------------
def test_deletion_requests_owner_create_and_read_only(ev):
    req = {"userId": "u1", "status": "pending"}
    assert ev.decide("dataDeletionRequests", "create", U1, None, req) is Effect.ALLOW
    assert ev.decide("dataDeletionRequests", "create", U1, None, dict(req, userId="u2")) is Effect.DENY
    assert ev.decide("dataDeletionRequests", "read", U1, req) is Effect.ALLOW
    assert ev.decide("dataDeletionRequests", "read", U1, dict(req, userId="u2")) is Effect.DENY
    assert ev.decide("dataDeletionRequests", "update", U1, req, dict(req, status="completed")) is Effect.DENY
    assert ev.decide("dataDeletionRequests", "delete", U1, req) is Effect.DENY


@pytest.mark.parametrize("collection", ["bigquerySyncFailures", "securityIncidents"])
def test_admin_only_collections(ev, collection):
    doc = {"error": "test error"}
    for op in (Operation.CREATE, Operation.READ, Operation.UPDATE):
        assert ev.decide(collection, op, ADMIN, doc, doc) is Effect.ALLOW
        assert ev.decide(collection, op, U1, doc, doc) is Effect.DENY
    assert ev.decide(collection, "delete", ADMIN, doc) is Effect.DENY


def test_audit_logs_admin_read_only(ev):
    log_doc = {"action": "test_action"}
    assert ev.decide("auditLogs", "read", ADMIN, log_doc) is Effect.ALLOW
    assert ev.decide("auditLogs", "read", U1, log_doc) is Effect.DENY
    for op in ("create", "update", "delete"):
        assert ev.decide("auditLogs", op, ADMIN, log_doc, log_doc) is Effect.DENY


def test_still_default_deny(ev):
    assert ev.decide("undefinedCollection", "read", ADMIN, {"data": "x"}) is Effect.DENY
