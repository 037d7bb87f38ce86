from jose import jwt

from airtime.core.auth import _plans_from_claim, decode_session_token, identity_from_claims
from airtime.core.config import settings


def test_plans_from_claim_formats():
    assert _plans_from_claim("u:pro") == {"pro"}
    assert _plans_from_claim("u:ultra,o:team") == {"ultra"}
    assert _plans_from_claim(["pro", "u:ultra", 3]) == {"pro", "ultra"}
    assert _plans_from_claim("o:pro") == frozenset()
    assert _plans_from_claim(None) == frozenset()
    assert _plans_from_claim({"pro": True}) == frozenset()


def test_identity_without_plan_claim_has_no_capability_check():
    identity = identity_from_claims({"sub": "user_1"})
    assert identity.id == "user_1"
    assert identity.capability_check is None


def test_identity_with_plan_claim():
    identity = identity_from_claims({"sub": "user_1", settings.AUTH_PLAN_CLAIM: "u:pro"})
    assert identity.has("pro")
    assert not identity.has("ultra")


def test_identity_requires_subject():
    assert identity_from_claims({"sub": ""}) is None
    assert identity_from_claims({}) is None


def test_decode_session_token_roundtrip():
    token = jwt.encode({"sub": "user_9", "pla": "u:ultra"}, settings.AUTH_JWT_KEY, algorithm="HS256")
    identity = decode_session_token(token)
    assert identity is not None
    assert identity.id == "user_9"
    assert identity.has("ultra")


def test_decode_rejects_bad_signature():
    token = jwt.encode({"sub": "user_9"}, "wrong-key", algorithm="HS256")
    assert decode_session_token(token) is None
    assert decode_session_token("not-a-jwt") is None


def test_decode_without_key_is_anonymous(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_KEY", "")
    token = jwt.encode({"sub": "user_9"}, "whatever", algorithm="HS256")
    assert decode_session_token(token) is None
