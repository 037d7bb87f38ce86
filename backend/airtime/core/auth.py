from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, FrozenSet, Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from airtime.billing.plans import parse_tier
from airtime.core.config import settings

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as reported by the identity provider.

    ``capability_check`` answers "does this user hold plan X"; it may be
    absent when the provider exposes no plan information.
    """

    id: str
    capability_check: Optional[Callable[[str], bool]] = field(default=None, compare=False)

    def has(self, plan: str) -> bool:
        if self.capability_check is None:
            return False
        return bool(self.capability_check(plan))


def _plans_from_claim(raw: Any) -> FrozenSet[str]:
    """Normalise a plan claim to a set of tier names.

    Accepts Clerk-style scoped values (``"u:pro"``, ``"u:pro,o:team"``),
    bare tier names, or a list of either. Organisation-scoped plans
    (``o:``) are ignored; entitlements here are per-user.
    """
    if raw is None:
        return frozenset()
    items: Iterable[Any]
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple, set, frozenset)):
        items = raw
    else:
        return frozenset()

    plans = set()
    for item in items:
        if not isinstance(item, str):
            continue
        value = item.strip()
        if ":" in value:
            scope, _, value = value.partition(":")
            if scope.strip().lower() != "u":
                continue
        tier = parse_tier(value)
        if tier is not None:
            plans.add(tier.value)
    return frozenset(plans)


def identity_from_claims(claims: dict[str, Any]) -> Optional[Identity]:
    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.strip():
        return None
    if settings.AUTH_PLAN_CLAIM not in claims:
        return Identity(id=subject)
    plans = _plans_from_claim(claims.get(settings.AUTH_PLAN_CLAIM))
    return Identity(id=subject, capability_check=lambda plan: plan.strip().lower() in plans)


def decode_session_token(token: str) -> Optional[Identity]:
    """Verify a session JWT and return its identity, or None when invalid."""
    key = settings.AUTH_JWT_KEY.strip()
    if not key:
        logger.warning("event=auth.decode.skipped reason=missing_key")
        return None
    options = {"verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=settings.jwt_algorithms,
            audience=settings.AUTH_JWT_AUDIENCE or None,
            issuer=settings.AUTH_JWT_ISSUER or None,
            options=options,
        )
    except JWTError as e:
        logger.info("event=auth.decode.rejected error=%s", e)
        return None
    return identity_from_claims(claims)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[Identity]:
    """FastAPI dependency. Returns None for anonymous callers; actions decide."""
    if credentials is None or not credentials.credentials:
        return None
    return decode_session_token(credentials.credentials)
