"""Resolve the subscription tier of the calling identity."""
from __future__ import annotations

import logging
from typing import Optional

from airtime.billing.plans import TIERS_HIGH_TO_LOW, Tier
from airtime.core.auth import Identity
from airtime.core.errors import AuthenticationError, EntitlementUnavailableError

log = logging.getLogger(__name__)


def require_identity(identity: Optional[Identity], message: Optional[str] = None) -> Identity:
    if identity is None or not identity.id:
        raise AuthenticationError(message)
    return identity


def resolve_tier(identity: Optional[Identity]) -> Tier:
    """Return the highest tier the identity holds.

    Tiers are checked high to low so a user holding several resolves to the
    best one. No identity is an authentication failure, never ``free``.

    A capability check that errors also fails closed, but raises
    ``EntitlementUnavailableError`` (``entitlement_unavailable``, 503) rather
    than ``unauthenticated``: the caller is signed in and the plan lookup is
    what failed, so the client should retry instead of re-authenticating.
    """
    identity = require_identity(identity)
    if identity.capability_check is None:
        log.info("event=entitlements.resolve.no_capability_check user_id=%s tier=free", identity.id)
        return Tier.free

    for tier in TIERS_HIGH_TO_LOW:
        if tier is Tier.free:
            break
        try:
            held = identity.has(tier.value)
        except Exception as e:
            log.error("event=entitlements.resolve.check_failed user_id=%s tier=%s error=%s", identity.id, tier.value, e)
            raise EntitlementUnavailableError() from e
        if held:
            return tier
    return Tier.free
