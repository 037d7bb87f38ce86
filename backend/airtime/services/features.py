"""Tier inference and missing-artifact computation over a project's artifacts.

Both functions are pure: they read a presence mapping
(``{ArtifactKind: bool}``, see ``airtime.models.project.artifact_presence``)
and never touch the store.

The original tier is a heuristic. The tier active at processing time is not
persisted, so a pro user whose project has no pro-exclusive artifact yet is
indistinguishable from a free user here.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, List

from airtime.billing.plans import (
    GATED_ARTIFACTS,
    TIER_EXCLUSIVE,
    TIERS_HIGH_TO_LOW,
    ArtifactKind,
    Tier,
    features_for,
)


def _present(presence: Mapping, kind: ArtifactKind) -> bool:
    # Accept keys as ArtifactKind or wire names.
    return bool(presence.get(kind, presence.get(kind.value, False)))


def infer_original_tier(presence: Any) -> Tier:
    """Infer the tier that was active when the project was last processed."""
    if not isinstance(presence, Mapping):
        return Tier.free
    for tier in TIERS_HIGH_TO_LOW:
        if tier is Tier.free:
            break
        if any(_present(presence, kind) for kind in TIER_EXCLUSIVE[tier]):
            return tier
    return Tier.free


def missing_features(tier: Tier, presence: Any) -> List[ArtifactKind]:
    """Gated artifacts entitled by ``tier`` but absent, in catalog order.

    ``summary`` and ``transcription`` are never returned.
    """
    if not isinstance(presence, Mapping):
        presence = {}
    return [
        kind
        for kind in features_for(tier)
        if kind in GATED_ARTIFACTS and not _present(presence, kind)
    ]
