"""
Plan tiers and the artifacts each tier entitles a project to.

Single source of truth for tier ordering, the tier-feature catalog and the
upload constraints shared by the upload and project actions.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class Tier(str, Enum):
    """Subscription tier, ordered free < pro < ultra."""
    free = "free"
    pro = "pro"
    ultra = "ultra"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)

    def __lt__(self, other):  # type: ignore[override]
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):  # type: ignore[override]
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):  # type: ignore[override]
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):  # type: ignore[override]
        if not isinstance(other, Tier):
            return NotImplemented
        return self.rank >= other.rank


class ArtifactKind(str, Enum):
    """AI-generated artifact kinds. Values are the wire names."""
    summary = "summary"
    transcription = "transcription"
    social_posts = "socialPosts"
    titles = "titles"
    hashtags = "hashtags"
    key_moments = "keyMoments"
    youtube_timestamps = "youtubeTimestamps"


_TIER_ORDER: Tuple[Tier, ...] = (Tier.free, Tier.pro, Tier.ultra)

# Highest first: entitlement checks must prefer the highest tier a user holds.
TIERS_HIGH_TO_LOW: Tuple[Tier, ...] = tuple(reversed(_TIER_ORDER))

UNIVERSAL_ARTIFACTS: Tuple[ArtifactKind, ...] = (ArtifactKind.summary, ArtifactKind.transcription)

_FREE = UNIVERSAL_ARTIFACTS
_PRO = _FREE + (ArtifactKind.social_posts, ArtifactKind.titles, ArtifactKind.hashtags)
_ULTRA = _PRO + (ArtifactKind.key_moments, ArtifactKind.youtube_timestamps)

TIER_FEATURES: Mapping[Tier, Tuple[ArtifactKind, ...]] = MappingProxyType({
    Tier.free: _FREE,
    Tier.pro: _PRO,
    Tier.ultra: _ULTRA,
})

# Tier-gated kinds in catalog order; these are the only dispatchable jobs.
GATED_ARTIFACTS: Tuple[ArtifactKind, ...] = tuple(k for k in _ULTRA if k not in UNIVERSAL_ARTIFACTS)

# Artifacts that only appear from a given tier upward (used for tier inference).
TIER_EXCLUSIVE: Mapping[Tier, Tuple[ArtifactKind, ...]] = MappingProxyType({
    Tier.free: _FREE,
    Tier.pro: tuple(k for k in _PRO if k not in _FREE),
    Tier.ultra: tuple(k for k in _ULTRA if k not in _PRO),
})

# Upload constraints
ALLOWED_AUDIO_TYPES: Tuple[str, ...] = (
    "audio/mpeg",
    "audio/mp3",
    "audio/mp4",
    "audio/m4a",
    "audio/x-m4a",
    "audio/wav",
    "audio/x-wav",
    "audio/wave",
    "audio/aac",
    "audio/aacp",
    "audio/ogg",
    "audio/opus",
    "audio/webm",
    "audio/flac",
    "audio/x-flac",
    "audio/3gpp",
    "audio/3gpp2",
)


def parse_tier(value: object) -> Optional[Tier]:
    """Return the Tier named by ``value`` (case-insensitive) or None."""
    if isinstance(value, Tier):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Tier(value.strip().lower())
    except ValueError:
        return None


def parse_artifact(value: object) -> Optional[ArtifactKind]:
    """Return the ArtifactKind for a wire name (``"keyMoments"``) or None."""
    if isinstance(value, ArtifactKind):
        return value
    if not isinstance(value, str):
        return None
    try:
        return ArtifactKind(value.strip())
    except ValueError:
        return None


def features_for(tier: Tier) -> Tuple[ArtifactKind, ...]:
    return TIER_FEATURES[tier]


def is_gated(kind: ArtifactKind) -> bool:
    return kind in GATED_ARTIFACTS


def minimum_tier_for(kind: ArtifactKind) -> Tier:
    """Lowest tier whose catalog contains ``kind``."""
    for tier in _TIER_ORDER:
        if kind in TIER_FEATURES[tier]:
            return tier
    raise KeyError(kind)


def is_entitled(tier: Tier, kind: ArtifactKind) -> bool:
    return kind in TIER_FEATURES[tier]


def assert_catalog_monotonic(catalog: Mapping[Tier, Tuple[ArtifactKind, ...]] = TIER_FEATURES) -> None:
    """Raise ValueError if a higher tier drops an artifact a lower tier has."""
    for lower, higher in zip(_TIER_ORDER, _TIER_ORDER[1:]):
        lower_set = set(catalog[lower])
        higher_set = set(catalog[higher])
        dropped = lower_set - higher_set
        if dropped:
            names = ", ".join(sorted(k.value for k in dropped))
            raise ValueError(f"Tier catalog regression: {higher.value} drops {names} from {lower.value}")


assert_catalog_monotonic()


__all__ = [
    "Tier",
    "ArtifactKind",
    "TIERS_HIGH_TO_LOW",
    "UNIVERSAL_ARTIFACTS",
    "TIER_FEATURES",
    "GATED_ARTIFACTS",
    "TIER_EXCLUSIVE",
    "ALLOWED_AUDIO_TYPES",
    "parse_tier",
    "parse_artifact",
    "features_for",
    "is_gated",
    "minimum_tier_for",
    "is_entitled",
    "assert_catalog_monotonic",
]
