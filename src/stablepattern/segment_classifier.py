from __future__ import annotations

import re
import time
from typing import Sequence

from .models import SegmentCategory, SegmentClassification, SegmentContext, Stability

ID_CONTEXT_KEYWORDS = ("user", "account", "org", "project", "id", "item")

TIMESTAMP_WINDOW_SECONDS = 10 * 365 * 24 * 60 * 60
FRAGMENT_CONFIDENCE_FACTOR = 0.9

_GUID_PATTERNS = (
    re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE),
    re.compile(r"^[0-9a-f]{32}$", re.IGNORECASE),
)

_PREFIXED_PATTERNS: tuple[tuple[re.Pattern[str], SegmentCategory], ...] = (
    (re.compile(r"^ws_[a-z0-9]+$", re.IGNORECASE), "workspace-id"),
    (re.compile(r"^user_\d+$", re.IGNORECASE), "user-id"),
    (re.compile(r"^comp_[a-z0-9]+$", re.IGNORECASE), "component-id"),
    (re.compile(r"^feat_[a-z0-9]+$", re.IGNORECASE), "feature-id"),
    (re.compile(r"^sess_[a-z0-9]+$", re.IGNORECASE), "session-id"),
    (re.compile(r"^build_\d+$", re.IGNORECASE), "build-id"),
)

_VERSION_PATTERN = re.compile(r"^v?\d+\.\d+\.\d+$", re.IGNORECASE)
_TIMESTAMP_PATTERN = re.compile(r"^\d{10,13}$")
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{20,}$")
_HASH_PATTERN = re.compile(r"^[0-9a-f]{6,64}$", re.IGNORECASE)
_DIGITS_PATTERN = re.compile(r"^\d+$")
_API_VERSION_PATTERN = re.compile(r"^v\d+$", re.IGNORECASE)

_ALPHANUMERIC_PATTERNS = (
    re.compile(r"^[A-Za-z]+\d+$"),
    re.compile(r"^\d+[A-Za-z]+$"),
)
_MIXED_RUN_PATTERN = re.compile(r"^(?=.*[A-Za-z])(?=.*\d)[A-Za-z0-9]{8,}$")

_BASE_CONFIDENCE: dict[str, float] = {
    "guid": 0.95,
    "timestamp": 0.9,
    "session-id": 0.9,
    "workspace-id": 0.85,
    "user-id": 0.85,
    "token": 0.85,
    "component-id": 0.8,
    "feature-id": 0.8,
    "build-id": 0.8,
    "hash": 0.8,
    "version": 0.7,
    "numeric-id": 0.6,
    "alphanumeric-id": 0.5,
    "unknown": 0.1,
}

_STABILITY: dict[str, Stability] = {
    "session-id": "highly-volatile",
    "timestamp": "highly-volatile",
    "token": "highly-volatile",
    "hash": "volatile",
    "build-id": "volatile",
    "numeric-id": "volatile",
    "user-id": "semi-stable",
    "workspace-id": "semi-stable",
    "alphanumeric-id": "semi-stable",
}

CATEGORY_REGEX: dict[str, str] = {
    "numeric-id": r"\d+",
    "guid": r"[0-9a-fA-F]{8}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{4}-?[0-9a-fA-F]{12}",
    "alphanumeric-id": r"[a-zA-Z0-9]+",
    "workspace-id": r"ws_[a-zA-Z0-9]+",
    "user-id": r"user_\d+",
    "component-id": r"comp_[a-zA-Z0-9]+",
    "feature-id": r"feat_[a-zA-Z0-9]+",
    "session-id": r"sess_[a-zA-Z0-9]+",
    "timestamp": r"\d{10,13}",
    "version": r"v?\d+\.\d+\.\d+",
    "build-id": r"build_\d+",
    "hash": r"[a-fA-F0-9]{6,64}",
    "token": r"[a-zA-Z0-9_-]{20,}",
    "unknown": r"[^/]+",
}

_EXPLANATIONS: dict[str, str] = {
    "numeric-id": "Numeric identifier that changes between resources",
    "guid": "Globally unique identifier (GUID)",
    "alphanumeric-id": "Alphanumeric identifier combining letters and numbers",
    "workspace-id": "Workspace identifier with ws_ prefix",
    "user-id": "User identifier with user_ prefix",
    "component-id": "Component identifier with comp_ prefix",
    "feature-id": "Feature identifier with feat_ prefix",
    "session-id": "Session identifier that changes per visit",
    "timestamp": "Unix timestamp that changes over time",
    "version": "Version number in semantic versioning format",
    "build-id": "Build identifier with build_ prefix",
    "hash": "Hexadecimal hash value",
    "token": "Long authentication or session token",
    "unknown": "Literal route segment kept as-is",
}


def classify_segment(
    token: str,
    context: SegmentContext | None = None,
    *,
    now: float | None = None,
) -> SegmentClassification:
    """Classify one URL token; ``unknown`` means the token stays literal."""

    ctx = context or SegmentContext()
    value = (token or "").strip()
    category = _match_category(value, ctx, time.time() if now is None else now)
    return SegmentClassification(
        category=category,
        confidence=_confidence(category, value, ctx.in_fragment),
        stability=_STABILITY.get(category, "stable"),
        regex_pattern=CATEGORY_REGEX[category],
        explanation=_EXPLANATIONS[category],
    )


def classify_tokens(
    tokens: Sequence[str],
    *,
    in_fragment: bool = False,
    now: float | None = None,
) -> list[SegmentClassification]:
    results: list[SegmentClassification] = []
    for position, token in enumerate(tokens):
        context = SegmentContext(
            preceding_token=tokens[position - 1] if position > 0 else None,
            following_token=tokens[position + 1] if position + 1 < len(tokens) else None,
            in_fragment=in_fragment,
        )
        results.append(classify_segment(token, context, now=now))
    return results


def has_id_context(context: SegmentContext) -> bool:
    for neighbor in (context.preceding_token, context.following_token):
        if not neighbor:
            continue
        lowered = neighbor.lower()
        if any(keyword in lowered for keyword in ID_CONTEXT_KEYWORDS):
            return True
    return False


def is_plausible_timestamp(value: str, now: float) -> bool:
    if not _TIMESTAMP_PATTERN.match(value):
        return False
    seconds = int(value) / 1000 if len(value) == 13 else int(value)
    return abs(seconds - now) <= TIMESTAMP_WINDOW_SECONDS


def _match_category(value: str, context: SegmentContext, now: float) -> SegmentCategory:
    if not value:
        return "unknown"

    if any(pattern.match(value) for pattern in _GUID_PATTERNS):
        return "guid"

    for pattern, category in _PREFIXED_PATTERNS:
        if pattern.match(value):
            return category

    if _VERSION_PATTERN.match(value):
        return "version"

    if is_plausible_timestamp(value, now):
        return "timestamp"

    has_letter = any(char.isalpha() for char in value)
    has_digit = any(char.isdigit() for char in value)

    # Long hyphenated slugs are letters only; a token must carry a digit too.
    if _TOKEN_PATTERN.match(value) and has_letter and has_digit:
        return "token"

    if _HASH_PATTERN.match(value) and has_letter and has_digit:
        return "hash"

    if _DIGITS_PATTERN.match(value):
        if len(value) >= 6:
            return "numeric-id"
        if len(value) >= 3 and has_id_context(context):
            return "numeric-id"
        return "unknown"

    if _API_VERSION_PATTERN.match(value):
        return "unknown"
    if len(value) >= 4 and any(pattern.match(value) for pattern in _ALPHANUMERIC_PATTERNS):
        return "alphanumeric-id"
    if _MIXED_RUN_PATTERN.match(value):
        return "alphanumeric-id"

    return "unknown"


def _confidence(category: SegmentCategory, value: str, in_fragment: bool) -> float:
    score = _BASE_CONFIDENCE[category]
    if category == "alphanumeric-id":
        if len(value) >= 8:
            score += 0.2
        if len(value) >= 16:
            score += 0.1
    # GUID shapes are unambiguous wherever they appear.
    if in_fragment and category != "guid":
        score *= FRAGMENT_CONFIDENCE_FACTOR
    return round(max(0.1, min(0.99, score)), 4)
