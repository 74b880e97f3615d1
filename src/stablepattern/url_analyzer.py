from __future__ import annotations

import logging
import re
from urllib.parse import SplitResult, urlsplit

from .config import AGGRESSIVENESS_LEVELS
from .models import (
    Aggressiveness,
    Environment,
    Finding,
    GeneralizedURLPattern,
    MatchStrategy,
    PatternAlternative,
    Segment,
    SegmentClassification,
    SegmentPair,
    URLStructure,
    URLType,
    build_finding,
)
from .segment_classifier import CATEGORY_REGEX, classify_tokens

logger = logging.getLogger("stablepattern.url")

DEFAULT_PORTS = {"http": 80, "https": 443}
OVERSIMPLIFIED_THRESHOLD = 50

_WILDCARD_RUN = re.compile(r"\*+")
_DIGIT_RUN = re.compile(r"\d{3,}")
_ASSET_SUFFIX = re.compile(r"\.(js|mjs|css|png|jpe?g|gif|svg|webp|ico|woff2?|ttf|map)$", re.IGNORECASE)
_DYNAMIC_HINT = re.compile(r"\d{3,}|[a-f0-9]{8,}|uuid|guid", re.IGNORECASE)

_EXAMPLE_VALUES: dict[str, tuple[str, ...]] = {
    "numeric-id": ("12345", "67890", "11111"),
    "guid": (
        "12345678-1234-5678-9abc-123456789012",
        "abcdef01-2345-6789-abcd-ef0123456789",
        "98765432-abcd-ef01-2345-6789abcdef01",
    ),
    "alphanumeric-id": ("abc123", "xyz789", "def456"),
    "workspace-id": ("ws_abc123", "ws_xyz789", "ws_def456"),
    "user-id": ("user_123", "user_456", "user_789"),
    "component-id": ("comp_a1", "comp_b2", "comp_c3"),
    "feature-id": ("feat_a1", "feat_b2", "feat_c3"),
    "session-id": ("sess_a1b2", "sess_c3d4", "sess_e5f6"),
    "timestamp": ("1623456789", "1623456790", "1623456791"),
    "version": ("v1.2.3", "v2.0.1", "v1.5.0"),
    "build-id": ("build_101", "build_102", "build_103"),
    "hash": ("a1b2c3d4", "e5f6a7b8", "0c9d8e7f"),
    "token": (
        "a1B2c3D4e5F6g7H8i9J0kL",
        "Z9y8X7w6V5u4T3s2R1q0pO",
        "m1N2b3V4c5X6z7L8k9J0hG",
    ),
}
_EXAMPLE_HASH_ROUTES = ("users/456/profile", "settings/account", "dashboard/analytics")

_ALTERNATIVE_DESCRIPTIONS: dict[str, str] = {
    "conservative": "Strict pattern that keeps hash routes and the full host",
    "moderate": "Balanced pattern with wildcards for identifiers and hash routes",
    "aggressive": "Flexible pattern that may collapse deep hosts to a contains match",
}


def parse_url(url: str) -> URLStructure | None:
    text = (url or "").strip()
    if not text:
        return None
    if "*" in text:
        logger.debug("Rejected URL containing a literal '*': %s", text)
        return None
    try:
        split = urlsplit(text)
        port = split.port
    except ValueError:
        logger.debug("Rejected unparsable URL: %s", text)
        return None

    host = split.hostname or ""
    if not split.scheme or not host:
        logger.debug("Rejected URL without scheme or host: %s", text)
        return None

    scheme = split.scheme.lower()
    if port is not None and DEFAULT_PORTS.get(scheme) == port:
        port = None

    path = split.path or "/"
    fragment = split.fragment
    is_hash_bang = fragment.startswith("!/")
    is_hash_routed = is_hash_bang or fragment.startswith("/")

    return URLStructure(
        source_url=text,
        scheme=scheme,
        host=host,
        port=port,
        path=path,
        path_segments=_split_segments(path),
        query=split.query,
        query_params=_parse_query(split),
        fragment=fragment,
        is_hash_routed=is_hash_routed,
        is_hash_bang=is_hash_bang,
        hash_segments=_hash_segments(fragment) if is_hash_routed else (),
    )


def detect_environment(host: str) -> Environment:
    value = host.lower()
    if value == "localhost" or value.startswith("127.") or value.endswith(".local"):
        return "local"
    if "dev" in value:
        return "development"
    if "staging" in value or "stage" in value or "test" in value:
        return "staging"
    return "production"


def is_api_url(structure: URLStructure) -> bool:
    path = structure.path.lower()
    return (
        path.startswith("/api/")
        or "/v1/" in path
        or "/v2/" in path
        or structure.host.lower().startswith("api.")
    )


def detect_url_type(structure: URLStructure) -> URLType:
    if is_api_url(structure):
        return "api"
    if _ASSET_SUFFIX.search(structure.path):
        return "asset"
    if structure.is_hash_routed or "spa" in structure.host.lower():
        return "spa"
    if any(_DYNAMIC_HINT.search(segment) for segment in structure.path_segments):
        return "dynamic"
    return "static"


def count_wildcards(pattern: str) -> int:
    return len(_WILDCARD_RUN.findall(pattern))


def analyze_url(
    url: str,
    *,
    aggressiveness: Aggressiveness = "moderate",
    preserve_query: bool = False,
    preserve_hash: bool = False,
    max_wildcards: int = 5,
    now: float | None = None,
) -> GeneralizedURLPattern | None:
    """Generalize a URL into a wildcard pattern.

    Path segments (and hash-route segments) are classified with their
    neighbours as context. Volatile ones become single-segment ``*``
    wildcards; hash routes collapse to an ignore-after ``**`` suffix unless
    the mode is conservative. Returns ``None`` for unparsable input.
    """

    structure = parse_url(url)
    if structure is None:
        return None

    path_results = classify_tokens(structure.path_segments, now=now)
    hash_results = classify_tokens(structure.hash_segments, in_fragment=True, now=now)

    segments: list[SegmentPair] = []
    for position, (value, result) in enumerate(zip(structure.path_segments, path_results)):
        segments.append((Segment(value, position), result if result.is_volatile else None))
    for position, (value, result) in enumerate(zip(structure.hash_segments, hash_results)):
        segments.append((Segment(value, position, in_fragment=True), result if result.is_volatile else None))

    path_pattern = _render_path(structure, path_results)
    pattern, strategy = _synthesize(
        structure,
        path_pattern,
        hash_results,
        aggressiveness=aggressiveness,
        preserve_query=preserve_query,
        preserve_hash=preserve_hash,
    )

    environment = detect_environment(structure.host)
    url_type = detect_url_type(structure)
    volatile_count = sum(1 for _, result in segments if result is not None)
    confidence = _pattern_confidence(structure, volatile_count, environment, url_type)
    findings = _validate(structure, pattern, volatile_count, environment, max_wildcards)

    return GeneralizedURLPattern(
        source_url=structure.source_url,
        structure=structure,
        segments=tuple(segments),
        pattern_string=pattern,
        match_strategy=strategy,
        confidence=confidence,
        environment=environment,
        url_type=url_type,
        findings=tuple(findings),
    )


def select_page_pattern(source_url: str, pattern: str) -> str:
    """Fall back to the literal URL when a hash URL collapsed too far."""

    if "#" in source_url and len(source_url) - len(pattern) > OVERSIMPLIFIED_THRESHOLD:
        return source_url
    return pattern


def pattern_alternatives(
    url: str,
    *,
    preserve_query: bool = False,
    preserve_hash: bool = False,
    max_wildcards: int = 5,
    now: float | None = None,
) -> list[PatternAlternative]:
    """One pattern per aggressiveness level, strictest first.

    Levels that produce the same pattern string as a stricter one are
    skipped, so the list holds between zero and three entries.
    """

    alternatives: list[PatternAlternative] = []
    seen: set[str] = set()
    for level in AGGRESSIVENESS_LEVELS:
        generalized = analyze_url(
            url,
            aggressiveness=level,
            preserve_query=preserve_query,
            preserve_hash=preserve_hash,
            max_wildcards=max_wildcards,
            now=now,
        )
        if generalized is None:
            return []
        if generalized.pattern_string in seen:
            continue
        seen.add(generalized.pattern_string)
        alternatives.append(
            PatternAlternative(
                aggressiveness=level,
                pattern=generalized,
                description=_ALTERNATIVE_DESCRIPTIONS[level],
                coverage=_estimate_coverage(generalized),
                limitations=tuple(_limitations(generalized)),
            )
        )
    return alternatives


def pattern_matches(pattern: str, url: str) -> bool:
    """Check a wildcard pattern against a concrete URL.

    ``*`` stands for one non-empty path segment and ``**`` for any
    continuation. A pattern without a scheme is a host ``contains`` pattern.
    Query and fragment of ``url`` are ignored unless the pattern has them.
    """

    structure = parse_url(url)
    if not pattern or structure is None:
        return False

    if "://" not in pattern:
        needle = pattern.strip("*").lower()
        return bool(needle) and needle in structure.host.lower()

    candidate = structure.origin + structure.path
    if structure.query and "?" in pattern.split("#", 1)[0]:
        candidate += f"?{structure.query}"
    if structure.fragment and "#" in pattern:
        candidate += f"#{structure.fragment}"
    return _wildcard_regex(pattern).fullmatch(candidate) is not None


def expand_pattern(generalized: GeneralizedURLPattern) -> str:
    """Re-substitute every single-segment wildcard with its source value."""

    if generalized.match_strategy == "contains":
        return generalized.structure.source_url

    values = [segment.raw_value for segment, result in generalized.segments if result is not None]
    expanded: list[str] = []
    for piece in re.split(r"(\*\*|\*)", generalized.pattern_string):
        if piece == "*" and values:
            expanded.append(values.pop(0))
        else:
            expanded.append(piece)
    return "".join(expanded)


def regex_pattern(generalized: GeneralizedURLPattern) -> str:
    structure = generalized.structure
    if generalized.match_strategy == "contains":
        return ".*" + re.escape(generalized.pattern_string.strip("*")) + ".*"

    parts: list[str] = []
    for segment, result in generalized.segments:
        if segment.in_fragment:
            continue
        parts.append(f"({result.regex_pattern})" if result is not None else re.escape(segment.raw_value))

    body = "^" + re.escape(structure.origin) + "/" + "/".join(parts)
    if parts and structure.path.endswith("/"):
        body += "/"
    if generalized.match_strategy == "ignore-after":
        body += re.escape(structure.hash_prefix) + ".*"
    return body + "$"


def example_urls(generalized: GeneralizedURLPattern, count: int = 3) -> list[str]:
    structure = generalized.structure
    examples: list[str] = []
    for variation in range(max(0, count)):
        parts: list[str] = []
        for segment, result in generalized.segments:
            if segment.in_fragment:
                continue
            if result is None:
                parts.append(segment.raw_value)
                continue
            samples = _EXAMPLE_VALUES.get(result.category, (segment.raw_value,))
            parts.append(samples[variation % len(samples)])
        url = structure.origin + "/" + "/".join(parts)
        if parts and structure.path.endswith("/"):
            url += "/"
        if structure.is_hash_routed:
            url += structure.hash_prefix + _EXAMPLE_HASH_ROUTES[variation % len(_EXAMPLE_HASH_ROUTES)]
        examples.append(url)
    return examples


def _parse_query(split: SplitResult) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in split.query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        params.setdefault(key, value)
    return params


def _split_segments(path: str) -> tuple[str, ...]:
    """Split on ``/`` keeping empty segments in place; one trailing slash is dropped."""

    parts = (path[1:] if path.startswith("/") else path).split("/")
    if parts and not parts[-1]:
        parts.pop()
    return tuple(parts)


def _hash_route(fragment: str) -> tuple[str, str]:
    route = fragment[1:] if fragment.startswith("!") else fragment
    path, _, query = route.partition("?")
    return path, query


def _hash_segments(fragment: str) -> tuple[str, ...]:
    return _split_segments(_hash_route(fragment)[0])


def _render_segments(values: tuple[str, ...], results: list[SegmentClassification]) -> list[str]:
    return ["*" if result.is_volatile else value for value, result in zip(values, results)]


def _render_path(structure: URLStructure, results: list[SegmentClassification]) -> str:
    rendered = _render_segments(structure.path_segments, results)
    if not rendered:
        return "/"
    path = "/" + "/".join(rendered)
    if structure.path.endswith("/"):
        path += "/"
    return path


def _synthesize(
    structure: URLStructure,
    path_pattern: str,
    hash_results: list[SegmentClassification],
    *,
    aggressiveness: Aggressiveness,
    preserve_query: bool,
    preserve_hash: bool,
) -> tuple[str, MatchStrategy]:
    query = f"?{structure.query}" if preserve_query and structure.query else ""

    if structure.is_hash_routed and aggressiveness != "conservative":
        return f"{structure.origin}{path_pattern}{query}{structure.hash_prefix}**", "ignore-after"

    labels = [label for label in structure.host.split(".") if label]
    if aggressiveness == "aggressive" and len(labels) > 3:
        return "*" + ".".join(labels[-2:]) + "*", "contains"

    pattern = f"{structure.origin}{path_pattern}{query}"
    if preserve_hash and structure.fragment:
        if structure.is_hash_routed:
            route_path, route_query = _hash_route(structure.fragment)
            route = "/".join(_render_segments(structure.hash_segments, hash_results))
            if route and route_path.endswith("/"):
                route += "/"
            pattern += structure.hash_prefix + route + (f"?{route_query}" if route_query else "")
        else:
            pattern += f"#{structure.fragment}"

    strategy: MatchStrategy = "wildcard" if count_wildcards(pattern) else "exact"
    return pattern, strategy


def _pattern_confidence(
    structure: URLStructure,
    volatile_count: int,
    environment: Environment,
    url_type: URLType,
) -> float:
    score = 0.5
    if volatile_count == 0:
        score += 0.4
    score += 0.1 * max(0, 5 - volatile_count)
    if structure.is_hash_routed:
        score += 0.2
    if url_type == "api":
        score += 0.15
    if environment in {"development", "local"}:
        score -= 0.1
    return round(max(0.0, min(1.0, score)), 4)


def _validate(
    structure: URLStructure,
    pattern: str,
    volatile_count: int,
    environment: Environment,
    max_wildcards: int,
) -> list[Finding]:
    findings: list[Finding] = []
    wildcards = count_wildcards(pattern)
    if wildcards > max_wildcards:
        findings.append(build_finding("too-broad", count=wildcards))
    if environment in {"development", "local"}:
        findings.append(build_finding("development-host"))
    elif environment == "staging":
        findings.append(build_finding("staging-host"))
    if volatile_count == 0:
        dynamic_text = "/".join(structure.path_segments + structure.hash_segments)
        if _DIGIT_RUN.search(dynamic_text):
            findings.append(build_finding("no-volatile-segments"))
    return findings


def _estimate_coverage(generalized: GeneralizedURLPattern) -> float:
    coverage = min(0.7 + 0.05 * count_wildcards(generalized.pattern_string), 0.95)
    if len(generalized.source_url.split("/")) > 6:
        coverage *= 0.8
    return round(coverage, 4)


def _limitations(generalized: GeneralizedURLPattern) -> list[str]:
    pattern = generalized.pattern_string
    wildcards = count_wildcards(pattern)
    limitations: list[str] = []
    if wildcards:
        limitations.append("Wildcards may match unintended URL variations")
    if any(result.confidence < 0.6 for _, result in generalized.volatile_segments):
        limitations.append("Some dynamic segments have low confidence detection")
    if wildcards > 4:
        limitations.append("High number of wildcards may reduce matching precision")
    if not wildcards and generalized.volatile_count:
        limitations.append("Pattern may be too specific for dynamic URLs")
    return limitations


def _wildcard_regex(pattern: str) -> re.Pattern[str]:
    pieces: list[str] = []
    for piece in re.split(r"(\*\*|\*)", pattern):
        if piece == "**":
            pieces.append(".*")
        elif piece == "*":
            pieces.append("[^/?#]+")
        elif piece:
            pieces.append(re.escape(piece))
    return re.compile("".join(pieces), re.IGNORECASE)
