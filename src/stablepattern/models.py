from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

SegmentCategory = Literal[
    "numeric-id",
    "guid",
    "alphanumeric-id",
    "workspace-id",
    "user-id",
    "component-id",
    "feature-id",
    "session-id",
    "timestamp",
    "version",
    "build-id",
    "hash",
    "token",
    "unknown",
]
Stability = Literal["stable", "semi-stable", "volatile", "highly-volatile"]
MatchStrategy = Literal["exact", "wildcard", "contains", "ignore-after"]
Aggressiveness = Literal["conservative", "moderate", "aggressive"]
ShadowStrategy = Literal["host-based", "full-path", "minimal"]
ShadowMode = Literal["open", "closed"]
RuleKind = Literal["element", "page"]
CompatibilityTier = Literal["full", "partial", "none"]
Environment = Literal["local", "development", "staging", "production"]
URLType = Literal["api", "asset", "spa", "dynamic", "static"]

# code -> (message template, remediation)
WARNING_CODES: dict[str, tuple[str, str]] = {
    "too-broad": (
        "Pattern has {count} wildcards - may be too broad",
        "Consider using more specific patterns or contains matching",
    ),
    "development-host": (
        "Development URL detected - pattern may not work in production",
        "Test pattern with production URLs",
    ),
    "staging-host": (
        "Staging URL detected - pattern may not match production URLs",
        "Verify the pattern against the production hostname",
    ),
    "no-volatile-segments": (
        "No volatile segments detected in potentially dynamic URL",
        "Review URL for IDs, timestamps, or other changing values",
    ),
    "oversimplified-pattern": (
        "Generated pattern looks oversimplified - using the full URL instead",
        "Review the hash parameters and add wildcards by hand if needed",
    ),
    "closed-shadow-root": (
        "Contains closed shadow DOM - limited access, selector targets the nearest accessible host",
        "Use open shadow roots for better selector access",
    ),
    "deep-shadow-nesting": (
        "Deep shadow DOM nesting ({depth} levels)",
        "Consider flattening shadow DOM structure",
    ),
    "legacy-shadow-syntax": (
        "Uses deprecated shadow DOM selector syntax (/deep/, ::shadow)",
        "Replace with standard CSS selectors using the host element",
    ),
    "long-selector": (
        "Selector is very long ({length} characters) and may be fragile",
        "Simplify selector by adding stable attributes to target element",
    ),
    "too-specific": (
        "Selector specificity is high ({specificity}) and may be over-constrained",
        "Prefer a single stable id or data attribute over chained selectors",
    ),
    "shadow-root-must-be-open": (
        "Ensure the shadow root is open - closed shadow roots are inaccessible",
        "Use host element selectors when the shadow root is closed",
    ),
    "fragile-selector": (
        "Selector is fragile - position-based or generated values can break with DOM changes",
        "Add data-testid or a stable id to the target element",
    ),
    "regex-downgraded": (
        "Regex syntax was converted to simple wildcards",
        "Review the converted pattern before publishing",
    ),
    "irreducible-regex": (
        "Pattern contains regex syntax that cannot be expressed with wildcards",
        "Rewrite the pattern using * and ** wildcards only",
    ),
    "localhost-pattern": (
        "Pattern includes localhost - will not work in production",
        "Update pattern for production domains",
    ),
    "compatibility-unchecked": (
        "Compatibility checks were skipped",
        "Enable compatibility checking before publishing the rule",
    ),
}


@dataclass(frozen=True, slots=True)
class Finding:
    code: str
    message: str
    remediation: str


def build_finding(code: str, **values: Any) -> Finding:
    template, remediation = WARNING_CODES[code]
    return Finding(code=code, message=template.format(**values), remediation=remediation)


@dataclass(frozen=True, slots=True)
class SegmentContext:
    preceding_token: str | None = None
    following_token: str | None = None
    in_fragment: bool = False


@dataclass(frozen=True, slots=True)
class Segment:
    raw_value: str
    position: int
    in_fragment: bool = False


@dataclass(frozen=True, slots=True)
class SegmentClassification:
    category: SegmentCategory
    confidence: float
    stability: Stability
    regex_pattern: str
    explanation: str

    @property
    def is_volatile(self) -> bool:
        return self.category != "unknown"


@dataclass(frozen=True, slots=True)
class URLStructure:
    source_url: str
    scheme: str
    host: str
    port: int | None
    path: str
    path_segments: tuple[str, ...]
    query: str
    query_params: Mapping[str, str]
    fragment: str
    is_hash_routed: bool
    is_hash_bang: bool
    hash_segments: tuple[str, ...]

    @property
    def origin(self) -> str:
        if self.port is None:
            return f"{self.scheme}://{self.host}"
        return f"{self.scheme}://{self.host}:{self.port}"

    @property
    def hash_prefix(self) -> str:
        return "#!/" if self.is_hash_bang else "#/"


SegmentPair = tuple[Segment, "SegmentClassification | None"]


@dataclass(frozen=True, slots=True)
class GeneralizedURLPattern:
    source_url: str
    structure: URLStructure
    segments: tuple[SegmentPair, ...]
    pattern_string: str
    match_strategy: MatchStrategy
    confidence: float
    environment: Environment
    url_type: URLType
    findings: tuple[Finding, ...] = ()

    @property
    def volatile_segments(self) -> list[tuple[Segment, SegmentClassification]]:
        return [(segment, result) for segment, result in self.segments if result is not None]

    @property
    def volatile_count(self) -> int:
        return len(self.volatile_segments)

    @property
    def is_hash_routed(self) -> bool:
        return self.structure.is_hash_routed

    @property
    def is_development(self) -> bool:
        return self.environment in {"development", "local"}

    @property
    def warnings(self) -> list[str]:
        return [item.message for item in self.findings]

    @property
    def warning_codes(self) -> list[str]:
        return [item.code for item in self.findings]

    @property
    def suggestions(self) -> list[str]:
        return [item.remediation for item in self.findings]


@dataclass(frozen=True, slots=True)
class PatternAlternative:
    aggressiveness: Aggressiveness
    pattern: GeneralizedURLPattern
    description: str
    coverage: float
    limitations: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class BoundingBox:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


@dataclass(frozen=True, slots=True)
class DOMElementDescriptor:
    tag_name: str
    element_id: str | None = None
    classes: tuple[str, ...] = ()
    attributes: Mapping[str, str] = field(default_factory=dict)
    bounds: BoundingBox = field(default_factory=BoundingBox)
    index: int = 0
    parent: DOMElementDescriptor | None = None
    shadow_chain: ShadowBoundaryChain = field(default_factory=lambda: ShadowBoundaryChain())

    @property
    def tag(self) -> str:
        raw = (self.tag_name or "").strip().lower()
        return raw or "*"

    def attr(self, key: str) -> str | None:
        if key == "id":
            raw = self.element_id if self.element_id is not None else self.attributes.get("id")
        else:
            raw = self.attributes.get(key)
        if raw is None:
            return None
        value = str(raw).strip()
        return value or None

    def ancestors(self, limit: int) -> list[DOMElementDescriptor]:
        chain: list[DOMElementDescriptor] = []
        current = self.parent
        while current is not None and len(chain) < limit:
            chain.append(current)
            current = current.parent
        return chain

    def signature(self) -> str:
        pieces = [f"tag={self.tag}"]
        if self.attr("id"):
            pieces.append(f"id={self.attr('id')}")
        for key in sorted(str(name) for name in self.attributes):
            if key == "id":
                continue
            value = self.attr(key)
            if value is not None:
                pieces.append(f"{key}={value}")
        if self.classes:
            pieces.append("class=" + ".".join(self.classes))
        pieces.append(f"index={self.index}")
        hosts = [f"{boundary.mode}:{boundary.host.signature()}" for boundary in self.shadow_chain.boundaries]
        if hosts:
            pieces.append("hosts=[" + ";".join(hosts) + "]")
        if self.parent is not None:
            pieces.append(f"parent=({self.parent.signature()})")
        return "|".join(pieces)


@dataclass(frozen=True, slots=True)
class ShadowBoundary:
    host: DOMElementDescriptor
    mode: ShadowMode = "open"


@dataclass(frozen=True, slots=True)
class ShadowBoundaryChain:
    """Enclosing shadow boundaries, outermost first."""

    boundaries: tuple[ShadowBoundary, ...] = ()

    @property
    def depth(self) -> int:
        return len(self.boundaries)

    @property
    def is_in_shadow(self) -> bool:
        return self.depth > 0

    @property
    def is_deep(self) -> bool:
        return self.depth > 1

    @property
    def has_closed(self) -> bool:
        return any(boundary.mode == "closed" for boundary in self.boundaries)

    @property
    def first_closed_index(self) -> int | None:
        for index, boundary in enumerate(self.boundaries):
            if boundary.mode == "closed":
                return index
        return None

    @property
    def outermost_host(self) -> DOMElementDescriptor | None:
        return self.boundaries[0].host if self.boundaries else None

    @property
    def innermost_host(self) -> DOMElementDescriptor | None:
        return self.boundaries[-1].host if self.boundaries else None

    def hosts(self) -> list[DOMElementDescriptor]:
        return [boundary.host for boundary in self.boundaries]


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    stability: float
    specificity: float
    brevity: float
    compatibility: float
    total: float


@dataclass(frozen=True, slots=True)
class CandidateSelector:
    selector: str
    specificity: int
    is_stable: bool
    shadow_aware: bool
    strategy: str
    explanation: str = ""
    findings: tuple[Finding, ...] = ()
    score: float = 0.0
    breakdown: ScoreBreakdown | None = None

    @property
    def warnings(self) -> list[str]:
        return [item.message for item in self.findings]

    @property
    def warning_codes(self) -> list[str]:
        return [item.code for item in self.findings]

    @property
    def suggestions(self) -> list[str]:
        return [item.remediation for item in self.findings]


@dataclass(frozen=True, slots=True)
class SelectorAnalysis:
    alternatives: tuple[CandidateSelector, ...]
    best: CandidateSelector
    stability_level: Literal["high", "medium", "low"]
    complexity: Literal["simple", "moderate", "complex"]
    recommendations: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ExternalRule:
    kind: RuleKind
    body: str
    compatibility_tier: CompatibilityTier
    explanation: str
    copy_instructions: str
    findings: tuple[Finding, ...] = ()
    errors: tuple[str, ...] = ()
    match_type: str = "css-selector"
    confidence: float = 0.8
    specificity: int | None = None

    @property
    def warnings(self) -> list[str]:
        return [item.message for item in self.findings]

    @property
    def warning_codes(self) -> list[str]:
        return [item.code for item in self.findings]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "body": self.body,
            "warnings": self.warnings,
            "warning_codes": self.warning_codes,
            "compatibility_tier": self.compatibility_tier,
            "explanation": self.explanation,
            "copy_instructions": self.copy_instructions,
            "errors": list(self.errors),
            "match_type": self.match_type,
            "confidence": self.confidence,
            "specificity": self.specificity,
        }


@dataclass(frozen=True, slots=True)
class BatchResult:
    rules: tuple[ExternalRule, ...]
    total: int
    valid: int
    with_warnings: int
    failed: int
    recommendations: tuple[str, ...] = ()
