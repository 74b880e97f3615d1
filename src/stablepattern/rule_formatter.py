from __future__ import annotations

from dataclasses import dataclass, replace
import re
from typing import Iterable, Union

from .compatibility import check_selector, check_url_pattern
from .models import (
    BatchResult,
    CandidateSelector,
    CompatibilityTier,
    Environment,
    ExternalRule,
    Finding,
    GeneralizedURLPattern,
    MatchStrategy,
    RuleKind,
    build_finding,
)
from .selector_rules import is_stable_selector
from .url_analyzer import count_wildcards, detect_environment, parse_url


@dataclass(frozen=True, slots=True)
class SelectorSource:
    selector: str
    explanation: str = ""
    shadow_aware: bool = False
    findings: tuple[Finding, ...] = ()

    @classmethod
    def from_candidate(cls, candidate: CandidateSelector) -> SelectorSource:
        return cls(
            selector=candidate.selector,
            explanation=candidate.explanation,
            shadow_aware=candidate.shadow_aware,
            findings=candidate.findings,
        )


@dataclass(frozen=True, slots=True)
class URLPatternSource:
    pattern: str
    match_strategy: MatchStrategy = "wildcard"
    environment: Environment | None = None
    confidence: float = 0.8
    findings: tuple[Finding, ...] = ()

    @classmethod
    def from_pattern(cls, generalized: GeneralizedURLPattern, pattern: str | None = None) -> URLPatternSource:
        return cls(
            pattern=pattern if pattern is not None else generalized.pattern_string,
            match_strategy=generalized.match_strategy,
            environment=generalized.environment,
            confidence=generalized.confidence,
            findings=tuple(item for item in generalized.findings if item.code != "too-broad"),
        )


RuleSource = Union[SelectorSource, URLPatternSource]

SIMPLIFY_MIN_LENGTH = 50
LARGE_BATCH_SIZE = 10

_POSITIONAL_PSEUDO = re.compile(r":nth-(?:child|of-type)\([^)]*\)")
_CHILD_COMBINATOR = re.compile(r"\s*>\s*")

_MATCH_TYPE_LABELS: dict[str, str] = {
    "exact": "exact",
    "wildcard": "url-pattern",
    "contains": "contains",
    "ignore-after": "ignore-after",
}

_URL_EXPLANATIONS: dict[str, str] = {
    "exact": "Page rule matching exactly this URL",
    "url-pattern": "Page rule with wildcards replacing the identifiers that change between pages",
    "contains": "Page rule matching any URL whose host contains this value",
    "ignore-after": "Page rule matching this page and any hash route after it",
}


def format_rule(
    source: RuleSource,
    kind: RuleKind,
    *,
    check_compatibility: bool = True,
    max_wildcards: int = 5,
) -> ExternalRule | None:
    """Render a selector or URL pattern as a copy-ready external rule.

    ``SelectorSource`` feeds element rules and ``URLPatternSource`` feeds page
    rules. Any other pairing, or an empty body, gives ``None``.
    """

    if kind == "element" and isinstance(source, SelectorSource):
        return _element_rule(source, check_compatibility)
    if kind == "page" and isinstance(source, URLPatternSource):
        return _page_rule(source, check_compatibility, max_wildcards)
    return None


def simplify_selector(selector: str) -> str | None:
    """Drop positional pseudo-classes and child combinators.

    Returns ``None`` when nothing changes or nothing is left.
    """

    simplified = _POSITIONAL_PSEUDO.sub("", selector)
    simplified = _CHILD_COMBINATOR.sub(" ", simplified)
    simplified = " ".join(simplified.split())
    if not simplified or simplified == selector.strip():
        return None
    return simplified


def simplified_rule(source: SelectorSource, *, check_compatibility: bool = True) -> ExternalRule | None:
    if len(source.selector.strip()) <= SIMPLIFY_MIN_LENGTH:
        return None
    simplified = simplify_selector(source.selector)
    if simplified is None:
        return None
    basis = source.explanation or "the generated CSS selector"
    return _element_rule(
        replace(source, selector=simplified, explanation=f"{basis} without positional parts"),
        check_compatibility,
    )


def format_batch(
    items: Iterable[tuple[RuleSource, RuleKind]],
    *,
    check_compatibility: bool = True,
    max_wildcards: int = 5,
) -> BatchResult:
    """Format several rules at once and summarize how they fared.

    Pairs that cannot be formatted count as failed and are left out of
    ``rules``.
    """

    rules: list[ExternalRule] = []
    total = valid = with_warnings = failed = 0
    for source, kind in items:
        total += 1
        rule = format_rule(source, kind, check_compatibility=check_compatibility, max_wildcards=max_wildcards)
        if rule is None:
            failed += 1
            continue
        rules.append(rule)
        if rule.is_valid:
            valid += 1
        else:
            failed += 1
        if rule.findings:
            with_warnings += 1

    return BatchResult(
        rules=tuple(rules),
        total=total,
        valid=valid,
        with_warnings=with_warnings,
        failed=failed,
        recommendations=tuple(_batch_recommendations(rules)),
    )


def _batch_recommendations(rules: list[ExternalRule]) -> list[str]:
    recommendations: list[str] = []
    invalid = sum(1 for rule in rules if not rule.is_valid)
    warned = sum(1 for rule in rules if rule.findings)
    shadow = sum(1 for rule in rules if "shadow-root-must-be-open" in rule.warning_codes)
    if invalid:
        recommendations.append(f"{invalid} rules failed validation - review and fix before using")
    if warned:
        recommendations.append(f"{warned} rules have warnings - test them before publishing")
    if shadow:
        recommendations.append(f"{shadow} rules target shadow DOM - confirm the shadow roots are open")
    if len(rules) > LARGE_BATCH_SIZE:
        recommendations.append("Large number of rules - consider grouping them by feature or page")
    return recommendations


def _element_rule(source: SelectorSource, check_compatibility: bool) -> ExternalRule | None:
    report = check_selector(source.selector, check_legacy=check_compatibility)
    if not report.body:
        return None

    findings = list(source.findings)
    findings.extend(report.findings)
    tier: CompatibilityTier = report.tier
    if not check_compatibility:
        findings.append(build_finding("compatibility-unchecked"))
        if tier == "full":
            tier = "partial"

    stable = is_stable_selector(report.body)
    if source.shadow_aware:
        findings.append(build_finding("shadow-root-must-be-open"))
    if not stable:
        findings.append(build_finding("fragile-selector"))

    legacy = any(item.code == "legacy-shadow-syntax" for item in findings)
    return ExternalRule(
        kind="element",
        body=report.body,
        compatibility_tier=tier,
        explanation=_element_explanation(source, stable, legacy),
        copy_instructions=_element_instructions(report.body, source.shadow_aware, tier),
        findings=_dedupe(findings),
        errors=report.errors,
        match_type="css-selector",
        confidence=0.9 if stable else 0.6,
        specificity=report.specificity,
    )


def _page_rule(source: URLPatternSource, check_compatibility: bool, max_wildcards: int) -> ExternalRule | None:
    report = check_url_pattern(source.pattern, check_regex=check_compatibility)
    if not report.body:
        return None

    findings = list(source.findings)
    findings.extend(report.findings)
    tier: CompatibilityTier = report.tier
    if not check_compatibility:
        findings.append(build_finding("compatibility-unchecked"))
        if tier == "full":
            tier = "partial"

    wildcards = count_wildcards(report.body)
    if wildcards > max_wildcards:
        findings.append(build_finding("too-broad", count=wildcards))
    if "localhost" in report.body.lower():
        findings.append(build_finding("localhost-pattern"))
    if _environment_of(source) in {"development", "local"}:
        findings.append(build_finding("development-host"))

    match_type = _MATCH_TYPE_LABELS[source.match_strategy]
    if match_type == "url-pattern" and not wildcards:
        match_type = "exact"
    return ExternalRule(
        kind="page",
        body=report.body,
        compatibility_tier=tier,
        explanation=_page_explanation(match_type, tier),
        copy_instructions=_page_instructions(report.body, match_type),
        findings=_dedupe(findings),
        errors=report.errors,
        match_type=match_type,
        confidence=source.confidence,
    )


def _environment_of(source: URLPatternSource) -> Environment | None:
    if source.environment is not None:
        return source.environment
    structure = parse_url(source.pattern.replace("*", ""))
    return detect_environment(structure.host) if structure is not None else None


def _element_explanation(source: SelectorSource, stable: bool, legacy: bool) -> str:
    basis = source.explanation or "the generated CSS selector"
    if legacy:
        return f"Element rule using {basis}. Deprecated ::shadow and /deep/ selectors are not supported."
    if source.shadow_aware:
        return f"Element rule for a shadow DOM element using {basis}. Targets the host element with standard CSS."
    if stable:
        return f"Element rule using {basis}"
    return f"Element rule using {basis} (may break if DOM structure changes)"


def _element_instructions(body: str, shadow_aware: bool, tier: CompatibilityTier) -> str:
    steps = [
        "1. Create a new element rule in the rule editor",
        f"2. Paste this selector into the custom CSS field: {body}",
        "3. Preview the rule and confirm the highlighted element",
        "4. Publish when ready",
    ]
    if shadow_aware:
        steps.append("Note: only open shadow roots can be targeted with standard CSS selectors.")
    if tier == "none":
        steps.append("Note: fix the reported compatibility problems before publishing.")
    return "\n".join(steps)


def _page_explanation(match_type: str, tier: CompatibilityTier) -> str:
    explanation = _URL_EXPLANATIONS[match_type]
    if tier == "none":
        return f"{explanation}. The pattern still contains regex syntax and will not work as-is."
    return explanation


def _page_instructions(body: str, match_type: str) -> str:
    return "\n".join(
        [
            "1. Create a new page rule in the rule editor",
            f"2. Choose the '{match_type}' match type",
            f"3. Paste this URL pattern: {body}",
            "4. Verify that the current page is detected",
            "5. Save the page definition",
        ]
    )


def _dedupe(findings: list[Finding]) -> tuple[Finding, ...]:
    seen: set[str] = set()
    unique: list[Finding] = []
    for item in findings:
        if item.code in seen:
            continue
        seen.add(item.code)
        unique.append(item)
    return tuple(unique)
