from __future__ import annotations

import re
from dataclasses import dataclass

from .models import CompatibilityTier, Finding, build_finding
from .selector_rules import calculate_specificity

LEGACY_SHADOW_TOKENS = ("/deep/", "::shadow")
MAX_SELECTOR_LENGTH = 200
MAX_SPECIFICITY = 250

LEGACY_SELECTOR_ERROR = "Selector relies on deprecated shadow DOM syntax and cannot be used by the rule system"
IRREDUCIBLE_REGEX_ERROR = "URL pattern contains regex syntax that the wildcard rule format cannot express"

# Applied in order; char-class idioms first so their "+" is not seen as ".+".
_REGEX_DOWNGRADES = (
    (re.compile(r"\[\^\?/\][+*]"), "*"),
    (re.compile(r"\[\^/\?\][+*]"), "*"),
    (re.compile(r"\[\^/\][+*]"), "*"),
    (re.compile(r"\\[dw][+*]"), "*"),
    (re.compile(r"(?<!\\)\.[+*]"), "*"),
)


@dataclass(frozen=True, slots=True)
class CompatibilityReport:
    body: str
    tier: CompatibilityTier
    findings: tuple[Finding, ...] = ()
    errors: tuple[str, ...] = ()
    specificity: int = 0


def has_legacy_shadow_syntax(selector: str) -> bool:
    return any(token in selector for token in LEGACY_SHADOW_TOKENS)


def check_selector(selector: str, *, check_legacy: bool = True) -> CompatibilityReport:
    body = selector.strip()
    tier: CompatibilityTier = "full"
    findings: list[Finding] = []
    errors: list[str] = []

    if check_legacy and has_legacy_shadow_syntax(body):
        tier = "none"
        findings.append(build_finding("legacy-shadow-syntax"))
        if "," not in body:
            errors.append(LEGACY_SELECTOR_ERROR)

    if len(body) > MAX_SELECTOR_LENGTH:
        findings.append(build_finding("long-selector", length=len(body)))
        if tier == "full":
            tier = "partial"

    specificity = calculate_specificity(body)
    if specificity > MAX_SPECIFICITY:
        findings.append(build_finding("too-specific", specificity=specificity))

    return CompatibilityReport(
        body=body,
        tier=tier,
        findings=tuple(findings),
        errors=tuple(errors),
        specificity=specificity,
    )


def is_selector_compatible(selector: str) -> bool:
    return check_selector(selector).tier != "none"


def downgrade_url_regex(pattern: str) -> str:
    """Rewrite common regex idioms into ``*`` wildcards."""

    text = pattern.strip()
    for expression, replacement in _REGEX_DOWNGRADES:
        text = expression.sub(replacement, text)
    if text.startswith("^"):
        text = text[1:]
    if text.endswith("$") and not text.endswith("\\$"):
        text = text[:-1]
    return text.replace("\\.", ".").replace("\\/", "/")


def has_irreducible_regex(pattern: str) -> bool:
    return "(?:" in pattern or "\\" in pattern


def check_url_pattern(pattern: str, *, check_regex: bool = True) -> CompatibilityReport:
    body = pattern.strip()
    tier: CompatibilityTier = "full"
    findings: list[Finding] = []
    errors: list[str] = []

    if check_regex:
        downgraded = downgrade_url_regex(body)
        if downgraded != body:
            findings.append(build_finding("regex-downgraded"))
            body = downgraded
        if has_irreducible_regex(body):
            tier = "none"
            findings.append(build_finding("irreducible-regex"))
            errors.append(IRREDUCIBLE_REGEX_ERROR)

    return CompatibilityReport(body=body, tier=tier, findings=tuple(findings), errors=tuple(errors))
