from __future__ import annotations

from .compatibility import MAX_SPECIFICITY
from .models import (
    CandidateSelector,
    DOMElementDescriptor,
    Finding,
    SelectorAnalysis,
    ShadowBoundaryChain,
    ShadowStrategy,
    build_finding,
)
from .scoring import score_candidate
from .selector_rules import (
    STABLE_ATTRIBUTES,
    attribute_selector,
    calculate_specificity,
    class_selector,
    filter_stable_classes,
    id_selector,
    is_stable_selector,
)

PRIORITY_ATTRIBUTES = ("data-testid", "data-component", "aria-label")
MAX_ANCESTOR_HOPS = 5
PARENT_PREFIX_THRESHOLD = 50
SHADOW_STRATEGIES: tuple[ShadowStrategy, ...] = ("host-based", "full-path", "minimal")


def element_fragment(element: DOMElementDescriptor, *, include_nth_child: bool = False) -> str:
    return _fragment(element, include_nth_child)[0]


def _fragment(element: DOMElementDescriptor, include_nth_child: bool) -> tuple[str, str]:
    id_value = element.attr("id")
    if id_value:
        return id_selector(id_value), "id attribute"

    for attr in PRIORITY_ATTRIBUTES:
        value = element.attr(attr)
        if value:
            return attribute_selector(attr, value), f"{attr} attribute"

    classes = filter_stable_classes(element.classes)
    if classes:
        return class_selector(classes), "stable class names"

    stable_attrs: list[str] = []
    for attr in STABLE_ATTRIBUTES:
        value = element.attr(attr)
        if value:
            stable_attrs.append(attribute_selector(attr, value))
    if stable_attrs:
        return element.tag + "".join(stable_attrs), "tag with stable attributes"

    if include_nth_child:
        return f"{element.tag}:nth-child({element.index + 1})", "tag position"
    return element.tag, "tag name"


def _candidate(
    selector: str,
    *,
    strategy: str,
    explanation: str,
    shadow_aware: bool,
    findings: list[Finding] | None = None,
) -> CandidateSelector:
    return CandidateSelector(
        selector=selector,
        specificity=calculate_specificity(selector),
        is_stable=is_stable_selector(selector),
        shadow_aware=shadow_aware,
        strategy=strategy,
        explanation=explanation,
        findings=tuple(findings or ()),
    )


def regular_selector(
    element: DOMElementDescriptor,
    *,
    include_nth_child: bool = False,
    strategy: str = "stable",
) -> CandidateSelector:
    target, basis = _fragment(element, include_nth_child)
    selector = target
    if element.parent is not None and calculate_specificity(target) < PARENT_PREFIX_THRESHOLD:
        parent = element_fragment(element.parent, include_nth_child=include_nth_child)
        selector = f"{parent} > {target}"
        basis = f"{basis} under its parent"
    return _candidate(selector, strategy=strategy, explanation=basis, shadow_aware=False)


def full_path_selector(element: DOMElementDescriptor, *, include_nth_child: bool = False) -> CandidateSelector:
    ancestors = list(reversed(element.ancestors(MAX_ANCESTOR_HOPS)))
    parts = [element_fragment(item, include_nth_child=include_nth_child) for item in ancestors]
    parts.append(element_fragment(element, include_nth_child=include_nth_child))
    return _candidate(
        " > ".join(parts),
        strategy="full-path",
        explanation=f"path through {len(ancestors)} ancestor elements",
        shadow_aware=False,
    )


def _accessible_target(
    element: DOMElementDescriptor,
    chain: ShadowBoundaryChain,
) -> tuple[DOMElementDescriptor, ShadowBoundaryChain]:
    closed_at = chain.first_closed_index
    if closed_at is None:
        return element, chain
    return chain.boundaries[closed_at].host, ShadowBoundaryChain(chain.boundaries[:closed_at])


def _shadow_findings(chain: ShadowBoundaryChain) -> list[Finding]:
    findings: list[Finding] = []
    if chain.has_closed:
        findings.append(build_finding("closed-shadow-root"))
    if chain.is_deep:
        findings.append(build_finding("deep-shadow-nesting", depth=chain.depth))
    return findings


def shadow_selector(
    element: DOMElementDescriptor,
    chain: ShadowBoundaryChain,
    strategy: ShadowStrategy = "host-based",
    *,
    include_nth_child: bool = False,
) -> CandidateSelector:
    """Build a selector for an element that sits inside shadow roots.

    A closed boundary cuts the chain: the selector then targets the host of
    the outermost closed root, which is still reachable from outside.
    """

    findings = _shadow_findings(chain)
    target, accessible = _accessible_target(element, chain)
    if not accessible.is_in_shadow:
        fallback = regular_selector(target, include_nth_child=include_nth_child, strategy=strategy)
        return _candidate(
            fallback.selector,
            strategy=strategy,
            explanation=f"closed shadow host located by {fallback.explanation}",
            shadow_aware=True,
            findings=findings,
        )

    host = accessible.boundaries[0].host
    target_fragment, target_basis = _fragment(target, include_nth_child)
    host_fragment, host_basis = _fragment(host, include_nth_child)

    if strategy == "minimal":
        host_id = host.attr("id")
        target_classes = filter_stable_classes(target.classes)
        if host_id and target_classes:
            return _candidate(
                f"{id_selector(host_id)} {class_selector(target_classes[:1])}",
                strategy="minimal",
                explanation="shadow host id with the first stable class of the element",
                shadow_aware=True,
                findings=findings,
            )
        strategy = "host-based"

    if strategy == "full-path":
        ancestors = list(reversed(host.ancestors(MAX_ANCESTOR_HOPS)))
        parts = [element_fragment(item, include_nth_child=include_nth_child) for item in ancestors]
        parts.extend(element_fragment(item, include_nth_child=include_nth_child) for item in accessible.hosts())
        parts.append(target_fragment)
        return _candidate(
            " > ".join(parts),
            strategy="full-path",
            explanation=f"full path through {accessible.depth} shadow hosts to the element's {target_basis}",
            shadow_aware=True,
            findings=findings,
        )

    return _candidate(
        f"{host_fragment} {target_fragment}",
        strategy="host-based",
        explanation=f"shadow host {host_basis} with the element's {target_basis}",
        shadow_aware=True,
        findings=findings,
    )


def generate_selector(
    element: DOMElementDescriptor | None,
    shadow_chain: ShadowBoundaryChain | None = None,
    *,
    strategy: ShadowStrategy = "host-based",
    include_nth_child: bool = False,
) -> CandidateSelector | None:
    if element is None:
        return None
    chain = shadow_chain if shadow_chain is not None else element.shadow_chain
    if chain.is_in_shadow:
        return shadow_selector(element, chain, strategy, include_nth_child=include_nth_child)
    return regular_selector(element, include_nth_child=include_nth_child)


def generate_alternatives(
    element: DOMElementDescriptor | None,
    shadow_chain: ShadowBoundaryChain | None = None,
    *,
    include_nth_child: bool = False,
    check_compatibility: bool = True,
) -> SelectorAnalysis | None:
    if element is None:
        return None
    chain = shadow_chain if shadow_chain is not None else element.shadow_chain

    if chain.is_in_shadow:
        drafts = [
            shadow_selector(element, chain, strategy, include_nth_child=include_nth_child)
            for strategy in SHADOW_STRATEGIES
        ]
    else:
        drafts = [regular_selector(element, include_nth_child=include_nth_child)]
        if include_nth_child:
            drafts.append(regular_selector(element, include_nth_child=True, strategy="nth-child"))
        drafts.append(full_path_selector(element, include_nth_child=include_nth_child))

    seen: set[str] = set()
    alternatives: list[CandidateSelector] = []
    for draft in drafts:
        if not draft.selector or draft.selector in seen:
            continue
        seen.add(draft.selector)
        alternatives.append(score_candidate(draft, check_compatibility=check_compatibility))

    best = max(alternatives, key=lambda item: item.score)
    return SelectorAnalysis(
        alternatives=tuple(alternatives),
        best=best,
        stability_level=_stability_level(alternatives),
        complexity=_complexity(best),
        recommendations=tuple(_recommendations(chain, best)),
    )


def _stability_level(candidates: list[CandidateSelector]) -> str:
    ratio = sum(1 for item in candidates if item.is_stable) / len(candidates)
    if ratio >= 0.7:
        return "high"
    if ratio >= 0.4:
        return "medium"
    return "low"


def _complexity(candidate: CandidateSelector) -> str:
    length = len(candidate.selector)
    if length < 30 and candidate.specificity < 100:
        return "simple"
    if length < 80 and candidate.specificity < 200:
        return "moderate"
    return "complex"


def _recommendations(chain: ShadowBoundaryChain, best: CandidateSelector) -> list[str]:
    recommendations: list[str] = []
    if not best.is_stable:
        recommendations.append("Add data-testid or stable ID to target element")
    if chain.has_closed:
        recommendations.append("Use open shadow roots for better selector access")
    if best.specificity > MAX_SPECIFICITY:
        recommendations.append("Simplify selector to reduce fragility")
    if chain.is_deep:
        recommendations.append("Consider flattening shadow DOM structure")
    return recommendations
