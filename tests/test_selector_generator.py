from stablepattern.models import DOMElementDescriptor, ShadowBoundary, ShadowBoundaryChain
from stablepattern.selector_generator import generate_alternatives, generate_selector
from stablepattern.selector_rules import calculate_specificity


def _element(
    tag: str = "button",
    element_id: str | None = None,
    classes: tuple[str, ...] = (),
    attributes: dict[str, str] | None = None,
    parent: DOMElementDescriptor | None = None,
    index: int = 0,
    chain: ShadowBoundaryChain | None = None,
) -> DOMElementDescriptor:
    return DOMElementDescriptor(
        tag_name=tag,
        element_id=element_id,
        classes=classes,
        attributes=attributes or {},
        parent=parent,
        index=index,
        shadow_chain=chain or ShadowBoundaryChain(),
    )


def _chain(*boundaries: tuple[DOMElementDescriptor, str]) -> ShadowBoundaryChain:
    return ShadowBoundaryChain(tuple(ShadowBoundary(host=host, mode=mode) for host, mode in boundaries))


def test_id_wins_over_test_id() -> None:
    element = _element(element_id="submit-btn", attributes={"data-testid": "submit"})
    candidate = generate_selector(element)
    assert candidate is not None
    assert candidate.selector == "#submit-btn"
    assert candidate.is_stable
    assert candidate.specificity == 100
    assert not candidate.shadow_aware


def test_low_specificity_fragment_gets_parent_prefix() -> None:
    form = _element(tag="form", element_id="checkout")
    candidate = generate_selector(_element(attributes={"data-testid": "save"}, parent=form))
    assert candidate is not None
    assert candidate.selector == '#checkout > [data-testid="save"]'
    assert candidate.specificity == calculate_specificity(candidate.selector) == 110


def test_class_and_attribute_fallbacks() -> None:
    by_class = generate_selector(_element(classes=("btn", "css-1a2b3c4", "item-12345")))
    assert by_class is not None
    assert by_class.selector == ".btn"

    by_attrs = generate_selector(_element(tag="input", attributes={"name": "email", "type": "text"}))
    assert by_attrs is not None
    assert by_attrs.selector == 'input[name="email"][type="text"]'


def test_nth_child_only_when_allowed() -> None:
    element = _element(tag="div", index=2)
    plain = generate_selector(element)
    positional = generate_selector(element, include_nth_child=True)
    assert plain is not None and positional is not None
    assert plain.selector == "div"
    assert positional.selector == "div:nth-child(3)"
    assert not positional.is_stable


def test_shadow_strategies() -> None:
    main = _element(tag="main")
    host = _element(tag="my-app", element_id="app-root", parent=main)
    chain = _chain((host, "open"))
    target = _element(classes=("primary", "large"), attributes={"data-testid": "buy"}, chain=chain)

    host_based = generate_selector(target)
    assert host_based is not None
    assert host_based.selector == '#app-root [data-testid="buy"]'
    assert host_based.shadow_aware
    assert host_based.strategy == "host-based"

    full_path = generate_selector(target, strategy="full-path")
    assert full_path is not None
    assert full_path.selector == 'main > #app-root > [data-testid="buy"]'

    minimal = generate_selector(target, strategy="minimal")
    assert minimal is not None
    assert minimal.selector == "#app-root .primary"
    assert minimal.warnings == []


def test_minimal_falls_back_without_host_id() -> None:
    host = _element(tag="app-shell", attributes={"data-component": "shell"})
    target = _element(classes=("primary",), chain=_chain((host, "open")))
    candidate = generate_selector(target, strategy="minimal")
    assert candidate is not None
    assert candidate.strategy == "host-based"
    assert candidate.selector == '[data-component="shell"] .primary'


def test_closed_shadow_root_targets_accessible_host() -> None:
    outer = _element(tag="outer-app", element_id="outer")
    inner = _element(tag="inner-widget", element_id="inner", chain=_chain((outer, "open")))
    target = _element(classes=("primary",), chain=_chain((outer, "open"), (inner, "closed")))

    candidate = generate_selector(target)
    assert candidate is not None
    assert candidate.selector == "#outer #inner"
    assert candidate.warning_codes == ["closed-shadow-root", "deep-shadow-nesting"]
    assert "2 levels" in candidate.warnings[1]


def test_closed_outermost_root_falls_back_to_host() -> None:
    host = _element(tag="pay-widget", element_id="widget")
    target = _element(classes=("primary",), chain=_chain((host, "closed")))
    candidate = generate_selector(target)
    assert candidate is not None
    assert candidate.selector == "#widget"
    assert candidate.shadow_aware
    assert candidate.warning_codes == ["closed-shadow-root"]


def test_explicit_chain_overrides_descriptor_chain() -> None:
    host = _element(tag="my-app", element_id="app-root")
    target = _element(classes=("primary",))
    candidate = generate_selector(target, _chain((host, "open")))
    assert candidate is not None
    assert candidate.selector == "#app-root .primary"


def test_missing_element_gives_no_result() -> None:
    assert generate_selector(None) is None
    assert generate_alternatives(None) is None


def test_alternatives_for_regular_element() -> None:
    element = _element(element_id="submit-btn", attributes={"data-testid": "submit"}, parent=_element(tag="form"))
    analysis = generate_alternatives(element)
    assert analysis is not None
    assert analysis.best.selector == "#submit-btn"
    assert [item.selector for item in analysis.alternatives] == ["#submit-btn", "form > #submit-btn"]
    assert analysis.stability_level == "high"
    assert analysis.complexity == "moderate"
    assert analysis.recommendations == ()


def test_alternatives_prefer_highest_score_and_keep_first_on_ties() -> None:
    host = _element(tag="my-app", element_id="app-root")
    target = _element(classes=("primary",), chain=_chain((host, "open")))
    analysis = generate_alternatives(target)
    assert analysis is not None
    scores = [item.score for item in analysis.alternatives]
    assert analysis.best.score == max(scores)
    assert analysis.best is analysis.alternatives[scores.index(max(scores))]
    assert all(item.breakdown is not None for item in analysis.alternatives)


def test_alternatives_recommend_stable_attributes() -> None:
    analysis = generate_alternatives(_element(tag="div", classes=("card",), index=1))
    assert analysis is not None
    assert not analysis.best.is_stable
    assert analysis.stability_level == "low"
    assert "Add data-testid or stable ID to target element" in analysis.recommendations


def test_alternatives_use_position_only_when_allowed() -> None:
    element = _element(tag="div", index=2, parent=_element(tag="section"))
    plain = generate_alternatives(element)
    assert plain is not None
    assert all(":nth-child" not in item.selector for item in plain.alternatives)

    positional = generate_alternatives(element, include_nth_child=True)
    assert positional is not None
    assert any(":nth-child" in item.selector for item in positional.alternatives)
