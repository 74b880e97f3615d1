from stablepattern.selector_rules import (
    calculate_specificity,
    filter_stable_classes,
    has_hex_like_run,
    id_selector,
    is_stable_selector,
)


def test_specificity_formula() -> None:
    assert calculate_specificity("#a.b.c[data-x]") == 130
    assert calculate_specificity("div") == 1
    assert calculate_specificity("div > span.x") == 12
    assert calculate_specificity("li:nth-child(2)") == 11
    assert calculate_specificity("p::before") == 2
    assert calculate_specificity("*") == 0
    assert calculate_specificity(":not(.a)") == 10


def test_specificity_ignores_attribute_values() -> None:
    assert calculate_specificity('button[data-testid="a.b#c"]') == 11
    assert calculate_specificity('[aria-label="Close dialog"] .icon') == 20


def test_stability_predicate() -> None:
    assert is_stable_selector("#submit-btn")
    assert is_stable_selector('[data-testid="save"]')
    assert is_stable_selector('div[role="dialog"]')
    assert not is_stable_selector('div[name="email"]')
    assert not is_stable_selector("li:nth-child(2)")
    assert not is_stable_selector("#item-12345")
    assert not is_stable_selector("#card-a1b2c3")
    assert not is_stable_selector(".btn.primary")
    assert not is_stable_selector("")


def test_class_filter_drops_generated_tokens() -> None:
    classes = ["btn", "btn", "item-1234", "a1b2c3d4", "primary", "large", "extra"]
    assert filter_stable_classes(classes) == ["btn", "primary", "large"]
    assert filter_stable_classes("facade  card") == ["facade", "card"]
    assert filter_stable_classes(None) == []


def test_hex_runs_need_a_digit() -> None:
    assert not has_hex_like_run("facade")
    assert has_hex_like_run("a1b2c3")
    assert has_hex_like_run("css-9f8e7d")


def test_id_selector_escapes_unsafe_ids() -> None:
    assert id_selector("submit-btn") == "#submit-btn"
    assert id_selector("1abc") == '[id="1abc"]'
    assert id_selector('a"b c') == '[id="a\\"b c"]'
