from stablepattern.models import CandidateSelector
from stablepattern.scoring import score_candidate, score_candidates
from stablepattern.selector_rules import calculate_specificity, is_stable_selector


def _candidate(selector: str, strategy: str = "stable") -> CandidateSelector:
    return CandidateSelector(
        selector=selector,
        specificity=calculate_specificity(selector),
        is_stable=is_stable_selector(selector),
        shadow_aware=False,
        strategy=strategy,
    )


def test_stable_id_selector_collects_every_bonus() -> None:
    scored = score_candidate(_candidate("#submit-btn"))
    assert scored.breakdown is not None
    assert scored.breakdown.stability == 50.0
    assert scored.breakdown.specificity == 30.0
    assert scored.breakdown.brevity == 20.0
    assert scored.breakdown.compatibility == 25.0
    assert scored.score == 125.0


def test_positional_selector_scores_lower() -> None:
    scored = score_candidate(_candidate("div:nth-child(3)"))
    assert scored.score == 65.0


def test_specificity_bands() -> None:
    very_specific = score_candidate(_candidate("#a #b #c"))
    assert very_specific.breakdown is not None
    assert very_specific.breakdown.specificity == 10.0


def test_legacy_syntax_loses_compatibility_bonus() -> None:
    scored = score_candidate(_candidate("x-app::shadow .btn"))
    assert scored.breakdown is not None
    assert scored.breakdown.compatibility == 0.0

    unchecked = score_candidate(_candidate("#submit-btn"), check_compatibility=False)
    assert unchecked.score == 100.0


def test_ranking_is_stable_for_equal_scores() -> None:
    ranked = score_candidates(
        [
            _candidate(".card", strategy="first"),
            _candidate("#save", strategy="best"),
            _candidate(".panel", strategy="second"),
        ]
    )
    assert [item.strategy for item in ranked] == ["best", "first", "second"]
