from __future__ import annotations

from dataclasses import replace
from typing import Iterable

from .compatibility import is_selector_compatible
from .models import CandidateSelector, ScoreBreakdown

STABLE_BONUS = 50.0
COMPATIBLE_BONUS = 25.0


def _specificity_score(specificity: int) -> float:
    if 100 <= specificity <= 200:
        return 30.0
    if specificity > 200:
        return 10.0
    return 20.0


def _brevity_score(selector: str) -> float:
    if len(selector) < 50:
        return 20.0
    if len(selector) < 100:
        return 10.0
    return 0.0


def score_candidate(candidate: CandidateSelector, *, check_compatibility: bool = True) -> CandidateSelector:
    stability = STABLE_BONUS if candidate.is_stable else 0.0
    specificity = _specificity_score(candidate.specificity)
    brevity = _brevity_score(candidate.selector)
    compatibility = 0.0
    if check_compatibility and is_selector_compatible(candidate.selector):
        compatibility = COMPATIBLE_BONUS

    breakdown = ScoreBreakdown(
        stability=stability,
        specificity=specificity,
        brevity=brevity,
        compatibility=compatibility,
        total=stability + specificity + brevity + compatibility,
    )
    return replace(candidate, score=breakdown.total, breakdown=breakdown)


def score_candidates(
    candidates: Iterable[CandidateSelector],
    *,
    check_compatibility: bool = True,
) -> list[CandidateSelector]:
    """Score and rank candidates, best first; equal totals keep input order."""

    scored = [score_candidate(candidate, check_compatibility=check_compatibility) for candidate in candidates]
    scored.sort(key=lambda item: -float(item.score))
    return scored
