from __future__ import annotations

from dataclasses import replace
import logging
from typing import Callable, Iterable, TypeVar

from .cache import AnalysisCache
from .config import EngineOptions
from .models import (
    BatchResult,
    CandidateSelector,
    DOMElementDescriptor,
    ExternalRule,
    GeneralizedURLPattern,
    PatternAlternative,
    RuleKind,
    SegmentClassification,
    SegmentContext,
    SelectorAnalysis,
    build_finding,
)
from .rule_formatter import RuleSource, SelectorSource, URLPatternSource, format_batch, format_rule
from .scoring import score_candidate
from .segment_classifier import classify_segment
from .selector_generator import generate_alternatives, generate_selector
from .url_analyzer import analyze_url, pattern_alternatives, select_page_pattern

T = TypeVar("T")


class PatternEngine:
    """Entry point for callers outside the package.

    Invalid input and unexpected failures both come back as ``None``; the
    latter are logged with their traceback.
    """

    def __init__(
        self,
        options: EngineOptions | None = None,
        *,
        url_cache: AnalysisCache[GeneralizedURLPattern] | None = None,
        selector_cache: AnalysisCache[CandidateSelector] | None = None,
    ) -> None:
        self.options = options or EngineOptions()
        self.url_cache = url_cache
        self.selector_cache = selector_cache
        self.logger = logging.getLogger("stablepattern.engine")

    def classify(self, token: str, context: SegmentContext | None = None) -> SegmentClassification | None:
        return self._guard("Segment classification", lambda: classify_segment(token, context))

    def analyze_url(self, url: str) -> GeneralizedURLPattern | None:
        def compute() -> GeneralizedURLPattern | None:
            return analyze_url(
                url,
                aggressiveness=self.options.aggressiveness,
                preserve_query=self.options.preserve_query,
                preserve_hash=self.options.preserve_hash,
                max_wildcards=self.options.max_wildcards,
            )

        if self.url_cache is None:
            return self._guard("URL analysis", compute)
        key = (url, self.options)
        return self._guard("URL analysis", lambda: self.url_cache.get_or_compute(key, compute))

    def page_rule(self, url: str) -> ExternalRule | None:
        generalized = self.analyze_url(url)
        if generalized is None:
            return None
        return self._guard("Page rule formatting", lambda: self._page_rule(generalized))

    def page_alternatives(self, url: str) -> list[PatternAlternative] | None:
        return self._guard(
            "Pattern alternatives",
            lambda: pattern_alternatives(
                url,
                preserve_query=self.options.preserve_query,
                preserve_hash=self.options.preserve_hash,
                max_wildcards=self.options.max_wildcards,
            ),
        )

    def generate_selector(self, element: DOMElementDescriptor | None) -> CandidateSelector | None:
        if element is None:
            return None

        def compute() -> CandidateSelector | None:
            candidate = generate_selector(
                element,
                strategy=self.options.shadow_strategy,
                include_nth_child=self.options.include_nth_child,
            )
            if candidate is None:
                return None
            return score_candidate(candidate, check_compatibility=self.options.check_compatibility)

        if self.selector_cache is None:
            return self._guard("Selector generation", compute)
        key = (element.signature(), self.options)
        return self._guard("Selector generation", lambda: self.selector_cache.get_or_compute(key, compute))

    def alternatives(self, element: DOMElementDescriptor | None) -> SelectorAnalysis | None:
        return self._guard(
            "Selector alternatives",
            lambda: generate_alternatives(
                element,
                include_nth_child=self.options.include_nth_child,
                check_compatibility=self.options.check_compatibility,
            ),
        )

    def element_rule(self, element: DOMElementDescriptor | None) -> ExternalRule | None:
        candidate = self.generate_selector(element)
        if candidate is None:
            return None
        return self.format(SelectorSource.from_candidate(candidate), "element")

    def format(self, source: RuleSource, kind: RuleKind) -> ExternalRule | None:
        return self._guard(
            "Rule formatting",
            lambda: format_rule(
                source,
                kind,
                check_compatibility=self.options.check_compatibility,
                max_wildcards=self.options.max_wildcards,
            ),
        )

    def format_batch(self, items: Iterable[tuple[RuleSource, RuleKind]]) -> BatchResult | None:
        return self._guard(
            "Batch formatting",
            lambda: format_batch(
                items,
                check_compatibility=self.options.check_compatibility,
                max_wildcards=self.options.max_wildcards,
            ),
        )

    def clear_cache(self) -> None:
        if self.url_cache is not None:
            self.url_cache.clear()
        if self.selector_cache is not None:
            self.selector_cache.clear()

    def _page_rule(self, generalized: GeneralizedURLPattern) -> ExternalRule | None:
        source = URLPatternSource.from_pattern(generalized)
        chosen = select_page_pattern(generalized.source_url, generalized.pattern_string)
        if chosen != generalized.pattern_string:
            self.logger.info("Pattern for %s looked oversimplified; using the full URL.", generalized.source_url)
            source = replace(
                source,
                pattern=chosen,
                match_strategy="exact",
                findings=source.findings + (build_finding("oversimplified-pattern"),),
            )
        return format_rule(
            source,
            "page",
            check_compatibility=self.options.check_compatibility,
            max_wildcards=self.options.max_wildcards,
        )

    def _guard(self, operation: str, compute: Callable[[], T | None]) -> T | None:
        try:
            return compute()
        except Exception:
            self.logger.exception("%s failed unexpectedly.", operation)
            return None
