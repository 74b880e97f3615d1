from __future__ import annotations

import argparse
from dataclasses import asdict, replace
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from .config import AGGRESSIVENESS_LEVELS, SHADOW_STRATEGIES, EngineOptions, load_engine_options
from .dom_extractor import descriptor_from_payload
from .engine import PatternEngine
from .log import build_logger
from .models import CandidateSelector, GeneralizedURLPattern, SegmentContext
from .rule_formatter import SelectorSource, simplified_rule
from .url_analyzer import example_urls, regex_pattern


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stablepattern",
        description="Generalize URLs and DOM element snapshots into reusable rules.",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to an options JSON file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    classify = subparsers.add_parser("classify", help="Classify a single URL token")
    classify.add_argument("token")
    classify.add_argument("--before", default=None, help="Token preceding this one")
    classify.add_argument("--after", default=None, help="Token following this one")
    classify.add_argument("--fragment", action="store_true", help="Token sits in a hash route")

    url = subparsers.add_parser("url", help="Generalize a URL into a page rule")
    url.add_argument("url")
    url.add_argument("--aggressiveness", choices=AGGRESSIVENESS_LEVELS, default=None)
    url.add_argument("--preserve-query", action="store_true")
    url.add_argument("--preserve-hash", action="store_true")
    url.add_argument("--max-wildcards", type=int, default=None)
    url.add_argument("--examples", type=int, default=0, help="Number of example URLs to include")
    url.add_argument("--alternatives", action="store_true", help="Include one pattern per aggressiveness level")

    selector = subparsers.add_parser("selector", help="Build an element rule from a snapshot JSON file")
    selector.add_argument("payload", type=Path)
    selector.add_argument("--strategy", choices=SHADOW_STRATEGIES, default=None)
    selector.add_argument("--nth-child", action="store_true")
    selector.add_argument("--alternatives", action="store_true", help="Include every candidate selector")
    return parser


def cmd_classify(engine: PatternEngine, args: argparse.Namespace) -> dict[str, Any] | None:
    context = SegmentContext(preceding_token=args.before, following_token=args.after, in_fragment=args.fragment)
    result = engine.classify(args.token, context)
    if result is None:
        return None
    return {**asdict(result), "is_volatile": result.is_volatile}


def cmd_url(engine: PatternEngine, args: argparse.Namespace) -> dict[str, Any] | None:
    generalized = engine.analyze_url(args.url)
    if generalized is None:
        return None
    rule = engine.page_rule(args.url)
    output = {
        "pattern": _pattern_dict(generalized),
        "rule": rule.to_dict() if rule is not None else None,
    }
    if args.examples > 0:
        output["examples"] = example_urls(generalized, args.examples)
    if args.alternatives:
        output["alternatives"] = [
            {
                "aggressiveness": item.aggressiveness,
                "pattern": item.pattern.pattern_string,
                "match_strategy": item.pattern.match_strategy,
                "description": item.description,
                "coverage": item.coverage,
                "limitations": list(item.limitations),
            }
            for item in engine.page_alternatives(args.url) or []
        ]
    return output


def cmd_selector(engine: PatternEngine, args: argparse.Namespace) -> dict[str, Any] | None:
    try:
        payload = json.loads(args.payload.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
        engine.logger.warning("Could not read snapshot %s: %s", args.payload, exc)
        return None

    element = descriptor_from_payload(payload)
    candidate = engine.generate_selector(element)
    if candidate is None:
        return None
    rule = engine.element_rule(element)
    output: dict[str, Any] = {
        "selector": _candidate_dict(candidate),
        "rule": rule.to_dict() if rule is not None else None,
    }
    if args.alternatives:
        analysis = engine.alternatives(element)
        if analysis is not None:
            output["alternatives"] = [_candidate_dict(item) for item in analysis.alternatives]
            output["stability"] = analysis.stability_level
            output["complexity"] = analysis.complexity
            output["recommendations"] = list(analysis.recommendations)
        simplified = simplified_rule(
            SelectorSource.from_candidate(candidate),
            check_compatibility=engine.options.check_compatibility,
        )
        if simplified is not None:
            output["simplified_rule"] = simplified.to_dict()
    return output


def _options_for(args: argparse.Namespace) -> EngineOptions:
    options = load_engine_options(args.config)
    overrides: dict[str, Any] = {}
    if getattr(args, "aggressiveness", None):
        overrides["aggressiveness"] = args.aggressiveness
    if getattr(args, "preserve_query", False):
        overrides["preserve_query"] = True
    if getattr(args, "preserve_hash", False):
        overrides["preserve_hash"] = True
    if getattr(args, "max_wildcards", None) is not None:
        overrides["max_wildcards"] = max(0, args.max_wildcards)
    if getattr(args, "strategy", None):
        overrides["shadow_strategy"] = args.strategy
    if getattr(args, "nth_child", False):
        overrides["include_nth_child"] = True
    return replace(options, **overrides)


def _pattern_dict(generalized: GeneralizedURLPattern) -> dict[str, Any]:
    return {
        "source_url": generalized.source_url,
        "pattern": generalized.pattern_string,
        "match_strategy": generalized.match_strategy,
        "confidence": generalized.confidence,
        "environment": generalized.environment,
        "url_type": generalized.url_type,
        "regex": regex_pattern(generalized),
        "volatile_segments": [
            {
                "value": segment.raw_value,
                "position": segment.position,
                "in_fragment": segment.in_fragment,
                "category": result.category,
                "confidence": result.confidence,
            }
            for segment, result in generalized.volatile_segments
        ],
        "warnings": generalized.warnings,
        "suggestions": generalized.suggestions,
    }


def _candidate_dict(candidate: CandidateSelector) -> dict[str, Any]:
    return {
        "selector": candidate.selector,
        "strategy": candidate.strategy,
        "specificity": candidate.specificity,
        "is_stable": candidate.is_stable,
        "shadow_aware": candidate.shadow_aware,
        "score": candidate.score,
        "explanation": candidate.explanation,
        "warnings": candidate.warnings,
    }


_COMMANDS = {
    "classify": cmd_classify,
    "url": cmd_url,
    "selector": cmd_selector,
}


def main(argv: Sequence[str] | None = None) -> int:
    if sys.version_info < (3, 11):
        raise SystemExit(
            "stablepattern requires Python 3.11+. "
            f"Current interpreter: {sys.executable} (Python {sys.version.split()[0]})"
        )
    args = build_parser().parse_args(argv)
    logger = build_logger()
    engine = PatternEngine(_options_for(args))

    result = _COMMANDS[args.command](engine, args)
    if result is None:
        logger.info("No result for %s command.", args.command)
        print(json.dumps({"error": "no result"}), file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
