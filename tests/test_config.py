import json
from pathlib import Path

from stablepattern.config import EngineOptions, load_engine_options, options_from_mapping, save_engine_options


def test_defaults() -> None:
    options = EngineOptions()
    assert options.aggressiveness == "moderate"
    assert options.shadow_strategy == "host-based"
    assert options.preserve_query is False
    assert options.preserve_hash is False
    assert options.max_wildcards == 5
    assert options.check_compatibility is True
    assert options.include_nth_child is False


def test_engine_options_roundtrip(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.json"
    original = EngineOptions(aggressiveness="aggressive", shadow_strategy="minimal", preserve_hash=True, max_wildcards=3)
    ok, message = save_engine_options(original, config_path)
    assert ok
    assert message is None
    assert load_engine_options(config_path) == original
    assert not list(config_path.parent.glob("*.tmp"))


def test_load_falls_back_to_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    assert load_engine_options(config_path) == EngineOptions()
    config_path.write_text("{invalid", encoding="utf-8")
    assert load_engine_options(config_path) == EngineOptions()
    config_path.write_text("[1, 2]", encoding="utf-8")
    assert load_engine_options(config_path) == EngineOptions()


def test_invalid_fields_keep_their_defaults(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "aggressiveness": "wild",
                "shadow_strategy": "FULL-PATH",
                "max_wildcards": -1,
                "preserve_query": True,
                "check_compatibility": "yes",
            }
        ),
        encoding="utf-8",
    )
    options = load_engine_options(config_path)
    assert options.aggressiveness == "moderate"
    assert options.shadow_strategy == "full-path"
    assert options.max_wildcards == 5
    assert options.preserve_query is True
    assert options.check_compatibility is True


def test_options_from_mapping_ignores_boolean_wildcard_count() -> None:
    assert options_from_mapping({"max_wildcards": True}).max_wildcards == 5
    assert options_from_mapping({"max_wildcards": 0}).max_wildcards == 0
