from __future__ import annotations

from dataclasses import asdict, dataclass
import json
from pathlib import Path
import tempfile
from typing import Any, Mapping

from .models import Aggressiveness, ShadowStrategy

CONFIG_DIR = Path.home() / ".stablepattern"
CONFIG_PATH = CONFIG_DIR / "config.json"

AGGRESSIVENESS_LEVELS: tuple[Aggressiveness, ...] = ("conservative", "moderate", "aggressive")
SHADOW_STRATEGIES: tuple[ShadowStrategy, ...] = ("host-based", "full-path", "minimal")


@dataclass(frozen=True, slots=True)
class EngineOptions:
    aggressiveness: Aggressiveness = "moderate"
    shadow_strategy: ShadowStrategy = "host-based"
    preserve_query: bool = False
    preserve_hash: bool = False
    max_wildcards: int = 5
    check_compatibility: bool = True
    include_nth_child: bool = False


def options_from_mapping(payload: Mapping[str, Any]) -> EngineOptions:
    """Build options from loose input, keeping the default for any bad field."""

    defaults = EngineOptions()
    aggressiveness = str(payload.get("aggressiveness", defaults.aggressiveness) or "").strip().lower()
    shadow_strategy = str(payload.get("shadow_strategy", defaults.shadow_strategy) or "").strip().lower()

    return EngineOptions(
        aggressiveness=aggressiveness if aggressiveness in AGGRESSIVENESS_LEVELS else defaults.aggressiveness,
        shadow_strategy=shadow_strategy if shadow_strategy in SHADOW_STRATEGIES else defaults.shadow_strategy,
        preserve_query=_bool(payload.get("preserve_query"), defaults.preserve_query),
        preserve_hash=_bool(payload.get("preserve_hash"), defaults.preserve_hash),
        max_wildcards=_non_negative_int(payload.get("max_wildcards"), defaults.max_wildcards),
        check_compatibility=_bool(payload.get("check_compatibility"), defaults.check_compatibility),
        include_nth_child=_bool(payload.get("include_nth_child"), defaults.include_nth_child),
    )


def load_engine_options(config_path: Path | None = None) -> EngineOptions:
    path = config_path or CONFIG_PATH
    if not path.exists() or not path.is_file():
        return EngineOptions()

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, TypeError, UnicodeDecodeError):
        return EngineOptions()

    if not isinstance(payload, dict):
        return EngineOptions()
    return options_from_mapping(payload)


def save_engine_options(options: EngineOptions, config_path: Path | None = None) -> tuple[bool, str | None]:
    path = config_path or CONFIG_PATH

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        return False, f"Could not create config folder: {exc}"

    payload = json.dumps(asdict(options), ensure_ascii=True, indent=2, sort_keys=True)
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            handle.write(payload)
            handle.flush()
            temp_path = Path(handle.name)

        temp_path.replace(path)
    except OSError as exc:
        if temp_path and temp_path.exists():
            temp_path.unlink(missing_ok=True)
        return False, f"Could not write engine options: {exc}"

    return True, None


def _bool(value: Any, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def _non_negative_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value >= 0 else default
