from __future__ import annotations

import re
from typing import Sequence

STABLE_ATTRIBUTES = ("data-pendo", "role", "name", "type")
MAX_STABLE_CLASSES = 3

_CSS_SAFE_ID_PATTERN = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")
_LONG_NUMBER_PATTERN = re.compile(r"\d{3,}")
_HEX_RUN_PATTERN = re.compile(r"[0-9a-f]{6,}", re.IGNORECASE)

_STABLE_SELECTOR_PATTERNS = (
    re.compile(r"#[A-Za-z]"),
    re.compile(r"\[data-testid"),
    re.compile(r"\[data-component"),
    re.compile(r"\[aria-label"),
    re.compile(r"\[role="),
)

_UNSTABLE_SELECTOR_PATTERNS = (
    re.compile(r":nth-child"),
    re.compile(r":nth-of-type"),
    _LONG_NUMBER_PATTERN,
)

_COMBINATORS = frozenset(" \t\r\n>+~,")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def normalize_space(value: str | None, limit: int = 200) -> str:
    if not value:
        return ""
    compact = re.sub(r"\s+", " ", str(value)).strip()
    return compact[:limit] if compact else ""


def normalize_classes(raw: Sequence[str] | str | None) -> list[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        items = raw.split()
    else:
        items = [item for item in raw if isinstance(item, str)]

    seen: set[str] = set()
    normalized: list[str] = []
    for item in items:
        clean = item.strip()
        if not clean or clean in seen:
            continue
        seen.add(clean)
        normalized.append(clean)
    return normalized


def has_hex_like_run(value: str) -> bool:
    """True for runs of 6+ hex characters that contain a digit."""

    return any(any(char.isdigit() for char in match.group(0)) for match in _HEX_RUN_PATTERN.finditer(value))


def is_stable_class(class_name: str) -> bool:
    text = class_name.strip()
    if not text:
        return False
    return not _LONG_NUMBER_PATTERN.search(text) and not has_hex_like_run(text)


def filter_stable_classes(classes: Sequence[str] | str | None, limit: int = MAX_STABLE_CLASSES) -> list[str]:
    return [item for item in normalize_classes(classes) if is_stable_class(item)][:limit]


def is_css_safe_id(value: str) -> bool:
    return bool(_CSS_SAFE_ID_PATTERN.fullmatch(value.strip()))


def escape_css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def escape_css_identifier(value: str) -> str:
    escaped: list[str] = []
    for char in value:
        if char.isalnum() or char in ("-", "_"):
            escaped.append(char)
        else:
            escaped.append(f"\\{ord(char):x} ")
    return "".join(escaped)


def attribute_selector(attr: str, value: str) -> str:
    return f'[{attr}="{escape_css_string(value)}"]'


def id_selector(value: str) -> str:
    id_value = value.strip()
    if is_css_safe_id(id_value):
        return f"#{id_value}"
    return attribute_selector("id", id_value)


def class_selector(classes: Sequence[str]) -> str:
    return "".join(f".{escape_css_identifier(item)}" for item in classes)


def is_stable_selector(selector: str) -> bool:
    text = selector.strip()
    if not text:
        return False
    if not any(pattern.search(text) for pattern in _STABLE_SELECTOR_PATTERNS):
        return False
    if any(pattern.search(text) for pattern in _UNSTABLE_SELECTOR_PATTERNS):
        return False
    return not has_hex_like_run(text)


def calculate_specificity(selector: str) -> int:
    """Score a selector: ids 100, classes/attributes/pseudo-classes 10, tags 1.

    Pseudo-elements count 1. Bracket, quote and parenthesis contents are
    skipped so attribute values never add to the score.
    """

    text = selector.strip()
    length = len(text)
    score = 0
    index = 0
    compound_start = True
    while index < length:
        char = text[index]
        if char in _COMBINATORS:
            compound_start = True
            index += 1
            continue

        if char == "#":
            score += 100
            index = _skip_identifier(text, index + 1)
        elif char == ".":
            score += 10
            index = _skip_identifier(text, index + 1)
        elif char == "[":
            score += 10
            index = _skip_enclosed(text, index, "[", "]")
        elif char == ":":
            if text.startswith("::", index):
                score += 1
                index = _skip_identifier(text, index + 2)
            else:
                score += 10
                index = _skip_identifier(text, index + 1)
            if index < length and text[index] == "(":
                index = _skip_enclosed(text, index, "(", ")")
        elif char == "*":
            index += 1
        elif compound_start and (char.isalpha() or char in "_-\\"):
            score += 1
            index = _skip_identifier(text, index)
        else:
            index += 1
        compound_start = False
    return score


def _skip_identifier(text: str, index: int) -> int:
    length = len(text)
    while index < length:
        char = text[index]
        if char == "\\":
            index += 1
            if index < length and text[index] in _HEX_DIGITS:
                end = index
                while end < length and end - index < 6 and text[end] in _HEX_DIGITS:
                    end += 1
                index = end + 1 if end < length and text[end] == " " else end
            else:
                index += 1
            continue
        if char.isalnum() or char in "-_" or ord(char) > 127:
            index += 1
            continue
        break
    return index


def _skip_enclosed(text: str, index: int, opener: str, closer: str) -> int:
    depth = 0
    quote: str | None = None
    length = len(text)
    while index < length:
        char = text[index]
        if quote:
            if char == "\\":
                index += 2
                continue
            if char == quote:
                quote = None
        elif char in ("'", '"'):
            quote = char
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return index + 1
        index += 1
    return length
