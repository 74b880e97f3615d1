from __future__ import annotations

import logging
from typing import Any, Mapping, TYPE_CHECKING

from playwright.sync_api import ElementHandle

from .models import BoundingBox, DOMElementDescriptor, ShadowBoundary, ShadowBoundaryChain
from .selector_rules import normalize_classes

if TYPE_CHECKING:
    from playwright.sync_api import Page

logger = logging.getLogger("stablepattern.dom")

MAX_ANCESTORS = 10
MAX_SHADOW_DEPTH = 8

_SNAPSHOT_SCRIPT = """
(el, limits) => {
  const describe = (node) => {
    const attrs = {};
    for (const attr of node.attributes) {
      attrs[attr.name] = attr.value;
    }
    let index = 0;
    let sibling = node;
    while ((sibling = sibling.previousElementSibling)) {
      index += 1;
    }
    const rect = node.getBoundingClientRect();
    return {
      tag: (node.tagName || '').toLowerCase(),
      id: node.id || null,
      classes: Array.from(node.classList || []),
      attributes: attrs,
      bounds: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
      index,
    };
  };

  const ancestorsOf = (node) => {
    const items = [];
    let current = node.parentElement;
    while (current && items.length < limits.ancestors) {
      items.push(describe(current));
      current = current.parentElement;
    }
    return items;
  };

  if (!el || !el.isConnected) {
    return null;
  }

  const shadowChain = [];
  let root = el.getRootNode();
  while (root instanceof ShadowRoot && shadowChain.length < limits.shadowDepth) {
    const host = root.host;
    shadowChain.push({ host: describe(host), ancestors: ancestorsOf(host), mode: root.mode });
    root = host.getRootNode();
  }

  return {
    target: describe(el),
    ancestors: ancestorsOf(el),
    shadow_chain: shadowChain,
  };
}
"""


def extract_element_descriptor(element: ElementHandle) -> DOMElementDescriptor | None:
    """Snapshot a live element, its ancestors and its shadow hosts."""

    try:
        payload = element.evaluate(
            _SNAPSHOT_SCRIPT,
            {"ancestors": MAX_ANCESTORS, "shadowDepth": MAX_SHADOW_DEPTH},
        )
    except Exception:
        logger.warning("Element snapshot failed; element is probably detached.", exc_info=True)
        return None
    return descriptor_from_payload(payload)


def descriptor_from_payload(payload: Any) -> DOMElementDescriptor | None:
    if not isinstance(payload, Mapping):
        return None
    target = payload.get("target")
    if not isinstance(target, Mapping) or not str(target.get("tag") or "").strip():
        return None

    raw_chain = [item for item in payload.get("shadow_chain") or [] if isinstance(item, Mapping)]
    boundaries: list[ShadowBoundary] = []
    for item in reversed(raw_chain):
        host_node = item.get("host")
        if not isinstance(host_node, Mapping):
            continue
        chain = ShadowBoundaryChain(tuple(boundaries))
        host = _build_branch(host_node, item.get("ancestors") or [], chain)
        mode = "closed" if str(item.get("mode") or "").lower() == "closed" else "open"
        boundaries.append(ShadowBoundary(host=host, mode=mode))

    return _build_branch(target, payload.get("ancestors") or [], ShadowBoundaryChain(tuple(boundaries)))


def count_selector_matches(page: Page, selector: str) -> int:
    text = str(selector or "").strip()
    if not text:
        return 0
    try:
        return len(page.query_selector_all(text))
    except Exception:
        return 0


def _build_branch(
    node: Mapping[str, Any],
    ancestors: Any,
    chain: ShadowBoundaryChain,
) -> DOMElementDescriptor:
    parent: DOMElementDescriptor | None = None
    items = [item for item in ancestors if isinstance(item, Mapping)] if isinstance(ancestors, list) else []
    for item in reversed(items):
        parent = _descriptor(item, parent, chain)
    return _descriptor(node, parent, chain)


def _descriptor(
    node: Mapping[str, Any],
    parent: DOMElementDescriptor | None,
    chain: ShadowBoundaryChain,
) -> DOMElementDescriptor:
    raw_attributes = node.get("attributes")
    attributes = (
        {str(key): str(value) for key, value in raw_attributes.items() if value is not None}
        if isinstance(raw_attributes, Mapping)
        else {}
    )
    element_id = str(node.get("id") or "").strip()
    return DOMElementDescriptor(
        tag_name=str(node.get("tag") or "").strip().lower(),
        element_id=element_id or None,
        classes=tuple(normalize_classes(node.get("classes"))),
        attributes=attributes,
        bounds=_bounds(node.get("bounds")),
        index=_int(node.get("index")),
        parent=parent,
        shadow_chain=chain,
    )


def _bounds(raw: Any) -> BoundingBox:
    if not isinstance(raw, Mapping):
        return BoundingBox()
    return BoundingBox(
        x=_float(raw.get("x")),
        y=_float(raw.get("y")),
        width=_float(raw.get("width")),
        height=_float(raw.get("height")),
    )


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0
