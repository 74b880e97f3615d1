from typing import Any

from stablepattern.dom_extractor import count_selector_matches, descriptor_from_payload, extract_element_descriptor


def _payload() -> dict[str, Any]:
    return {
        "target": {
            "tag": "BUTTON",
            "id": "",
            "classes": ["primary", "primary", " "],
            "attributes": {"data-testid": "buy", "disabled": None},
            "bounds": {"x": 1, "y": 2, "width": 3, "height": "4"},
            "index": 1,
        },
        "ancestors": [{"tag": "div", "classes": ["toolbar"], "index": 0}],
        "shadow_chain": [
            {"host": {"tag": "inner-widget", "id": "inner"}, "ancestors": [], "mode": "closed"},
            {"host": {"tag": "my-app", "id": "app-root"}, "ancestors": [{"tag": "body"}], "mode": "open"},
        ],
    }


class _FakeElement:
    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error
        self.calls: list[Any] = []

    def evaluate(self, script: str, arg: Any = None) -> Any:
        self.calls.append(arg)
        if self.error is not None:
            raise self.error
        return self.payload


class _FakePage:
    def __init__(self, matches: int = 0, error: Exception | None = None) -> None:
        self.matches = matches
        self.error = error

    def query_selector_all(self, selector: str) -> list[object]:
        if self.error is not None:
            raise self.error
        return [object() for _ in range(self.matches)]


def test_payload_becomes_descriptor_tree() -> None:
    descriptor = descriptor_from_payload(_payload())
    assert descriptor is not None
    assert descriptor.tag == "button"
    assert descriptor.element_id is None
    assert descriptor.classes == ("primary",)
    assert dict(descriptor.attributes) == {"data-testid": "buy"}
    assert descriptor.bounds.height == 4.0
    assert descriptor.index == 1
    assert descriptor.parent is not None
    assert descriptor.parent.tag == "div"
    assert descriptor.parent.parent is None


def test_shadow_chain_is_outermost_first() -> None:
    descriptor = descriptor_from_payload(_payload())
    assert descriptor is not None
    chain = descriptor.shadow_chain
    assert chain.depth == 2
    assert chain.boundaries[0].host.element_id == "app-root"
    assert chain.boundaries[0].mode == "open"
    assert chain.boundaries[0].host.parent is not None
    assert chain.boundaries[0].host.parent.tag == "body"
    assert chain.boundaries[1].mode == "closed"
    assert chain.boundaries[1].host.shadow_chain.depth == 1
    assert chain.first_closed_index == 1
    assert descriptor.parent is not None
    assert descriptor.parent.shadow_chain == chain


def test_invalid_payloads_give_no_descriptor() -> None:
    assert descriptor_from_payload(None) is None
    assert descriptor_from_payload({"target": {"tag": ""}}) is None
    assert descriptor_from_payload(["not", "a", "mapping"]) is None


def test_extract_uses_a_single_evaluate_call() -> None:
    element = _FakeElement(payload=_payload())
    descriptor = extract_element_descriptor(element)  # type: ignore[arg-type]
    assert descriptor is not None
    assert descriptor.tag == "button"
    assert len(element.calls) == 1
    assert element.calls[0]["ancestors"] > 0


def test_detached_elements_give_no_descriptor() -> None:
    assert extract_element_descriptor(_FakeElement(error=RuntimeError("detached"))) is None  # type: ignore[arg-type]
    assert extract_element_descriptor(_FakeElement(payload=None)) is None  # type: ignore[arg-type]


def test_count_selector_matches() -> None:
    assert count_selector_matches(_FakePage(matches=2), "#app-root .primary") == 2  # type: ignore[arg-type]
    assert count_selector_matches(_FakePage(error=ValueError("bad selector")), "::") == 0  # type: ignore[arg-type]
    assert count_selector_matches(_FakePage(matches=5), "  ") == 0  # type: ignore[arg-type]
