import json
import logging
from pathlib import Path

import pytest

from stablepattern import __main__ as cli


@pytest.fixture(autouse=True)
def _quiet_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "build_logger", lambda: logging.getLogger("stablepattern.cli-test"))


def _run(argv: list[str], tmp_path: Path) -> int:
    return cli.main(["--config", str(tmp_path / "missing.json"), *argv])


def test_url_command_prints_pattern_and_rule(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = _run(["url", "https://dashboard.saas.com/org/98765/project/54321/settings", "--examples", "2"], tmp_path)
    assert code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["pattern"]["pattern"] == "https://dashboard.saas.com/org/*/project/*/settings"
    assert output["rule"]["body"] == output["pattern"]["pattern"]
    assert len(output["examples"]) == 2
    assert [item["category"] for item in output["pattern"]["volatile_segments"]] == ["numeric-id", "numeric-id"]


def test_url_command_respects_flags(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = _run(["url", "https://spa.example.com/app#/users/123/profile", "--aggressiveness", "conservative"], tmp_path)
    assert code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["pattern"]["match_strategy"] == "exact"


def test_classify_command(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = _run(["classify", "1234", "--before", "user", "--after", "edit"], tmp_path)
    assert code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["category"] == "numeric-id"
    assert output["is_volatile"] is True


def test_selector_command_reads_snapshot(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    payload_path = tmp_path / "snapshot.json"
    payload_path.write_text(
        json.dumps(
            {
                "target": {"tag": "button", "id": "submit-btn", "attributes": {"data-testid": "submit"}},
                "ancestors": [{"tag": "form"}],
                "shadow_chain": [],
            }
        ),
        encoding="utf-8",
    )
    code = _run(["selector", str(payload_path), "--alternatives"], tmp_path)
    assert code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["selector"]["selector"] == "#submit-btn"
    assert output["rule"]["compatibility_tier"] == "full"
    assert output["stability"] == "high"
    assert len(output["alternatives"]) == 2


def test_missing_results_exit_with_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(["url", "not a url"], tmp_path) == 1
    assert _run(["selector", str(tmp_path / "absent.json")], tmp_path) == 1
    assert "no result" in capsys.readouterr().err


def test_url_command_lists_alternatives(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = _run(["url", "https://spa.example.com/app#/users/123/profile", "--alternatives"], tmp_path)
    assert code == 0
    output = json.loads(capsys.readouterr().out)
    assert [item["pattern"] for item in output["alternatives"]] == [
        "https://spa.example.com/app",
        "https://spa.example.com/app#/**",
    ]
