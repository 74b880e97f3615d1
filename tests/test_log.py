import logging
from pathlib import Path

from stablepattern.log import build_logger


def test_build_logger_writes_to_file_once(tmp_path: Path) -> None:
    logger = build_logger(tmp_path, name="stablepattern-test-file")
    try:
        again = build_logger(tmp_path, name="stablepattern-test-file")
        assert again is logger
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.FileHandler)
        assert logger.propagate is False

        logger.info("hello")
        logger.handlers[0].flush()
        assert "INFO hello" in (tmp_path / "engine.log").read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


def test_build_logger_falls_back_to_stream(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    logger = build_logger(blocker / "logs", name="stablepattern-test-stream")
    try:
        assert len(logger.handlers) == 1
        assert type(logger.handlers[0]) is logging.StreamHandler
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
