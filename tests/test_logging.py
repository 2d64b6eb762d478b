from __future__ import annotations

import logging
from pathlib import Path

import pytest

from ondemand import ChangeLoggingLevel, LazyCell, setup_logging


@pytest.fixture(autouse=True)
def _restore_ondemand_logger():
    logger = logging.getLogger("ondemand")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in logger.handlers:
        if handler not in handlers:
            handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


def test_change_logging_level(caplog):
    caplog.set_level(logging.DEBUG)
    logging.basicConfig(level=logging.DEBUG)
    logger = logging.getLogger(__name__)
    logger.info("before")
    with ChangeLoggingLevel(logging.WARNING):
        logger.info("inside")
    logger.info("after")
    assert "before" in caplog.text
    assert "inside" not in caplog.text
    assert "after" in caplog.text


def test_change_named_logging_level(caplog):
    caplog.set_level(logging.DEBUG, logger="ondemand")
    with ChangeLoggingLevel(logging.WARNING, logger_name="ondemand"):
        LazyCell(1, name="quiet")
    LazyCell(1, name="loud")
    assert "quiet" not in caplog.text
    assert "LazyCell('loud', filled, unborrowed) seeded" in caplog.text


@pytest.mark.parametrize(
    "kwargs",
    [
        {},
        {
            "log_file": Path("foo.log"),
            "print_level": "INFO",
            "append": True,
            "level_styles_update": {"warning": {"color": "red"}},
            "field_styles_update": {"levelname": {"color": "yellow"}},
            "disable_colors": True,
        },
    ],
)
def test_setup_logging(kwargs, tmp_path):
    if "log_file" in kwargs:
        kwargs["log_file"] = tmp_path / kwargs["log_file"]
    logger = setup_logging(**kwargs)
    assert logger.name == "ondemand"

    cell = LazyCell(name="logged")
    with cell.get(lambda: 1):
        pass
    for handler in logger.handlers:
        handler.flush()
    if "log_file" in kwargs:
        assert "Filled LazyCell('logged'" in kwargs["log_file"].read_text()


def test_setup_logging_twice_same_file(tmp_path):
    log_file = tmp_path / "twice.log"
    setup_logging(log_file=log_file)
    logger = setup_logging(log_file=log_file, append=True)
    file_handlers = [handler for handler in logger.handlers if isinstance(handler, logging.FileHandler)]
    assert len(file_handlers) == 1

    LazyCell(1, name="once")
    file_handlers[0].flush()
    assert log_file.read_text().count("LazyCell('once'") == 1
