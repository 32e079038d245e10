import logging

import pytest

from config.config_entry import LogSettings
from core.call_logger import CallLogger, level_for
from core.message_renderer import MessageRenderer

LOGGER_NAME = "core.call_logger"


@pytest.fixture
def renderer():
    return MessageRenderer()


def make_logger(renderer, **settings):
    return CallLogger(LogSettings(**settings), renderer)


def messages(caplog):
    return [r.getMessage() for r in caplog.records if r.name == LOGGER_NAME]


def test_logs_every_call_by_default(renderer, caplog):
    call_logger = make_logger(renderer, before="start [[ ServiceName ]]")
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        for _ in range(3):
            call_logger.log_before({"ServiceName": "svc"})
    assert messages(caplog) == ["start svc"] * 3


def test_log_on_call_zero_disables(renderer, caplog):
    call_logger = make_logger(renderer, before="start", after="end", logOnCall=0)
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        call_logger.log_before({})
        call_logger.log_after({})
    assert messages(caplog) == []


def test_samples_every_nth_call(renderer, caplog):
    call_logger = make_logger(renderer, after="done", logOnCall=3)
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        for _ in range(7):
            call_logger.log_after({})
    assert len(messages(caplog)) == 2


def test_after_always_fires_when_before_is_set(renderer, caplog):
    call_logger = make_logger(renderer, before="in", after="out", logOnCall=2)
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        for _ in range(4):
            call_logger.log_before({})
            call_logger.log_after({})
    logged = messages(caplog)
    assert logged.count("in") == 2
    assert logged.count("out") == 4


def test_levels_and_multiline(renderer, caplog):
    call_logger = make_logger(renderer, before="line one\nline two", beforeLevel="warn")
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        call_logger.log_before({})
    records = [r for r in caplog.records if r.name == LOGGER_NAME]
    assert [r.getMessage() for r in records] == ["line one", "line two"]
    assert all(r.levelno == logging.WARNING for r in records)


def test_failed_render_logs_nothing(renderer, caplog):
    call_logger = make_logger(renderer, before="[[ broken(")
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        call_logger.log_before({})
    assert messages(caplog) == []


@pytest.mark.parametrize("name, level", [
    ("debug", logging.DEBUG),
    ("WARN", logging.WARNING),
    ("error", logging.ERROR),
    ("", logging.INFO),
    ("chatty", logging.INFO),
])
def test_level_for(name, level):
    assert level_for(name) == level
