"""
Tests for logging configuration.
"""

import io
import logging

import pytest

from concept_graph.utils.logging_config import PACKAGE_LOGGER_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    level, handlers, propagate = logger.level, list(logger.handlers), logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_get_logger_namespaces_names():
    assert get_logger("concept_graph.graph").name == "concept_graph.graph"
    assert get_logger("concept_graph").name == "concept_graph"
    assert get_logger("scripts.ingest").name == "concept_graph.scripts.ingest"


def test_setup_logging_writes_to_stream():
    stream = io.StringIO()
    setup_logging("DEBUG", stream=stream)

    get_logger("concept_graph.analysis").debug("clustered %d sentences", 12)

    output = stream.getvalue()
    assert "clustered 12 sentences" in output
    assert "concept_graph.analysis" in output
    assert "DEBUG" in output


def test_setup_logging_respects_level():
    stream = io.StringIO()
    setup_logging("WARNING", stream=stream)

    get_logger("concept_graph.x").info("hidden")
    get_logger("concept_graph.x").warning("shown")

    assert "hidden" not in stream.getvalue()
    assert "shown" in stream.getvalue()


def test_setup_logging_does_not_stack_handlers():
    setup_logging("INFO", stream=io.StringIO())
    logger = setup_logging("INFO", stream=io.StringIO())
    owned = [h for h in logger.handlers if getattr(h, "_concept_graph_handler", False)]
    assert len(owned) == 1


def test_setup_logging_level_from_environment(monkeypatch):
    monkeypatch.setenv("CONCEPT_GRAPH_LOG_LEVEL", "error")
    logger = setup_logging(stream=io.StringIO())
    assert logger.level == logging.ERROR


def test_setup_logging_numeric_level():
    assert setup_logging(logging.DEBUG, stream=io.StringIO()).level == logging.DEBUG


def test_setup_logging_unknown_level():
    with pytest.raises(ValueError):
        setup_logging("CHATTY", stream=io.StringIO())
