import io
import logging

from mdchunker.core.config import LoggingConfig
from mdchunker.core.log import PACKAGE_LOGGER_NAME, configure_logging, get_logger, temp_level


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_get_logger_defaults_to_package_logger():
    assert get_logger().name == PACKAGE_LOGGER_NAME
    assert get_logger("mdchunker.core.chunk").parent.name in {PACKAGE_LOGGER_NAME, "mdchunker.core"}


def test_configure_logging_sets_logger_level():
    logger = logging.getLogger("mdchunker")
    logger.setLevel(logging.WARNING)
    try:
        configure_logging(level="DEBUG", stream=io.StringIO())
        assert logger.level == logging.DEBUG
    finally:
        _reset(logger)


def test_configure_logging_adds_single_stream_handler():
    logger = logging.getLogger("mdchunker.test.handlers")
    stream = io.StringIO()
    try:
        configure_logging(level="INFO", stream=stream, logger_name=logger.name, fmt="%(message)s")
        configure_logging(level="INFO", stream=stream, logger_name=logger.name, fmt="%(message)s")
        handlers = [h for h in logger.handlers if isinstance(h, logging.StreamHandler)]
        assert len(handlers) == 1

        logger.info("packed %d chunks", 3)
        assert stream.getvalue() == "packed 3 chunks\n"
    finally:
        _reset(logger)


def test_unknown_level_name_falls_back_to_info():
    logger = logging.getLogger("mdchunker.test.fallback")
    try:
        configure_logging(level="CHATTY", stream=io.StringIO(), logger_name=logger.name)
        assert logger.level == logging.INFO
    finally:
        _reset(logger)


def test_temp_level_changes_and_restores():
    logger = logging.getLogger("mdchunker.test.temp")
    logger.setLevel(logging.WARNING)
    original_level = logger.level

    with temp_level(logging.DEBUG, name=logger.name):
        assert logger.level == logging.DEBUG

    assert logger.level == original_level


def test_logging_config_apply_controls_propagation():
    logger = logging.getLogger("mdchunker.test.apply")
    try:
        LoggingConfig(level="ERROR", propagate=False, logger_name=logger.name).apply()
        assert logger.level == logging.ERROR
        assert logger.propagate is False
    finally:
        _reset(logger)
