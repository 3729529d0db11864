"""Tests for habitron.core.utils.logging."""

import os

from loguru import logger

from habitron.core.utils.logging import setup_logging


def test_file_sink_receives_messages(tmp_dir):
    log_file = os.path.join(tmp_dir, "habitron.log")
    setup_logging(level="INFO", log_file=log_file)
    try:
        logger.info("resync started")
        logger.debug("not written")
        logger.complete()
    finally:
        setup_logging()

    with open(log_file) as f:
        content = f.read()
    assert "resync started" in content
    assert "not written" not in content


def test_relative_log_file_goes_under_log_dir(tmp_dir):
    log_dir = os.path.join(tmp_dir, "logs")
    setup_logging(level="DEBUG", log_file="habitron.log", log_dir=log_dir)
    try:
        logger.debug("worker ready")
        logger.complete()
    finally:
        setup_logging()

    with open(os.path.join(log_dir, "habitron.log")) as f:
        assert "MainThread" in f.read()
