import logging
from logging.handlers import RotatingFileHandler

import pytest

from converter.logging_setup import LOG_FILE_MAX_BYTES, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if type(handler) in (logging.StreamHandler, RotatingFileHandler):
            handler.close()
            root.removeHandler(handler)
    root.setLevel(level)


def test_console_only(restore_root_logger):
    assert setup_logging(verbose=True) is None
    handler, = restore_root_logger.handlers
    assert handler.level == logging.DEBUG


def test_rotating_file(restore_root_logger, tmp_path):
    log_file = setup_logging(log_dir=tmp_path / "logs")

    assert log_file.parent == tmp_path / "logs"
    file_handlers = [h for h in restore_root_logger.handlers if isinstance(h, RotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].maxBytes == LOG_FILE_MAX_BYTES

    logging.getLogger("converter.test").debug("hello file")
    file_handlers[0].flush()
    assert "hello file" in log_file.read_text(encoding="utf-8")


def test_unusable_log_dir_falls_back_to_console(restore_root_logger, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    assert setup_logging(log_dir=blocker / "logs") is None
    assert len(restore_root_logger.handlers) == 1
