"""
Tests for log file setup and pruning
"""
import logging
import logging.handlers
import os

import pytest

from creditline.config import settings
from creditline.utils.logging_config import _prune_rotated_logs, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _rotated(tmp_path, name, count):
    files = []
    for day in range(count):
        path = tmp_path / f"{name}.2026-01-{day + 1:02d}"
        path.write_text("old")
        os.utime(path, (1_700_000_000 + day, 1_700_000_000 + day))
        files.append(path)
    return files


def test_prune_keeps_newest_rotated_files(tmp_path):
    live = tmp_path / "ledger.log"
    live.write_text("live")
    files = _rotated(tmp_path, "ledger.log", 5)

    removed = _prune_rotated_logs(live, keep=2)

    assert removed == 3
    assert live.exists()
    assert [f.exists() for f in files] == [False, False, False, True, True]


def test_prune_ignores_other_logs(tmp_path):
    other = _rotated(tmp_path, "other.log", 3)

    assert _prune_rotated_logs(tmp_path / "ledger.log", keep=0) == 0
    assert all(f.exists() for f in other)


def test_setup_uses_configured_file_and_retention(tmp_path, monkeypatch, restore_root_logger):
    monkeypatch.setattr(settings.logging, "log_file_name", "credits.log")
    monkeypatch.setattr(settings.logging, "backup_count", 2)
    _rotated(tmp_path, "credits.log", 4)

    log_file = setup_logging(tmp_path)

    assert log_file == tmp_path / "credits.log"
    file_handlers = [
        h for h in logging.getLogger().handlers if isinstance(h, logging.handlers.TimedRotatingFileHandler)
    ]
    assert len(file_handlers) == 1
    assert file_handlers[0].backupCount == 2
    assert len(list(tmp_path.glob("credits.log.*"))) == 2
    assert logging.getLogger("pymongo").level == logging.WARNING
