"""
test_logging_config.py
デバッグ出力制御とロギング設定のテスト
"""
import logging

import pytest

from locatree.debug_control import get_debug_control, print_init
from locatree.logging_config import get_logger, update_log_levels


@pytest.fixture
def restore_log_level():
    yield
    update_log_levels()


@pytest.mark.unit
@pytest.mark.parametrize("raw, level, enabled", [
    ("0", 0, False),
    ("false", 0, False),
    ("1", 1, True),
    ("on", 1, True),
    ("verbose", 2, True),
])
def test_debug_mode_from_environment(monkeypatch, raw, level, enabled):
    monkeypatch.setenv("DEBUG_MODE", raw)
    control = get_debug_control()
    assert control.get_debug_mode() == level
    assert control.is_enabled == enabled


@pytest.mark.unit
def test_print_init_only_in_debug_mode(monkeypatch, capsys):
    monkeypatch.setenv("DEBUG_MODE", "0")
    print_init("[OK] Hidden initialized")
    assert capsys.readouterr().out == ""

    monkeypatch.setenv("DEBUG_MODE", "1")
    print_init("[OK] Visible initialized")
    assert "[OK] Visible initialized" in capsys.readouterr().out


@pytest.mark.unit
def test_module_loggers_share_package_handlers():
    logger = get_logger("locatree.managers.catalog_session")
    assert logger is get_logger("locatree.managers.catalog_session")
    assert logger.name.startswith("locatree.")
    assert logging.getLogger("locatree").handlers


@pytest.mark.unit
def test_console_level_follows_debug_mode(monkeypatch, restore_log_level):
    package_logger = logging.getLogger("locatree")
    console = package_logger.handlers[0]

    monkeypatch.setenv("DEBUG_MODE", "2")
    update_log_levels()
    assert console.level == logging.DEBUG

    monkeypatch.setenv("DEBUG_MODE", "0")
    update_log_levels()
    assert console.level == logging.WARNING
