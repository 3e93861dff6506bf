"""
logging_config.py
"locatree" パッケージロガーの構成

モジュールは get_logger(__name__) で子ロガーを取得し、出力先は
パッケージロガーに付けたハンドラーへ集約されます。

- コンソール: DEBUG_MODE に応じて WARNING / INFO / DEBUG
- ファイル: DEBUG_MODE >= 1 のとき LOCATREE_LOG_DIR（既定は ./logs）の
  locatree.log にローテーションしながら全レベルを記録
"""
import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

from .debug_control import get_debug_control

PACKAGE_LOGGER = "locatree"
LOG_FILE_NAME = "locatree.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_CONSOLE_LEVELS = {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}

_console: Optional[logging.Handler] = None


def _console_level() -> int:
    return _CONSOLE_LEVELS.get(get_debug_control().get_debug_mode(), logging.DEBUG)


def _file_handler() -> logging.Handler:
    log_dir = Path(os.environ.get("LOCATREE_LOG_DIR") or Path.cwd() / "logs")
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    return handler


def _configure() -> logging.Handler:
    """パッケージロガーにハンドラーを付ける（コンソールが常に先頭）"""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(logging.DEBUG)
    package_logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(_console_level())
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    package_logger.addHandler(console)

    if get_debug_control().is_enabled:
        package_logger.addHandler(_file_handler())

    return console


def get_logger(name: str) -> logging.Logger:
    """
    モジュール用のロガーを返す

    Args:
        name: 通常は __name__（"locatree." 配下の名前）

    Returns:
        logging.Logger: パッケージロガーの子ロガー
    """
    global _console
    if _console is None:
        _console = _configure()
    return logging.getLogger(name)


def update_log_levels() -> None:
    """DEBUG_MODE を読み直してコンソールのレベルを合わせる"""
    global _console
    if _console is None:
        _console = _configure()
    else:
        _console.setLevel(_console_level())
