"""
error_handling.py
カタログ編集で起こるエラーの分類と通知

- AppError: 重大度・カテゴリ・回復アクションを持つ例外
- CatalogError のサブクラス: 読み込み・保存の失敗、パス不明、言語コードや
  キー名の不正、インポート形式の不正
- ErrorHandler: ログ出力、履歴、APP_ERROR イベント、Flet の SnackBar 表示
"""
from collections import Counter
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Union
import functools
import json
import logging
import time
import traceback

import flet as ft

from .debug_control import print_init
from .logging_config import get_logger
from .messages import t

logger = get_logger(__name__)


class ErrorSeverity(Enum):
    DEBUG = auto()
    INFO = auto()
    WARNING = auto()    # 操作は無視され、状態は変わらない
    ERROR = auto()      # 操作は中断されるが編集は続けられる
    CRITICAL = auto()


class ErrorCategory(Enum):
    FILE_IO = auto()
    DATA_PROCESSING = auto()
    UI = auto()
    VALIDATION = auto()
    NETWORK = auto()    # カタログの取得元・保存先
    SYSTEM = auto()
    OTHER = auto()


class RecoveryAction(Enum):
    RETRY = auto()
    IGNORE = auto()
    ROLLBACK = auto()
    ALTERNATIVE = auto()
    CANCEL = auto()
    ABORT = auto()


class ErrorKind(Enum):
    """カタログ操作のエラー種別"""
    FETCH_FAILED = auto()
    SAVE_FAILED = auto()
    PATH_NOT_FOUND = auto()
    INVALID_LANGUAGE_CODE = auto()
    INVALID_KEY_NAME = auto()
    MALFORMED_EXPORT_INPUT = auto()


# 組み込み例外からカテゴリを推測する対応表（先に一致したものを使う）
_CATEGORY_BY_EXCEPTION = (
    ((ConnectionError, TimeoutError), ErrorCategory.NETWORK),
    ((FileNotFoundError, PermissionError, OSError), ErrorCategory.FILE_IO),
    ((json.JSONDecodeError, TypeError, ValueError), ErrorCategory.DATA_PROCESSING),
)

_LOG_LEVELS = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


def _format_traceback(exception: Optional[BaseException]) -> Optional[str]:
    if exception is None:
        return None
    return "".join(traceback.format_exception(type(exception), exception, exception.__traceback__))


class AppError(Exception):
    """
    アプリケーションのエラー

    Attributes:
        message (str): 表示用メッセージ
        severity (ErrorSeverity): 重大度
        category (ErrorCategory): カテゴリ
        recovery_actions (List[RecoveryAction]): 選べる回復アクション
        original_exception (Exception): 元になった例外
        context (Dict[str, Any]): 発生箇所の補足情報
    """

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        category: ErrorCategory = ErrorCategory.OTHER,
        recovery_actions: Optional[List[RecoveryAction]] = None,
        original_exception: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.category = category
        self.recovery_actions = list(recovery_actions or [])
        self.original_exception = original_exception
        self.context = dict(context or {})
        self.timestamp = time.time()
        self.traceback = _format_traceback(original_exception)

    def __str__(self) -> str:
        return f"{self.severity.name} [{self.category.name}]: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """イベントやログに載せられる辞書にする"""
        return {
            "message": self.message,
            "severity": self.severity.name,
            "category": self.category.name,
            "recovery_actions": [action.name for action in self.recovery_actions],
            "original_exception": None if self.original_exception is None else str(self.original_exception),
            "context": self.context,
            "timestamp": self.timestamp,
            "traceback": self.traceback,
        }

    @classmethod
    def from_exception(
        cls,
        exception: Exception,
        category: ErrorCategory = ErrorCategory.OTHER,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[Dict[str, Any]] = None
    ) -> "AppError":
        """
        組み込み例外を包む（型からカテゴリが分かればそちらを優先）

        Args:
            exception: 元の例外
            category: 型から推測できない場合のカテゴリ
            severity: 重大度
            context: 補足情報

        Returns:
            AppError: 包んだエラー
        """
        for types, inferred in _CATEGORY_BY_EXCEPTION:
            if isinstance(exception, types):
                category = inferred
                break
        return cls(str(exception), severity, category, original_exception=exception, context=context)


class CatalogError(AppError):
    """カタログ操作のエラー。サブクラスが種別と既定値を決める"""

    kind: Optional[ErrorKind] = None
    default_severity = ErrorSeverity.ERROR
    default_category = ErrorCategory.OTHER
    default_recovery_actions: tuple = ()

    def __init__(
        self,
        message: str,
        original_exception: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None
    ):
        super().__init__(
            message,
            severity or self.default_severity,
            self.default_category,
            list(self.default_recovery_actions),
            original_exception,
            context,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind.name if self.kind else None
        return data


class _RetryableCatalogError(CatalogError):
    default_category = ErrorCategory.NETWORK
    default_recovery_actions = (RecoveryAction.RETRY, RecoveryAction.CANCEL)


class _RejectedInput(CatalogError):
    """不正な入力。操作を無視するだけで状態は変わらない"""
    default_severity = ErrorSeverity.WARNING
    default_category = ErrorCategory.VALIDATION
    default_recovery_actions = (RecoveryAction.IGNORE,)


class FetchFailed(_RetryableCatalogError):
    """カタログを読み込めなかった"""
    kind = ErrorKind.FETCH_FAILED


class SaveFailed(_RetryableCatalogError):
    """カタログを保存できなかった"""
    kind = ErrorKind.SAVE_FAILED


class PathNotFound(CatalogError):
    """キーパスがノードに解決できない"""
    kind = ErrorKind.PATH_NOT_FOUND
    default_severity = ErrorSeverity.WARNING
    default_category = ErrorCategory.DATA_PROCESSING
    default_recovery_actions = (RecoveryAction.IGNORE,)

    def __init__(self, key_path: str, segment: Optional[str] = None, **kwargs):
        context = {**(kwargs.pop("context", None) or {}), "key_path": key_path, "segment": segment}
        super().__init__(t("error.path_not_found").format(path=key_path), context=context, **kwargs)
        self.key_path = key_path
        self.segment = segment


class InvalidLanguageCode(_RejectedInput):
    """言語コードが不正（重複、未登録、最後の1言語の削除、キー名との衝突）"""
    kind = ErrorKind.INVALID_LANGUAGE_CODE

    def __init__(self, message: str, code: str, **kwargs):
        context = {**(kwargs.pop("context", None) or {}), "code": code}
        super().__init__(message, context=context, **kwargs)
        self.code = code


class InvalidKeyName(_RejectedInput):
    """新しいキー名が不正（空、区切り文字を含む、兄弟と重複など）"""
    kind = ErrorKind.INVALID_KEY_NAME

    def __init__(self, message: str, name: str, **kwargs):
        context = {**(kwargs.pop("context", None) or {}), "name": name}
        super().__init__(message, context=context, **kwargs)
        self.name = name


class MalformedExportInput(CatalogError):
    """インポートするJSONが翻訳ツリーの形になっていない"""
    kind = ErrorKind.MALFORMED_EXPORT_INPUT
    default_category = ErrorCategory.VALIDATION
    default_recovery_actions = (RecoveryAction.CANCEL,)


_EVENT_PRIORITY_NAMES = {
    ErrorSeverity.DEBUG: "LOW",
    ErrorSeverity.INFO: "LOW",
    ErrorSeverity.WARNING: "NORMAL",
    ErrorSeverity.ERROR: "HIGH",
    ErrorSeverity.CRITICAL: "HIGHEST",
}

_SNACK_BAR_COLORS = {
    ErrorSeverity.DEBUG: ft.Colors.BLUE,
    ErrorSeverity.INFO: ft.Colors.BLUE_GREY,
    ErrorSeverity.WARNING: ft.Colors.ORANGE,
    ErrorSeverity.ERROR: ft.Colors.RED,
    ErrorSeverity.CRITICAL: ft.Colors.RED_900,
}


class ErrorHandler:
    """
    エラーを記録して利用者へ知らせる

    Args:
        event_hub (EventHub, optional): APP_ERROR の発行先
        page (ft.Page, optional): SnackBar を出すページ
    """

    def __init__(self, event_hub=None, page: Optional[ft.Page] = None):
        self.event_hub = event_hub
        self.page = page
        self.error_history: List[AppError] = []
        self.max_history_size = 100
        self._counts: Counter = Counter()
        self._recovery_callbacks: Dict[RecoveryAction, Callable[[AppError], Any]] = {}

        print_init("[OK] ErrorHandler initialized")

    def handle_error(
        self,
        error: Union[Exception, AppError],
        show_ui: bool = True,
        context: Optional[Dict[str, Any]] = None,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None
    ) -> AppError:
        """
        エラーを記録し、イベント発行と（show_ui なら）画面表示を行う

        Args:
            error: 発生したエラー（AppError 以外は包み直す）
            show_ui: SnackBar を表示するか
            context: 追加する補足情報
            category: 組み込み例外のときのカテゴリ
            severity: 組み込み例外のときの重大度

        Returns:
            AppError: 記録したエラー
        """
        if isinstance(error, AppError):
            app_error = error
            app_error.context.update(context or {})
        else:
            app_error = AppError.from_exception(
                error,
                category or ErrorCategory.OTHER,
                severity or ErrorSeverity.ERROR,
                context,
            )

        self._counts[app_error.category] += 1
        self.error_history.append(app_error)
        del self.error_history[:-self.max_history_size]

        self._log(app_error)
        self._publish(app_error)
        if show_ui:
            self._notify(app_error)
        return app_error

    def _log(self, error: AppError) -> None:
        level = _LOG_LEVELS.get(error.severity, logging.ERROR)
        logger.log(level, f"{error.category.name}: {error.message}")
        if error.traceback and level >= logging.ERROR:
            logger.log(level, error.traceback)
        if error.context:
            logger.debug(f"context: {json.dumps(error.context, ensure_ascii=False, default=str)}")

    def _publish(self, error: AppError) -> None:
        if not self.event_hub:
            return
        from .event_hub import EventPriority, EventType

        self.event_hub.publish(
            EventType.APP_ERROR,
            data=error.to_dict(),
            source="error_handler",
            priority=EventPriority[_EVENT_PRIORITY_NAMES[error.severity]],
        )

    def _notify(self, error: AppError) -> None:
        if not self.page:
            return
        retryable = RecoveryAction.RETRY in error.recovery_actions
        snack_bar = ft.SnackBar(
            content=ft.Text(error.message),
            action=t("dialog.retry") if retryable else t("dialog.close"),
            bgcolor=_SNACK_BAR_COLORS.get(error.severity, ft.Colors.RED),
        )
        # flet 1.x は show_dialog、0.2x は open
        show = getattr(self.page, "show_dialog", None) or self.page.open
        show(snack_bar)

    def register_recovery_callback(self, action: RecoveryAction, callback: Callable[[AppError], Any]) -> None:
        self._recovery_callbacks[action] = callback

    def execute_recovery_action(self, error: AppError, action: RecoveryAction) -> bool:
        """
        登録済みのコールバックで回復を試みる

        Returns:
            bool: エラーがそのアクションを許し、コールバックが真を返したら True
        """
        if action not in error.recovery_actions:
            logger.warning(f"{action.name} is not offered for: {error.message}")
            return False
        callback = self._recovery_callbacks.get(action)
        if callback is None:
            logger.warning(f"No callback registered for {action.name}")
            return False
        succeeded = bool(callback(error))
        logger.info(f"Recovery {action.name} finished: {succeeded}")
        return succeeded

    def get_error_stats(self) -> Dict[str, Any]:
        return {
            "total_errors": sum(self._counts.values()),
            "error_counts_by_category": {category.name: self._counts[category] for category in ErrorCategory},
            "recent_errors": [error.to_dict() for error in self.error_history[-10:]],
            "critical_errors": sum(error.severity is ErrorSeverity.CRITICAL for error in self.error_history),
        }

    def clear_error_history(self) -> None:
        self.error_history.clear()
        self._counts.clear()


def with_error_handling(
    category: ErrorCategory = ErrorCategory.OTHER,
    severity: ErrorSeverity = ErrorSeverity.ERROR,
    recovery_actions: Optional[List[RecoveryAction]] = None,
    show_ui: bool = True
):
    """
    メソッドの例外を self.error_handler に記録してから再送出するデコレータ

    error_handler を持たないオブジェクトでは何もしません。
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            handler = getattr(args[0], "error_handler", None) if args else None
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if handler is None:
                    raise
                context = {
                    "function": func.__name__,
                    "args": [str(arg) for arg in args[1:]],
                    "kwargs": {key: str(value) for key, value in kwargs.items()},
                }
                if isinstance(e, AppError):
                    e.context.update(context)
                    handler.handle_error(e, show_ui)
                else:
                    handler.handle_error(
                        AppError(str(e), severity, category, recovery_actions, e, context),
                        show_ui,
                    )
                raise
        return wrapper
    return decorator
