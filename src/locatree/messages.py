"""
UIメッセージ翻訳モジュール

エディタがユーザーに表示するステータス・エラーメッセージの多言語対応を管理します。
英語と日本語のメッセージ辞書を提供し、動的な言語切り替えをサポートします。
（編集対象の翻訳カタログとは無関係な、アプリ自身の表示文言です）
"""

from typing import Dict, Optional
from .logging_config import get_logger

logger = get_logger(__name__)

SUPPORTED_UI_LANGUAGES = ("en", "ja")
FALLBACK_UI_LANGUAGE = "en"


class MessageCatalog:
    """UIメッセージ翻訳のシングルトンクラス"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._initialized = True
        self._current_language = FALLBACK_UI_LANGUAGE

        # メッセージ辞書
        self._messages: Dict[str, Dict[str, str]] = {
            # 読み込み・保存
            "status.loading": {"en": "Loading translations...", "ja": "翻訳を読み込み中..."},
            "error.fetch_failed": {"en": "Failed to fetch translations: {error}", "ja": "翻訳の取得に失敗しました: {error}"},
            "error.save_failed": {"en": "Failed to save changes: {error}", "ja": "変更の保存に失敗しました: {error}"},
            "notification.changes_saved": {"en": "Changes saved successfully", "ja": "変更を保存しました"},
            "notification.changes_discarded": {"en": "Changes discarded", "ja": "変更を破棄しました"},
            "dialog.discard_confirm": {
                "en": "You have {count} unsaved change(s). This action cannot be undone.",
                "ja": "未保存の変更が {count} 件あります。この操作は元に戻せません。",
            },

            # 言語
            "notification.language_added": {"en": "Added language: {code}", "ja": "言語を追加しました: {code}"},
            "notification.language_removed": {"en": "Removed language: {code}", "ja": "言語を削除しました: {code}"},
            "error.language_exists": {"en": "Language '{code}' is already active", "ja": "言語 '{code}' は既に有効です"},
            "error.language_unknown": {"en": "Language '{code}' is not active", "ja": "言語 '{code}' は有効ではありません"},
            "error.language_last": {"en": "At least one language must remain", "ja": "少なくとも1つの言語が必要です"},
            "error.language_invalid": {"en": "Invalid language code: '{code}'", "ja": "無効な言語コードです: '{code}'"},
            "error.language_collides": {"en": "Language code '{code}' is already used as a key name", "ja": "言語コード '{code}' はキー名として使われています"},

            # キー操作
            "error.path_not_found": {"en": "Key path not found: {path}", "ja": "キーパスが見つかりません: {path}"},
            "error.key_name_invalid": {"en": "Invalid key name: '{name}'", "ja": "無効なキー名です: '{name}'"},
            "error.key_name_exists": {"en": "Key '{name}' already exists in '{parent}'", "ja": "キー '{name}' は '{parent}' に既に存在します"},
            "notification.key_renamed": {"en": "Renamed '{old}' to '{new}'", "ja": "'{old}' を '{new}' に変更しました"},

            # エクスポート・インポート
            "notification.exported": {"en": "Exported {filename}", "ja": "{filename} をエクスポートしました"},
            "error.malformed_import": {"en": "Invalid translation file: {error}", "ja": "翻訳ファイルが不正です: {error}"},
            "notification.imported": {"en": "Imported {count} translation(s)", "ja": "{count} 件の翻訳をインポートしました"},

            # 汎用
            "dialog.close": {"en": "Close", "ja": "閉じる"},
            "dialog.retry": {"en": "Retry", "ja": "再試行"},
        }

        logger.debug(f"Message catalog initialized with language: {self._current_language}")

    def set_language(self, language: str) -> None:
        """表示言語を設定"""
        if language not in SUPPORTED_UI_LANGUAGES:
            logger.warning(f"Invalid UI language code: {language}, defaulting to '{FALLBACK_UI_LANGUAGE}'")
            language = FALLBACK_UI_LANGUAGE

        self._current_language = language
        logger.info(f"UI language changed to: {language}")

    def get_language(self) -> str:
        """現在の表示言語を取得"""
        return self._current_language

    def t(self, key: str, default: Optional[str] = None) -> str:
        """
        メッセージを取得

        Args:
            key: メッセージキー（ドット記法）
            default: メッセージが見つからない場合のデフォルト値

        Returns:
            翻訳されたメッセージ
        """
        if key in self._messages:
            message = self._messages[key].get(self._current_language)
            if message:
                return message

            # 現在の言語で見つからない場合は英語にフォールバック
            fallback = self._messages[key].get(FALLBACK_UI_LANGUAGE)
            if fallback:
                logger.debug(f"Message not found for key '{key}' in '{self._current_language}', falling back")
                return fallback

        if default:
            return default

        logger.warning(f"Message not found for key: {key}")
        return key  # キーをそのまま返す


# シングルトンインスタンスを作成
_message_catalog = MessageCatalog()


def t(key: str, default: Optional[str] = None) -> str:
    """メッセージを取得するショートカット関数"""
    return _message_catalog.t(key, default)


def set_language(language: str) -> None:
    """表示言語を設定"""
    _message_catalog.set_language(language)


def get_language() -> str:
    """現在の表示言語を取得"""
    return _message_catalog.get_language()
