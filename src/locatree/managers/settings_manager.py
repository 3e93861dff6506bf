"""設定管理マネージャー"""
import json
import os
from typing import Dict, Any, Optional

from ..event_hub import EventHub, EventType
from ..logging_config import get_logger
from ..messages import SUPPORTED_UI_LANGUAGES, set_language as set_ui_language_global

logger = get_logger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    "catalog_file": None,          # 読み込み・保存に使うカタログJSON（None の場合はサンプル）
    "export_indent": 2,
    "export_dir": ".",
    "default_languages": ["en"],   # 新規カタログの言語
    "ui_language": "en",           # en, ja
    "recent_files": [],
}

MAX_RECENT_FILES = 10


def default_settings_file() -> str:
    """設定ファイルの既定パス（LOCATREE_SETTINGS で上書き可能）"""
    return os.environ.get("LOCATREE_SETTINGS") or os.path.join(
        os.path.expanduser("~"), ".locatree", "settings.json"
    )


class SettingsManager:
    """アプリケーション設定の管理を担当するマネージャー"""

    def __init__(self, settings_file: Optional[str] = None, event_hub: Optional[EventHub] = None):
        """SettingsManagerの初期化

        Args:
            settings_file: 設定ファイルのパス（省略時は既定パス）
            event_hub: イベントハブ（オプション）
        """
        self._event_hub = event_hub
        self._settings_file = settings_file or default_settings_file()
        self._settings: Dict[str, Any] = self._load_settings()

    @property
    def settings_file(self) -> str:
        return self._settings_file

    def _load_settings(self) -> Dict[str, Any]:
        """設定ファイルから設定を読み込む"""
        settings = json.loads(json.dumps(DEFAULT_SETTINGS))

        if os.path.exists(self._settings_file):
            try:
                with open(self._settings_file, 'r', encoding='utf-8') as f:
                    loaded_settings = json.load(f)
                if isinstance(loaded_settings, dict):
                    # デフォルト設定とマージ
                    settings.update(loaded_settings)
                else:
                    logger.warning(f"Ignoring settings file with non-object root: {self._settings_file}")
            except (json.JSONDecodeError, IOError) as e:
                # 読み込みエラーの場合はデフォルト設定を使用
                logger.warning(f"Failed to read settings file {self._settings_file}: {e}")

        # UIメッセージの言語に反映
        set_ui_language_global(settings.get("ui_language", "en"))

        return settings

    def save_settings(self) -> bool:
        """現在の設定をファイルに保存"""
        try:
            directory = os.path.dirname(self._settings_file)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self._settings_file, 'w', encoding='utf-8') as f:
                json.dump(self._settings, f, indent=2, ensure_ascii=False)
            return True
        except IOError as e:
            logger.error(f"Failed to save settings: {e}")
            if self._event_hub:
                self._event_hub.publish(EventType.APP_ERROR, {"error": str(e), "source": "settings"}, "settings_manager")
            return False

    def get_setting(self, key: str, default: Any = None) -> Any:
        """設定値を取得"""
        return self._settings.get(key, default)

    def set_setting(self, key: str, value: Any) -> None:
        """設定値を設定"""
        self._settings[key] = value
        self.save_settings()

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._settings)

    def add_recent_file(self, file_path: str) -> None:
        """最近使用したファイルを追加"""
        recent_files = list(self._settings.get("recent_files", []))

        if file_path in recent_files:
            recent_files.remove(file_path)

        recent_files.insert(0, file_path)

        self._settings["recent_files"] = recent_files[:MAX_RECENT_FILES]
        self.save_settings()

    def get_recent_files(self) -> list:
        """最近使用したファイルのリストを取得"""
        return list(self._settings.get("recent_files", []))

    def get_ui_language(self) -> str:
        """現在のUI表示言語を取得

        Returns:
            言語コード（"en" または "ja"）
        """
        return self._settings.get("ui_language", "en")

    def set_ui_language(self, language: str) -> None:
        """UI表示言語を設定

        Args:
            language: 言語コード（"en" または "ja"）
        """
        if language not in SUPPORTED_UI_LANGUAGES:
            logger.warning(f"Invalid UI language code: {language}, defaulting to 'en'")
            language = "en"

        self._settings["ui_language"] = language
        self.save_settings()

        set_ui_language_global(language)

        if self._event_hub:
            self._event_hub.publish(EventType.LANGUAGE_CHANGED, {"language": language}, "settings_manager")
        logger.info(f"UI language changed to: {language}")
