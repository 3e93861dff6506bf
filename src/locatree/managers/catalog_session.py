"""
catalog_session.py
翻訳カタログの編集セッションを管理するマネージャークラス

1つのセッションが、現在のカタログ・元スナップショット・未保存の変更一覧を
排他的に所有します。表示層はセッションの編集メソッドと読み取りメソッドだけを使い、
状態の変化はEventHub経由で通知されます。

- 読み込み・保存だけが非同期で、それ以外の操作は呼び出しの中で完結します。
- 読み込み・保存には単調増加のリクエスト番号を付け、最新でない結果は破棄します。
- パスや言語コード、キー名が不正な編集は何もせず False を返します（ErrorHandlerに記録）。
- 読み込み・保存の失敗はErrorHandler経由でユーザーに通知し、状態は変更しません。
"""
import os
from typing import Any, Dict, List, Optional, Union

from ..catalog_sources import CatalogSource, InMemoryCatalogSource, JsonFileCatalogSource
from ..error_handling import (
    CatalogError, ErrorCategory, ErrorHandler, FetchFailed, InvalidKeyName,
    InvalidLanguageCode, PathNotFound, SaveFailed, with_error_handling,
)
from ..event_hub import EventType
from ..logging_config import get_logger
from ..messages import t
from ..models import (
    KEY_RENAME, PATH_SEPARATOR, Catalog, Leaf, Namespace, Node, PendingChange,
    TreeDisplayNode, join_path, parent_path_of,
)
from .change_tracker import ChangeTracker
from .copy_manager import CopyManager
from .event_aware_manager import EventAwareManager
from .export_manager import ExportManager
from .language_manager import LanguageManager
from .tree_navigator import TreeNavigator
from .tree_projector import TreeProjector

logger = get_logger(__name__)


class CatalogSession(EventAwareManager):
    """
    翻訳カタログの編集セッション

    Attributes:
        source (CatalogSource): 読み込み・保存先
        catalog (Catalog): 現在のカタログ（読み込み前は None）
        original (Catalog): 最後に読み込み・保存に成功した時点のスナップショット
        is_loading (bool): 読み込み中かどうか
        is_saving (bool): 保存中かどうか
        error (AppError): 最後にユーザーへ通知したエラー（無ければ None）
    """

    def __init__(
        self,
        source: CatalogSource,
        event_hub=None,
        error_handler: Optional[ErrorHandler] = None,
        settings=None,
        page=None,
    ):
        super().__init__("catalog_session", event_hub)
        self.source = source
        self.settings = settings
        self.error_handler = error_handler or ErrorHandler(event_hub, page)

        self.navigator = TreeNavigator()
        self.copy_manager = CopyManager(event_hub)
        self.tracker = ChangeTracker(self.navigator, event_hub)
        self.language_manager = LanguageManager(event_hub)
        self.projector = TreeProjector()
        self.export_manager = ExportManager(
            indent=self._setting("export_indent", 2),
            error_handler=self.error_handler,
            event_hub=event_hub,
        )

        self.catalog: Optional[Catalog] = None
        self.original: Optional[Catalog] = None
        self.is_loading = False
        self.is_saving = False
        self.error = None

        self._load_token = 0
        self._save_token = 0

        from ..debug_control import print_init
        print_init("[OK] CatalogSession initialized")

    def _setting(self, key: str, default: Any) -> Any:
        if self.settings is None:
            return default
        return self.settings.get_setting(key, default)

    # ------------------------------------------------------------------
    # 状態の参照
    # ------------------------------------------------------------------

    @property
    def languages(self) -> List[str]:
        return list(self.catalog.languages) if self.catalog else []

    @property
    def pending_changes(self) -> List[PendingChange]:
        return self.tracker.changes

    @property
    def has_unsaved_changes(self) -> bool:
        """未保存の変更レコードがあるかどうか"""
        return self.tracker.has_changes()

    @property
    def languages_changed(self) -> bool:
        """言語リストがスナップショットと異なるかどうか（変更レコードには現れない）"""
        if self.catalog is None or self.original is None:
            return False
        return self.catalog.languages != self.original.languages

    @property
    def can_save(self) -> bool:
        return self.catalog is not None and (self.has_unsaved_changes or self.languages_changed)

    def get_values(self, key_path: str) -> Dict[str, str]:
        """キーパスのLeafの値（解決できない場合は全言語が空文字列）"""
        root = self.catalog.translations if self.catalog else None
        return self.navigator.get_values(root, key_path, self.languages)

    def changes_for(self, key_path: str) -> List[PendingChange]:
        return self.tracker.changes_for(key_path)

    def has_change(self, key_path: str, language: str) -> bool:
        return self.tracker.has_change(key_path, language)

    def rename_changes(self) -> List[PendingChange]:
        return self.tracker.rename_changes()

    def content_changes(self) -> List[PendingChange]:
        return self.tracker.content_changes()

    def build_tree(self) -> List[TreeDisplayNode]:
        """完成度付きの表示用ツリー（毎回カタログから作り直す）"""
        return self.projector.project(self.catalog)

    def stats(self) -> Dict[str, Any]:
        return self.projector.catalog_stats(self.build_tree(), self.languages)

    # ------------------------------------------------------------------
    # 読み込み・保存
    # ------------------------------------------------------------------

    async def load(self) -> bool:
        """
        読み込み先からカタログを取得する

        後から開始された読み込みがあれば、この呼び出しの結果は破棄する。
        失敗時はエラーを通知し、カタログ・スナップショット・変更一覧は変更しない。

        Returns:
            bool: 取得結果を反映した場合True
        """
        self._load_token += 1
        token = self._load_token
        self.is_loading = True
        logger.info(t("status.loading"))

        try:
            catalog = await self.source.fetch()
        except Exception as e:
            if token != self._load_token:
                logger.debug(f"Discarding failure of stale load request #{token}")
                return False
            self.is_loading = False
            error = FetchFailed(t("error.fetch_failed").format(error=str(e)), original_exception=e)
            self.error = self.error_handler.handle_error(error)
            return False

        if token != self._load_token:
            logger.debug(f"Discarding result of stale load request #{token}")
            return False

        self.is_loading = False
        self.error = None
        self.catalog = catalog
        self.original = self.copy_manager.deep_copy(catalog)
        self.tracker.clear()

        logger.info(f"Catalog loaded: {catalog.project} ({', '.join(catalog.languages)})")
        self.publish_event(EventType.CATALOG_LOADED, {
            "project": catalog.project,
            "languages": list(catalog.languages),
        })
        return True

    async def save_changes(self) -> bool:
        """
        現在のカタログを保存する

        保存要求の時点のコピーを送信し、成功したらそれを新しいスナップショットにする。
        送信前に記録された変更レコードは消え、保存中に記録されたものは新しい
        スナップショット基準で残る。失敗時はカタログと変更一覧を変更しない。

        Returns:
            bool: 保存に成功し結果を反映した場合True
        """
        if self.catalog is None:
            return False

        self._save_token += 1
        token = self._save_token
        load_token = self._load_token
        submitted = self.copy_manager.deep_copy(self.catalog)
        submitted_changes = self.tracker.changes
        self.is_saving = True

        try:
            await self.source.store(submitted)
        except Exception as e:
            if token != self._save_token:
                logger.debug(f"Discarding failure of stale save request #{token}")
                return False
            self.is_saving = False
            error = SaveFailed(t("error.save_failed").format(error=str(e)), original_exception=e)
            self.error = self.error_handler.handle_error(error)
            return False

        if token != self._save_token:
            logger.debug(f"Discarding result of stale save request #{token}")
            return False
        self.is_saving = False

        if load_token != self._load_token:
            # 保存中に再読み込みが始まった場合は、その結果を優先する
            logger.debug("Catalog was reloaded while saving; skipping snapshot update")
            return True

        self.error = None
        self.original = submitted
        remaining = self.tracker.rebase(submitted_changes, submitted, self.catalog)

        logger.info(t("notification.changes_saved"))
        self.publish_event(EventType.CATALOG_SAVED, {
            "saved_changes": len(submitted_changes),
            "remaining_changes": len(remaining),
        })
        return True

    def discard_changes(self) -> bool:
        """カタログをスナップショットに戻し、変更一覧を空にする"""
        if self.original is None:
            return False

        discarded = len(self.tracker)
        self.catalog = self.copy_manager.deep_copy(self.original)
        self.tracker.clear()

        logger.info(t("notification.changes_discarded"))
        self.publish_event(EventType.CHANGES_DISCARDED, {"discarded_changes": discarded})
        return True

    # ------------------------------------------------------------------
    # 編集
    # ------------------------------------------------------------------

    def _absorb(self, error: CatalogError) -> bool:
        """構造的なエラーを記録し、何もしなかったことを示す False を返す"""
        self.error_handler.handle_error(error, show_ui=False)
        return False

    def update_translation(self, key_path: str, language: str, value: str) -> bool:
        """
        Leafの1言語分の値を更新する

        Args:
            key_path: Leafのキーパス
            language: 有効な言語コード
            value: 新しい値

        Returns:
            bool: 値が変わった場合True（パスや言語が不正な場合はFalse）
        """
        if self.catalog is None:
            return False
        if language not in self.catalog.languages:
            return self._absorb(InvalidLanguageCode(t("error.language_unknown").format(code=language), language))

        try:
            leaf = self.navigator.resolve_leaf(self.catalog.translations, key_path)
        except PathNotFound as e:
            return self._absorb(e)

        if leaf.get(language) == value:
            return False

        self.catalog.translations = self.navigator.replace(
            self.catalog.translations, key_path, lambda node: Leaf({**node.values, language: value})
        )
        self.tracker.record_edit(self.original, key_path, language, value)

        self.publish_event(EventType.TRANSLATION_UPDATED, {
            "key_path": key_path,
            "language": language,
            "value": value,
        })
        return True

    def rename_key(self, old_path: str, new_key: str) -> bool:
        """
        キーパスの末尾セグメント名を変更する（同じ親の中での名前変更のみ）

        Args:
            old_path: 変更するノードのキーパス
            new_key: 新しいキー名（前後の空白は除去する）

        Returns:
            bool: 名前を変更した場合True
        """
        if self.catalog is None:
            return False

        new_key = (new_key or "").strip()
        try:
            parent, old_key = self.navigator.resolve_parent(self.catalog.translations, old_path)
        except PathNotFound as e:
            return self._absorb(e)

        if new_key == old_key:
            return False
        try:
            self._validate_key_name(parent, old_path, new_key)
        except InvalidKeyName as e:
            return self._absorb(e)

        parent_path = parent_path_of(old_path)
        self.catalog.translations = self._renamed(self.catalog.translations, parent_path, old_key, new_key)
        self.tracker.record_rename(old_path, new_key)

        new_path = join_path(parent_path, new_key)
        logger.info(t("notification.key_renamed").format(old=old_path, new=new_path))
        self.publish_event(EventType.KEY_RENAMED, {"old_path": old_path, "new_path": new_path})
        return True

    def _validate_key_name(self, parent: Namespace, old_path: str, new_key: str) -> None:
        if not new_key or PATH_SEPARATOR in new_key or new_key == KEY_RENAME or new_key in self.catalog.languages:
            raise InvalidKeyName(t("error.key_name_invalid").format(name=new_key), new_key)
        if new_key in parent.children:
            parent_label = parent_path_of(old_path) or "/"
            raise InvalidKeyName(
                t("error.key_name_exists").format(name=new_key, parent=parent_label), new_key
            )

    def _renamed(self, root: Namespace, parent_path: str, old_key: str, new_key: str) -> Namespace:
        def rename(node: Node) -> Namespace:
            renamed = Namespace(node.children)
            renamed.rename_child(old_key, new_key)
            return renamed

        if not parent_path:
            return rename(root)
        return self.navigator.replace(root, parent_path, rename)

    def add_language(self, code: str) -> bool:
        """言語を追加する（すべてのLeafに空文字列のエントリが入る）"""
        if self.catalog is None:
            return False
        code = self.language_manager.normalize_code(code)
        try:
            self.catalog = self.language_manager.add_language(self.catalog, code)
        except InvalidLanguageCode as e:
            return self._absorb(e)

        logger.info(t("notification.language_added").format(code=code))
        self.publish_event(EventType.LANGUAGE_ADDED, {"code": code, "languages": self.languages})
        return True

    def remove_language(self, code: str) -> bool:
        """言語を削除する（コードは登録済みの表記のまま照合し、最後の1言語は削除できない）"""
        if self.catalog is None:
            return False
        code = (code or "").strip()
        try:
            self.catalog = self.language_manager.remove_language(self.catalog, code)
        except InvalidLanguageCode as e:
            return self._absorb(e)

        logger.info(t("notification.language_removed").format(code=code))
        self.publish_event(EventType.LANGUAGE_REMOVED, {"code": code, "languages": self.languages})
        return True

    # ------------------------------------------------------------------
    # エクスポート・インポート
    # ------------------------------------------------------------------

    def export_to_json(self, language: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """エクスポート用の構造（カタログ未読み込みの場合は None）"""
        if self.catalog is None:
            return None
        return self.export_manager.export(self.catalog.translations, language)

    def export_to_file(self, language: Optional[str] = None, directory: Optional[str] = None) -> Optional[str]:
        """
        エクスポート構造を translations-<言語>.json / translations-all.json に書き出す

        Returns:
            str: 書き出したファイルパス（カタログ未読み込みの場合は None）
        """
        structure = self.export_to_json(language)
        if structure is None:
            return None

        directory = directory or self._setting("export_dir", ".")
        file_name = self.export_manager.export_file_name(language)
        path = self.export_manager.write_export(os.path.join(directory, file_name), structure)
        logger.info(t("notification.exported").format(filename=file_name))
        return path

    @with_error_handling(category=ErrorCategory.VALIDATION, show_ui=True)
    def import_translations(self, source: Union[str, bytes, Dict[str, Any]], language: Optional[str] = None) -> int:
        """
        エクスポート形式のJSONから翻訳値を取り込む

        入力全体を検証してから適用し、不正な入力では何も変更しない。

        Args:
            source: JSON文字列またはパース済みの辞書
            language: 単一言語形式の場合の言語コード

        Returns:
            int: 値が変わった件数

        Raises:
            MalformedExportInput: 入力がカタログの構造と一致しない場合
        """
        if self.catalog is None:
            return 0

        updates = self.export_manager.import_json(source, self.catalog, language)

        changed = 0
        for key_path, lang, value in updates:
            leaf = self.navigator.resolve_leaf(self.catalog.translations, key_path)
            if lang in leaf.values and leaf.values[lang] == value:
                continue
            self.catalog.translations = self.navigator.replace(
                self.catalog.translations, key_path,
                lambda node, lang=lang, value=value: Leaf({**node.values, lang: value}),
            )
            self.tracker.record_edit(self.original, key_path, lang, value)
            changed += 1

        logger.info(t("notification.imported").format(count=changed))
        self.publish_event(EventType.TRANSLATIONS_IMPORTED, {"count": changed, "language": language})
        return changed


def create_catalog_session(settings=None, event_hub=None, page=None) -> CatalogSession:
    """
    設定に従って読み込み先を選び、CatalogSessionを作成する工場関数

    設定の catalog_file が指定されていればJSONファイル、無ければサンプルカタログを使う。
    """
    catalog_file = settings.get_setting("catalog_file") if settings else None
    if catalog_file:
        source = JsonFileCatalogSource(catalog_file, indent=settings.get_setting("export_indent", 2))
        settings.add_recent_file(catalog_file)
    else:
        source = InMemoryCatalogSource()

    error_handler = ErrorHandler(event_hub, page)
    return CatalogSession(source, event_hub, error_handler, settings, page)
