"""
language_manager.py
言語（列）の追加・削除を担当するマネージャークラス

ツリー内のすべてのLeafに対して言語エントリを一括で追加・削除し、
新しい翻訳ツリーと言語リストを持つ新しいカタログを返します。
元のカタログは変更しません。
"""
from typing import List, Set

from ..error_handling import InvalidLanguageCode
from ..logging_config import get_logger
from ..messages import t
from ..models import PATH_SEPARATOR, KEY_RENAME, Catalog, Leaf, Namespace
from .event_aware_manager import EventAwareManager

logger = get_logger(__name__)


class LanguageManager(EventAwareManager):
    """
    言語セットの変換を行うクラス

    - add_language: すべてのLeafに空文字列のエントリを追加し、言語リストの末尾に追加
    - remove_language: すべてのLeafからエントリを削除し、言語リストから削除
      （最後の1言語は削除できない）
    """

    def __init__(self, event_hub=None):
        super().__init__("language_manager", event_hub)
        from ..debug_control import print_init
        print_init("[OK] LanguageManager initialized")

    def normalize_code(self, code: str) -> str:
        """入力された言語コードを正規化する（前後の空白を除去し小文字化）"""
        return (code or "").strip().lower()

    def validate_new_code(self, languages: List[str], code: str) -> None:
        """
        追加する言語コードを検証する

        Raises:
            InvalidLanguageCode: 空、区切り文字や予約値を含む、または既に有効な場合
        """
        if not code or PATH_SEPARATOR in code or code == KEY_RENAME or any(ch.isspace() for ch in code):
            raise InvalidLanguageCode(t("error.language_invalid").format(code=code), code)
        if code in languages:
            raise InvalidLanguageCode(t("error.language_exists").format(code=code), code)

    def add_language(self, catalog: Catalog, code: str) -> Catalog:
        """
        言語を追加した新しいカタログを返す

        Args:
            catalog: 対象カタログ
            code: 追加する言語コード

        Returns:
            Catalog: 新しいカタログ

        Raises:
            InvalidLanguageCode: 言語コードが不正、既に有効、またはキー名と重なる場合
        """
        self.validate_new_code(catalog.languages, code)
        if code in self._segment_names(catalog.translations):
            # 保存後に読み込み直すとNamespaceがLeafと判定されてしまう
            raise InvalidLanguageCode(t("error.language_collides").format(code=code), code)

        translations = self._add_to_node(catalog.translations, code)
        logger.info(f"Language added: {code}")
        return Catalog(catalog.project, catalog.languages + [code], translations)

    def remove_language(self, catalog: Catalog, code: str) -> Catalog:
        """
        言語を削除した新しいカタログを返す

        Args:
            catalog: 対象カタログ
            code: 削除する言語コード

        Returns:
            Catalog: 新しいカタログ

        Raises:
            InvalidLanguageCode: 言語が有効でない、または最後の1言語の場合
        """
        if code not in catalog.languages:
            raise InvalidLanguageCode(t("error.language_unknown").format(code=code), code)
        if len(catalog.languages) <= 1:
            raise InvalidLanguageCode(t("error.language_last"), code)

        translations = self._remove_from_node(catalog.translations, code)
        logger.info(f"Language removed: {code}")
        return Catalog(
            catalog.project,
            [language for language in catalog.languages if language != code],
            translations,
        )

    def _segment_names(self, node: Namespace) -> Set[str]:
        """ツリー内のすべてのキー名"""
        names: Set[str] = set()
        for key, child in node.children.items():
            names.add(key)
            if isinstance(child, Namespace):
                names |= self._segment_names(child)
        return names

    def _add_to_node(self, node: Namespace, code: str) -> Namespace:
        children = {}
        for key, child in node.children.items():
            if isinstance(child, Leaf):
                children[key] = Leaf({**child.values, code: ""})
            else:
                children[key] = self._add_to_node(child, code)
        return Namespace(children)

    def _remove_from_node(self, node: Namespace, code: str) -> Namespace:
        children = {}
        for key, child in node.children.items():
            if isinstance(child, Leaf):
                children[key] = Leaf({lang: text for lang, text in child.values.items() if lang != code})
            else:
                children[key] = self._remove_from_node(child, code)
        return Namespace(children)


def create_language_manager(event_hub=None) -> LanguageManager:
    """LanguageManagerのインスタンスを作成する工場関数"""
    return LanguageManager(event_hub)
