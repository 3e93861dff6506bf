"""
export_manager.py
翻訳ツリーのエクスポート・インポートを担当するマネージャークラス

- 言語指定なし: 多言語のツリーをそのまま（Leafは言語コード→文字列の辞書）
- 言語指定あり: 各Leafをその言語の文字列（無ければ空文字列）に置き換えたツリー
どちらもNamespaceの入れ子と並び順を保持します。
インポートは入力全体を検証してから更新一覧を返し、一部だけの適用はしません。
"""
import json
import os
from typing import Any, Dict, List, Optional, Tuple, Union

from ..error_handling import ErrorCategory, MalformedExportInput, with_error_handling
from ..logging_config import get_logger
from ..messages import t
from ..models import Catalog, Leaf, Namespace, join_path
from .event_aware_manager import EventAwareManager

logger = get_logger(__name__)

# (キーパス, 言語, 値)
TranslationUpdate = Tuple[str, str, str]


class ExportManager(EventAwareManager):
    """
    エクスポート形式への変換とファイル入出力を行うクラス

    Attributes:
        indent (int): JSON出力のインデント幅
        error_handler (ErrorHandler): ファイル入出力エラーの通知先（オプション）
    """

    def __init__(self, indent: int = 2, error_handler=None, event_hub=None):
        super().__init__("export_manager", event_hub)
        self.indent = indent
        self.error_handler = error_handler

        from ..debug_control import print_init
        print_init("[OK] ExportManager initialized")

    def export(self, tree: Namespace, language: Optional[str] = None) -> Dict[str, Any]:
        """
        翻訳ツリーをエクスポート用の構造に変換する

        Args:
            tree: 翻訳ツリーのルート
            language: 単一言語で出力する場合の言語コード

        Returns:
            Dict[str, Any]: JSONとして出力できる入れ子の辞書
        """
        if language is not None:
            return self._extract_language(tree, language)
        return tree.to_dict()

    def _extract_language(self, node: Namespace, language: str) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, child in node.children.items():
            if isinstance(child, Leaf):
                result[key] = child.get(language)
            else:
                result[key] = self._extract_language(child, language)
        return result

    def to_json_text(self, structure: Dict[str, Any], indent: Optional[int] = None) -> str:
        """エクスポート構造をJSON文字列にする"""
        return json.dumps(structure, ensure_ascii=False, indent=self.indent if indent is None else indent)

    def export_file_name(self, language: Optional[str] = None) -> str:
        """エクスポートファイル名（translations-<言語>.json / translations-all.json）"""
        return f"translations-{language}.json" if language else "translations-all.json"

    @with_error_handling(category=ErrorCategory.FILE_IO)
    def write_export(self, file_path: str, structure: Dict[str, Any]) -> str:
        """
        エクスポート構造をUTF-8のJSONファイルとして書き出す

        Args:
            file_path: 出力先パス
            structure: export() の結果

        Returns:
            str: 書き出したファイルパス
        """
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(self.to_json_text(structure))
            f.write("\n")
        logger.info(f"Exported translations to {file_path}")
        return file_path

    # ------------------------------------------------------------------
    # インポート
    # ------------------------------------------------------------------

    def import_json(
        self,
        source: Union[str, bytes, Dict[str, Any]],
        catalog: Catalog,
        language: Optional[str] = None,
    ) -> List[TranslationUpdate]:
        """
        エクスポート形式のJSONを解析し、適用すべき更新の一覧を返す

        既存のツリー構造を基準に解釈する。単一言語形式では文字列のLeaf値、
        多言語形式では言語コード→文字列の辞書を受け付ける。入力全体を検証し、
        1か所でも不正があれば何も返さずに例外を送出する。

        Args:
            source: JSON文字列、またはパース済みの辞書
            catalog: 更新対象のカタログ
            language: 単一言語形式の場合の言語コード

        Returns:
            List[TranslationUpdate]: (キーパス, 言語, 値) の一覧

        Raises:
            MalformedExportInput: JSONが不正、または構造がカタログと一致しない場合
        """
        if isinstance(source, (str, bytes)):
            try:
                data = json.loads(source)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise MalformedExportInput(
                    t("error.malformed_import").format(error=str(e)), original_exception=e
                ) from e
        else:
            data = source

        if not isinstance(data, dict):
            self._malformed(f"root must be an object, got {type(data).__name__}")
        if language is not None and language not in catalog.languages:
            self._malformed(f"language '{language}' is not active")

        updates: List[TranslationUpdate] = []
        self._collect_updates(data, catalog.translations, "", catalog.languages, language, updates)
        logger.debug(f"Parsed {len(updates)} translation update(s) from import")
        return updates

    def _collect_updates(
        self,
        data: Dict[str, Any],
        node: Namespace,
        path: str,
        languages: List[str],
        language: Optional[str],
        updates: List[TranslationUpdate],
    ) -> None:
        for key, value in data.items():
            current_path = join_path(path, key)
            target = node.children.get(key)

            if target is None:
                self._malformed(f"unknown key path '{current_path}'")

            if isinstance(target, Namespace):
                if not isinstance(value, dict):
                    self._malformed(f"'{current_path}' must be an object")
                self._collect_updates(value, target, current_path, languages, language, updates)
                continue

            if language is not None:
                if not isinstance(value, str):
                    self._malformed(f"'{current_path}' must be a string")
                updates.append((current_path, language, value))
                continue

            if not isinstance(value, dict):
                self._malformed(f"'{current_path}' must be an object of language values")
            for lang, text in value.items():
                if lang not in languages:
                    self._malformed(f"'{current_path}' has unknown language '{lang}'")
                if not isinstance(text, str):
                    self._malformed(f"'{current_path}.{lang}' must be a string")
                updates.append((current_path, lang, text))

    def _malformed(self, detail: str) -> None:
        raise MalformedExportInput(t("error.malformed_import").format(error=detail), context={"detail": detail})


def create_export_manager(indent: int = 2, error_handler=None, event_hub=None) -> ExportManager:
    """ExportManagerのインスタンスを作成する工場関数"""
    return ExportManager(indent, error_handler, event_hub)
