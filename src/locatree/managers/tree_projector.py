"""
tree_projector.py
翻訳ツリーから表示用ツリーを構築するマネージャークラス

各ノードに完成度（パーセント）を付与した表示用ノードを深さ優先で構築します。
Leafの完成度は「空白でない値を持つ言語数 ÷ 言語数 × 100」、
Namespaceの完成度は直下の子の完成度の単純平均（子が無い場合は100）です。
キー数による重み付けはしません。

表示用ツリーは常にカタログから作り直し、キャッシュしません。
ツリービューとエディタが使う平坦化・検索・未翻訳フィルタもここで提供します。
"""
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..logging_config import get_logger
from ..models import (
    PATH_SEPARATOR, Catalog, FlattenedTranslation, Leaf, Namespace,
    TreeDisplayNode, join_path, parent_path_of,
)

logger = get_logger(__name__)

# トップレベルのLeafをまとめるグループ名
ROOT_GROUP = "root"


def leaf_completeness(values: Dict[str, str], languages: Sequence[str]) -> float:
    """Leafの完成度。言語が無い場合は100"""
    if not languages:
        return 100.0
    filled = sum(1 for lang in languages if (values.get(lang) or "").strip())
    return filled / len(languages) * 100


def missing_languages(values: Dict[str, str], languages: Iterable[str]) -> List[str]:
    """値が空白（または未設定）のアクティブな言語の一覧"""
    return [lang for lang in languages if not (values.get(lang) or "").strip()]


class TreeProjector:
    """
    表示用ツリーを構築し、ツリーに対する読み取り専用の問い合わせを提供するクラス
    """

    def project(self, catalog: Optional[Catalog]) -> List[TreeDisplayNode]:
        """
        カタログのツリーを表示用ノードのリストに変換する

        Args:
            catalog: 対象カタログ（None の場合は空リスト）

        Returns:
            List[TreeDisplayNode]: トップレベルの表示用ノード（挿入順）
        """
        if catalog is None:
            return []
        return self._project_namespace(catalog.translations, catalog.languages, "", 0)

    def _project_namespace(
        self, node: Namespace, languages: Sequence[str], path: str, depth: int
    ) -> List[TreeDisplayNode]:
        result = []
        for key, child in node.children.items():
            current_path = join_path(path, key)

            if isinstance(child, Leaf):
                result.append(TreeDisplayNode(
                    key=key,
                    path=current_path,
                    depth=depth,
                    is_leaf=True,
                    completeness=leaf_completeness(child.values, languages),
                    values=dict(child.values),
                ))
                continue

            children = self._project_namespace(child, languages, current_path, depth + 1)
            if children:
                completeness = sum(c.completeness for c in children) / len(children)
            else:
                completeness = 100.0
            result.append(TreeDisplayNode(
                key=key,
                path=current_path,
                depth=depth,
                is_leaf=False,
                completeness=completeness,
                children=children,
            ))
        return result

    def find(self, nodes: List[TreeDisplayNode], path: str) -> Optional[TreeDisplayNode]:
        """表示用ツリーからパスのノードを探す"""
        for node in nodes:
            if node.path == path:
                return node
            if not node.is_leaf and node.children and path.startswith(node.path + PATH_SEPARATOR):
                return self.find(node.children, path)
        return None

    def flatten_leaves(self, nodes: List[TreeDisplayNode]) -> List[FlattenedTranslation]:
        """表示順にLeafだけを平坦化する"""
        result: List[FlattenedTranslation] = []

        def collect(items: List[TreeDisplayNode]):
            for item in items:
                if item.is_leaf:
                    result.append(FlattenedTranslation(
                        key_path=item.path,
                        values=dict(item.values or {}),
                        depth=item.depth,
                        parent_path=parent_path_of(item.path),
                    ))
                elif item.children:
                    collect(item.children)

        collect(nodes)
        return result

    def namespace_paths(self, nodes: List[TreeDisplayNode]) -> Set[str]:
        """すべてのNamespaceのパス（ツリーの「すべて展開」用）"""
        paths: Set[str] = set()
        for node in nodes:
            if not node.is_leaf:
                paths.add(node.path)
                paths |= self.namespace_paths(node.children or [])
        return paths

    def search(self, nodes: List[TreeDisplayNode], query: str) -> Set[str]:
        """
        パスまたは値にクエリを含むノードのパスと、その祖先のパスを返す

        大文字小文字は区別しない。空白のみのクエリは空集合。
        """
        if not query.strip():
            return set()

        needle = query.lower()
        matches: Set[str] = set()

        def visit(node: TreeDisplayNode):
            path_match = needle in node.path.lower()
            value_match = node.is_leaf and any(
                needle in (text or "").lower() for text in (node.values or {}).values()
            )
            if path_match or value_match:
                matches.add(node.path)
                parts = node.path.split(PATH_SEPARATOR)
                for i in range(1, len(parts)):
                    matches.add(PATH_SEPARATOR.join(parts[:i]))
            for child in node.children or []:
                visit(child)

        for node in nodes:
            visit(node)
        return matches

    def filter_leaves(
        self,
        leaves: List[FlattenedTranslation],
        selected_path: Optional[str] = None,
        query: str = "",
        missing: Iterable[str] = (),
    ) -> List[FlattenedTranslation]:
        """
        エディタ一覧に表示するLeafを絞り込む

        Args:
            leaves: flatten_leaves の結果
            selected_path: 選択中のパス（そのノード自身と配下のみ残す）
            query: 検索クエリ（パスまたは値に含まれるもの）
            missing: 指定された言語のいずれかが未翻訳のものだけ残す
        """
        filtered = leaves

        if selected_path:
            prefix = selected_path + PATH_SEPARATOR
            filtered = [
                leaf for leaf in filtered
                if leaf.key_path == selected_path or leaf.key_path.startswith(prefix)
            ]

        if query.strip():
            needle = query.lower()
            filtered = [
                leaf for leaf in filtered
                if needle in leaf.key_path.lower()
                or any(needle in (text or "").lower() for text in leaf.values.values())
            ]

        missing = list(missing)
        if missing:
            filtered = [leaf for leaf in filtered if missing_languages(leaf.values, missing)]

        return filtered

    def group_by_namespace(self, leaves: List[FlattenedTranslation]) -> Dict[str, List[FlattenedTranslation]]:
        """親パスごとにLeafをまとめる（キーはソート済み、トップレベルは "root"）"""
        groups: Dict[str, List[FlattenedTranslation]] = {}
        for leaf in leaves:
            groups.setdefault(leaf.parent_path or ROOT_GROUP, []).append(leaf)
        return {name: groups[name] for name in sorted(groups)}

    def catalog_stats(self, nodes: List[TreeDisplayNode], languages: Sequence[str]) -> Dict[str, object]:
        """
        カタログ全体の統計

        Returns:
            Dict: total_keys（Leaf数）、filled（言語ごとの翻訳済み数）、
                  missing（言語ごとの未翻訳数）、completeness（トップレベルの単純平均）
        """
        leaves = self.flatten_leaves(nodes)
        filled = {
            lang: sum(1 for leaf in leaves if (leaf.values.get(lang) or "").strip())
            for lang in languages
        }
        completeness = (
            sum(node.completeness for node in nodes) / len(nodes) if nodes else 100.0
        )
        return {
            "total_keys": len(leaves),
            "filled": filled,
            "missing": {lang: len(leaves) - count for lang, count in filled.items()},
            "completeness": completeness,
        }


def create_tree_projector() -> TreeProjector:
    """TreeProjectorのインスタンスを作成する工場関数"""
    return TreeProjector()
