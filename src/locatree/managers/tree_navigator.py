"""
tree_navigator.py
キーパスによる翻訳ツリーの探索と、ノード種別の判定を担当するモジュール

ドット区切りのキーパスを1セグメントずつ辿り、ノード本体または
（更新用に）親Namespaceと末尾セグメント名を返します。
"""
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..error_handling import PathNotFound
from ..logging_config import get_logger
from ..models import PATH_SEPARATOR, Leaf, Namespace, Node, is_raw_leaf

logger = get_logger(__name__)


def is_leaf(node: Any, languages: Iterable[str]) -> bool:
    """
    ノードがLeafかどうかを判定する

    型付きノードは型で判定し、生のマッピングは直下のキー集合とアクティブな
    言語集合の積集合が空でないかで判定する。空のNamespaceはLeafではない。

    Args:
        node: 判定対象（Leaf / Namespace / 生の辞書）
        languages: アクティブな言語コード

    Returns:
        bool: Leafの場合True
    """
    if isinstance(node, Leaf):
        return True
    if isinstance(node, Namespace):
        return False
    return is_raw_leaf(node, languages)


class TreeNavigator:
    """
    翻訳ツリーをキーパスで探索するクラス

    探索は純粋に構造的で、ツリーを変更しません。
    """

    def _segments(self, key_path: str) -> List[str]:
        # 空セグメントを含むパス（"a..b" や ".a"）はどのノードも指さない
        if not key_path:
            return []
        segments = key_path.split(PATH_SEPARATOR)
        if "" in segments:
            raise PathNotFound(key_path, "")
        return segments

    def resolve(self, root: Namespace, key_path: str) -> Node:
        """
        キーパスのノードを返す

        Args:
            root: ツリーのルート
            key_path: ドット区切りのキーパス（空の場合はルート）

        Returns:
            Node: 解決されたノード

        Raises:
            PathNotFound: 途中のセグメントがNamespaceでない、または存在しない場合
        """
        current: Node = root
        for segment in self._segments(key_path):
            if not isinstance(current, Namespace) or segment not in current.children:
                raise PathNotFound(key_path, segment)
            current = current.children[segment]
        return current

    def resolve_parent(self, root: Namespace, key_path: str, must_exist: bool = True) -> Tuple[Namespace, str]:
        """
        更新用に、キーパスの親Namespaceと末尾セグメント名を返す

        Args:
            root: ツリーのルート
            key_path: ドット区切りのキーパス
            must_exist: 末尾セグメントが親に存在することを要求するかどうか

        Returns:
            Tuple[Namespace, str]: (親ノード, 末尾セグメント名)

        Raises:
            PathNotFound: パスが空、途中が解決できない、または must_exist で末尾が無い場合
        """
        segments = self._segments(key_path)
        if not segments:
            raise PathNotFound(key_path)

        parent: Node = root
        for segment in segments[:-1]:
            if not isinstance(parent, Namespace) or segment not in parent.children:
                raise PathNotFound(key_path, segment)
            parent = parent.children[segment]

        last_key = segments[-1]
        if not isinstance(parent, Namespace):
            raise PathNotFound(key_path, last_key)
        if must_exist and last_key not in parent.children:
            raise PathNotFound(key_path, last_key)
        return parent, last_key

    def find(self, root: Optional[Namespace], key_path: str) -> Optional[Node]:
        """キーパスのノードを返す。解決できない場合はNone"""
        if root is None:
            return None
        try:
            return self.resolve(root, key_path)
        except PathNotFound:
            return None

    def resolve_leaf(self, root: Namespace, key_path: str) -> Leaf:
        """
        キーパスのLeafを返す

        Raises:
            PathNotFound: パスが解決できない、またはNamespaceを指している場合
        """
        node = self.resolve(root, key_path)
        if not isinstance(node, Leaf):
            raise PathNotFound(key_path)
        return node

    def get_values(self, root: Optional[Namespace], key_path: str, languages: Iterable[str]) -> Dict[str, str]:
        """
        読み取り用: キーパスのLeafの値を全アクティブ言語分返す

        存在しないパスやNamespaceを指すパスでは失敗せず、全言語が空文字列の
        マッピングを返す（UIがまだ存在しないパスを安全に参照できるように）。
        """
        node = self.find(root, key_path)
        if isinstance(node, Leaf):
            return {lang: node.get(lang) for lang in languages}
        return {lang: "" for lang in languages}

    def get_value(self, root: Optional[Namespace], key_path: str, language: str) -> str:
        """読み取り用: (キーパス, 言語) の値。存在しない場合は空文字列"""
        node = self.find(root, key_path)
        if isinstance(node, Leaf):
            return node.get(language)
        return ""

    def exists(self, root: Optional[Namespace], key_path: str) -> bool:
        return self.find(root, key_path) is not None

    def replace(self, root: Namespace, key_path: str, transform: Callable[[Node], Node]) -> Namespace:
        """
        キーパスのノードを transform の結果に置き換えた新しいルートを返す

        経路上のNamespaceだけを作り直し、それ以外の部分木は元のツリーと共有する。
        元のツリーは変更しない。

        Args:
            root: ツリーのルート
            key_path: 置き換えるノードのキーパス
            transform: 既存ノードを受け取り新しいノードを返す関数

        Returns:
            Namespace: 新しいルート

        Raises:
            PathNotFound: パスが解決できない場合
        """
        segments = self._segments(key_path)
        if not segments:
            raise PathNotFound(key_path)
        return self._replace_in(root, segments, key_path, transform)

    def _replace_in(self, node: Namespace, segments, key_path: str, transform) -> Namespace:
        head = segments[0]
        if head not in node.children:
            raise PathNotFound(key_path, head)
        child = node.children[head]

        if len(segments) == 1:
            new_child = transform(child)
        elif isinstance(child, Namespace):
            new_child = self._replace_in(child, segments[1:], key_path, transform)
        else:
            raise PathNotFound(key_path, segments[1])

        children = dict(node.children)
        children[head] = new_child
        return Namespace(children)
