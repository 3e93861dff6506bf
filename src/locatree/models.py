"""
models.py
翻訳カタログのデータモデル

カタログ（プロジェクト名・言語リスト・翻訳ツリー）と、ツリーを構成する
NamespaceノードとLeafノード、未保存の変更、表示用ツリーノードを定義します。
ノード種別はツリー構築時に一度だけ決定され、走査のたびに再判定はしません。
"""
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

# キーパスの区切り文字
PATH_SEPARATOR = "."

# キー名変更を表す変更レコードの言語値（実際の言語コードとは衝突しない）
KEY_RENAME = "__key_rename__"


class Leaf:
    """
    1つの翻訳キーに対する言語コード→文字列のマッピング

    Attributes:
        values (Dict[str, str]): 言語コードごとの翻訳文字列（挿入順を保持）
    """

    __slots__ = ("values",)

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(values or {})

    def get(self, language: str) -> str:
        """言語の値を返す。エントリがない場合は空文字列"""
        return self.values.get(language) or ""

    def copy(self) -> "Leaf":
        return Leaf(self.values)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.values)

    def __eq__(self, other):
        if not isinstance(other, Leaf):
            return NotImplemented
        return self.values == other.values

    def __repr__(self) -> str:
        return f"Leaf({self.values!r})"


class Namespace:
    """
    名前付きの子ノード（LeafまたはNamespace）を保持するノード

    Attributes:
        children (Dict[str, Node]): セグメント名→子ノード（挿入順を保持）
    """

    __slots__ = ("children",)

    def __init__(self, children: Optional[Dict[str, "Node"]] = None):
        self.children: Dict[str, Node] = dict(children or {})

    def copy(self) -> "Namespace":
        """子孫を含む完全に独立したコピーを返す"""
        return Namespace({key: child.copy() for key, child in self.children.items()})

    def to_dict(self) -> Dict[str, Any]:
        return {key: child.to_dict() for key, child in self.children.items()}

    def rename_child(self, old_key: str, new_key: str) -> None:
        """子ノードのキー名を変更する。兄弟間の並び順は維持する"""
        self.children = {
            (new_key if key == old_key else key): child
            for key, child in self.children.items()
        }

    def iter_leaves(self, prefix: str = "") -> Iterator[Tuple[str, "Leaf"]]:
        """(キーパス, Leaf) を深さ優先・挿入順で列挙する"""
        for key, child in self.children.items():
            path = join_path(prefix, key)
            if isinstance(child, Leaf):
                yield path, child
            else:
                yield from child.iter_leaves(path)

    def __len__(self) -> int:
        return len(self.children)

    def __eq__(self, other):
        if not isinstance(other, Namespace):
            return NotImplemented
        return self.children == other.children

    def __repr__(self) -> str:
        return f"Namespace({self.children!r})"


Node = Union[Leaf, Namespace]


def split_path(key_path: str) -> List[str]:
    """キーパスをセグメントのリストに分割する（空セグメントは除外）"""
    return [segment for segment in key_path.split(PATH_SEPARATOR) if segment != ""]


def join_path(parent_path: str, key: str) -> str:
    """親パスとセグメントを連結する"""
    return f"{parent_path}{PATH_SEPARATOR}{key}" if parent_path else key


def parent_path_of(key_path: str) -> str:
    """キーパスの親パスを返す。トップレベルの場合は空文字列"""
    segments = split_path(key_path)
    return PATH_SEPARATOR.join(segments[:-1])


def is_raw_leaf(raw: Any, languages: Iterable[str]) -> bool:
    """
    生のマッピングがLeafかどうかを判定する

    直下のキーのいずれかがアクティブな言語コードと一致する場合にLeafとみなす。
    空のマッピングは（積集合が空なので）Namespaceとして扱う。
    """
    if not isinstance(raw, dict) or not raw:
        return False
    active = set(languages)
    return any(key in active for key in raw.keys())


def parse_node(raw: Dict[str, Any], languages: Iterable[str]) -> Namespace:
    """
    JSON由来の入れ子辞書を型付きのノードツリーに変換する

    Args:
        raw: 翻訳ツリーの生データ（ルートは常にNamespace）
        languages: アクティブな言語コード

    Returns:
        Namespace: 構築されたルートノード

    Raises:
        TypeError: ルートや中間ノードが辞書でない場合
    """
    languages = list(languages)
    if not isinstance(raw, dict):
        raise TypeError(f"Translation tree must be an object, got {type(raw).__name__}")

    children: Dict[str, Node] = {}
    for key, value in raw.items():
        if not isinstance(value, dict):
            raise TypeError(f"Node '{key}' must be an object, got {type(value).__name__}")
        if is_raw_leaf(value, languages):
            children[key] = Leaf({
                lang: "" if text is None else str(text)
                for lang, text in value.items()
            })
        else:
            children[key] = parse_node(value, languages)
    return Namespace(children)


class Catalog:
    """
    翻訳カタログのルート集約

    Attributes:
        project (str): プロジェクト名
        languages (List[str]): アクティブな言語コード（挿入順＝表示順、重複なし）
        translations (Namespace): 翻訳ツリーのルート
    """

    def __init__(self, project: str, languages: Iterable[str], translations: Optional[Namespace] = None):
        self.project = project
        self.languages: List[str] = []
        for code in languages:
            if code not in self.languages:
                self.languages.append(code)
        self.translations = translations if translations is not None else Namespace()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Catalog":
        """{"project", "languages", "translations"} 形式の辞書からカタログを構築する"""
        if not isinstance(data, dict):
            raise TypeError(f"Catalog must be an object, got {type(data).__name__}")
        languages = data.get("languages") or []
        if not isinstance(languages, list) or not all(isinstance(code, str) for code in languages):
            raise TypeError("Catalog 'languages' must be a list of strings")
        translations = parse_node(data.get("translations") or {}, languages)
        return cls(str(data.get("project", "")), languages, translations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project,
            "languages": list(self.languages),
            "translations": self.translations.to_dict(),
        }

    def copy(self) -> "Catalog":
        return Catalog(self.project, self.languages, self.translations.copy())

    def __eq__(self, other):
        if not isinstance(other, Catalog):
            return NotImplemented
        return (
            self.project == other.project
            and self.languages == other.languages
            and self.translations == other.translations
        )

    def __repr__(self) -> str:
        return f"Catalog(project={self.project!r}, languages={self.languages!r})"


class PendingChange:
    """
    元スナップショットとの差分1件

    language が KEY_RENAME の場合はキー名変更を表し、original_value / new_value
    には変更前後のキー名が入る。
    """

    __slots__ = ("key_path", "language", "original_value", "new_value")

    def __init__(self, key_path: str, language: str, original_value: str, new_value: str):
        self.key_path = key_path
        self.language = language
        self.original_value = original_value
        self.new_value = new_value

    @property
    def is_rename(self) -> bool:
        return self.language == KEY_RENAME

    @property
    def key(self) -> Tuple[str, str]:
        return (self.key_path, self.language)

    def to_dict(self) -> Dict[str, str]:
        return {
            "keyPath": self.key_path,
            "language": self.language,
            "originalValue": self.original_value,
            "newValue": self.new_value,
        }

    def __eq__(self, other):
        if not isinstance(other, PendingChange):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"PendingChange({self.key_path!r}, {self.language!r}, "
            f"{self.original_value!r} -> {self.new_value!r})"
        )


class TreeDisplayNode:
    """
    表示用のツリーノード（永続化しない派生ビュー）

    Leafの場合は values、Namespaceの場合は children を持つ。
    """

    __slots__ = ("key", "path", "depth", "is_leaf", "children", "values", "completeness")

    def __init__(
        self,
        key: str,
        path: str,
        depth: int,
        is_leaf: bool,
        completeness: float,
        children: Optional[List["TreeDisplayNode"]] = None,
        values: Optional[Dict[str, str]] = None,
    ):
        self.key = key
        self.path = path
        self.depth = depth
        self.is_leaf = is_leaf
        self.completeness = completeness
        self.children = children
        self.values = values

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "key": self.key,
            "path": self.path,
            "depth": self.depth,
            "isLeaf": self.is_leaf,
            "completeness": self.completeness,
        }
        if self.is_leaf:
            result["values"] = dict(self.values or {})
        else:
            result["children"] = [child.to_dict() for child in self.children or []]
        return result

    def __repr__(self) -> str:
        return f"TreeDisplayNode({self.path!r}, leaf={self.is_leaf}, {self.completeness:.1f}%)"


class FlattenedTranslation:
    """エディタ一覧表示用に平坦化したLeaf"""

    __slots__ = ("key_path", "values", "depth", "parent_path")

    def __init__(self, key_path: str, values: Dict[str, str], depth: int, parent_path: str):
        self.key_path = key_path
        self.values = values
        self.depth = depth
        self.parent_path = parent_path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyPath": self.key_path,
            "values": dict(self.values),
            "depth": self.depth,
            "parentPath": self.parent_path,
        }

    def __repr__(self) -> str:
        return f"FlattenedTranslation({self.key_path!r})"
