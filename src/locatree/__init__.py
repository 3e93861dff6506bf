"""
locatree

多言語の翻訳カタログ（入れ子の名前空間と、言語コード→文字列のLeaf）を
編集し、未保存の変更を元スナップショットとの差分として追跡するライブラリ
"""

__version__ = "0.1.0"

from .models import (
    KEY_RENAME, PATH_SEPARATOR, Catalog, Leaf, Namespace, PendingChange,
    TreeDisplayNode, FlattenedTranslation, parse_node,
)
from .error_handling import (
    AppError, CatalogError, ErrorHandler, ErrorKind, FetchFailed, SaveFailed,
    PathNotFound, InvalidLanguageCode, InvalidKeyName, MalformedExportInput,
)
from .event_hub import EventHub, EventType, create_event_hub
from .catalog_sources import CatalogSource, InMemoryCatalogSource, JsonFileCatalogSource
from .managers import CatalogSession, SettingsManager, create_catalog_session

__all__ = [
    'KEY_RENAME', 'PATH_SEPARATOR',
    'Catalog', 'Leaf', 'Namespace', 'PendingChange', 'TreeDisplayNode', 'FlattenedTranslation',
    'parse_node',
    'AppError', 'CatalogError', 'ErrorHandler', 'ErrorKind',
    'FetchFailed', 'SaveFailed', 'PathNotFound', 'InvalidLanguageCode', 'InvalidKeyName',
    'MalformedExportInput',
    'EventHub', 'EventType', 'create_event_hub',
    'CatalogSource', 'InMemoryCatalogSource', 'JsonFileCatalogSource',
    'CatalogSession', 'SettingsManager', 'create_catalog_session',
]
