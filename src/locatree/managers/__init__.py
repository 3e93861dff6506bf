"""
locatreeのマネージャー

翻訳カタログの探索・変更追跡・言語操作・表示用ツリー構築・エクスポートと、
それらをまとめる編集セッションを担当するマネージャークラス
"""

# マネージャーのインポート
from .event_aware_manager import EventAwareManager
from .tree_navigator import TreeNavigator, is_leaf
from .copy_manager import CopyManager, create_copy_manager
from .change_tracker import ChangeTracker
from .language_manager import LanguageManager, create_language_manager
from .tree_projector import TreeProjector, create_tree_projector, leaf_completeness, missing_languages
from .export_manager import ExportManager, create_export_manager
from .settings_manager import SettingsManager
from .catalog_session import CatalogSession, create_catalog_session

__all__ = [
    'EventAwareManager',
    'TreeNavigator', 'is_leaf',
    'CopyManager', 'create_copy_manager',
    'ChangeTracker',
    'LanguageManager', 'create_language_manager',
    'TreeProjector', 'create_tree_projector', 'leaf_completeness', 'missing_languages',
    'ExportManager', 'create_export_manager',
    'SettingsManager',
    'CatalogSession', 'create_catalog_session',
]
