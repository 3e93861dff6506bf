"""
test_catalog_session.py
編集セッションのテスト

読み込み・保存の非同期処理、編集操作、エラーの吸収と通知を確認します。
"""
import asyncio
import json

import pytest

from locatree.catalog_sources import CatalogSource, InMemoryCatalogSource, JsonFileCatalogSource
from locatree.error_handling import (
    ErrorKind, InvalidKeyName, InvalidLanguageCode, MalformedExportInput, PathNotFound,
)
from locatree.event_hub import EventType
from locatree.managers.catalog_session import CatalogSession, create_catalog_session
from locatree.managers.settings_manager import SettingsManager
from locatree.models import KEY_RENAME, Catalog, PendingChange


FORGOT = "auth.login.forgot_password"


class FailingSource(CatalogSource):
    """読み込み・保存が常に失敗するソース"""

    async def fetch(self):
        raise ConnectionError("server unavailable")

    async def store(self, catalog):
        raise ConnectionError("server unavailable")


class ScriptedSource(CatalogSource):
    """呼び出しごとに待ち時間と結果を指定できるソース"""

    def __init__(self, fetches):
        self.fetches = list(fetches)

    async def fetch(self):
        delay, data = self.fetches.pop(0)
        await asyncio.sleep(delay)
        return Catalog.from_dict(data)


@pytest.mark.unit
class TestLoad:
    """読み込みのテスト"""

    def test_catalog_unset_before_load(self, session):
        assert session.catalog is None
        assert session.build_tree() == []
        assert session.export_to_json() is None
        assert session.get_values("auth.login.title") == {}
        assert not session.update_translation(FORGOT, "de", "x")
        assert not session.add_language("fr")

    def test_load_sets_catalog_and_snapshot(self, session, recorded_events):
        assert asyncio.run(session.load())

        assert session.catalog.project == "Language Management System"
        assert session.original == session.catalog
        assert session.original is not session.catalog
        assert not session.is_loading
        assert session.pending_changes == []
        assert [event.event_type for event in recorded_events] == [EventType.CATALOG_LOADED]

    def test_load_failure_is_surfaced(self, event_hub, error_handler, recorded_events):
        session = CatalogSession(FailingSource(), event_hub, error_handler)

        assert not asyncio.run(session.load())
        assert session.catalog is None
        assert session.error.kind == ErrorKind.FETCH_FAILED
        assert "server unavailable" in session.error.message
        assert not session.is_loading
        assert EventType.APP_ERROR in [event.event_type for event in recorded_events]

    def test_failed_reload_keeps_state(self, loaded_session):
        loaded_session.update_translation(FORGOT, "de", "Passwort vergessen?")
        loaded_session.source = FailingSource()

        assert not asyncio.run(loaded_session.load())
        assert loaded_session.get_values(FORGOT)["de"] == "Passwort vergessen?"
        assert len(loaded_session.pending_changes) == 1

    def test_latest_load_wins(self, event_hub, error_handler, sample_data):
        slow = dict(sample_data, project="slow")
        fast = dict(sample_data, project="fast")
        session = CatalogSession(ScriptedSource([(0.05, slow), (0, fast)]), event_hub, error_handler)

        async def run():
            return await asyncio.gather(session.load(), session.load())

        first, second = asyncio.run(run())
        assert (first, second) == (False, True)
        assert session.catalog.project == "fast"
        assert not session.is_loading


@pytest.mark.unit
class TestUpdateTranslation:
    """翻訳値の更新のテスト"""

    def test_forgot_password_scenario(self, loaded_session):
        tree = loaded_session.build_tree()
        assert loaded_session.projector.find(tree, FORGOT).completeness == 50

        assert loaded_session.update_translation(FORGOT, "de", "Passwort vergessen?")
        assert loaded_session.pending_changes == [PendingChange(FORGOT, "de", "", "Passwort vergessen?")]

        tree = loaded_session.build_tree()
        assert loaded_session.projector.find(tree, FORGOT).completeness == 100
        assert loaded_session.projector.find(tree, "auth.login").completeness == 100
        assert loaded_session.projector.find(tree, "auth").completeness == 100

    def test_snapshot_is_not_affected(self, loaded_session):
        loaded_session.update_translation("auth.login.title", "en", "Log in")
        assert loaded_session.navigator.get_value(loaded_session.original.translations, "auth.login.title", "en") == "Login"

    def test_revert_clears_pending(self, loaded_session):
        loaded_session.update_translation("auth.login.title", "en", "Log in")
        assert loaded_session.has_unsaved_changes
        loaded_session.update_translation("auth.login.title", "en", "Login")
        assert not loaded_session.has_unsaved_changes
        assert loaded_session.pending_changes == []

    def test_same_value_is_noop(self, loaded_session, recorded_events):
        assert not loaded_session.update_translation("auth.login.title", "en", "Login")
        assert EventType.TRANSLATION_UPDATED not in [event.event_type for event in recorded_events]
        assert loaded_session.pending_changes == []

    def test_missing_path_is_absorbed(self, loaded_session):
        before = loaded_session.catalog.copy()
        assert not loaded_session.update_translation("auth.logout.title", "en", "x")
        assert not loaded_session.update_translation("auth.login", "en", "x")

        assert loaded_session.catalog == before
        assert isinstance(loaded_session.error_handler.error_history[-1], PathNotFound)
        # 構造的なエラーはユーザーには通知しない
        assert loaded_session.error is None

    def test_inactive_language_is_absorbed(self, loaded_session):
        assert not loaded_session.update_translation(FORGOT, "fr", "Mot de passe oublié ?")
        assert isinstance(loaded_session.error_handler.error_history[-1], InvalidLanguageCode)
        assert loaded_session.pending_changes == []

    def test_event_published(self, loaded_session, recorded_events):
        loaded_session.update_translation(FORGOT, "de", "x")
        assert recorded_events[-1].event_type == EventType.TRANSLATION_UPDATED
        assert recorded_events[-1].data == {"key_path": FORGOT, "language": "de", "value": "x"}
        assert recorded_events[-1].source == "catalog_session"

    def test_change_queries(self, loaded_session):
        loaded_session.update_translation(FORGOT, "de", "x")
        loaded_session.update_translation(FORGOT, "en", "y")
        assert len(loaded_session.changes_for(FORGOT)) == 2
        assert loaded_session.has_change(FORGOT, "de")
        assert not loaded_session.has_change("auth.login.title", "de")
        assert len(loaded_session.content_changes()) == 2
        assert loaded_session.rename_changes() == []

    def test_path_with_empty_segment_is_absorbed(self, loaded_session):
        assert loaded_session.update_translation("auth.login.title", "de", "A")
        assert not loaded_session.update_translation("auth..login.title", "de", "B")
        assert not loaded_session.update_translation(".auth.login.title", "de", "B")

        assert loaded_session.pending_changes == [PendingChange("auth.login.title", "de", "Anmelden", "A")]
        assert isinstance(loaded_session.error_handler.error_history[-1], PathNotFound)

    def test_blank_into_absent_entry_is_noop(self, event_hub, error_handler, recorded_events):
        source = InMemoryCatalogSource({
            "project": "Partial",
            "languages": ["en", "de"],
            "translations": {"greeting": {"en": "Hello"}},
        })
        session = CatalogSession(source, event_hub, error_handler)
        assert asyncio.run(session.load())

        assert not session.update_translation("greeting", "de", "")
        assert session.pending_changes == []
        assert EventType.TRANSLATION_UPDATED not in [event.event_type for event in recorded_events]


@pytest.mark.unit
class TestRenameKey:
    """キー名変更のテスト"""

    def test_rename_preserves_values_and_position(self, loaded_session):
        assert loaded_session.rename_key("auth.login.title", "heading")

        assert loaded_session.get_values("auth.login.heading") == {"en": "Login", "de": "Anmelden"}
        assert not loaded_session.navigator.exists(loaded_session.catalog.translations, "auth.login.title")
        login = loaded_session.navigator.resolve(loaded_session.catalog.translations, "auth.login")
        assert list(login.children) == ["heading", "subtitle", "button", "forgot_password"]
        assert loaded_session.pending_changes == [
            PendingChange("auth.login.title", KEY_RENAME, "title", "heading"),
        ]

    def test_rename_top_level_namespace(self, loaded_session):
        assert loaded_session.rename_key("common", "shared")
        assert [node.key for node in loaded_session.build_tree()] == ["auth", "dashboard", "shared"]
        assert loaded_session.get_values("shared.buttons.save")["de"] == "Speichern"

    def test_input_is_trimmed(self, loaded_session):
        assert loaded_session.rename_key("dashboard.welcome", "  greeting ")
        assert loaded_session.navigator.exists(loaded_session.catalog.translations, "dashboard.greeting")

    @pytest.mark.parametrize("new_key", ["", "   ", "a.b", "subtitle", "en", KEY_RENAME])
    def test_invalid_names_are_absorbed(self, loaded_session, new_key):
        before = loaded_session.catalog.copy()
        assert not loaded_session.rename_key("auth.login.title", new_key)
        assert loaded_session.catalog == before
        assert loaded_session.pending_changes == []
        assert isinstance(loaded_session.error_handler.error_history[-1], InvalidKeyName)

    def test_same_name_is_noop(self, loaded_session):
        assert not loaded_session.rename_key("auth.login.title", "title")

    def test_missing_path_is_absorbed(self, loaded_session):
        assert not loaded_session.rename_key("auth.logout", "signout")
        assert isinstance(loaded_session.error_handler.error_history[-1], PathNotFound)

    @pytest.mark.parametrize("old_path", [".auth.login", "auth..login", "auth.login."])
    def test_path_with_empty_segment_is_absorbed(self, loaded_session, old_path):
        assert not loaded_session.rename_key(old_path, "signin")
        assert loaded_session.pending_changes == []
        assert loaded_session.catalog == loaded_session.original

    def test_rename_and_back(self, loaded_session):
        loaded_session.rename_key("auth.login.title", "heading")
        loaded_session.rename_key("auth.login.heading", "caption")
        assert len(loaded_session.rename_changes()) == 1
        loaded_session.rename_key("auth.login.caption", "title")
        assert loaded_session.pending_changes == []
        assert loaded_session.catalog == loaded_session.original

    def test_edit_inside_renamed_subtree(self, loaded_session):
        loaded_session.update_translation(FORGOT, "de", "Passwort vergessen?")
        loaded_session.rename_key("auth.login", "signin")

        assert loaded_session.has_change("auth.signin.forgot_password", "de")
        loaded_session.update_translation("auth.signin.forgot_password", "de", "")
        assert loaded_session.content_changes() == []

    def test_event_published(self, loaded_session, recorded_events):
        loaded_session.rename_key("auth.login.title", "heading")
        assert recorded_events[-1].event_type == EventType.KEY_RENAMED
        assert recorded_events[-1].data == {"old_path": "auth.login.title", "new_path": "auth.login.heading"}


@pytest.mark.unit
class TestLanguages:
    """言語の追加・削除のテスト"""

    def test_add_language(self, loaded_session, recorded_events):
        assert loaded_session.add_language(" FR ")
        assert loaded_session.languages == ["en", "de", "fr"]
        assert loaded_session.get_values("auth.login.title") == {"en": "Login", "de": "Anmelden", "fr": ""}

        tree = loaded_session.build_tree()
        assert loaded_session.projector.find(tree, "auth.login.title").completeness == pytest.approx(200 / 3)
        assert recorded_events[-1].event_type == EventType.LANGUAGE_ADDED

    def test_language_change_is_not_a_pending_change(self, loaded_session):
        loaded_session.add_language("fr")
        assert not loaded_session.has_unsaved_changes
        assert loaded_session.languages_changed
        assert loaded_session.can_save
        assert loaded_session.original.languages == ["en", "de"]

    def test_duplicate_language_is_absorbed(self, loaded_session):
        assert not loaded_session.add_language("EN")
        assert loaded_session.languages == ["en", "de"]
        assert isinstance(loaded_session.error_handler.error_history[-1], InvalidLanguageCode)

    def test_remove_language(self, loaded_session, recorded_events):
        assert loaded_session.remove_language("de")
        assert loaded_session.languages == ["en"]
        assert loaded_session.get_values("auth.login.title") == {"en": "Login"}
        assert recorded_events[-1].event_type == EventType.LANGUAGE_REMOVED

    def test_last_language_survives(self, loaded_session):
        loaded_session.remove_language("de")
        assert not loaded_session.remove_language("en")
        assert not loaded_session.remove_language("ja")
        assert loaded_session.languages == ["en"]

    def test_remove_mixed_case_code_from_load(self, event_hub, error_handler):
        source = InMemoryCatalogSource({
            "project": "Regional",
            "languages": ["en", "pt-BR"],
            "translations": {"greeting": {"en": "Hello", "pt-BR": "Olá"}},
        })
        session = CatalogSession(source, event_hub, error_handler)
        assert asyncio.run(session.load())

        assert session.remove_language(" pt-BR ")
        assert session.languages == ["en"]
        assert session.get_values("greeting") == {"en": "Hello"}

    def test_round_trip(self, loaded_session):
        loaded_session.add_language("fr")
        loaded_session.remove_language("fr")
        assert loaded_session.catalog == loaded_session.original
        assert not loaded_session.languages_changed


@pytest.mark.unit
class TestSaveAndDiscard:
    """保存と破棄のテスト"""

    def test_save_replaces_snapshot(self, loaded_session, memory_source, recorded_events):
        loaded_session.update_translation(FORGOT, "de", "Passwort vergessen?")
        assert asyncio.run(loaded_session.save_changes())

        assert loaded_session.pending_changes == []
        assert loaded_session.original == loaded_session.catalog
        assert loaded_session.original is not loaded_session.catalog
        assert memory_source.data["translations"]["auth"]["login"]["forgot_password"]["de"] == "Passwort vergessen?"
        assert recorded_events[-1].event_type == EventType.CATALOG_SAVED

    def test_save_persists_language_changes(self, loaded_session, memory_source):
        loaded_session.add_language("fr")
        assert asyncio.run(loaded_session.save_changes())
        assert memory_source.data["languages"] == ["en", "de", "fr"]
        assert not loaded_session.can_save

    def test_save_without_catalog(self, session):
        assert not asyncio.run(session.save_changes())

    def test_save_failure_keeps_state(self, loaded_session):
        loaded_session.update_translation(FORGOT, "de", "Passwort vergessen?")
        original = loaded_session.original
        loaded_session.source = FailingSource()

        assert not asyncio.run(loaded_session.save_changes())
        assert loaded_session.error.kind == ErrorKind.SAVE_FAILED
        assert loaded_session.original is original
        assert len(loaded_session.pending_changes) == 1
        assert loaded_session.get_values(FORGOT)["de"] == "Passwort vergessen?"
        assert not loaded_session.is_saving

    def test_edits_during_save_stay_pending(self, loaded_session, memory_source):
        memory_source.delay = 0.01
        loaded_session.update_translation(FORGOT, "de", "Passwort")

        async def run():
            saving = asyncio.ensure_future(loaded_session.save_changes())
            await asyncio.sleep(0)
            assert loaded_session.is_saving
            loaded_session.update_translation(FORGOT, "de", "Passwort vergessen?")
            loaded_session.update_translation("dashboard.welcome", "de", "Hallo")
            return await saving

        assert asyncio.run(run())
        assert memory_source.data["translations"]["auth"]["login"]["forgot_password"]["de"] == "Passwort"
        assert loaded_session.pending_changes == [
            PendingChange(FORGOT, "de", "Passwort", "Passwort vergessen?"),
            PendingChange("dashboard.welcome", "de", "Hallo Benutzer", "Hallo"),
        ]

    def test_discard_restores_snapshot(self, loaded_session, recorded_events):
        loaded_session.update_translation(FORGOT, "de", "x")
        loaded_session.rename_key("dashboard", "home")
        loaded_session.add_language("fr")

        assert loaded_session.discard_changes()
        assert loaded_session.catalog == loaded_session.original
        assert loaded_session.catalog is not loaded_session.original
        assert loaded_session.pending_changes == []
        assert recorded_events[-1].event_type == EventType.CHANGES_DISCARDED
        assert recorded_events[-1].data == {"discarded_changes": 2}

    def test_discard_without_catalog(self, session):
        assert not session.discard_changes()


@pytest.mark.unit
class TestExportImport:
    """セッションからのエクスポート・インポートのテスト"""

    def test_export_to_json(self, loaded_session, sample_data):
        assert loaded_session.export_to_json() == sample_data["translations"]
        assert loaded_session.export_to_json("en")["common"]["errors"]["server_error"] == "Server error"

    def test_export_to_file(self, loaded_session, tmp_path):
        path = loaded_session.export_to_file("de", str(tmp_path))
        assert path.endswith("translations-de.json")
        assert json.loads(open(path, encoding="utf-8").read())["auth"]["login"]["title"] == "Anmelden"

        all_path = loaded_session.export_to_file(directory=str(tmp_path))
        assert all_path.endswith("translations-all.json")

    def test_import_translations(self, loaded_session, recorded_events):
        count = loaded_session.import_translations(
            '{"auth": {"login": {"forgot_password": "Passwort vergessen?", "title": "Anmelden"}}}', "de"
        )
        assert count == 1
        assert loaded_session.pending_changes == [PendingChange(FORGOT, "de", "", "Passwort vergessen?")]
        assert recorded_events[-1].event_type == EventType.TRANSLATIONS_IMPORTED

    def test_malformed_import_changes_nothing(self, loaded_session):
        before = loaded_session.catalog.copy()
        with pytest.raises(MalformedExportInput):
            loaded_session.import_translations({"auth": {"login": {"title": "x"}}, "nope": {}}, "en")

        assert loaded_session.catalog == before
        assert loaded_session.pending_changes == []
        assert isinstance(loaded_session.error_handler.error_history[-1], MalformedExportInput)

    def test_undecodable_bytes_are_malformed(self, loaded_session):
        with pytest.raises(MalformedExportInput):
            loaded_session.import_translations(b'{"dashboard": {"welcome": {"en": "\xff"}}}')
        assert loaded_session.pending_changes == []


@pytest.mark.unit
def test_stats(loaded_session):
    loaded_session.update_translation(FORGOT, "de", "Passwort vergessen?")
    stats = loaded_session.stats()
    assert stats["total_keys"] == 14
    assert stats["missing"] == {"en": 0, "de": 2}


@pytest.mark.integration
class TestCreateCatalogSession:
    """工場関数と設定の連携テスト"""

    def test_defaults_to_sample_source(self):
        session = create_catalog_session()
        assert isinstance(session.source, InMemoryCatalogSource)
        assert asyncio.run(session.load())

    def test_file_backed_session(self, tmp_path, catalog_file):
        settings = SettingsManager(str(tmp_path / "settings.json"))
        settings.set_setting("catalog_file", str(catalog_file))

        session = create_catalog_session(settings)
        assert isinstance(session.source, JsonFileCatalogSource)
        assert settings.get_recent_files() == [str(catalog_file)]

        assert asyncio.run(session.load())
        session.update_translation(FORGOT, "de", "Passwort vergessen?")
        assert asyncio.run(session.save_changes())

        saved = json.loads(catalog_file.read_text(encoding="utf-8"))
        assert saved["translations"]["auth"]["login"]["forgot_password"]["de"] == "Passwort vergessen?"

    def test_missing_file_reports_fetch_failure(self, tmp_path):
        settings = SettingsManager(str(tmp_path / "settings.json"))
        settings.set_setting("catalog_file", str(tmp_path / "missing.json"))

        session = create_catalog_session(settings)
        assert not asyncio.run(session.load())
        assert session.error.kind == ErrorKind.FETCH_FAILED
