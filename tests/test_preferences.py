"""Tests for the settings surface."""

from __future__ import annotations

import pytest

from deptox.core.preferences import Preferences
from deptox.models.directory_entry import ALL_CATEGORIES, DependencyCategory
from deptox.models.rescan_interval import RescanInterval
from deptox.settings import AppSettings, SettingsError, SettingsStore


class CountingStore(SettingsStore):
    def __init__(self, path, fail: bool = False):
        super().__init__(path)
        self.saves: list[AppSettings] = []
        self.fail = fail

    def save(self, settings: AppSettings) -> None:
        self.saves.append(settings)
        if self.fail:
            raise SettingsError("read-only filesystem")
        super().save(settings)


@pytest.fixture
def store(tmp_path):
    return CountingStore(tmp_path / "settings.json")


class TestPreferences:
    @pytest.mark.asyncio
    async def test_each_setter_persists_immediately(self, store):
        prefs = Preferences(store)
        await prefs.set_threshold(1234)
        await prefs.set_root_directory("/srv/code")
        assert len(store.saves) == 2

        reloaded = store.load()
        assert reloaded.threshold_bytes == 1234
        assert reloaded.root_directory == "/srv/code"

    @pytest.mark.asyncio
    async def test_toggle_last_category_is_refused(self, store):
        prefs = Preferences(store, AppSettings(enabled_categories=(DependencyCategory.NODE_MODULES,)))
        assert await prefs.toggle_category(DependencyCategory.NODE_MODULES) is False
        assert prefs.settings.enabled_categories == (DependencyCategory.NODE_MODULES,)
        assert store.saves == []

    @pytest.mark.asyncio
    async def test_toggle_category_round_trip(self, store):
        prefs = Preferences(store)
        assert await prefs.toggle_category(DependencyCategory.PODS)
        assert DependencyCategory.PODS not in prefs.settings.enabled_categories
        assert await prefs.toggle_category(DependencyCategory.PODS)
        assert DependencyCategory.PODS in prefs.settings.enabled_categories
        assert len(store.saves) == 2

    @pytest.mark.asyncio
    async def test_empty_category_list_is_rejected(self, store):
        prefs = Preferences(store)
        assert await prefs.set_enabled_categories([]) is False
        assert prefs.settings.enabled_categories == ALL_CATEGORIES
        assert store.saves == []

    @pytest.mark.asyncio
    async def test_failed_save_keeps_new_value(self, tmp_path):
        store = CountingStore(tmp_path / "settings.json", fail=True)
        prefs = Preferences(store)
        await prefs.set_rescan_interval(RescanInterval.ONE_WEEK)
        assert prefs.settings.rescan_interval == RescanInterval.ONE_WEEK
        assert not store.path.exists()

    @pytest.mark.asyncio
    async def test_invalid_exclude_patterns_are_rejected(self, store):
        prefs = Preferences(store)
        await prefs.set_exclude_paths("*/tmp/*")
        assert await prefs.set_exclude_paths("*" * 11) is False
        assert prefs.settings.exclude_paths == "*/tmp/*"
        assert store.load().exclude_paths == "*/tmp/*"

    @pytest.mark.asyncio
    async def test_later_setters_persist_after_rejected_exclude(self, store):
        prefs = Preferences(store)
        await prefs.set_exclude_paths("*" * 11)
        await prefs.set_threshold(42)
        saved = store.load()
        assert saved.threshold_bytes == 42
        assert saved.exclude_paths == ""

    @pytest.mark.asyncio
    async def test_negative_min_size_is_clamped(self, store):
        prefs = Preferences(store)
        await prefs.set_min_size(-5)
        assert prefs.settings.min_size_bytes == 0

    @pytest.mark.asyncio
    async def test_threshold_listeners(self, store):
        prefs = Preferences(store)
        seen: list[int] = []

        async def listener(value: int) -> None:
            seen.append(value)

        unsubscribe = prefs.watch_threshold(listener)
        await prefs.set_threshold(10)
        unsubscribe()
        unsubscribe()
        await prefs.set_threshold(20)
        assert seen == [10]

    @pytest.mark.asyncio
    async def test_load_falls_back_to_defaults_on_corrupt_file(self, store):
        store.path.write_text("{not json", encoding="utf-8")
        prefs = Preferences(store)
        settings = await prefs.load()
        assert settings == prefs.settings
        assert settings.threshold_bytes == AppSettings().threshold_bytes

    @pytest.mark.asyncio
    async def test_reset(self, store):
        prefs = Preferences(store)
        seen: list[int] = []

        async def listener(value: int) -> None:
            seen.append(value)

        prefs.watch_threshold(listener)
        await prefs.set_threshold(10)
        await prefs.reset()
        assert prefs.settings == AppSettings()
        assert not store.path.exists()
        assert seen == [10, AppSettings().threshold_bytes]
