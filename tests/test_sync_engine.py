from __future__ import annotations

import pytest

from statsync.services.sync_engine import SyncEngine, load_sync_engine


class DummyEngine:
    async def sync_all(self, tenant_id, triggered_by_user_id):
        return {}

    async def get_live_eligible_games(self, tenant_id):
        return []

    async def sync_live_stats(self, tenant_id, game_id, triggered_by_user_id):
        return {}


def make_engine():
    return DummyEngine()


engine_instance = DummyEngine()


class NotAnEngine:
    pass


class TestLoadSyncEngine:
    @pytest.mark.parametrize("attr", ["DummyEngine", "make_engine", "engine_instance"])
    def test_resolves_class_factory_or_instance(self, attr):
        engine = load_sync_engine(f"{__name__}:{attr}")

        assert isinstance(engine, DummyEngine)
        assert isinstance(engine, SyncEngine)

    def test_instance_is_returned_as_is(self):
        assert load_sync_engine(f"{__name__}:engine_instance") is engine_instance

    @pytest.mark.parametrize("path", ["no_colon_here", ":attr", "module:"])
    def test_malformed_path(self, path):
        with pytest.raises(ValueError):
            load_sync_engine(path)

    def test_rejects_objects_without_sync_methods(self):
        with pytest.raises(TypeError):
            load_sync_engine(f"{__name__}:NotAnEngine")
