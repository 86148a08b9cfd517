# tests/test_engine.py
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from core.fabrication import DesignParams, FurnitureBuild, FurnitureGenerator, Stats
from core.studio import ExportCommand, GeometryEngine, ParameterStore

TIMESTAMP = 1700000000000


@pytest.fixture
def params():
    """Small design that rebuilds quickly."""
    return DesignParams(furniture_type="Stool", pattern="Linear", segments=10)


@pytest.fixture
def store(params):
    return ParameterStore(params)


@pytest.fixture
def engine(store):
    engine = GeometryEngine(store)
    yield engine
    engine.close()


class GatedGenerator(FurnitureGenerator):
    """Holds generation for one width until the gate opens."""

    def __init__(self, width):
        super().__init__()
        self.width = width
        self.started = threading.Event()
        self.gate = threading.Event()

    def generate(self, params):
        if params.width == self.width:
            self.started.set()
            self.gate.wait(timeout=10)
        return super().generate(params)


# =============================================================================
# Parameter store
# =============================================================================


class TestParameterStore:
    """Tests for the parameter snapshot store."""

    def test_default_snapshot(self):
        snapshot = ParameterStore().snapshot
        assert snapshot == DesignParams()
        assert snapshot.furniture_type.value == "Hyperbolic"
        assert snapshot.pattern.value == "Octet"

    def test_update_notifies_listeners(self, store):
        seen = []
        store.subscribe(seen.append)
        store.update(width=0.8)
        assert len(seen) == 1
        assert seen[0].width == 0.8
        assert store.snapshot.width == 0.8

    def test_unchanged_update_is_silent(self, store, params):
        seen = []
        store.subscribe(seen.append)
        store.update(width=params.width)
        assert seen == []

    def test_out_of_range_update_is_rejected(self, store, params):
        with pytest.raises(ValueError):
            store.update(thickness=0.5)
        assert store.snapshot == params

    def test_unknown_parameter_is_rejected(self, store):
        with pytest.raises(ValueError):
            store.update(colour="red")

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.update(width=0.8)
        assert seen == []

    def test_invalid_initial_snapshot(self):
        with pytest.raises(ValueError):
            ParameterStore(DesignParams(segments=500))


class TestDesignParams:
    """Tests for the immutable parameter snapshot."""

    def test_coerces_tags(self, params):
        assert params.furniture_type.value == "Stool"
        assert params.pattern.value == "Linear"

    def test_round_trip_through_dict(self, params):
        assert DesignParams.from_dict(params.to_dict()) == params

    def test_generation_key_tracks_fields(self, params):
        assert params.generation_key() == DesignParams.from_dict(params.to_dict()).generation_key()
        assert params.generation_key() != params.with_changes(show_ghost=True).generation_key()

    def test_unknown_tag(self):
        with pytest.raises(ValueError):
            DesignParams(pattern="Honeycomb")


# =============================================================================
# Geometry engine
# =============================================================================


class TestGeometryEngine:
    """Tests for cached rebuilds and build ownership."""

    def test_builds_on_start(self, engine, params):
        assert engine.rebuild_count == 1
        assert engine.build is not None
        assert engine.params == params
        assert engine.stats.total_length > 0

    def test_parameter_change_rebuilds(self, engine, store):
        store.update(pattern="Octet")
        assert engine.rebuild_count == 2
        assert engine.params.pattern.value == "Octet"

    def test_same_key_uses_cache(self, engine, params):
        build = engine.build
        assert engine.rebuild(params) is build
        assert engine.rebuild_count == 1

    def test_force_rebuild(self, engine, params):
        build = engine.build
        assert engine.rebuild(params, force=True) is not build
        assert engine.rebuild_count == 2

    def test_previous_build_is_released(self, engine, store):
        previous = engine.build
        tube = previous.tube
        store.update(amplitude=0.08)
        assert previous.tube is None
        assert tube.released
        assert engine.build is not previous
        assert not engine.build.tube.released

    def test_stats_listeners(self, engine, store):
        seen = []
        engine.subscribe_stats(seen.append)
        store.update(thickness=0.03)
        assert len(seen) == 1
        assert isinstance(seen[0], Stats)
        assert seen[0] == engine.stats

    def test_close_releases_build(self, store):
        engine = GeometryEngine(store)
        build = engine.build
        engine.close()
        assert engine.build is None
        assert build.tube is None
        store.update(width=0.9)
        assert engine.rebuild_count == 1

    def test_concurrent_readers_see_complete_builds(self, engine, store):
        """Readers only ever observe a fully published build."""
        def read(_):
            build = engine.build
            return isinstance(build, FurnitureBuild) and engine.stats.total_length > 0

        with ThreadPoolExecutor(max_workers=4) as executor:
            readers = [executor.submit(read, i) for i in range(20)]
            store.update(width=0.7)
            store.update(width=0.8)
            results = [f.result() for f in readers]

        assert all(results)

    def test_summary_counts(self, engine):
        summary = engine.summary()
        build = engine.build
        assert summary["tube_triangles"] == build.tube.count
        assert summary["nodes"] == build.node_count
        assert summary["joints"] == summary["nodes"]
        assert summary["ghost_triangles"] == 0

    def test_summary_after_close(self, store):
        engine = GeometryEngine(store)
        engine.close()
        assert engine.summary() is None


class TestRebuildOrdering:
    """Overlapping rebuilds publish the newest parameters."""

    def _start_slow_rebuild(self, store, width):
        worker = threading.Thread(target=store.update, kwargs={"width": width})
        worker.start()
        return worker

    def test_slow_older_build_does_not_replace_newer(self, store):
        generator = GatedGenerator(width=0.7)
        engine = GeometryEngine(store, generator=generator)
        try:
            worker = self._start_slow_rebuild(store, 0.7)
            assert generator.started.wait(timeout=10)

            store.update(width=0.8)
            generator.gate.set()
            worker.join(timeout=10)

            assert engine.params.width == store.snapshot.width == 0.8
            assert not engine.build.tube.released
            assert engine.rebuild_count == 2
        finally:
            generator.gate.set()
            engine.close()

    def test_slow_build_discarded_after_revert_to_cached(self, store, params):
        generator = GatedGenerator(width=0.7)
        engine = GeometryEngine(store, generator=generator)
        build = engine.build
        try:
            worker = self._start_slow_rebuild(store, 0.7)
            assert generator.started.wait(timeout=10)

            store.update(width=params.width)
            generator.gate.set()
            worker.join(timeout=10)

            assert engine.params.width == store.snapshot.width == params.width
            assert engine.build is build
            assert engine.rebuild_count == 1
        finally:
            generator.gate.set()
            engine.close()


class TestExportCommand:
    """Tests for the one-shot export channel."""

    def test_command_is_handled_once(self, engine):
        command = ExportCommand()
        first = engine.export(command, timestamp=TIMESTAMP)
        second = engine.export(command, timestamp=TIMESTAMP)

        assert first is not None
        assert first.filename == f"furniture_stool_linear_{TIMESTAMP}.stl"
        assert second is None
        assert command.consumed

    def test_each_command_exports(self, engine):
        first = engine.export(ExportCommand(), timestamp=TIMESTAMP)
        second = engine.export(ExportCommand(), timestamp=TIMESTAMP)
        assert first.data == second.data

    def test_export_after_parameter_change(self, engine, store):
        before = engine.export(ExportCommand(), timestamp=TIMESTAMP)
        store.update(pattern="Octet")
        after = engine.export(ExportCommand(), timestamp=TIMESTAMP)
        assert after.filename == f"furniture_stool_octet_{TIMESTAMP}.stl"
        assert after.triangle_count != before.triangle_count

    def test_export_after_close(self, store):
        engine = GeometryEngine(store)
        engine.close()
        assert engine.export(ExportCommand()) is None

    def test_concurrent_exports_of_one_command(self, engine):
        """Only one of several threads answering the same command gets a model."""
        command = ExportCommand()
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: engine.export(command, timestamp=TIMESTAMP), range(8)))

        assert sum(result is not None for result in results) == 1
