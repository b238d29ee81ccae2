from __future__ import annotations

import numpy as np
import pytest

from retroterrain.world import chunk_manager
from retroterrain.world import world as world_mod
from retroterrain.world.chunk_manager import ChunkGrid, ChunkManager, chunk_order
from retroterrain.world.height import HeightField
from retroterrain.world.mesh_builder import build_chunk_mesh
from retroterrain.world.renderable import ChunkHandle, RecordingFactory
from retroterrain.world.world import GeneratorState, WorldGenerator, WorldParams


def make_gen(workers: int = 0, **kw) -> tuple[WorldGenerator, RecordingFactory]:
    kw.setdefault("world_size", 2)
    kw.setdefault("chunk_size", 3)
    kw.setdefault("height_scale", 4.0)
    kw.setdefault("seed", 42)
    factory = RecordingFactory()
    return WorldGenerator(WorldParams(**kw), factory, workers=workers), factory


def test_params_are_clamped():
    p = WorldParams(world_size=0, chunk_size=-3, terrace=-1.0, max_edge_delta=-0.5, octaves=0)
    assert p.world_size == 1
    assert p.chunk_size == 1
    assert p.tiles_per_axis == 1
    assert p.terrace == 0.0
    assert p.max_edge_delta == 0.0
    assert p.octaves == 1


def test_params_reject_unknown_noise_mode():
    with pytest.raises(ValueError):
        WorldParams(noise_mode="perlin")


def test_chunk_order():
    assert chunk_order(2) == [(0, 0), (0, 1), (1, 0), (1, 1)]
    assert chunk_order(0) == [(0, 0)]


def test_state_machine():
    gen, _ = make_gen()
    assert gen.state is GeneratorState.IDLE
    assert gen.height_field is None
    gen.start()
    assert gen.state is GeneratorState.BUILDING_CHUNKS
    assert gen.height_field.size == 6
    assert len(gen.pending()) == 4
    gen.run()
    assert gen.state is GeneratorState.DONE
    assert gen.finished
    assert gen.progress == 1.0
    assert gen.step() is None


def test_step_before_start_and_double_start():
    gen, _ = make_gen()
    with pytest.raises(RuntimeError):
        gen.step()
    gen.start()
    with pytest.raises(RuntimeError):
        gen.start()


def test_one_chunk_per_step():
    gen, factory = make_gen()
    gen.start()
    first = gen.step()
    assert isinstance(first, ChunkHandle)
    assert first.name == "Chunk_0_0"
    assert len(gen.chunks) == 1
    assert list(factory.meshes) == ["Chunk_0_0"]


def test_run_ticks_between_chunks():
    gen, _ = make_gen(world_size=3)
    ticks = []
    grid = gen.run(tick=lambda: ticks.append(len(gen.chunks)))
    assert ticks == list(range(1, 10))
    assert grid.complete
    assert [h.name for h in grid] == [f"Chunk_{cx}_{cz}" for cx, cz in chunk_order(3)]


def test_handles_carry_origin_and_counts():
    gen, factory = make_gen(chunk_size=4)
    gen.run()
    h = gen.chunks[(1, 0)]
    assert h.origin == (4.0, 0.0, 0.0)
    assert h.vertex_count == 9 * 16
    assert h.index_count == 24 * 16
    assert h.index_format == "uint16"
    rec = factory.meshes["Chunk_1_0"]
    assert rec.normals.shape == (9 * 16, 3)
    assert rec.bounds is not None


def test_cancel_stops_at_chunk_boundary():
    gen, _ = make_gen()
    gen.start()
    gen.step()
    gen.cancel()
    assert gen.step() is None
    assert gen.state is GeneratorState.CANCELLED
    assert len(gen.chunks) == 1
    assert gen.pending() == []


def test_cancel_from_tick():
    gen, _ = make_gen(world_size=3)
    gen.run(tick=gen.cancel)
    assert gen.state is GeneratorState.CANCELLED
    assert len(gen.chunks) == 1


def test_flat_world_end_to_end():
    gen, factory = make_gen(world_size=1, chunk_size=2, height_scale=0.0, max_edge_delta=0.0)
    gen.run()
    assert len(gen.chunks) == 1
    rec = factory.meshes["Chunk_0_0"]
    assert rec.vertices.shape == (36, 3)
    np.testing.assert_array_equal(rec.vertices[:, 1], np.zeros(36))


def test_height_field_is_exposed_read_only():
    gen, _ = make_gen(terrace=0.5)
    gen.run()
    h = gen.height_field.heights
    assert h.shape == (6, 6)
    assert not h.flags.writeable
    np.testing.assert_array_equal(h % 0.5, np.zeros_like(h))


def test_threaded_build_matches_sequential():
    seq, seq_factory = make_gen(world_size=3, terrace=0.0, max_edge_delta=0.3)
    seq.run()
    par, par_factory = make_gen(workers=3, world_size=3, terrace=0.0, max_edge_delta=0.3)
    par.run()
    assert par.state is GeneratorState.DONE
    assert par.chunks.complete
    assert set(par_factory.meshes) == set(seq_factory.meshes)
    for name, rec in seq_factory.meshes.items():
        other = par_factory.meshes[name]
        np.testing.assert_array_equal(rec.vertices, other.vertices)
        np.testing.assert_array_equal(rec.indices, other.indices)
    # grid order does not depend on completion order
    assert [h.name for h in par.chunks] == [h.name for h in seq.chunks]


def test_chunk_grid_slots():
    grid = ChunkGrid(2)
    assert grid.capacity == 4
    assert len(grid) == 0
    grid.put(1, 1, "d")
    grid.put(0, 0, "a")
    assert list(grid) == ["a", "d"]
    assert (1, 1) in grid
    assert (0, 1) not in grid
    assert (5, 5) not in grid
    assert grid[(0, 1)] is None
    with pytest.raises(RuntimeError):
        grid.put(0, 0, "again")
    with pytest.raises(IndexError):
        grid.put(2, 0, "out")


def test_chunk_manager_polls_meshes():
    field = HeightField.from_array(np.arange(16, dtype=np.float32).reshape(4, 4))
    cm = ChunkManager(field=field, chunk_size=2, max_edge_delta=0.5, workers=2)
    try:
        cm.request([(0, 0), (1, 1), (0, 0)])
        got = {}
        while len(got) < 2:
            mesh = cm.wait_ready(timeout=5.0)
            got[(mesh.cx, mesh.cz)] = mesh
        assert cm.pending == set()
        expected = build_chunk_mesh(field, 1, 1, 2, 0.5)
        np.testing.assert_array_equal(got[(1, 1)].positions, expected.positions)
        assert cm.poll_ready() == []
    finally:
        cm.shutdown()


def failing_build(bad):
    real = build_chunk_mesh

    def build(field, cx, cz, chunk_size, max_edge_delta):
        if (cx, cz) == bad:
            raise ValueError(f"broken chunk {cx},{cz}")
        return real(field, cx, cz, chunk_size, max_edge_delta)

    return build


def test_worker_failure_reaches_caller_and_stops_workers(monkeypatch):
    monkeypatch.setattr(chunk_manager, "build_chunk_mesh", failing_build((0, 1)))
    gen, _factory = make_gen(workers=1)
    gen.start()
    workers = list(gen._cm.workers)
    with pytest.raises(RuntimeError) as info:
        gen.run()
    assert isinstance(info.value.__cause__, ValueError)
    assert gen.state is GeneratorState.FAILED
    assert gen.finished
    assert gen.pending() == []
    assert all(not w.is_alive() for w in workers)
    assert gen.step() is None
    assert (0, 1) not in gen.chunks


def test_sequential_failure_marks_generator_failed(monkeypatch):
    monkeypatch.setattr(world_mod, "build_chunk_mesh", failing_build((0, 1)))
    gen, factory = make_gen()
    gen.start()
    assert gen.step() is not None
    with pytest.raises(ValueError):
        gen.step()
    assert gen.state is GeneratorState.FAILED
    assert gen.finished
    assert gen.pending() == []
    assert len(factory.meshes) == 1
    assert list(gen.tasks()) == []
