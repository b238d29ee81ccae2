from __future__ import annotations

import enum
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Iterator, Optional

from retroterrain.config import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DEBUG_RANDOM_HEIGHTS,
    DEFAULT_HEIGHT_SCALE,
    DEFAULT_MAX_EDGE_DELTA,
    DEFAULT_NOISE,
    DEFAULT_NOISE_SCALE,
    DEFAULT_OCTAVES,
    DEFAULT_SEED,
    DEFAULT_TERRACE,
    DEFAULT_WORLD_SIZE,
)
from retroterrain.world.chunk import ChunkMesh
from retroterrain.world.chunk_manager import ChunkGrid, ChunkManager, chunk_order
from retroterrain.world.height import HeightField, HeightSampler
from retroterrain.world.mesh_builder import build_chunk_mesh
from retroterrain.world.noise import NOISE_MODES
from retroterrain.world.renderable import RenderableFactory

log = logging.getLogger(__name__)


@dataclass
class WorldParams:
    """Generation settings. Out-of-range values are clamped, never rejected."""

    world_size: int = DEFAULT_WORLD_SIZE
    chunk_size: int = DEFAULT_CHUNK_SIZE
    height_scale: float = DEFAULT_HEIGHT_SCALE
    seed: int = DEFAULT_SEED
    noise_scale: float = DEFAULT_NOISE_SCALE
    debug_random_heights: bool = DEFAULT_DEBUG_RANDOM_HEIGHTS
    terrace: float = DEFAULT_TERRACE
    max_edge_delta: float = DEFAULT_MAX_EDGE_DELTA
    noise_mode: str = DEFAULT_NOISE
    octaves: int = DEFAULT_OCTAVES

    def __post_init__(self) -> None:
        self.world_size = max(1, int(self.world_size))
        self.chunk_size = max(1, int(self.chunk_size))
        self.height_scale = float(self.height_scale)
        self.seed = int(self.seed)
        self.noise_scale = float(self.noise_scale)
        self.debug_random_heights = bool(self.debug_random_heights)
        self.terrace = max(0.0, float(self.terrace))
        self.max_edge_delta = max(0.0, float(self.max_edge_delta))
        self.octaves = max(1, int(self.octaves))
        if self.noise_mode not in NOISE_MODES:
            raise ValueError(f"unknown noise mode {self.noise_mode!r} (expected one of {', '.join(NOISE_MODES)})")

    @property
    def tiles_per_axis(self) -> int:
        return self.world_size * self.chunk_size

    @property
    def chunk_count(self) -> int:
        return self.world_size * self.world_size


class GeneratorState(enum.Enum):
    IDLE = "idle"
    BUILDING_HEIGHT_FIELD = "building_height_field"
    BUILDING_CHUNKS = "building_chunks"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class ChunkTask:
    cx: int
    cz: int


class WorldGenerator:
    """Builds the height field once, then one chunk per step.

    The generator never schedules itself: whoever owns the frame loop calls
    step() (or iterates tasks()) and decides when the next chunk runs.
    A chunk is never interrupted midway; cancel() takes effect at the next
    chunk boundary.
    """

    def __init__(
        self,
        params: WorldParams,
        factory: RenderableFactory,
        *,
        sampler: HeightSampler | None = None,
        workers: int = 0,
    ) -> None:
        self.params = params
        self.factory = factory
        self.sampler = sampler if sampler is not None else HeightSampler.from_params(params)
        self.workers = max(0, int(workers))

        self.state = GeneratorState.IDLE
        self.height_field: Optional[HeightField] = None
        self.chunks = ChunkGrid(params.world_size)

        self._queue: Deque[ChunkTask] = deque()
        self._cm: Optional[ChunkManager] = None
        self._cancel_requested = False
        self._t_start = 0.0

    @property
    def finished(self) -> bool:
        return self.state in (GeneratorState.DONE, GeneratorState.CANCELLED, GeneratorState.FAILED)

    @property
    def progress(self) -> float:
        return len(self.chunks) / self.chunks.capacity

    def pending(self) -> list[ChunkTask]:
        return list(self._queue)

    def start(self) -> None:
        if self.state is not GeneratorState.IDLE:
            raise RuntimeError(f"generator already started (state={self.state.value})")
        self._t_start = time.perf_counter()

        self.state = GeneratorState.BUILDING_HEIGHT_FIELD
        self.height_field = HeightField.build(self.sampler, self.params.tiles_per_axis)

        self._queue.extend(ChunkTask(cx, cz) for cx, cz in chunk_order(self.params.world_size))
        if self.workers > 0:
            self._cm = ChunkManager(
                field=self.height_field,
                chunk_size=self.params.chunk_size,
                max_edge_delta=self.params.max_edge_delta,
                workers=self.workers,
            )
            self._cm.request((t.cx, t.cz) for t in self._queue)

        self.state = GeneratorState.BUILDING_CHUNKS
        log.info(
            "generating %dx%d chunks of %dx%d tiles (seed=%d, workers=%d)",
            self.params.world_size, self.params.world_size,
            self.params.chunk_size, self.params.chunk_size,
            self.params.seed, self.workers,
        )

    def cancel(self) -> None:
        self._cancel_requested = True

    def build_chunk(self, task: ChunkTask) -> ChunkMesh:
        if self.height_field is None:
            raise RuntimeError("height field not built; call start() first")
        return build_chunk_mesh(self.height_field, task.cx, task.cz, self.params.chunk_size, self.params.max_edge_delta)

    def _register(self, mesh: ChunkMesh) -> Any:
        handle = self.factory.create_renderable(
            mesh.positions,
            mesh.uvs,
            mesh.indices,
            mesh.origin,
            mesh.name,
            normals=mesh.normals,
            bounds=mesh.bounds,
        )
        self.chunks.put(mesh.cx, mesh.cz, handle)
        log.debug("%s: %d verts, %d tris, %s", mesh.name, mesh.vertex_count, mesh.triangle_count, mesh.index_format)
        return handle

    def _finish(self, state: GeneratorState) -> None:
        self.state = state
        self._queue.clear()
        if self._cm is not None:
            self._cm.shutdown()
            self._cm = None
        log.info(
            "world %s: %d/%d chunks in %.1f ms",
            state.value, len(self.chunks), self.chunks.capacity,
            (time.perf_counter() - self._t_start) * 1000.0,
        )

    def step(self) -> Any:
        """Build and register one chunk; returns its handle or None when finished."""
        if self.state is GeneratorState.IDLE:
            raise RuntimeError("generator not started; call start() first")
        if self.finished:
            return None
        if self._cancel_requested:
            self._finish(GeneratorState.CANCELLED)
            return None
        if not self._queue:
            self._finish(GeneratorState.DONE)
            return None

        try:
            if self._cm is not None:
                # workers finish in any order; each mesh goes to its own slot
                mesh = self._cm.wait_ready()
                self._queue.remove(ChunkTask(mesh.cx, mesh.cz))
            else:
                mesh = self.build_chunk(self._queue.popleft())
            handle = self._register(mesh)
        except Exception:
            log.exception("chunk build failed; stopping generation")
            self._finish(GeneratorState.FAILED)
            raise

        if not self._queue:
            self._finish(GeneratorState.DONE)
        return handle

    def tasks(self) -> Iterator[Any]:
        """Generator form of step(): yields each chunk handle, i.e. once per chunk."""
        if self.state is GeneratorState.IDLE:
            self.start()
        while not self.finished:
            handle = self.step()
            if handle is not None:
                yield handle

    def run(self, tick: Callable[[], None] | None = None) -> ChunkGrid:
        """Drive generation to completion, calling tick() between chunks."""
        for _ in self.tasks():
            if tick is not None:
                tick()
        return self.chunks
