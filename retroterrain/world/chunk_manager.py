from __future__ import annotations

import queue
import threading
from typing import Any, Iterator, List, Optional, Tuple

from retroterrain.world.chunk import ChunkMesh
from retroterrain.world.height import HeightField
from retroterrain.world.mesh_builder import build_chunk_mesh


def chunk_order(world_size: int) -> List[Tuple[int, int]]:
    """All chunk coordinates in generation order (cx outer, cz inner)."""
    n = max(1, int(world_size))
    return [(cx, cz) for cx in range(n) for cz in range(n)]


class ChunkGrid:
    """Pre-sized slots for every chunk handle, addressed by (cx, cz).

    Each slot is written once; iteration yields filled slots in
    generation order.
    """

    def __init__(self, world_size: int) -> None:
        self.world_size = max(1, int(world_size))
        self._slots: List[Optional[Any]] = [None] * (self.world_size * self.world_size)
        self._filled = 0

    def _slot(self, cx: int, cz: int) -> int:
        if not (0 <= cx < self.world_size and 0 <= cz < self.world_size):
            raise IndexError(f"chunk ({cx}, {cz}) outside a {self.world_size}x{self.world_size} world")
        return cx * self.world_size + cz

    def put(self, cx: int, cz: int, handle: Any) -> None:
        i = self._slot(cx, cz)
        if self._slots[i] is not None:
            raise RuntimeError(f"chunk ({cx}, {cz}) already registered")
        self._slots[i] = handle
        self._filled += 1

    def get(self, cx: int, cz: int) -> Optional[Any]:
        return self._slots[self._slot(cx, cz)]

    def __getitem__(self, key: Tuple[int, int]) -> Optional[Any]:
        return self.get(*key)

    def __contains__(self, key: Tuple[int, int]) -> bool:
        cx, cz = key
        return 0 <= cx < self.world_size and 0 <= cz < self.world_size and self.get(cx, cz) is not None

    def __iter__(self) -> Iterator[Any]:
        return (h for h in self._slots if h is not None)

    def __len__(self) -> int:
        return self._filled

    @property
    def capacity(self) -> int:
        return len(self._slots)

    @property
    def complete(self) -> bool:
        return self._filled == self.capacity


class _BuildError:
    def __init__(self, key: Tuple[int, int], exc: BaseException) -> None:
        self.key = key
        self.exc = exc


class ChunkWorker(threading.Thread):
    """Builds chunk meshes off the caller thread. Only reads the height field."""

    def __init__(self, task_q: "queue.Queue[tuple[int,int]]", out_q: "queue.Queue[Any]", *, field: HeightField, chunk_size: int, max_edge_delta: float) -> None:
        super().__init__(daemon=True)
        self.task_q = task_q
        self.out_q = out_q
        self.field = field
        self.chunk_size = int(chunk_size)
        self.max_edge_delta = float(max_edge_delta)
        self._stop_evt = threading.Event()

    def stop(self) -> None:
        self._stop_evt.set()

    def run(self) -> None:
        while not self._stop_evt.is_set():
            try:
                cx, cz = self.task_q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                mesh = build_chunk_mesh(self.field, cx, cz, self.chunk_size, self.max_edge_delta)
                self.out_q.put(mesh)
            except Exception as e:
                self.out_q.put(_BuildError((cx, cz), e))
            finally:
                self.task_q.task_done()


class ChunkManager:
    def __init__(self, *, field: HeightField, chunk_size: int, max_edge_delta: float, workers: int = 1) -> None:
        self.field = field
        self.chunk_size = int(chunk_size)
        self.max_edge_delta = float(max_edge_delta)

        self.task_q: "queue.Queue[tuple[int,int]]" = queue.Queue()
        self.out_q: "queue.Queue[Any]" = queue.Queue()

        self.workers = [
            ChunkWorker(self.task_q, self.out_q, field=field, chunk_size=self.chunk_size, max_edge_delta=self.max_edge_delta)
            for _ in range(max(1, int(workers)))
        ]
        for w in self.workers:
            w.start()

        self.pending: set[Tuple[int, int]] = set()

    def shutdown(self) -> None:
        for w in self.workers:
            w.stop()
        for w in self.workers:
            w.join(timeout=1.0)

    def request(self, keys) -> None:
        for key in keys:
            if key in self.pending:
                continue
            self.pending.add(key)
            self.task_q.put(key)

    def _take(self, item: Any) -> ChunkMesh:
        if isinstance(item, _BuildError):
            self.pending.discard(item.key)
            raise RuntimeError(f"failed to build chunk {item.key}") from item.exc
        self.pending.discard((item.cx, item.cz))
        return item

    def poll_ready(self, max_items: int = 2) -> list[ChunkMesh]:
        ready = []
        for _ in range(max_items):
            try:
                item = self.out_q.get_nowait()
            except queue.Empty:
                break
            ready.append(self._take(item))
        return ready

    def wait_ready(self, timeout: float | None = None) -> ChunkMesh:
        """Block until the next mesh is ready (queue.Empty on timeout)."""
        return self._take(self.out_q.get(timeout=timeout))
