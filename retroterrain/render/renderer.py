from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import moderngl
import numpy as np

from retroterrain.config import FAR, FOV_DEG, NEAR
from retroterrain.render.shaders import shader_sources
from retroterrain.util.math import perspective, translation
from retroterrain.world.chunk import Bounds

_SKY_VERT = """#version 150
in vec2 in_pos;
out vec2 v_uv;
void main() {
    v_uv = in_pos * 0.5 + 0.5;
    gl_Position = vec4(in_pos, 0.0, 1.0);
}
"""

_SKY_FRAG = """#version 150
in vec2 v_uv;
out vec4 f_color;

void main() {
    vec3 horizon = vec3(0.78, 0.86, 0.96);
    vec3 zenith  = vec3(0.40, 0.60, 0.85);
    f_color = vec4(mix(horizon, zenith, smoothstep(0.0, 1.0, v_uv.y)), 1.0);
}
"""


@dataclass
class ChunkGPU:
    name: str
    origin: Tuple[float, float, float]
    model: np.ndarray
    vao: moderngl.VertexArray
    vbo: moderngl.Buffer
    ibo: moderngl.Buffer
    bounds: Bounds | None

    def release(self) -> None:
        self.vao.release()
        self.vbo.release()
        self.ibo.release()


class Renderer:
    """moderngl terrain renderer; also the renderable factory for the generator."""

    def __init__(self, ctx: moderngl.Context, width: int, height: int) -> None:
        self.ctx = ctx
        self.width = width
        self.height = height

        vert, frag = shader_sources(ctx.version_code)
        self.prog = self.ctx.program(vertex_shader=vert, fragment_shader=frag)

        self._proj = perspective(FOV_DEG, width / height, NEAR, FAR).astype(np.float32)
        self.prog["u_proj"].write(self._proj.tobytes())

        self.ctx.enable(moderngl.DEPTH_TEST)
        self.ctx.disable(moderngl.CULL_FACE)

        self._sky_prog = self.ctx.program(vertex_shader=_SKY_VERT, fragment_shader=_SKY_FRAG)
        sky = np.array([
            -1.0, -1.0,
             1.0, -1.0,
            -1.0,  1.0,
             1.0,  1.0,
        ], dtype=np.float32)
        self._sky_vbo = self.ctx.buffer(sky.tobytes())
        self._sky_vao = self.ctx.vertex_array(self._sky_prog, [(self._sky_vbo, "2f", "in_pos")])

        self.chunks: list[ChunkGPU] = []

    @property
    def proj(self) -> np.ndarray:
        return self._proj

    def create_renderable(
        self,
        vertices: np.ndarray,
        uvs: np.ndarray,
        indices: np.ndarray,
        origin: Tuple[float, float, float],
        name: str,
        *,
        normals: np.ndarray | None = None,
        bounds: Bounds | None = None,
    ) -> ChunkGPU:
        if normals is None:
            normals = np.tile(np.array([0.0, 1.0, 0.0], dtype=np.float32), (vertices.shape[0], 1))
        interleaved = np.concatenate([vertices, normals, uvs], axis=1).astype(np.float32)
        vbo = self.ctx.buffer(interleaved.tobytes())
        ibo = self.ctx.buffer(np.ascontiguousarray(indices).tobytes())
        vao = self.ctx.vertex_array(
            self.prog,
            [
                (vbo, "3f 3f 2f", "in_pos", "in_norm", "in_uv"),
            ],
            ibo,
            index_element_size=indices.dtype.itemsize,
        )
        chunk = ChunkGPU(
            name=name,
            origin=origin,
            model=translation(*origin),
            vao=vao,
            vbo=vbo,
            ibo=ibo,
            bounds=bounds,
        )
        self.chunks.append(chunk)
        return chunk

    def release(self) -> None:
        for ch in self.chunks:
            try:
                ch.release()
            except Exception:
                pass
        self.chunks.clear()
        for obj in [self._sky_vao, self._sky_vbo, self._sky_prog, self.prog]:
            try:
                obj.release()
            except Exception:
                pass

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.ctx.viewport = (0, 0, width, height)
        self._proj = perspective(FOV_DEG, width / height, NEAR, FAR).astype(np.float32)
        self.prog["u_proj"].write(self._proj.tobytes())

    def begin_frame(self) -> None:
        self.ctx.clear(0.70, 0.80, 0.92, 1.0)
        self.ctx.disable(moderngl.DEPTH_TEST)
        self._sky_vao.render(mode=moderngl.TRIANGLE_STRIP)
        self.ctx.enable(moderngl.DEPTH_TEST)

    def set_common_uniforms(
        self,
        view: np.ndarray,
        cam_pos: np.ndarray,
        light_dir: np.ndarray,
        fog_start: float,
        fog_end: float,
        *,
        height_scale: float = 1.0,
    ) -> None:
        self.prog["u_view"].write(view.astype(np.float32).tobytes())
        self.prog["u_cam_pos"].value = (float(cam_pos[0]), float(cam_pos[1]), float(cam_pos[2]))
        self.prog["u_light_dir"].value = (float(light_dir[0]), float(light_dir[1]), float(light_dir[2]))
        self.prog["u_height_scale"].value = float(height_scale)
        self.prog["u_fog_start"].value = float(fog_start)
        self.prog["u_fog_end"].value = float(fog_end)

    def draw_chunks(self) -> None:
        for ch in self.chunks:
            self.prog["u_model"].write(ch.model.tobytes())
            ch.vao.render()
