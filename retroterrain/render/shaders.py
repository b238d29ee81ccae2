from __future__ import annotations

def _pick_glsl_version(ctx_version_code: int) -> int:
    """GLSL 330 on OpenGL >= 3.3, otherwise 150."""
    if ctx_version_code >= 330:
        return 330
    return 150

_VERT_BODY = """
in vec3 in_pos;
in vec3 in_norm;
in vec2 in_uv;

uniform mat4 u_proj;
uniform mat4 u_view;
uniform mat4 u_model;

out vec3 v_world_pos;
out vec3 v_norm;
out vec2 v_uv;

void main() {
    vec4 world = u_model * vec4(in_pos, 1.0);
    v_world_pos = world.xyz;
    v_norm = in_norm;
    v_uv = in_uv;
    gl_Position = u_proj * u_view * world;
}
"""

_FRAG_BODY = """in vec3 v_world_pos;
in vec3 v_norm;
in vec2 v_uv;

uniform vec3 u_light_dir;
uniform vec3 u_cam_pos;
uniform float u_height_scale;
uniform float u_fog_start;
uniform float u_fog_end;

out vec4 f_color;

vec3 band_color(float t) {
    // Flat retro bands: water, sand, grass, rock, snow
    if (t < 0.20) return vec3(0.16, 0.32, 0.55);
    if (t < 0.30) return vec3(0.78, 0.72, 0.48);
    if (t < 0.60) return vec3(0.28, 0.55, 0.24);
    if (t < 0.80) return vec3(0.45, 0.42, 0.40);
    return vec3(0.92, 0.94, 0.98);
}

void main() {
    vec3 n = normalize(v_norm);
    vec3 l = normalize(u_light_dir);
    float diff = max(dot(n, l), 0.0);

    float t = clamp(v_world_pos.y / max(u_height_scale, 1e-4), 0.0, 1.0);
    vec3 base = band_color(t);

    // Darken tile borders (uv spans one tile)
    vec2 g = min(v_uv, 1.0 - v_uv);
    float edge = 1.0 - smoothstep(0.0, 0.04, min(g.x, g.y));
    base *= 1.0 - 0.25 * edge;

    float ambient = 0.45;
    vec3 col = base * (ambient + 0.75 * diff);

    float dist = length(v_world_pos.xz - u_cam_pos.xz);
    float fog_amount = smoothstep(u_fog_start, u_fog_end, dist);
    vec3 fog_col = vec3(0.70, 0.80, 0.92);
    col = mix(col, fog_col, fog_amount);

    f_color = vec4(col, 1.0);
}"""

def shader_sources(ctx_version_code: int) -> tuple[str, str]:
    ver = _pick_glsl_version(ctx_version_code)
    prefix = f"#version {ver}\n"
    return prefix + _VERT_BODY, prefix + _FRAG_BODY
