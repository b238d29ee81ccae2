from __future__ import annotations

import numpy as np

from retroterrain.render.camera import OrbitCamera
from retroterrain.util.math import look_at, translation


def test_translation_is_column_major():
    m = translation(4.0, 0.0, 8.0)
    p = np.array([1.0, 2.0, 3.0, 1.0], dtype=np.float32)
    # column-major bytes: multiply as a row vector
    np.testing.assert_allclose(p @ m, [5.0, 2.0, 11.0, 1.0])


def test_look_at_moves_eye_to_origin():
    eye = np.array([3.0, 4.0, 5.0], dtype=np.float32)
    m = look_at(eye, np.zeros(3, dtype=np.float32), np.array([0.0, 1.0, 0.0], dtype=np.float32))
    out = np.append(eye, 1.0).astype(np.float32) @ m
    np.testing.assert_allclose(out[:3], 0.0, atol=1e-5)


def test_orbit_camera_keeps_distance_and_zooms():
    target = np.array([8.0, 0.5, 8.0], dtype=np.float32)
    cam = OrbitCamera(target, 20.0, pitch=0.75, yaw_rate=1.2, zoom_rate=1.5, smooth_k=6.0)
    assert abs(float(np.linalg.norm(cam.eye() - target)) - 20.0) < 1e-3
    assert cam.eye()[1] > target[1]

    for _ in range(60):
        cam.update(1.0 / 30.0, zoom=1.0)
    assert cam.distance < 20.0
    assert cam.distance >= cam.min_distance

    yaw0 = cam.yaw
    cam.update(0.1, turn=1.0)
    assert cam.yaw > yaw0
