from __future__ import annotations

import numpy as np

from retroterrain.util.math import exp_smooth, look_at


def _clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


class OrbitCamera:
    """Camera circling a fixed target (the world centre).

    Yaw and distance follow their targets with exponential smoothing so
    held arrow keys feel weighted rather than snapping.
    """

    def __init__(self, target: np.ndarray, distance: float, *, pitch: float, yaw_rate: float, zoom_rate: float, smooth_k: float) -> None:
        self.target = np.asarray(target, dtype=np.float32)
        self.pitch = float(pitch)
        self.yaw_rate = float(yaw_rate)
        self.zoom_rate = float(zoom_rate)
        self.smooth_k = float(smooth_k)

        self.yaw = 0.8
        self.yaw_target = self.yaw
        self.distance = float(distance)
        self.distance_target = self.distance
        self.min_distance = 2.0
        self.max_distance = max(4.0, float(distance) * 4.0)

    def update(self, dt: float, *, turn: float = 0.0, zoom: float = 0.0, tilt: float = 0.0) -> None:
        self.yaw_target += turn * self.yaw_rate * dt
        self.distance_target *= float(np.exp(-zoom * self.zoom_rate * dt))
        self.distance_target = _clamp(self.distance_target, self.min_distance, self.max_distance)
        self.pitch = _clamp(self.pitch + tilt * dt, 0.1, 1.45)

        self.yaw = exp_smooth(self.yaw, self.yaw_target, self.smooth_k, dt)
        self.distance = exp_smooth(self.distance, self.distance_target, self.smooth_k, dt)

    def eye(self) -> np.ndarray:
        cp = float(np.cos(self.pitch))
        offset = np.array(
            [
                np.sin(self.yaw) * cp,
                np.sin(self.pitch),
                np.cos(self.yaw) * cp,
            ],
            dtype=np.float32,
        )
        return self.target + offset * np.float32(self.distance)

    def view_matrix(self) -> np.ndarray:
        up = np.array([0.0, 1.0, 0.0], dtype=np.float32)
        return look_at(self.eye(), self.target, up)
