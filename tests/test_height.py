from __future__ import annotations

import numpy as np
import pytest

from retroterrain.world.height import HeightField, HeightSampler, terrace_snap
from retroterrain.world.noise import FastValueNoise2D, NoiseConfig, make_noise


def test_terrace_snaps_to_nearest_step():
    assert terrace_snap(0.3, 0.25) == 0.25
    assert terrace_snap(0.4, 0.25) == 0.5
    assert terrace_snap(-0.3, 0.25) == -0.25


def test_terrace_ties_round_half_to_even():
    assert terrace_snap(0.125, 0.25) == 0.0
    assert terrace_snap(0.375, 0.25) == 0.5
    assert terrace_snap(0.625, 0.25) == 0.5


def test_terrace_disabled():
    assert terrace_snap(0.3, 0.0) == 0.3
    assert terrace_snap(0.3, -1.0) == 0.3


def test_terrace_is_idempotent():
    rng = np.random.default_rng(5)
    values = rng.uniform(-10.0, 10.0, size=200)
    for step in (0.1, 0.25, 0.3, 1.0, 2.5):
        once = terrace_snap(values, step)
        np.testing.assert_array_equal(terrace_snap(once, step), once)


def test_clamped_lookup_replicates_edges():
    field = HeightField.from_array(np.arange(9, dtype=np.float32).reshape(3, 3))
    assert field.get(1, 1) == 4.0
    assert field.get(-5, 1) == field.get(0, 1)
    assert field.get(1, -1) == field.get(1, 0)
    assert field.get(10, 10) == 8.0
    assert field.get(-1, 7) == field.get(0, 2)
    np.testing.assert_array_equal(field.gather([-1, 0, 3], [1, 1, 1]), [1.0, 1.0, 7.0])


def test_neighbourhood_directions():
    # heights[x, z] = 10 * x + z
    h = np.add.outer(np.arange(3) * 10.0, np.arange(3))
    field = HeightField.from_array(h)
    nb = field.neighbourhood(1, 1)
    assert nb.c == 11.0
    assert nb.n == 12.0
    assert nb.s == 10.0
    assert nb.e == 21.0
    assert nb.w == 1.0
    assert nb.ne == 22.0
    assert nb.sw == 0.0


def test_height_field_is_read_only():
    field = HeightField.from_array(np.zeros((2, 2)))
    with pytest.raises(ValueError):
        field.heights[0, 0] = 1.0


def test_height_field_rejects_non_square():
    with pytest.raises(ValueError):
        HeightField.from_array(np.zeros((2, 3)))


def test_build_clamps_size_to_one():
    sampler = HeightSampler(height_scale=0.0)
    field = HeightField.build(sampler, 0)
    assert field.size == 1
    assert field.get(5, -5) == 0.0


def test_grid_matches_point_samples():
    sampler = HeightSampler(height_scale=5.0, seed=3, noise_scale=0.1, terrace=0.0)
    field = HeightField.build(sampler, 6)
    for x in range(6):
        for z in range(6):
            assert field.get(x, z) == pytest.approx(sampler.sample(x, z), rel=1e-6, abs=1e-6)


def test_seed_offsets_sampling_coordinates():
    a = HeightSampler(height_scale=1.0, seed=2, noise_scale=0.37)
    b = HeightSampler(height_scale=1.0, seed=0, noise_scale=0.37)
    assert a.sample(0, 0) == b.sample(2, 2)
    assert a.sample(5, 1) == b.sample(7, 3)


def test_sampling_is_deterministic_and_terraced():
    a = HeightSampler(height_scale=4.0, seed=9, noise_scale=0.2, terrace=0.5)
    b = HeightSampler(height_scale=4.0, seed=9, noise_scale=0.2, terrace=0.5)
    ga = a.sample_grid(8)
    np.testing.assert_array_equal(ga, b.sample_grid(8))
    np.testing.assert_array_equal(ga, terrace_snap(ga, 0.5))
    assert ga.min() >= 0.0
    assert ga.max() <= 4.0


def test_debug_random_heights_stay_in_range():
    sampler = HeightSampler(height_scale=3.0, debug_random=True, terrace=0.0, rng=np.random.default_rng(1))
    grid = sampler.sample_grid(16)
    assert grid.shape == (16, 16)
    assert grid.min() >= 0.0
    assert grid.max() <= 3.0
    assert 0.0 <= sampler.sample(0, 0) <= 3.0


def test_fast_noise_range_and_continuity():
    noise = FastValueNoise2D()
    xs = np.linspace(-40.0, 40.0, 401)
    v = noise.lattice(xs, xs)
    assert v.min() >= 0.0
    assert v.max() < 1.0
    # lattice step 0.2 -> neighbouring samples stay close
    assert np.max(np.abs(np.diff(v, axis=0))) < 0.5


def test_fbm_octaves_stay_normalized():
    noise = make_noise("fast", NoiseConfig(octaves=4))
    xs = np.linspace(0.0, 30.0, 64)
    v = noise.lattice(xs, xs)
    assert v.min() >= 0.0
    assert v.max() <= 1.0


def test_simplex_lattice_matches_points():
    noise = make_noise("simplex")
    xs = np.array([0.1, 1.7, 3.2])
    zs = np.array([0.4, 2.9])
    grid = noise.lattice(xs, zs)
    assert grid.shape == (3, 2)
    for i, x in enumerate(xs):
        for j, z in enumerate(zs):
            assert grid[i, j] == pytest.approx(noise.value(x, z), abs=1e-9)
            assert 0.0 <= grid[i, j] <= 1.0


def test_unknown_noise_mode():
    with pytest.raises(ValueError):
        make_noise("perlin")


def test_field_stores_float32_heights():
    sampler = HeightSampler(height_scale=5.0, seed=3, noise_scale=0.1, terrace=0.1)
    grid = sampler.sample_grid(6)
    assert grid.dtype == np.float64
    field = HeightField(grid)
    assert field.heights.dtype == np.float32
    for x in range(6):
        for z in range(6):
            assert field.get(x, z) == float(np.float32(grid[x, z]))
    # 0.1 has no exact float32 form
    assert HeightField.from_array(np.full((1, 1), 0.1)).get(0, 0) != 0.1
