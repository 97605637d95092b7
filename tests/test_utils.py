"""
Tests for sdsampler.diffusion.utils schedule math, noise, and guidance helpers.
"""
import numpy as np
import pytest

import sdsampler
from sdsampler import ConfigError, ShapeError
from sdsampler.diffusion.utils import (
    arange,
    classifier_free_guidance,
    find_index,
    get_beta_schedule,
    interpolate,
    linspace,
    randn_tensor,
)


# ── linspace ──

def test_linspace_inclusive():
    np.testing.assert_allclose(linspace(0, 1, 5), [0.0, 0.25, 0.5, 0.75, 1.0])


def test_linspace_exclusive():
    np.testing.assert_allclose(linspace(0, 1, 4, include_end=False), [0.0, 0.25, 0.5, 0.75])


def test_linspace_endpoint_is_exact():
    values = linspace(0, 999, 50, dtype=np.float64)
    assert values[0] == 0.0
    assert values[-1] == 999.0
    assert len(values) == 50
    assert np.all(np.diff(values) > 0)


def test_linspace_single_step():
    np.testing.assert_array_equal(linspace(2, 5, 1), [2.0])


def test_linspace_dtype():
    assert linspace(0, 1, 3).dtype == np.float32
    assert linspace(0, 1, 3, dtype=np.float64).dtype == np.float64


@pytest.mark.parametrize("start,end,steps", [(1, 1, 5), (2, 1, 5), (0, 1, 0), (0, 1, -3)])
def test_linspace_rejects_bad_arguments(start, end, steps):
    with pytest.raises(ConfigError):
        linspace(start, end, steps)


# ── arange ──

def test_arange_values():
    np.testing.assert_allclose(arange(0, 10, 2.5), [0.0, 2.5, 5.0, 7.5])
    np.testing.assert_allclose(arange(0, 1, 0.3), [0.0, 0.3, 0.6, 0.9], rtol=1e-6)


def test_arange_unit_step_covers_range():
    values = arange(0, 1000, 1.0)
    assert len(values) == 1000
    assert values[0] == 0.0
    assert values[-1] == 999.0


@pytest.mark.parametrize("start,end,step", [(0, 0, 1.0), (5, 1, 1.0), (0, 1, 0.0), (0, 1, 1e-6)])
def test_arange_rejects_bad_arguments(start, end, step):
    with pytest.raises(ConfigError):
        arange(start, end, step)


# ── interpolate ──

RANGE = [0.0, 1.0, 2.0]
VALUES = [10.0, 20.0, 40.0]


def test_interpolate_exact_points():
    np.testing.assert_array_equal(interpolate([0.0, 1.0, 2.0], RANGE, VALUES), VALUES)


def test_interpolate_midpoints():
    np.testing.assert_allclose(interpolate([0.5, 1.5, 0.25], RANGE, VALUES), [15.0, 30.0, 12.5])


def test_interpolate_clamps_outside_range():
    np.testing.assert_array_equal(interpolate([-1.0, -100.0], RANGE, VALUES), [10.0, 10.0])
    np.testing.assert_array_equal(interpolate([3.0, 100.0], RANGE, VALUES), [40.0, 40.0])


def test_interpolate_is_continuous_at_knots():
    eps = 1e-6
    around = interpolate([1.0 - eps, 1.0, 1.0 + eps], RANGE, VALUES)
    np.testing.assert_allclose(around, [20.0, 20.0, 20.0], atol=1e-4)


def test_interpolate_returns_float32():
    assert interpolate([0.5], RANGE, VALUES).dtype == np.float32


def test_interpolate_single_point_range():
    np.testing.assert_array_equal(interpolate([-1.0, 0.0, 5.0], [0.0], [7.0]), [7.0, 7.0, 7.0])


def test_interpolate_rejects_bad_ranges():
    with pytest.raises(ConfigError):
        interpolate([0.5], [], [])
    with pytest.raises(ConfigError):
        interpolate([0.5], [0.0, 1.0], [1.0])


# ── find_index ──

def test_find_index():
    assert find_index([999, 500, 0], 500) == 1
    assert find_index([999, 500, 0], 0) == 2
    assert find_index([999, 500, 0], 7) == -1


def test_find_index_prefers_last_match():
    assert find_index([5, 3, 5, 1], 5) == 2


# ── beta schedules ──

def test_linear_beta_schedule():
    betas = get_beta_schedule('linear', 10, 0.001, 0.01)
    assert len(betas) == 10
    assert betas[0] == pytest.approx(0.001)
    assert betas[-1] == pytest.approx(0.01)
    assert np.all(np.diff(betas) > 0)


def test_scaled_linear_beta_schedule():
    betas = get_beta_schedule('scaled_linear', 1000)
    assert betas[0] == pytest.approx(0.00085, rel=1e-4)
    assert betas[-1] == pytest.approx(0.012, rel=1e-4)
    roots = np.sqrt(betas.astype(np.float64))
    np.testing.assert_allclose(np.diff(roots), np.diff(roots)[0], rtol=1e-2)


def test_unknown_beta_schedule():
    with pytest.raises(ConfigError):
        get_beta_schedule('cosine', 10)


# ── randn_tensor ──

def test_randn_tensor_is_reproducible():
    a = randn_tensor((1, 4, 8, 8), seed=7)
    b = randn_tensor((1, 4, 8, 8), seed=7)
    c = randn_tensor((1, 4, 8, 8), seed=8)
    np.testing.assert_array_equal(a.numpy(), b.numpy())
    assert not np.array_equal(a.numpy(), c.numpy())


def test_randn_tensor_accepts_seed_sequence():
    child = np.random.SeedSequence(3).spawn(1)[0]
    again = np.random.SeedSequence(3).spawn(1)[0]
    np.testing.assert_array_equal(randn_tensor((16,), seed=child).numpy(),
                                  randn_tensor((16,), seed=again).numpy())


def test_randn_tensor_std():
    unit = randn_tensor((64,), seed=1).numpy()
    scaled = randn_tensor((64,), seed=1, std=2.5).numpy()
    np.testing.assert_allclose(scaled, unit * 2.5, rtol=1e-5)


# ── classifier-free guidance ──

def test_guidance_endpoints():
    uncond = sdsampler.tensor([1.0, 2.0, -4.0])
    text = sdsampler.tensor([3.0, 6.0, 0.5])
    np.testing.assert_array_equal(classifier_free_guidance(uncond, text, 1.0).numpy(),
                                  text.numpy())
    np.testing.assert_array_equal(classifier_free_guidance(uncond, text, 0.0).numpy(),
                                  uncond.numpy())


def test_guidance_extrapolates():
    uncond = sdsampler.tensor([1.0, 2.0])
    text = sdsampler.tensor([3.0, 6.0])
    guided = classifier_free_guidance(uncond, text, 2.0)
    np.testing.assert_array_equal(guided.numpy(), [5.0, 10.0])
    assert guided.dtype is sdsampler.float32


def test_guidance_does_not_mutate_inputs():
    uncond = sdsampler.tensor([1.0, 2.0])
    text = sdsampler.tensor([3.0, 6.0])
    classifier_free_guidance(uncond, text, 7.5)
    assert uncond.tolist() == [1.0, 2.0]
    assert text.tolist() == [3.0, 6.0]


def test_guidance_rejects_shape_mismatch():
    with pytest.raises(ShapeError):
        classifier_free_guidance(sdsampler.zeros((2, 2)), sdsampler.zeros((4,)), 7.5)
