# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝

"""Diffusion utilities — schedule math, noise helpers, and guidance.

Shared helpers used across schedulers and pipelines:

- ``linspace`` / ``arange``     — evenly spaced and stepped value ranges.
- ``interpolate``               — piecewise-linear lookup with clamping.
- ``find_index``                — linear probe used for step lookup.
- ``get_beta_schedule``         — β schedules for the forward process.
- ``randn_tensor``              — seeded Gaussian noise as a Tensor.
- ``classifier_free_guidance``  — compose guided noise predictions.
"""
from __future__ import annotations

import math
import numpy as np
from typing import Optional, Sequence, Tuple, Union

from sdsampler.errors import ConfigError, ShapeError
from sdsampler.tensor import Tensor


# ═════════════════════════════════════════════════════════════════════
#  Schedule math
# ═════════════════════════════════════════════════════════════════════

def linspace(
    start: float,
    end: float,
    num_steps: int,
    include_end: bool = True,
    dtype: np.dtype = np.float32,
) -> np.ndarray:
    """Evenly spaced values from *start* towards *end*.

    With ``include_end=True`` the last value is *end*; otherwise the range
    is split into *num_steps* equal steps and *end* is excluded.

    Raises:
        ConfigError: If ``end <= start`` or ``num_steps <= 0``.
    """
    if end <= start:
        raise ConfigError(f"Invalid range [{start}, {end}], end must be strictly greater than start")
    if num_steps <= 0:
        raise ConfigError(f"Invalid number of steps, {num_steps}")
    divisor = num_steps - 1 if include_end else num_steps
    # A single inclusive step is just the start point.
    step_size = (end - start) / divisor if divisor > 0 else 0.0
    values = start + np.arange(num_steps, dtype=np.float64) * step_size
    if include_end and num_steps > 1:
        values[-1] = end
    return values.astype(dtype)


def arange(
    start: float,
    end: float,
    step_size: float,
    dtype: np.dtype = np.float32,
) -> np.ndarray:
    """Values ``start, start + step, …`` strictly below *end*.

    Raises:
        ConfigError: If ``end <= start`` or ``step_size <= 1e-5``.
    """
    if end <= start:
        raise ConfigError(f"Invalid range [{start}, {end}], end must be strictly greater than start")
    if step_size <= 1e-5:
        raise ConfigError(f"Invalid step size {step_size}, must be positive")
    num_steps = math.ceil((end - start) / step_size)
    return (start + np.arange(num_steps, dtype=np.float64) * step_size).astype(dtype)


def interpolate(
    query: Union[Sequence[float], np.ndarray],
    sorted_range: Union[Sequence[float], np.ndarray],
    values: Union[Sequence[float], np.ndarray],
) -> np.ndarray:
    """Sample the piecewise-linear curve ``(sorted_range, values)`` at *query*.

    Each query point is located by binary search.  Exact matches return the
    stored value, points below the first range element return
    ``values[0]``, points above the last return ``values[-1]``, and
    everything in between is linearly interpolated between the bracketing
    entries.

    Returns:
        float32 array with one entry per query point.
    """
    x = np.asarray(query, dtype=np.float64).reshape(-1)
    xp = np.asarray(sorted_range, dtype=np.float64).reshape(-1)
    fp = np.asarray(values, dtype=np.float64).reshape(-1)
    if xp.size == 0:
        raise ConfigError("Interpolation range is empty")
    if xp.size != fp.size:
        raise ConfigError(
            f"Interpolation range has {xp.size} points but {fp.size} values were supplied")
    if xp.size == 1:
        return np.full(x.shape, fp[0], dtype=np.float32)

    idx = np.searchsorted(xp, x, side='left')
    hi = np.clip(idx, 1, xp.size - 1)
    lo = hi - 1
    t = (x - xp[lo]) / (xp[hi] - xp[lo])
    result = fp[lo] + t * (fp[hi] - fp[lo])

    probe = np.minimum(idx, xp.size - 1)
    exact = xp[probe] == x
    result = np.where(exact, fp[probe], result)
    result = np.where(~exact & (idx == 0), fp[0], result)
    result = np.where(idx == xp.size, fp[-1], result)
    return result.astype(np.float32)


def find_index(array: Union[Sequence[int], np.ndarray], target: int) -> int:
    """Index of the last element equal to *target*, or ``-1`` if absent.

    Used where the array order (descending timesteps) rules out a binary
    search.
    """
    matches = np.flatnonzero(np.asarray(array) == target)
    return int(matches[-1]) if matches.size else -1


# ═════════════════════════════════════════════════════════════════════
#  Beta-schedule builder
# ═════════════════════════════════════════════════════════════════════

def get_beta_schedule(
    schedule: str,
    num_timesteps: int = 1000,
    beta_start: float = 0.00085,
    beta_end: float = 0.012,
) -> np.ndarray:
    """Construct a beta noise schedule.

    Args:
        schedule:       ``'linear'`` or ``'scaled_linear'`` (linear in
                        √β, as used by Stable Diffusion).
        num_timesteps:  Number of training diffusion timesteps.
        beta_start:     First beta value.
        beta_end:       Last beta value.

    Returns:
        1-D float32 numpy array of length ``num_timesteps``.
    """
    if schedule == 'linear':
        return linspace(beta_start, beta_end, num_timesteps, include_end=True)
    elif schedule == 'scaled_linear':
        return linspace(beta_start ** 0.5, beta_end ** 0.5,
                        num_timesteps, include_end=True) ** 2
    else:
        raise ConfigError(f"Unknown beta schedule: {schedule!r}")


# ═════════════════════════════════════════════════════════════════════
#  Noise generation
# ═════════════════════════════════════════════════════════════════════

def randn_tensor(
    shape: Union[Tuple[int, ...], Sequence[int]],
    seed: Optional[Union[int, np.random.SeedSequence]] = None,
    std: float = 1.0,
) -> Tensor:
    """Generate a float32 Tensor of zero-mean Gaussian noise.

    Args:
        shape:  Shape of the output tensor.
        seed:   Integer seed or ``SeedSequence`` for reproducibility.
        std:    Standard deviation of every element.
    """
    rng = np.random.default_rng(seed)
    data = rng.normal(0.0, std, size=tuple(shape)).astype(np.float32)
    return Tensor._wrap(data)


# ═════════════════════════════════════════════════════════════════════
#  Classifier-Free Guidance
# ═════════════════════════════════════════════════════════════════════

def classifier_free_guidance(
    noise_pred_uncond: Tensor,
    noise_pred_text: Tensor,
    guidance_scale: float = 7.5,
) -> Tensor:
    """Blend unconditional and conditional noise predictions::

        guided = uncond + guidance_scale * (text - uncond)

    A scale of 1.0 returns the text prediction, 0.0 the unconditional one.
    """
    if noise_pred_uncond.shape != noise_pred_text.shape:
        raise ShapeError(
            f"Guidance inputs differ in shape: {list(noise_pred_uncond.shape)} "
            f"and {list(noise_pred_text.shape)}")
    uncond = noise_pred_uncond.numpy()
    guided = uncond + guidance_scale * (noise_pred_text.numpy() - uncond)
    return Tensor._wrap(guided.astype(uncond.dtype))


# ═════════════════════════════════════════════════════════════════════
#  Exports
# ═════════════════════════════════════════════════════════════════════

__all__ = [
    'linspace',
    'arange',
    'interpolate',
    'find_index',
    'get_beta_schedule',
    'randn_tensor',
    'classifier_free_guidance',
]
