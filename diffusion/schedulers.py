# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝

"""Noise schedulers for latent diffusion sampling.

Both schedulers share the Stable Diffusion noise schedule and the
``set_timesteps`` / ``scale_model_input_`` / ``step`` contract:

- **LMSDiscreteScheduler** — linear multistep ODE solver (Karras et al. 2022)
- **EulerAncestralDiscreteScheduler** — Euler step with ancestral noise
  re-injection

Schedulers are stateful and not thread-safe; one instance drives exactly
one sampling run at a time.
"""
from __future__ import annotations

import abc
import enum
import logging
import math
import numpy as np
from collections import deque
from typing import Optional, Union

from scipy import integrate

from sdsampler import config
from sdsampler.errors import ConfigError, ShapeError, StateError
from sdsampler.tensor import Tensor
from sdsampler.diffusion.utils import (
    arange,
    find_index,
    get_beta_schedule,
    interpolate,
    linspace,
)

logger = logging.getLogger(__name__)

SeedLike = Union[int, np.random.SeedSequence, None]


class BetaSchedule(str, enum.Enum):
    """Shape of the training-time beta schedule."""
    LINEAR = 'linear'
    SCALED_LINEAR = 'scaled_linear'

    @classmethod
    def parse(cls, value: Union[str, 'BetaSchedule']) -> 'BetaSchedule':
        try:
            return cls(value)
        except ValueError:
            raise ConfigError(f"Unknown beta schedule: {value!r}") from None


# ═════════════════════════════════════════════════════════════════════
#  Scheduler — shared noise schedule and timestep bookkeeping
# ═════════════════════════════════════════════════════════════════════

class Scheduler(abc.ABC):
    """Base class holding the discretised noise schedule.

    Construction computes the training schedule (betas, cumulative alpha
    products, and the reversed sigma curve).  ``set_timesteps`` then picks
    the timesteps and sigmas for one inference run.

    Args:
        num_train_timesteps: Total number of training diffusion timesteps T.
        beta_start:          First β value.
        beta_end:            Last β value.
        beta_schedule:       ``'linear'`` or ``'scaled_linear'``.
    """

    def __init__(
        self,
        num_train_timesteps: int = config.NUM_TRAIN_TIMESTEPS,
        beta_start: float = config.BETA_START,
        beta_end: float = config.BETA_END,
        beta_schedule: Union[str, BetaSchedule] = config.BETA_SCHEDULE,
    ):
        self.num_train_timesteps = num_train_timesteps
        self.beta_schedule = BetaSchedule.parse(beta_schedule)

        self.betas = get_beta_schedule(self.beta_schedule.value, num_train_timesteps,
                                       beta_start, beta_end)
        self.alphas = (1.0 - self.betas).astype(np.float32)
        self.alphas_cumprod = np.cumprod(self.alphas).astype(np.float32)

        # sigma = sqrt((1 - alpha_bar) / alpha_bar), most-noisy step first
        self.train_sigmas = np.sqrt(
            (1.0 - self.alphas_cumprod) / self.alphas_cumprod
        )[::-1].astype(np.float32)
        self._init_noise_sigma = float(self.train_sigmas.max())

        self._timesteps: Optional[np.ndarray] = None
        self._sigmas: Optional[np.ndarray] = None
        self.num_inference_steps: Optional[int] = None

    # ---- schedule state ----

    @property
    def init_noise_sigma(self) -> float:
        """Standard deviation of the initial latent noise."""
        return self._init_noise_sigma

    @property
    def timesteps(self) -> np.ndarray:
        self._check_configured()
        return self._timesteps

    @property
    def sigmas(self) -> np.ndarray:
        """Active noise levels, one per timestep plus a trailing ``0.0``."""
        self._check_configured()
        return self._sigmas

    def _check_configured(self):
        if self._timesteps is None:
            raise StateError(
                f"{type(self).__name__} is not configured, call set_timesteps first")

    def _step_index(self, timestep: int) -> int:
        idx = find_index(self.timesteps, int(timestep))
        if idx < 0:
            raise StateError(f"Timestep {timestep} is not in the active schedule")
        return idx

    # ---- public API ----

    def set_timesteps(self, num_inference_steps: int) -> np.ndarray:
        """Configure the scheduler for a run of *num_inference_steps*.

        Returns the descending integer timesteps for the run.
        """
        positions = linspace(0, self.num_train_timesteps - 1, num_inference_steps,
                             include_end=True, dtype=np.float64)
        timesteps = positions[::-1].astype(np.int64)

        curve_range = arange(0, len(self.train_sigmas), 1.0, dtype=np.float64)
        sigmas = interpolate(positions, curve_range, self.train_sigmas)

        self.num_inference_steps = num_inference_steps
        self._timesteps = timesteps
        self._sigmas = np.append(sigmas, 0.0).astype(np.float32)
        self._reset()
        logger.debug("%s configured for %d steps (sigma %.4f -> %.4f)",
                     type(self).__name__, num_inference_steps,
                     self._sigmas[0], self._sigmas[-2])
        return timesteps

    def scale_model_input_(self, sample: Tensor, timestep: int) -> Tensor:
        """Scale *sample* in place by ``1 / sqrt(sigma² + 1)``.

        Must be applied to the denoising model's input at every step.
        """
        sigma = float(self.sigmas[self._step_index(timestep)])
        return sample.scale(1.0 / math.sqrt(sigma * sigma + 1.0))

    @abc.abstractmethod
    def step(self, model_output: Tensor, timestep: int, sample: Tensor,
             order: int = config.SCHEDULER_ORDER) -> Tensor:
        """Produce the next latent sample from the model's noise prediction."""

    def _reset(self):
        """Drop per-run state; called by ``set_timesteps``."""

    def _predict_original(self, model_output: Tensor, sample: Tensor,
                          sigma: float) -> np.ndarray:
        if model_output.shape != sample.shape:
            raise ShapeError(
                f"Model output shape {list(model_output.shape)} does not match "
                f"sample shape {list(sample.shape)}")
        x = sample.numpy()
        return x - sigma * model_output.numpy()


# ═════════════════════════════════════════════════════════════════════
#  LMSDiscreteScheduler
# ═════════════════════════════════════════════════════════════════════

class LMSDiscreteScheduler(Scheduler):
    """Linear multistep scheduler.

    Keeps the last ``order`` ODE derivatives and combines them with
    coefficients obtained by integrating the Lagrange basis polynomials
    over the current sigma interval.

    Args:
        integration_limit: Subdivision limit for the adaptive quadrature
                           used to compute the multistep coefficients.
    """

    def __init__(
        self,
        num_train_timesteps: int = config.NUM_TRAIN_TIMESTEPS,
        beta_start: float = config.BETA_START,
        beta_end: float = config.BETA_END,
        beta_schedule: Union[str, BetaSchedule] = config.BETA_SCHEDULE,
        integration_limit: int = config.LMS_INTEGRATION_LIMIT,
    ):
        super().__init__(num_train_timesteps, beta_start, beta_end, beta_schedule)
        self.integration_limit = integration_limit
        self.derivatives: deque = deque()

    def _reset(self):
        self.derivatives.clear()

    def lms_coefficient(self, order: int, t: int, current_order: int) -> float:
        """Integrate the Lagrange basis for *current_order* over ``[σ[t+1], σ[t]]``.

        The integral runs from the next sigma up to the current one and is
        negated, since sampling moves towards smaller sigmas.
        """
        sigmas = self.sigmas.astype(np.float64)

        def lms_derivative(tau: float) -> float:
            prod = 1.0
            for k in range(order):
                if current_order == k:
                    continue
                prod *= (tau - sigmas[t - k]) / (sigmas[t - current_order] - sigmas[t - k])
            return prod

        coeff, _ = integrate.quad(lms_derivative, sigmas[t + 1], sigmas[t],
                                  limit=self.integration_limit)
        return -coeff

    def step(self, model_output: Tensor, timestep: int, sample: Tensor,
             order: int = config.SCHEDULER_ORDER) -> Tensor:
        """LMS update; *sample* is left untouched and a new tensor returned."""
        if order < 1:
            raise ConfigError(f"Invalid LMS order {order}, must be at least 1")
        step_index = self._step_index(timestep)
        sigma = float(self.sigmas[step_index])

        # 1. predicted original sample (x_0) from sigma-scaled noise
        pred_original = self._predict_original(model_output, sample, sigma)

        # 2. ODE derivative
        derivative = (sample.numpy() - pred_original) / sigma
        self.derivatives.append(derivative)
        while len(self.derivatives) > order:
            self.derivatives.popleft()

        # 3. linear multistep coefficients
        order_lim = min(step_index + 1, order)
        coeffs = [self.lms_coefficient(order_lim, step_index, cur)
                  for cur in range(order_lim)]

        # 4. previous sample from the derivative path, newest derivative first
        update = np.zeros(sample.shape, dtype=np.float64)
        for coeff, deriv in zip(coeffs, reversed(self.derivatives)):
            update += coeff * deriv

        prev_sample = sample.copy()
        prev_sample.add(Tensor._wrap(update.astype(sample.dtype.to_numpy())))
        return prev_sample


# ═════════════════════════════════════════════════════════════════════
#  EulerAncestralDiscreteScheduler
# ═════════════════════════════════════════════════════════════════════

class EulerAncestralDiscreteScheduler(Scheduler):
    """Euler sampler with ancestral noise injection.

    Each step splits the move from σ to σ_next into a deterministic Euler
    step down to σ_down and fresh Gaussian noise of std σ_up, where
    ``σ_down² + σ_up² = σ_next²``.

    Args:
        seed: Seed for the scheduler-local noise generator.
    """

    def __init__(
        self,
        seed: SeedLike = None,
        num_train_timesteps: int = config.NUM_TRAIN_TIMESTEPS,
        beta_start: float = config.BETA_START,
        beta_end: float = config.BETA_END,
        beta_schedule: Union[str, BetaSchedule] = config.BETA_SCHEDULE,
    ):
        super().__init__(num_train_timesteps, beta_start, beta_end, beta_schedule)
        self.generator = np.random.default_rng(seed)

    @staticmethod
    def ancestral_step(sigma_from: float, sigma_to: float) -> tuple[float, float]:
        """Return ``(sigma_down, sigma_up)`` for a step between two noise levels."""
        sigma_up = math.sqrt(
            max(sigma_to ** 2 * (sigma_from ** 2 - sigma_to ** 2) / sigma_from ** 2, 0.0))
        sigma_down = math.sqrt(max(sigma_to ** 2 - sigma_up ** 2, 0.0))
        return sigma_down, sigma_up

    def step(self, model_output: Tensor, timestep: int, sample: Tensor,
             order: int = config.SCHEDULER_ORDER) -> Tensor:
        """Euler ancestral update; *order* is accepted for interface parity."""
        step_index = self._step_index(timestep)
        sigma = float(self.sigmas[step_index])
        sigma_to = float(self.sigmas[step_index + 1])

        pred_original = self._predict_original(model_output, sample, sigma)
        sigma_down, sigma_up = self.ancestral_step(sigma, sigma_to)

        x = sample.numpy()
        derivative = (x - pred_original) / sigma
        prev = x + derivative * (sigma_down - sigma)
        if sigma_up > 0:
            noise = self.generator.standard_normal(x.shape)
            prev = prev + noise * sigma_up
        return Tensor._wrap(prev.astype(x.dtype))


# ═════════════════════════════════════════════════════════════════════
#  Schedulers — registry of available algorithms
# ═════════════════════════════════════════════════════════════════════

class Schedulers(enum.Enum):
    """The available scheduler algorithms."""
    LMS = ('LMS', 'LMS')
    EULER_ANCESTRAL = ('Euler Ancestral', 'Euler a')

    def __init__(self, display_name: str, description_name: str):
        self.display_name = display_name
        self.description_name = description_name

    def __str__(self) -> str:
        return self.display_name

    def create(self, seed: SeedLike = None, **kwargs) -> Scheduler:
        """Create a fresh scheduler; *seed* drives any ancestral noise."""
        if self is Schedulers.LMS:
            return LMSDiscreteScheduler(**kwargs)
        return EulerAncestralDiscreteScheduler(seed, **kwargs)

    @classmethod
    def from_name(cls, name: str) -> 'Schedulers':
        """Look up a scheduler by member name, display name, or description name."""
        key = name.strip().lower()
        for member in cls:
            if key in (member.name.lower(), member.display_name.lower(),
                       member.description_name.lower()):
                return member
        raise ConfigError(f"Unknown scheduler: {name!r}")


# ═════════════════════════════════════════════════════════════════════
#  Exports
# ═════════════════════════════════════════════════════════════════════

__all__ = [
    'BetaSchedule',
    'Scheduler',
    'LMSDiscreteScheduler',
    'EulerAncestralDiscreteScheduler',
    'Schedulers',
]
