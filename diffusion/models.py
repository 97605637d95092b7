# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Denoising-model interface consumed by the sampling loop.

The network itself lives outside this package.  A model only has to
declare the element type it expects for the timestep input and map
``(sample, encoder_hidden_states, timestep[, text_embeds, time_ids])`` to
a noise prediction shaped like ``sample``.
"""
from __future__ import annotations

import numpy as np
from typing import Callable, Optional

from sdsampler.dtype import dtype as Dtype
from sdsampler.tensor import Tensor

# Element types a model may declare for its timestep input.
TIMESTEP_DTYPES = (Dtype.int32, Dtype.int64, Dtype.float32, Dtype.float64)


def make_timestep_tensor(timestep: int, dtype: Dtype) -> Tensor:
    """Wrap *timestep* as a one-element tensor of the model's declared type."""
    return Tensor(np.array([timestep]), (1,), dtype=dtype)


class DenoisingModel:
    """Base class for noise-prediction models (UNet and friends).

    Subclasses implement :meth:`forward` and set :attr:`timestep_dtype`.
    When ``text_embeds`` / ``time_ids`` are supplied the model is driven
    along the SDXL conditioning path.
    """

    timestep_dtype: Dtype = Dtype.int64

    def forward(
        self,
        sample: Tensor,
        encoder_hidden_states: Tensor,
        timestep: Tensor,
        text_embeds: Optional[Tensor] = None,
        time_ids: Optional[Tensor] = None,
    ) -> Tensor:
        raise NotImplementedError

    def __call__(self, *args, **kwargs) -> Tensor:
        return self.forward(*args, **kwargs)


class FunctionDenoiser(DenoisingModel):
    """Adapts a plain callable to the :class:`DenoisingModel` interface.

    Args:
        fn:             Callable with the :meth:`DenoisingModel.forward`
                        signature.
        timestep_dtype: Element type the callable expects for timesteps.
    """

    def __init__(self, fn: Callable[..., Tensor], timestep_dtype: Dtype = Dtype.int64):
        self.fn = fn
        self.timestep_dtype = timestep_dtype

    def forward(self, sample, encoder_hidden_states, timestep,
                text_embeds=None, time_ids=None) -> Tensor:
        return self.fn(sample, encoder_hidden_states, timestep,
                       text_embeds=text_embeds, time_ids=time_ids)


__all__ = [
    'TIMESTEP_DTYPES',
    'make_timestep_tensor',
    'DenoisingModel',
    'FunctionDenoiser',
]
