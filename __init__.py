# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""
sdsampler — the sampling engine of a latent text-to-image diffusion system.

NumPy-backed tensors, Stable Diffusion noise schedules, LMS and Euler
Ancestral schedulers, and the classifier-free-guided sampling loop.  The
tokenizer, text encoder, denoising network, and VAE are external
collaborators.

Usage::

    import sdsampler
    from sdsampler.diffusion import (
        StableDiffusionPipeline,
        SamplingRequest,
        Schedulers,
        FunctionDenoiser,
    )

    pipe = StableDiffusionPipeline(FunctionDenoiser(my_unet))
    latents = pipe(SamplingRequest(text_embeddings, steps=25,
                                   scheduler=Schedulers.EULER_ANCESTRAL))
"""
from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Pictofeed, LLC"

# ── Core tensor class & factory functions ──
from .tensor import (
    Tensor,
    tensor,
    zeros,
    full,
    concat,
)

# ── Dtype constants ──
from .dtype import (
    dtype,
    float32, float64,
    int32, int64, long,
)

# ── Errors ──
from .errors import (
    SamplingError,
    ConfigError,
    ShapeError,
    StateError,
)

# ── Sub-packages ──
from . import config
from . import diffusion

__all__ = [
    "__version__",
    "__author__",

    # Tensor
    'Tensor', 'tensor', 'zeros', 'full', 'concat',
    # Dtypes
    'dtype', 'float32', 'float64', 'int32', 'int64', 'long',
    # Errors
    'SamplingError', 'ConfigError', 'ShapeError', 'StateError',
    # Sub-packages
    'config', 'diffusion',
]
