# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""sdsampler.diffusion — Schedulers, model interface, and sampling pipeline.

Usage::

    from sdsampler.diffusion import (
        LMSDiscreteScheduler,
        EulerAncestralDiscreteScheduler,
        Schedulers,
        DenoisingModel,
        FunctionDenoiser,
        ImageSize,
        SamplingRequest,
        StableDiffusionPipeline,
    )
"""
from __future__ import annotations

# ── Schedulers ──
from .schedulers import (
    BetaSchedule,
    Scheduler,
    LMSDiscreteScheduler,
    EulerAncestralDiscreteScheduler,
    Schedulers,
)

# ── Models ──
from .models import (
    DenoisingModel,
    FunctionDenoiser,
    make_timestep_tensor,
)

# ── Pipelines ──
from .pipelines import (
    ImageSize,
    SamplingRequest,
    DiffusionPipeline,
    StableDiffusionPipeline,
)

# ── Utilities ──
from .utils import (
    linspace,
    arange,
    interpolate,
    find_index,
    get_beta_schedule,
    randn_tensor,
    classifier_free_guidance,
)

__all__ = [
    # Schedulers
    'BetaSchedule',
    'Scheduler',
    'LMSDiscreteScheduler',
    'EulerAncestralDiscreteScheduler',
    'Schedulers',
    # Models
    'DenoisingModel',
    'FunctionDenoiser',
    'make_timestep_tensor',
    # Pipelines
    'ImageSize',
    'SamplingRequest',
    'DiffusionPipeline',
    'StableDiffusionPipeline',
    # Utilities
    'linspace',
    'arange',
    'interpolate',
    'find_index',
    'get_beta_schedule',
    'randn_tensor',
    'classifier_free_guidance',
]
