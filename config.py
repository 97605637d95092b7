# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Default hyper-parameters for the sampling engine.

Schedulers, requests, and pipelines take keyword arguments that default to
the values below.
"""
from __future__ import annotations

# ── Sampling ──

NUM_INFERENCE_STEPS = 50
GUIDANCE_SCALE = 7.5
BATCH_SIZE = 1
SEED = 42

# ── Image / latent geometry ──

IMAGE_SIZE = 512
LATENT_CHANNELS = 4
LATENT_SCALE = 8

# ── Noise schedule (Stable Diffusion v1/v2/XL) ──

NUM_TRAIN_TIMESTEPS = 1000
BETA_START = 0.00085
BETA_END = 0.012
BETA_SCHEDULE = 'scaled_linear'

# Multistep history length for LMS
SCHEDULER_ORDER = 4

# Subdivision limit for the LMS coefficient quadrature
LMS_INTEGRATION_LIMIT = 50
