# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝

"""Diffusion pipelines — the reverse-diffusion sampling loop.

- **ImageSize** / **SamplingRequest** — immutable description of a run.
- **DiffusionPipeline** — base class with latent initialisation.
- **StableDiffusionPipeline** — SD / SDXL latent sampling loop with
  classifier-free guidance.
"""
from __future__ import annotations

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, Optional

from sdsampler import config
from sdsampler.errors import ConfigError, ShapeError
from sdsampler.tensor import Tensor
from sdsampler.diffusion.models import (
    TIMESTEP_DTYPES,
    DenoisingModel,
    make_timestep_tensor,
)
from sdsampler.diffusion.schedulers import Scheduler, Schedulers
from sdsampler.diffusion.utils import classifier_free_guidance, randn_tensor

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════
#  Requests
# ═════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ImageSize:
    """Output image size in pixels."""
    height: int = config.IMAGE_SIZE
    width: int = config.IMAGE_SIZE

    @classmethod
    def square(cls, size: int) -> 'ImageSize':
        return cls(size, size)

    def latent_shape(self, batch_size: int,
                     channels: int = config.LATENT_CHANNELS,
                     scale: int = config.LATENT_SCALE) -> tuple:
        return (batch_size, channels, self.height // scale, self.width // scale)

    def __str__(self) -> str:
        return f"[{self.height}, {self.width}]"


@dataclass(frozen=True)
class SamplingRequest:
    """Everything needed for one sampling run.

    ``text_embeddings`` must already hold the negative / unconditional
    rows first and the conditional rows second when guidance is enabled.
    Supplying ``pooled_text_embeddings`` selects the SDXL path.
    """
    text_embeddings: Tensor
    steps: int = config.NUM_INFERENCE_STEPS
    guidance_scale: float = config.GUIDANCE_SCALE
    batch_size: int = config.BATCH_SIZE
    size: ImageSize = field(default_factory=ImageSize)
    seed: int = config.SEED
    scheduler: Schedulers = Schedulers.LMS
    pooled_text_embeddings: Optional[Tensor] = None

    def __post_init__(self):
        if self.steps <= 0:
            raise ConfigError(f"Invalid number of steps, {self.steps}")
        if self.batch_size <= 0:
            raise ConfigError(f"Invalid batch size, {self.batch_size}")
        if min(self.size.height, self.size.width) < config.LATENT_SCALE:
            raise ConfigError(f"Image size {self.size} is smaller than one latent cell")

    @property
    def do_classifier_free_guidance(self) -> bool:
        return self.guidance_scale >= 1.0

    @property
    def is_sdxl(self) -> bool:
        return self.pooled_text_embeddings is not None


# ═════════════════════════════════════════════════════════════════════
#  DiffusionPipeline — base class
# ═════════════════════════════════════════════════════════════════════

class DiffusionPipeline:
    """Base class for diffusion sampling pipelines.

    Subclasses set ``self.unet`` and implement ``__call__``.
    """

    unet: DenoisingModel
    latent_channels: int = config.LATENT_CHANNELS
    latent_scale: int = config.LATENT_SCALE

    def prepare_latents(
        self,
        batch_size: int,
        size: ImageSize,
        init_noise_sigma: float,
        seed=None,
    ) -> Tensor:
        """Sample the initial latent from N(0, init_noise_sigma²).

        Raises:
            ConfigError: If *size* is smaller than one latent cell.
        """
        if min(size.height, size.width) < self.latent_scale:
            raise ConfigError(
                f"Image size {size} is smaller than one latent cell of {self.latent_scale} pixels")
        shape = size.latent_shape(batch_size, self.latent_channels, self.latent_scale)
        return randn_tensor(shape, seed=seed, std=init_noise_sigma)

    def __call__(self, *args, **kwargs):
        raise NotImplementedError("Subclasses must implement __call__")


# ═════════════════════════════════════════════════════════════════════
#  StableDiffusionPipeline
# ═════════════════════════════════════════════════════════════════════

class StableDiffusionPipeline(DiffusionPipeline):
    """Stable Diffusion (v1/v2/XL) latent sampling loop.

    1. Create the requested scheduler and configure its timesteps.
    2. Initialise latent noise.
    3. Iteratively denoise with classifier-free guidance.

    Decoding the returned latents is left to the caller.

    Args:
        unet:            Denoising model.
        latent_channels: Channels in latent space (4 for SD).
        latent_scale:    Spatial scale factor of the VAE (8 for SD).
        order:           Multistep order passed to ``scheduler.step``.

    Raises:
        ConfigError: If the model declares an unsupported timestep type.
    """

    def __init__(
        self,
        unet: DenoisingModel,
        latent_channels: int = config.LATENT_CHANNELS,
        latent_scale: int = config.LATENT_SCALE,
        order: int = config.SCHEDULER_ORDER,
    ):
        self.unet = unet
        self.latent_channels = latent_channels
        self.latent_scale = latent_scale
        self.order = order
        self.timestep_dtype = unet.timestep_dtype
        if self.timestep_dtype not in TIMESTEP_DTYPES:
            raise ConfigError(
                f"Invalid tensor type for timestep tensor: {self.timestep_dtype!r}")

    def time_ids(self, request: SamplingRequest) -> Tensor:
        """SDXL size conditioning rows: original size, crop origin, target size.

        The rows are identical for the negative and positive halves of a
        guided batch.
        """
        h, w = request.size.height, request.size.width
        rows = request.batch_size * (2 if request.do_classifier_free_guidance else 1)
        row = np.array([h, w, 0, 0, h, w], dtype=np.float32)
        return Tensor._wrap(np.tile(row, (rows, 1)))

    @staticmethod
    def latent_model_input(latents: Tensor, guided: bool) -> Tensor:
        """Copy the latents, duplicated along the batch when guided."""
        if guided:
            data = latents.numpy()
            return Tensor._wrap(np.concatenate([data, data], axis=0))
        return latents.copy()

    def __call__(
        self,
        request: SamplingRequest,
        callback: Optional[Callable[[int], None]] = None,
    ) -> Tensor:
        """Run the sampling loop and return the final latents.

        Args:
            request:  The sampling run description.
            callback: Called with the 1-based step number after every step.

        Returns:
            Tensor of shape ``(B, latent_channels, H / scale, W / scale)``.
        """
        scheduler_seed, latent_seed = np.random.SeedSequence(request.seed).spawn(2)
        scheduler: Scheduler = request.scheduler.create(scheduler_seed)
        timesteps = scheduler.set_timesteps(request.steps)

        latents = self.prepare_latents(request.batch_size, request.size,
                                       scheduler.init_noise_sigma, seed=latent_seed)
        unguided_shape = latents.shape

        guided = request.do_classifier_free_guidance
        logger.info("Classifier free guidance = %s", guided)
        if request.is_sdxl:
            logger.info("SDXL inference")
            extra = {
                'text_embeds': request.pooled_text_embeddings,
                'time_ids': self.time_ids(request),
            }
        else:
            logger.info("SD inference")
            extra = {}

        for i, t in enumerate(timesteps):
            logger.debug("Running inference step %d (timestep %d)", i, t)
            model_input = self.latent_model_input(latents, guided)
            scheduler.scale_model_input_(model_input, int(t))

            noise_pred = self.unet(
                model_input,
                request.text_embeddings,
                make_timestep_tensor(int(t), self.timestep_dtype),
                **extra,
            )
            if noise_pred.shape != model_input.shape:
                raise ShapeError(
                    f"Expected output shape {list(model_input.shape)}, "
                    f"found {list(noise_pred.shape)}")

            if guided:
                noise_pred_uncond, noise_pred_text = noise_pred.split(unguided_shape)
                noise_pred = classifier_free_guidance(
                    noise_pred_uncond, noise_pred_text, request.guidance_scale)

            latents = scheduler.step(noise_pred, int(t), latents, self.order)

            if callback is not None:
                callback(i + 1)

        return latents


# ═════════════════════════════════════════════════════════════════════
#  Exports
# ═════════════════════════════════════════════════════════════════════

__all__ = [
    'ImageSize',
    'SamplingRequest',
    'DiffusionPipeline',
    'StableDiffusionPipeline',
]
