# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Element types supported by :class:`sdsampler.tensor.Tensor`."""
from __future__ import annotations

import enum
import numpy as np


class dtype(enum.Enum):
    """Tensor element kinds.

    ``float32`` carries latents and embeddings; the integer kinds and
    ``float64`` exist to match the input types declared by external models
    (timesteps, token ids).
    """
    float32 = "float32"
    float64 = "float64"
    int32 = "int32"
    int64 = "int64"

    def to_numpy(self) -> np.dtype:
        """Convert to numpy dtype."""
        return np.dtype(self.value)

    @property
    def is_floating_point(self) -> bool:
        return self in (dtype.float32, dtype.float64)

    @staticmethod
    def from_numpy(np_dtype) -> 'dtype':
        """Convert a numpy dtype, raising ``TypeError`` for unsupported kinds."""
        _map = {
            np.dtype(np.float32): dtype.float32,
            np.dtype(np.float64): dtype.float64,
            np.dtype(np.int32): dtype.int32,
            np.dtype(np.int64): dtype.int64,
        }
        try:
            return _map[np.dtype(np_dtype)]
        except KeyError:
            raise TypeError(f"Unsupported tensor element type: {np_dtype}") from None

    def __repr__(self) -> str:
        return f"sdsampler.{self.name}"


float32 = dtype.float32
float64 = dtype.float64
int32 = dtype.int32
int64 = dtype.int64
long = dtype.int64
