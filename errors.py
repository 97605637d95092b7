# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Exception types raised by the sampling engine.

All of them signal precondition violations detected at the offending call.
Nothing in the package catches them; they propagate to the caller.
"""
from __future__ import annotations


class SamplingError(Exception):
    """Base class for sdsampler errors."""


class ConfigError(SamplingError, ValueError):
    """Invalid numeric range, step count, or configuration value."""


class ShapeError(SamplingError, ValueError):
    """Tensor shape or rank mismatch."""


class StateError(SamplingError, RuntimeError):
    """Scheduler used out of order, or asked about an unknown timestep."""


__all__ = ['SamplingError', 'ConfigError', 'ShapeError', 'StateError']
