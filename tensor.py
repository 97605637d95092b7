# ╔══════════════════════════════════════════════════════════════════════╗
# ║  sdsampler — Diffusion Sampling Engine                               ║
# ║  Copyright © 2026 Pictofeed, LLC. All rights reserved.               ║
# ╚══════════════════════════════════════════════════════════════════════╝
"""Fixed-shape, row-major tensor backed by NumPy.

A :class:`Tensor` owns one C-contiguous buffer of ``product(shape)``
elements.  Shape never changes after construction; ``scale`` and ``add``
mutate the buffer in place, everything else returns new tensors.
"""
from __future__ import annotations

import numpy as np
from typing import Any, Sequence

from .dtype import dtype as Dtype
from .errors import ShapeError

# Largest element count a tensor may hold (signed 32-bit count).
MAX_ELEMENTS = 2 ** 31 - 1


def _num_elements(shape: Sequence[int]) -> int:
    """Validate *shape* and return its element count.

    The leading dimension may be zero (an empty batch); every other
    dimension must be positive.
    """
    if len(shape) == 0:
        raise ShapeError("Tensors must have at least one dimension")
    total = 1
    for i, dim in enumerate(shape):
        if dim < 0 or (dim == 0 and i > 0):
            raise ShapeError(f"Invalid dimension {dim} at position {i} in shape {list(shape)}")
        total *= dim
        if total > MAX_ELEMENTS:
            raise ShapeError(
                f"Invalid shape {list(shape)}, expected at most {MAX_ELEMENTS} elements")
    return total


def _row_major_strides(shape: tuple) -> tuple:
    strides = [1] * len(shape)
    for i in range(len(shape) - 1, 0, -1):
        strides[i - 1] = strides[i] * shape[i]
    return tuple(strides)


def _resolve_dtype(dtype, arr: np.ndarray) -> np.dtype:
    if dtype is not None:
        if isinstance(dtype, Dtype):
            return dtype.to_numpy()
        return Dtype.from_numpy(dtype).to_numpy()
    if np.issubdtype(arr.dtype, np.floating):
        return np.dtype(np.float32)
    if np.issubdtype(arr.dtype, np.integer):
        return np.dtype(np.int64)
    raise TypeError(f"Unsupported tensor element type: {arr.dtype}")


class Tensor:
    """N-dimensional numeric buffer with an immutable row-major shape.

    Args:
        buffer: Flat values (any array-like); its length must equal the
                product of *shape*.
        shape:  Dimensions, at least one.
        dtype:  Element kind.  Defaults to float32 for floating buffers and
                int64 for integer buffers.

    Raises:
        ShapeError: If the buffer length does not match the shape, or the
                    shape is invalid.
    """

    __slots__ = ('_data', '_strides')

    # ------------------------------------------------------------------ #
    #  Construction                                                      #
    # ------------------------------------------------------------------ #

    def __init__(self, buffer: Any, shape: Sequence[int], dtype: Dtype | None = None):
        shape = tuple(int(d) for d in shape)
        numel = _num_elements(shape)
        arr = np.asarray(buffer)
        arr = arr.astype(_resolve_dtype(dtype, arr), copy=False).reshape(-1)
        if arr.size != numel:
            raise ShapeError(
                f"Buffer has {arr.size} elements but shape {list(shape)} expects {numel}")
        self._data: np.ndarray = np.ascontiguousarray(arr).reshape(shape)
        self._strides: tuple = _row_major_strides(shape)

    @staticmethod
    def _wrap(data: np.ndarray) -> 'Tensor':
        """Take ownership of *data* without copying (internal use)."""
        t = Tensor.__new__(Tensor)
        data = np.ascontiguousarray(data)
        _num_elements(data.shape)
        Dtype.from_numpy(data.dtype)
        t._data = data
        t._strides = _row_major_strides(data.shape)
        return t

    # ------------------------------------------------------------------ #
    #  Properties                                                        #
    # ------------------------------------------------------------------ #

    @property
    def shape(self) -> tuple:
        return self._data.shape

    @property
    def strides(self) -> tuple:
        """Row-major strides measured in elements, not bytes."""
        return self._strides

    @property
    def ndim(self) -> int:
        return self._data.ndim

    @property
    def dtype(self) -> Dtype:
        return Dtype.from_numpy(self._data.dtype)

    def numel(self) -> int:
        return self._data.size

    def __len__(self) -> int:
        return self.shape[0]

    def __repr__(self) -> str:
        return f"tensor({self._data!r}, dtype={self.dtype!r})"

    # ------------------------------------------------------------------ #
    #  Element access                                                    #
    # ------------------------------------------------------------------ #

    def _linear_index(self, indices: Sequence[int]) -> int:
        return sum(i * s for i, s in zip(indices, self._strides))

    def get(self, *indices: int):
        """Read one element; indices must match the tensor's rank."""
        return self._data.reshape(-1)[self._linear_index(indices)].item()

    def set(self, indices: Sequence[int], value) -> None:
        """Write one element in place."""
        self._data.reshape(-1)[self._linear_index(indices)] = value

    def item(self):
        return self._data.item()

    def numpy(self) -> np.ndarray:
        return self._data.copy()

    def tolist(self):
        return self._data.tolist()

    # ------------------------------------------------------------------ #
    #  In-place arithmetic                                               #
    # ------------------------------------------------------------------ #

    def scale(self, scalar) -> 'Tensor':
        """Multiply every element by *scalar* in place.

        Integer tensors only accept integer scalars.
        """
        if not self.dtype.is_floating_point and not isinstance(scalar, (int, np.integer)):
            raise TypeError(
                f"Cannot scale a {self.dtype.name} tensor by non-integer {scalar!r}")
        self._data *= scalar
        return self

    def add(self, other: 'Tensor') -> 'Tensor':
        """Add *other* elementwise in place."""
        if other.shape != self.shape:
            raise ShapeError(f"Invalid shape. Expected {list(self.shape)}, found {list(other.shape)}")
        self._data += other._data
        return self

    # ------------------------------------------------------------------ #
    #  Structural operations                                             #
    # ------------------------------------------------------------------ #

    def copy(self) -> 'Tensor':
        """Deep copy with identical shape and an independent buffer."""
        return Tensor._wrap(self._data.copy())

    def split(self, new_shape: Sequence[int]) -> list['Tensor']:
        """Partition the buffer into consecutive tensors of *new_shape*.

        Chunks are taken in linear row-major order, so splitting a
        ``(2B, C, H, W)`` tensor with ``(B, C, H, W)`` yields the first and
        second halves of the batch.
        """
        new_shape = tuple(int(d) for d in new_shape)
        chunk = _num_elements(new_shape)
        if chunk == 0 or self.numel() % chunk != 0:
            raise ShapeError(
                f"Invalid shape {list(new_shape)} for splitting {list(self.shape)}, "
                f"expected to split into equal chunks")
        flat = self._data.reshape(-1)
        return [Tensor._wrap(flat[start:start + chunk].reshape(new_shape).copy())
                for start in range(0, flat.size, chunk)]


# ====================================================================
# Module-level factory functions
# ====================================================================

def tensor(data: Any, dtype: Dtype | None = None) -> Tensor:
    """Build a tensor whose shape is inferred from nested *data*."""
    arr = np.asarray(data)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    return Tensor(arr, arr.shape, dtype=dtype)


def zeros(shape: Sequence[int], dtype: Dtype | None = None) -> Tensor:
    dt = dtype if dtype is not None else Dtype.float32
    return Tensor(np.zeros(_num_elements(tuple(shape)), dtype=dt.to_numpy()), shape, dtype=dt)


def full(shape: Sequence[int], fill_value, dtype: Dtype | None = None) -> Tensor:
    dt = dtype if dtype is not None else Dtype.float32
    return Tensor(np.full(_num_elements(tuple(shape)), fill_value, dtype=dt.to_numpy()),
                  shape, dtype=dt)


# ====================================================================
# Tensor operations
# ====================================================================

def concat(first: Tensor, second: Tensor) -> Tensor:
    """Concatenate two tensors along their last dimension.

    All other dimensions must be equal, e.g. ``[5, 10, 15]`` and
    ``[5, 10, 3]`` give ``[5, 10, 18]`` where every row holds the first
    tensor's row followed by the second's.
    """
    if first.ndim != second.ndim or first.shape[:-1] != second.shape[:-1]:
        raise ShapeError(
            f"Invalid shapes for concatenation, got {list(first.shape)} and {list(second.shape)}")
    if first.dtype is not second.dtype:
        raise TypeError(
            f"Cannot concatenate {first.dtype.name} and {second.dtype.name} tensors")
    return Tensor._wrap(np.concatenate([first._data, second._data], axis=-1))


__all__ = ['Tensor', 'tensor', 'zeros', 'full', 'concat', 'MAX_ELEMENTS']
