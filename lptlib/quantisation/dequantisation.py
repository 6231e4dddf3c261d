# 
# Author(s):
# Matteo Spallanzani <spmatteo@iis.ee.ethz.ch>
# 
# Copyright (c) 2020-2022 ETH Zurich and University of Bologna.
# 
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
# 
# http://www.apache.org/licenses/LICENSE-2.0
# 
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# 

"""The algebra of dequantisation operations.

A dequantisation maps integer codes ``q`` back to real values by means of
the affine transformation ``(q - zero_point) * scale``, possibly preceded
by a conversion of the integer data to a real type. Both ``zero_point``
and ``scale`` can be either scalars (per-tensor quantisation) or vectors
along the channel axis (per-channel quantisation); internally, we store
them as one-dimensional tensors, and a tensor with a single element
represents a scalar.
"""

from __future__ import annotations

import torch
from typing import List, Optional, Tuple

from lptlib.graphs.types import ElementType
from lptlib.utils import lpt_err_header
from lptlib.utils import ConfigurationError


_ABSOLUTE_TOLERANCE = 1e-6


def as_channel_vector(x) -> torch.Tensor:
    """Flatten a scalar or a broadcastable per-channel constant (e.g., of
    shape ``[1, C, 1, 1]``) into a one-dimensional tensor.
    """
    t = torch.as_tensor(x, dtype=torch.float64).clone()
    if sum(1 for d in t.shape if d > 1) > 1:
        raise ConfigurationError(lpt_err_header() + f"expected a scalar or a per-channel vector, but received a tensor of shape {tuple(t.shape)}.")
    return t.reshape(-1)


def broadcast_vector(v: torch.Tensor, channels: Optional[int]) -> torch.Tensor:
    if (channels is None) or (v.numel() == channels):
        return v
    if v.numel() == 1:
        return v.expand(channels).clone()
    raise ConfigurationError(lpt_err_header() + f"can not broadcast a vector of length {v.numel()} to {channels} channels.")


class DequantisationOperations(object):

    def __init__(self,
                 convert:  Optional[ElementType] = None,
                 subtract=None,
                 multiply=None,
                 axis:     int = 1):

        self._convert = convert
        self._subtract = None if subtract is None else as_channel_vector(subtract)
        self._multiply = None if multiply is None else as_channel_vector(multiply)
        self._axis = axis

        lengths = {v.numel() for v in (self._subtract, self._multiply) if (v is not None) and (v.numel() > 1)}
        if len(lengths) > 1:
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + f"Subtract and Multiply vectors have different lengths: {sorted(lengths)}.")
        if (self._multiply is not None) and not bool(torch.all(self._multiply > 0.0)):
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + f"scales must be strictly positive, but received {self._multiply.tolist()}.")

    @property
    def convert(self) -> Optional[ElementType]:
        return self._convert

    @property
    def subtract(self) -> Optional[torch.Tensor]:
        return self._subtract

    @property
    def multiply(self) -> Optional[torch.Tensor]:
        return self._multiply

    @property
    def axis(self) -> int:
        return self._axis

    @property
    def empty(self) -> bool:
        return (self._convert is None) and (self._subtract is None) and (self._multiply is None)

    @property
    def channels(self) -> Optional[int]:
        """The length of the per-channel vectors, or ``None`` if every
        operation is per-tensor.
        """
        lengths = [v.numel() for v in (self._subtract, self._multiply) if (v is not None) and (v.numel() > 1)]
        return lengths[0] if len(lengths) > 0 else None

    @property
    def is_per_tensor(self) -> bool:
        return self.channels is None

    def subtract_values(self, channels: Optional[int] = None) -> torch.Tensor:
        v = self._subtract if self._subtract is not None else torch.zeros(1, dtype=torch.float64)
        return broadcast_vector(v, channels)

    def multiply_values(self, channels: Optional[int] = None) -> torch.Tensor:
        v = self._multiply if self._multiply is not None else torch.ones(1, dtype=torch.float64)
        return broadcast_vector(v, channels)

    def shape_for(self, rank: int) -> Tuple[int, ...]:
        """The shape of the constants that realise this dequantisation on a
        tensor with the given rank.
        """
        if self.is_per_tensor:
            return tuple()
        if rank <= self._axis:
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + f"can not place a per-channel vector along axis {self._axis} of a rank-{rank} tensor.")
        shape = [1] * rank
        shape[self._axis] = self.channels
        return tuple(shape)

    def constant(self, v: torch.Tensor, rank: int) -> torch.Tensor:
        if v.numel() == 1:
            return v.reshape(tuple()).clone()
        return broadcast_vector(v, self.channels).reshape(self.shape_for(rank)).clone()

    # -- ALGEBRA -- #

    def broadcast(self, channels: int) -> DequantisationOperations:
        return DequantisationOperations(convert=self._convert,
                                        subtract=None if self._subtract is None else broadcast_vector(self._subtract, channels),
                                        multiply=None if self._multiply is None else broadcast_vector(self._multiply, channels),
                                        axis=self._axis)

    def slice(self, sl: slice) -> DequantisationOperations:
        """Select the channels that a slice along the channel axis retains.

        Per-tensor operations are not affected.
        """
        def _slice(v):
            if (v is None) or (v.numel() == 1):
                return v
            indices = torch.tensor(list(range(v.numel())[sl]), dtype=torch.long)
            return v[indices]

        return DequantisationOperations(convert=self._convert,
                                        subtract=_slice(self._subtract),
                                        multiply=_slice(self._multiply),
                                        axis=self._axis)

    def shift(self, delta: float) -> DequantisationOperations:
        """Relabel the integer codes ``q`` as ``q + delta``.

        For instance, moving unsigned 8-bit codes into the signed 8-bit
        range requires ``delta = -128``.
        """
        subtract = self.subtract_values() + delta
        return DequantisationOperations(convert=self._convert, subtract=subtract, multiply=self._multiply, axis=self._axis).with_subtract_elided()

    def with_convert(self, convert: Optional[ElementType]) -> DequantisationOperations:
        return DequantisationOperations(convert=convert, subtract=self._subtract, multiply=self._multiply, axis=self._axis)

    def with_subtract_elided(self) -> DequantisationOperations:
        subtract = self._subtract
        if (subtract is not None) and bool(torch.all(subtract == 0.0)):
            subtract = None
        return DequantisationOperations(convert=self._convert, subtract=subtract, multiply=self._multiply, axis=self._axis)

    @staticmethod
    def concatenate(parts: List[Tuple[DequantisationOperations, int]], axis: int = 1) -> DequantisationOperations:
        """Merge the dequantisations of tensors that are concatenated along
        the channel axis.

        Each part is a dequantisation paired with the number of channels of
        the branch it applies to. If every branch carries the same per-tensor
        values, the result is per-tensor as well.
        """
        if len(parts) == 0:
            raise ValueError(lpt_err_header() + "can not concatenate an empty collection of dequantisations.")

        deqs = [d for d, _ in parts]
        convert = deqs[0].convert
        if any(d.convert != convert for d in deqs):
            raise ConfigurationError(lpt_err_header() + f"can not concatenate dequantisations converting to different types: {[str(d.convert) for d in deqs]}.")

        if all(d.is_per_tensor for d in deqs) and all(deqs[0].equals(d) for d in deqs[1:]):
            return DequantisationOperations(convert=convert, subtract=deqs[0].subtract, multiply=deqs[0].multiply, axis=axis).with_subtract_elided()

        subtract = None
        if any(d.subtract is not None for d in deqs):
            subtract = torch.cat([d.subtract_values(c) for d, c in parts])
        multiply = None
        if any(d.multiply is not None for d in deqs):
            multiply = torch.cat([d.multiply_values(c) for d, c in parts])

        return DequantisationOperations(convert=convert, subtract=subtract, multiply=multiply, axis=axis).with_subtract_elided()

    @staticmethod
    def compose(first: DequantisationOperations, second: DequantisationOperations) -> DequantisationOperations:
        """Return the dequantisation equivalent to applying ``first`` and
        then ``second``.

        ``((x - z1) * s1 - z2) * s2 == (x - (z1 + z2 / s1)) * (s1 * s2)``
        """
        if (first.channels is not None) and (second.channels is not None) and (first.channels != second.channels):
            raise ConfigurationError(lpt_err_header() + f"can not compose dequantisations over {first.channels} and {second.channels} channels.")

        channels = first.channels if first.channels is not None else second.channels
        s1 = first.multiply_values(channels)
        subtract = None
        if (first.subtract is not None) or (second.subtract is not None):
            subtract = first.subtract_values(channels) + second.subtract_values(channels) / s1
        multiply = None
        if (first.multiply is not None) or (second.multiply is not None):
            multiply = s1 * second.multiply_values(channels)
        convert = first.convert if first.convert is not None else second.convert

        return DequantisationOperations(convert=convert, subtract=subtract, multiply=multiply, axis=first.axis).with_subtract_elided()

    # -- EVALUATION -- #

    def apply(self, x: torch.Tensor) -> torch.Tensor:
        rank = x.ndim
        y = x.to(dtype=torch.float64)
        if self._subtract is not None:
            y = y - self.constant(self._subtract, rank)
        if self._multiply is not None:
            y = y * self.constant(self._multiply, rank)
        return y

    def quantise(self, x: torch.Tensor) -> torch.Tensor:
        """The inverse of ``apply`` (without rounding)."""
        rank = x.ndim
        y = x.to(dtype=torch.float64)
        if self._multiply is not None:
            y = y / self.constant(self._multiply, rank)
        if self._subtract is not None:
            y = y + self.constant(self._subtract, rank)
        return y

    def equals(self, other: DequantisationOperations, atol: float = _ABSOLUTE_TOLERANCE) -> bool:
        if not isinstance(other, DequantisationOperations):
            return False
        if self._convert != other.convert:
            return False
        if (self.channels is not None) and (other.channels is not None) and (self.channels != other.channels):
            return False
        channels = self.channels if self.channels is not None else other.channels
        return bool(torch.allclose(self.subtract_values(channels), other.subtract_values(channels), rtol=0.0, atol=atol)) and \
               bool(torch.allclose(self.multiply_values(channels), other.multiply_values(channels), rtol=0.0, atol=atol))

    def __repr__(self) -> str:

        def _fmt(v):
            return None if v is None else [round(x, 6) for x in v.tolist()]

        return f"DequantisationOperations(convert={self._convert}, subtract={_fmt(self._subtract)}, multiply={_fmt(self._multiply)})"
