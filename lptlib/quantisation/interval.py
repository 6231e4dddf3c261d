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

"""Quantisation intervals and their decomposition into integer codes and
dequantisation parameters.

A ``FakeQuantize`` operation partitions its input range ``[il, ih]`` into
``levels - 1`` bins, and maps each bin to one of ``levels`` evenly-spaced
values spanning its output range ``[ol, oh]``. The same output values can be
expressed as integer codes ``q`` followed by the affine dequantisation
``(q - zero_point) * scale``; this module computes the codes and the
dequantisation parameters.
"""

from __future__ import annotations

import torch
from enum import Enum
from typing import NamedTuple, Dict, List, Optional, Tuple, Union

from lptlib.graphs.types import ElementType, PartialShape
from lptlib.utils import lpt_err_header
from lptlib.utils import ConfigurationError
from .dequantisation import DequantisationOperations


def _as_bound(x) -> torch.Tensor:
    return torch.as_tensor(x, dtype=torch.float64).clone()


class QuantisationInterval(object):

    def __init__(self,
                 levels:      int,
                 input_low,
                 input_high,
                 output_low,
                 output_high,
                 axis:        int = 1):

        if not (isinstance(levels, int) and not isinstance(levels, bool)):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + f"expects an integer number of levels, but received {type(levels)}.")
        if levels < 2:
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + f"requires at least two levels, but received {levels}.")

        self._levels = levels
        self._input_low = _as_bound(input_low)
        self._input_high = _as_bound(input_high)
        self._output_low = _as_bound(output_low)
        self._output_high = _as_bound(output_high)
        self._axis = axis

        lengths = {b.numel() for b in self.bounds if b.numel() > 1}
        if len(lengths) > 1:
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + f"per-channel bounds have different lengths: {sorted(lengths)}.")
        if not bool(torch.all(self._input_high > self._input_low)):
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + "requires input_high > input_low.")

    @property
    def levels(self) -> int:
        return self._levels

    @property
    def input_low(self) -> torch.Tensor:
        return self._input_low

    @property
    def input_high(self) -> torch.Tensor:
        return self._input_high

    @property
    def output_low(self) -> torch.Tensor:
        return self._output_low

    @property
    def output_high(self) -> torch.Tensor:
        return self._output_high

    @property
    def axis(self) -> int:
        return self._axis

    @property
    def bounds(self) -> Tuple[torch.Tensor, torch.Tensor, torch.Tensor, torch.Tensor]:
        return self._input_low, self._input_high, self._output_low, self._output_high

    @property
    def channels(self) -> Optional[int]:
        lengths = [b.numel() for b in self.bounds if b.numel() > 1]
        return lengths[0] if len(lengths) > 0 else None

    def validate(self, shape: Optional[PartialShape]) -> None:
        """Check that per-channel bounds agree with the channel extent of
        the data they quantise.
        """
        channels = self.channels
        if (channels is None) or (shape is None):
            return
        if shape.rank <= self._axis:
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + f"per-channel bounds can not be applied to data of shape {shape}.")
        extent = shape[self._axis]
        if (extent is not None) and (extent != channels):
            raise ConfigurationError(lpt_err_header(obj_name=self.__class__.__name__) + f"has {channels} per-channel bounds, but the data has {extent} channels.")

    def with_output(self, output_low, output_high) -> QuantisationInterval:
        return QuantisationInterval(self._levels, self._input_low, self._input_high, output_low, output_high, axis=self._axis)

    def __repr__(self) -> str:
        def _fmt(t):
            return [round(x, 6) for x in t.reshape(-1).tolist()]
        return f"QuantisationInterval(levels={self._levels}, input=[{_fmt(self._input_low)}, {_fmt(self._input_high)}], output=[{_fmt(self._output_low)}, {_fmt(self._output_high)}])"


# -- SPECIFICATION RESOLUTION -- #

IntervalSpecType = Union[QuantisationInterval, Dict]


def resolve_quantisationinterval_intervalspec(intervalspec: QuantisationInterval) -> QuantisationInterval:
    return intervalspec


def resolve_dict_intervalspec(intervalspec: Dict) -> QuantisationInterval:
    """Map a dictionary such as ``{'levels': 256, 'input_low': 0.0, ...}``
    to a ``QuantisationInterval``; when the output bounds are missing, they
    default to the input bounds.
    """
    try:
        levels = intervalspec['levels']
        input_low = intervalspec['input_low']
        input_high = intervalspec['input_high']
    except KeyError as e:
        raise ValueError(lpt_err_header() + f"interval specification misses key {e}.")
    output_low = intervalspec.get('output_low', input_low)
    output_high = intervalspec.get('output_high', input_high)
    return QuantisationInterval(levels, input_low, input_high, output_low, output_high, axis=intervalspec.get('axis', 1))


IntervalSpecSolvers = Enum('IntervalSpecSolvers',
                           [
                               ('QUANTISATIONINTERVAL', resolve_quantisationinterval_intervalspec),
                               ('DICT',                 resolve_dict_intervalspec),
                           ])


def resolve_intervalspec(intervalspec: IntervalSpecType) -> QuantisationInterval:
    intervalspec_class = intervalspec.__class__.__name__.upper()

    try:
        solver = getattr(IntervalSpecSolvers, intervalspec_class)
    except AttributeError:
        raise TypeError(lpt_err_header() + f"unsupported QuantisationInterval specification type: {intervalspec_class}.")

    return solver(intervalspec)


# -- NUMERIC LAW -- #

def get_zero_scale(low:    torch.Tensor,
                   high:   torch.Tensor,
                   levels: int) -> Tuple[torch.Tensor, torch.Tensor]:
    """Compute the zero-point and the scale that map the integer codes
    ``0, 1, ..., levels - 1`` onto the real range ``[low, high]``.

    The zero-point is the (rounded) code that represents real zero. When it
    falls strictly inside the code range, the scale is re-derived from the
    upper bound so that ``high`` is represented exactly by the top code; the
    re-derived scale is kept only if code zero still reaches ``low`` (up to
    half a step), otherwise the plain ``(high - low) / (levels - 1)`` holds.
    """
    low = _as_bound(low)
    high = _as_bound(high)

    scale = (high - low) / (levels - 1)
    if not bool(torch.all(scale > 0.0)):
        raise ConfigurationError(lpt_err_header() + f"the range [{low.tolist()}, {high.tolist()}] yields a non-positive scale.")

    zero = torch.round(-low / scale)
    inner = (zero > 0.0) & (zero < levels - 1)
    pinned = high / torch.where(inner, levels - 1 - zero, torch.ones_like(zero))
    covers = -zero * pinned <= low + scale / 2
    scale = torch.where(inner & covers, pinned, scale)

    return zero, scale


def _clamp_codes(codes: torch.Tensor, precision: ElementType) -> torch.Tensor:
    if precision.is_integer:
        codes = torch.clamp(codes, min=float(precision.min), max=float(precision.max))
    return codes


def code_offset(precision: ElementType) -> int:
    return precision.min if (precision.is_integer and precision.is_signed) else 0


class Decomposition(NamedTuple):
    interval:        QuantisationInterval
    dequantisation:  DequantisationOperations


def decompose(interval:      QuantisationInterval,
              precision:     ElementType,
              deq_precision: Optional[ElementType] = ElementType.f32,
              rank:          int = 4) -> Decomposition:
    """Split a ``FakeQuantize`` into an integer-valued ``FakeQuantize`` and a
    dequantisation.

    The returned interval has the same input range as ``interval``, while its
    output range is made of the integer codes (shifted into the range of
    ``precision`` when the latter is signed). Passing ``None`` as
    ``deq_precision`` omits the conversion.
    """
    zero, scale = get_zero_scale(interval.output_low, interval.output_high, interval.levels)
    zero = zero + code_offset(precision)
    dequantisation = DequantisationOperations(convert=deq_precision, subtract=zero, multiply=scale, axis=interval.axis).with_subtract_elided()

    output_low = _as_bound(interval.output_low)
    output_high = _as_bound(interval.output_high)
    if dequantisation.channels is not None:
        shape = dequantisation.shape_for(max(rank, interval.axis + 1))
        output_low = output_low.reshape(-1).expand(dequantisation.channels).reshape(shape) if output_low.numel() == 1 else output_low.reshape(shape)
        output_high = output_high.reshape(-1).expand(dequantisation.channels).reshape(shape) if output_high.numel() == 1 else output_high.reshape(shape)

    code_low = _clamp_codes(torch.round(dequantisation.quantise(output_low)), precision)
    code_high = _clamp_codes(torch.round(dequantisation.quantise(output_high)), precision)

    return Decomposition(interval=interval.with_output(code_low, code_high), dequantisation=dequantisation)


def unify(intervals: List[QuantisationInterval]) -> Tuple[torch.Tensor, torch.Tensor]:
    """Compute the scalar zero-point and scale shared by several intervals,
    covering the union of their (input) ranges.
    """
    if len(intervals) == 0:
        raise ValueError(lpt_err_header() + "can not unify an empty collection of intervals.")

    levels = {i.levels for i in intervals}
    if len(levels) > 1:
        raise ConfigurationError(lpt_err_header() + f"can not unify intervals with different numbers of levels: {sorted(levels)}.")

    low = min(float(torch.min(i.input_low)) for i in intervals)
    high = max(float(torch.max(i.input_high)) for i in intervals)

    return get_zero_scale(torch.tensor(low, dtype=torch.float64), torch.tensor(high, dtype=torch.float64), levels.pop())


def requantise_bounds(low:       torch.Tensor,
                      high:      torch.Tensor,
                      old:       DequantisationOperations,
                      new:       DequantisationOperations,
                      precision: ElementType,
                      rank:      int = 4) -> Tuple[torch.Tensor, torch.Tensor]:
    """Re-express integer codes from the dequantisation ``old`` to the
    dequantisation ``new``, rounding them to the closest integers.
    """
    def _requantise(codes):
        codes = _as_bound(codes)
        if (old.channels is not None) or (new.channels is not None):
            # bring the codes to the broadcast shape of the channel vectors
            channels = old.channels if old.channels is not None else new.channels
            shape = old.broadcast(channels).shape_for(max(rank, old.axis + 1))
            codes = codes.reshape(-1).expand(channels).reshape(shape) if codes.numel() == 1 else codes.reshape(shape)
        real = old.apply(codes)
        return _clamp_codes(torch.round(new.quantise(real)), precision)

    return _requantise(low), _requantise(high)
