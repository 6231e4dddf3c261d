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

"""A reference interpreter for ``QGraph``s.

The interpreter computes in double precision. The outputs of operations
tagged with an integer precision are rounded and saturated to the range of
that precision, so that the interpreter models what an integer kernel
would store.
"""

import torch
import torch.nn.functional as F
from typing import Dict, List

from .types import OpKind, ElementType
from .graph import QGraph
from .shapes import axis_slice, normalise_axis
from lptlib.utils import lpt_err_header


def fake_quantize(x: torch.Tensor, interval) -> torch.Tensor:
    il, ih, ol, oh = (b.to(dtype=torch.float64) for b in interval.bounds)
    n = interval.levels - 1
    y = torch.round((x - il) / (ih - il) * n) / n * (oh - ol) + ol
    y = torch.where(x <= torch.minimum(il, ih), ol.expand_as(y), y)
    y = torch.where(x > torch.maximum(il, ih), oh.expand_as(y), y)
    return y


def _store(x: torch.Tensor, precision: ElementType) -> torch.Tensor:
    if precision.is_integer:
        return torch.clamp(torch.round(x), min=float(precision.min), max=float(precision.max))
    elif precision is ElementType.f16:
        return x.to(dtype=torch.float16).to(dtype=torch.float64)
    elif precision is ElementType.f32:
        return x.to(dtype=torch.float32).to(dtype=torch.float64)
    return x


def _pad(x: torch.Tensor, pads_begin: List[int], pads_end: List[int], value: float) -> torch.Tensor:
    pads = []
    for b, e in zip(reversed(pads_begin), reversed(pads_end)):  # `F.pad` starts from the last dimension
        pads += [b, e]
    return F.pad(x, pads, value=value)


def _max_pool(x: torch.Tensor, attrs) -> torch.Tensor:
    x = _pad(x, attrs['pads_begin'], attrs['pads_end'], float('-inf'))
    pools = {1: F.max_pool1d, 2: F.max_pool2d, 3: F.max_pool3d}
    return pools[len(attrs['kernel'])](x, kernel_size=attrs['kernel'], stride=attrs['strides'], ceil_mode=(attrs['rounding'] == 'ceil'))


def _convolution(x: torch.Tensor, w: torch.Tensor, attrs) -> torch.Tensor:
    x = _pad(x, attrs['pads_begin'], attrs['pads_end'], 0.0)
    convs = {1: F.conv1d, 2: F.conv2d, 3: F.conv3d}
    return convs[w.ndim - 2](x, w, stride=attrs['strides'])


def _strided_slice(x: torch.Tensor, attrs) -> torch.Tensor:
    y = x
    for axis in range(x.ndim):
        sl = axis_slice(attrs['begin'], attrs['end'], attrs['strides'], attrs['begin_mask'], attrs['end_mask'], axis)
        indices = torch.tensor(list(range(x.shape[axis])[sl]), dtype=torch.long)
        y = torch.index_select(y, axis, indices)
    return y


def execute(g: QGraph, inputs: Dict[str, torch.Tensor]) -> Dict[str, torch.Tensor]:
    """Evaluate ``g`` on the given parameter values (keyed by name).

    Returns the values of the ``Result`` operations, keyed by name.
    """
    values: Dict[int, torch.Tensor] = {}

    for n in g.topological_order():

        kind = g.kind(n)
        attrs = g.attrs(n)
        args = [values[p] for p in g.inputs(n)]

        if kind is OpKind.PARAMETER:
            try:
                y = torch.as_tensor(inputs[g.name_of(n)], dtype=torch.float64)
            except KeyError:
                raise ValueError(lpt_err_header() + f"no value provided for parameter {g.name_of(n)}.")
        elif kind is OpKind.CONSTANT:
            y = attrs['value'].to(dtype=torch.float64)
        elif kind is OpKind.FAKE_QUANTIZE:
            y = fake_quantize(args[0], attrs['interval'])
        elif kind is OpKind.CONCAT:
            y = torch.cat(args, dim=normalise_axis(attrs['axis'], args[0].ndim))
        elif kind is OpKind.STRIDED_SLICE:
            y = _strided_slice(args[0], attrs)
        elif kind is OpKind.MAX_POOL:
            y = _max_pool(args[0], attrs)
        elif kind is OpKind.CONVOLUTION:
            y = _convolution(args[0], args[1], attrs)
        elif kind is OpKind.SUBTRACT:
            y = args[0] - attrs['value']
        elif kind is OpKind.MULTIPLY:
            y = args[0] * attrs['value']
        else:  # Convert, Result and opaque operations
            y = args[0]

        values[n] = _store(y, g.precision(n))

    return {g.name_of(r): values[r] for r in g.results()}
