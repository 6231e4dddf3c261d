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

"""Shape inference for the operators that the low-precision transformations
manipulate.

Extents that cannot be determined statically are propagated as ``None``.
"""

import math
from typing import Optional, Sequence

from .types import OpKind, PartialShape, Dimension
from lptlib.utils import lpt_err_header


def normalise_axis(axis: int, rank: int) -> int:
    if not (-rank <= axis < rank):
        raise ValueError(lpt_err_header() + f"axis {axis} is out of range for rank {rank}.")
    return axis % rank


def axis_slice(begin: Sequence[int],
               end:        Sequence[int],
               strides:    Sequence[int],
               begin_mask: Sequence[int],
               end_mask:   Sequence[int],
               axis:       int) -> slice:
    """Return the Python ``slice`` that a StridedSlice applies along ``axis``.

    Masked (or missing) bounds select the whole axis. The semantics of
    negative indices and of out-of-range bounds are those of Python slicing.
    """
    def _get(seq, default):
        return seq[axis] if axis < len(seq) else default

    start = None if (_get(begin_mask, 1) == 1 or axis >= len(begin)) else begin[axis]
    stop  = None if (_get(end_mask, 1) == 1 or axis >= len(end)) else end[axis]
    step  = _get(strides, 1)
    if step == 0:
        raise ValueError(lpt_err_header() + "StridedSlice strides must be non-zero.")

    return slice(start, stop, step)


def is_full_slice(sl: slice, extent: Dimension = None) -> bool:
    """Whether ``sl`` selects every element of an axis, in order."""
    if (sl.start in (None, 0)) and (sl.stop is None) and (sl.step in (None, 1)):
        return True
    if extent is not None:
        return range(extent)[sl] == range(extent)
    return False


def slice_extent(sl: slice, extent: Dimension) -> Dimension:
    if extent is None:
        return None
    return len(range(extent)[sl])


def pooled_extent(extent: Dimension, kernel: int, stride: int, pad_begin: int, pad_end: int, ceil: bool) -> Dimension:
    if extent is None:
        return None
    rounding = math.ceil if ceil else math.floor
    return int(rounding((extent + pad_begin + pad_end - kernel) / stride)) + 1


def infer_shape(g, node: int) -> Optional[PartialShape]:
    """Compute the output shape of ``node`` from the shapes of its inputs.

    Parameters and Constants carry their shape from construction, so the
    function returns their current shape.
    """
    kind = g.kind(node)
    attrs = g.attrs(node)

    if kind is OpKind.PARAMETER:
        return g.shape(node)

    elif kind is OpKind.CONSTANT:
        return PartialShape(tuple(attrs['value'].shape))

    inputs = g.inputs(node)
    if len(inputs) == 0:
        return g.shape(node)
    shape = g.shape(inputs[0])

    if kind is OpKind.CONCAT:
        shapes = [g.shape(n) for n in inputs]
        axis = normalise_axis(attrs['axis'], shape.rank)
        extents = [s[axis] for s in shapes]
        extent = None if any(e is None for e in extents) else sum(extents)
        return PartialShape(shape[:axis] + (extent,) + shape[axis + 1:])

    elif kind is OpKind.STRIDED_SLICE:
        dims = []
        for axis, extent in enumerate(shape):
            sl = axis_slice(attrs['begin'], attrs['end'], attrs['strides'], attrs['begin_mask'], attrs['end_mask'], axis)
            dims.append(slice_extent(sl, extent))
        return PartialShape(dims)

    elif kind is OpKind.MAX_POOL:
        n_spatial = len(attrs['kernel'])
        spatial = []
        for i, extent in enumerate(shape[-n_spatial:]):
            spatial.append(pooled_extent(extent, attrs['kernel'][i], attrs['strides'][i], attrs['pads_begin'][i], attrs['pads_end'][i], attrs['rounding'] == 'ceil'))
        return PartialShape(shape[:-n_spatial] + tuple(spatial))

    elif kind is OpKind.CONVOLUTION:
        weights_shape = g.shape(inputs[1])
        n_spatial = weights_shape.rank - 2
        spatial = []
        for i, extent in enumerate(shape[-n_spatial:]):
            spatial.append(pooled_extent(extent, weights_shape[2 + i], attrs['strides'][i], attrs['pads_begin'][i], attrs['pads_end'][i], False))
        return PartialShape((shape[0], weights_shape[0]) + tuple(spatial))

    else:
        return shape
