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

from __future__ import annotations

import torch
from typing import NamedTuple, List, Optional, Sequence, Tuple, Union

from .types import OpKind, ElementType, PartialShapeSpecType
from .types import resolve_partialshapespec
from .graph import QGraph
from lptlib.quantisation.interval import QuantisationInterval, IntervalSpecType
from lptlib.quantisation.interval import resolve_intervalspec
from lptlib.quantisation.dequantisation import DequantisationOperations
from lptlib.quantisation.network import insert_dequantisation


class FakeQuantizeOnData(NamedTuple):
    """Compact description of a ``FakeQuantize`` operation.

    An empty description (``levels == 0``) means that no ``FakeQuantize``
    should be created.
    """
    levels:           int = 0
    constant_shape:   Tuple[int, ...] = ()
    input_low:        Sequence[float] = ()
    input_high:       Sequence[float] = ()
    output_low:       Sequence[float] = ()
    output_high:      Sequence[float] = ()
    output_precision: Optional[ElementType] = None

    @property
    def empty(self) -> bool:
        return self.levels == 0

    def interval(self) -> QuantisationInterval:

        def _bound(values):
            return torch.tensor(list(values), dtype=torch.float64).reshape(tuple(self.constant_shape))

        return QuantisationInterval(self.levels,
                                    _bound(self.input_low),
                                    _bound(self.input_high),
                                    _bound(self.output_low),
                                    _bound(self.output_high))


class GraphBuilder(object):
    """Fluent construction of ``QGraph``s."""

    def __init__(self, name: str = 'graph'):
        super(GraphBuilder, self).__init__()
        self._g = QGraph(name=name)

    @property
    def graph(self) -> QGraph:
        return self._g

    def parameter(self, shape: PartialShapeSpecType, precision: ElementType = ElementType.f32, name: Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.PARAMETER, name=name, precision=precision, shape=resolve_partialshapespec(shape))

    def constant(self, value, name: Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.CONSTANT, name=name, value=torch.as_tensor(value, dtype=torch.float64).clone())

    def fake_quantize(self,
                      x:         int,
                      interval:  Union[IntervalSpecType, FakeQuantizeOnData],
                      precision: Optional[ElementType] = None,
                      name:      Optional[str] = None) -> int:
        """Create a ``FakeQuantize``; the precision of its output defaults to
        the one of its input (or to the ``output_precision`` of a
        ``FakeQuantizeOnData``).
        """
        if isinstance(interval, FakeQuantizeOnData):
            precision = precision if precision is not None else interval.output_precision
            interval = interval.interval()
        else:
            interval = resolve_intervalspec(interval)
        precision = precision if precision is not None else self._g.precision(x)
        return self._g.add_operation(OpKind.FAKE_QUANTIZE, [x], name=name, precision=precision, interval=interval)

    def concat(self, inputs: List[int], axis: int = 1, name: Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.CONCAT, inputs, name=name, precision=self._g.precision(inputs[0]), axis=axis)

    def strided_slice(self,
                      x:                int,
                      begin:            Sequence[int],
                      end:              Sequence[int],
                      strides:          Optional[Sequence[int]] = None,
                      begin_mask:       Optional[Sequence[int]] = None,
                      end_mask:         Optional[Sequence[int]] = None,
                      new_axis_mask:    Optional[Sequence[int]] = None,
                      shrink_axis_mask: Optional[Sequence[int]] = None,
                      ellipsis_mask:    Optional[Sequence[int]] = None,
                      name:             Optional[str] = None) -> int:

        def _mask(mask):
            return [0] * len(begin) if mask is None else list(mask)

        return self._g.add_operation(OpKind.STRIDED_SLICE, [x], name=name, precision=self._g.precision(x),
                                     begin=list(begin),
                                     end=list(end),
                                     strides=[1] * len(begin) if strides is None else list(strides),
                                     begin_mask=_mask(begin_mask),
                                     end_mask=_mask(end_mask),
                                     new_axis_mask=_mask(new_axis_mask),
                                     shrink_axis_mask=_mask(shrink_axis_mask),
                                     ellipsis_mask=_mask(ellipsis_mask))

    def max_pool(self,
                 x:          int,
                 kernel:     Sequence[int] = (2, 2),
                 strides:    Sequence[int] = (1, 1),
                 pads_begin: Sequence[int] = (0, 0),
                 pads_end:   Sequence[int] = (0, 0),
                 rounding:   str = 'floor',
                 name:       Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.MAX_POOL, [x], name=name, precision=self._g.precision(x),
                                     kernel=list(kernel),
                                     strides=list(strides),
                                     pads_begin=list(pads_begin),
                                     pads_end=list(pads_end),
                                     rounding=rounding)

    def convert(self, x: int, precision: ElementType, dequantisation: bool = False, name: Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.CONVERT, [x], name=name, precision=precision, dequantisation=dequantisation)

    def subtract(self, x: int, value, dequantisation: bool = False, name: Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.SUBTRACT, [x], name=name, precision=self._g.precision(x), value=torch.as_tensor(value, dtype=torch.float64).clone(), dequantisation=dequantisation)

    def multiply(self, x: int, value, dequantisation: bool = False, name: Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.MULTIPLY, [x], name=name, precision=self._g.precision(x), value=torch.as_tensor(value, dtype=torch.float64).clone(), dequantisation=dequantisation)

    def convolution(self,
                    x:          int,
                    weights,
                    strides:    Sequence[int] = (1, 1),
                    pads_begin: Sequence[int] = (0, 0),
                    pads_end:   Sequence[int] = (0, 0),
                    name:       Optional[str] = None) -> int:
        w = self.constant(weights)
        return self._g.add_operation(OpKind.CONVOLUTION, [x, w], name=name,
                                     strides=list(strides),
                                     pads_begin=list(pads_begin),
                                     pads_end=list(pads_end))

    def other(self, inputs: List[int], name: Optional[str] = None) -> int:
        """An operator that the transformations know nothing about; it
        evaluates as the identity of its first input.
        """
        return self._g.add_operation(OpKind.OTHER, inputs, name=name)

    def result(self, x: int, name: Optional[str] = None) -> int:
        return self._g.add_operation(OpKind.RESULT, [x], name=name, precision=self._g.precision(x))

    def dequantisation(self, x: int, deq: DequantisationOperations, name: Optional[str] = None) -> int:
        """Append the operations of ``deq`` to ``x``; return the last one."""
        chain = insert_dequantisation(self._g, x, deq, consumers=[], name=name)
        return chain.output
