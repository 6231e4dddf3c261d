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

"""Factories for subgraphs where ``Concat`` operations are interleaved with
``StridedSlice`` operations.

The factories come in pairs: the original subgraph simulates low-precision
arithmetic by means of ``FakeQuantize`` operations, while the reference
subgraph is what the low-precision transformations should turn it into.

Topology::

    input1 -> FQ1 -> [StridedSlice (channels 0:2)] --\\
               |                                      Concat -> [StridedSlice (channels 0:-2)] -> MaxPool -> result1
               |                          input2 -> FQ2 --/  \\
               |                                             MaxPool -> result2
               \\-> MaxPool -> result0
"""

from typing import Optional

from ..types import ElementType, PartialShapeSpecType
from ..graph import QGraph
from ..builder import GraphBuilder, FakeQuantizeOnData
from lptlib.quantisation.dequantisation import DequantisationOperations


def _slice_channels(b: GraphBuilder, x: int, begin: int, end: int) -> int:
    return b.strided_slice(x,
                           begin=[0, begin, 0, 0],
                           end=[0, end, 0, 0],
                           strides=[1, 1, 1, 1],
                           begin_mask=[1, 0, 1, 1],
                           end_mask=[1, 0, 1, 1])


def _max_pool(b: GraphBuilder, x: int) -> int:
    return b.max_pool(x, kernel=(2, 2), strides=(1, 1), pads_begin=(0, 0), pads_end=(0, 0), rounding='floor')


def get_original_with_strided_slice(precision:        ElementType,
                                    shape:            PartialShapeSpecType,
                                    fq1:              FakeQuantizeOnData,
                                    fq2:              FakeQuantizeOnData,
                                    ss_before_concat: bool,
                                    ss_after_concat:  bool) -> QGraph:

    b = GraphBuilder('ConcatWithStridedSlice')

    input1 = b.parameter(shape, precision, name='input1')
    fake_quantize1 = b.fake_quantize(input1, fq1, name='fakeQuantize1')
    parent1 = _slice_channels(b, fake_quantize1, 0, 2) if ss_before_concat else fake_quantize1
    b.result(_max_pool(b, fake_quantize1), name='result0')

    input2 = b.parameter(shape, precision, name='input2')
    fake_quantize2 = b.fake_quantize(input2, fq2, name='fakeQuantize2')
    concat = b.concat([parent1, fake_quantize2], axis=1, name='concat')

    parent2 = _slice_channels(b, concat, 0, -2) if ss_after_concat else concat
    b.result(_max_pool(b, parent2), name='result1')
    b.result(_max_pool(b, concat), name='result2')

    return b.graph


def get_reference_with_strided_slice(precision:               ElementType,
                                     shape:                   PartialShapeSpecType,
                                     fq1:                     FakeQuantizeOnData,
                                     fq2:                     FakeQuantizeOnData,
                                     dequantisation_before:   DequantisationOperations,
                                     precision_before_concat: ElementType,
                                     precision_after_concat:  ElementType,
                                     ss_before_concat:        bool,
                                     ss_after_concat:         bool,
                                     dequantisation_after1:   DequantisationOperations,
                                     dequantisation_after2:   DequantisationOperations,
                                     name:                    Optional[str] = None) -> QGraph:

    b = GraphBuilder(name if name is not None else 'ConcatWithStridedSliceReference')

    input1 = b.parameter(shape, precision, name='input1')
    fake_quantize1 = b.fake_quantize(input1, fq1, precision=precision_before_concat, name='fakeQuantize1')
    parent1 = _slice_channels(b, fake_quantize1, 0, 2) if ss_before_concat else fake_quantize1
    b.result(b.dequantisation(_max_pool(b, fake_quantize1), dequantisation_before), name='result0')

    input2 = b.parameter(shape, precision, name='input2')
    fake_quantize2 = b.fake_quantize(input2, fq2, precision=precision_before_concat, name='fakeQuantize2')
    concat = b.concat([parent1, fake_quantize2], axis=1, name='concat')
    b.graph.set_precision(concat, precision_after_concat)

    parent2 = _slice_channels(b, concat, 0, -2) if ss_after_concat else concat
    b.result(b.dequantisation(_max_pool(b, parent2), dequantisation_after1), name='result1')
    b.result(b.dequantisation(_max_pool(b, concat), dequantisation_after2), name='result2')

    return b.graph
