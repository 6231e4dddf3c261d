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

from typing import Optional

from .applicationpoint import StridedSliceNode
from lptlib.graphs.graph import QGraph
from lptlib.graphs.shapes import axis_slice, is_full_slice
from lptlib.quantisation.network import get_dequantisation
from lptlib.editing.editors import Finder, Context


class StridedSliceFinder(Finder):

    @staticmethod
    def uses_unsupported_masks(attrs) -> bool:
        return any(any(attrs[k]) for k in ('new_axis_mask', 'shrink_axis_mask', 'ellipsis_mask'))

    def find(self, g: QGraph, node: int, context: Context) -> Optional[StridedSliceNode]:

        attrs = g.attrs(node)
        if StridedSliceFinder.uses_unsupported_masks(attrs):
            return None

        chain = get_dequantisation(g, node, 0)
        if chain is None:
            return None

        deq = chain.operations
        if deq.is_per_tensor:
            return StridedSliceNode(node=node, chain=chain, dequantisation=deq)

        sl = axis_slice(attrs['begin'], attrs['end'], attrs['strides'], attrs['begin_mask'], attrs['end_mask'], deq.axis)
        extent = g.shape(chain.data)[deq.axis]
        if is_full_slice(sl, extent):
            return StridedSliceNode(node=node, chain=chain, dequantisation=deq)
        elif extent is None:
            return None
        else:
            return StridedSliceNode(node=node, chain=chain, dequantisation=deq.broadcast(extent).slice(sl))
