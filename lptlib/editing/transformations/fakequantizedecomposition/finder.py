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

from .applicationpoint import FakeQuantizeNode
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.interval import decompose
from lptlib.quantisation.network import is_decomposed
from lptlib.restrictions import allowed_precisions, select_precision
from lptlib.editing.editors import Finder, Context


class FakeQuantizeDecompositionFinder(Finder):

    def find(self, g: QGraph, node: int, context: Context) -> Optional[FakeQuantizeNode]:

        if is_decomposed(g, node) or g.precision(node).is_integer:
            return None
        if len(g.consumers(node)) == 0:
            return None

        interval = g.attrs(node)['interval']
        interval.validate(g.shape(g.input(node, 0)))  # malformed intervals are fatal

        # a `PrecisionConflict` raised here leaves the operation untouched
        precision = select_precision(interval.levels, allowed_precisions(g, node, context.precisions))

        params = context.params
        decomposition = decompose(interval, precision, params.convert_precision, g.shape(node).rank)
        if (not params.support_asymmetric_quantisation) and (decomposition.dequantisation.subtract is not None):
            return None

        return FakeQuantizeNode(node=node, precision=precision, decomposition=decomposition, update_precisions=params.update_precisions)
