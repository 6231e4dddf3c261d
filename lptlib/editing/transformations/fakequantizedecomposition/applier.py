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

from .applicationpoint import FakeQuantizeNode
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.network import insert_dequantisation
from lptlib.editing.editors import Applier


class FakeQuantizeDecompositionApplier(Applier):

    def _apply(self, g: QGraph, ap: FakeQuantizeNode, id_: str) -> QGraph:

        node = ap.node

        # the `FakeQuantize` now outputs integer codes...
        attrs = g.attrs(node)
        attrs['interval'] = ap.decomposition.interval
        attrs['_dequantisation'] = ap.decomposition.dequantisation
        attrs['_precision'] = ap.precision
        if ap.update_precisions:
            g.set_precision(node, ap.precision)

        # ...which its consumers read through a dequantisation
        insert_dequantisation(g, node, ap.decomposition.dequantisation, g.consumers(node), name=id_)

        return g
