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

from .applicationpoint import ConcatNode
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.dequantisation import DequantisationOperations
from lptlib.quantisation.interval import code_offset
from lptlib.quantisation.network import get_dequantisation, move_dequantisation_after, requantise_subtree
from lptlib.editing.editors import Applier


class ConcatApplier(Applier):

    @staticmethod
    def _normalise_branches(g: QGraph, ap: ConcatNode, id_: str) -> None:
        """Re-express the codes of each branch so that all of them share the
        same precision (and, in per-tensor mode, the same dequantisation).
        """
        for s in ap.sources:

            if ap.shared is not None:
                shared = ap.shared
                requantise_subtree(g, s, shared, ap.precision, lambda d: shared.with_convert(d.convert), name=id_)

            else:
                current = g.attrs(s)['_precision']
                if current != ap.precision:
                    delta = code_offset(ap.precision) - code_offset(current)
                    old_deq = g.attrs(s)['_dequantisation']
                    requantise_subtree(g, s, old_deq.shift(delta), ap.precision, lambda d: d.shift(delta), name=id_)

    def _apply(self, g: QGraph, ap: ConcatNode, id_: str) -> QGraph:

        node = ap.node

        ConcatApplier._normalise_branches(g, ap, id_)

        # the branches might have new dequantisations
        chains = {port: get_dequantisation(g, node, port) for port in range(len(g.inputs(node)))}

        if ap.axis == chains[0].operations.axis:
            parts = [(chains[port].operations, g.shape(chains[port].data)[ap.axis]) for port in sorted(chains.keys())]
            merged = DequantisationOperations.concatenate(parts, axis=ap.axis)
        else:
            merged = chains[0].operations

        move_dequantisation_after(g, node, chains, merged, name=id_)

        return g
