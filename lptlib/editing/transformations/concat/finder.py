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

from typing import List, Optional

from .applicationpoint import ConcatNode
from lptlib.graphs.types import ElementType, smallest_unsigned_type
from lptlib.graphs.graph import QGraph
from lptlib.graphs.shapes import normalise_axis
from lptlib.quantisation.dequantisation import DequantisationOperations
from lptlib.quantisation.interval import code_offset, unify
from lptlib.quantisation.network import get_dequantisation, find_quantisation_source, collect_subtree
from lptlib.restrictions import allowed_precisions, requires_per_tensor
from lptlib.editing.editors import Finder, Context
from lptlib.utils import lpt_err_header
from lptlib.utils import PrecisionConflict


class ConcatFinder(Finder):

    @staticmethod
    def select_precision(g: QGraph, node: int, current: List[ElementType], levels: int, context: Context) -> ElementType:
        """Keep the precision shared by the branches if the consumers of the
        ``Concat`` accept it; otherwise, pick the first accepted one.
        """
        candidates = allowed_precisions(g, node, context.precisions)
        if candidates is not None:
            candidates = tuple(t for t in candidates if t.covers(levels))
            if len(candidates) == 0:
                raise PrecisionConflict(lpt_err_header(obj_name='ConcatTransformation') + f"no precision accepted by the consumers of {g.name_of(node)} can represent {levels} levels.")

        if (len(set(current)) == 1) and ((candidates is None) or (current[0] in candidates)):
            return current[0]

        return candidates[0] if candidates is not None else smallest_unsigned_type(levels)

    def find(self, g: QGraph, node: int, context: Context) -> Optional[ConcatNode]:

        inputs = g.inputs(node)
        chains = [get_dequantisation(g, node, port) for port in range(len(inputs))]
        if any(c is None for c in chains):
            return None

        sources = [find_quantisation_source(g, c.data) for c in chains]
        if any(s is None for s in sources):
            return None
        unique_sources = list(dict.fromkeys(sources))

        if len({c.operations.convert for c in chains}) > 1:
            return None

        shape = g.shape(node)
        axis = normalise_axis(g.attrs(node)['axis'], shape.rank)

        intervals = [g.attrs(s)['interval'] for s in sources]
        current = [g.attrs(s)['_precision'] for s in sources]
        precision = ConcatFinder.select_precision(g, node, current, max(i.levels for i in intervals), context)

        shared = None
        if requires_per_tensor(g, node, context.granularity):
            if len({i.levels for i in intervals}) > 1:
                return None
            if any(i.channels is not None for i in intervals):
                return None
            zero, scale = unify(intervals)
            zero = zero + code_offset(precision)
            shared = DequantisationOperations(convert=chains[0].operations.convert, subtract=zero, multiply=scale).with_subtract_elided()

        # re-expressing the codes of a branch must not affect other computations
        if (shared is not None) or any(p != precision for p in current):
            if any(collect_subtree(g, s) is None for s in unique_sources):
                return None

        if shared is None:
            deqs = [c.operations.shift(code_offset(precision) - code_offset(p)) for c, p in zip(chains, current)]
            uniform = all(d.is_per_tensor for d in deqs) and all(deqs[0].equals(d) for d in deqs[1:])
            if not uniform:
                if axis != deqs[0].axis:
                    # the branches can be merged only if they are dequantised identically
                    if not all(deqs[0].equals(d) for d in deqs[1:]):
                        return None
                elif any(g.shape(c.data)[axis] is None for c in chains):
                    return None

        return ConcatNode(node=node, sources=unique_sources, precision=precision, shared=shared, axis=axis)
