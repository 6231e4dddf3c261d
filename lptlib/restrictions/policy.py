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

"""Policies deriving precisions and quantisation granularities from the
restrictions that the consumers of an operation impose.

Concat, StridedSlice and MaxPool preserve the precision of their inputs:
the walks in this module look through them (and through dequantisation
operations) to reach the operations that actually consume the data.
"""

from typing import Iterator, List, Optional, Set, Tuple

from lptlib.graphs.types import OpKind, ElementType, smallest_unsigned_type
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.network import is_dequantisation_node
from lptlib.utils import lpt_err_header
from lptlib.utils import PrecisionConflict
from .precisions import PrecisionsRestrictions
from .granularity import GranularityRestrictions


PRECISION_PRESERVING_KINDS = (OpKind.CONCAT, OpKind.STRIDED_SLICE, OpKind.MAX_POOL)


def _terminal_consumers(g: QGraph, node: int) -> Iterator[Tuple[int, int]]:
    """Yield the ``(consumer, port)`` pairs reached from ``node`` through
    transparent operations, in a deterministic order.
    """
    visited: Set[int] = set()
    stack = [node]
    while len(stack) > 0:
        n = stack.pop()
        for consumer, port in g.consumers(n):
            if (g.kind(consumer) in PRECISION_PRESERVING_KINDS) or is_dequantisation_node(g, consumer):
                if consumer not in visited:
                    visited.add(consumer)
                    stack.append(consumer)
            else:
                yield consumer, port


def allowed_precisions(g: QGraph, node: int, catalog: PrecisionsRestrictions) -> Optional[Tuple[ElementType, ...]]:
    """Intersect the precisions allowed by the consumers of ``node``.

    The intersection is ordered as the first restricting list; ``None``
    means that no consumer restricts the precision.
    """
    lists: List[Tuple[ElementType, ...]] = []
    for consumer, port in _terminal_consumers(g, node):
        allowed = catalog.allowed(g.kind(consumer), port)
        if allowed is not None:
            lists.append(allowed)

    if len(lists) == 0:
        return None

    return tuple(t for t in lists[0] if all(t in l for l in lists[1:]))


def select_precision(levels: int, allowed: Optional[Tuple[ElementType, ...]]) -> ElementType:
    """Pick the integer type storing the codes of a ``levels``-levels
    quantiser.
    """
    if allowed is None:
        return smallest_unsigned_type(levels)

    for t in allowed:
        if t.covers(levels):
            return t

    raise PrecisionConflict(lpt_err_header() + f"none of the allowed precisions {[str(t) for t in allowed]} can represent {levels} levels.")


def requires_per_tensor(g: QGraph, node: int, granularity: GranularityRestrictions) -> bool:
    """Whether the output of ``node`` must be dequantised per-tensor."""
    if granularity.is_per_tensor(g.kind(node)):
        return True
    return any(granularity.is_per_tensor(g.kind(consumer), port) for consumer, port in _terminal_consumers(g, node))
