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

"""Graph-level manipulation of dequantisation chains.

A dequantisation chain is a sequence ``[Convert] -> [Subtract] -> [Multiply]``
(each operation optional, at least one present) whose operations have been
tagged as dequantisation operations. The chain reads the integer data
produced by a decomposed ``FakeQuantize``, possibly after some
precision-preserving operations (e.g., ``StridedSlice``, ``MaxPool``) which
have already been made quantisation-transparent.
"""

import torch
from typing import NamedTuple, Callable, Dict, List, Optional, Sequence, Tuple

from lptlib.graphs.types import OpKind, ElementType
from lptlib.graphs.graph import QGraph
from lptlib.utils import lpt_err_header
from .dequantisation import DequantisationOperations
from .interval import requantise_bounds


DEQUANTISATION_KINDS = (OpKind.CONVERT, OpKind.SUBTRACT, OpKind.MULTIPLY)
INTEGER_TRANSPARENT_KINDS = (OpKind.STRIDED_SLICE, OpKind.MAX_POOL)


def is_dequantisation_node(g: QGraph, node: int) -> bool:
    return (g.kind(node) in DEQUANTISATION_KINDS) and g.attrs(node).get('dequantisation', False)


def _is_chain_link(g: QGraph, node: int) -> bool:
    if not is_dequantisation_node(g, node):
        return False
    # scales must be strictly positive
    return (g.kind(node) is not OpKind.MULTIPLY) or bool(torch.all(g.attrs(node)['value'] > 0.0))


def is_decomposed(g: QGraph, node: int) -> bool:
    """Whether ``node`` is a ``FakeQuantize`` that outputs integer codes."""
    return (g.kind(node) is OpKind.FAKE_QUANTIZE) and ('_dequantisation' in g.attrs(node))


class DequantisationChain(NamedTuple):
    data:       int
    convert:    Optional[int]
    subtract:   Optional[int]
    multiply:   Optional[int]
    operations: DequantisationOperations

    @property
    def nodes(self) -> List[int]:
        """The operations of the chain, from the last to the first."""
        return [n for n in (self.multiply, self.subtract, self.convert) if n is not None]

    @property
    def output(self) -> int:
        nodes = self.nodes
        return nodes[0] if len(nodes) > 0 else self.data


def _read_chain(g: QGraph, data: int, convert: Optional[int], subtract: Optional[int], multiply: Optional[int]) -> DequantisationChain:
    operations = DequantisationOperations(convert=None if convert is None else g.precision(convert),
                                          subtract=None if subtract is None else g.attrs(subtract)['value'],
                                          multiply=None if multiply is None else g.attrs(multiply)['value'])
    return DequantisationChain(data=data, convert=convert, subtract=subtract, multiply=multiply, operations=operations)


def get_dequantisation(g: QGraph, node: int, port: int = 0) -> Optional[DequantisationChain]:
    """Match the dequantisation chain ending at input ``port`` of ``node``."""
    n = g.input(node, port)
    found = {}
    for kind in reversed(DEQUANTISATION_KINDS):  # walk upwards: Multiply, Subtract, Convert
        if (g.kind(n) is kind) and _is_chain_link(g, n):
            found[kind] = n
            n = g.input(n, 0)

    if len(found) == 0:
        return None

    return _read_chain(g, n, found.get(OpKind.CONVERT), found.get(OpKind.SUBTRACT), found.get(OpKind.MULTIPLY))


def get_dequantisation_below(g: QGraph, data: int, head: int) -> DequantisationChain:
    """Match the dequantisation chain starting at ``head``, a consumer of
    ``data``.
    """
    order = list(DEQUANTISATION_KINDS)
    found = {g.kind(head): head}
    n = head
    while g.kind(n) is not OpKind.MULTIPLY:
        consumers = g.consumers(n)
        if len(consumers) != 1:
            break
        next_, port = consumers[0]
        if (port != 0) or (not _is_chain_link(g, next_)) or (order.index(g.kind(next_)) <= order.index(g.kind(n))):
            break
        found[g.kind(next_)] = next_
        n = next_

    return _read_chain(g, data, found.get(OpKind.CONVERT), found.get(OpKind.SUBTRACT), found.get(OpKind.MULTIPLY))


def insert_dequantisation(g:         QGraph,
                          producer:  int,
                          deq:       DequantisationOperations,
                          consumers: Optional[Sequence[Tuple[int, int]]] = None,
                          name:      Optional[str] = None) -> DequantisationChain:
    """Attach the operations described by ``deq`` to the output of
    ``producer``, and rewire ``consumers`` (by default, all the consumers of
    ``producer``) to the output of the new chain.
    """
    if consumers is None:
        consumers = g.consumers(producer)
    name = name if name is not None else g.name_of(producer)

    rank = g.shape(producer).rank
    real_precision = deq.convert if deq.convert is not None else g.precision(producer)

    n = producer
    convert = subtract = multiply = None
    if deq.convert is not None:
        n = convert = g.add_operation(OpKind.CONVERT, [n], name=f"{name}_convert", precision=deq.convert, dequantisation=True)
    if deq.subtract is not None:
        n = subtract = g.add_operation(OpKind.SUBTRACT, [n], name=f"{name}_subtract", precision=real_precision, value=deq.constant(deq.subtract, rank), dequantisation=True)
    if deq.multiply is not None:
        n = multiply = g.add_operation(OpKind.MULTIPLY, [n], name=f"{name}_multiply", precision=real_precision, value=deq.constant(deq.multiply, rank), dequantisation=True)

    for consumer, port in consumers:
        g.replace_input(consumer, port, n)

    return DequantisationChain(data=producer, convert=convert, subtract=subtract, multiply=multiply, operations=deq)


def remove_chain_if_dangling(g: QGraph, chain: DequantisationChain) -> None:
    for n in chain.nodes:
        g.remove_if_dangling(n)


def move_dequantisation_after(g:       QGraph,
                              op:      int,
                              chains:  Dict[int, DequantisationChain],
                              new_deq: DequantisationOperations,
                              name:    Optional[str] = None) -> DequantisationChain:
    """Make ``op`` read the integer data underneath the given chains (keyed
    by input port), and apply ``new_deq`` to its output instead.
    """
    if len(chains) == 0:
        raise ValueError(lpt_err_header() + f"operation {op} has no dequantisation to move.")

    consumers = g.consumers(op)
    for port, chain in chains.items():
        g.replace_input(op, port, chain.data)
    g.set_precision(op, g.precision(next(iter(chains.values())).data))

    new_chain = insert_dequantisation(g, op, new_deq, consumers, name)
    for chain in chains.values():
        remove_chain_if_dangling(g, chain)

    return new_chain


def find_quantisation_source(g: QGraph, node: int) -> Optional[int]:
    """Walk upwards from ``node`` through quantisation-transparent
    operations, looking for the decomposed ``FakeQuantize`` that produces
    its integer codes.
    """
    n = node
    while not is_decomposed(g, n):
        if g.kind(n) not in INTEGER_TRANSPARENT_KINDS:
            return None
        n = g.input(n, 0)
    return n


class Subtree(NamedTuple):
    operations: List[int]
    chains:     List[DequantisationChain]


def collect_subtree(g: QGraph, fq: int) -> Optional[Subtree]:
    """Collect the operations that process the integer codes of ``fq``, and
    the dequantisation chains terminating them.

    Returns ``None`` when the codes reach any other operation: re-expressing
    them would then change the semantics of the graph.
    """
    operations = []
    chains = []

    stack = [fq]
    while len(stack) > 0:
        n = stack.pop()
        for consumer, port in g.consumers(n):
            if _is_chain_link(g, consumer):
                chain = get_dequantisation_below(g, n, consumer)
                if any(is_dequantisation_node(g, c) for c, _ in g.consumers(chain.output)):
                    return None
                chains.append(chain)
            elif (g.kind(consumer) in INTEGER_TRANSPARENT_KINDS) and (port == 0):
                if consumer not in operations:
                    operations.append(consumer)
                    stack.append(consumer)
            else:
                return None

    return Subtree(operations=operations, chains=chains)


def requantise_subtree(g:          QGraph,
                       fq:         int,
                       new_deq:    DequantisationOperations,
                       precision:  ElementType,
                       chain_fn:   Callable[[DequantisationOperations], DequantisationOperations],
                       name:       Optional[str] = None) -> None:
    """Re-express the integer codes produced by the decomposed ``fq``.

    The output bounds of ``fq`` are mapped from its current dequantisation to
    ``new_deq``; then, ``chain_fn`` computes the replacement for each
    dequantisation chain hanging off ``fq``.
    """
    subtree = collect_subtree(g, fq)
    if subtree is None:
        raise RuntimeError(lpt_err_header() + f"the integer codes of {g.name_of(fq)} reach operations which are not quantisation-transparent.")

    attrs = g.attrs(fq)
    interval = attrs['interval']
    old_deq = attrs['_dequantisation']
    low, high = requantise_bounds(interval.output_low, interval.output_high, old_deq, new_deq, precision, g.shape(fq).rank)
    attrs['interval'] = interval.with_output(low, high)
    attrs['_dequantisation'] = new_deq
    attrs['_precision'] = precision

    if g.precision(fq).is_integer:
        for n in [fq] + subtree.operations:
            g.set_precision(n, precision)

    for chain in subtree.chains:
        consumers = g.consumers(chain.output)
        insert_dequantisation(g, chain.data, chain_fn(chain.operations), consumers, name)
        remove_chain_if_dangling(g, chain)


def count_dequantisation_operations(g: QGraph) -> int:
    return sum(1 for n in g.nodes if is_dequantisation_node(g, n))
