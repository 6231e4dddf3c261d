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

"""The graph arena manipulated by the low-precision transformations.

Operations are identified by integer ids that are allocated by a monotone
counter and never reused. Edges run from producers to consumers; since a
consumer can read the same producer on several input ports, the graph is a
multigraph whose edge keys are the consumer ports.
"""

from __future__ import annotations

import copy
import networkx as nx
from typing import NamedTuple, Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .types import OpKind, ElementType, PartialShape
from .shapes import infer_shape
from lptlib.utils import lpt_err_header


class NodeView(NamedTuple):
    """Read-only summary of an operation."""
    id_:       int
    kind:      OpKind
    name:      str
    precision: ElementType
    shape:     Optional[PartialShape]
    attrs:     Dict[str, Any]


class QGraph(nx.MultiDiGraph):

    def __init__(self, incoming_graph_data=None, name: str = 'graph', **attr):
        super(QGraph, self).__init__(incoming_graph_data, **attr)
        self.graph.setdefault('name', name)
        self._next_id: int = max(self.nodes, default=-1) + 1

    # -- CONSTRUCTION -- #

    def add_operation(self,
                      kind:      OpKind,
                      inputs:    Sequence[int] = (),
                      name:      Optional[str] = None,
                      precision: ElementType = ElementType.f32,
                      shape:     Optional[PartialShape] = None,
                      **attrs) -> int:
        """Create an operation reading ``inputs`` on ports ``0, 1, ...``.

        When ``shape`` is not given, it is inferred from the inputs.
        """
        if not isinstance(kind, OpKind):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + f"expected an OpKind, but received {type(kind)}.")

        id_ = self._next_id
        self._next_id += 1

        self.add_node(id_,
                      kind=kind,
                      name=name if name is not None else f"{kind.value}_{id_}",
                      precision=precision,
                      shape=shape,
                      attrs=dict(attrs))

        for port, producer in enumerate(inputs):
            self.connect(producer, id_, port)

        if shape is None:
            self.nodes[id_]['shape'] = infer_shape(self, id_)

        return id_

    def connect(self, producer: int, consumer: int, port: int, slot: int = 0) -> None:
        if (producer not in self) or (consumer not in self):
            raise ValueError(lpt_err_header(obj_name=self.__class__.__name__) + f"can not connect unknown operations {producer} -> {consumer}.")
        if self.has_input(consumer, port):
            raise ValueError(lpt_err_header(obj_name=self.__class__.__name__) + f"port {port} of operation {consumer} is already bound.")
        self.add_edge(producer, consumer, key=port, slot=slot)

    # -- ATTRIBUTES -- #

    def kind(self, node: int) -> OpKind:
        return self.nodes[node]['kind']

    def name_of(self, node: int) -> str:
        return self.nodes[node]['name']

    def precision(self, node: int) -> ElementType:
        return self.nodes[node]['precision']

    def set_precision(self, node: int, precision: ElementType) -> None:
        self.nodes[node]['precision'] = precision

    def shape(self, node: int) -> Optional[PartialShape]:
        return self.nodes[node]['shape']

    def set_shape(self, node: int, shape: PartialShape) -> None:
        self.nodes[node]['shape'] = shape

    def attrs(self, node: int) -> Dict[str, Any]:
        return self.nodes[node]['attrs']

    def node(self, node: int) -> NodeView:
        data = self.nodes[node]
        return NodeView(id_=node, kind=data['kind'], name=data['name'], precision=data['precision'], shape=data['shape'], attrs=dict(data['attrs']))

    # -- TOPOLOGY -- #

    def has_input(self, node: int, port: int) -> bool:
        return any(key == port for _, _, key in self.in_edges(node, keys=True))

    def inputs(self, node: int) -> List[int]:
        """Return the producers of ``node``, ordered by input port."""
        edges = sorted(self.in_edges(node, keys=True), key=lambda e: e[2])
        if [port for _, _, port in edges] != list(range(len(edges))):
            raise RuntimeError(lpt_err_header(obj_name=self.__class__.__name__) + f"the input ports of operation {node} are not contiguous.")
        return [producer for producer, _, _ in edges]

    def input(self, node: int, port: int) -> int:
        for producer, _, key in self.in_edges(node, keys=True):
            if key == port:
                return producer
        raise ValueError(lpt_err_header(obj_name=self.__class__.__name__) + f"port {port} of operation {node} is not bound.")

    def consumers(self, node: int) -> List[Tuple[int, int]]:
        """Return the ``(consumer, port)`` pairs reading ``node``, sorted."""
        return sorted((consumer, port) for _, consumer, port in self.out_edges(node, keys=True))

    def replace_input(self, consumer: int, port: int, new_producer: int) -> None:
        old_producer = self.input(consumer, port)
        slot = self.edges[old_producer, consumer, port]['slot']
        self.remove_edge(old_producer, consumer, key=port)
        self.add_edge(new_producer, consumer, key=port, slot=slot)

    def replace_consumers(self, old: int, new: int, exclude: Iterable[int] = ()) -> None:
        """Rewire every consumer of ``old`` (except those in ``exclude``) to
        read ``new``.
        """
        exclude = set(exclude)
        for consumer, port in self.consumers(old):
            if consumer not in exclude:
                self.replace_input(consumer, port, new)

    def remove_operation(self, node: int) -> None:
        self.remove_node(node)

    def remove_if_dangling(self, node: int) -> bool:
        """Remove ``node`` if no operation reads its output.

        Results are never dangling.
        """
        if (node in self) and (self.out_degree(node) == 0) and (self.kind(node) is not OpKind.RESULT):
            self.remove_node(node)
            return True
        return False

    def topological_order(self) -> List[int]:
        """Return the operations sorted so that each producer precedes its
        consumers; ties are broken by increasing id.
        """
        return list(nx.lexicographical_topological_sort(self))

    def operations(self, kind: Optional[OpKind] = None) -> List[int]:
        return sorted(n for n in self.nodes if (kind is None) or (self.kind(n) is kind))

    def parameters(self) -> List[int]:
        return self.operations(OpKind.PARAMETER)

    def results(self) -> List[int]:
        return self.operations(OpKind.RESULT)

    def copy(self, as_view: bool = False) -> QGraph:
        if as_view:
            return super(QGraph, self).copy(as_view=True)
        return copy.deepcopy(self)
