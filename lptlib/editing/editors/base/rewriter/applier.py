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

import torch

from lptlib.graphs.types import OpKind
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.network import is_dequantisation_node
from lptlib.utils import lpt_err_header
from .applicationpoint import ApplicationPoint


class Applier(object):

    def __init__(self):
        super(Applier, self).__init__()
        self._counter: int = 0  # use `self._counter` to distinguish applications

    @property
    def counter(self) -> int:
        return self._counter

    def _apply(self,
               g:   QGraph,
               ap:  ApplicationPoint,
               id_: str) -> QGraph:
        # use `id_` to annotate graph modifications
        raise NotImplementedError

    @staticmethod
    def _polish_graph(g: QGraph) -> None:
        """Verify that the modifications made in ``_apply`` left the graph in
        a consistent state.

        Each per-channel dequantisation vector must match the channel extent
        of the data it applies to, and each scale must be strictly positive.

        """
        for n in g.nodes:
            if not is_dequantisation_node(g, n) or (g.kind(n) is OpKind.CONVERT):
                continue
            value = g.attrs(n)['value']
            shape = g.shape(n)
            if value.numel() > 1:
                axis = 1
                extent = shape[axis] if shape.rank > axis else None
                if (extent is not None) and (extent != value.numel()):
                    raise RuntimeError(lpt_err_header(obj_name='Applier', node_name=g.name_of(n)) + f"holds {value.numel()} values, but its input has {extent} channels.")
            if (g.kind(n) is OpKind.MULTIPLY) and not bool(torch.all(value > 0.0)):
                raise RuntimeError(lpt_err_header(obj_name='Applier', node_name=g.name_of(n)) + "holds non-positive scales.")

    def apply(self,
              g:   QGraph,
              ap:  ApplicationPoint,
              id_: str) -> QGraph:

        # create a unique application identifier
        self._counter += 1
        id_ = id_ + f'_{str(self._counter)}'

        # modify the graph
        g = self._apply(g, ap, id_)
        Applier._polish_graph(g)

        return g
