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

from __future__ import annotations

from typing import NamedTuple, List, Optional

from lptlib.graphs.types import OpKind
from lptlib.graphs.graph import QGraph
from lptlib.restrictions import PrecisionsRestrictions, GranularityRestrictions
from lptlib.editing.params import TransformationParams
from lptlib.utils import lpt_err_header
from .applicationpoint import ApplicationPoint
from .finder import Finder
from .applier import Applier
from ..baseeditor import BaseEditor


# -- CONTEXT -- #

class Context(NamedTuple):
    """The configuration against which ``Finder``s check their
    preconditions.
    """
    precisions:  PrecisionsRestrictions = PrecisionsRestrictions()
    granularity: GranularityRestrictions = GranularityRestrictions()
    params:      TransformationParams = TransformationParams()


# -- REWRITER -- #

class Rewriter(BaseEditor):
    """Base ``Editor`` representing a graph rewriting rule.

    Each rule is keyed by the kind of the operations it can rewrite.
    """

    def __init__(self,
                 name:    str,
                 kind:    OpKind,
                 finder:  Finder,
                 applier: Applier):

        if not isinstance(kind, OpKind):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + f"expects an OpKind, but received {type(kind)}.")

        super(Rewriter, self).__init__(name)
        self._kind = kind
        self._finder = finder
        self._applier = applier

    @property
    def kind(self) -> OpKind:
        return self._kind

    def find(self, g: QGraph, node: int, context: Context) -> Optional[ApplicationPoint]:
        if g.kind(node) is not self._kind:
            return None
        return self._finder.find(g, node, context)

    def rewrite(self, g: QGraph, node: int, context: Context) -> bool:
        """Rewrite ``node`` if the rule applies to it; return whether it did."""
        ap = self.find(g, node, context)
        if ap is None:
            return False
        self._applier.apply(g, ap, self.id_)
        return True

    def apply(self, g: QGraph, context: Optional[Context] = None, *args, **kwargs) -> QGraph:

        context = context if context is not None else Context()

        nodes: List[int] = [n for n in g.topological_order() if g.kind(n) is self._kind]
        for n in nodes:
            if n in g:  # previous rewritings might have removed the operation
                self.rewrite(g, n, context)

        return g
