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

from .applicationpoint import PassThroughNode
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.network import get_dequantisation
from lptlib.editing.editors import Finder, Context


class PassThroughFinder(Finder):
    """Order-statistic reductions (e.g., max-pooling) commute with
    increasing affine maps: we can move a dequantisation past them as long
    as all its scales are positive.
    """

    def find(self, g: QGraph, node: int, context: Context) -> Optional[PassThroughNode]:

        chain = get_dequantisation(g, node, 0)
        if chain is None:
            return None

        return PassThroughNode(node=node, chain=chain)
