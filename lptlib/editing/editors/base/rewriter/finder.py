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

from lptlib.graphs.graph import QGraph
from .applicationpoint import ApplicationPoint


class Finder(object):

    def find(self, g: QGraph, node: int, context) -> Optional[ApplicationPoint]:
        """Decide whether the rewriting rule applies to ``node``.

        Return ``None`` when some precondition does not hold; otherwise,
        return an application point describing everything that the
        ``Applier`` needs to rewrite the graph.

        """
        raise NotImplementedError
