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

from typing import List

from lptlib.graphs.graph import QGraph
from lptlib.utils import lpt_err_header
from .editor import Editor


class ComposedEditor(Editor):
    """``Editor`` applying a sequence of editing steps to the target graph.

    Each child edits the graph in place; the additional arguments (e.g., the
    ``Context`` of a sequence of ``Rewriter``s) are forwarded to all of them.
    """

    def __init__(self, children_editors: List[Editor]):

        # validate input
        if not isinstance(children_editors, list):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + f"expects a list of Editors, but received {type(children_editors)}.")
        for editor in children_editors:
            if not isinstance(editor, Editor):
                raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + f"expects Editors, but received {type(editor)}.")

        super(ComposedEditor, self).__init__()
        self._children_editors = children_editors

    @property
    def children_editors(self) -> List[Editor]:
        return list(self._children_editors)

    def apply(self, g: QGraph, *args, **kwargs) -> QGraph:

        for editor in self._children_editors:
            g = editor(g, *args, **kwargs)

        return g
