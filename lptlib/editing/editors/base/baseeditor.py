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

from lptlib.graphs.graph import QGraph
from .editor import Editor


class BaseEditor(Editor):

    def __init__(self, name: str):

        super(BaseEditor, self).__init__()

        self._name: str = name
        self._id: str = '_'.join(['LPT', name])  # we use this attribute to label the operations created by this `Editor`

    @property
    def name(self) -> str:
        return self._name

    @property
    def id_(self) -> str:
        return self._id

    def apply(self, g: QGraph, *args, **kwargs) -> QGraph:
        raise NotImplementedError
