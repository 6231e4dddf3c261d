# 
# draw.py
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

from collections import namedtuple
import graphviz as gv

from ..types import OpKind
from ..graph import QGraph


GVNodeAppearance = namedtuple('GVNodeAppearance', ['fontsize', 'shape', 'height', 'width', 'color', 'fillcolor'])


_FAMILIES = {
    OpKind.PARAMETER:     'data',
    OpKind.RESULT:        'data',
    OpKind.CONSTANT:      'data',
    OpKind.FAKE_QUANTIZE: 'quantisation',
    OpKind.CONVERT:       'dequantisation',
    OpKind.SUBTRACT:      'dequantisation',
    OpKind.MULTIPLY:      'dequantisation',
    OpKind.CONCAT:        'structural',
    OpKind.STRIDED_SLICE: 'structural',
    OpKind.MAX_POOL:      'structural',
}


def _get_styles():

    _styles = {
        'data':
            GVNodeAppearance(fontsize='8', shape='square', height='1.2', width='1.2',
                             color='gray60', fillcolor='gray90'),
        'quantisation':
            GVNodeAppearance(fontsize='8', shape='diamond', height='1.2', width='1.2',
                             color='brown2', fillcolor='brown2'),
        'dequantisation':
            GVNodeAppearance(fontsize='8', shape='circle', height='1.0', width='1.0',
                             color='darkgoldenrod1', fillcolor='darkgoldenrod1'),
        'structural':
            GVNodeAppearance(fontsize='8', shape='circle', height='1.5', width='1.5',
                             color='cornflowerblue', fillcolor='cornflowerblue'),
        'other':
            GVNodeAppearance(fontsize='8', shape='circle', height='1.5', width='1.5',
                             color='darkseagreen', fillcolor='darkseagreen'),
    }

    return _styles


def to_graphviz(G: QGraph, comment: str = '') -> gv.Digraph:

    family_2_style = _get_styles()

    gvG = gv.Digraph(comment=comment)
    for n in G.topological_order():
        label = f"{G.name_of(n)}\n{G.kind(n).value}\n{G.precision(n)} {G.shape(n)}"
        style = family_2_style[_FAMILIES.get(G.kind(n), 'other')]
        gvG.node(str(n), label, **style._asdict(), style='filled')
    for u, v, port in G.edges(keys=True):
        gvG.edge(str(u), str(v), label=str(port))

    return gvG


def draw_graph(G: QGraph, save_dir: str, filename: str):
    gvG = to_graphviz(G, comment=filename)
    gvG.render(directory=save_dir, filename=filename)
