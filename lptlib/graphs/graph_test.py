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

import unittest
import torch

from lptlib.graphs import OpKind, ElementType, PartialShape, QGraph, GraphBuilder


class QGraphTest(unittest.TestCase):

    @staticmethod
    def _make_graph():
        b = GraphBuilder()
        x = b.parameter((1, 4, 9, 9), name='x')
        y = b.parameter((1, 2, 9, 9), name='y')
        c = b.concat([x, y], axis=1)
        r = b.result(c)
        return b.graph, x, y, c, r

    def test_ports(self):
        g, x, y, c, r = QGraphTest._make_graph()
        self.assertEqual(g.inputs(c), [x, y])
        self.assertEqual(g.input(c, 1), y)
        self.assertEqual(g.consumers(x), [(c, 0)])
        self.assertRaises(ValueError, lambda: g.connect(x, c, 0))  # port already bound
        self.assertRaises(ValueError, lambda: g.input(c, 2))

    def test_same_producer_on_several_ports(self):
        b = GraphBuilder()
        x = b.parameter((1, 2, 3, 3))
        c = b.concat([x, x], axis=1)
        g = b.graph
        self.assertEqual(g.inputs(c), [x, x])
        self.assertEqual(g.consumers(x), [(c, 0), (c, 1)])
        self.assertEqual(g.shape(c), PartialShape((1, 4, 3, 3)))

    def test_replace_input(self):
        g, x, y, c, r = QGraphTest._make_graph()
        z = g.add_operation(OpKind.OTHER, [x])
        g.replace_input(c, 0, z)
        self.assertEqual(g.inputs(c), [z, y])
        self.assertEqual(g.consumers(x), [(z, 0)])

    def test_replace_consumers(self):
        g, x, y, c, r = QGraphTest._make_graph()
        z = g.add_operation(OpKind.OTHER, [x])
        g.replace_consumers(x, z, exclude=[z])
        self.assertEqual(g.inputs(c), [z, y])
        self.assertEqual(g.inputs(z), [x])

    def test_remove_if_dangling(self):
        g, x, y, c, r = QGraphTest._make_graph()
        z = g.add_operation(OpKind.OTHER, [x])
        self.assertFalse(g.remove_if_dangling(c))
        self.assertFalse(g.remove_if_dangling(r))
        self.assertTrue(g.remove_if_dangling(z))
        self.assertNotIn(z, g)

    def test_ids_are_not_reused(self):
        g, x, y, c, r = QGraphTest._make_graph()
        z = g.add_operation(OpKind.OTHER, [x])
        g.remove_operation(z)
        w = g.add_operation(OpKind.OTHER, [x])
        self.assertGreater(w, z)

    def test_topological_order(self):
        g, x, y, c, r = QGraphTest._make_graph()
        self.assertEqual(g.topological_order(), [x, y, c, r])
        z = g.add_operation(OpKind.OTHER, [x])
        order = g.topological_order()
        self.assertEqual(order, g.topological_order())  # deterministic
        self.assertLess(order.index(x), order.index(z))
        self.assertEqual(g.parameters(), [x, y])
        self.assertEqual(g.results(), [r])

    def test_copy(self):
        g, x, y, c, r = QGraphTest._make_graph()
        h = g.copy()
        h.set_precision(c, ElementType.u8)
        self.assertIs(g.precision(c), ElementType.f32)
        self.assertEqual(h.add_operation(OpKind.OTHER, [x]), g.add_operation(OpKind.OTHER, [x]))

    def test_node_view(self):
        g, x, y, c, r = QGraphTest._make_graph()
        view = g.node(c)
        self.assertIs(view.kind, OpKind.CONCAT)
        self.assertEqual(view.attrs['axis'], 1)
        self.assertEqual(view.shape, PartialShape((1, 6, 9, 9)))


class ShapeInferenceTest(unittest.TestCase):

    def test_concat_dynamic(self):
        b = GraphBuilder()
        x = b.parameter((None, 4, None, None))
        y = b.parameter((None, 4, None, None))
        self.assertEqual(b.graph.shape(b.concat([x, y], axis=1)), PartialShape((None, 8, None, None)))
        z = b.parameter((None, None, 9, 9))
        self.assertEqual(b.graph.shape(b.concat([x, z], axis=1)), PartialShape((None, None, None, None)))

    def test_strided_slice(self):
        b = GraphBuilder()
        x = b.parameter((1, 6, 9, 9))
        s = b.strided_slice(x, begin=[0, 0, 0, 0], end=[0, -2, 0, 0], begin_mask=[1, 0, 1, 1], end_mask=[1, 0, 1, 1])
        self.assertEqual(b.graph.shape(s), PartialShape((1, 4, 9, 9)))
        s = b.strided_slice(x, begin=[0, 1, 0, 0], end=[0, 6, 0, 0], strides=[1, 2, 1, 1], begin_mask=[1, 0, 1, 1], end_mask=[1, 0, 1, 1])
        self.assertEqual(b.graph.shape(s), PartialShape((1, 3, 9, 9)))

    def test_max_pool(self):
        b = GraphBuilder()
        x = b.parameter((None, 4, 9, 9))
        self.assertEqual(b.graph.shape(b.max_pool(x, kernel=(2, 2), strides=(1, 1))), PartialShape((None, 4, 8, 8)))
        self.assertEqual(b.graph.shape(b.max_pool(x, kernel=(2, 2), strides=(2, 2))), PartialShape((None, 4, 4, 4)))
        self.assertEqual(b.graph.shape(b.max_pool(x, kernel=(2, 2), strides=(2, 2), rounding='ceil')), PartialShape((None, 4, 5, 5)))

    def test_convolution(self):
        b = GraphBuilder()
        x = b.parameter((1, 4, 9, 9))
        y = b.convolution(x, torch.ones(8, 4, 3, 3), pads_begin=(1, 1), pads_end=(1, 1))
        self.assertEqual(b.graph.shape(y), PartialShape((1, 8, 9, 9)))
