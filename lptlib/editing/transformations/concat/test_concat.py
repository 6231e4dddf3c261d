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

from lptlib.graphs import OpKind, ElementType, GraphBuilder, execute
from lptlib.quantisation.network import get_dequantisation
from lptlib.restrictions import resolve_precisionsrestrictionsspec, resolve_granularityrestrictionsspec
from lptlib.editing.editors import Context
from ..fakequantizedecomposition import FakeQuantizeDecomposition
from .rewriter import ConcatTransformation


def _make_graph(interval1, interval2, shape=(1, 2, 9, 9)):
    b = GraphBuilder()
    x1 = b.parameter(shape, name='x1')
    x2 = b.parameter(shape, name='x2')
    fq1 = b.fake_quantize(x1, interval1)
    fq2 = b.fake_quantize(x2, interval2)
    c = b.concat([fq1, fq2], axis=1)
    b.result(c, name='y')
    return b.graph, fq1, fq2, c


def _interval(low: float, high: float, levels: int = 256):
    return {'levels': levels, 'input_low': low, 'input_high': high}


def _inputs(shape=(1, 2, 9, 9)):
    torch.manual_seed(0)
    return {'x1': torch.rand(*shape, dtype=torch.float64) * 3.0 - 1.5,
            'x2': torch.rand(*shape, dtype=torch.float64) * 3.0 - 1.5}


def _decompose(g, fqs, context: Context = Context()):
    for fq in fqs:
        FakeQuantizeDecomposition().rewrite(g, fq, context)


class ConcatTransformationTest(unittest.TestCase):

    def test_per_channel(self):
        g, fq1, fq2, c = _make_graph(_interval(0.0, 2.55), _interval(0.0, 25.5))
        inputs = _inputs()
        expected = execute(g, inputs)['y']

        _decompose(g, [fq1, fq2])
        self.assertTrue(ConcatTransformation().rewrite(g, c, Context()))

        self.assertEqual(g.inputs(c), [fq1, fq2])
        self.assertIs(g.precision(c), ElementType.u8)
        chain = get_dequantisation(g, g.results()[0], 0)
        self.assertEqual(chain.data, c)
        self.assertTrue(torch.allclose(chain.operations.multiply, torch.tensor([0.01, 0.01, 0.1, 0.1], dtype=torch.float64)))
        self.assertEqual(tuple(g.attrs(chain.multiply)['value'].shape), (1, 4, 1, 1))
        self.assertTrue(torch.allclose(execute(g, inputs)['y'], expected, atol=1e-5))

    def test_uniform_branches(self):
        g, fq1, fq2, c = _make_graph(_interval(0.0, 2.55), _interval(0.0, 2.55))
        _decompose(g, [fq1, fq2])
        self.assertTrue(ConcatTransformation().rewrite(g, c, Context()))
        chain = get_dequantisation(g, g.results()[0], 0)
        self.assertTrue(chain.operations.is_per_tensor)
        self.assertEqual(tuple(g.attrs(chain.multiply)['value'].shape), ())

    def test_zero_points(self):
        g, fq1, fq2, c = _make_graph(_interval(0.0, 2.55), _interval(-1.28, 1.27))
        inputs = _inputs()
        expected = execute(g, inputs)['y']

        _decompose(g, [fq1, fq2])
        self.assertTrue(ConcatTransformation().rewrite(g, c, Context()))
        chain = get_dequantisation(g, g.results()[0], 0)
        self.assertTrue(torch.equal(chain.operations.subtract, torch.tensor([0.0, 0.0, 128.0, 128.0], dtype=torch.float64)))
        self.assertTrue(torch.allclose(execute(g, inputs)['y'], expected, atol=1e-5))

    def test_per_tensor(self):
        g, fq1, fq2, c = _make_graph(_interval(0.0, 2.55), _interval(-1.28, 1.27))
        inputs = _inputs()
        expected = execute(g, inputs)['y']

        context = Context(granularity=resolve_granularityrestrictionsspec({'Concat'}))
        _decompose(g, [fq1, fq2], context)
        self.assertTrue(ConcatTransformation().rewrite(g, c, context))

        interval1, interval2 = g.attrs(fq1)['interval'], g.attrs(fq2)['interval']
        self.assertEqual((float(interval1.output_low), float(interval1.output_high)), (85.0, 255.0))
        self.assertEqual((float(interval2.output_low), float(interval2.output_high)), (0.0, 170.0))

        chain = get_dequantisation(g, g.results()[0], 0)
        self.assertEqual(float(g.attrs(chain.subtract)['value']), 85.0)
        self.assertAlmostEqual(float(g.attrs(chain.multiply)['value']), 0.015)
        # the shared codes are coarser than those of the first branch
        self.assertTrue(torch.allclose(execute(g, inputs)['y'], expected, atol=0.016))

    def test_per_tensor_zero_point_near_top_code(self):
        # the union of the branches is [-2.55, 0.05]
        g, fq1, fq2, c = _make_graph(_interval(-2.55, 0.0), _interval(0.0, 0.05))
        torch.manual_seed(0)
        inputs = {'x1': torch.rand(1, 2, 9, 9, dtype=torch.float64) * 3.0 - 2.8,
                  'x2': torch.rand(1, 2, 9, 9, dtype=torch.float64) * 0.07 - 0.01}
        expected = execute(g, inputs)['y']

        context = Context(granularity=resolve_granularityrestrictionsspec({'Concat'}))
        _decompose(g, [fq1, fq2], context)
        self.assertTrue(ConcatTransformation().rewrite(g, c, context))

        quantum = 2.6 / 255
        chain = get_dequantisation(g, g.results()[0], 0)
        self.assertEqual(float(g.attrs(chain.subtract)['value']), 250.0)
        self.assertAlmostEqual(float(g.attrs(chain.multiply)['value']), quantum)
        interval1, interval2 = g.attrs(fq1)['interval'], g.attrs(fq2)['interval']
        self.assertEqual((float(interval1.output_low), float(interval1.output_high)), (0.0, 250.0))
        self.assertEqual((float(interval2.output_low), float(interval2.output_high)), (250.0, 255.0))
        self.assertTrue(torch.allclose(execute(g, inputs)['y'], expected, rtol=0.0, atol=quantum))

    def test_mixed_precisions(self):
        g, fq1, fq2, c = _make_graph(_interval(-1.28, 1.27), _interval(0.0, 2.55))
        inputs = _inputs()
        expected = execute(g, inputs)['y']

        # quantise the first branch onto signed codes
        FakeQuantizeDecomposition().rewrite(g, fq1, Context(precisions=resolve_precisionsrestrictionsspec({'Result': {0: ['i8']}})))
        FakeQuantizeDecomposition().rewrite(g, fq2, Context())
        self.assertIs(g.precision(fq1), ElementType.i8)

        self.assertTrue(ConcatTransformation().rewrite(g, c, Context()))
        self.assertIs(g.precision(fq1), ElementType.u8)
        self.assertIs(g.precision(c), ElementType.u8)
        interval1 = g.attrs(fq1)['interval']
        self.assertEqual((float(interval1.output_low), float(interval1.output_high)), (0.0, 255.0))
        self.assertTrue(torch.allclose(execute(g, inputs)['y'], expected, atol=1e-5))

    def test_requantisation_blocked(self):
        b = GraphBuilder()
        x1, x2, x3 = (b.parameter((1, 2, 9, 9)) for _ in range(3))
        fq1 = b.fake_quantize(x1, _interval(0.0, 2.55))
        fq2 = b.fake_quantize(x2, _interval(-1.28, 1.27))
        fq3 = b.fake_quantize(x3, _interval(-1.28, 1.27))
        c1 = b.concat([fq1, fq2])
        c2 = b.concat([fq1, fq3])
        b.result(c1)
        b.result(c2)
        g = b.graph

        context = Context(granularity=resolve_granularityrestrictionsspec({'Concat'}))
        _decompose(g, [fq1, fq2, fq3], context)
        self.assertTrue(ConcatTransformation().rewrite(g, c1, context))
        # the codes of the first branch now reach another `Concat`, which must keep reading them unchanged
        self.assertFalse(ConcatTransformation().rewrite(g, c2, context))
        self.assertTrue(ConcatTransformation().rewrite(g, c2, Context()))

    def test_not_applicable(self):
        # one input is real-valued
        b = GraphBuilder()
        x1 = b.parameter((1, 2, 9, 9))
        fq = b.fake_quantize(b.parameter((1, 2, 9, 9)), _interval(0.0, 2.55))
        c = b.concat([x1, fq])
        b.result(c)
        _decompose(b.graph, [fq])
        self.assertFalse(ConcatTransformation().rewrite(b.graph, c, Context()))

        # dynamic channels
        g, fq1, fq2, c = _make_graph(_interval(0.0, 2.55), _interval(0.0, 25.5), shape=(None, None, 9, 9))
        _decompose(g, [fq1, fq2])
        self.assertFalse(ConcatTransformation().rewrite(g, c, Context()))

        # different numbers of levels cannot share a per-tensor dequantisation
        g, fq1, fq2, c = _make_graph(_interval(0.0, 2.55), _interval(0.0, 2.55, levels=16))
        context = Context(granularity=resolve_granularityrestrictionsspec({'Concat'}))
        _decompose(g, [fq1, fq2], context)
        self.assertFalse(ConcatTransformation().rewrite(g, c, context))

    def test_dynamic_batch(self):
        g, fq1, fq2, c = _make_graph(_interval(0.0, 2.55), _interval(0.0, 25.5), shape=(None, 2, None, None))
        inputs = _inputs(shape=(3, 2, 5, 5))
        expected = execute(g, inputs)['y']
        _decompose(g, [fq1, fq2])
        self.assertTrue(ConcatTransformation().rewrite(g, c, Context()))
        self.assertIs(g.kind(g.input(g.results()[0], 0)), OpKind.MULTIPLY)
        self.assertTrue(torch.allclose(execute(g, inputs)['y'], expected, atol=1e-5))
