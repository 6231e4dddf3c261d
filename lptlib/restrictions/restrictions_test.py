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

from lptlib.graphs import OpKind, ElementType, GraphBuilder
from lptlib.quantisation import DequantisationOperations
from lptlib.restrictions import PrecisionsRestriction, PrecisionsRestrictions, resolve_precisionsrestrictionsspec
from lptlib.restrictions import QuantisationGranularityRestriction, GranularityRestrictions, resolve_granularityrestrictionsspec
from lptlib.restrictions import allowed_precisions, select_precision, requires_per_tensor
from lptlib.utils import PrecisionConflict


_CONVOLUTION_RESTRICTIONS = {'Convolution': {0: ['u8', 'i8'], 1: ['i8']}}


class PrecisionsRestrictionsTest(unittest.TestCase):

    def test_dict_spec(self):
        catalog = resolve_precisionsrestrictionsspec(_CONVOLUTION_RESTRICTIONS)
        self.assertEqual(len(catalog), 1)
        self.assertEqual(catalog.allowed(OpKind.CONVOLUTION, 0), (ElementType.u8, ElementType.i8))
        self.assertEqual(catalog.allowed(OpKind.CONVOLUTION, 1), (ElementType.i8,))
        self.assertIsNone(catalog.allowed(OpKind.CONVOLUTION, 2))
        self.assertIsNone(catalog.allowed(OpKind.MAX_POOL, 0))

    def test_first_restriction_wins(self):
        catalog = resolve_precisionsrestrictionsspec([
            PrecisionsRestriction.create('Convolution', {0: ['u8']}),
            PrecisionsRestriction.create('Convolution', {0: ['i8'], 1: ['i8']}),
        ])
        self.assertEqual(catalog.allowed(OpKind.CONVOLUTION, 0), (ElementType.u8,))
        self.assertEqual(catalog.allowed(OpKind.CONVOLUTION, 1), (ElementType.i8,))

    def test_other_specs(self):
        catalog = PrecisionsRestrictions()
        self.assertIs(resolve_precisionsrestrictionsspec(catalog), catalog)
        self.assertEqual(len(resolve_precisionsrestrictionsspec(None)), 0)
        self.assertRaises(TypeError, lambda: resolve_precisionsrestrictionsspec('Convolution'))
        self.assertRaises(TypeError, lambda: PrecisionsRestrictions([OpKind.CONVOLUTION]))

    def test_invalid_restriction(self):
        self.assertRaises(TypeError, lambda: PrecisionsRestriction.create('Convolution', [['u8']]))
        self.assertRaises(ValueError, lambda: PrecisionsRestriction.create('Convolution', {-1: ['u8']}))
        self.assertRaises(ValueError, lambda: PrecisionsRestriction.create('Convolution', {0: ['q8']}))
        self.assertRaises(ValueError, lambda: PrecisionsRestriction.create('Softmax', {0: ['u8']}))


class GranularityRestrictionsTest(unittest.TestCase):

    def test_set_spec(self):
        catalog = resolve_granularityrestrictionsspec({'MaxPool', OpKind.CONCAT})
        self.assertEqual([r.kind for r in catalog.restrictions], [OpKind.CONCAT, OpKind.MAX_POOL])
        self.assertTrue(catalog.is_per_tensor(OpKind.CONCAT))
        self.assertTrue(catalog.is_per_tensor(OpKind.CONCAT, 1))
        self.assertFalse(catalog.is_per_tensor(OpKind.STRIDED_SLICE))

    def test_ports(self):
        catalog = resolve_granularityrestrictionsspec({'Convolution': [0]})
        self.assertTrue(catalog.is_per_tensor(OpKind.CONVOLUTION, 0))
        self.assertFalse(catalog.is_per_tensor(OpKind.CONVOLUTION, 1))

    def test_other_specs(self):
        catalog = resolve_granularityrestrictionsspec([QuantisationGranularityRestriction.create('Concat'), 'MaxPool'])
        self.assertEqual(len(catalog), 2)
        self.assertEqual(len(resolve_granularityrestrictionsspec(None)), 0)
        self.assertRaises(TypeError, lambda: resolve_granularityrestrictionsspec('Concat'))
        self.assertRaises(TypeError, lambda: GranularityRestrictions([OpKind.CONCAT]))


class PolicyTest(unittest.TestCase):

    @staticmethod
    def _make_graph():
        """Two quantised branches feeding a convolution and an opaque
        operator, through a ``Concat`` and a dequantisation.
        """
        b = GraphBuilder()
        x1 = b.parameter((1, 2, 4, 4))
        x2 = b.parameter((1, 2, 4, 4))
        fq1 = b.fake_quantize(x1, {'levels': 256, 'input_low': 0.0, 'input_high': 2.55})
        fq2 = b.fake_quantize(x2, {'levels': 256, 'input_low': 0.0, 'input_high': 2.55})
        c = b.concat([fq1, fq2])
        b.result(b.convolution(c, torch.ones(3, 4, 1, 1)))
        d = b.dequantisation(fq2, DequantisationOperations(ElementType.f32, multiply=0.5))
        b.result(b.other([d]))
        return b.graph, fq1, fq2, c

    def test_unrestricted(self):
        g, fq1, fq2, c = PolicyTest._make_graph()
        self.assertIsNone(allowed_precisions(g, fq1, PrecisionsRestrictions()))

    def test_through_preserving_operations(self):
        g, fq1, fq2, c = PolicyTest._make_graph()
        catalog = resolve_precisionsrestrictionsspec(_CONVOLUTION_RESTRICTIONS)
        self.assertEqual(allowed_precisions(g, fq1, catalog), (ElementType.u8, ElementType.i8))
        self.assertEqual(allowed_precisions(g, c, catalog), (ElementType.u8, ElementType.i8))

    def test_intersection(self):
        g, fq1, fq2, c = PolicyTest._make_graph()
        catalog = resolve_precisionsrestrictionsspec({'Convolution': {0: ['u8', 'i8']}, 'Other': {0: ['i8', 'i16']}})
        self.assertEqual(allowed_precisions(g, fq1, catalog), (ElementType.u8, ElementType.i8))
        self.assertEqual(allowed_precisions(g, fq2, catalog), (ElementType.i8,))

        catalog = resolve_precisionsrestrictionsspec({'Convolution': {0: ['u8']}, 'Other': {0: ['i8']}})
        self.assertEqual(allowed_precisions(g, fq2, catalog), ())

    def test_select_precision(self):
        self.assertIs(select_precision(256, None), ElementType.u8)
        self.assertIs(select_precision(1024, None), ElementType.u16)
        self.assertIs(select_precision(256, (ElementType.u8, ElementType.i8)), ElementType.u8)
        self.assertIs(select_precision(255, (ElementType.i8,)), ElementType.i8)
        # the first allowed type which is wide enough
        self.assertIs(select_precision(1024, (ElementType.u8, ElementType.i16)), ElementType.i16)
        self.assertRaises(PrecisionConflict, lambda: select_precision(256, ()))
        self.assertRaises(PrecisionConflict, lambda: select_precision(1024, (ElementType.u8, ElementType.i8)))

    def test_requires_per_tensor(self):
        g, fq1, fq2, c = PolicyTest._make_graph()
        self.assertFalse(requires_per_tensor(g, c, resolve_granularityrestrictionsspec(None)))
        self.assertTrue(requires_per_tensor(g, c, resolve_granularityrestrictionsspec({'Concat'})))
        self.assertTrue(requires_per_tensor(g, c, resolve_granularityrestrictionsspec({'Convolution': [0]})))
        self.assertFalse(requires_per_tensor(g, c, resolve_granularityrestrictionsspec({'Convolution': [1]})))
        self.assertTrue(requires_per_tensor(g, fq2, resolve_granularityrestrictionsspec(['Other'])))
