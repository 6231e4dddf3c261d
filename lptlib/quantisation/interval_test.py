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

from lptlib.graphs.types import ElementType, PartialShape
from lptlib.quantisation.interval import QuantisationInterval, resolve_intervalspec
from lptlib.quantisation.interval import get_zero_scale, code_offset, decompose, unify, requantise_bounds
from lptlib.quantisation.dequantisation import DequantisationOperations
from lptlib.utils import ConfigurationError


def _t(x):
    return torch.tensor(x, dtype=torch.float64)


class QuantisationIntervalTest(unittest.TestCase):

    def test_construction(self):
        interval = QuantisationInterval(256, 0.0, 2.55, 0.0, 2.55)
        self.assertEqual(interval.levels, 256)
        self.assertIsNone(interval.channels)
        self.assertEqual(interval.input_high.dtype, torch.float64)

        interval = QuantisationInterval(256, 0.0, _t([2.55, 25.5]), 0.0, _t([2.55, 25.5]))
        self.assertEqual(interval.channels, 2)

    def test_invalid_intervals(self):
        self.assertRaises(TypeError, lambda: QuantisationInterval(256.0, 0.0, 1.0, 0.0, 1.0))
        self.assertRaises(TypeError, lambda: QuantisationInterval(True, 0.0, 1.0, 0.0, 1.0))
        self.assertRaises(ConfigurationError, lambda: QuantisationInterval(1, 0.0, 1.0, 0.0, 1.0))
        self.assertRaises(ConfigurationError, lambda: QuantisationInterval(256, 1.0, 1.0, 0.0, 1.0))
        self.assertRaises(ConfigurationError, lambda: QuantisationInterval(256, 0.0, _t([1.0, 2.0]), 0.0, _t([1.0, 2.0, 3.0])))

    def test_validate(self):
        interval = QuantisationInterval(256, 0.0, _t([1.0, 2.0, 3.0]), 0.0, _t([1.0, 2.0, 3.0]))
        interval.validate(PartialShape((1, 3, 9, 9)))
        interval.validate(PartialShape((None, None, 9, 9)))
        self.assertRaises(ConfigurationError, lambda: interval.validate(PartialShape((1, 4, 9, 9))))
        self.assertRaises(ConfigurationError, lambda: interval.validate(PartialShape((3,))))

    def test_intervalspec(self):
        interval = resolve_intervalspec({'levels': 256, 'input_low': 0.0, 'input_high': 2.55})
        self.assertTrue(torch.equal(interval.output_high, interval.input_high))
        self.assertIs(resolve_intervalspec(interval), interval)
        self.assertRaises(ValueError, lambda: resolve_intervalspec({'levels': 256, 'input_low': 0.0}))
        self.assertRaises(TypeError, lambda: resolve_intervalspec([256, 0.0, 2.55]))


class ZeroScaleTest(unittest.TestCase):

    def test_unsigned_range(self):
        zero, scale = get_zero_scale(_t(0.0), _t(2.55), 256)
        self.assertEqual(float(zero), 0.0)
        self.assertAlmostEqual(float(scale), 0.01)

    def test_symmetric_range(self):
        zero, scale = get_zero_scale(_t(-1.28), _t(1.27), 256)
        self.assertEqual(float(zero), 128.0)
        self.assertAlmostEqual(float(scale), 0.01)

    def test_inner_zero_rederives_scale(self):
        # the top code must represent the upper bound exactly
        zero, scale = get_zero_scale(_t(-1.28), _t(2.55), 256)
        self.assertEqual(float(zero), 85.0)
        self.assertAlmostEqual(float(scale), 0.015)
        self.assertAlmostEqual(float((255 - zero) * scale), 2.55)

    def test_inner_zero_near_top_code(self):
        # pinning the upper bound would leave the lower bound out of the code range
        for low, high in [(-1.0, 0.01), (-2.55, 0.05)]:
            with self.subTest(low=low, high=high):
                zero, scale = get_zero_scale(_t(low), _t(high), 256)
                self.assertAlmostEqual(float(scale), (high - low) / 255)
                self.assertEqual(float(zero), round(-low * 255 / (high - low)))
                self.assertLessEqual(abs(float(-zero * scale) - low), float(scale) / 2)

    def test_per_channel(self):
        zero, scale = get_zero_scale(_t([0.0, 0.0, -1.28]), _t([2.55, 25.5, 1.27]), 256)
        self.assertTrue(torch.equal(zero, _t([0.0, 0.0, 128.0])))
        self.assertTrue(torch.allclose(scale, _t([0.01, 0.1, 0.01])))

    def test_degenerate_range(self):
        self.assertRaises(ConfigurationError, lambda: get_zero_scale(_t(1.0), _t(1.0), 256))
        self.assertRaises(ConfigurationError, lambda: get_zero_scale(_t([0.0, 2.0]), _t([1.0, 1.0]), 256))

    def test_code_offset(self):
        self.assertEqual(code_offset(ElementType.u8), 0)
        self.assertEqual(code_offset(ElementType.i8), -128)
        self.assertEqual(code_offset(ElementType.f32), 0)


class DecomposeTest(unittest.TestCase):

    def test_unsigned(self):
        interval, deq = decompose(QuantisationInterval(256, 0.0, 2.55, 0.0, 2.55), ElementType.u8)
        self.assertEqual(float(interval.output_low), 0.0)
        self.assertEqual(float(interval.output_high), 255.0)
        self.assertAlmostEqual(float(interval.input_high), 2.55)
        self.assertIs(deq.convert, ElementType.f32)
        self.assertIsNone(deq.subtract)
        self.assertTrue(torch.allclose(deq.multiply, _t([0.01])))

    def test_zero_point(self):
        interval, deq = decompose(QuantisationInterval(256, -1.28, 1.27, -1.28, 1.27), ElementType.u8)
        self.assertEqual(float(interval.output_low), 0.0)
        self.assertEqual(float(interval.output_high), 255.0)
        self.assertTrue(torch.equal(deq.subtract, _t([128.0])))

    def test_signed(self):
        interval, deq = decompose(QuantisationInterval(256, -1.28, 1.27, -1.28, 1.27), ElementType.i8)
        self.assertEqual(float(interval.output_low), -128.0)
        self.assertEqual(float(interval.output_high), 127.0)
        self.assertIsNone(deq.subtract)

        interval, deq = decompose(QuantisationInterval(256, 0.0, 2.55, 0.0, 2.55), ElementType.i8)
        self.assertEqual(float(interval.output_low), -128.0)
        self.assertEqual(float(interval.output_high), 127.0)
        self.assertTrue(torch.equal(deq.subtract, _t([-128.0])))

    def test_without_convert(self):
        _, deq = decompose(QuantisationInterval(256, 0.0, 2.55, 0.0, 2.55), ElementType.u8, deq_precision=None)
        self.assertIsNone(deq.convert)

    def test_per_channel(self):
        high = _t([2.55, 25.5]).reshape(1, 2, 1, 1)
        interval, deq = decompose(QuantisationInterval(256, torch.zeros(1, 2, 1, 1), high, torch.zeros(1, 2, 1, 1), high), ElementType.u8)
        self.assertEqual(deq.channels, 2)
        self.assertTrue(torch.allclose(deq.multiply, _t([0.01, 0.1])))
        self.assertEqual(tuple(interval.output_high.shape), (1, 2, 1, 1))
        self.assertTrue(torch.equal(interval.output_high.reshape(-1), _t([255.0, 255.0])))

    def test_per_channel_output_only(self):
        # scalar output bounds against per-channel input bounds
        interval = QuantisationInterval(256, torch.zeros(1, 2, 1, 1), _t([1.0, 2.0]).reshape(1, 2, 1, 1), 0.0, 2.55)
        interval, deq = decompose(interval, ElementType.u8)
        self.assertTrue(deq.is_per_tensor)
        self.assertEqual(float(interval.output_high), 255.0)


class UnifyTest(unittest.TestCase):

    def test_unify(self):
        intervals = [QuantisationInterval(256, 0.0, 2.55, 0.0, 2.55), QuantisationInterval(256, -1.28, 1.27, -1.28, 1.27)]
        zero, scale = unify(intervals)
        self.assertEqual(float(zero), 85.0)
        self.assertAlmostEqual(float(scale), 0.015)

    def test_unify_near_top_code(self):
        intervals = [QuantisationInterval(256, -2.55, 0.0, -2.55, 0.0), QuantisationInterval(256, 0.0, 0.05, 0.0, 0.05)]
        zero, scale = unify(intervals)
        self.assertEqual(float(zero), 250.0)
        self.assertAlmostEqual(float(scale), 2.6 / 255)

    def test_unify_per_channel(self):
        intervals = [QuantisationInterval(256, 0.0, _t([2.55, 25.5]), 0.0, _t([2.55, 25.5]))]
        zero, scale = unify(intervals)
        self.assertEqual(zero.numel(), 1)
        self.assertAlmostEqual(float(scale), 0.1)

    def test_unify_errors(self):
        self.assertRaises(ValueError, lambda: unify([]))
        intervals = [QuantisationInterval(256, 0.0, 2.55, 0.0, 2.55), QuantisationInterval(16, 0.0, 1.5, 0.0, 1.5)]
        self.assertRaises(ConfigurationError, lambda: unify(intervals))


class RequantiseTest(unittest.TestCase):

    def test_requantise(self):
        new = DequantisationOperations(ElementType.f32, subtract=85.0, multiply=0.015)

        old = DequantisationOperations(ElementType.f32, multiply=0.01)
        low, high = requantise_bounds(_t(0.0), _t(255.0), old, new, ElementType.u8)
        self.assertEqual(float(low), 85.0)
        self.assertEqual(float(high), 255.0)

        old = DequantisationOperations(ElementType.f32, subtract=128.0, multiply=0.01)
        low, high = requantise_bounds(_t(0.0), _t(255.0), old, new, ElementType.u8)
        self.assertEqual(float(low), 0.0)
        self.assertEqual(float(high), 170.0)

    def test_requantise_saturates(self):
        old = DequantisationOperations(ElementType.f32, multiply=0.1)
        new = DequantisationOperations(ElementType.f32, multiply=0.01)
        low, high = requantise_bounds(_t(0.0), _t(255.0), old, new, ElementType.u8)
        self.assertEqual(float(high), 255.0)

    def test_requantise_per_channel(self):
        old = DequantisationOperations(ElementType.f32, multiply=[0.01, 0.1])
        new = DequantisationOperations(ElementType.f32, multiply=0.1)
        low, high = requantise_bounds(_t(0.0), _t(255.0), old, new, ElementType.u8)
        self.assertEqual(tuple(high.shape), (1, 2, 1, 1))
        self.assertTrue(torch.equal(high.reshape(-1), _t([26.0, 255.0])))
