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

from typing import NamedTuple, Optional, Tuple

from lptlib.graphs.types import OpKind, ElementType
from lptlib.restrictions import PrecisionsRestriction, PrecisionsRestrictions


class TransformationParams(NamedTuple):
    """Parameters shared by all the low-precision transformations.

    Attributes:
        update_precisions: whether decomposed ``FakeQuantize`` operations
            (and the operations that process their outputs) should be tagged
            with integer precisions; when ``False``, the integer codes are
            kept in real-valued tensors and the ``Convert`` operations are
            omitted.
        precisions_on_activations: the precisions that convolutions accept
            on their data input.
        precisions_on_weights: the precisions that convolutions accept on
            their weights.
        deq_precision: the real type that integer data is converted to
            before being dequantised.
        support_asymmetric_quantisation: whether dequantisations can
            include zero-points.

    """
    update_precisions:               bool = True
    precisions_on_activations:       Tuple[ElementType, ...] = (ElementType.u8, ElementType.i8)
    precisions_on_weights:           Tuple[ElementType, ...] = (ElementType.i8,)
    deq_precision:                   ElementType = ElementType.f32
    support_asymmetric_quantisation: bool = True

    @property
    def convert_precision(self) -> Optional[ElementType]:
        return self.deq_precision if self.update_precisions else None

    def set_update_precisions(self, update_precisions: bool) -> TransformationParams:
        return self._replace(update_precisions=update_precisions)

    def set_precisions_on_activations(self, *precisions: ElementType) -> TransformationParams:
        return self._replace(precisions_on_activations=tuple(precisions))

    def set_support_asymmetric_quantisation(self, support_asymmetric_quantisation: bool) -> TransformationParams:
        return self._replace(support_asymmetric_quantisation=support_asymmetric_quantisation)

    def default_precisions_restrictions(self) -> PrecisionsRestrictions:
        """The restrictions that convolutions impose on their inputs."""
        return PrecisionsRestrictions([
            PrecisionsRestriction.create(OpKind.CONVOLUTION, {
                0: list(self.precisions_on_activations),
                1: list(self.precisions_on_weights),
            }),
        ])


def create_params_u8i8() -> TransformationParams:
    return TransformationParams(precisions_on_activations=(ElementType.u8,), precisions_on_weights=(ElementType.i8,))


def create_params_i8i8() -> TransformationParams:
    return TransformationParams(precisions_on_activations=(ElementType.i8,), precisions_on_weights=(ElementType.i8,))


def create_params_u8u8() -> TransformationParams:
    return TransformationParams(precisions_on_activations=(ElementType.u8,), precisions_on_weights=(ElementType.u8,))
