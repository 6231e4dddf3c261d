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

from enum import Enum
from typing import NamedTuple, Dict, List, Optional, Set, Tuple, Union

from lptlib.graphs.types import OpKind, OpKindSpecType
from lptlib.graphs.types import resolve_opkindspec
from lptlib.utils import lpt_err_header


class QuantisationGranularityRestriction(NamedTuple):
    """Operators of this kind only accept per-tensor dequantisation on the
    given input ports (all of them when ``ports`` is ``None``).
    """
    kind:  OpKind
    ports: Optional[Tuple[int, ...]] = None

    @staticmethod
    def create(kind: OpKindSpecType, ports: Optional[List[int]] = None) -> QuantisationGranularityRestriction:
        return QuantisationGranularityRestriction(kind=resolve_opkindspec(kind), ports=None if ports is None else tuple(ports))

    def matches(self, kind: OpKind, port: Optional[int] = None) -> bool:
        return (self.kind is kind) and ((self.ports is None) or (port is None) or (port in self.ports))


class GranularityRestrictions(object):

    def __init__(self, restrictions: Optional[List[QuantisationGranularityRestriction]] = None):

        restrictions = [] if restrictions is None else list(restrictions)
        if not all(isinstance(r, QuantisationGranularityRestriction) for r in restrictions):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + "expects a list of QuantisationGranularityRestriction objects.")

        super(GranularityRestrictions, self).__init__()
        self._restrictions = restrictions

    @property
    def restrictions(self) -> List[QuantisationGranularityRestriction]:
        return list(self._restrictions)

    def is_per_tensor(self, kind: OpKind, port: Optional[int] = None) -> bool:
        return any(r.matches(kind, port) for r in self._restrictions)

    def __len__(self) -> int:
        return len(self._restrictions)


GranularityRestrictionsSpecType = Union[GranularityRestrictions, List[QuantisationGranularityRestriction], Set[OpKindSpecType], Dict[OpKindSpecType, Optional[List[int]]], None]


def resolve_granularityrestrictions_granularityrestrictionsspec(spec: GranularityRestrictions) -> GranularityRestrictions:
    return spec


def resolve_list_granularityrestrictionsspec(spec: List[Union[QuantisationGranularityRestriction, OpKindSpecType]]) -> GranularityRestrictions:
    return GranularityRestrictions([r if isinstance(r, QuantisationGranularityRestriction) else QuantisationGranularityRestriction.create(r) for r in spec])


def resolve_set_granularityrestrictionsspec(spec: Set[OpKindSpecType]) -> GranularityRestrictions:
    # sets are unordered: sort the kinds to obtain a deterministic catalog
    kinds = sorted({resolve_opkindspec(k) for k in spec}, key=lambda k: k.value)
    return GranularityRestrictions([QuantisationGranularityRestriction.create(k) for k in kinds])


def resolve_dict_granularityrestrictionsspec(spec: Dict[OpKindSpecType, Optional[List[int]]]) -> GranularityRestrictions:
    return GranularityRestrictions([QuantisationGranularityRestriction.create(kind, ports) for kind, ports in spec.items()])


def resolve_nonetype_granularityrestrictionsspec(spec: None) -> GranularityRestrictions:
    return GranularityRestrictions()


GranularityRestrictionsSpecSolvers = Enum('GranularityRestrictionsSpecSolvers',
                                          [
                                              ('GRANULARITYRESTRICTIONS', resolve_granularityrestrictions_granularityrestrictionsspec),
                                              ('LIST',                    resolve_list_granularityrestrictionsspec),
                                              ('SET',                     resolve_set_granularityrestrictionsspec),
                                              ('DICT',                    resolve_dict_granularityrestrictionsspec),
                                              ('NONETYPE',                resolve_nonetype_granularityrestrictionsspec),
                                          ])


def resolve_granularityrestrictionsspec(spec: GranularityRestrictionsSpecType) -> GranularityRestrictions:
    spec_class = spec.__class__.__name__.upper()

    try:
        solver = getattr(GranularityRestrictionsSpecSolvers, spec_class)
    except AttributeError:
        raise TypeError(lpt_err_header() + f"unsupported GranularityRestrictions specification type: {spec_class}.")

    return solver(spec)
