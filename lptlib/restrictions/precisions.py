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
from typing import NamedTuple, Dict, List, Optional, Tuple, Union

from lptlib.graphs.types import OpKind, OpKindSpecType, ElementType, ElementTypeSpecType
from lptlib.graphs.types import resolve_opkindspec, resolve_elementtypespec
from lptlib.utils import lpt_err_header


class PrecisionsRestriction(NamedTuple):
    """The element types that an operator accepts on some of its input
    ports; ports that are not listed are unrestricted.
    """
    kind:            OpKind
    port_precisions: Dict[int, Tuple[ElementType, ...]]

    @staticmethod
    def create(kind: OpKindSpecType, port_precisions: Dict[int, List[ElementTypeSpecType]]) -> PrecisionsRestriction:

        if not isinstance(port_precisions, dict):
            raise TypeError(lpt_err_header(obj_name='PrecisionsRestriction') + f"expects a dictionary mapping ports to precisions, but received {type(port_precisions)}.")
        if not all(isinstance(port, int) and port >= 0 for port in port_precisions.keys()):
            raise ValueError(lpt_err_header(obj_name='PrecisionsRestriction') + f"ports must be non-negative integers, but received {list(port_precisions.keys())}.")

        return PrecisionsRestriction(kind=resolve_opkindspec(kind),
                                     port_precisions={port: tuple(resolve_elementtypespec(t) for t in types) for port, types in port_precisions.items()})


class PrecisionsRestrictions(object):
    """An ordered catalog of ``PrecisionsRestriction``s.

    When several restrictions concern the same operator kind, the first one
    wins for the ports it lists.
    """

    def __init__(self, restrictions: Optional[List[PrecisionsRestriction]] = None):

        restrictions = [] if restrictions is None else list(restrictions)
        if not all(isinstance(r, PrecisionsRestriction) for r in restrictions):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + "expects a list of PrecisionsRestriction objects.")

        super(PrecisionsRestrictions, self).__init__()
        self._restrictions = restrictions

    @property
    def restrictions(self) -> List[PrecisionsRestriction]:
        return list(self._restrictions)

    def allowed(self, kind: OpKind, port: int) -> Optional[Tuple[ElementType, ...]]:
        """Return the precisions allowed on the given input port, or ``None``
        if the port is unrestricted.
        """
        for r in self._restrictions:
            if (r.kind is kind) and (port in r.port_precisions):
                return r.port_precisions[port]
        return None

    def __len__(self) -> int:
        return len(self._restrictions)


# -- SPECIFICATION RESOLUTION -- #

PrecisionsRestrictionsSpecType = Union[PrecisionsRestrictions, List[PrecisionsRestriction], Dict[OpKindSpecType, Dict[int, List[ElementTypeSpecType]]], None]


def resolve_precisionsrestrictions_precisionsrestrictionsspec(spec: PrecisionsRestrictions) -> PrecisionsRestrictions:
    return spec


def resolve_list_precisionsrestrictionsspec(spec: List[PrecisionsRestriction]) -> PrecisionsRestrictions:
    return PrecisionsRestrictions(spec)


def resolve_dict_precisionsrestrictionsspec(spec: Dict[OpKindSpecType, Dict[int, List[ElementTypeSpecType]]]) -> PrecisionsRestrictions:
    """Map a dictionary such as ``{'Convolution': {0: ['u8', 'i8'], 1: ['i8']}}``
    to a catalog.
    """
    return PrecisionsRestrictions([PrecisionsRestriction.create(kind, port_precisions) for kind, port_precisions in spec.items()])


def resolve_nonetype_precisionsrestrictionsspec(spec: None) -> PrecisionsRestrictions:
    return PrecisionsRestrictions()


PrecisionsRestrictionsSpecSolvers = Enum('PrecisionsRestrictionsSpecSolvers',
                                         [
                                             ('PRECISIONSRESTRICTIONS', resolve_precisionsrestrictions_precisionsrestrictionsspec),
                                             ('LIST',                   resolve_list_precisionsrestrictionsspec),
                                             ('DICT',                   resolve_dict_precisionsrestrictionsspec),
                                             ('NONETYPE',               resolve_nonetype_precisionsrestrictionsspec),
                                         ])


def resolve_precisionsrestrictionsspec(spec: PrecisionsRestrictionsSpecType) -> PrecisionsRestrictions:
    spec_class = spec.__class__.__name__.upper()

    try:
        solver = getattr(PrecisionsRestrictionsSpecSolvers, spec_class)
    except AttributeError:
        raise TypeError(lpt_err_header() + f"unsupported PrecisionsRestrictions specification type: {spec_class}.")

    return solver(spec)
