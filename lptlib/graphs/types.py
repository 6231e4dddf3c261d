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

from enum import Enum, unique
from typing import NamedTuple, Optional, Tuple, List, Union

from lptlib.utils import lpt_err_header
from lptlib.utils import ConfigurationError


# -- OPERATOR KINDS -- #

@unique
class OpKind(Enum):
    FAKE_QUANTIZE = 'FakeQuantize'
    CONCAT        = 'Concat'
    STRIDED_SLICE = 'StridedSlice'
    MAX_POOL      = 'MaxPool'
    CONVERT       = 'Convert'
    SUBTRACT      = 'Subtract'
    MULTIPLY      = 'Multiply'
    CONVOLUTION   = 'Convolution'
    PARAMETER     = 'Parameter'
    RESULT        = 'Result'
    CONSTANT      = 'Constant'
    OTHER         = 'Other'


OpKindSpecType = Union[OpKind, str]


def resolve_opkindspec(opkindspec: OpKindSpecType) -> OpKind:
    """Map either an ``OpKind`` or its (case-insensitive) name to an
    ``OpKind``.

    Both the enumeration names (e.g., ``'MAX_POOL'``) and the operator names
    (e.g., ``'MaxPool'``) are accepted.
    """
    if isinstance(opkindspec, OpKind):
        return opkindspec

    elif isinstance(opkindspec, str):
        for kind in OpKind:
            if opkindspec.upper() in (kind.name, kind.value.upper()):
                return kind
        raise ValueError(lpt_err_header() + f"unsupported OpKind string specification: {opkindspec}.")

    else:
        raise TypeError(lpt_err_header() + f"unsupported OpKind specification type: {type(opkindspec)}.")


# -- ELEMENT TYPES -- #

class _ElementTypeInfo(NamedTuple):
    bitwidth:  int
    is_real:   bool
    is_signed: bool


@unique
class ElementType(Enum):
    f32 = _ElementTypeInfo(32, True,  True)
    f16 = _ElementTypeInfo(16, True,  True)
    u8  = _ElementTypeInfo(8,  False, False)
    i8  = _ElementTypeInfo(8,  False, True)
    u16 = _ElementTypeInfo(16, False, False)
    i16 = _ElementTypeInfo(16, False, True)
    u32 = _ElementTypeInfo(32, False, False)
    i32 = _ElementTypeInfo(32, False, True)

    @property
    def bitwidth(self) -> int:
        return self.value.bitwidth

    @property
    def is_real(self) -> bool:
        return self.value.is_real

    @property
    def is_integer(self) -> bool:
        return not self.value.is_real

    @property
    def is_signed(self) -> bool:
        return self.value.is_signed

    @property
    def levels(self) -> Optional[int]:
        """The number of distinct values that an integer type can represent."""
        return 2 ** self.bitwidth if self.is_integer else None

    @property
    def min(self) -> float:
        if self.is_real:
            return float('-inf')
        return -(2 ** (self.bitwidth - 1)) if self.is_signed else 0

    @property
    def max(self) -> float:
        if self.is_real:
            return float('inf')
        return 2 ** (self.bitwidth - 1) - 1 if self.is_signed else 2 ** self.bitwidth - 1

    def covers(self, levels: int) -> bool:
        """Whether this type can store ``levels`` distinct integer codes."""
        return self.is_integer and (self.levels >= levels)

    def __str__(self) -> str:
        return self.name


def integer_types() -> List[ElementType]:
    return [t for t in ElementType if t.is_integer]


def smallest_unsigned_type(levels: int) -> ElementType:
    for t in (ElementType.u8, ElementType.u16, ElementType.u32):
        if t.covers(levels):
            return t
    raise ConfigurationError(lpt_err_header() + f"no unsigned integer type can represent {levels} levels.")


ElementTypeSpecType = Union[ElementType, str]


def resolve_elementtype_elementtypespec(elementtypespec: ElementType) -> ElementType:
    return elementtypespec


def resolve_str_elementtypespec(elementtypespec: str) -> ElementType:
    """Map a type name (e.g., ``'u8'``) to an ``ElementType``."""
    try:
        return getattr(ElementType, elementtypespec.lower())
    except AttributeError:
        raise ValueError(lpt_err_header() + f"unsupported ElementType string specification: {elementtypespec}.")


ElementTypeSpecSolvers = Enum('ElementTypeSpecSolvers',
                              [
                                  ('ELEMENTTYPE', resolve_elementtype_elementtypespec),
                                  ('STR',         resolve_str_elementtypespec),
                              ])


def resolve_elementtypespec(elementtypespec: ElementTypeSpecType) -> ElementType:
    elementtypespec_class = elementtypespec.__class__.__name__.upper()

    try:
        solver = getattr(ElementTypeSpecSolvers, elementtypespec_class)
    except AttributeError:
        raise TypeError(lpt_err_header() + f"unsupported ElementType specification type: {elementtypespec_class}.")

    return solver(elementtypespec)


# -- SHAPES -- #

# A dimension is either a non-negative integer or ``None`` (dynamic extent).
Dimension = Optional[int]


class PartialShape(tuple):
    """A tensor shape whose extents might be unknown at transformation time."""

    def __new__(cls, dims=()):
        dims = tuple(dims)
        if not all(map(lambda d: (d is None) or (isinstance(d, int) and not isinstance(d, bool) and d >= 0), dims)):
            raise ValueError(lpt_err_header(obj_name=cls.__name__) + f"extents must be non-negative integers or None, but received {dims}.")
        return super(PartialShape, cls).__new__(cls, dims)

    @property
    def rank(self) -> int:
        return len(self)

    @property
    def is_static(self) -> bool:
        return all(d is not None for d in self)

    def __str__(self) -> str:
        return '{' + ','.join('?' if d is None else str(d) for d in self) + '}'

    def __repr__(self) -> str:
        return f"PartialShape({str(self)})"


PartialShapeSpecType = Union[PartialShape, Tuple[Dimension, ...], List[Dimension]]


def resolve_partialshape_partialshapespec(partialshapespec: PartialShape) -> PartialShape:
    return partialshapespec


def resolve_tuple_partialshapespec(partialshapespec: Tuple[Dimension, ...]) -> PartialShape:
    return PartialShape(partialshapespec)


def resolve_list_partialshapespec(partialshapespec: List[Dimension]) -> PartialShape:
    return PartialShape(tuple(partialshapespec))


def resolve_torch_size_partialshapespec(partialshapespec) -> PartialShape:
    return PartialShape(tuple(partialshapespec))


PartialShapeSpecSolvers = Enum('PartialShapeSpecSolvers',
                               [
                                   ('PARTIALSHAPE', resolve_partialshape_partialshapespec),
                                   ('TUPLE',        resolve_tuple_partialshapespec),
                                   ('LIST',         resolve_list_partialshapespec),
                                   ('SIZE',         resolve_torch_size_partialshapespec),
                               ])


def resolve_partialshapespec(partialshapespec: PartialShapeSpecType) -> PartialShape:
    partialshapespec_class = partialshapespec.__class__.__name__.upper()

    try:
        solver = getattr(PartialShapeSpecSolvers, partialshapespec_class)
    except AttributeError:
        raise TypeError(lpt_err_header() + f"unsupported PartialShape specification type: {partialshapespec_class}.")

    return solver(partialshapespec)
