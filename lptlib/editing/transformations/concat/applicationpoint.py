from typing import NamedTuple, List, Optional

from lptlib.graphs.types import ElementType
from lptlib.quantisation.dequantisation import DequantisationOperations
from lptlib.editing.editors import ApplicationPoint


class ConcatNode(NamedTuple):
    """A ``Concat`` whose inputs are all dequantised integer codes.

    Attributes:
        node: the ``Concat`` operation.
        sources: the decomposed ``FakeQuantize``s producing the codes (each
            listed once, in order of input port).
        precision: the precision shared by the codes of all the branches.
        shared: in per-tensor mode, the dequantisation that replaces those of
            all the branches; ``None`` in per-channel mode.
        axis: the (non-negative) concatenation axis.

    """
    node:      int
    sources:   List[int]
    precision: ElementType
    shared:    Optional[DequantisationOperations]
    axis:      int


ApplicationPoint.register(ConcatNode)
