from typing import NamedTuple

from lptlib.quantisation.dequantisation import DequantisationOperations
from lptlib.quantisation.network import DequantisationChain
from lptlib.editing.editors import ApplicationPoint


class StridedSliceNode(NamedTuple):
    node:           int
    chain:          DequantisationChain
    dequantisation: DequantisationOperations  # the dequantisation of the sliced data


ApplicationPoint.register(StridedSliceNode)
