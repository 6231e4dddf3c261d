from typing import NamedTuple

from lptlib.quantisation.network import DequantisationChain
from lptlib.editing.editors import ApplicationPoint


class PassThroughNode(NamedTuple):
    node:  int
    chain: DequantisationChain


ApplicationPoint.register(PassThroughNode)
