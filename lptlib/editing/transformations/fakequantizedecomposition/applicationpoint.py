from typing import NamedTuple

from lptlib.graphs.types import ElementType
from lptlib.quantisation.interval import Decomposition
from lptlib.editing.editors import ApplicationPoint


class FakeQuantizeNode(NamedTuple):
    node:              int
    precision:         ElementType
    decomposition:     Decomposition
    update_precisions: bool


ApplicationPoint.register(FakeQuantizeNode)
