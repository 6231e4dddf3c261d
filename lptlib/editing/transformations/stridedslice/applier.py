from .applicationpoint import StridedSliceNode
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.network import move_dequantisation_after
from lptlib.editing.editors import Applier


class StridedSliceApplier(Applier):

    def _apply(self, g: QGraph, ap: StridedSliceNode, id_: str) -> QGraph:
        move_dequantisation_after(g, ap.node, {0: ap.chain}, ap.dequantisation, name=id_)
        return g
