from .applicationpoint import PassThroughNode
from lptlib.graphs.graph import QGraph
from lptlib.quantisation.network import move_dequantisation_after
from lptlib.editing.editors import Applier


class PassThroughApplier(Applier):

    def _apply(self, g: QGraph, ap: PassThroughNode, id_: str) -> QGraph:
        move_dequantisation_after(g, ap.node, {0: ap.chain}, ap.chain.operations, name=id_)
        return g
