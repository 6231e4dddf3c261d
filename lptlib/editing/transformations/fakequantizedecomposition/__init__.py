from .applicationpoint import FakeQuantizeNode
from .finder import FakeQuantizeDecompositionFinder
from .applier import FakeQuantizeDecompositionApplier
from .rewriter import FakeQuantizeDecomposition
