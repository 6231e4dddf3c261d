from .applicationpoint import ConcatNode
from .finder import ConcatFinder
from .applier import ConcatApplier
from .rewriter import ConcatTransformation
