from .applicationpoint import PassThroughNode
from .finder import PassThroughFinder
from .applier import PassThroughApplier
from .rewriter import PassThroughTransformation, MaxPoolTransformation
