from .applicationpoint import StridedSliceNode
from .finder import StridedSliceFinder
from .applier import StridedSliceApplier
from .rewriter import StridedSliceTransformation
