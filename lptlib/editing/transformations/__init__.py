from .fakequantizedecomposition import FakeQuantizeDecomposition
from .concat import ConcatTransformation
from .stridedslice import StridedSliceTransformation
from .maxpool import PassThroughTransformation, MaxPoolTransformation
