from . import utils
from . import graphs
from . import quantisation
from . import restrictions
from . import editing

from .graphs import OpKind, ElementType, PartialShape, QGraph, GraphBuilder
from .quantisation import QuantisationInterval, DequantisationOperations
from .editing import TransformationParams, LowPrecisionTransformer, transform, transform_until_converged
