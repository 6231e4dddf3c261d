from .types import OpKind, ElementType, PartialShape, Dimension
from .types import resolve_opkindspec, resolve_elementtypespec, resolve_partialshapespec, smallest_unsigned_type, integer_types
from .graph import QGraph, NodeView
from .shapes import infer_shape
from .builder import GraphBuilder, FakeQuantizeOnData
from .execution import execute
from .compare import compare_graphs
from . import subgraphs
from . import utils
