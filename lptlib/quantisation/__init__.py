from .dequantisation import DequantisationOperations
from .interval import QuantisationInterval, resolve_intervalspec, get_zero_scale, code_offset, decompose, unify, requantise_bounds
from .network import DequantisationChain, get_dequantisation, insert_dequantisation, move_dequantisation_after
from .network import find_quantisation_source, requantise_subtree, count_dequantisation_operations
