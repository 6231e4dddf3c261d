from .precisions import PrecisionsRestriction, PrecisionsRestrictions, resolve_precisionsrestrictionsspec
from .granularity import QuantisationGranularityRestriction, GranularityRestrictions, resolve_granularityrestrictionsspec
from .policy import PRECISION_PRESERVING_KINDS, allowed_precisions, select_precision, requires_per_tensor
