from .params import TransformationParams, create_params_u8i8, create_params_i8i8, create_params_u8u8
from . import editors
from . import transformations
from .transformer import LowPrecisionTransformer, TransformationReport, Application
from .transformer import default_rewriters, create_transformer, transform, transform_until_converged
