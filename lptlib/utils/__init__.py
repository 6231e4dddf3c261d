from .messages import lpt_log_header, lpt_wng_header, lpt_err_header
from .errors import LPTError, ConfigurationError, PrecisionConflict, Diagnostic
