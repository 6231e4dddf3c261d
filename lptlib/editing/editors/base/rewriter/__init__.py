from .applicationpoint import ApplicationPoint
from .finder import Finder
from .applier import Applier
from .rewriter import Context, Rewriter
