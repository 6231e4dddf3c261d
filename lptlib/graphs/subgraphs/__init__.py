from . import concat
