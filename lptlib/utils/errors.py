# 
# Author(s):
# Matteo Spallanzani <spmatteo@iis.ee.ethz.ch>
# 
# Copyright (c) 2020-2022 ETH Zurich and University of Bologna.
# 
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
# 
# http://www.apache.org/licenses/LICENSE-2.0
# 
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# 

from typing import NamedTuple


class LPTError(Exception):
    """Base class of the errors raised by the low-precision transformations."""
    pass


class ConfigurationError(LPTError, ValueError):
    """Malformed quantisation parameters (e.g., intervals yielding a
    non-positive scale, or per-channel vectors whose length disagrees with
    the channel extent of the data they quantise).

    These errors are fatal to the call that raised them.
    """
    pass


class PrecisionConflict(LPTError):
    """No integer type satisfies every restriction on a node's consumers.

    The transformation engine catches these errors, records them on its
    report, and leaves the offending node unchanged.
    """
    pass


class Diagnostic(NamedTuple):
    node:    int
    name:    str
    message: str
