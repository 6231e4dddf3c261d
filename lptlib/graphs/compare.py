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

import torch
from typing import Any, Dict, Tuple

from .graph import QGraph
from lptlib.quantisation.interval import QuantisationInterval
from lptlib.quantisation.dequantisation import DequantisationOperations


def _compare_values(a: Any, b: Any, rtol: float, atol: float) -> bool:

    if isinstance(a, torch.Tensor) or isinstance(b, torch.Tensor):
        try:
            a, b = torch.broadcast_tensors(torch.as_tensor(a, dtype=torch.float64), torch.as_tensor(b, dtype=torch.float64))
        except RuntimeError:
            return False
        return bool(torch.allclose(a, b, rtol=rtol, atol=atol))

    elif isinstance(a, QuantisationInterval) and isinstance(b, QuantisationInterval):
        return (a.levels == b.levels) and all(_compare_values(x, y, rtol, atol) for x, y in zip(a.bounds, b.bounds))

    elif isinstance(a, DequantisationOperations) and isinstance(b, DequantisationOperations):
        return a.equals(b, atol=atol)

    else:
        return a == b


def _compare_attrs(a: Dict[str, Any], b: Dict[str, Any], rtol: float, atol: float) -> Tuple[bool, str]:
    # keys starting with an underscore are bookkeeping information
    keys_a = {k for k in a.keys() if not k.startswith('_')}
    keys_b = {k for k in b.keys() if not k.startswith('_')}
    if keys_a != keys_b:
        return False, f"different attributes {sorted(keys_a)} and {sorted(keys_b)}"
    for k in sorted(keys_a):
        if not _compare_values(a[k], b[k], rtol, atol):
            return False, f"different values for attribute '{k}': {a[k]} and {b[k]}"
    return True, ""


def compare_graphs(a:           QGraph,
                   b:           QGraph,
                   check_names: bool = False,
                   rtol:        float = 1e-5,
                   atol:        float = 1e-6) -> Tuple[bool, str]:
    """Check whether two graphs compute the same function with the same
    operations.

    The graphs are walked backwards from their ``Result``s (paired in order
    of creation), following the input ports. The returned message describes
    the first mismatch found.
    """
    results_a = a.results()
    results_b = b.results()
    if len(results_a) != len(results_b):
        return False, f"different number of results: {len(results_a)} and {len(results_b)}"

    pairs: Dict[int, int] = {}
    stack = list(zip(results_a, results_b))
    while len(stack) > 0:

        na, nb = stack.pop()
        if na in pairs:
            if pairs[na] != nb:
                return False, f"{a.name_of(na)} is matched to both {b.name_of(pairs[na])} and {b.name_of(nb)}"
            continue
        pairs[na] = nb

        va, vb = a.node(na), b.node(nb)
        where = f"{va.name} ({va.kind.value}) and {vb.name} ({vb.kind.value})"

        if va.kind is not vb.kind:
            return False, f"different kinds: {where}"
        if check_names and (va.name != vb.name):
            return False, f"different names: {where}"
        if va.precision is not vb.precision:
            return False, f"different precisions {va.precision} and {vb.precision}: {where}"
        if va.shape != vb.shape:
            return False, f"different shapes {va.shape} and {vb.shape}: {where}"

        equal, message = _compare_attrs(va.attrs, vb.attrs, rtol, atol)
        if not equal:
            return False, f"{message}: {where}"

        inputs_a = a.inputs(na)
        inputs_b = b.inputs(nb)
        if len(inputs_a) != len(inputs_b):
            return False, f"different number of inputs: {where}"
        stack.extend(reversed(list(zip(inputs_a, inputs_b))))

    return True, ""
