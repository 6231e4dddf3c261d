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

"""The engine applying low-precision transformations to a graph.

Each pass visits the operations of the graph once, in a deterministic
topological order computed before the pass starts, and applies to each
operation the (unique) rule registered for its kind. Operations created
during the pass are not visited: the graph can be transformed further by
running additional passes, until a pass applies no rule.
"""

import warnings
from collections import OrderedDict
from typing import NamedTuple, Iterable, List, Optional, Union

from lptlib.graphs.types import OpKind, resolve_opkindspec
from lptlib.graphs.graph import QGraph
from lptlib.restrictions import PrecisionsRestrictions, GranularityRestrictions
from lptlib.restrictions import resolve_precisionsrestrictionsspec, resolve_granularityrestrictionsspec
from lptlib.restrictions.precisions import PrecisionsRestrictionsSpecType
from lptlib.restrictions.granularity import GranularityRestrictionsSpecType
from lptlib.utils import lpt_err_header, lpt_wng_header, lpt_log_header
from lptlib.utils import PrecisionConflict, Diagnostic
from .params import TransformationParams
from .editors import Editor, Rewriter, Context
from .transformations import FakeQuantizeDecomposition, ConcatTransformation, StridedSliceTransformation, MaxPoolTransformation


class Application(NamedTuple):
    node: int
    rule: str


class TransformationReport(NamedTuple):
    applied:   List[Application]
    conflicts: List[Diagnostic]

    @property
    def changed(self) -> bool:
        return len(self.applied) > 0


EnabledRulesSpecType = Optional[Iterable[Union[str, OpKind]]]


class LowPrecisionTransformer(Editor):

    def __init__(self,
                 precision_restrictions:   PrecisionsRestrictionsSpecType = None,
                 granularity_restrictions: GranularityRestrictionsSpecType = None,
                 params:                   Optional[TransformationParams] = None,
                 verbose:                  bool = False):

        super(LowPrecisionTransformer, self).__init__()

        params = params if params is not None else TransformationParams()
        if not isinstance(params, TransformationParams):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + f"expects TransformationParams, but received {type(params)}.")

        # without an explicit catalog, convolutions restrict their inputs as the parameters say
        precisions = params.default_precisions_restrictions() if precision_restrictions is None else resolve_precisionsrestrictionsspec(precision_restrictions)

        self._context = Context(precisions=precisions,
                                granularity=resolve_granularityrestrictionsspec(granularity_restrictions),
                                params=params)
        self._rewriters: 'OrderedDict[OpKind, Rewriter]' = OrderedDict()
        self._verbose = verbose

    @property
    def context(self) -> Context:
        return self._context

    @property
    def rewriters(self) -> List[Rewriter]:
        return list(self._rewriters.values())

    def add(self, rewriter: Rewriter) -> None:
        """Register a rule; at most one rule can be registered per kind."""
        if not isinstance(rewriter, Rewriter):
            raise TypeError(lpt_err_header(obj_name=self.__class__.__name__) + f"expects a Rewriter, but received {type(rewriter)}.")
        if rewriter.kind in self._rewriters:
            raise ValueError(lpt_err_header(obj_name=self.__class__.__name__) + f"a rule for {rewriter.kind.value} operations is already registered ({self._rewriters[rewriter.kind].name}).")
        self._rewriters[rewriter.kind] = rewriter

    @staticmethod
    def _is_enabled(rewriter: Rewriter, enabled: EnabledRulesSpecType) -> bool:
        if enabled is None:
            return True
        for spec in enabled:
            if isinstance(spec, str) and (spec == rewriter.name):
                return True
            if isinstance(spec, (str, OpKind)):
                try:
                    if resolve_opkindspec(spec) is rewriter.kind:
                        return True
                except ValueError:
                    continue
        return False

    def transform(self, g: QGraph, enabled: EnabledRulesSpecType = None) -> TransformationReport:
        """Run one pass over ``g``, modifying it in place.

        Only the rules whose names (or kinds) appear in ``enabled`` are
        applied; all of them by default.
        """
        enabled = None if enabled is None else list(enabled)
        report = TransformationReport(applied=[], conflicts=[])

        for n in g.topological_order():

            if n not in g:  # previous rewritings might have removed the operation
                continue

            rewriter = self._rewriters.get(g.kind(n))
            if (rewriter is None) or not LowPrecisionTransformer._is_enabled(rewriter, enabled):
                continue

            try:
                applied = rewriter.rewrite(g, n, self._context)
            except PrecisionConflict as e:
                diagnostic = Diagnostic(node=n, name=g.name_of(n), message=str(e))
                report.conflicts.append(diagnostic)
                warnings.warn(lpt_wng_header(obj_name=rewriter.name, node_name=diagnostic.name) + f"skipped: {diagnostic.message}")
                continue

            if applied:
                report.applied.append(Application(node=n, rule=rewriter.name))
                if self._verbose:
                    print(lpt_log_header(obj_name=rewriter.name, node_name=g.name_of(n)) + "rewritten.")

        return report

    def apply(self, g: QGraph, enabled: EnabledRulesSpecType = None, *args, **kwargs) -> QGraph:
        self.transform(g, enabled)
        return g


def default_rewriters() -> List[Rewriter]:
    return [
        FakeQuantizeDecomposition(),
        ConcatTransformation(),
        StridedSliceTransformation(),
        MaxPoolTransformation(),
    ]


def create_transformer(precision_restrictions:   PrecisionsRestrictionsSpecType = None,
                       granularity_restrictions: GranularityRestrictionsSpecType = None,
                       params:                   Optional[TransformationParams] = None) -> LowPrecisionTransformer:
    transformer = LowPrecisionTransformer(precision_restrictions, granularity_restrictions, params)
    for rewriter in default_rewriters():
        transformer.add(rewriter)
    return transformer


def transform(g:                        QGraph,
              precision_restrictions:   PrecisionsRestrictionsSpecType = None,
              granularity_restrictions: GranularityRestrictionsSpecType = None,
              enabled_rules:            EnabledRulesSpecType = None,
              params:                   Optional[TransformationParams] = None) -> TransformationReport:
    """Apply one pass of the default low-precision transformations to ``g``."""
    transformer = create_transformer(precision_restrictions, granularity_restrictions, params)
    return transformer.transform(g, enabled_rules)


def transform_until_converged(g:                        QGraph,
                              precision_restrictions:   PrecisionsRestrictionsSpecType = None,
                              granularity_restrictions: GranularityRestrictionsSpecType = None,
                              enabled_rules:            EnabledRulesSpecType = None,
                              params:                   Optional[TransformationParams] = None,
                              max_passes:               int = 8) -> List[TransformationReport]:
    """Run passes until one of them applies no rule.

    Raises a ``RuntimeError`` if the graph is still changing after
    ``max_passes`` passes.
    """
    transformer = create_transformer(precision_restrictions, granularity_restrictions, params)

    reports = []
    for _ in range(max_passes):
        report = transformer.transform(g, enabled_rules)
        reports.append(report)
        if not report.changed:
            return reports

    raise RuntimeError(lpt_err_header() + f"the graph did not converge after {max_passes} passes.")
