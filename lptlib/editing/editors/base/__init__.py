"""This package implements the hierarchy of base classes of the graph
editing machinery.

Rewriting rules are organised as pairs of ``Finder``s (which check whether
a rule applies to a given operation) and ``Applier``s (which perform the
rewriting). Composed editors apply sequences of editors.

"""

#                      Editor                             #
#                        /\                               #
#                       /  \                              #
#          BaseEditor _/    \_ ComposedEditor             #
#              |                                          #
#              |_ Rewriter                                #
#                    |_ ApplicationPoint + Context        #
#                    |_ Finder                            #
#                    |_ Applier                           #

from .editor import Editor
from .baseeditor import BaseEditor
from .rewriter import ApplicationPoint, Context, Finder, Applier, Rewriter
from .composededitor import ComposedEditor
