from lptlib.graphs.graph import QGraph


class Editor(object):
    """Base class of everything that edits a ``QGraph``.

    Editors modify the target graph in place and return it, so that they can
    be chained.
    """

    def __init__(self):
        super(Editor, self).__init__()

    def apply(self, g: QGraph, *args, **kwargs) -> QGraph:
        raise NotImplementedError

    def __call__(self, g: QGraph, *args, **kwargs) -> QGraph:
        return self.apply(g, *args, **kwargs)
