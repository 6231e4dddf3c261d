from .base import Editor, BaseEditor, ApplicationPoint, Context, Finder, Applier, Rewriter, ComposedEditor
