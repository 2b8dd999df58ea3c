"""Frontend: parse tree -> IR."""

from .builder import BuildError, build_tree

__all__ = ["BuildError", "build_tree"]
