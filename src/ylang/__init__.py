"""ylang: translate Y programs to TypeScript, Rust, and Go."""

from .backend import TARGETS, UnsupportedTargetError, render, resolve_target
from .frontend import BuildError, build_tree
from .middleend import analyze
from .pipeline import (
    CompileResult,
    ParseError,
    ParseOutcome,
    Parser,
    ValidateResult,
    compile_source,
    compile_tree,
    validate_source,
    validate_tree,
)

__version__ = "0.1.0"

__all__ = [
    "BuildError",
    "CompileResult",
    "ParseError",
    "ParseOutcome",
    "Parser",
    "TARGETS",
    "UnsupportedTargetError",
    "ValidateResult",
    "analyze",
    "build_tree",
    "compile_source",
    "compile_tree",
    "render",
    "resolve_target",
    "validate_source",
    "validate_tree",
]
