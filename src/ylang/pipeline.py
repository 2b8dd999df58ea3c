"""Compilation pipeline: parse tree -> build -> analyze -> render.

Every request is independent. A request either produces code plus a
(possibly empty) warning list, or a non-empty error list and no code.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Protocol

from .backend import UnsupportedTargetError, render, resolve_target
from .frontend import BuildError, build_tree
from .ir import Loc, Program
from .middleend import analyze

logger = logging.getLogger(__name__)


class ParseError(Exception):
    """Syntax error reported by the Y parser, with location info."""

    def __init__(self, msg: str, lineno: int = -1, col: int = -1):
        self.msg: str = msg
        self.lineno: int = lineno
        self.col: int = col
        super().__init__(msg)

    def __str__(self) -> str:
        return self.msg + Loc(self.lineno, self.col).suffix()


@dataclass
class ParseOutcome:
    """Parser output: a parse tree, or the syntax errors that prevented one."""

    tree: object | None = None
    errors: list[str] = field(default_factory=list)


class Parser(Protocol):
    """The external Y parser."""

    def parse(self, source: str) -> ParseOutcome: ...


@dataclass
class CompileResult:
    """Outcome of one compile request."""

    code: str | None
    errors: list[str]
    warnings: list[str]
    target: str
    elapsed_ms: float

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class ValidateResult:
    """Outcome of one validate request."""

    errors: list[str]
    warnings: list[str]
    elapsed_ms: float

    @property
    def valid(self) -> bool:
        return not self.errors


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000.0


def _build(parse_tree: object) -> tuple[Program | None, list[str]]:
    try:
        return build_tree(parse_tree), []
    except BuildError as e:
        logger.debug("build failed: %s", e)
        return None, ["Build error: " + str(e)]


def _parse(source: str, parser: Parser) -> ParseOutcome:
    try:
        return parser.parse(source)
    except ParseError as e:
        return ParseOutcome(None, [str(e)])


def compile_tree(parse_tree: object, target: str) -> CompileResult:
    """Compile an already-parsed tree to target source text."""
    start = time.perf_counter()
    try:
        canonical = resolve_target(target)
    except UnsupportedTargetError as e:
        logger.debug("rejected target %r", target)
        return CompileResult(None, [str(e)], [], target, _elapsed_ms(start))
    program, errors = _build(parse_tree)
    if program is None:
        return CompileResult(None, errors, [], canonical, _elapsed_ms(start))
    logger.debug("built %d top-level statements", len(program.body))
    warnings = analyze(program)
    logger.debug("analysis produced %d warnings", len(warnings))
    code = render(canonical, program)
    elapsed = _elapsed_ms(start)
    logger.info("compiled to %s in %.2f ms", canonical, elapsed)
    return CompileResult(code, [], warnings, canonical, elapsed)


def validate_tree(parse_tree: object) -> ValidateResult:
    """Build and analyze a parse tree without rendering it."""
    start = time.perf_counter()
    program, errors = _build(parse_tree)
    if program is None:
        return ValidateResult(errors, [], _elapsed_ms(start))
    warnings = analyze(program)
    return ValidateResult([], warnings, _elapsed_ms(start))


def compile_source(source: str, target: str, parser: Parser) -> CompileResult:
    """Parse Y source text with parser, then compile it."""
    start = time.perf_counter()
    outcome = _parse(source, parser)
    if outcome.errors:
        logger.debug("parser reported %d syntax errors", len(outcome.errors))
        return CompileResult(None, list(outcome.errors), [], target, _elapsed_ms(start))
    result = compile_tree(outcome.tree, target)
    result.elapsed_ms = _elapsed_ms(start)
    return result


def validate_source(source: str, parser: Parser) -> ValidateResult:
    """Parse Y source text with parser, then validate it."""
    start = time.perf_counter()
    outcome = _parse(source, parser)
    if outcome.errors:
        return ValidateResult(list(outcome.errors), [], _elapsed_ms(start))
    result = validate_tree(outcome.tree)
    result.elapsed_ms = _elapsed_ms(start)
    return result
