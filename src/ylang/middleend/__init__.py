"""IR analysis passes (read-only, no transformations)."""

from __future__ import annotations

from ..ir import Program

from .coercion import find_literal_coercions
from .liveness import count_references, find_unused_variables
from .reachability import find_unreachable


def analyze(program: Program | None) -> list[str]:
    """Run every warning pass. Order: unreachable, unused, coercion."""
    if program is None:
        return []
    warnings: list[str] = []
    warnings.extend(find_unreachable(program))
    warnings.extend(find_unused_variables(program))
    warnings.extend(find_literal_coercions(program))
    return warnings


__all__ = [
    "analyze",
    "count_references",
    "find_literal_coercions",
    "find_unreachable",
    "find_unused_variables",
]
