"""Backend: IR -> target source text, one generator per target language."""

from __future__ import annotations

from ..ir import Program
from .go import GoBackend
from .rust import RustBackend
from .typescript import TsBackend

BACKENDS: dict[str, type[TsBackend] | type[RustBackend] | type[GoBackend]] = {
    "typescript": TsBackend,
    "rust": RustBackend,
    "go": GoBackend,
}

ALIASES: dict[str, str] = {
    "ts": "typescript",
    "rs": "rust",
    "golang": "go",
}

TARGETS: tuple[str, ...] = tuple(BACKENDS)


class UnsupportedTargetError(ValueError):
    """Caller named a target with no registered generator."""

    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"Unsupported target language: {target}")


def resolve_target(target: str) -> str:
    """Canonical target name for target or one of its aliases (any case)."""
    key = target.strip().lower()
    key = ALIASES.get(key, key)
    if key not in BACKENDS:
        raise UnsupportedTargetError(target)
    return key


def render(target: str, program: Program) -> str:
    """Render program as source text for target.

    Each call gets a fresh generator, so no emitter state is shared
    between renders.
    """
    backend = BACKENDS[resolve_target(target)]()
    return backend.emit(program)


__all__ = [
    "ALIASES",
    "BACKENDS",
    "TARGETS",
    "GoBackend",
    "RustBackend",
    "TsBackend",
    "UnsupportedTargetError",
    "render",
    "resolve_target",
]
