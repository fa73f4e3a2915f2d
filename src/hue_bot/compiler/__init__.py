"""
Program compiler.

Picks the compiler for a program's declared API version and builds a
Program from its raw tokens. Problems in the program are reported on
Program.errors and Program.warnings; only an unknown API version raises.
"""

from typing import Any

from ..errors import CompileError
from ..program.ast import Program
from ..program.source import ProgramSource
from .api_v1 import ApiV1

SUPPORTED_VERSIONS = (1.0, 1.1, 1.2)


def build(
    tokens: dict[str, Any],
    api_version: float = 1.0,
    default_name: str | None = None,
) -> Program:
    """Build a Program from a document and its declared API version."""
    if api_version in SUPPORTED_VERSIONS:
        compiler = ApiV1(api_version)
    else:
        raise CompileError(f"Unknown API version '{api_version}'")
    return compiler.build(tokens, default_name)


def build_source(src: ProgramSource) -> Program:
    """Build a Program from a loaded source file."""
    return build(src.tokens, src.api_version, src.default_name)


__all__ = [
    "ApiV1",
    "SUPPORTED_VERSIONS",
    "build",
    "build_source",
]
