"""
Program source loading.

Programs are YAML (or JSON, which YAML reads too) documents:

    name: Blink
    version: 1.2
    serial:
      loop: {count: 3}
      devices: {inputs: $all}
      steps:
        - transition: {state: {on: true, bri: "100%"}}
        - transition: {state: {on: false}}
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_API_VERSION = 1.0


@dataclass
class ProgramSource:
    """Raw program tokens plus where they came from and their declared API version."""
    tokens: dict[str, Any]
    filepath: str
    api_version: float = DEFAULT_API_VERSION

    @property
    def default_name(self) -> str:
        return Path(self.filepath).stem


def read_source(text: str, filepath: str = "STDIN") -> ProgramSource:
    """Parse program text into a ProgramSource."""
    tokens = yaml.safe_load(text)
    if not isinstance(tokens, dict):
        raise ValueError(f"{filepath}: a program must be a YAML or JSON object")

    version = tokens.pop("version", None)
    try:
        api_version = float(version) if version is not None else DEFAULT_API_VERSION
    except (TypeError, ValueError):
        raise ValueError(f"{filepath}: invalid version '{version}'")

    return ProgramSource(tokens=tokens, filepath=filepath, api_version=api_version)


def load_source(path: Path) -> ProgramSource:
    """Load a program file."""
    return read_source(Path(path).read_text(), str(path))
