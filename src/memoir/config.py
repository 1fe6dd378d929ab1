"""Configuration loading from environment variables and memoir.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_MEMORY_FILE = Path.home() / ".memoir" / "memories.json"
_CONFIG_FILENAME = "memoir.toml"


@dataclass
class ServerConfig:
    """Identity the tool server reports on initialize."""

    name: str = "memory-server"
    version: str = "1.0.0"


@dataclass
class MemoirConfig:
    """Top-level memoir configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    memory_file: Path = _DEFAULT_MEMORY_FILE
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> MemoirConfig:
    """Load configuration from environment variables and optional memoir.toml.

    Priority: environment variables > memoir.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.memoir/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".memoir" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    server_data = file_data.get("server", {})

    return MemoirConfig(
        server=ServerConfig(
            name=server_data.get("name", "memory-server"),
            version=server_data.get("version", "1.0.0"),
        ),
        memory_file=Path(
            os.getenv("MEMOIR_MEMORY_FILE", file_data.get("memory_file", str(_DEFAULT_MEMORY_FILE)))
        ).expanduser(),
        log_level=os.getenv("MEMOIR_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
