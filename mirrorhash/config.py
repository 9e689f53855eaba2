"""Configuration module for mirrorhash."""

from dataclasses import dataclass, field
from pathlib import Path

from mirrorhash.hashing import INTRO_SIZE, READ_BUFFER_SIZE


def _get_project_root() -> Path:
    return Path(__file__).parent.parent


@dataclass
class ScannerConfig:
    read_buffer_size: int = READ_BUFFER_SIZE
    intro_size: int = INTRO_SIZE
    progress_interval: float = 1.0


@dataclass
class Config:
    database_path: Path = field(
        default_factory=lambda: _get_project_root() / "data" / "mirrorhash.db"
    )
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
