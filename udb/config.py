"""Application settings loaded from the environment and ``.env`` files."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_MODEL = "claude-sonnet-4-5"
DEFAULT_DATA_DIR = Path.home() / ".udb"


@dataclass
class Settings:
    """Runtime configuration for the chat assistant."""

    model: str = DEFAULT_MODEL
    max_turns: int = 10  # Tool-use rounds allowed per question
    max_tokens: int = 4096
    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    log_level: str = "WARNING"

    @property
    def kb_path(self) -> Path:
        """Location of the knowledge base snapshot file."""
        return self.data_dir / "kb.json"


def load_env_files(data_dir: Path = DEFAULT_DATA_DIR) -> None:
    """Load ``~/.udb/.env`` first, then ``./.env`` for development.

    Variables already present in the environment are never overridden, so the
    user config directory wins over the working directory.
    """
    load_dotenv(data_dir / ".env", override=False)
    load_dotenv(override=False)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _data_dir() -> Path:
    return Path(os.getenv("UDB_DATA_DIR", str(DEFAULT_DATA_DIR))).expanduser()


def load_settings(load_files: bool = True) -> Settings:
    """Build settings from environment variables.

    The ``.env`` files are read first, so every variable below (``UDB_DATA_DIR``
    and ``LOG_LEVEL`` included) may come from them. When a file moves the data
    directory, the ``.env`` of the new directory is loaded as well.

    Args:
        load_files: Whether to read ``.env`` files before the environment

    Returns:
        Populated settings
    """
    data_dir = _data_dir()
    if load_files:
        load_env_files(data_dir)
        configured = _data_dir()
        if configured != data_dir:
            load_dotenv(configured / ".env", override=False)
            data_dir = configured

    return Settings(
        model=os.getenv("UDB_CLAUDE_MODEL") or os.getenv("CLAUDE_MODEL") or DEFAULT_MODEL,
        max_turns=_int_env("UDB_MAX_TURNS", 10),
        max_tokens=_int_env("UDB_MAX_TOKENS", 4096),
        data_dir=data_dir,
        log_level=os.getenv("LOG_LEVEL", "WARNING"),
    )
