"""
converter.config
~~~~~~~~~~~~~~~~
Runtime settings, handed to the orchestrator explicitly at construction.

Settings can be read from a JSON file in the platform's standard config
directory:

  Windows  : %APPDATA%\\LocalFileConverter\\config.json
  macOS    : ~/Library/Application Support/LocalFileConverter/config.json
  Linux    : ~/.config/LocalFileConverter/config.json

Every key is optional; unknown keys are ignored. Example::

    {
      "output_dir": "~/Movies/Converted",
      "max_parallel": 4,
      "max_download_height": 720
    }
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path

from converter.paths import DEFAULT_STAGING_DIR

logger = logging.getLogger(__name__)

MAX_INPUT_BYTES = 5_000_000_000


# ── Config directory ──────────────────────────────────────────────────────────

def _config_dir() -> Path:
    if sys.platform == "win32":
        base = Path.home() / "AppData" / "Roaming"
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path.home() / ".config"
    return base / "LocalFileConverter"


CONFIG_DIR  = _config_dir()
CONFIG_FILE = CONFIG_DIR / "config.json"


# ── Settings ──────────────────────────────────────────────────────────────────

@dataclass
class ConverterConfig:
    output_dir: Path | None = None          # None → paths.DEFAULT_OUTPUT_DIR
    staging_dir: Path = field(default_factory=lambda: DEFAULT_STAGING_DIR)
    max_parallel: int = 0                   # 0 = one worker per submitted job
    max_input_bytes: int = MAX_INPUT_BYTES
    max_download_height: int = 1080

    # Progress estimation for tools that print nothing we can parse
    poll_interval: float = 0.1              # seconds between ticks
    estimate_step: float = 0.05             # added per tick
    estimate_cap: float = 0.9               # never estimated past this

    def __post_init__(self):
        if self.output_dir is not None:
            self.output_dir = Path(self.output_dir).expanduser()
        self.staging_dir = Path(self.staging_dir).expanduser()
        if self.max_parallel < 0:
            raise ValueError("max_parallel must be 0 (unbounded) or positive")


# ── Public API ────────────────────────────────────────────────────────────────

def load_config(path: Path | None = None) -> ConverterConfig:
    """
    Read *path* (default CONFIG_FILE) and return a ConverterConfig.
    Returns defaults if the file is missing, empty, or malformed.
    """
    path = path or CONFIG_FILE
    if not path.exists():
        return ConverterConfig()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("top-level JSON value must be an object")
        return _dict_to_config(payload)
    except (OSError, ValueError, TypeError) as exc:
        logger.warning(f"Ignoring config file '{path}': {exc}")
        return ConverterConfig()


def config_to_dict(config: ConverterConfig) -> dict:
    data = asdict(config)
    for key in ("output_dir", "staging_dir"):
        if data[key] is not None:
            data[key] = str(data[key])
    return data


# ── Serialisation helpers ─────────────────────────────────────────────────────

def _dict_to_config(d: dict) -> ConverterConfig:
    known = {f.name for f in fields(ConverterConfig)}
    kwargs = {k: v for k, v in d.items() if k in known}
    for key in ("output_dir", "staging_dir"):
        if kwargs.get(key) is not None:
            kwargs[key] = Path(kwargs[key])
    return ConverterConfig(**kwargs)
