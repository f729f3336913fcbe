"""
converter.output
~~~~~~~~~~~~~~~~
Where converted files land.

    resolver = OutputPathResolver(custom_dir=None)
    resolver.resolve(Path("/photos/IMG_1.heic"), "jpg")
    → Path("~/Downloads/Converted/IMG_1_converted.jpg")

Names are never de-duplicated: converting the same input to the same format
twice overwrites the earlier result.
"""

from __future__ import annotations

import logging
from pathlib import Path

from converter.models import strip_format
from converter.paths import DEFAULT_OUTPUT_DIR

logger = logging.getLogger(__name__)


class OutputPathResolver:

    def __init__(self, custom_dir: Path | None = None, default_dir: Path = DEFAULT_OUTPUT_DIR):
        self._custom_dir = custom_dir
        self._default_dir = default_dir

    @property
    def directory(self) -> Path:
        return self._custom_dir or self._default_dir

    def resolve(
        self,
        input_path: Path | str,
        target_format: str,
        custom_directory: Path | None = None,
    ) -> Path:
        """
        Return ``<dir>/<input-basename>_converted.<target_format>``, creating
        ``<dir>`` if needed.

        A directory that cannot be created is only logged; the tool writing
        the output will fail with the real reason.
        """
        directory = Path(custom_directory or self.directory).expanduser().absolute()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning(f"Could not create output directory '{directory}': {exc}")

        return directory / f"{strip_format(input_path)}_converted.{target_format.lower()}"
