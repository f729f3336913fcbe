"""
converter.strategies
~~~~~~~~~~~~~~~~~~~~
One strategy per Category. The table built here is the only place a job's
category is mapped to the code that converts it.
"""

from __future__ import annotations

from pathlib import Path

from converter.models import Category
from converter.output import OutputPathResolver
from converter.strategies.archive import ArchiveStrategy
from converter.strategies.audio import AudioStrategy
from converter.strategies.base import CommandStrategy, FormatStrategy
from converter.strategies.document import DocumentStrategy
from converter.strategies.image import ImageStrategy
from converter.strategies.video import VideoStrategy


def build_strategies(resolver: OutputPathResolver, staging_dir: Path) -> dict[Category, FormatStrategy]:
    return {
        Category.IMAGE:    ImageStrategy(resolver),
        Category.VIDEO:    VideoStrategy(resolver),
        Category.AUDIO:    AudioStrategy(resolver),
        Category.DOCUMENT: DocumentStrategy(resolver),
        Category.ARCHIVE:  ArchiveStrategy(resolver, staging_dir),
    }


__all__ = [
    "FormatStrategy", "CommandStrategy", "build_strategies",
    "ImageStrategy", "VideoStrategy", "AudioStrategy", "DocumentStrategy", "ArchiveStrategy",
]
