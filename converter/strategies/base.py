"""
converter.strategies.base
~~~~~~~~~~~~~~~~~~~~~~~~~
Common shape of every format strategy.

A strategy turns ``(source, target_format, options)`` into a ConversionPlan:
the commands to run, in order, and the file they produce. CommandStrategy
covers the common case of a single command built by ``build_command``.
Strategies never
run anything themselves, so flag generation can be unit-tested without any
tool installed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from converter.errors import UnsupportedFormat
from converter.models import Category, Command, ConversionPlan, ProcessingOptions
from converter.output import OutputPathResolver
from converter.paths import is_tool_available


class FormatStrategy(ABC):

    category: Category
    primary_tool: str
    options_type: type | None = None   # the options dataclass this strategy reads

    def __init__(self, resolver: OutputPathResolver):
        self._resolver = resolver

    @property
    def supported_formats(self) -> tuple[str, ...]:
        return self.category.supported_formats

    def is_primary_tool_available(self) -> bool:
        return is_tool_available(self.primary_tool)

    def accepts_options(self, options: ProcessingOptions | None) -> bool:
        if options is None:
            return True
        return self.options_type is not None and isinstance(options, self.options_type)

    def output_path(self, source: Path, target_format: str) -> Path:
        return self._resolver.resolve(source, target_format)

    @abstractmethod
    def build_plan(
        self,
        source: Path,
        target_format: str,
        options: ProcessingOptions | None = None,
    ) -> ConversionPlan:
        """Commands that turn *source* into *target_format*, and the file they produce."""

    def effective_duration(self, probed_seconds: float, options: ProcessingOptions | None) -> float:
        """Seconds of media the tool will actually write, for measured progress."""
        return probed_seconds

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _check_target(self, target_format: str) -> str:
        fmt = target_format.lower()
        if fmt not in self.supported_formats:
            raise UnsupportedFormat(f"{self.category.value} files cannot be converted to '{target_format}'")
        return fmt


class CommandStrategy(FormatStrategy):
    """A strategy whose whole plan is one tool invocation."""

    def build_plan(
        self,
        source: Path,
        target_format: str,
        options: ProcessingOptions | None = None,
    ) -> ConversionPlan:
        command = self.build_command(source, target_format, options)
        return ConversionPlan([command], self.output_path(source, target_format.lower()))

    @abstractmethod
    def build_command(
        self,
        source: Path,
        target_format: str,
        options: ProcessingOptions | None = None,
    ) -> Command:
        ...
