"""
converter.errors
~~~~~~~~~~~~~~~~
Exceptions raised while creating or converting a job.

Every one of these is caught at the job boundary by the worker and turned
into the job's failure reason (``str(exc)``).  Only ``add_file`` / ``add_url``
let them reach the caller, because those run before a job exists.
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for everything the conversion pipeline raises on purpose."""

    def __init__(self, message: str, *, tool: str | None = None, detail: str | None = None):
        self.message = message
        self.tool = tool
        self.detail = detail
        super().__init__(message)


class UnsupportedFormat(ConversionError):
    def __init__(self, detail: str | None = None):
        message = "Unsupported file format"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, detail=detail)


class ToolNotFound(ConversionError):
    def __init__(self, tool: str):
        super().__init__(f"{tool} not found. Please install it.", tool=tool)


class FileNotFound(ConversionError):
    def __init__(self, path: str | None = None):
        super().__init__("Input file not found", detail=path)


class ConversionFailed(ConversionError):
    def __init__(self, detail: str, *, tool: str | None = None):
        detail = detail.strip() or "unknown error"
        super().__init__(f"Conversion failed: {detail}", tool=tool, detail=detail)


class UnsupportedURL(ConversionError):
    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Unsupported video URL: {url}", detail=url)


class FileTooLarge(ConversionError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"File too large: {size} bytes (limit is {limit} bytes)")


class ConversionCancelled(ConversionError):
    def __init__(self):
        super().__init__("cancelled")
