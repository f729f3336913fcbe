from .models import (
    Category, JobStatus, ConversionJob, Command, ConversionPlan, RemoteVideoInfo,
    ImageOptions, VideoOptions, TrimRange, CropRect, Rotation, Compression,
    ResizeDimensions, ResizePercentage, ResizeMaxDimension, ImagePreset, VideoPreset,
)
from .errors import (
    ConversionError, UnsupportedFormat, ToolNotFound, FileNotFound, ConversionFailed,
    UnsupportedURL, FileTooLarge, ConversionCancelled,
)
from .config import ConverterConfig, load_config
from .output import OutputPathResolver
from .runner import ProcessRunner
from .remote import RemoteFetcher
from .orchestrator import JobOrchestrator

__all__ = [
    "Category", "JobStatus", "ConversionJob", "Command", "ConversionPlan", "RemoteVideoInfo",
    "ImageOptions", "VideoOptions", "TrimRange", "CropRect", "Rotation", "Compression",
    "ResizeDimensions", "ResizePercentage", "ResizeMaxDimension", "ImagePreset", "VideoPreset",
    "ConversionError", "UnsupportedFormat", "ToolNotFound", "FileNotFound", "ConversionFailed",
    "UnsupportedURL", "FileTooLarge", "ConversionCancelled",
    "ConverterConfig", "load_config",
    "OutputPathResolver",
    "ProcessRunner",
    "RemoteFetcher",
    "JobOrchestrator",
]
