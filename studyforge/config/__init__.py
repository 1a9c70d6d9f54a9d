# studyforge/config/__init__.py
"""Configuration system for studyforge."""

from .connection import decode_connection_key, encode_connection_key
from .loader import get_config_path, load_config, resolve_db_path
from .schema import (
    CaptureConfig,
    ExtractionConfig,
    GenerationConfig,
    OutputConfig,
    ServiceConfig,
    StorageConfig,
    StudyForgeConfig,
)

__all__ = [
    "StudyForgeConfig",
    "ServiceConfig",
    "CaptureConfig",
    "ExtractionConfig",
    "GenerationConfig",
    "StorageConfig",
    "OutputConfig",
    "load_config",
    "get_config_path",
    "resolve_db_path",
    "encode_connection_key",
    "decode_connection_key",
]
