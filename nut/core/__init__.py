"""Core package for nut."""

from .types import (
    Status,
    OperationResult,
    RepoStatus,
    CloneInfo,
)
from .errors import NutError
from .logger import setup_logging

__all__ = [
    'Status',
    'OperationResult',
    'RepoStatus',
    'CloneInfo',
    'NutError',
    'setup_logging',
]
