"""Utilities package for nut."""

from .progress import ProgressTracker, print_clone_summary, print_status_summary

__all__ = [
    'ProgressTracker',
    'print_clone_summary',
    'print_status_summary',
]
