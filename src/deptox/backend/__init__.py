"""Scan backend collaborators."""

from deptox.backend.base import BackendError, ScanBackend, ScanConfig

__all__ = [
    "BackendError",
    "ScanBackend",
    "ScanConfig",
]
