"""Utilities for membership proofs."""

from .utils import (
    setup_logging,
    PerformanceMetrics,
    PerformanceMonitor,
    format_duration,
    get_system_info
)

__all__ = [
    'setup_logging',
    'PerformanceMetrics',
    'PerformanceMonitor',
    'format_duration',
    'get_system_info'
]
