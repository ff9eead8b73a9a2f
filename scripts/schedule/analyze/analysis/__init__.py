"""
Analysis modules for computed schedules.
"""

from .critical_path import (
    CriticalPathResult,
    analyze_critical_path,
    get_float_status,
    summarize_float,
    print_critical_path_report,
)

__all__ = [
    'CriticalPathResult',
    'analyze_critical_path',
    'get_float_status',
    'summarize_float',
    'print_critical_path_report',
]
