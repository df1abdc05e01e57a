"""
Data management submodule: board files, schema checks and atomic writes.
"""

from .core import DataCore, DayflowContext

__all__ = [
    'DataCore',
    'DayflowContext'
]
