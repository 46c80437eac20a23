"""
Utility functions for pose conversion.

This module provides:
    - quat_utils: Quaternion to Euler conversion and axis remapping
"""

from .quat_utils import (
    HEAD_OFFSET,
    apply_head_offset,
    engine_to_osc_vec,
    osc_to_engine_vec,
    quat_normalize,
    quat_to_euler,
)

__all__ = [
    "HEAD_OFFSET",
    "apply_head_offset",
    "engine_to_osc_vec",
    "osc_to_engine_vec",
    "quat_normalize",
    "quat_to_euler",
]
