"""
Quaternion and coordinate utilities for pose forwarding.

All quaternions are in (w, x, y, z) format unless otherwise specified.
"""

import numpy as np


RAD2DEG = 180.0 / np.pi

# Added to the head position before it is sent (head channel only)
HEAD_OFFSET = np.array([0.0, 0.0, 0.2])


def quat_normalize(q):
    """
    Normalize quaternion (w, x, y, z format).

    Args:
        q: Quaternion (w, x, y, z)

    Returns:
        Normalized quaternion, identity if q is (close to) zero
    """
    q = np.asarray(q, dtype=np.float64)
    norm = np.sqrt(q[0]*q[0] + q[1]*q[1] + q[2]*q[2] + q[3]*q[3])
    if norm < 1e-8:
        return np.array([1.0, 0.0, 0.0, 0.0])
    return q / norm


def quat_to_euler(q):
    """
    Convert a quaternion to roll/pitch/yaw Euler angles in degrees.

    Standard X (roll), Y (pitch), Z (yaw) decomposition:
        roll  = atan2(2(wx + yz), 1 - 2(x^2 + y^2))
        pitch = asin(2(wy - zx))
        yaw   = atan2(2(wz + xy), 1 - 2(y^2 + z^2))

    At gimbal lock (|2(wy - zx)| >= 1) pitch is exactly +/-90 degrees with
    the sign of the argument.

    Args:
        q: Quaternion (w, x, y, z)

    Returns:
        np.array([roll, pitch, yaw]) in degrees
    """
    w, x, y, z = q[0], q[1], q[2], q[3]

    # roll / x
    sinr_cosp = 2.0 * (w * x + y * z)
    cosr_cosp = 1.0 - 2.0 * (x * x + y * y)
    roll = np.arctan2(sinr_cosp, cosr_cosp) * RAD2DEG

    # pitch / y
    sinp = 2.0 * (w * y - z * x)
    if abs(sinp) >= 1.0:
        pitch = 90.0 if sinp > 0 else -90.0
    else:
        pitch = np.arcsin(sinp) * RAD2DEG

    # yaw / z
    siny_cosp = 2.0 * (w * z + x * y)
    cosy_cosp = 1.0 - 2.0 * (y * y + z * z)
    yaw = np.arctan2(siny_cosp, cosy_cosp) * RAD2DEG

    return np.array([roll, pitch, yaw], dtype=np.float64)


def engine_to_osc_vec(v):
    """
    Convert an engine-space position to the OSC (VRChat) convention.
    Engine: right-handed, Y-up
    OSC: left-handed, Y-up
    Conversion: (x, y, -z) - mirrors Z axis

    Args:
        v: Position vector in engine coordinates

    Returns:
        Position vector in OSC coordinates
    """
    return np.array([v[0], v[1], -v[2]], dtype=np.float64)


def osc_to_engine_vec(v):
    """
    Inverse of engine_to_osc_vec. The Z mirror is its own inverse.

    Args:
        v: Position vector in OSC coordinates

    Returns:
        Position vector in engine coordinates
    """
    return engine_to_osc_vec(v)


def apply_head_offset(v, offset=HEAD_OFFSET):
    """Add the fixed head offset to a position vector."""
    return np.asarray(v, dtype=np.float64) + np.asarray(offset, dtype=np.float64)
