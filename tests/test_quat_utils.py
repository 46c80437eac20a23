"""Tests for quaternion to Euler conversion and axis remapping."""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation as R

from osctrack_sdk_python.utils.quat_utils import (
    HEAD_OFFSET,
    apply_head_offset,
    engine_to_osc_vec,
    osc_to_engine_vec,
    quat_normalize,
    quat_to_euler,
)


class TestQuatToEuler:
    def test_identity_is_zero(self):
        np.testing.assert_allclose(quat_to_euler((1.0, 0.0, 0.0, 0.0)), [0.0, 0.0, 0.0], atol=1e-9)

    @pytest.mark.parametrize("roll,pitch,yaw", [
        (30.0, 0.0, 0.0),
        (0.0, 45.0, 0.0),
        (0.0, 0.0, -60.0),
        (10.0, -20.0, 170.0),
        (-120.0, 75.0, 33.0),
    ])
    def test_matches_scipy_reference(self, roll, pitch, yaw):
        q = R.from_euler("xyz", [roll, pitch, yaw], degrees=True).as_quat(scalar_first=True)
        np.testing.assert_allclose(quat_to_euler(q), [roll, pitch, yaw], atol=1e-6)

    def test_gimbal_lock_positive(self):
        with np.errstate(all="raise"):
            angles = quat_to_euler((0.71, 0.0, 0.71, 0.0))
        assert angles[1] == 90.0

    def test_gimbal_lock_negative(self):
        with np.errstate(all="raise"):
            angles = quat_to_euler((0.71, 0.0, -0.71, 0.0))
        assert angles[1] == -90.0

    def test_gimbal_lock_has_no_nan(self):
        angles = quat_to_euler((0.8, 0.0, 0.8, 0.0))
        assert np.all(np.isfinite(angles))


class TestQuatNormalize:
    def test_unit_length(self):
        q = quat_normalize((2.0, 0.0, 0.0, 0.0))
        np.testing.assert_allclose(q, [1.0, 0.0, 0.0, 0.0])

    def test_zero_becomes_identity(self):
        np.testing.assert_allclose(quat_normalize((0.0, 0.0, 0.0, 0.0)), [1.0, 0.0, 0.0, 0.0])


class TestPositionConversion:
    def test_flips_z_only(self):
        np.testing.assert_allclose(engine_to_osc_vec((1.0, 2.0, 3.0)), [1.0, 2.0, -3.0])

    def test_round_trip(self):
        v = (0.25, -1.5, 4.0)
        np.testing.assert_allclose(osc_to_engine_vec(engine_to_osc_vec(v)), v)

    def test_head_offset(self):
        np.testing.assert_allclose(apply_head_offset((0.0, 1.6, 0.0)), [0.0, 1.6, 0.2])
        np.testing.assert_allclose(HEAD_OFFSET, [0.0, 0.0, 0.2])
