#!/usr/bin/env python3
"""
Example: Stream synthetic tracker poses to OSC receivers.

This script demonstrates how to use the OscTrackingService class to find
OSCQuery receivers (e.g. VRChat) on the local network, or to send to a fixed
destination, and stream a slowly swaying set of body trackers.

Usage:
    python send_test_poses.py
    python send_test_poses.py --ip 127.0.0.1 --port 9000
    python send_test_poses.py --fps 60 --settings settings.json --verbose
"""

import argparse
import logging
import os
import sys
import time

import numpy as np
from scipy.spatial.transform import Rotation as R

# Allow running without installing the package (add project root to path)
_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _root not in sys.path:
    sys.path.insert(0, _root)

from osctrack_sdk_python import JsonSettingsStore, OscTrackingService, TrackerRole, TrackerSample


# Rest positions (meters, engine space) for a 1.75 m person
REST_POSITIONS = {
    TrackerRole.HEAD: (0.0, 1.60, 0.0),
    TrackerRole.CHEST: (0.0, 1.35, 0.0),
    TrackerRole.WAIST: (0.0, 1.00, 0.0),
    TrackerRole.LEFT_ELBOW: (-0.30, 1.15, 0.0),
    TrackerRole.RIGHT_ELBOW: (0.30, 1.15, 0.0),
    TrackerRole.LEFT_KNEE: (-0.10, 0.50, 0.05),
    TrackerRole.RIGHT_KNEE: (0.10, 0.50, 0.05),
    TrackerRole.LEFT_FOOT: (-0.10, 0.05, 0.0),
    TrackerRole.RIGHT_FOOT: (0.10, 0.05, 0.0),
}


def make_frame(t):
    """Build one frame of trackers swaying around the vertical axis."""
    yaw = 20.0 * np.sin(2.0 * np.pi * 0.25 * t)
    sway = 0.05 * np.sin(2.0 * np.pi * 0.5 * t)
    # scipy returns (x, y, z, w) unless asked for scalar first
    q = R.from_euler("y", yaw, degrees=True).as_quat(scalar_first=True)
    return [
        TrackerSample(
            role=role,
            position=(p[0] + sway, p[1], p[2]),
            orientation=tuple(float(v) for v in q),
        )
        for role, p in REST_POSITIONS.items()
    ]


def main():
    parser = argparse.ArgumentParser(description="Stream synthetic tracker poses over OSC")

    parser.add_argument(
        "--ip",
        type=str,
        default="",
        help="Manual destination IP (default: discover receivers via OSCQuery)",
    )

    parser.add_argument(
        "--port",
        type=str,
        default="",
        help="Manual destination port (default: 9000 when --ip is given)",
    )

    parser.add_argument(
        "--fps",
        type=float,
        default=60.0,
        help="Send rate in frames per second (default: 60)",
    )

    parser.add_argument(
        "--settings",
        type=str,
        default="",
        help="JSON settings file to load and save (default: in-memory)",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = JsonSettingsStore(args.settings) if args.settings else None
    service = OscTrackingService(
        store=store,
        on_status_changed=lambda status, text: print(f"[Main] Status {status.name}: {text.splitlines()[-1]}"),
    )

    print(f"[Main] Initializing OscTrackingService as {service.service_name}...")
    service.on_load()
    status = service.initialize()
    print(f"[Main] Initialize returned {status}")

    if args.ip or args.port:
        service.apply_manual_edit(args.ip, args.port)
    elif service.manual_override:
        service.apply_manual_edit("", "")

    period = 1.0 / args.fps if args.fps > 0 else 0.0
    start_time = time.time()
    frame_count = 0
    fps_start_time = start_time

    print("[Main] Streaming poses, press Ctrl+C to stop")

    try:
        while True:
            frame_start = time.time()
            service.heartbeat()
            results = service.update_tracker_poses(make_frame(frame_start - start_time))

            frame_count += 1
            if frame_start - fps_start_time >= 2.0:
                sent = sum(1 for _sample, ok in results if ok)
                print(f"[Main] {frame_count / (frame_start - fps_start_time):.1f} fps, "
                      f"{sent}/{len(results)} trackers delivered, "
                      f"{service.test_connection()[1]}")
                frame_count = 0
                fps_start_time = frame_start

            remaining = period - (time.time() - frame_start)
            if remaining > 0:
                time.sleep(remaining)

    except KeyboardInterrupt:
        print("\n[Main] Stopping...")
    finally:
        service.shutdown()
        print("[Main] Done")


if __name__ == "__main__":
    main()
