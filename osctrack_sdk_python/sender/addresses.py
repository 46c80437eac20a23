"""
Tracker role to OSC address mapping.

VRChat accepts up to 8 body trackers plus the head:
    /tracking/trackers/1/position ... /tracking/trackers/8/rotation
    /tracking/trackers/head/position
    /tracking/trackers/head/rotation
"""

from typing import Optional

from ..types import TrackerRole


TRACKERS_ROOT = "/tracking/trackers"
HEAD_LABEL = "head"
CHANNELS = ("position", "rotation")

# Order matters: ids are what receivers calibrate against
ROLE_IDS = {
    TrackerRole.WAIST: 1,
    TrackerRole.LEFT_FOOT: 2,
    TrackerRole.RIGHT_FOOT: 3,
    TrackerRole.LEFT_KNEE: 4,
    TrackerRole.RIGHT_KNEE: 5,
    TrackerRole.LEFT_ELBOW: 6,
    TrackerRole.RIGHT_ELBOW: 7,
    TrackerRole.CHEST: 8,
}


def role_to_id(role: TrackerRole) -> int:
    """
    Map a tracker role to its OSC tracker id.

    Args:
        role: Tracker role

    Returns:
        1..8 for supported roles, -1 for anything else (including HEAD)
    """
    return ROLE_IDS.get(role, -1)


def label_for(role: TrackerRole) -> Optional[str]:
    """Address label for a role: "head", "1".."8", or None when unsupported."""
    if role == TrackerRole.HEAD:
        return HEAD_LABEL
    tracker_id = role_to_id(role)
    if tracker_id < 0:
        return None
    return str(tracker_id)


def address_for(label, channel: str) -> str:
    """
    Build the OSC address for one tracker channel.

    Args:
        label: Tracker id or "head"
        channel: "position" or "rotation"

    Returns:
        Address such as "/tracking/trackers/1/position"
    """
    if channel not in CHANNELS:
        raise ValueError(f"Unknown tracker channel: {channel}. Supported: {list(CHANNELS)}")
    return f"{TRACKERS_ROOT}/{label}/{channel}"
