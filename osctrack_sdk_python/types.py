"""
Data types shared across the SDK.

All quaternions are in (w, x, y, z) format, matching utils.quat_utils.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


class TrackerRole(enum.Enum):
    """Semantic body part a tracker is assigned to."""

    WAIST = "waist"
    LEFT_FOOT = "left_foot"
    RIGHT_FOOT = "right_foot"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    CHEST = "chest"
    HEAD = "head"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    HANDED = "handed"
    CAMERA = "camera"
    KEYBOARD = "keyboard"


class ServiceType(enum.Enum):
    """Kind of network service announced over mDNS."""

    OSC = "osc"
    OSC_QUERY = "oscquery"


@dataclass(frozen=True)
class TrackerSample:
    """
    One tracker pose captured by the tracking host for a single update cycle.

    Attributes:
        role: Body part the tracker drives
        position: (x, y, z) in meters, engine (right-handed) space
        orientation: Unit quaternion (w, x, y, z)
        serial: Tracker serial reported by the host, informational only
        connected: False when the host reports the tracker as lost
    """

    role: TrackerRole
    position: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    orientation: Tuple[float, float, float, float] = (1.0, 0.0, 0.0, 0.0)
    serial: str = ""
    connected: bool = True


@dataclass(frozen=True)
class ServiceProfile:
    """A service announcement delivered by the mDNS browser."""

    name: str
    address: str
    port: int
    service_type: ServiceType = ServiceType.OSC_QUERY


@dataclass(frozen=True)
class HostInfo:
    """Answer of an OSCQuery ``/?HOST_INFO`` request."""

    name: str
    osc_ip: str
    osc_port: int
    osc_transport: str = "UDP"


@dataclass
class OSCQueryNode:
    """
    A node of an OSCQuery address tree.

    Example usage:
        root = OSCQueryNode.from_json(payload)
        node = root.get_node_with_path("/tracking/trackers")
        if node is None:
            print("Receiver does not accept trackers")
    """

    full_path: str
    access: int = 0
    description: str = ""
    contents: Dict[str, "OSCQueryNode"] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: dict) -> "OSCQueryNode":
        """Build a node (and its children) from the OSCQuery JSON layout."""
        contents = {
            name: cls.from_json(child)
            for name, child in (data.get("CONTENTS") or {}).items()
        }
        return cls(
            full_path=data.get("FULL_PATH", "/"),
            access=int(data.get("ACCESS", 0)),
            description=data.get("DESCRIPTION", ""),
            contents=contents,
        )

    def get_node_with_path(self, path: str) -> Optional["OSCQueryNode"]:
        """
        Walk the tree along an OSC address.

        Args:
            path: Absolute OSC address such as "/tracking/trackers"

        Returns:
            The node at that address, or None if any segment is missing.
        """
        node = self
        for part in path.strip("/").split("/"):
            if not part:
                continue
            node = node.contents.get(part)
            if node is None:
                return None
        return node
