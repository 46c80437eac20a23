"""
Sender - OSC fan-out of tracker poses to receiver sessions.

Example usage:
    from osctrack_sdk_python.sender import PoseDispatcher, ReceiverRegistry, ReceiverSession

    registry = ReceiverRegistry()
    registry.upsert("MANUAL", ReceiverSession("MANUAL", "127.0.0.1", 9000))

    dispatcher = PoseDispatcher()
    results = dispatcher.dispatch(samples, registry)

Addresses produced:
    /tracking/trackers/{1..8}/position   (x, y, z) meters
    /tracking/trackers/{1..8}/rotation   (roll, pitch, yaw) degrees
    /tracking/trackers/head/position
    /tracking/trackers/head/rotation
"""

from .addresses import HEAD_LABEL, ROLE_IDS, address_for, label_for, role_to_id
from .dispatcher import CHATBOX_ADDRESS, PoseDispatcher
from .registry import MANUAL_KEY, ReceiverRegistry
from .session import ReceiverSession

__all__ = [
    "CHATBOX_ADDRESS",
    "HEAD_LABEL",
    "MANUAL_KEY",
    "PoseDispatcher",
    "ROLE_IDS",
    "ReceiverRegistry",
    "ReceiverSession",
    "address_for",
    "label_for",
    "role_to_id",
]
