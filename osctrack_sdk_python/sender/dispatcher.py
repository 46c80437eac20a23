"""
PoseDispatcher - Fans tracker poses out to every active receiver.

The data flow for one call:
1. Lease a snapshot of the registry (empty -> nothing is sent)
2. Map each sample's role to an address label ("1".."8" or "head")
3. Mirror the position into OSC space and convert the orientation to Euler
   degrees
4. Send /tracking/trackers/{label}/position and .../rotation to each session
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..errors import TransportError
from ..types import TrackerRole, TrackerSample
from ..utils.quat_utils import (
    HEAD_OFFSET,
    apply_head_offset,
    engine_to_osc_vec,
    quat_normalize,
    quat_to_euler,
)
from .addresses import address_for, label_for
from .registry import ReceiverRegistry


logger = logging.getLogger(__name__)

CHATBOX_ADDRESS = "/chatbox/input"


class PoseDispatcher:
    """
    Converts TrackerSamples to OSC messages and sends them to all receivers.

    Example usage:
        dispatcher = PoseDispatcher()
        results = dispatcher.dispatch(samples, registry)
        for sample, ok in results:
            if not ok:
                print(f"{sample.role} was not delivered")
    """

    def __init__(self, head_offset: bool = True):
        """
        Args:
            head_offset: Add HEAD_OFFSET to the head position before sending
        """
        self.head_offset = head_offset

    def prepare(self, sample: TrackerSample):
        """
        Build the wire form of one sample.

        Returns:
            (label, position, rotation) with OSC-space position and Euler
            degrees rotation, or None if the role has no OSC address.
        """
        label = label_for(sample.role)
        if label is None:
            return None
        position = engine_to_osc_vec(sample.position)
        if sample.role == TrackerRole.HEAD and self.head_offset:
            position = apply_head_offset(position, HEAD_OFFSET)
        rotation = quat_to_euler(quat_normalize(sample.orientation))
        return label, position, rotation

    def dispatch(
        self,
        samples: Sequence[TrackerSample],
        registry: ReceiverRegistry,
        want_reply: bool = True,
    ) -> Optional[List[Tuple[TrackerSample, bool]]]:
        """
        Send one batch of tracker poses to every session in the registry.

        Args:
            samples: Tracker poses for this frame
            registry: Registry to take the session snapshot from
            want_reply: If False, return None instead of per-sample results

        Returns:
            List of (sample, success). A sample succeeds only if every send to
            every session succeeded; unsupported roles are reported as failed.
        """
        samples = list(samples)
        with registry.lease() as sessions:
            if not sessions:
                return [(s, False) for s in samples] if want_reply else None

            prepared = [self.prepare(s) for s in samples]
            try:
                for session in sessions:
                    for wire in prepared:
                        if wire is None:
                            continue
                        label, position, rotation = wire
                        session.send(address_for(label, "position"), *position)
                        session.send(address_for(label, "rotation"), *rotation)
            except Exception as e:
                logger.error("Pose dispatch failed: %s: %s", type(e).__name__, e, exc_info=True)
                return [(s, False) for s in samples] if want_reply else None

        if not want_reply:
            return None
        return [(s, wire is not None) for s, wire in zip(samples, prepared)]

    def send_flag_all(self, registry: ReceiverRegistry, osc_address: str, text: str, value: bool) -> bool:
        """
        Send a ",sT"/",sF" message to every session.

        Returns:
            True if at least one session exists and every send succeeded.
        """
        with registry.lease() as sessions:
            if not sessions:
                return False
            ok = True
            for session in sessions:
                try:
                    session.send_flag(osc_address, text, value)
                except TransportError:
                    logger.exception("Flag message to %s failed", session.key)
                    ok = False
        return ok

    def send_chatbox(self, registry: ReceiverRegistry, text: str, immediate: bool = True) -> bool:
        """Show text in the receiver's chatbox (VRChat /chatbox/input)."""
        return self.send_flag_all(registry, CHATBOX_ADDRESS, text, immediate)
