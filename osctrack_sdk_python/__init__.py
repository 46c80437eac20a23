"""
OSCTrack SDK Python - Stream tracker poses to OSC receivers such as VRChat.

This package finds OSC tracking receivers on the local network via OSCQuery
(mDNS + HTTP), converts tracker poses to the receivers' convention and sends
them over UDP.

Main classes:
    - OscTrackingService: Host-facing lifecycle and dispatch entry points
    - PoseDispatcher: Converts and fans out poses to all receivers
    - ReceiverRegistry: Thread-safe set of live receiver sessions
    - DiscoveryMatcher: Accepts OSCQuery services that understand trackers

Example usage:
    from osctrack_sdk_python import OscTrackingService, TrackerRole, TrackerSample

    service = OscTrackingService()
    service.on_load()
    service.initialize()

    # Main loop
    while running:
        service.heartbeat()
        service.update_tracker_poses([
            TrackerSample(TrackerRole.WAIST, (0.0, 1.0, 0.0), (1.0, 0.0, 0.0, 0.0)),
        ])

    # Cleanup
    service.shutdown()
"""

from .config import Config, JsonSettingsStore, MemorySettingsStore
from .discovery import DiscoveryMatcher, OSCQueryAdvertiser, OSCQueryBrowser, OSCQueryClient
from .sender import PoseDispatcher, ReceiverRegistry, ReceiverSession
from .service import OscTrackingService, ServiceStatus
from .types import ServiceProfile, ServiceType, TrackerRole, TrackerSample

__version__ = "0.1.0"
__all__ = [
    "Config",
    "DiscoveryMatcher",
    "JsonSettingsStore",
    "MemorySettingsStore",
    "OSCQueryAdvertiser",
    "OSCQueryBrowser",
    "OSCQueryClient",
    "OscTrackingService",
    "PoseDispatcher",
    "ReceiverRegistry",
    "ReceiverSession",
    "ServiceProfile",
    "ServiceStatus",
    "ServiceType",
    "TrackerRole",
    "TrackerSample",
]
