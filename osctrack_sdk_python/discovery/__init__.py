"""
Discovery - Finds OSC tracking receivers on the local network via OSCQuery.

Exports:
    DiscoveryMatcher    - decides which announced services become sessions
    OSCQueryBrowser     - zeroconf browser producing ServiceProfiles
    OSCQueryAdvertiser  - announces this process over mDNS + HTTP
    OSCQueryClient      - async httpx client for tree / HOST_INFO queries
"""

from .matcher import LOOPBACK_ADDRESS, DiscoveryMatcher
from .mdns import (
    OSC_QUERY_SERVICE_TYPE,
    OSC_SERVICE_TYPE,
    OSCQueryAdvertiser,
    OSCQueryBrowser,
    instance_name,
)
from .oscquery import OSCQueryClient, OSCQueryHTTPServer, get_local_ip

__all__ = [
    "DiscoveryMatcher",
    "LOOPBACK_ADDRESS",
    "OSCQueryAdvertiser",
    "OSCQueryBrowser",
    "OSCQueryClient",
    "OSCQueryHTTPServer",
    "OSC_QUERY_SERVICE_TYPE",
    "OSC_SERVICE_TYPE",
    "get_local_ip",
    "instance_name",
]
