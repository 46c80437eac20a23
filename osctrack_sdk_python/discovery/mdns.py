"""
mDNS service browsing and announcement for OSC / OSCQuery.

On start, the service:
  1. Announces <name>._oscjson._tcp.local (so peers can filter us out)
  2. Browses _oscjson._tcp.local and _osc._udp.local (so we find receivers)
"""

import logging
import socket
from typing import Callable, Optional

from zeroconf import ServiceBrowser, ServiceInfo, ServiceStateChange, Zeroconf

from ..types import ServiceProfile, ServiceType
from .oscquery import OSCQueryHTTPServer, get_local_ip, host_info_payload


logger = logging.getLogger(__name__)

OSC_QUERY_SERVICE_TYPE = "_oscjson._tcp.local."
OSC_SERVICE_TYPE = "_osc._udp.local."

SERVICE_TYPES = {
    OSC_QUERY_SERVICE_TYPE: ServiceType.OSC_QUERY,
    OSC_SERVICE_TYPE: ServiceType.OSC,
}


def instance_name(name: str, service_type: str) -> str:
    """Strip the service type suffix: "VRChat-Client-1A2B._oscjson._tcp.local." -> "VRChat-Client-1A2B"."""
    suffix = "." + service_type
    if name.endswith(suffix):
        return name[:-len(suffix)]
    return name


class OSCQueryBrowser:
    """
    Browses for OSC and OSCQuery services and reports them as ServiceProfiles.

    zeroconf invokes the handlers on its own thread; callbacks must not block.
    """

    def __init__(
        self,
        on_announced: Callable[[ServiceProfile], None],
        on_removed: Optional[Callable[[str], None]] = None,
        resolve_timeout_ms: int = 3000,
    ):
        self.on_announced = on_announced
        self.on_removed = on_removed
        self.resolve_timeout_ms = resolve_timeout_ms
        self._zeroconf: Optional[Zeroconf] = None
        self._browser = None

    def start(self, zeroconf: Optional[Zeroconf] = None) -> None:
        self._zeroconf = zeroconf or Zeroconf()
        self._browser = ServiceBrowser(
            self._zeroconf,
            list(SERVICE_TYPES),
            handlers=[self._on_state_change],
        )
        logger.info("mDNS: browsing for %s", ", ".join(SERVICE_TYPES))

    def _on_state_change(
        self, zeroconf: Zeroconf, service_type: str,
        name: str, state_change: ServiceStateChange,
    ) -> None:
        short_name = instance_name(name, service_type)
        if state_change == ServiceStateChange.Removed:
            logger.info("mDNS: %s went away", short_name)
            # Sessions come from OSCQuery announcements only
            if self.on_removed is not None and service_type == OSC_QUERY_SERVICE_TYPE:
                self.on_removed(short_name)
            return

        info = zeroconf.get_service_info(service_type, name, timeout=self.resolve_timeout_ms)
        if info is None or not info.port:
            logger.debug("mDNS: could not resolve %s", name)
            return
        addresses = info.parsed_addresses()
        if not addresses:
            logger.debug("mDNS: %s has no address", name)
            return
        # Prefer IPv4, receivers listen on it almost exclusively
        address = next((a for a in addresses if ":" not in a), addresses[0])
        profile = ServiceProfile(
            name=short_name,
            address=address,
            port=info.port,
            service_type=SERVICE_TYPES.get(service_type, ServiceType.OSC),
        )
        logger.debug("mDNS: %s at %s:%d (%s)", short_name, address, info.port, profile.service_type.value)
        self.on_announced(profile)

    def stop(self) -> None:
        if self._browser:
            self._browser.cancel()
            self._browser = None
        if self._zeroconf:
            self._zeroconf.close()
            self._zeroconf = None


class OSCQueryAdvertiser:
    """
    Announces this process as an OSCQuery service.

    Serves our host info over HTTP on http_port and registers
    <service_name>._oscjson._tcp.local pointing at it.
    """

    def __init__(self, service_name: str, http_port: int, osc_port: int, address: Optional[str] = None):
        self.service_name = service_name
        self.http_port = http_port
        self.osc_port = osc_port
        self.address = address
        self._zeroconf: Optional[Zeroconf] = None
        self._info: Optional[ServiceInfo] = None
        self._http: Optional[OSCQueryHTTPServer] = None

    def start(self, zeroconf: Optional[Zeroconf] = None) -> None:
        local_ip = self.address or get_local_ip()

        self._http = OSCQueryHTTPServer(
            self.http_port,
            host_info_payload(self.service_name, local_ip, self.osc_port),
        )
        self._http.start()

        self._info = ServiceInfo(
            OSC_QUERY_SERVICE_TYPE,
            f"{self.service_name}.{OSC_QUERY_SERVICE_TYPE}",
            addresses=[socket.inet_aton(local_ip)],
            port=self.http_port,
            properties={"txtvers": "1"},
        )
        self._zeroconf = zeroconf or Zeroconf()
        self._zeroconf.register_service(self._info)
        logger.info(
            "mDNS: announcing %s at %s:%d",
            self.service_name,
            local_ip,
            self.http_port,
        )

    def stop(self) -> None:
        if self._zeroconf and self._info:
            self._zeroconf.unregister_service(self._info)
            self._zeroconf.close()
            logger.info("mDNS: stopped announcing")
        self._zeroconf = None
        self._info = None
        if self._http is not None:
            self._http.stop()
            self._http = None
