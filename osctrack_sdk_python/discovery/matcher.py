"""
DiscoveryMatcher - Turns OSCQuery announcements into receiver sessions.

For every announced profile:
1. Skip our own announcement and anything that is not OSCQuery
2. Fetch the address tree and require /tracking/trackers
3. Ask the service for its OSC port (HOST_INFO)
4. Pin our own LAN address to loopback
5. Create or replace the session unless the same endpoint is already stored

Queries run on a private asyncio loop in a daemon thread, one task per
profile, so a slow or broken peer never blocks the mDNS thread, the other
peers or the dispatch path.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Callable, Dict, Optional

from ..errors import DiscoveryError
from ..sender.addresses import TRACKERS_ROOT
from ..sender.registry import MANUAL_KEY, ReceiverRegistry
from ..sender.session import ReceiverSession
from ..types import ServiceProfile, ServiceType
from .oscquery import OSCQueryClient, get_local_ip


logger = logging.getLogger(__name__)

LOOPBACK_ADDRESS = "127.0.0.1"


class DiscoveryMatcher:
    """
    Decides which announced services are tracking receivers.

    Example usage:
        matcher = DiscoveryMatcher(registry, own_name="OSCTrack-1A2B3C")
        matcher.start()
        browser = OSCQueryBrowser(matcher.on_service_announced, matcher.on_service_removed)
        browser.start()
        ...
        browser.stop()
        matcher.close()
    """

    def __init__(
        self,
        registry: ReceiverRegistry,
        own_name: str,
        query_client: Optional[OSCQueryClient] = None,
        local_address: Optional[str] = None,
        session_factory: Callable[..., ReceiverSession] = ReceiverSession,
        is_override_active: Callable[[], bool] = lambda: False,
        on_accepted: Optional[Callable[[ServiceProfile, ReceiverSession], None]] = None,
    ):
        """
        Args:
            registry: Registry the accepted sessions go into
            own_name: Our advertised service name, used to ignore ourselves
            query_client: OSCQuery client (default: OSCQueryClient())
            local_address: Our LAN address (default: get_local_ip())
            session_factory: Callable (key, address, port) -> ReceiverSession
            is_override_active: Returns True while the manual override is set
            on_accepted: Called after a session was created or replaced
        """
        self.registry = registry
        self.own_name = own_name
        self.query_client = query_client or OSCQueryClient()
        self.local_address = local_address or get_local_ip()
        self.session_factory = session_factory
        self.is_override_active = is_override_active
        self.on_accepted = on_accepted

        self.lock = threading.Lock()
        self._profiles: Dict[str, ServiceProfile] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._loop is not None and not self._loop.is_closed()

    def start(self):
        """Start the query loop thread."""
        if self._thread is not None:
            return
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="discovery-matcher", daemon=True)
        self._thread.start()
        logger.info("Discovery matcher started (self=%s, local=%s)", self.own_name, self.local_address)

    def _run_loop(self):
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def close(self, timeout: float = 2.0):
        """Abandon in-flight queries and stop the loop thread."""
        loop, thread = self._loop, self._thread
        if loop is None:
            return
        if thread is not None and thread.is_alive():
            drain = asyncio.run_coroutine_threadsafe(self._cancel_tasks(), loop)
            try:
                drain.result(timeout)
            except concurrent.futures.TimeoutError:
                logger.warning("Discovery queries did not stop within %.1fs", timeout)
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout)
        if not loop.is_running():
            loop.close()
        self._loop = None
        self._thread = None
        logger.info("Discovery matcher stopped")

    async def _cancel_tasks(self):
        current = asyncio.current_task()
        tasks = [t for t in asyncio.all_tasks() if t is not current]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def on_service_announced(self, profile: ServiceProfile):
        """
        Queue a profile for matching and return immediately.

        Safe to call from any thread (zeroconf calls it from its own).
        """
        if profile.service_type == ServiceType.OSC_QUERY:
            with self.lock:
                self._profiles[profile.name] = profile
        if self.is_override_active():
            logger.debug("Manual override active, ignoring %s", profile.name)
            return
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.warning("Discovery matcher not running, dropping %s", profile.name)
            return
        coro = self.match(profile)
        try:
            asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            # Loop closed between the check and the call
            coro.close()
            logger.warning("Discovery matcher stopped, dropping %s", profile.name)

    def on_service_removed(self, name: str):
        """Drop the session of a service that left the network."""
        with self.lock:
            self._profiles.pop(name, None)
        if name == MANUAL_KEY or self.is_override_active():
            return
        self.registry.remove(name)

    def rescan(self):
        """Re-run matching for every profile seen so far."""
        with self.lock:
            profiles = list(self._profiles.values())
        logger.info("Re-matching %d known service(s)", len(profiles))
        for profile in profiles:
            self.on_service_announced(profile)

    async def match(self, profile: ServiceProfile) -> bool:
        """
        Match one profile and register it if it is a tracking receiver.

        Returns:
            True if a session was created or replaced, False otherwise.
            Query failures are logged and reported as False.
        """
        if self.is_override_active():
            return False
        if profile.name == self.own_name:
            logger.debug("Skipping our own announcement %s", profile.name)
            return False
        if profile.service_type != ServiceType.OSC_QUERY:
            logger.debug("Skipping %s: %s services cannot be queried", profile.name, profile.service_type.value)
            return False
        if profile.name == MANUAL_KEY:
            logger.warning("Skipping service named %s, the key is reserved", MANUAL_KEY)
            return False

        try:
            tree = await self.query_client.get_tree(profile.address, profile.port)
            if tree.get_node_with_path(TRACKERS_ROOT) is None:
                logger.info("%s has no %s node, not a tracking receiver", profile.name, TRACKERS_ROOT)
                return False

            host_info = await self.query_client.get_host_info(profile.address, profile.port)
            address = profile.address
            if address == self.local_address:
                address = LOOPBACK_ADDRESS
            port = host_info.osc_port

            existing = self.registry.get(profile.name)
            if existing is not None and existing.endpoint == (address, port):
                logger.info("%s already registered at %s:%d", profile.name, address, port)
                return False
            if self.is_override_active():
                return False

            session = self.session_factory(profile.name, address, port)
            # Re-checked under the registry lock so a concurrent override wins
            if not self.registry.upsert(profile.name, session, guard=lambda: not self.is_override_active()):
                return False
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = DiscoveryError(profile.name, f"{type(e).__name__}: {e}")
            logger.warning("Discovery query failed for %s", error, exc_info=True)
            return False

        logger.info("Accepted tracking receiver %s at %s:%d", profile.name, address, port)
        if self.on_accepted is not None:
            self.on_accepted(profile, session)
        return True
