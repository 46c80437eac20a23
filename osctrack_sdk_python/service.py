"""
OscTrackingService - Host-facing entry points of the SDK.

One service instance owns the configuration, the receiver registry, the
discovery machinery and the pose dispatcher. The tracking host drives it:

    service = OscTrackingService(JsonSettingsStore("settings.json"))
    service.on_load()
    service.initialize()

    while running:                       # once per frame
        service.heartbeat()
        service.update_tracker_poses(samples)

    service.shutdown()

Nothing raised inside the service escapes these entry points; failures are
logged and reflected in status / status_string.
"""

import enum
import logging
import threading
import uuid
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import Config, MemorySettingsStore, OverrideAction, OverrideDecision, evaluate_edit
from .discovery.matcher import DiscoveryMatcher
from .discovery.mdns import OSCQueryAdvertiser, OSCQueryBrowser
from .discovery.oscquery import OSCQueryClient
from .errors import InitializationError
from .sender.addresses import role_to_id
from .sender.dispatcher import PoseDispatcher
from .sender.registry import MANUAL_KEY, ReceiverRegistry
from .sender.session import ReceiverSession
from .types import ServiceProfile, TrackerRole, TrackerSample


logger = logging.getLogger(__name__)

TRACKING_SYSTEM_NAME = "OSC"
CHATBOX_MAX_LENGTH = 144


class ServiceStatus(enum.IntEnum):
    SUCCESS = 0
    UNKNOWN = 1
    INIT_EXCEPTION = 2
    MANUAL_OVERRIDE = 3


# "Title\nCODE\nMessage", shown by the host's status panel
STATUS_STRINGS = {
    ServiceStatus.SUCCESS: "Success!\nS_OK\nSending poses to {receivers} OSC receiver(s).",
    ServiceStatus.UNKNOWN: "Waiting\nS_WAITING\nNo OSC receiver found yet. Start VRChat or another OSCQuery receiver on this network.",
    ServiceStatus.INIT_EXCEPTION: "Exception!\nE_INIT_EXCEPTION\nCould not start the OSC service: {error}",
    ServiceStatus.MANUAL_OVERRIDE: "Manual\nS_MANUAL\nSending poses to {ip}:{port}.",
}

# Roles the host does not offer by default but OSC receivers accept
ADDITIONAL_SUPPORTED_ROLES = frozenset({
    TrackerRole.LEFT_ELBOW,
    TrackerRole.RIGHT_ELBOW,
    TrackerRole.LEFT_KNEE,
    TrackerRole.RIGHT_KNEE,
})


def default_service_name() -> str:
    return f"OSCTrack-{uuid.uuid4().hex[:6].upper()}"


class OscTrackingService:
    """
    Streams tracker poses to OSC receivers found via OSCQuery or set manually.

    Example usage:
        service = OscTrackingService(on_status_changed=lambda status, text: print(text))
        service.on_load()
        service.initialize()
        service.apply_manual_edit("192.168.1.30", "9000")   # bypass discovery
        service.apply_manual_edit("", "")                   # back to discovery
    """

    def __init__(
        self,
        store=None,
        service_name: Optional[str] = None,
        session_factory: Callable[..., ReceiverSession] = ReceiverSession,
        query_client: Optional[OSCQueryClient] = None,
        browser_factory=OSCQueryBrowser,
        advertiser_factory=OSCQueryAdvertiser,
        local_address: Optional[str] = None,
        on_status_changed: Optional[Callable[[ServiceStatus, str], None]] = None,
        head_offset: bool = True,
    ):
        """
        Args:
            store: Settings store with get/set/save (default: in-memory)
            service_name: Name we advertise over mDNS (default: random)
            session_factory: Callable (key, address, port) -> ReceiverSession
            query_client: OSCQuery client used by discovery
            browser_factory: Callable (on_announced, on_removed) -> browser, None disables browsing
            advertiser_factory: Callable (name, http_port, osc_port) -> advertiser, None disables it
            local_address: Our LAN address (default: detected)
            on_status_changed: Host status refresh, called from heartbeat()
            head_offset: Add the fixed head offset to head positions
        """
        self.store = store if store is not None else MemorySettingsStore()
        self.service_name = service_name or default_service_name()
        self.session_factory = session_factory
        self.query_client = query_client
        self.browser_factory = browser_factory
        self.advertiser_factory = advertiser_factory
        self.local_address = local_address
        self.on_status_changed = on_status_changed

        self.lock = threading.RLock()
        self._status_lock = threading.Lock()
        self._status = ServiceStatus.UNKNOWN
        self._status_dirty = False
        self._init_error: Optional[InitializationError] = None

        self.config: Optional[Config] = None
        self.registry = ReceiverRegistry()
        self.dispatcher = PoseDispatcher(head_offset=head_offset)
        self.matcher: Optional[DiscoveryMatcher] = None
        self._browser = None
        self._advertiser = None
        self._tracker_states: Dict[TrackerRole, bool] = {}
        self.loaded = False

    # ------------------------------------------------------------------ #
    # Status                                                               #
    # ------------------------------------------------------------------ #

    @property
    def status(self) -> ServiceStatus:
        with self._status_lock:
            return self._status

    def _set_status(self, status: ServiceStatus):
        with self._status_lock:
            if self._status != status:
                logger.info("Service status %s -> %s", self._status.name, status.name)
            self._status = status
            self._status_dirty = True

    @property
    def status_string(self) -> str:
        status = self.status
        config = self.config or Config(control_port=0)
        return STATUS_STRINGS[status].format(
            receivers=len(self.registry.snapshot()),
            error=self._init_error or "unknown error",
            ip=config.target_ip_address,
            port=config.send_port,
        )

    @property
    def manual_override(self) -> bool:
        return bool(self.config and self.config.manual_override)

    @property
    def tracking_system_name(self) -> str:
        return TRACKING_SYSTEM_NAME

    @property
    def additional_supported_roles(self):
        return ADDITIONAL_SUPPORTED_ROLES

    @property
    def headset_pose(self):
        """OSC receivers do not report a headset pose, so this is the identity."""
        return (0.0, 0.0, 0.0), (1.0, 0.0, 0.0, 0.0)

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    def on_load(self):
        """Load the persisted configuration."""
        with self.lock:
            try:
                self.config = Config.load(self.store)
            except Exception:
                logger.exception("Could not load settings, using defaults")
                self.config = Config()
            self.loaded = True
            logger.info(
                "Loaded config: %s:%d (manual=%s, control port %d)",
                self.config.target_ip_address,
                self.config.send_port,
                self.config.manual_override,
                self.config.control_port,
            )

    def initialize(self) -> int:
        """
        (Re)start discovery and apply the manual override if set.

        Returns:
            The resulting ServiceStatus as int (0 on success)
        """
        with self.lock:
            try:
                if self.config is None:
                    self.on_load()
                self._stop_discovery()
                self.config.save(self.store)
                self._init_error = None

                if self.config.manual_override:
                    self._apply_manual()
                else:
                    self._set_status(ServiceStatus.UNKNOWN)
                self._start_discovery()
            except Exception as e:
                self._init_error = InitializationError(f"{type(e).__name__}: {e}")
                logger.exception("Service initialization failed")
                self._set_status(ServiceStatus.INIT_EXCEPTION)
            return int(self.status)

    def shutdown(self):
        """Stop discovery and close every session."""
        with self.lock:
            try:
                self._stop_discovery()
                self.registry.clear()
            except Exception:
                logger.exception("Error during shutdown")
            self._set_status(ServiceStatus.UNKNOWN)
            logger.info("Service shut down")

    def request_service_restart(self, reason: str, want_reply: bool = False) -> Optional[bool]:
        logger.info("Restart requested: %s", reason)
        self.shutdown()
        status = self.initialize()
        if not want_reply:
            return None
        return status != ServiceStatus.INIT_EXCEPTION

    def heartbeat(self):
        """Called once per frame; delivers pending status refreshes on the host thread."""
        with self._status_lock:
            dirty, self._status_dirty = self._status_dirty, False
        if not dirty or self.on_status_changed is None:
            return
        try:
            self.on_status_changed(self.status, self.status_string)
        except Exception:
            logger.exception("Status refresh callback failed")

    def _start_discovery(self):
        self.matcher = DiscoveryMatcher(
            self.registry,
            own_name=self.service_name,
            query_client=self.query_client,
            local_address=self.local_address,
            session_factory=self.session_factory,
            is_override_active=lambda: self.manual_override,
            on_accepted=self._on_receiver_accepted,
        )
        self.matcher.start()

        if self.advertiser_factory is not None:
            self._advertiser = self.advertiser_factory(
                self.service_name, self.config.control_port, self.config.send_port,
            )
            self._advertiser.start()

        if self.browser_factory is not None:
            self._browser = self.browser_factory(self.matcher.on_service_announced, self._on_receiver_removed)
            self._browser.start()

    def _stop_discovery(self):
        if self._browser is not None:
            self._browser.stop()
            self._browser = None
        if self._advertiser is not None:
            self._advertiser.stop()
            self._advertiser = None
        if self.matcher is not None:
            self.matcher.close()
            self.matcher = None
        self.registry.clear(keep_manual=True)

    def _on_receiver_accepted(self, profile: ServiceProfile, session: ReceiverSession):
        if not self.manual_override and self.status != ServiceStatus.SUCCESS:
            self._set_status(ServiceStatus.SUCCESS)

    def _on_receiver_removed(self, name: str):
        if self.matcher is not None:
            self.matcher.on_service_removed(name)
        if self.registry.is_empty() and self.status == ServiceStatus.SUCCESS:
            self._set_status(ServiceStatus.UNKNOWN)

    # ------------------------------------------------------------------ #
    # Manual override                                                      #
    # ------------------------------------------------------------------ #

    def apply_manual_edit(self, ip_text: Optional[str], port_text: Optional[str]) -> Optional[OverrideDecision]:
        """
        Apply an edit of the manual destination IP/port fields.

        Both fields empty clears the override and resumes discovery; any
        other input sets it. Evaluated and applied as one step.

        Returns:
            The OverrideDecision, or None if applying it failed
        """
        with self.lock:
            try:
                if self.config is None:
                    self.on_load()
                was_manual = self.config.manual_override
                decision = evaluate_edit(self.config, ip_text, port_text)
                self.config = decision.config

                if decision.action == OverrideAction.SET:
                    self._apply_manual()
                elif was_manual:
                    self.registry.remove(MANUAL_KEY)
                    self._set_status(ServiceStatus.UNKNOWN)
                    if self.matcher is not None:
                        self.matcher.rescan()
                self.config.save(self.store)
                return decision
            except Exception:
                logger.exception("Could not apply manual destination %r:%r", ip_text, port_text)
                return None

    def _apply_manual(self):
        """Point the MANUAL session at the configured destination, dropping discovered ones."""
        self.registry.clear(keep_manual=True)
        session = self.session_factory(MANUAL_KEY, self.config.target_ip_address, self.config.send_port)
        self.registry.upsert(MANUAL_KEY, session)
        self._set_status(ServiceStatus.MANUAL_OVERRIDE)

    # ------------------------------------------------------------------ #
    # Trackers                                                             #
    # ------------------------------------------------------------------ #

    def set_tracker_states(
        self,
        samples: Sequence[TrackerSample],
        want_reply: bool = True,
    ) -> Optional[List[Tuple[TrackerSample, bool]]]:
        """
        Record which trackers the host has enabled.

        Returns:
            (sample, success) per sample; success means the role has an OSC address.
        """
        samples = list(samples)
        try:
            for sample in samples:
                self._tracker_states[sample.role] = sample.connected
        except Exception:
            logger.exception("Could not update tracker states")
            return [(s, False) for s in samples] if want_reply else None
        if not want_reply:
            return None
        return [
            (s, role_to_id(s.role) > 0 or s.role == TrackerRole.HEAD)
            for s in samples
        ]

    def update_tracker_poses(
        self,
        samples: Sequence[TrackerSample],
        want_reply: bool = True,
    ) -> Optional[List[Tuple[TrackerSample, bool]]]:
        """
        Send one frame of tracker poses to every receiver.

        Disconnected trackers are not sent and are reported as failed.
        """
        samples = list(samples)
        try:
            active = [s for s in samples if s.connected and self._tracker_states.get(s.role, True)]
            results = self.dispatcher.dispatch(active, self.registry, want_reply=want_reply)
        except Exception:
            logger.exception("Pose update failed")
            return [(s, False) for s in samples] if want_reply else None
        if not want_reply:
            return None
        delivered = {id(s) for s, ok in results if ok}
        return [(s, id(s) in delivered) for s in samples]

    def test_connection(self) -> Tuple[int, str, int]:
        """
        Returns:
            (status, message, ping_ms). OSC over UDP has no round trip, so
            ping_ms is always 0.
        """
        try:
            sessions = self.registry.snapshot()
            targets = ", ".join(f"{s.address}:{s.port}" for s in sessions)
        except Exception as e:
            logger.exception("Connection test failed")
            return int(self.status), f"Connection test failed: {e}", 0
        if not sessions:
            return int(self.status), "No OSC receivers", 0
        return int(self.status), f"OK ({targets})", 0

    def display_toast(self, message: Tuple[str, str]) -> bool:
        """Show a (title, text) toast in the receivers' chatbox."""
        try:
            title, text = message
            body = f"{title}: {text}" if title else text
            return self.dispatcher.send_chatbox(self.registry, body[:CHATBOX_MAX_LENGTH])
        except Exception:
            logger.exception("Toast failed")
            return False
