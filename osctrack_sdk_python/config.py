"""
Configuration: settings persistence, input validation and manual override.

Persisted keys (string-keyed store):
    ipAddress   str   manual destination IP (default "127.0.0.1")
    oscPort     int   manual destination OSC port (default 9000)
    tcpPort     int   our OSCQuery HTTP port (default: a free ephemeral port)
    manual      bool  manual override enabled (default False)
"""

import enum
import ipaddress
import json
import logging
import socket
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from .errors import ValidationError


logger = logging.getLogger(__name__)

LOCALHOST = "localhost"
LOOPBACK = "127.0.0.1"
DEFAULT_SEND_PORT = 9000


def find_free_port() -> int:
    """Ask the OS for a free TCP port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        return s.getsockname()[1]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def validate_ip(candidate) -> bool:
    """True for "localhost" (any case) or any IPv4/IPv6 literal."""
    if not isinstance(candidate, str):
        return False
    candidate = candidate.strip()
    if candidate.lower() == LOCALHOST:
        return True
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return False
    return True


def normalize_ip(candidate, fallback: str) -> str:
    """
    Return the candidate if it is a valid IP (or "localhost"), else fallback.

    "localhost" is returned as typed; Config maps it to 127.0.0.1 on assignment.
    """
    if validate_ip(candidate):
        return candidate.strip()
    return fallback


def check_port(candidate) -> int:
    """
    Parse an unsigned 16-bit port.

    Raises:
        ValidationError: If candidate is not an integer in 0..65535
    """
    if isinstance(candidate, bool):
        raise ValidationError(f"Invalid port: {candidate!r}")
    try:
        port = int(str(candidate).strip())
    except ValueError:
        raise ValidationError(f"Invalid port: {candidate!r}") from None
    if not 0 <= port <= 0xFFFF:
        raise ValidationError(f"Port out of range: {port}")
    return port


def parse_port(candidate, previous: int) -> int:
    """Parse a port, keeping the previous value when the input is invalid."""
    try:
        return check_port(candidate)
    except ValidationError as e:
        logger.debug("%s, keeping %d", e, previous)
        return previous


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

@dataclass
class Config:
    """Runtime configuration, loaded from and saved to a settings store."""

    target_ip_address: str = LOOPBACK
    send_port: int = DEFAULT_SEND_PORT
    control_port: int = field(default_factory=find_free_port)
    manual_override: bool = False

    def __setattr__(self, name, value):
        if name == "target_ip_address" and isinstance(value, str) and value.strip().lower() == LOCALHOST:
            value = LOOPBACK
        super().__setattr__(name, value)

    @classmethod
    def load(cls, store) -> "Config":
        """Read the persisted keys, falling back to defaults for bad values."""
        config = cls()
        config.target_ip_address = normalize_ip(store.get("ipAddress", LOOPBACK), LOOPBACK)
        config.send_port = parse_port(store.get("oscPort", DEFAULT_SEND_PORT), DEFAULT_SEND_PORT)
        config.control_port = parse_port(store.get("tcpPort", config.control_port), config.control_port)
        config.manual_override = bool(store.get("manual", False))
        return config

    def save(self, store) -> None:
        store.set("ipAddress", self.target_ip_address)
        store.set("oscPort", self.send_port)
        store.set("tcpPort", self.control_port)
        store.set("manual", self.manual_override)
        store.save()


class OverrideAction(enum.Enum):
    SET = "set"
    CLEAR = "clear"


@dataclass(frozen=True)
class OverrideDecision:
    """Outcome of one edit of the manual IP/port fields."""

    action: OverrideAction
    config: Config
    ip_valid: bool = True
    port_valid: bool = True


def evaluate_edit(config: Config, ip_text: Optional[str], port_text: Optional[str]) -> OverrideDecision:
    """
    Decide what an edit of the manual destination fields means.

    Both fields empty clears the override. Anything else sets it, with
    invalid input keeping the previous value of that field. The input
    config is not modified.

    Args:
        config: Current configuration
        ip_text: Text of the IP field
        port_text: Text of the port field

    Returns:
        OverrideDecision carrying the new Config
    """
    ip_text = (ip_text or "").strip()
    port_text = (port_text or "").strip()

    if not ip_text and not port_text:
        return OverrideDecision(OverrideAction.CLEAR, replace(config, manual_override=False))

    ip_valid = not ip_text or validate_ip(ip_text)
    port_valid = True
    port = config.send_port
    if port_text:
        try:
            port = check_port(port_text)
        except ValidationError:
            port_valid = False

    new_config = replace(
        config,
        target_ip_address=normalize_ip(ip_text, config.target_ip_address) if ip_text else config.target_ip_address,
        send_port=port,
        manual_override=True,
    )
    return OverrideDecision(OverrideAction.SET, new_config, ip_valid, port_valid)


# ---------------------------------------------------------------------------
# Settings stores
# ---------------------------------------------------------------------------

class MemorySettingsStore:
    """In-memory key/value store."""

    def __init__(self, data: Optional[dict] = None):
        self.data = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def save(self) -> None:
        pass


class JsonSettingsStore(MemorySettingsStore):
    """Key/value store persisted as a JSON object."""

    def __init__(self, path):
        self.path = Path(path)
        data = {}
        if self.path.exists():
            try:
                with open(self.path) as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError):
                logger.warning("Settings at %s unreadable, using defaults", self.path, exc_info=True)
                data = {}
        super().__init__(data if isinstance(data, dict) else {})

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self.data, f, indent=2)
