"""
ReceiverSession - One OSC send target.

A session wraps a destination (address, port) and a python-osc UDP client.
Two sessions are equal when they point at the same destination, whatever
key they are stored under.
"""

import logging

from pythonosc.osc_message_builder import OscMessageBuilder
from pythonosc.udp_client import SimpleUDPClient

from ..errors import TransportError


logger = logging.getLogger(__name__)


class ReceiverSession:
    """
    Sends OSC messages to a single receiver.

    Example usage:
        session = ReceiverSession("VRChat-Client-1A2B3C", "127.0.0.1", 9000)
        session.send("/tracking/trackers/1/position", 0.0, 1.0, 0.0)
        session.send_flag("/chatbox/input", "Calibrating", True)
        session.close()
    """

    def __init__(self, key: str, address: str, port: int, client_factory=SimpleUDPClient):
        """
        Initialize the session and its UDP client.

        Args:
            key: Registry key (service name or "MANUAL")
            address: Destination IP address
            port: Destination UDP port
            client_factory: Callable (address, port) -> client with send_message/send
        """
        self.key = key
        self.address = address
        self.port = int(port)
        self._client = client_factory(address, self.port)

    @property
    def endpoint(self):
        return (self.address, self.port)

    @property
    def closed(self) -> bool:
        return self._client is None

    def send(self, osc_address: str, *args):
        """
        Send a message whose arguments are all floats (",fff" for a vector).

        Args:
            osc_address: OSC address pattern
            *args: Numeric arguments, sent as float32

        Raises:
            TransportError: If the session is closed or the socket send fails
        """
        client = self._require_client()
        try:
            client.send_message(osc_address, [float(a) for a in args])
        except OSError as e:
            raise TransportError(f"{self.key} ({self.address}:{self.port}): {e}") from e

    def send_flag(self, osc_address: str, text: str, value: bool):
        """
        Send a string followed by a boolean, type tags ",sT" or ",sF".

        Args:
            osc_address: OSC address pattern
            text: String argument
            value: Boolean argument, encoded in the type tag

        Raises:
            TransportError: If the session is closed or the socket send fails
        """
        client = self._require_client()
        builder = OscMessageBuilder(address=osc_address)
        builder.add_arg(text, OscMessageBuilder.ARG_TYPE_STRING)
        builder.add_arg(bool(value))
        try:
            client.send(builder.build())
        except OSError as e:
            raise TransportError(f"{self.key} ({self.address}:{self.port}): {e}") from e

    def close(self):
        """Close the UDP socket. Further sends raise TransportError."""
        client, self._client = self._client, None
        if client is None:
            return
        logger.debug("Closing session %s -> %s:%d", self.key, self.address, self.port)
        # python-osc clients keep their socket in _sock and expose no close()
        sock = getattr(client, "_sock", None)
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.debug("Closing socket of %s failed: %s", self.key, e)

    def _require_client(self):
        if self._client is None:
            raise TransportError(f"Session {self.key} is closed")
        return self._client

    def __eq__(self, other):
        if not isinstance(other, ReceiverSession):
            return NotImplemented
        return self.endpoint == other.endpoint

    def __hash__(self):
        return hash(self.endpoint)

    def __repr__(self):
        return f"ReceiverSession(key={self.key!r}, address={self.address!r}, port={self.port})"
