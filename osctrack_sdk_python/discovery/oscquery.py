"""
OSCQuery HTTP side: querying remote services and answering queries about us.

An OSCQuery service exposes its OSC address tree as JSON at "/" and its
host information (OSC ip/port/transport) at "/?HOST_INFO".
"""

import http.server
import ipaddress
import json
import logging
import socket
import socketserver
import threading

import httpx

from ..types import HostInfo, OSCQueryNode


logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT = 5.0


def _url(address: str, port: int, query: str = "") -> str:
    host = address
    try:
        if ipaddress.ip_address(address).version == 6:
            host = f"[{address}]"
    except ValueError:
        pass
    return f"http://{host}:{port}/{query}"


class OSCQueryClient:
    """
    Async OSCQuery client built on httpx.

    Example usage:
        client = OSCQueryClient(timeout=2.0)
        tree = await client.get_tree("192.168.1.20", 51234)
        if tree.get_node_with_path("/tracking/trackers"):
            info = await client.get_host_info("192.168.1.20", 51234)
            print(info.osc_port)
    """

    def __init__(self, timeout: float = DEFAULT_QUERY_TIMEOUT, transport=None):
        """
        Args:
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        self.timeout = timeout
        self.transport = transport

    async def get_tree(self, address: str, port: int) -> OSCQueryNode:
        """Fetch and parse the full OSC address tree of a service."""
        data = await self._get_json(_url(address, port))
        return OSCQueryNode.from_json(data)

    async def get_host_info(self, address: str, port: int) -> HostInfo:
        """Fetch the HOST_INFO block of a service."""
        data = await self._get_json(_url(address, port, "?HOST_INFO"))
        return HostInfo(
            name=data.get("NAME", ""),
            osc_ip=data.get("OSC_IP", address),
            osc_port=int(data["OSC_PORT"]),
            osc_transport=data.get("OSC_TRANSPORT", "UDP"),
        )

    async def _get_json(self, url: str) -> dict:
        # LAN peers, never route through a proxy from the environment
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport, trust_env=False) as client:
            resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected OSCQuery payload from {url}")
        return data


def get_local_ip() -> str:
    """Get this machine's LAN IP address."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.settimeout(2)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


def host_info_payload(name: str, osc_ip: str, osc_port: int) -> dict:
    return {
        "NAME": name,
        "OSC_IP": osc_ip,
        "OSC_PORT": osc_port,
        "OSC_TRANSPORT": "UDP",
        "EXTENSIONS": {"ACCESS": True, "VALUE": True, "DESCRIPTION": True},
    }


def root_tree_payload() -> dict:
    # We only send, so nothing below the root is readable or writable.
    return {"FULL_PATH": "/", "ACCESS": 0, "DESCRIPTION": "root node", "CONTENTS": {}}


class OSCQueryHTTPHandler(http.server.BaseHTTPRequestHandler):
    """Answers "/" with our (empty) tree and "/?HOST_INFO" with our host info."""

    server_version = "OSCTrack/1.0"

    def log_message(self, format, *args):
        logger.debug(format, *args)

    def do_GET(self):
        if self.path.endswith("?HOST_INFO"):
            self._json_response(self.server.host_info)
            return
        if self.path in ("/", ""):
            self._json_response(root_tree_payload())
            return
        self.send_error(404)

    def _json_response(self, data: dict, status: int = 200):
        body = json.dumps(data).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class OSCQueryHTTPServer(socketserver.ThreadingMixIn, http.server.HTTPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, port: int, host_info: dict, bind: str = "0.0.0.0"):
        self.host_info = host_info
        super().__init__((bind, port), OSCQueryHTTPHandler)

    def start(self) -> threading.Thread:
        """Serve in a daemon thread."""
        thread = threading.Thread(target=self.serve_forever, daemon=True)
        thread.start()
        logger.info("OSCQuery HTTP server listening on port %d", self.server_address[1])
        return thread

    def stop(self):
        self.shutdown()
        self.server_close()
