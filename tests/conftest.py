"""pytest configuration and shared fakes for osctrack_sdk_python tests."""

import pytest

from osctrack_sdk_python.sender.session import ReceiverSession
from osctrack_sdk_python.types import HostInfo, OSCQueryNode


class RecordingClient:
    """Stands in for pythonosc's SimpleUDPClient and records what is sent."""

    def __init__(self, address, port):
        self.address = address
        self.port = port
        self.messages = []
        self.built = []
        self.fail = False

    def send_message(self, address, value):
        if self.fail:
            raise OSError("network is unreachable")
        self.messages.append((address, list(value)))

    def send(self, content):
        if self.fail:
            raise OSError("network is unreachable")
        self.built.append(content)


class ClientFactory:
    def __init__(self):
        self.created = []

    def __call__(self, address, port):
        client = RecordingClient(address, port)
        self.created.append(client)
        return client

    @property
    def messages(self):
        return [m for c in self.created for m in c.messages]


class FakeQueryClient:
    """OSCQuery client answering from dicts instead of HTTP."""

    def __init__(self, trees=None, ports=None, errors=None):
        self.trees = trees or {}
        self.ports = ports or {}
        self.errors = errors or {}
        self.calls = []

    async def get_tree(self, address, port):
        self.calls.append(("tree", address, port))
        if (address, port) in self.errors:
            raise self.errors[(address, port)]
        return OSCQueryNode.from_json(self.trees[(address, port)])

    async def get_host_info(self, address, port):
        self.calls.append(("host_info", address, port))
        return HostInfo(name="peer", osc_ip=address, osc_port=self.ports[(address, port)])


def tracker_tree():
    return {
        "FULL_PATH": "/",
        "CONTENTS": {
            "tracking": {
                "FULL_PATH": "/tracking",
                "CONTENTS": {
                    "trackers": {"FULL_PATH": "/tracking/trackers", "ACCESS": 2, "CONTENTS": {}},
                },
            },
        },
    }


def avatar_only_tree():
    return {
        "FULL_PATH": "/",
        "CONTENTS": {
            "avatar": {"FULL_PATH": "/avatar", "CONTENTS": {}},
        },
    }


@pytest.fixture
def clients():
    return ClientFactory()


@pytest.fixture
def session_factory(clients):
    def factory(key, address, port):
        return ReceiverSession(key, address, port, client_factory=clients)
    return factory
