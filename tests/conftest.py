import pytest

from connectall_core.codec import CardCodec
from connectall_core.envelope import CardPayload
from connectall_core.identity import SigningKeyPair
from connectall_core.transport.transport_base import BaseTransport, TransportTransientError


class RecordingTransport(BaseTransport):
    """Transport double: records sends, optionally fails them."""
    name = "recording"

    def __init__(self, fail_sends=False):
        super().__init__()
        self.sent = []
        self.invited = []
        self.started = False
        self.fail_sends = fail_sends

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def invite(self, peer):
        self.invited.append(peer)
        return True

    def send(self, data, peers, timeout=None):
        if self.fail_sends:
            raise TransportTransientError("link dropped")
        self.sent.append((data, list(peers), timeout))


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def peer_keys():
    return SigningKeyPair.generate()


@pytest.fixture
def peer_card_bytes(peer_keys):
    card = CardPayload.for_key("b2", "Bob", peer_keys, ts=1700000000)
    return CardCodec().encode_wire(card, peer_keys)
