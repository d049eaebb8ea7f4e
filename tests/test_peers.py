"""
Tests for peers.py — the known-peers table.
"""

import uuid

from udpbeacon.peers import PeerTable


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestPeerTable:
    def test_records_new_peer(self):
        clock = FakeClock()
        table = PeerTable(clock=clock)
        identity = uuid.uuid4()
        table.on_receive_beacon(identity, "192.168.1.5", 6000)

        peers = table.get_peers()
        assert len(peers) == 1
        assert peers[0].identity == identity
        assert peers[0].endpoint == "192.168.1.5:6000"
        assert peers[0].first_seen == peers[0].last_seen == 1000.0

    def test_refresh_updates_address_and_last_seen(self):
        clock = FakeClock()
        table = PeerTable(clock=clock)
        identity = uuid.uuid4()
        table.on_receive_beacon(identity, "192.168.1.5", 6000)
        clock.now += 3
        table.on_receive_beacon(identity, "192.168.1.6", 6001)

        peer = table.get(identity)
        assert len(table) == 1
        assert peer.endpoint == "192.168.1.6:6001"
        assert peer.first_seen == 1000.0
        assert peer.last_seen == 1003.0

    def test_expires_stale_peers(self):
        clock = FakeClock()
        table = PeerTable(timeout=15, clock=clock)
        old, fresh = uuid.uuid4(), uuid.uuid4()
        table.on_receive_beacon(old, "10.0.0.1", 1)
        clock.now += 10
        table.on_receive_beacon(fresh, "10.0.0.2", 2)
        clock.now += 6

        assert [p.identity for p in table.get_peers()] == [fresh]
        assert table.get(old) is None

    def test_on_change_reports_new_and_refresh(self):
        changes = []
        table = PeerTable(on_change=lambda peer, is_new: changes.append((peer.port, is_new)))
        identity = uuid.uuid4()
        table.on_receive_beacon(identity, "10.0.0.1", 1)
        table.on_receive_beacon(identity, "10.0.0.1", 2)
        assert changes == [(1, True), (2, False)]

    def test_failing_on_change_keeps_tracking(self):
        def listener(peer, is_new):
            raise ValueError("listener broke")

        table = PeerTable(on_change=listener)
        identity = uuid.uuid4()
        table.on_receive_beacon(identity, "10.0.0.1", 1)
        table.on_receive_beacon(identity, "10.0.0.2", 2)
        assert table.get(identity).address == "10.0.0.2"
        assert len(table) == 1

    def test_returns_copies(self):
        table = PeerTable()
        identity = uuid.uuid4()
        table.on_receive_beacon(identity, "10.0.0.1", 1)
        table.get_peers()[0].port = 99
        assert table.get(identity).port == 1

    def test_on_error_keeps_last_error(self):
        table = PeerTable()
        error = OSError("bind failed")
        table.on_error(error)
        assert table.last_error is error

    def test_clear(self):
        table = PeerTable()
        table.on_receive_beacon(uuid.uuid4(), "10.0.0.1", 1)
        table.clear()
        assert len(table) == 0
