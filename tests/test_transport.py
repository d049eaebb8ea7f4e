"""
Tests for transport.py — the real UDP socket, exercised over loopback.
"""

import socket

import pytest

from udpbeacon.transport import UdpTransport


def free_udp_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def transport():
    t = UdpTransport(free_udp_port(), timeout=0.5, broadcast_address="127.0.0.1")
    yield t
    t.close()


class TestUdpTransport:
    def test_receive_from_peer(self, transport):
        sender = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sender.bind(("127.0.0.1", 0))
        sender_port = sender.getsockname()[1]
        try:
            sender.sendto(b"hello", ("127.0.0.1", transport.port))
            data, address, port = transport.receive()
        finally:
            sender.close()

        assert data == b"hello"
        assert address == "127.0.0.1"
        assert port == sender_port

    def test_send_loops_back_to_own_port(self, transport):
        transport.send(b"beacon")
        data, address, port = transport.receive()
        assert data == b"beacon"
        assert port == transport.port

    def test_receive_times_out(self):
        t = UdpTransport(free_udp_port(), timeout=0.05)
        try:
            with pytest.raises(socket.timeout):
                t.receive()
        finally:
            t.close()

    def test_close_is_idempotent(self, transport):
        transport.close()
        transport.close()

    def test_use_after_close_raises_oserror(self, transport):
        transport.close()
        with pytest.raises(OSError):
            transport.send(b"x")
        with pytest.raises(OSError):
            transport.receive()

    def test_two_transports_share_a_port(self):
        port = free_udp_port()
        first = UdpTransport(port, timeout=0.1)
        try:
            second = UdpTransport(port, timeout=0.1)
            second.close()
        finally:
            first.close()

    def test_context_manager_closes(self):
        with UdpTransport(free_udp_port(), timeout=0.1) as t:
            pass
        with pytest.raises(OSError):
            t.receive()
