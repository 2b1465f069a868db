# tests/test_network.py
import socket
from unittest.mock import MagicMock, patch

import pytest

from amcp_core.network import Transport, TransportError


@pytest.fixture
def mock_sock():
    with patch("socket.create_connection") as create:
        sock = MagicMock(spec=socket.socket)
        create.return_value = sock
        yield create, sock


def test_connect_sets_receive_timeout(mock_sock):
    create, sock = mock_sock
    transport = Transport("10.0.0.1", 5250, connect_timeout=2.0, receive_timeout=3.0)
    transport.connect()

    create.assert_called_once_with(("10.0.0.1", 5250), timeout=2.0)
    sock.settimeout.assert_called_once_with(3.0)
    assert transport.sock is sock


def test_connect_refused_raises_transport_error(mock_sock):
    create, _ = mock_sock
    create.side_effect = ConnectionRefusedError("refused")

    transport = Transport("10.0.0.1", 5250)
    with pytest.raises(TransportError):
        transport.connect()
    assert transport.sock is None


def test_reconnect_closes_previous_socket(mock_sock):
    create, first = mock_sock
    second = MagicMock(spec=socket.socket)
    create.side_effect = [first, second]

    transport = Transport("10.0.0.1", 5250)
    transport.connect()
    transport.connect()

    first.close.assert_called_once()
    assert transport.sock is second


def test_close_is_idempotent(mock_sock):
    _, sock = mock_sock
    transport = Transport("10.0.0.1", 5250)
    transport.connect()

    transport.close()
    transport.close()

    sock.close.assert_called_once()
    assert transport.is_open() is False


def test_write_line_appends_crlf(mock_sock):
    _, sock = mock_sock
    transport = Transport("10.0.0.1", 5250)
    transport.connect()

    transport.write_line("INFO")
    sock.sendall.assert_called_once_with(b"INFO\r\n")


def test_write_error_raises_transport_error(mock_sock):
    _, sock = mock_sock
    sock.sendall.side_effect = BrokenPipeError("broken")
    transport = Transport("10.0.0.1", 5250)
    transport.connect()

    with pytest.raises(TransportError):
        transport.write_line("INFO")


def test_io_without_connection_fails():
    transport = Transport("10.0.0.1", 5250)
    with pytest.raises(TransportError, match="未连接"):
        transport.read_line()
    with pytest.raises(TransportError, match="未连接"):
        transport.write_line("INFO")


def test_read_line_reassembles_chunks(mock_sock):
    _, sock = mock_sock
    sock.recv.side_effect = [b"201 VER", b"SION OK\r\n2.0", b".7.1 Stable\r\n"]
    transport = Transport("10.0.0.1", 5250)
    transport.connect()

    assert transport.read_line() == "201 VERSION OK"
    assert transport.read_line() == "2.0.7.1 Stable"


def test_read_line_splits_buffered_lines(mock_sock):
    _, sock = mock_sock
    sock.recv.side_effect = [b"200 OK\r\nA\r\n\r\n"]
    transport = Transport("10.0.0.1", 5250)
    transport.connect()

    assert [transport.read_line() for _ in range(3)] == ["200 OK", "A", ""]
    assert sock.recv.call_count == 1


def test_lone_lf_is_not_a_terminator(mock_sock):
    _, sock = mock_sock
    sock.recv.side_effect = [b"abc\ndef\r\n"]
    transport = Transport("10.0.0.1", 5250)
    transport.connect()

    assert transport.read_line() == "abc\ndef"


def test_eof_before_terminator_raises(mock_sock):
    _, sock = mock_sock
    sock.recv.side_effect = [b"200 OK\r\nLINE", b""]
    transport = Transport("10.0.0.1", 5250)
    transport.connect()

    assert transport.read_line() == "200 OK"
    with pytest.raises(TransportError, match="对端已关闭"):
        transport.read_line()


def test_receive_timeout_raises(mock_sock):
    _, sock = mock_sock
    sock.recv.side_effect = socket.timeout("timed out")
    transport = Transport("10.0.0.1", 5250, receive_timeout=0.5)
    transport.connect()

    with pytest.raises(TransportError, match="超时"):
        transport.read_line()


def test_context_manager_round_trip(peer):
    peer.replies["INFO"] = b"201 INFO OK\r\nchannel 1\r\n"

    with Transport("127.0.0.1", peer.port, receive_timeout=1.0) as transport:
        assert transport.is_open()
        transport.write_line("INFO")
        assert transport.read_line() == "201 INFO OK"
        assert transport.read_line() == "channel 1"

    assert transport.sock is None
