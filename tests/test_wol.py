"""Tests for Wake-on-LAN functionality."""

import socket
from typing import Any, Optional

import pytest

from gwaihir.core.errors import (
    DeadlineExceeded,
    InvalidBroadcastAddress,
    InvalidMACFormat,
    TransmissionFailed,
    TransmitError,
    TransportUnavailable,
)
from gwaihir.core.wol import BroadcastTransmitter


class FakeSocket:
    """Records what the transmitter does with its socket."""

    def __init__(
        self,
        send_error: Optional[BaseException] = None,
        bind_error: Optional[OSError] = None,
    ) -> None:
        self.send_error = send_error
        self.bind_error = bind_error
        self.sent: list[tuple[bytes, Any]] = []
        self.options: list[tuple[int, int, int]] = []
        self.bound: Optional[tuple[str, int]] = None
        self.timeout: Optional[float] = None
        self.closed = False

    def __enter__(self) -> "FakeSocket":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def setsockopt(self, level: int, option: int, value: int) -> None:
        self.options.append((level, option, value))

    def bind(self, address: tuple[str, int]) -> None:
        if self.bind_error is not None:
            raise self.bind_error
        self.bound = address

    def settimeout(self, timeout: Optional[float]) -> None:
        self.timeout = timeout

    def sendto(self, data: bytes, address: Any) -> int:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((data, address))
        return len(data)

    def close(self) -> None:
        self.closed = True


class FakeSocketFactory:
    def __init__(self, sock: Optional[FakeSocket] = None, error: Optional[OSError] = None) -> None:
        self.sock = sock or FakeSocket()
        self.error = error
        self.calls: list[tuple[int, int]] = []

    def __call__(self, family: int, kind: int) -> FakeSocket:
        self.calls.append((family, kind))
        if self.error is not None:
            raise self.error
        return self.sock


class TestSend:
    def test_sends_single_datagram_to_port_9(self) -> None:
        factory = FakeSocketFactory()
        transmitter = BroadcastTransmitter(socket_factory=factory)

        transmitter.send("AA:BB:CC:DD:EE:FF", "192.168.1.255")

        assert factory.calls == [(socket.AF_INET, socket.SOCK_DGRAM)]
        assert len(factory.sock.sent) == 1
        packet, destination = factory.sock.sent[0]
        assert destination == ("192.168.1.255", 9)
        assert packet == b"\xff" * 6 + bytes.fromhex("AABBCCDDEEFF") * 16

    def test_dash_separated_mac(self) -> None:
        factory = FakeSocketFactory()

        BroadcastTransmitter(socket_factory=factory).send("aa-bb-cc-dd-ee-ff", "10.0.0.255")

        packet, _ = factory.sock.sent[0]
        assert packet[6:12] == b"\xaa\xbb\xcc\xdd\xee\xff"

    def test_binds_ephemeral_port_and_enables_broadcast(self) -> None:
        factory = FakeSocketFactory()

        BroadcastTransmitter(socket_factory=factory).send("AA:BB:CC:DD:EE:FF", "192.168.1.255")

        assert factory.sock.bound == ("0.0.0.0", 0)
        assert (socket.SOL_SOCKET, socket.SO_BROADCAST, 1) in factory.sock.options

    def test_custom_port(self) -> None:
        factory = FakeSocketFactory()

        BroadcastTransmitter(port=7, socket_factory=factory).send(
            "AA:BB:CC:DD:EE:FF", "192.168.1.255"
        )

        assert factory.sock.sent[0][1] == ("192.168.1.255", 7)

    def test_closes_socket_on_success(self) -> None:
        factory = FakeSocketFactory()

        BroadcastTransmitter(socket_factory=factory).send("AA:BB:CC:DD:EE:FF", "192.168.1.255")

        assert factory.sock.closed is True


class TestInvalidMAC:
    @pytest.mark.parametrize("mac", ["invalid", "AA:BB:CC:DD:EE", "AA:BB-CC:DD:EE:FF", ""])
    def test_never_opens_socket(self, mac: str) -> None:
        factory = FakeSocketFactory()

        with pytest.raises(InvalidMACFormat):
            BroadcastTransmitter(socket_factory=factory).send(mac, "192.168.1.255")

        assert factory.calls == []
        assert factory.sock.sent == []

    def test_is_a_transmit_error(self) -> None:
        with pytest.raises(TransmitError):
            BroadcastTransmitter(socket_factory=FakeSocketFactory()).send("bad", "192.168.1.255")


class TestFailureClassification:
    def test_socket_creation_failure(self) -> None:
        factory = FakeSocketFactory(error=OSError(24, "Too many open files"))

        with pytest.raises(TransportUnavailable) as exc_info:
            BroadcastTransmitter(socket_factory=factory).send("AA:BB:CC:DD:EE:FF", "192.168.1.255")

        assert isinstance(exc_info.value.cause, OSError)

    def test_bind_failure_is_transport_unavailable(self) -> None:
        err = OSError(98, "Address already in use")
        factory = FakeSocketFactory(sock=FakeSocket(bind_error=err))

        with pytest.raises(TransportUnavailable) as exc_info:
            BroadcastTransmitter(socket_factory=factory).send("AA:BB:CC:DD:EE:FF", "192.168.1.255")

        assert exc_info.value.cause is err
        assert factory.sock.sent == []
        assert factory.sock.closed is True

    @pytest.mark.parametrize("addr", ["invalid", "::1", "300.1.1.1", ""])
    def test_bad_broadcast_address(self, addr: str) -> None:
        factory = FakeSocketFactory()

        with pytest.raises(InvalidBroadcastAddress):
            BroadcastTransmitter(socket_factory=factory).send("AA:BB:CC:DD:EE:FF", addr)

        assert factory.sock.sent == []
        assert factory.sock.closed is True

    def test_write_failure_wraps_cause(self) -> None:
        err = OSError(101, "Network is unreachable")
        factory = FakeSocketFactory(sock=FakeSocket(send_error=err))

        with pytest.raises(TransmissionFailed) as exc_info:
            BroadcastTransmitter(socket_factory=factory).send("AA:BB:CC:DD:EE:FF", "192.168.1.255")

        assert exc_info.value.cause is err
        assert exc_info.value.__cause__ is err
        assert factory.sock.closed is True

    def test_timeout_is_deadline_exceeded(self) -> None:
        factory = FakeSocketFactory(sock=FakeSocket(send_error=socket.timeout("timed out")))

        with pytest.raises(DeadlineExceeded):
            BroadcastTransmitter(timeout=0.5, socket_factory=factory).send(
                "AA:BB:CC:DD:EE:FF", "192.168.1.255"
            )

        assert factory.sock.closed is True


class TestDeadline:
    def test_default_timeout_applied(self) -> None:
        factory = FakeSocketFactory()

        BroadcastTransmitter(timeout=1.5, socket_factory=factory).send(
            "AA:BB:CC:DD:EE:FF", "192.168.1.255"
        )

        assert factory.sock.timeout == 1.5

    def test_per_call_timeout_overrides_default(self) -> None:
        factory = FakeSocketFactory()

        BroadcastTransmitter(timeout=1.5, socket_factory=factory).send(
            "AA:BB:CC:DD:EE:FF", "192.168.1.255", timeout=0.25
        )

        assert factory.sock.timeout == 0.25

    def test_no_timeout_means_blocking(self) -> None:
        factory = FakeSocketFactory()

        BroadcastTransmitter(socket_factory=factory).send("AA:BB:CC:DD:EE:FF", "192.168.1.255")

        assert factory.sock.timeout is None


class TestLoopback:
    def test_packet_arrives_over_real_socket(self) -> None:
        """Send to a local UDP listener and check the datagram byte-for-byte."""
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as listener:
            listener.bind(("127.0.0.1", 0))
            listener.settimeout(2)
            port = listener.getsockname()[1]

            BroadcastTransmitter(port=port, timeout=2).send("01:02:03:04:05:06", "127.0.0.1")

            data, _ = listener.recvfrom(1024)

        assert data == b"\xff" * 6 + bytes(range(1, 7)) * 16
