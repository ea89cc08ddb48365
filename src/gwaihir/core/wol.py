"""Wake-on-LAN functionality."""

import logging
import socket
from typing import Callable, Optional

from gwaihir.core.errors import (
    DeadlineExceeded,
    InvalidBroadcastAddress,
    InvalidBroadcastFormat,
    TransmissionFailed,
    TransportUnavailable,
)
from gwaihir.core.packet import WOL_PORT, build_magic_packet
from gwaihir.core.validation import normalize_mac, parse_mac, validate_broadcast

logger = logging.getLogger(__name__)

SocketFactory = Callable[[int, int], socket.socket]


class BroadcastTransmitter:
    """Sends magic packets as single UDP datagrams to ``<broadcast>:<port>``."""

    def __init__(
        self,
        port: int = WOL_PORT,
        timeout: Optional[float] = None,
        socket_factory: SocketFactory = socket.socket,
    ) -> None:
        self.port = port
        self.timeout = timeout
        self._socket_factory = socket_factory

    def send(self, mac: str, broadcast: str, timeout: Optional[float] = None) -> None:
        """
        Send a Wake-on-LAN magic packet to wake a remote machine.

        Args:
            mac: MAC address of the target machine (e.g., "AA:BB:CC:DD:EE:FF")
            broadcast: IPv4 broadcast address of the target's network
            timeout: Deadline in seconds for the write; defaults to the transmitter's

        Raises:
            InvalidMACFormat: If the MAC is malformed (no socket is opened)
            TransportUnavailable: If a UDP socket cannot be created
            InvalidBroadcastAddress: If the destination is not an IPv4 address
            DeadlineExceeded: If the write times out
            TransmissionFailed: If the write fails for any other reason
        """
        # Validate before normalizing so mixed separators are still rejected.
        packet = build_magic_packet(parse_mac(mac))
        normalized = normalize_mac(mac)
        deadline = timeout if timeout is not None else self.timeout

        try:
            sock = self._socket_factory(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            raise TransportUnavailable(f"failed to create UDP socket: {exc}", exc) from exc

        with sock:
            try:
                validate_broadcast(broadcast)
            except InvalidBroadcastFormat as exc:
                raise InvalidBroadcastAddress(
                    f"failed to resolve broadcast address '{broadcast}:{self.port}'", exc
                ) from exc
            destination = (broadcast, self.port)

            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
                sock.bind(("0.0.0.0", 0))
            except OSError as exc:
                raise TransportUnavailable(f"failed to prepare UDP socket: {exc}", exc) from exc

            try:
                sock.settimeout(deadline)
                sock.sendto(packet, destination)
            except TimeoutError as exc:
                raise DeadlineExceeded(
                    f"sending magic packet to {broadcast} exceeded {deadline}s", exc
                ) from exc
            except OSError as exc:
                raise TransmissionFailed(
                    f"failed to send magic packet to {broadcast}: {exc}", exc
                ) from exc

        logger.debug("WOL packet for %s sent to %s:%d", normalized, broadcast, self.port)
