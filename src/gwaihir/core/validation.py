"""MAC and broadcast address validation."""

import ipaddress
import re

from gwaihir.core.errors import InvalidBroadcastFormat, InvalidMACFormat

# Six hex octets with a single separator style, "AA:BB:CC:DD:EE:FF" or "AA-BB-CC-DD-EE-FF".
_MAC_RE = re.compile(r"[0-9A-Fa-f]{2}([:\-])(?:[0-9A-Fa-f]{2}\1){4}[0-9A-Fa-f]{2}")


def validate_mac(mac: str) -> None:
    """
    Check that a MAC address is six 2-digit hex octets separated uniformly by ':' or '-'.

    Raises:
        InvalidMACFormat: If the address is malformed or uses mixed separators
    """
    if not isinstance(mac, str) or not _MAC_RE.fullmatch(mac):
        raise InvalidMACFormat(mac)


def validate_broadcast(broadcast: str) -> None:
    """
    Check that a broadcast address is an IPv4 dotted quad.

    Raises:
        InvalidBroadcastFormat: If the address is IPv6 or not an IP address at all
    """
    if not isinstance(broadcast, str):
        raise InvalidBroadcastFormat(broadcast)
    try:
        ipaddress.IPv4Address(broadcast)
    except ValueError as exc:
        raise InvalidBroadcastFormat(broadcast) from exc


def normalize_mac(mac: str) -> str:
    """Return the canonical colon-separated, uppercase form of a MAC address."""
    return mac.replace("-", ":").upper()


def parse_mac(mac: str) -> bytes:
    """
    Parse a MAC address into its 6 raw bytes.

    Raises:
        InvalidMACFormat: If the address is malformed
    """
    validate_mac(mac)
    return bytes.fromhex(normalize_mac(mac).replace(":", ""))
