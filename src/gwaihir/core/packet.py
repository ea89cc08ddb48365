"""Wake-on-LAN magic packet construction."""

from wakeonlan import create_magic_packet

WOL_PORT = 9
MAC_SIZE = 6
MAGIC_PACKET_SIZE = 6 + 16 * MAC_SIZE


def build_magic_packet(mac_bytes: bytes) -> bytes:
    """
    Build a Wake-on-LAN magic packet.

    Format: 6 bytes of 0xFF followed by the MAC address repeated 16 times.

    Args:
        mac_bytes: The 6 raw bytes of the target MAC address

    Returns:
        The 102-byte packet
    """
    if len(mac_bytes) != MAC_SIZE:
        raise ValueError(f"MAC address must be {MAC_SIZE} bytes, got {len(mac_bytes)}")
    return create_magic_packet(bytes(mac_bytes).hex())
