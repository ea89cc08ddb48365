"""Error taxonomy for Gwaihir."""

from typing import Optional


class GwaihirError(Exception):
    """Base error for gwaihir."""


# ── Validation ────────────────────────────────────────────────────────────────


class ValidationError(GwaihirError):
    """Raised when a MAC or broadcast address is malformed."""


class InvalidBroadcastFormat(ValidationError):
    """Raised when a broadcast address is not an IPv4 dotted quad."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"invalid broadcast address {value!r}: must be an IPv4 address")


# ── Transmission ──────────────────────────────────────────────────────────────


class TransmitError(GwaihirError):
    """Base error for failures while sending a magic packet."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


class InvalidMACFormat(ValidationError, TransmitError):
    """Raised when a MAC address does not match XX:XX:XX:XX:XX:XX or XX-XX-XX-XX-XX-XX."""

    def __init__(self, value: object) -> None:
        self.value = value
        TransmitError.__init__(
            self,
            f"invalid MAC address {value!r}: must be in format "
            "XX:XX:XX:XX:XX:XX or XX-XX-XX-XX-XX-XX",
        )


class InvalidBroadcastAddress(TransmitError):
    """Raised when the destination address cannot be resolved."""


class TransportUnavailable(TransmitError):
    """Raised when a UDP socket cannot be created."""


class TransmissionFailed(TransmitError):
    """Raised when writing the packet to the network fails."""


class DeadlineExceeded(TransmitError):
    """Raised when the packet write does not complete before the deadline."""


# ── Registry ──────────────────────────────────────────────────────────────────


class RegistryError(GwaihirError):
    """Raised when the machine registry cannot be built."""


class InvalidMachine(RegistryError):
    """Raised for a machine record that fails validation."""

    def __init__(self, index: int, machine_id: object, cause: str) -> None:
        self.index = index
        self.machine_id = machine_id
        self.cause = cause
        super().__init__(f"invalid machine {machine_id!r} at index {index}: {cause}")


class DuplicateMachineID(RegistryError):
    """Raised when two machine records share an id."""

    def __init__(self, machine_id: str) -> None:
        self.machine_id = machine_id
        super().__init__(f"duplicate machine ID: {machine_id}")


# ── Dispatch ──────────────────────────────────────────────────────────────────


class MachineNotFound(GwaihirError):
    """Raised when a machine id is not in the allowlist."""

    def __init__(self, machine_id: str) -> None:
        self.machine_id = machine_id
        super().__init__(f"machine not found: {machine_id}")


class DispatchFailed(GwaihirError):
    """Raised when a machine was found but its magic packet could not be sent."""

    def __init__(self, machine_id: str, cause: TransmitError) -> None:
        self.machine_id = machine_id
        self.cause = cause
        super().__init__(f"failed to send WoL packet to {machine_id}: {cause}")


# ── Configuration ─────────────────────────────────────────────────────────────


class ConfigError(GwaihirError):
    """Raised for invalid or missing configuration."""
