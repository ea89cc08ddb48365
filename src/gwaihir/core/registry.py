"""Machine allowlist: validated, immutable registry of wakeable machines."""

import logging
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Any, Iterable, Iterator, Mapping

from gwaihir.core.errors import (
    DuplicateMachineID,
    InvalidMachine,
    MachineNotFound,
    ValidationError,
)
from gwaihir.core.validation import normalize_mac, validate_broadcast, validate_mac

logger = logging.getLogger(__name__)

_FIELDS = ("id", "name", "mac", "broadcast")


@dataclass(frozen=True)
class Machine:
    """A named wake target."""

    id: str
    name: str
    mac: str
    broadcast: str

    def validate(self) -> None:
        """
        Check the machine's fields.

        Raises:
            ValueError: If id or name is empty
            ValidationError: If the MAC or broadcast address is malformed
        """
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("machine ID must be a non-empty string")
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("machine name must be a non-empty string")
        validate_mac(self.mac)
        validate_broadcast(self.broadcast)

    @property
    def normalized_mac(self) -> str:
        return normalize_mac(self.mac)

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_record(cls, raw: Mapping[str, Any]) -> "Machine":
        return cls(**{f: raw.get(f, "") for f in _FIELDS})


class MachineRegistry:
    """
    Read-only mapping of machine id to Machine.

    Built once from raw records; there are no insert or delete operations,
    so concurrent readers need no locking.
    """

    def __init__(self, machines: Mapping[str, Machine]) -> None:
        self._machines: Mapping[str, Machine] = MappingProxyType(dict(machines))

    @classmethod
    def from_records(cls, raw_machines: Iterable[Mapping[str, Any]]) -> "MachineRegistry":
        return build_registry(raw_machines)

    def get_by_id(self, machine_id: str) -> Machine:
        """
        Look up a machine by id.

        Raises:
            MachineNotFound: If no machine has this id
        """
        try:
            return self._machines[machine_id]
        except (KeyError, TypeError):
            raise MachineNotFound(machine_id) from None

    def get_all(self) -> list[Machine]:
        """Return all machines in configuration order (empty list when none)."""
        return list(self._machines.values())

    def exists(self, machine_id: str) -> bool:
        try:
            self.get_by_id(machine_id)
        except MachineNotFound:
            return False
        return True

    def __len__(self) -> int:
        return len(self._machines)

    def __contains__(self, machine_id: object) -> bool:
        return isinstance(machine_id, str) and self.exists(machine_id)

    def __iter__(self) -> Iterator[Machine]:
        return iter(self.get_all())


def build_registry(raw_machines: Iterable[Mapping[str, Any]]) -> MachineRegistry:
    """
    Validate raw machine records and build a registry from them.

    Records are processed in order and construction stops at the first
    problem; a registry is only returned when every record is valid.

    Args:
        raw_machines: Sequence of mappings with id, name, mac and broadcast keys

    Returns:
        MachineRegistry containing every record

    Raises:
        InvalidMachine: If a record is malformed (carries its index and id)
        DuplicateMachineID: If two records share an id
    """
    machines: dict[str, Machine] = {}
    for index, raw in enumerate(raw_machines or []):
        if not isinstance(raw, Mapping):
            raise InvalidMachine(index, None, "machine entry must be a mapping")
        machine = Machine.from_record(raw)
        try:
            machine.validate()
        except (ValueError, ValidationError) as exc:
            raise InvalidMachine(index, machine.id, str(exc)) from exc
        if machine.id in machines:
            raise DuplicateMachineID(machine.id)
        machines[machine.id] = machine
        logger.debug("Machine registered: %s (%s)", machine.id, machine.name)

    logger.info("Machine registry built with %d machine(s)", len(machines))
    return MachineRegistry(machines)
