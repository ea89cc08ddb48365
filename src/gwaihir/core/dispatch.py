"""Wake dispatch orchestration."""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from gwaihir.core import metrics as m
from gwaihir.core.errors import (
    DispatchFailed,
    MachineNotFound,
    TransmissionFailed,
    TransmitError,
)
from gwaihir.core.metrics import MetricsSink, NullMetrics
from gwaihir.core.registry import Machine, MachineRegistry

logger = logging.getLogger(__name__)


class Transmitter(Protocol):
    def send(self, mac: str, broadcast: str) -> None: ...


class DispatchStatus(enum.Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of a successful dispatch."""

    machine: Machine
    status: DispatchStatus = DispatchStatus.SENT


class WakeDispatcher:
    """Looks machines up in the allowlist and sends their magic packets."""

    def __init__(
        self,
        registry: MachineRegistry,
        transmitter: Transmitter,
        metrics: Optional[MetricsSink] = None,
    ) -> None:
        self.registry = registry
        self.transmitter = transmitter
        self.metrics: MetricsSink = metrics if metrics is not None else NullMetrics()

    def dispatch(self, machine_id: str) -> DispatchResult:
        """
        Send a WoL packet to an allowlisted machine.

        Workflow:
            1. Look the machine up (unknown ids never reach the network)
            2. Send the magic packet once, no retries
            3. Record the outcome in logs and metrics

        Args:
            machine_id: Id of the machine to wake

        Returns:
            DispatchResult with status SENT

        Raises:
            MachineNotFound: If the id is not in the allowlist
            DispatchFailed: If the transmitter failed (wraps its error)
        """
        machine = self._lookup(machine_id)

        fields = {
            "machine_id": machine.id,
            "machine_name": machine.name,
            "mac": machine.normalized_mac,
            "broadcast": machine.broadcast,
        }
        logger.info(
            "Sending WoL packet to machine '%s' (%s) at MAC %s on broadcast %s",
            machine.name,
            machine.id,
            machine.normalized_mac,
            machine.broadcast,
            extra=fields,
        )

        try:
            self._send(machine)
        except TransmitError as exc:
            logger.error(
                "Failed to send WoL packet to machine '%s': %s",
                machine.id,
                exc,
                extra={**fields, "status": DispatchStatus.FAILED.value},
            )
            self.metrics.inc(m.WOL_FAILED)
            raise DispatchFailed(machine.id, exc) from exc

        logger.info(
            "WoL packet successfully sent to machine '%s'",
            machine.id,
            extra={**fields, "status": DispatchStatus.SENT.value},
        )
        self.metrics.inc(m.WOL_SENT)
        return DispatchResult(machine=machine, status=DispatchStatus.SENT)

    def get_machine(self, machine_id: str) -> Machine:
        machine = self._lookup(machine_id)
        self.metrics.inc(m.MACHINES_RETRIEVED)
        return machine

    def list_machines(self) -> list[Machine]:
        machines = self.registry.get_all()
        self.metrics.inc(m.MACHINES_LISTED)
        logger.debug("Machines list retrieved", extra={"count": len(machines)})
        return machines

    def _lookup(self, machine_id: str) -> Machine:
        try:
            return self.registry.get_by_id(machine_id)
        except MachineNotFound:
            logger.warning(
                "Machine not found: %s",
                machine_id,
                extra={"machine_id": machine_id, "status": DispatchStatus.NOT_FOUND.value},
            )
            self.metrics.inc(m.MACHINE_NOT_FOUND)
            raise

    def _send(self, machine: Machine) -> None:
        # Any other exception from the transmitter is reported as TransmissionFailed.
        try:
            self.transmitter.send(machine.mac, machine.broadcast)
        except TransmitError:
            raise
        except Exception as exc:
            raise TransmissionFailed(f"unexpected transmitter error: {exc}", exc) from exc
