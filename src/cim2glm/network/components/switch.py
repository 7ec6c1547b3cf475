from __future__ import annotations

from dataclasses import dataclass
import logging

from ..context import TranslationContext

__all__ = ["SWITCH_TYPES", "SwitchRecord", "process_switches"]

logger = logging.getLogger(__name__)


# CIM switch classes written as GridLAB-D switches.
SWITCH_TYPES = ("LoadBreakSwitch", "Fuse", "Breaker", "Disconnector")


@dataclass
class SwitchRecord:
    name: str
    kind: str
    from_bus: str
    to_bus: str
    phases: str
    is_open: bool = False

    @property
    def status(self) -> str:
        return "OPEN" if self.is_open else "CLOSED"


def process_switches(ctx: TranslationContext) -> list[SwitchRecord]:
    """
    Creates a switch for every load break switch, fuse, breaker and
    disconnector, in their normal position.
    """
    cim = ctx.cim
    records = []
    for kind, swt in cim.iter_typed(SWITCH_TYPES):
        bus1 = ctx.bus_name(swt, 1)
        bus2 = ctx.bus_name(swt, 2)
        if bus1 is None or bus2 is None:
            continue
        phs = cim.wire_phases(swt, "SwitchPhase.Switch", "SwitchPhase.phaseSide1")
        nd1 = ctx.registry.get_bus(bus1)
        nd2 = ctx.registry.get_bus(bus2)
        nd1.set_nominal_voltage(ctx.base_voltage_ln(swt))
        nd1.add_phases(phs)
        nd2.set_nominal_voltage(nd1.nominal_voltage)
        nd2.add_phases(phs)
        records.append(SwitchRecord(
            name=f"swt_{cim.name(swt)}",
            kind=kind,
            from_bus=bus1,
            to_bus=bus2,
            phases=phs,
            is_open=cim.get_attribute(swt, "Switch.normalOpen", False)
        ))
    logger.info(f"processed {len(records)} switches")
    return records
