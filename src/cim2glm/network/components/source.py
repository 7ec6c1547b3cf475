from __future__ import annotations

from dataclasses import dataclass
import logging

from ...pint_setup import Q_
from ..context import TranslationContext, SQRT3
from ..diagnostics import DiagnosticKind

__all__ = ["SourceRecord", "process_sources"]

logger = logging.getLogger(__name__)


@dataclass
class SourceRecord:
    """
    A CIM EnergySource. Only the first source becomes the swing bus; the
    others are kept for reference.

    Parameters
    ----------
    name:
        Name of the source. The swing source is named after its equipment
        container (the feeder).
    bus:
        Bus the source is connected to.
    voltage_magnitude:
        Source voltage (V, line-to-line).
    voltage_angle:
        Source voltage angle (degrees).
    nominal_voltage:
        Nominal source voltage (V, line-to-line).
    r1, x1, r0, x0:
        Positive- and zero-sequence source impedance (ohm).
    swing:
        True for the source that defines the swing bus.
    """
    name: str
    bus: str
    voltage_magnitude: float
    voltage_angle: float
    nominal_voltage: float
    r1: float
    x1: float
    r0: float
    x0: float
    swing: bool = False


def process_sources(ctx: TranslationContext) -> list[SourceRecord]:
    """
    Marks the swing bus. With no EnergySource in the model, the bus at the
    first terminal of the first Breaker becomes the swing bus.
    """
    cim = ctx.cim
    vmult = ctx.config.voltage_multiplier
    sources: list[SourceRecord] = []
    have_swing = False
    for res in cim.instances("EnergySource"):
        bus = ctx.bus(res, 1)
        if bus is None:
            continue
        name = cim.name(res)
        vmag = vmult * cim.get_attribute(res, "EnergySource.voltageMagnitude", 1.0)
        vnom = vmult * cim.get_attribute(res, "EnergySource.nominalVoltage", vmag)
        vang = Q_(cim.get_attribute(res, "EnergySource.voltageAngle", 0.0), 'rad').to('deg').m
        x1 = cim.get_attribute(res, "EnergySource.x", 0.001)
        src = SourceRecord(
            name=name,
            bus=bus.name,
            voltage_magnitude=vmag,
            voltage_angle=vang,
            nominal_voltage=vnom,
            r1=cim.get_attribute(res, "EnergySource.r", 0.0),
            x1=x1,
            r0=cim.get_attribute(res, "EnergySource.r0", 0.0),
            x0=cim.get_attribute(res, "EnergySource.x0", x1)
        )
        if not have_swing:
            container = cim.get_resource(res, "Equipment.EquipmentContainer")
            if container is not None:
                src.name = cim.name(container)
            src.swing = True
            bus.mark_swing()
            bus.set_nominal_voltage(vnom / SQRT3)
            have_swing = True
        elif name == "source":
            src.name = "_" + name
        sources.append(src)

    if not have_swing:
        for res in cim.instances("Breaker"):
            bus = ctx.bus(res, 1)
            if bus is not None:
                bus.mark_swing()
                have_swing = True
                logger.info(f"no EnergySource; swing bus taken from breaker {cim.name(res)}")
                break
    if not have_swing:
        ctx.diagnostics.report(
            DiagnosticKind.MISSING_SOURCE,
            "",
            "neither an EnergySource nor a Breaker defines the swing bus"
        )
    logger.info(f"processed {len(sources)} sources")
    return sources
