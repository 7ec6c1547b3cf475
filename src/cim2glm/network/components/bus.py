"""
Bus level records, written once every equipment pass has run: the swing
substation, loads and plain nodes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import cmath
import logging
import math

from ...pint_setup import Quantity
from ...calc.zip import ZIP
from ..context import TranslationContext
from ..graph import BusAccumulator, P
from ..loads import reapply_zip, rescale

__all__ = [
    "SubstationRecord",
    "NodeRecord",
    "LoadRecord",
    "TriplexLoadComponent",
    "TriplexLoadRecord",
    "BusRecord",
    "load_record",
    "triplex_load_record",
    "finalize_loads",
    "build_bus_records"
]

logger = logging.getLogger(__name__)


PHASE_LETTERS = ("A", "B", "C")

# Rotation of the phase B and C voltages with respect to phase A.
_ROTATION = (1.0, cmath.rect(1.0, -2.0 * math.pi / 3.0), cmath.rect(1.0, 2.0 * math.pi / 3.0))

# Triplex load categories in the order they are written.
_TRIPLEX_CATEGORIES = (("power", ZIP.P), ("current", ZIP.I), ("impedance", ZIP.Z))


@dataclass
class SubstationRecord:
    name: str
    phases: str
    nominal_voltage: float
    base_power: Quantity
    power_convergence: Quantity
    positive_sequence_voltage: str = "${VSOURCE}"
    bustype: str = field(init=False, default="SWING")


@dataclass
class NodeRecord:
    name: str
    phases: str
    nominal_voltage: float
    triplex: bool = False


@dataclass
class LoadRecord:
    """
    A three-phase GridLAB-D load. Each mapping is keyed by phase letter and
    only holds the phases that carry that kind of load: power in VA,
    impedance in ohm and current in A.
    """
    name: str
    phases: str
    nominal_voltage: float
    constant_power: dict[str, complex] = field(default_factory=dict)
    constant_impedance: dict[str, complex] = field(default_factory=dict)
    constant_current: dict[str, complex] = field(default_factory=dict)


@dataclass
class TriplexLoadComponent:
    category: str
    leg: int
    pf: float
    fraction: float


@dataclass
class TriplexLoadRecord:
    """
    A split-phase GridLAB-D load, described by the apparent power on each
    leg with the power factor and share of each load category.
    """
    name: str
    phases: str
    nominal_voltage: float
    base_power: tuple[float, float]
    schedule: str | None = None
    components: list[TriplexLoadComponent] = field(default_factory=list)


BusRecord = NodeRecord | LoadRecord | TriplexLoadRecord


def load_record(bus: BusAccumulator) -> LoadRecord:
    """
    Converts the load of a primary bus to GridLAB-D ZIP components at the
    nominal voltage of the bus: S for constant power, |V|²/S* for constant
    impedance and (S/V)* for constant current, with V rotated by -120° and
    +120° on phases B and C.
    """
    rec = LoadRecord(bus.name, bus.gld_phases, bus.nominal_voltage)
    vmag_sq = bus.nominal_voltage ** 2
    for k, phase in enumerate(PHASE_LETTERS):
        v = bus.nominal_voltage * _ROTATION[k]
        s = bus.category_power(k, ZIP.P)
        if s != 0:
            rec.constant_power[phase] = s
        s = bus.category_power(k, ZIP.Z)
        if s != 0:
            rec.constant_impedance[phase] = vmag_sq / s.conjugate()
        s = bus.category_power(k, ZIP.I)
        if s != 0:
            rec.constant_current[phase] = (s / v).conjugate()
    return rec


def triplex_load_record(bus: BusAccumulator, schedule: str = "") -> TriplexLoadRecord:
    """
    Converts the load of a secondary bus to a triplex load. Legs 1 and 2 are
    the phase A and B rows of the load tensor.
    """
    base = (bus.phase_power(0), bus.phase_power(1))
    rec = TriplexLoadRecord(
        name=bus.name,
        phases=bus.gld_phases,
        nominal_voltage=bus.nominal_voltage,
        base_power=(abs(base[0]), abs(base[1])),
        schedule=schedule or None
    )
    for category, zip_index in _TRIPLEX_CATEGORIES:
        for leg in (1, 2):
            p = bus.load[leg - 1, zip_index, P]
            if p > 0.0:
                s = bus.category_power(leg - 1, zip_index)
                rec.components.append(TriplexLoadComponent(
                    category=category,
                    leg=leg,
                    pf=p / abs(s),
                    fraction=p / base[leg - 1].real
                ))
    return rec


def finalize_loads(ctx: TranslationContext) -> None:
    """
    Scales every load by the configured load scale and, if configured,
    redistributes it over the global ZIP coefficients. The swing bus is
    left alone.
    """
    cfg = ctx.config
    for bus in ctx.registry:
        if bus.swing or not bus.has_load():
            continue
        rescale(bus, cfg.load_scale)
        if cfg.zip_coefficients is not None:
            reapply_zip(bus, *cfg.zip_coefficients)


def build_bus_records(ctx: TranslationContext) -> tuple[SubstationRecord | None, list[BusRecord]]:
    """
    Returns the swing substation and the node or load record of every other
    bus, in discovery order. Secondary busses are left out if secondaries
    are not wanted.
    """
    cfg = ctx.config
    substation = None
    swing = ctx.registry.swing_bus
    if swing is not None:
        substation = SubstationRecord(
            name=swing.name,
            phases=swing.gld_phases,
            nominal_voltage=swing.nominal_voltage,
            base_power=cfg.swing_base_power,
            power_convergence=cfg.power_convergence
        )
    records: list[BusRecord] = []
    for bus in ctx.registry:
        if bus.swing:
            continue
        if bus.secondary and not cfg.want_secondary:
            continue
        if bus.has_load():
            if bus.secondary:
                records.append(triplex_load_record(bus, cfg.schedule_name))
            else:
                records.append(load_record(bus))
        else:
            records.append(NodeRecord(bus.name, bus.gld_phases, bus.nominal_voltage, bus.secondary))
    logger.info(f"{len(records)} busses besides the swing bus")
    return substation, records
