from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging

from rdflib.term import Node

from ...general.enums import PhaseShuntConnectionKind, RegulatingControlModeKind
from ...general.phases import (
    PRIMARY_PHASES,
    count_primary_phases,
    parse_phase_code,
    shunt_suffix
)
from ..context import TranslationContext, SQRT3
from ..diagnostics import DiagnosticKind

__all__ = [
    "CapacitorMode",
    "ControlLevel",
    "CapacitorControl",
    "CapacitorRecord",
    "gld_capacitor_mode",
    "capacitor_control",
    "process_capacitors"
]

logger = logging.getLogger(__name__)


class CapacitorMode(StrEnum):
    MANUAL = "MANUAL"
    VOLT = "VOLT"
    CURRENT = "CURRENT"
    VAR = "VAR"


class ControlLevel(StrEnum):
    INDIVIDUAL = "INDIVIDUAL"
    BANK = "BANK"


_MODES = {
    RegulatingControlModeKind.voltage: CapacitorMode.VOLT,
    RegulatingControlModeKind.currentFlow: CapacitorMode.CURRENT,
    RegulatingControlModeKind.reactivePower: CapacitorMode.VAR,
    RegulatingControlModeKind.timeScheduled: CapacitorMode.MANUAL,
    RegulatingControlModeKind.powerFactor: CapacitorMode.MANUAL,
    RegulatingControlModeKind.userDefined: CapacitorMode.MANUAL,
}

# Prefix of the GridLAB-D object a capacitor control can monitor, by CIM
# class of the monitored equipment.
_REMOTE_SENSE_PREFIX = {
    "LinearShuntCompensator": "cap",
    "ACLineSegment": "line",
    "PowerTransformer": "xf",
}


def gld_capacitor_mode(kind: RegulatingControlModeKind) -> CapacitorMode:
    """GridLAB-D capacitor control mode of a CIM regulating control mode."""
    return _MODES.get(kind, CapacitorMode.MANUAL)


@dataclass
class CapacitorControl:
    """
    Control settings of a capacitor.

    `mode` is the mode the CIM control asks for; the effective `control` is
    always MANUAL. `set_low` and `set_high` apply to the voltage, current or
    VAr setting of `mode`.
    """
    mode: CapacitorMode
    set_low: float = 0.0
    set_high: float = 0.0
    pt_phase: str = "ABCN"
    control_level: ControlLevel = ControlLevel.BANK
    remote_sense: str | None = None
    dwell_time: float = 10.0
    control: CapacitorMode = field(init=False, default=CapacitorMode.MANUAL)


@dataclass
class CapacitorRecord:
    name: str
    parent: str
    phases: str
    nominal_voltage: float
    # var per phase, keyed by phase letter
    phase_ratings: dict[str, float] = field(default_factory=dict)
    control: CapacitorControl | None = None


def capacitor_control(
    mode_kind: RegulatingControlModeKind,
    target: float = 120.0,
    deadband: float = 1.0,
    multiplier: float = 1.0,
    pt_phase: str = "ABCN",
    remote_sense: str | None = None,
    dwell_time: float = 10.0
) -> CapacitorControl:
    """
    Derives the control settings of a capacitor.

    Parameters
    ----------
    mode_kind:
        `RegulatingControl.mode`.
    target, deadband, multiplier:
        `RegulatingControl.targetValue`, `.targetDeadband` and
        `.targetValueUnitMultiplier`. The switching thresholds are
        multiplier * (target -/+ deadband / 2).
    pt_phase:
        Monitored phases.
    remote_sense:
        Name of the monitored GridLAB-D object, if it is not the capacitor.
    dwell_time:
        `ShuntCompensator.aVRDelay` in seconds.

    Returns
    -------
    CapacitorControl
        For VOLT and CURRENT, the low setting is the lower threshold. Positive
        VAr flow in GridLAB-D runs from the capacitor into the sensed link, so
        for VAR the thresholds are swapped.
    """
    mode = gld_capacitor_mode(mode_kind)
    on = multiplier * (target - 0.5 * deadband)
    off = multiplier * (target + 0.5 * deadband)
    if mode == CapacitorMode.VAR:
        low, high = off, on
    else:
        low, high = on, off
    n = sum(1 for p in PRIMARY_PHASES if p in pt_phase)
    return CapacitorControl(
        mode=mode,
        set_low=low,
        set_high=high,
        pt_phase=pt_phase,
        control_level=ControlLevel.INDIVIDUAL if n > 1 else ControlLevel.BANK,
        remote_sense=remote_sense,
        dwell_time=dwell_time
    )


def _remote_sense(ctx: TranslationContext, cap: Node, ctl: Node) -> str | None:
    cim = ctx.cim
    terminal = cim.get_resource(ctl, "RegulatingControl.Terminal")
    if terminal is None:
        return None
    monitored = cim.get_resource(terminal, "Terminal.ConductingEquipment")
    if monitored is None or monitored == cap:
        return None
    type_name = cim.resource_type(monitored)
    prefix = _REMOTE_SENSE_PREFIX.get(type_name)
    if prefix is None:
        ctx.diagnostics.report(
            DiagnosticKind.UNSUPPORTED_CONFIGURATION,
            cim.name(cap),
            f"capacitor control monitors a {type_name}, which cannot be sensed remotely"
        )
        return None
    return f"{prefix}_{cim.name(monitored)}"


def _read_control(ctx: TranslationContext, cap: Node, ctl: Node) -> CapacitorControl:
    cim = ctx.cim
    mode_uri = cim.get_enum(ctl, "RegulatingControl.mode")
    mode_kind = (
        RegulatingControlModeKind.voltage if mode_uri is None
        else RegulatingControlModeKind.parse(mode_uri)
    )
    return capacitor_control(
        mode_kind,
        target=cim.get_attribute(ctl, "RegulatingControl.targetValue", 120.0),
        deadband=cim.get_attribute(ctl, "RegulatingControl.targetDeadband", 1.0),
        multiplier=cim.get_attribute(ctl, "RegulatingControl.targetValueUnitMultiplier", 1.0),
        pt_phase=parse_phase_code(cim.get_enum(ctl, "RegulatingControl.monitoredPhase") or "ABCN"),
        remote_sense=_remote_sense(ctx, cap, ctl),
        dwell_time=cim.get_attribute(cap, "ShuntCompensator.aVRDelay", 10.0)
    )


def process_capacitors(ctx: TranslationContext) -> list[CapacitorRecord]:
    cim = ctx.cim
    records = []
    for res in cim.instances("LinearShuntCompensator"):
        bus = ctx.bus(res, 1)
        if bus is None:
            continue
        phs = cim.wire_phases(res, "ShuntCompensatorPhase.ShuntCompensator", "ShuntCompensatorPhase.phase")
        delta = PhaseShuntConnectionKind.parse(
            cim.get_enum(res, "ShuntCompensator.phaseConnection")
        ).is_delta
        bus.set_nominal_voltage(ctx.base_voltage_ln(res))
        bus.add_phases(phs)

        n = count_primary_phases(phs)
        cap_b = (
            cim.get_attribute(res, "ShuntCompensator.maximumSections", 1)
            * cim.get_attribute(res, "LinearShuntCompensator.bPerSection", 0.0001)
        )
        cap_v = ctx.config.voltage_multiplier * cim.get_attribute(res, "ShuntCompensator.nomU", 120.0)
        cap_q = cap_v * cap_v * cap_b / n
        if n > 1 and not delta:
            cap_v /= SQRT3

        rec = CapacitorRecord(
            name="cap_" + cim.name(res),
            parent=bus.name,
            phases=shunt_suffix(phs, delta),
            nominal_voltage=cap_v,
            phase_ratings={p: cap_q for p in PRIMARY_PHASES if p in phs}
        )
        controls = cim.subjects("RegulatingControl.RegulatingCondEq", res)
        if controls:
            rec.control = _read_control(ctx, res, controls[0])
        records.append(rec)
    logger.info(f"processed {len(records)} capacitors")
    return records
