"""
Line codes, wire spacings and line segments.

Line codes become GridLAB-D line configurations in ohm/mile and nF/mile.
An `ACLineSegment` refers either to a line code (`PerLengthImpedance`) or
carries its own sequence impedance for the whole segment; in the latter case
seven configurations named after the segment are generated.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import logging
import math

from rdflib.term import Node

from ...pint_setup import FEET_PER_METRE, FEET_PER_MILE, METRES_PER_MILE
from ...calc.impedance import (
    LineConfiguration,
    PhaseImpedanceData,
    assemble_phase_impedance,
    build_line_configurations,
    line_config_name,
    sequence_line_configurations,
    susceptance_to_capacitance,
    triplex_config_name
)
from ...general.enums import SinglePhaseKind
from ...general.names import gld_id
from ...general.phases import merge_phases
from ..context import TranslationContext
from ..diagnostics import DiagnosticKind

__all__ = [
    "SpacingCount",
    "CableKind",
    "SpacingAssignment",
    "LineKind",
    "LineRecord",
    "process_spacings",
    "process_line_codes",
    "segment_configurations",
    "process_lines"
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpacingCount:
    """
    Conductor count of a `WireSpacingInfo`: the phase conductors (A, B, C,
    s1, s2) plus any neutrals.
    """
    conductors: int
    phases: int

    @property
    def neutrals(self) -> int:
        return self.conductors - self.phases


class CableKind(StrEnum):
    WIRES = "wires"
    CN_CABLES = "CNcables"
    TS_CABLES = "TScables"


@dataclass
class SpacingAssignment:
    """
    Wire spacing of a line segment with the wire or cable type on each
    position. GridLAB-D has no use for it, so it is written as a comment.
    """
    spacing: str
    count: SpacingCount
    cable_kind: CableKind = CableKind.WIRES
    phase_wires: list[str] = field(default_factory=list)
    neutral_wires: list[str] = field(default_factory=list)


class LineKind(StrEnum):
    OVERHEAD = "overhead_line"
    TRIPLEX = "triplex_line"


@dataclass
class LineRecord:
    name: str
    kind: LineKind
    from_bus: str
    to_bus: str
    phases: str
    length: float  # ft
    configuration: str | None = None
    spacing: SpacingAssignment | None = None


# ------------------------------------------------------------------------------
# Wire spacings
# ------------------------------------------------------------------------------

def process_spacings(ctx: TranslationContext) -> dict[str, SpacingCount]:
    """
    Fills the spacing lookup of the context with every `WireSpacingInfo`
    that has at least one phase conductor.
    """
    cim = ctx.cim
    for info in cim.instances("WireSpacingInfo"):
        conductors = phases = 0
        for pos in cim.subjects("WirePosition.WireSpacingInfo", info):
            conductors += 1
            kind = SinglePhaseKind.parse(cim.get_enum(pos, "WirePosition.phase"))
            if kind in (SinglePhaseKind.A, SinglePhaseKind.B, SinglePhaseKind.C) or kind.is_secondary:
                phases += 1
        if conductors > 0 and phases > 0:
            ctx.spacings[cim.name(info)] = SpacingCount(conductors, phases)
    logger.info(f"processed {len(ctx.spacings)} wire spacings")
    return ctx.spacings


# ------------------------------------------------------------------------------
# Line codes
# ------------------------------------------------------------------------------

def _phase_impedance_frequency(ctx: TranslationContext) -> float | None:
    # Phase impedance data keeps the legacy 377 rad/s conversion at 60 Hz.
    f = ctx.config.frequency_hz
    return None if math.isclose(f, 60.0) else f


def _phase_impedance_configurations(ctx: TranslationContext, code: Node) -> list[LineConfiguration]:
    cim = ctx.cim
    name = cim.name(code)
    n = cim.get_attribute(code, "PerLengthPhaseImpedance.conductorCount", 0)
    if n not in (1, 2, 3):
        ctx.diagnostics.report(
            DiagnosticKind.UNSUPPORTED_CONFIGURATION,
            name,
            f"conductor count {n} is not 1, 2 or 3"
        )
        return []
    data = [
        PhaseImpedanceData(
            sequence_number=cim.get_attribute(d, "PhaseImpedanceData.sequenceNumber", 0),
            r=cim.get_attribute(d, "PhaseImpedanceData.r", 0.0),
            x=cim.get_attribute(d, "PhaseImpedanceData.x", 0.0),
            b=cim.get_attribute(d, "PhaseImpedanceData.b", 0.0)
        )
        for d in cim.subjects("PhaseImpedanceData.PhaseImpedance", code)
    ]
    try:
        matrix = assemble_phase_impedance(n, data, _phase_impedance_frequency(ctx))
    except IndexError as err:
        ctx.diagnostics.report(DiagnosticKind.UNSUPPORTED_CONFIGURATION, name, str(err))
        return []
    return build_line_configurations(name, matrix, ctx.config.want_secondary)


def _sequence_impedance_configurations(ctx: TranslationContext, code: Node) -> list[LineConfiguration]:
    cim = ctx.cim
    f = ctx.config.frequency_hz

    def per_mile(predicate: str) -> float:
        return METRES_PER_MILE * cim.get_attribute(code, f"PerLengthSequenceImpedance.{predicate}", 0.0)

    r1, x1 = per_mile("r"), per_mile("x")
    r0, x0 = per_mile("r0"), per_mile("x0")
    c1 = susceptance_to_capacitance(per_mile("bch"), f)
    c0 = susceptance_to_capacitance(per_mile("b0ch"), f)
    if r0 <= 0.0:
        r0 = r1
    if x0 <= 0.0:
        x0 = x1
    return sequence_line_configurations(cim.name(code), r1, x1, c1, r0, x0, c0)


def process_line_codes(ctx: TranslationContext) -> list[LineConfiguration]:
    """
    Line configurations of every `PerLengthPhaseImpedance` and
    `PerLengthSequenceImpedance`.
    """
    configs = []
    for code in ctx.cim.instances("PerLengthPhaseImpedance"):
        configs.extend(_phase_impedance_configurations(ctx, code))
    for code in ctx.cim.instances("PerLengthSequenceImpedance"):
        configs.extend(_sequence_impedance_configurations(ctx, code))
    logger.info(f"processed {len(configs)} line configurations")
    return configs


# ------------------------------------------------------------------------------
# Line segments
# ------------------------------------------------------------------------------

def segment_configurations(
    name: str,
    length: float,
    r1: float, x1: float, b1: float,
    r0: float, x0: float, b0: float,
    frequency: float
) -> list[LineConfiguration]:
    """
    Line configurations for a segment with its own sequence parameters.

    Parameters
    ----------
    name:
        Segment name; the configurations are `lcon_<name>_<phases>`.
    length:
        Segment length (ft).
    r1, x1, b1, r0, x0, b0:
        Positive- and zero-sequence impedance (ohm) and susceptance (S) of the
        whole segment.
    frequency:
        System frequency (Hz).

    Returns
    -------
    The seven phase variants, scaled to per-mile values so that GridLAB-D
    recovers the segment totals from the segment length.
    """
    if length <= 0.0:
        raise ValueError(f"segment '{name}' has non-positive length {length:g} ft")
    scale = FEET_PER_MILE / length
    c1 = susceptance_to_capacitance(b1, frequency)
    c0 = susceptance_to_capacitance(b0, frequency)
    return sequence_line_configurations(
        name,
        scale * r1, scale * x1, scale * c1,
        scale * r0, scale * x0, scale * c0
    )


def _own_parameters(
    ctx: TranslationContext,
    line: Node,
    name: str,
    length: float
) -> list[LineConfiguration]:
    cim = ctx.cim
    if not cim.has_attribute(line, "ACLineSegment.x"):
        return []
    r1 = cim.get_attribute(line, "ACLineSegment.r", 0.0)
    r0 = cim.get_attribute(line, "ACLineSegment.r0", r1)
    x1 = cim.get_attribute(line, "ACLineSegment.x", 0.0)
    x0 = cim.get_attribute(line, "ACLineSegment.x0", x1)
    b0 = cim.get_attribute(line, "ACLineSegment.b0ch", 0.0)
    b1 = cim.get_attribute(line, "ACLineSegment.bch", b0)
    return segment_configurations(name, length, r1, x1, b1, r0, x0, b0, ctx.config.frequency_hz)


def _asset_infos(ctx: TranslationContext, resource: Node) -> list[tuple[str, Node]]:
    cim = ctx.cim
    infos = []
    for asset in cim.subjects("Asset.PowerSystemResources", resource):
        info = cim.get_resource(asset, "Asset.AssetInfo")
        if info is not None:
            infos.append((cim.resource_type(info), info))
    return infos


def _cable_kind(info_type: str | None, current: CableKind) -> CableKind:
    if info_type == "ConcentricNeutralCableInfo":
        return CableKind.CN_CABLES
    if info_type == "TapeShieldCableInfo":
        return CableKind.TS_CABLES
    return current


def _spacing_assignment(ctx: TranslationContext, line: Node, name: str) -> SpacingAssignment | None:
    cim = ctx.cim
    spacing = None
    wire = ""
    kind = CableKind.WIRES
    for info_type, info in _asset_infos(ctx, line):
        if info_type == "WireSpacingInfo":
            spacing = cim.name(info)
        elif info_type in ("OverheadWireInfo", "ConcentricNeutralCableInfo", "TapeShieldCableInfo"):
            wire = cim.name(info)
            kind = _cable_kind(info_type, kind)
    if spacing is None:
        return None
    count = ctx.spacings.get(spacing)
    if count is None:
        ctx.diagnostics.report(
            DiagnosticKind.MISSING_SPACING,
            name,
            f"wire spacing '{spacing}' is not defined"
        )
        return None

    by_phase: dict[SinglePhaseKind, str] = {}
    for phase in cim.subjects("ACLineSegmentPhase.ACLineSegment", line):
        uri = cim.get_enum(phase, "ACLineSegmentPhase.phase")
        if uri is None:
            continue
        for info_type, info in _asset_infos(ctx, phase):
            kind = _cable_kind(info_type, kind)
            by_phase[SinglePhaseKind.parse(uri)] = cim.name(info)

    assignment = SpacingAssignment(spacing, count, kind)
    if not by_phase:
        assignment.phase_wires = [wire] * count.conductors
        return assignment
    order = (SinglePhaseKind.A, SinglePhaseKind.B, SinglePhaseKind.C, SinglePhaseKind.s1, SinglePhaseKind.s2)
    assignment.phase_wires = [by_phase[k] for k in order if k in by_phase]
    neutral = by_phase.get(SinglePhaseKind.N, "")
    assignment.neutral_wires = [neutral] * count.neutrals
    return assignment


def _line_phases(phs: str, primary1: str, primary2: str) -> str:
    # A secondary segment takes its primary phase from either end.
    if "S" not in phs:
        return phs
    return merge_phases(merge_phases(phs, primary1), primary2) + "S"


def process_lines(ctx: TranslationContext) -> tuple[list[LineRecord], list[LineConfiguration]]:
    """
    Creates an overhead or triplex line for every `ACLineSegment` and
    updates the phases and nominal voltage of both end buses. Also returns
    the configurations generated for segments with their own sequence
    parameters.
    """
    cim, cfg = ctx.cim, ctx.config
    records: list[LineRecord] = []
    generated: list[LineConfiguration] = []
    for line in cim.instances("ACLineSegment"):
        name = cim.name(line) if cfg.unique_names else gld_id(str(line))
        bus1 = ctx.bus_name(line, 1)
        bus2 = ctx.bus_name(line, 2)
        if bus1 is None or bus2 is None:
            continue
        nd1 = ctx.registry.get_bus(bus1)
        nd2 = ctx.registry.get_bus(bus2)
        length = FEET_PER_METRE * cim.get_attribute(line, "Conductor.length", 1.0)
        if length <= 0.0:
            ctx.diagnostics.report(
                DiagnosticKind.INVALID_VALUE,
                name,
                f"line length {length:g} ft is not positive; segment skipped"
            )
            continue

        nd1.set_nominal_voltage(ctx.base_voltage_ln(line))
        nd2.set_nominal_voltage(nd1.nominal_voltage)
        phs = cim.wire_phases(line, "ACLineSegmentPhase.ACLineSegment", "ACLineSegmentPhase.phase")
        phs = _line_phases(phs, nd1.phases, nd2.phases)
        nd1.add_phases(phs)
        nd2.add_phases(phs)

        code = cim.get_resource(line, "ACLineSegment.PerLengthImpedance")
        own = _own_parameters(ctx, line, name, length)
        generated.extend(own)
        spacing = _spacing_assignment(ctx, line, name)

        if nd1.secondary:
            if not cfg.want_secondary:
                continue
            if code is not None:
                config = triplex_config_name(cim.name(code))
            elif own:
                config = line_config_name(name, phs)
            else:
                config = None
            from_bus, to_bus = (bus2, bus1) if nd1.has_load() else (bus1, bus2)
            records.append(LineRecord(
                f"tpx_{name}", LineKind.TRIPLEX, from_bus, to_bus, phs, length, config, spacing
            ))
        else:
            if code is not None:
                config = line_config_name(cim.name(code), phs)
            elif own:
                config = line_config_name(name, phs)
            else:
                config = None
            records.append(LineRecord(
                f"line_{name}", LineKind.OVERHEAD, bus1, bus2, phs, length, config, spacing
            ))
    logger.info(f"processed {len(records)} line segments")
    return records, generated
