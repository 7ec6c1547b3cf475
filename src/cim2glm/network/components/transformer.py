from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import itertools
import logging

from rdflib.term import Node

from ...pint_setup import Q_
from ...calc.per_unit import PerUnitSystem
from ...general.enums import WindingConnection
from ...general.phases import has_secondary, merge_phases, parse_phase_code
from ..context import TranslationContext, SQRT3
from ..diagnostics import DiagnosticKind
from .regulator import RegulatorConfiguration, RegulatorRecord, regulator_data

__all__ = [
    "ConnectType",
    "CONNECTION_TABLE",
    "resolve_connection",
    "WindingRating",
    "MeshEnd",
    "TransformerConfiguration",
    "TransformerRecord",
    "PowerTransformerOutput",
    "nameplate_configuration",
    "mesh_configuration",
    "bank_phases",
    "process_transformer_codes",
    "process_power_transformers"
]

logger = logging.getLogger(__name__)


class ConnectType(StrEnum):
    """Transformer connection types GridLAB-D can represent."""
    WYE_WYE = "wye-wye"
    DELTA_DELTA = "delta-delta"
    DELTA_GWYE = "delta-grounded-wye"
    SINGLE_PHASE = "single-phase"
    SINGLE_PHASE_CENTER_TAPPED = "single-phase-center-tapped"
    UNSUPPORTED = "unsupported"

    @property
    def gld_keyword(self) -> str | None:
        """`connect_type` keyword of GridLAB-D; None if not representable."""
        return _GLD_KEYWORDS.get(self)


_GLD_KEYWORDS = {
    ConnectType.WYE_WYE: "WYE_WYE",
    ConnectType.DELTA_DELTA: "DELTA_DELTA",
    ConnectType.DELTA_GWYE: "DELTA_GWYE",
    ConnectType.SINGLE_PHASE: "SINGLE_PHASE",
    ConnectType.SINGLE_PHASE_CENTER_TAPPED: "SINGLE_PHASE_CENTER_TAPPED"
}


_W = WindingConnection
_WINDING_KINDS = (_W.D, _W.Y, _W.Z, _W.Yn, _W.Zn, _W.A, _W.I)

# (primary, secondary) winding connection -> connection type. Every pair of
# the seven winding kinds has an entry; most of them are unsupported.
CONNECTION_TABLE: dict[tuple[WindingConnection, WindingConnection], ConnectType] = {
    pair: ConnectType.UNSUPPORTED
    for pair in itertools.product(_WINDING_KINDS, repeat=2)
}
CONNECTION_TABLE.update({
    (_W.D, _W.D): ConnectType.DELTA_DELTA,
    (_W.D, _W.Y): ConnectType.DELTA_GWYE,
    (_W.D, _W.Yn): ConnectType.DELTA_GWYE,
    (_W.Y, _W.Y): ConnectType.WYE_WYE,
    (_W.Y, _W.Yn): ConnectType.WYE_WYE,
    (_W.Y, _W.A): ConnectType.WYE_WYE,
    (_W.Yn, _W.Y): ConnectType.WYE_WYE,
    (_W.Yn, _W.Yn): ConnectType.WYE_WYE,
    (_W.Yn, _W.A): ConnectType.WYE_WYE,
    (_W.A, _W.Y): ConnectType.WYE_WYE,
    (_W.A, _W.Yn): ConnectType.WYE_WYE,
    (_W.A, _W.A): ConnectType.WYE_WYE,
    (_W.I, _W.I): ConnectType.SINGLE_PHASE
})


def resolve_connection(kinds: list[WindingConnection]) -> ConnectType:
    """
    Returns the connection type of a transformer with the winding
    connections `kinds`, in end number order.

    Three single-phase windings make a center-tapped transformer. Otherwise
    only the first two windings are looked at.
    """
    if len(kinds) == 3 and all(k == _W.I for k in kinds):
        return ConnectType.SINGLE_PHASE_CENTER_TAPPED
    if len(kinds) < 2:
        return ConnectType.UNSUPPORTED
    return CONNECTION_TABLE.get((kinds[0], kinds[1]), ConnectType.UNSUPPORTED)


# ------------------------------------------------------------------------------
# Records
# ------------------------------------------------------------------------------

@dataclass
class WindingRating:
    """
    Nameplate data of one transformer winding.

    Parameters
    ----------
    rated_U:
        Rated line-to-line voltage (V).
    rated_S:
        Rated power (VA).
    r:
        Winding resistance (ohm).
    connection:
        Winding connection kind.
    x_sc:
        Leakage impedance (ohm) of the short-circuit test energised from this
        winding, or None if there is no such test.
    """
    rated_U: float
    rated_S: float
    r: float = 0.0
    connection: WindingConnection = WindingConnection.Y
    x_sc: float | None = None
    pu: PerUnitSystem = field(init=False)

    def __post_init__(self):
        self.pu = PerUnitSystem.from_ratings(self.rated_S, self.rated_U)

    @property
    def r_pu(self) -> float:
        return self.pu.get_per_unit_impedance(self.r)

    @property
    def x_sc_pu(self) -> float:
        if self.x_sc is None:
            return 0.0
        return self.pu.get_per_unit_impedance(self.x_sc)


@dataclass
class MeshEnd:
    """A PowerTransformerEnd of a transformer without tanks."""
    rated_U: float
    rated_S: float
    r: float = 0.0
    connection: WindingConnection = WindingConnection.Y
    bus: str | None = None
    phases: str = "ABC"
    pu: PerUnitSystem = field(init=False)

    def __post_init__(self):
        self.pu = PerUnitSystem.from_ratings(self.rated_S, self.rated_U)


@dataclass
class TransformerConfiguration:
    """
    A GridLAB-D `transformer_configuration`. Impedances are per-unit on the
    rating of the first winding, voltages in V and the power rating in kVA.
    Optional values that are None are not written.
    """
    name: str
    connect_type: ConnectType
    primary_voltage: float
    secondary_voltage: float
    power_rating: float
    resistance: float | None = None
    reactance: float | None = None
    impedance: complex | None = None
    impedance1: complex | None = None
    impedance2: complex | None = None
    shunt_resistance: float | None = None
    shunt_reactance: float | None = None
    annotation: str | None = None


@dataclass
class TransformerRecord:
    name: str
    from_bus: str
    to_bus: str
    phases: str
    configuration: str
    vector_group: str | None = None


@dataclass
class PowerTransformerOutput:
    configurations: list[TransformerConfiguration] = field(default_factory=list)
    transformers: list[TransformerRecord] = field(default_factory=list)
    regulator_configurations: list[RegulatorConfiguration] = field(default_factory=list)
    regulators: list[RegulatorRecord] = field(default_factory=list)


# ------------------------------------------------------------------------------
# Derivation
# ------------------------------------------------------------------------------

def nameplate_configuration(
    name: str,
    windings: list[WindingRating],
    no_load_loss: float = 0.0,
    exciting_current: float = 0.0
) -> TransformerConfiguration:
    """
    Derives a transformer configuration from the test sheet of a transformer
    code.

    Parameters
    ----------
    name:
        Configuration name.
    windings:
        The windings in end number order; at least two.
    no_load_loss:
        No-load test loss (W).
    exciting_current:
        No-load test exciting current (percent).

    Returns
    -------
    TransformerConfiguration

    Notes
    -----
    Voltages of three-phase codes are line-to-neutral. The reactance of a
    center-tapped code is split assuming Xhl = Xht = Xsc of the first winding
    and Xlt = Xsc of the second winding.
    """
    if len(windings) < 2:
        raise ValueError(f"transformer code '{name}' needs at least two windings")
    w0, w1 = windings[0], windings[1]
    connect_type = resolve_connection([w.connection for w in windings])
    three_phase = all(w.connection != _W.I for w in windings)
    k = SQRT3 if three_phase else 1.0

    config = TransformerConfiguration(
        name=name,
        connect_type=connect_type,
        primary_voltage=w0.rated_U / k,
        secondary_voltage=w1.rated_U / k,
        power_rating=Q_(w0.rated_S, 'VA').to('kVA').magnitude
    )
    if connect_type == ConnectType.SINGLE_PHASE_CENTER_TAPPED:
        w2 = windings[2]
        x_hl, x_lt = w0.x_sc_pu, w1.x_sc_pu
        x0 = 0.5 * (2.0 * x_hl - x_lt)
        x1 = x2 = 0.5 * x_lt
        config.impedance = complex(w0.r_pu, x0)
        config.impedance1 = complex(w1.r_pu, x1)
        config.impedance2 = complex(w2.r_pu, x2)
    else:
        config.resistance = w0.r_pu + w1.r_pu
        config.reactance = w0.x_sc_pu

    nll = w0.pu.get_per_unit_power(no_load_loss)
    imag = Q_(exciting_current, 'percent').to('frac').magnitude
    if nll > 0.0:
        config.shunt_resistance = 1.0 / nll
    if imag > 0.0:
        config.shunt_reactance = 1.0 / imag
    return config


def mesh_configuration(
    name: str,
    ends: list[MeshEnd],
    x_mesh: float | None = None,
    core: list[tuple[int, float, float]] | None = None
) -> TransformerConfiguration:
    """
    Derives a transformer configuration from per-end ratings, the mesh
    impedance between the first two ends and the core admittances.

    Parameters
    ----------
    name:
        Configuration name.
    ends:
        Transformer ends in end number order; at least two.
    x_mesh:
        Reactance (ohm) of the mesh impedance from the first to the second
        end, or None if there is none.
    core:
        (end index, g, b) of each core admittance (S).
    """
    if len(ends) < 2:
        raise ValueError(f"transformer '{name}' needs at least two ends")
    e0, e1 = ends[0], ends[1]
    config = TransformerConfiguration(
        name=name,
        connect_type=resolve_connection([e.connection for e in ends]),
        primary_voltage=e0.rated_U,
        secondary_voltage=e1.rated_U,
        power_rating=Q_(e0.rated_S, 'VA').to('kVA').magnitude,
        resistance=e0.pu.get_per_unit_impedance(e0.r) + e1.pu.get_per_unit_impedance(e1.r)
    )
    if x_mesh is not None:
        config.reactance = e0.pu.get_per_unit_impedance(x_mesh)
    for i, g, b in core or []:
        g_pu = ends[i].pu.get_per_unit_admittance(g)
        b_pu = ends[i].pu.get_per_unit_admittance(b)
        if g_pu > 0.0 and config.shunt_resistance is None:
            config.shunt_resistance = 1.0 / g_pu
        if b_pu > 0.0 and config.shunt_reactance is None:
            config.shunt_reactance = 1.0 / b_pu
    if len(ends) > 2:
        config.annotation = "too many windings for GridLAB-D"
    return config


def bank_phases(
    phs0: str,
    phs1: str,
    merged: str,
    vector_group: str
) -> tuple[str, str, str]:
    """
    Resolves the bus phases on both sides of a transformer bank.

    Parameters
    ----------
    phs0, phs1:
        Phases of the first and second end of the tanks.
    merged:
        Primary phases of all tank ends merged.
    vector_group:
        IEC vector group of the bank, e.g. "Dyn1".

    Returns
    -------
    The phases of the primary bus, of the secondary bus, and of the
    transformer object. A secondary ("s") end gets the primary phases of the
    other end with an "S" appended; otherwise a delta winding in the vector
    group adds a "D" to its side.
    """
    if "s" in phs0:
        phs0 = merge_phases("", phs1) + "S"
        return phs0, phs1, phs0
    if "s" in phs1:
        phs1 = merge_phases("", phs0) + "S"
        return phs0, phs1, phs1
    if "D" in vector_group:
        return merged + "D", merged, merged
    if "d" in vector_group:
        return merged, merged + "D", merged
    return merged, merged, merged


# ------------------------------------------------------------------------------
# Passes
# ------------------------------------------------------------------------------

def _end_number(ctx: TranslationContext, end: Node) -> int:
    return ctx.cim.get_attribute(end, "TransformerEnd.endNumber", 1)


def _winding_connection(ctx: TranslationContext, end: Node, predicate: str) -> WindingConnection:
    uri = ctx.cim.get_enum(end, predicate)
    if uri is None:
        return WindingConnection.Y
    return WindingConnection.parse(uri)


def _report_connection(ctx: TranslationContext, config: TransformerConfiguration) -> None:
    if config.connect_type == ConnectType.UNSUPPORTED:
        ctx.diagnostics.report(
            DiagnosticKind.UNSUPPORTED_CONFIGURATION,
            config.name,
            "winding connections cannot be represented in GridLAB-D"
        )


def _tank_info_configuration(
    ctx: TranslationContext,
    info: Node
) -> TransformerConfiguration | None:
    cim, cfg = ctx.cim, ctx.config
    name = cim.name(info)
    ends = sorted(
        cim.subjects("TransformerEndInfo.TransformerTankInfo", info),
        key=lambda e: cim.get_attribute(e, "TransformerEndInfo.endNumber", 1)
    )
    if len(ends) < 2:
        ctx.diagnostics.report(
            DiagnosticKind.INCONSISTENT_WINDING_COUNT,
            name,
            f"transformer code has {len(ends)} winding(s)"
        )
        return None

    windings = []
    nll = imag = 0.0
    for end in ends:
        try:
            w = WindingRating(
                rated_U=cfg.voltage_multiplier * cim.get_attribute(end, "TransformerEndInfo.ratedU", 1.0),
                rated_S=cfg.power_multiplier * cim.get_attribute(end, "TransformerEndInfo.ratedS", 1.0),
                r=cim.get_attribute(end, "TransformerEndInfo.r", 0.0),
                connection=_winding_connection(ctx, end, "TransformerEndInfo.connectionKind")
            )
        except ValueError as err:
            ctx.diagnostics.report(DiagnosticKind.INVALID_VALUE, name, str(err))
            ctx.rejected_codes.add(name)
            return None
        for test in cim.subjects("ShortCircuitTest.EnergisedEnd", end):
            w.x_sc = cim.get_attribute(test, "ShortCircuitTest.leakageImpedance", 0.0001)
        for test in cim.subjects("NoLoadTest.EnergisedEnd", end):
            nll = cim.get_attribute(test, "NoLoadTest.loss", 0.0)
            imag = cim.get_attribute(test, "NoLoadTest.excitingCurrent", 0.0)
        windings.append(w)

    config = nameplate_configuration(f"xcon_{name}", windings, nll, imag)
    if config.connect_type == ConnectType.SINGLE_PHASE_CENTER_TAPPED and not cfg.want_secondary:
        return None
    _report_connection(ctx, config)
    return config


def process_transformer_codes(ctx: TranslationContext) -> list[TransformerConfiguration]:
    """Creates a configuration for every `TransformerTankInfo`."""
    configs = []
    for info in ctx.cim.instances("TransformerTankInfo"):
        config = _tank_info_configuration(ctx, info)
        if config is not None:
            configs.append(config)
    logger.info(f"processed {len(configs)} transformer codes")
    return configs


def _terminal_bus(ctx: TranslationContext, end: Node, subject: str) -> str | None:
    terminal = ctx.cim.get_resource(end, "TransformerEnd.Terminal")
    bus = None if terminal is None else ctx.resolver.bus_name(terminal)
    if bus is None or bus not in ctx.registry:
        ctx.diagnostics.report(
            DiagnosticKind.MISSING_TOPOLOGY,
            subject,
            f"no bus found at transformer end {_end_number(ctx, end)}"
        )
        return None
    return bus


def _tank_code(ctx: TranslationContext, tank: Node) -> str | None:
    cim = ctx.cim
    info = cim.get_resource(tank, "PowerSystemResource.AssetDatasheet")
    if info is None:
        for asset in cim.subjects("Asset.PowerSystemResources", tank):
            info = cim.get_resource(asset, "Asset.AssetInfo")
            if info is not None:
                break
    return None if info is None else cim.name(info)


def _tank_bank(ctx: TranslationContext, xf: Node, tanks: list[Node], out: PowerTransformerOutput) -> None:
    cim, cfg = ctx.cim, ctx.config
    name = cim.name(xf)
    vector_group = cim.get_attribute(xf, "PowerTransformer.vectorGroup", "")
    buses: list[str | None] = [None, None]
    phs = ["", ""]
    merged = ""
    code = None
    regulator = False
    for tank in tanks:
        for end in cim.subjects("TransformerTankEnd.TransformerTank", tank):
            i = _end_number(ctx, end) - 1
            if 0 <= i <= 1:
                phs[i] = parse_phase_code(cim.get_enum(end, "TransformerTankEnd.phases"))
                merged = merge_phases(merged, phs[i])
                buses[i] = _terminal_bus(ctx, end, name)
            if cim.subjects("RatioTapChanger.TransformerEnd", end):
                regulator = True
        code = _tank_code(ctx, tank) or code
    if buses[0] is None or buses[1] is None:
        return

    phs0, phs1, xf_phase = bank_phases(phs[0], phs[1], merged, vector_group)
    ctx.registry.get_bus(buses[0]).add_phases(phs0)
    ctx.registry.get_bus(buses[1]).add_phases(phs1)

    if regulator:
        reg_config, reg = regulator_data(ctx, xf, name, vector_group, buses[0], buses[1], phs0)
        out.regulator_configurations.append(reg_config)
        out.regulators.append(reg)
        return
    if "S" in xf_phase and not cfg.want_secondary:
        return
    if code is None:
        ctx.diagnostics.report(
            DiagnosticKind.UNSUPPORTED_CONFIGURATION,
            name,
            "transformer tanks have no TransformerTankInfo"
        )
        code = name
    elif code in ctx.rejected_codes:
        ctx.diagnostics.report(
            DiagnosticKind.INVALID_VALUE,
            name,
            f"transformer code '{code}' was rejected; transformer skipped"
        )
        return
    out.transformers.append(TransformerRecord(
        name=f"xf_{name}",
        from_bus=buses[0],
        to_bus=buses[1],
        phases=xf_phase,
        configuration=f"xcon_{code}",
        vector_group=vector_group
    ))


def _mesh_transformer(ctx: TranslationContext, xf: Node, out: PowerTransformerOutput) -> None:
    cim, cfg = ctx.cim, ctx.config
    name = cim.name(xf)
    resources = sorted(
        cim.subjects("PowerTransformerEnd.PowerTransformer", xf),
        key=lambda e: _end_number(ctx, e)
    )
    if len(resources) < 2:
        ctx.diagnostics.report(
            DiagnosticKind.INCONSISTENT_WINDING_COUNT,
            name,
            f"power transformer has {len(resources)} end(s)"
        )
        return
    if len(resources) > 2:
        ctx.diagnostics.report(
            DiagnosticKind.INCONSISTENT_WINDING_COUNT,
            name,
            f"{len(resources)} windings; only the first two are written"
        )

    ends = []
    for res in resources:
        terminal = cim.get_resource(res, "TransformerEnd.Terminal")
        phases = "ABC"
        if terminal is not None:
            phases = parse_phase_code(cim.get_enum(terminal, "Terminal.phases"))
        try:
            ends.append(MeshEnd(
                rated_U=cfg.voltage_multiplier * cim.get_attribute(res, "PowerTransformerEnd.ratedU", 1.0),
                rated_S=cfg.power_multiplier * cim.get_attribute(res, "PowerTransformerEnd.ratedS", 1.0),
                r=cim.get_attribute(res, "PowerTransformerEnd.r", 0.0),
                connection=_winding_connection(ctx, res, "PowerTransformerEnd.connectionKind"),
                bus=_terminal_bus(ctx, res, name),
                phases=phases
            ))
        except ValueError as err:
            ctx.diagnostics.report(DiagnosticKind.INVALID_VALUE, name, str(err))
            return
    if any(e.bus is None for e in ends):
        return

    x_mesh = None
    for mesh in cim.subjects("TransformerMeshImpedance.FromTransformerEnd", resources[0]):
        if cim.get_resource(mesh, "TransformerMeshImpedance.ToTransformerEnd") == resources[1]:
            x_mesh = cim.get_attribute(mesh, "TransformerMeshImpedance.x", 1.0)
    core = []
    for i, res in enumerate(resources):
        for adm in cim.subjects("TransformerCoreAdmittance.TransformerEnd", res):
            core.append((
                i,
                cim.get_attribute(adm, "TransformerCoreAdmittance.g", 0.0),
                cim.get_attribute(adm, "TransformerCoreAdmittance.b", 0.0)
            ))

    config = mesh_configuration(f"xcon_{name}", ends, x_mesh, core)
    _report_connection(ctx, config)
    # A secondary second end takes the primary phases of the first end.
    if has_secondary(ends[1].phases):
        xf_phase = merge_phases("", ends[0].phases) + "S"
        bus_phases = [ends[0].phases] + [xf_phase] * (len(ends) - 1)
    else:
        xf_phase = ends[0].phases
        bus_phases = [xf_phase] * len(ends)
    for e, phs in zip(ends, bus_phases):
        bus = ctx.registry.get_bus(e.bus)
        bus.add_phases(phs)
        bus.set_nominal_voltage(e.rated_U / SQRT3)
    out.configurations.append(config)
    out.transformers.append(TransformerRecord(
        name=f"xf_{name}",
        from_bus=ends[0].bus,
        to_bus=ends[1].bus,
        phases=xf_phase,
        configuration=config.name
    ))


def process_power_transformers(ctx: TranslationContext) -> PowerTransformerOutput:
    """
    Creates the transformers and regulators of every `PowerTransformer`.
    A transformer with tanks is a bank whose configuration comes from the
    tank's transformer code; a transformer without tanks carries its own
    mesh impedance data.
    """
    out = PowerTransformerOutput()
    for xf in ctx.cim.instances("PowerTransformer"):
        tanks = ctx.cim.subjects("TransformerTank.PowerTransformer", xf)
        if tanks:
            _tank_bank(ctx, xf, tanks, out)
        else:
            _mesh_transformer(ctx, xf, out)
    logger.info(
        f"processed {len(out.transformers)} transformers "
        f"and {len(out.regulators)} regulators"
    )
    return out
