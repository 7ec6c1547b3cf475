"""
Voltage regulators: transformer banks with a ratio tap changer on a winding.

Any impedance of the regulating transformer is dropped; GridLAB-D models a
regulator by its tap range and control settings only. The control mode is
always MANUAL, with the tap positions taken from the CIM tap changer steps.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import math

from rdflib.term import Node

from ...general.phases import PRIMARY_PHASES, parse_phase_code
from ..context import TranslationContext
from ..diagnostics import DiagnosticKind

__all__ = [
    "RegulatorConnectType",
    "TapChangerSettings",
    "RegulatorPhase",
    "RegulatorConfiguration",
    "RegulatorRecord",
    "tap_position",
    "regulator_configuration",
    "read_tap_changer",
    "regulator_data"
]


# Tap changer ratio change per step, as a fraction.
TAP_STEP = 0.00625


class RegulatorConnectType(StrEnum):
    WYE_WYE = "WYE_WYE"
    CLOSED_DELTA = "CLOSED_DELTA"


@dataclass
class TapChangerSettings:
    """
    Settings of one CIM RatioTapChanger with its TapChangerControl, filled
    in with the defaults used when an attribute is missing.
    """
    ltc: bool = False
    high_step: int = 32
    low_step: int = 0
    neutral_step: int = 16
    normal_step: int = 16
    initial_delay: float = 30.0
    subsequent_delay: float = 2.0
    step_voltage_increment: float = 0.625  # percent
    step: float = 1.0  # continuous turns ratio
    target_value: float = 120.0
    target_deadband: float = 2.0
    ldc_r: float = 0.0
    ldc_x: float = 0.0
    # None if the tap changer has no datasheet.
    pt_ratio: float | None = None
    ct_rating: float | None = None


@dataclass
class RegulatorPhase:
    tap: int
    ldc_r: float
    ldc_x: float


@dataclass
class RegulatorConfiguration:
    name: str
    connect_type: RegulatorConnectType
    band_center: float
    band_width: float
    dwell_time: float
    raise_taps: int
    lower_taps: int
    regulation: float
    current_transducer_ratio: float = 1.0
    power_transducer_ratio: float = 1.0
    line_drop_compensation: bool = False
    # Control the CIM settings ask for, written as a comment only.
    requested_control: str | None = None
    phases: dict[str, RegulatorPhase] = field(default_factory=dict)
    control: str = field(init=False, default="MANUAL")
    regulator_type: str = field(init=False, default="B")


@dataclass
class RegulatorRecord:
    name: str
    from_bus: str
    to_bus: str
    phases: str
    configuration: str


def tap_position(step: float) -> int:
    """
    Tap position of a continuous turns ratio `step`, counted from neutral in
    steps of 0.625 %. Halves round up.
    """
    return int(math.floor((step - 1.0) / TAP_STEP + 0.5))


def regulator_configuration(
    name: str,
    vector_group: str,
    phase_settings: dict[str, TapChangerSettings]
) -> RegulatorConfiguration:
    """
    Merge the tap changers of a bank into one regulator configuration.

    Parameters
    ----------
    name:
        Name of the power transformer; the configuration is `rcon_<name>`.
    vector_group:
        `PowerTransformer.vectorGroup`; a delta marker (D or d) makes the
        regulator closed-delta, otherwise it is wye-wye.
    phase_settings:
        Tap changer settings keyed by the phases of the winding they sit on,
        in reading order. Tap positions and line drop compensation are per
        phase. Transducer ratios come from the last tap changer with a
        datasheet; the other settings come from the last tap changer.
    """
    if not phase_settings:
        raise ValueError(f"regulator '{name}' has no tap changers")
    last = list(phase_settings.values())[-1]

    phases: dict[str, RegulatorPhase] = {}
    ct = pt = 1.0
    for phs, s in phase_settings.items():
        for p in PRIMARY_PHASES:
            if p in phs:
                phases[p] = RegulatorPhase(tap_position(s.step), s.ldc_r, s.ldc_x)
        if s.pt_ratio is not None:
            pt = s.pt_ratio
        if s.ct_rating is not None:
            ct = s.ct_rating
    line_drop = any(ph.ldc_r != 0.0 or ph.ldc_x != 0.0 for ph in phases.values())

    requested = None
    if last.target_value > 0.0 and last.target_deadband > 0.0 and last.ltc:
        requested = "LINE_DROP_COMP" if line_drop else "OUTPUT_VOLTAGE"

    if "D" in vector_group or "d" in vector_group:
        connect_type = RegulatorConnectType.CLOSED_DELTA
    else:
        connect_type = RegulatorConnectType.WYE_WYE

    return RegulatorConfiguration(
        name=f"rcon_{name}",
        connect_type=connect_type,
        band_center=last.target_value,
        band_width=last.target_deadband,
        dwell_time=last.initial_delay,
        raise_taps=abs(last.high_step - last.neutral_step),
        lower_taps=abs(last.neutral_step - last.low_step),
        regulation=0.01 * 0.5 * last.step_voltage_increment * (last.high_step - last.low_step),
        current_transducer_ratio=ct,
        power_transducer_ratio=pt,
        line_drop_compensation=line_drop,
        requested_control=requested,
        phases=phases
    )


def read_tap_changer(ctx: TranslationContext, rtc: Node) -> TapChangerSettings:
    cim = ctx.cim
    d = TapChangerSettings()
    s = TapChangerSettings(
        ltc=cim.get_attribute(rtc, "TapChanger.ltcFlag", d.ltc),
        high_step=cim.get_attribute(rtc, "TapChanger.highStep", d.high_step),
        low_step=cim.get_attribute(rtc, "TapChanger.lowStep", d.low_step),
        neutral_step=cim.get_attribute(rtc, "TapChanger.neutralStep", d.neutral_step),
        normal_step=cim.get_attribute(rtc, "TapChanger.normalStep", d.normal_step),
        initial_delay=cim.get_attribute(rtc, "TapChanger.initialDelay", d.initial_delay),
        subsequent_delay=cim.get_attribute(rtc, "TapChanger.subsequentDelay", d.subsequent_delay),
        step_voltage_increment=cim.get_attribute(
            rtc, "RatioTapChanger.stepVoltageIncrement", d.step_voltage_increment
        ),
        step=cim.get_attribute(rtc, "TapChanger.step", d.step)
    )
    ctl = cim.get_resource(rtc, "TapChanger.TapChangerControl")
    if ctl is not None:
        s.ldc_r = cim.get_attribute(ctl, "TapChangerControl.lineDropR", d.ldc_r)
        s.ldc_x = cim.get_attribute(ctl, "TapChangerControl.lineDropX", d.ldc_x)
        s.target_value = cim.get_attribute(ctl, "RegulatingControl.targetValue", d.target_value)
        s.target_deadband = cim.get_attribute(ctl, "RegulatingControl.targetDeadband", d.target_deadband)
    for asset in cim.subjects("Asset.PowerSystemResources", rtc):
        info = cim.get_resource(asset, "Asset.AssetInfo")
        if info is not None:
            s.pt_ratio = cim.get_attribute(info, "TapChangerInfo.ptRatio", 1.0)
            s.ct_rating = cim.get_attribute(info, "TapChangerInfo.ctRating", 1.0)
    return s


def regulator_data(
    ctx: TranslationContext,
    xf: Node,
    name: str,
    vector_group: str,
    bus1: str,
    bus2: str,
    phs: str
) -> tuple[RegulatorConfiguration, RegulatorRecord]:
    """
    Builds the regulator of power transformer `xf` from the tap changers on
    the ends of all its tanks.
    """
    cim = ctx.cim
    phase_settings: dict[str, TapChangerSettings] = {}
    for tank in cim.subjects("TransformerTank.PowerTransformer", xf):
        for end in cim.subjects("TransformerTankEnd.TransformerTank", tank):
            rtcs = cim.subjects("RatioTapChanger.TransformerEnd", end)
            if not rtcs:
                continue
            end_phs = parse_phase_code(cim.get_enum(end, "TransformerTankEnd.phases") or "ABCN")
            if end_phs in phase_settings:
                ctx.diagnostics.report(
                    DiagnosticKind.DUPLICATE_PHASES,
                    name,
                    f"two tap changers on phases {end_phs}; using {cim.name(tank)}"
                )
            phase_settings[end_phs] = read_tap_changer(ctx, rtcs[0])
    config = regulator_configuration(name, vector_group, phase_settings)
    record = RegulatorRecord(
        name=f"reg_{name}",
        from_bus=bus1,
        to_bus=bus2,
        phases=phs,
        configuration=config.name
    )
    return config, record
