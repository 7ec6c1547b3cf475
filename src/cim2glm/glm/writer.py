"""
Renders a `TranslationResult` as GridLAB-D model text.

Numbers are written with 6 significant digits (C "%g"), complex numbers as
"a+bj". Everything in this module is text formatting; no electrical values
are computed here.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable
import logging

from ..pint_setup import Quantity
from ..calc.impedance import LineConfiguration
from ..network.translator import TranslationResult
from ..network.topology import BusCoordinate
from ..network.components import (
    CapacitorRecord,
    TransformerConfiguration,
    TransformerRecord,
    RegulatorConfiguration,
    RegulatorRecord,
    LineRecord,
    SwitchRecord,
    SubstationRecord,
    NodeRecord,
    LoadRecord,
    TriplexLoadRecord,
    CapacitorMode
)

__all__ = [
    "gld_float",
    "gld_complex",
    "gld_quantity",
    "render_base",
    "render_busxy",
    "write_glm"
]

logger = logging.getLogger(__name__)

INDENT = "  "


def gld_float(v: float) -> str:
    return f"{v:.6g}"


def gld_complex(c: complex) -> str:
    """Formats `c` as "a+bj" or "a-bj"."""
    sign = "-" if c.imag < 0.0 else "+"
    return f"{c.real:.6g}{sign}{abs(c.imag):.6g}j"


def gld_quantity(q: Quantity) -> str:
    """Formats a pint quantity the way GridLAB-D reads units, e.g. "12MVA"."""
    return f"{q.magnitude:g}{q.units:~}"


def _quoted(s: str) -> str:
    return f'"{s}"'


class _ObjectBuilder:
    """Collects the properties of one GridLAB-D object."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.lines: list[str] = [f"{INDENT}name {_quoted(name)};"]

    def prop(self, key: str, value: str) -> _ObjectBuilder:
        self.lines.append(f"{INDENT}{key} {value};")
        return self

    def comment(self, text: str) -> _ObjectBuilder:
        self.lines.append(f"{INDENT}// {text}")
        return self

    def render(self) -> str:
        return "\n".join([f"object {self.kind} {{", *self.lines, "}"])


# ------------------------------------------------------------------------------
# Equipment
# ------------------------------------------------------------------------------

def _capacitor(rec: CapacitorRecord) -> str:
    obj = _ObjectBuilder("capacitor", rec.name)
    obj.prop("parent", _quoted(rec.parent))
    obj.prop("phases", rec.phases)
    obj.prop("phases_connected", rec.phases)
    obj.prop("cap_nominal_voltage", gld_float(rec.nominal_voltage))
    for phase, q in rec.phase_ratings.items():
        obj.prop(f"capacitor_{phase}", gld_float(q))
        obj.prop(f"switch{phase}", "CLOSED")
    ctl = rec.control
    if ctl is not None:
        obj.lines.append(f"{INDENT}control {ctl.control}; // {ctl.mode};")
        setting = {
            CapacitorMode.VOLT: "voltage",
            CapacitorMode.CURRENT: "current",
            CapacitorMode.VAR: "VAr"
        }.get(ctl.mode)
        if setting is not None:
            obj.prop(f"{setting}_set_low", gld_float(ctl.set_low))
            obj.prop(f"{setting}_set_high", gld_float(ctl.set_high))
        if ctl.remote_sense is not None:
            obj.prop("remote_sense", _quoted(ctl.remote_sense))
        obj.prop("pt_phase", ctl.pt_phase)
        obj.prop("control_level", ctl.control_level)
        obj.prop("dwell_time", gld_float(ctl.dwell_time))
    return obj.render()


def _transformer_configuration(cfg: TransformerConfiguration) -> str:
    obj = _ObjectBuilder("transformer_configuration", cfg.name)
    keyword = cfg.connect_type.gld_keyword
    if keyword is None:
        obj.comment("***** unsupported winding connections *****")
    else:
        obj.prop("connect_type", keyword)
    obj.prop("primary_voltage", gld_float(cfg.primary_voltage))
    obj.prop("secondary_voltage", gld_float(cfg.secondary_voltage))
    obj.prop("power_rating", gld_float(cfg.power_rating))
    for key in ("resistance", "reactance"):
        v = getattr(cfg, key)
        if v is not None:
            obj.prop(key, gld_float(v))
    for key in ("impedance", "impedance1", "impedance2"):
        v = getattr(cfg, key)
        if v is not None:
            obj.prop(key, gld_complex(v))
    for key in ("shunt_resistance", "shunt_reactance"):
        v = getattr(cfg, key)
        if v is not None:
            obj.prop(key, gld_float(v))
    if cfg.annotation:
        obj.comment(f"***** {cfg.annotation} *****")
    return obj.render()


def _transformer(rec: TransformerRecord) -> str:
    obj = _ObjectBuilder("transformer", rec.name)
    obj.prop("from", _quoted(rec.from_bus))
    obj.prop("to", _quoted(rec.to_bus))
    obj.prop("phases", rec.phases)
    if rec.vector_group:
        obj.comment(rec.vector_group)
    obj.prop("configuration", _quoted(rec.configuration))
    return obj.render()


def _regulator_configuration(cfg: RegulatorConfiguration) -> str:
    obj = _ObjectBuilder("regulator_configuration", cfg.name)
    obj.prop("connect_type", cfg.connect_type)
    obj.prop("band_center", gld_float(cfg.band_center))
    obj.prop("band_width", gld_float(cfg.band_width))
    obj.prop("dwell_time", gld_float(cfg.dwell_time))
    obj.prop("raise_taps", str(cfg.raise_taps))
    obj.prop("lower_taps", str(cfg.lower_taps))
    obj.prop("regulation", gld_float(cfg.regulation))
    obj.prop("Type", cfg.regulator_type)
    if cfg.requested_control:
        obj.lines.append(f"{INDENT}Control {cfg.control}; // {cfg.requested_control};")
    else:
        obj.prop("Control", cfg.control)
    for phase, ph in cfg.phases.items():
        obj.prop(f"tap_pos_{phase}", str(ph.tap))
    obj.prop("current_transducer_ratio", gld_float(cfg.current_transducer_ratio))
    obj.prop("power_transducer_ratio", gld_float(cfg.power_transducer_ratio))
    if cfg.line_drop_compensation:
        for phase, ph in cfg.phases.items():
            obj.prop(f"compensator_r_setting_{phase}", gld_float(ph.ldc_r))
            obj.prop(f"compensator_x_setting_{phase}", gld_float(ph.ldc_x))
    return obj.render()


def _regulator(rec: RegulatorRecord) -> str:
    obj = _ObjectBuilder("regulator", rec.name)
    obj.prop("from", _quoted(rec.from_bus))
    obj.prop("to", _quoted(rec.to_bus))
    obj.prop("phases", rec.phases)
    obj.prop("configuration", _quoted(rec.configuration))
    return obj.render()


def _line_configuration(cfg: LineConfiguration) -> str:
    kind = "triplex_line_configuration" if cfg.triplex else "line_configuration"
    obj = _ObjectBuilder(kind, cfg.name)
    for (i, j), z in cfg.z.items():
        obj.prop(f"z{i}{j}", gld_complex(z))
        if (i, j) in cfg.c:
            obj.prop(f"c{i}{j}", gld_float(cfg.c[(i, j)]))
    return obj.render()


def _line(rec: LineRecord) -> str:
    obj = _ObjectBuilder(rec.kind, rec.name)
    obj.prop("phases", rec.phases)
    obj.prop("from", _quoted(rec.from_bus))
    obj.prop("to", _quoted(rec.to_bus))
    obj.prop("length", gld_float(rec.length))
    if rec.configuration is not None:
        obj.prop("configuration", _quoted(rec.configuration))
    if rec.spacing is not None:
        sp = rec.spacing
        wires = " ".join(sp.phase_wires)
        obj.comment(f"spacing {sp.spacing} {sp.cable_kind}=[{wires}]")
        if sp.neutral_wires:
            obj.comment(f"neutrals=[{' '.join(sp.neutral_wires)}]")
    return obj.render()


def _switch(rec: SwitchRecord) -> str:
    obj = _ObjectBuilder("switch", rec.name)
    obj.prop("phases", rec.phases)
    obj.prop("from", _quoted(rec.from_bus))
    obj.prop("to", _quoted(rec.to_bus))
    obj.prop("status", rec.status)
    return obj.render()


# ------------------------------------------------------------------------------
# Busses
# ------------------------------------------------------------------------------

def _substation(rec: SubstationRecord) -> str:
    obj = _ObjectBuilder("substation", rec.name)
    obj.prop("bustype", rec.bustype)
    obj.prop("phases", rec.phases)
    obj.prop("nominal_voltage", gld_float(rec.nominal_voltage))
    obj.prop("base_power", gld_quantity(rec.base_power))
    obj.prop("power_convergence_value", gld_quantity(rec.power_convergence))
    obj.prop("positive_sequence_voltage", rec.positive_sequence_voltage)
    return obj.render()


def _node(rec: NodeRecord) -> str:
    obj = _ObjectBuilder("triplex_node" if rec.triplex else "node", rec.name)
    obj.prop("phases", rec.phases)
    obj.prop("nominal_voltage", gld_float(rec.nominal_voltage))
    return obj.render()


def _load(rec: LoadRecord) -> str:
    obj = _ObjectBuilder("load", rec.name)
    obj.prop("phases", rec.phases)
    obj.prop("nominal_voltage", gld_float(rec.nominal_voltage))
    for key, values in (
        ("constant_power", rec.constant_power),
        ("constant_impedance", rec.constant_impedance),
        ("constant_current", rec.constant_current)
    ):
        for phase, v in values.items():
            obj.prop(f"{key}_{phase}", gld_complex(v))
    return obj.render()


def _triplex_load(rec: TriplexLoadRecord) -> str:
    obj = _ObjectBuilder("triplex_load", rec.name)
    obj.prop("phases", rec.phases)
    obj.prop("nominal_voltage", gld_float(rec.nominal_voltage))
    prefix = f"{rec.schedule}.value*" if rec.schedule else ""
    for leg, base in enumerate(rec.base_power, start=1):
        obj.prop(f"base_power_{leg}", prefix + gld_float(base))
    for c in rec.components:
        obj.prop(f"{c.category}_pf_{c.leg}", gld_float(c.pf))
        obj.prop(f"{c.category}_fraction_{c.leg}", gld_float(c.fraction))
    return obj.render()


def _bus(rec) -> str:
    if isinstance(rec, TriplexLoadRecord):
        return _triplex_load(rec)
    if isinstance(rec, LoadRecord):
        return _load(rec)
    return _node(rec)


# ------------------------------------------------------------------------------
# Files
# ------------------------------------------------------------------------------

def render_base(result: TranslationResult, busxy_file: str | None = None) -> str:
    """
    Returns the text of the base GridLAB-D model: equipment first, then the
    swing substation and the other busses.
    """
    parts: list[str] = []
    parts.extend(_capacitor(r) for r in result.capacitors)
    parts.extend(_transformer_configuration(c) for c in result.transformer_configurations)
    parts.extend(_transformer(r) for r in result.transformers)
    parts.extend(_regulator_configuration(c) for c in result.regulator_configurations)
    parts.extend(_regulator(r) for r in result.regulators)
    parts.extend(_line_configuration(c) for c in result.line_configurations)
    parts.extend(_line(r) for r in result.lines)
    parts.extend(_switch(r) for r in result.switches)
    if result.substation is not None:
        parts.append(_substation(result.substation))
    parts.extend(_bus(r) for r in result.busses)
    parts.append(f"// total load = {gld_float(result.total_load)} W")
    if busxy_file:
        parts.append(f"// buscoords {busxy_file}")
    return "\n".join(parts) + "\n"


def render_busxy(coordinates: Iterable[BusCoordinate]) -> str:
    """Bus coordinates as CSV lines; busses without a location are commented."""
    lines = []
    for c in coordinates:
        if c.known:
            lines.append(f"{_quoted(c.name)}, {c.x}, {c.y}")
        else:
            lines.append(f"// {c.name}, *****")
    return "\n".join(lines) + "\n"


def _write(path: Path, text: str, encoding: str) -> None:
    with open(path, "w", encoding=encoding) as fh:
        fh.write(text)


def write_glm(result: TranslationResult, root: str | Path, encoding: str = "utf-8") -> tuple[Path, Path]:
    """
    Writes `<root>_base.glm` and `<root>_busxy.glm`.

    Returns
    -------
    The paths of both files.
    """
    root = Path(root)
    base = root.with_name(root.name + "_base.glm")
    busxy = root.with_name(root.name + "_busxy.glm")
    _write(base, render_base(result, busxy.name), encoding)
    _write(busxy, render_busxy(result.coordinates), encoding)
    logger.info(f"wrote {base} and {busxy}")
    return base, busxy
