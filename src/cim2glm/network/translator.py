from __future__ import annotations

from dataclasses import dataclass, field
import logging

from ..calc.impedance import LineConfiguration
from ..cim.access import CIMGraph
from .config import TranslatorConfig
from .context import TranslationContext
from .diagnostics import DiagnosticLog
from .graph import BusRegistry
from .topology import BusCoordinate, discover_topology
from .components.source import SourceRecord, process_sources
from .components.load import process_loads
from .components.capacitor import CapacitorRecord, process_capacitors
from .components.regulator import RegulatorConfiguration, RegulatorRecord
from .components.transformer import (
    TransformerConfiguration,
    TransformerRecord,
    process_transformer_codes,
    process_power_transformers
)
from .components.line import LineRecord, process_spacings, process_line_codes, process_lines
from .components.switch import SwitchRecord, process_switches
from .components.bus import BusRecord, SubstationRecord, finalize_loads, build_bus_records

__all__ = ["TranslationResult", "translate"]

logger = logging.getLogger(__name__)


@dataclass
class TranslationResult:
    """
    Everything a translation run produces, in the order it is written.

    Attributes
    ----------
    registry:
        The final bus state.
    diagnostics:
        Non-fatal problems met along the way.
    total_load:
        Sum of the real power of all CIM loads (W), before load scaling.
    """
    config: TranslatorConfig
    registry: BusRegistry
    diagnostics: DiagnosticLog
    coordinates: list[BusCoordinate] = field(default_factory=list)
    sources: list[SourceRecord] = field(default_factory=list)
    capacitors: list[CapacitorRecord] = field(default_factory=list)
    transformer_configurations: list[TransformerConfiguration] = field(default_factory=list)
    transformers: list[TransformerRecord] = field(default_factory=list)
    regulator_configurations: list[RegulatorConfiguration] = field(default_factory=list)
    regulators: list[RegulatorRecord] = field(default_factory=list)
    line_configurations: list[LineConfiguration] = field(default_factory=list)
    lines: list[LineRecord] = field(default_factory=list)
    switches: list[SwitchRecord] = field(default_factory=list)
    substation: SubstationRecord | None = None
    busses: list[BusRecord] = field(default_factory=list)
    total_load: float = 0.0


def translate(cim: CIMGraph, config: TranslatorConfig | None = None) -> TranslationResult:
    """
    Translates a CIM distribution feeder into GridLAB-D records.

    The passes run in a fixed order: transformers and capacitors set bus
    phases that secondary lines inherit, and wire spacings must be known
    before the lines that refer to them. Every call works on fresh bus
    state.

    Parameters
    ----------
    cim:
        The CIM model.
    config: optional
        Translation settings; defaults apply if None.

    Returns
    -------
    TranslationResult
    """
    ctx = TranslationContext(cim, config or TranslatorConfig())
    logger.info(f"translation settings:\n{ctx.config}")
    res = TranslationResult(ctx.config, ctx.registry, ctx.diagnostics)

    res.coordinates = discover_topology(ctx)
    res.sources = process_sources(ctx)
    process_loads(ctx)
    res.capacitors = process_capacitors(ctx)
    res.transformer_configurations = process_transformer_codes(ctx)
    xf = process_power_transformers(ctx)
    res.transformer_configurations.extend(xf.configurations)
    res.transformers = xf.transformers
    res.regulator_configurations = xf.regulator_configurations
    res.regulators = xf.regulators
    process_spacings(ctx)
    res.line_configurations = process_line_codes(ctx)
    res.lines, generated = process_lines(ctx)
    res.line_configurations.extend(generated)
    res.switches = process_switches(ctx)
    finalize_loads(ctx)
    res.substation, res.busses = build_bus_records(ctx)
    res.total_load = ctx.total_load

    if ctx.diagnostics:
        logger.warning(f"translation finished with {len(ctx.diagnostics)} diagnostic(s)")
    return res
