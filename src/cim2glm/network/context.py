"""
State of one translation run, passed explicitly through every pass.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
import math

from rdflib.term import Node

from ..cim.access import CIMGraph
from .config import TranslatorConfig
from .diagnostics import DiagnosticLog, DiagnosticKind
from .graph import BusRegistry, BusAccumulator
from .terminals import TerminalResolver

if TYPE_CHECKING:
    from .components.line import SpacingCount

__all__ = ["TranslationContext"]


SQRT3 = math.sqrt(3.0)


@dataclass
class TranslationContext:
    """
    Everything a pass reads or mutates: the CIM graph, the settings, the bus
    registry, the wire spacing lookup and the diagnostics. A fresh context is
    created for every run.
    """
    cim: CIMGraph
    config: TranslatorConfig = field(default_factory=TranslatorConfig)
    registry: BusRegistry = field(default_factory=BusRegistry)
    diagnostics: DiagnosticLog = field(default_factory=DiagnosticLog)
    spacings: dict[str, SpacingCount] = field(default_factory=dict)
    # Transformer codes whose configuration could not be derived.
    rejected_codes: set[str] = field(default_factory=set)
    total_load: float = 0.0

    resolver: TerminalResolver = field(init=False)

    def __post_init__(self):
        self.resolver = TerminalResolver(self.cim, self.diagnostics)

    def bus_name(self, equipment: Node, ordinal: int = 1) -> str | None:
        """
        Name of the bus at terminal `ordinal` of `equipment`. Reports missing
        topology and returns None if there is no such bus.
        """
        name = self.resolver.resolve(equipment, ordinal)
        if name is None or name not in self.registry:
            self.diagnostics.report(
                DiagnosticKind.MISSING_TOPOLOGY,
                self.cim.name(equipment),
                f"no bus found at terminal {ordinal}"
            )
            return None
        return name

    def bus(self, equipment: Node, ordinal: int = 1) -> BusAccumulator | None:
        name = self.bus_name(equipment, ordinal)
        if name is None:
            return None
        return self.registry.get_bus(name)

    def base_voltage(self, equipment: Node) -> float:
        """Nominal (line-to-line) base voltage of `equipment` in V."""
        return self.config.voltage_multiplier * self.cim.find_base_voltage(equipment)

    def base_voltage_ln(self, equipment: Node) -> float:
        return self.base_voltage(equipment) / SQRT3
