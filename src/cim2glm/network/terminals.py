"""
Resolution of the bus (ConnectivityNode) at each end of a piece of
equipment.

Equipment is connected through its Terminals. When the terminals carry a
sequence number, terminal k is the one with sequence number k. Otherwise the
terminals are taken in URI order, which is stable but says nothing about the
intended orientation; this fallback is reported once per equipment.
"""
from __future__ import annotations

from rdflib import URIRef
from rdflib.term import Node

from ..cim.access import CIMGraph
from ..general.names import gld_name
from .diagnostics import DiagnosticLog, DiagnosticKind

__all__ = ["TerminalResolver"]


SEQUENCE_PREDICATES = ("ACDCTerminal.sequenceNumber", "Terminal.sequenceNumber")


class TerminalResolver:

    def __init__(self, cim: CIMGraph, diagnostics: DiagnosticLog) -> None:
        self.cim = cim
        self.diagnostics = diagnostics
        self._warned: set[str] = set()

    def terminals(self, equipment: Node) -> list[URIRef]:
        return self.cim.subjects("Terminal.ConductingEquipment", equipment)

    def sequence_number(self, terminal: Node) -> int | None:
        for predicate in SEQUENCE_PREDICATES:
            if self.cim.has_attribute(terminal, predicate):
                return self.cim.get_attribute(terminal, predicate, 0)
        return None

    def resolve_terminal(self, equipment: Node, ordinal: int) -> URIRef | None:
        """
        Returns terminal `ordinal` (1-based) of `equipment`, or None if the
        equipment has no such terminal.
        """
        terminals = self.terminals(equipment)
        numbers = [self.sequence_number(t) for t in terminals]
        if any(n is not None for n in numbers):
            for terminal, n in zip(terminals, numbers):
                if n == ordinal:
                    return terminal
            return None
        if len(terminals) > 1:
            key = str(equipment)
            if key not in self._warned:
                self._warned.add(key)
                self.diagnostics.report(
                    DiagnosticKind.POSITIONAL_TERMINAL_ORDER,
                    self.cim.name(equipment),
                    f"{len(terminals)} terminals without sequence numbers; "
                    f"taken in identifier order"
                )
        if 1 <= ordinal <= len(terminals):
            return terminals[ordinal - 1]
        return None

    def bus_name(self, terminal: Node) -> str | None:
        node = self.cim.get_resource(terminal, "Terminal.ConnectivityNode")
        if node is None:
            return None
        return gld_name(self.cim.raw_name(node), bus=True)

    def resolve(self, equipment: Node, ordinal: int) -> str | None:
        """
        Returns the GridLAB-D name of the bus at terminal `ordinal` of
        `equipment`, or None if it cannot be found.
        """
        terminal = self.resolve_terminal(equipment, ordinal)
        if terminal is None:
            return None
        return self.bus_name(terminal)
