"""
Topology discovery: one bus per CIM ConnectivityNode, with its geographic
position when the model has one.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging

from rdflib.term import Node

from ..cim.access import CIMGraph
from ..general.names import gld_name
from .context import TranslationContext

__all__ = ["BusCoordinate", "bus_position", "discover_topology"]

logger = logging.getLogger(__name__)


@dataclass
class BusCoordinate:
    """
    Position of a bus as written by CIM (text of `PositionPoint.xPosition`
    and `yPosition`); None when no location was found.
    """
    name: str
    x: str | None = None
    y: str | None = None

    @property
    def known(self) -> bool:
        return self.x is not None and self.y is not None


def _location(cim: CIMGraph, resource: Node) -> Node | None:
    return cim.get_resource(resource, "PowerSystemResource.Location")


def bus_position(ctx: TranslationContext, node: Node) -> tuple[str, str] | None:
    """
    Finds the (x, y) position of ConnectivityNode `node`.

    The location of equipment connected to the node is preferred; the
    position point whose sequence number equals the terminal's is taken, or
    the last point if none matches. Without such equipment, the location of
    an equipment container (line or substation) is used.
    """
    cim = ctx.cim
    geo = fallback = None
    seq = "1"
    for terminal in cim.subjects("Terminal.ConnectivityNode", node):
        eq = cim.get_resource(terminal, "Terminal.ConductingEquipment")
        if eq is None:
            continue
        geo = _location(cim, eq)
        if geo is not None:
            n = ctx.resolver.sequence_number(terminal)
            seq = "1" if n is None else str(n)
            break
        container = cim.get_resource(eq, "Equipment.EquipmentContainer")
        if container is not None:
            fallback = _location(cim, container)
            if fallback is None:
                substation = cim.get_resource(container, "VoltageLevel.Substation")
                if substation is not None:
                    fallback = _location(cim, substation)
    if geo is None:
        geo = fallback
    if geo is None:
        return None

    found = None
    for point in cim.subjects("PositionPoint.Location", geo):
        found = (
            cim.get_attribute(point, "PositionPoint.xPosition", ""),
            cim.get_attribute(point, "PositionPoint.yPosition", "")
        )
        if cim.get_attribute(point, "PositionPoint.sequenceNumber", "") == seq:
            return found
    return found


def discover_topology(ctx: TranslationContext) -> list[BusCoordinate]:
    """
    Creates the bus accumulator of every ConnectivityNode and collects the
    bus coordinates.
    """
    cim = ctx.cim
    coords = []
    for node in cim.instances("ConnectivityNode"):
        name = gld_name(cim.raw_name(node), bus=True)
        ctx.registry.get_or_create_bus(name)
        pos = bus_position(ctx, node)
        if pos is None:
            coords.append(BusCoordinate(name))
        else:
            coords.append(BusCoordinate(name, *pos))
    logger.info(f"discovered {len(ctx.registry)} busses")
    return coords
