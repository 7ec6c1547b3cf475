"""
Typed access to a CIM distribution model held in an `rdflib.Graph`.

All lookups the translator makes go through a handful of primitives:
attribute lookup with a typed default, reverse lookup of the resources that
point at a resource, and type discrimination. Resources are returned in a
stable order (sorted by URI) so that a translation run is repeatable.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, TypeVar
from xml.sax import SAXException
import logging

from rdflib import Graph, Namespace, RDF, URIRef, Literal
from rdflib.exceptions import ParserError
from rdflib.term import Node

from ..exceptions import FatalInputError
from ..general.enums import SinglePhaseKind
from ..general.names import gld_name, local_name
from ..general.phases import wire_phases

__all__ = ["CIM16_NAMESPACE", "BASE_URI", "CIMGraph"]

logger = logging.getLogger(__name__)

CIM16_NAMESPACE = "http://iec.ch/TC57/2012/CIM-schema-cim16#"

# Relative rdf:about / rdf:resource references resolve against this URI.
BASE_URI = "http://gridlabd"

T = TypeVar("T", str, float, int, bool)


class CIMGraph:
    """
    Wraps an `rdflib.Graph` with the CIM namespace the model was written in.

    Parameters
    ----------
    graph:
        The parsed CIM model.
    namespace:
        CIM namespace of classes and properties, e.g. `CIM16_NAMESPACE`.
    """

    def __init__(self, graph: Graph, namespace: str = CIM16_NAMESPACE) -> None:
        self.graph = graph
        self.cim = Namespace(namespace)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        encoding: str = "utf-8",
        rdf_format: str = "xml",
        namespace: str = CIM16_NAMESPACE
    ) -> CIMGraph:
        """
        Reads a CIM file.

        Raises
        ------
        FatalInputError
            If the file cannot be opened, is not valid in the given text
            `encoding`, or does not parse as RDF.
        """
        try:
            with open(path, "r", encoding=encoding) as fh:
                data = fh.read()
        except (OSError, UnicodeDecodeError, LookupError) as err:
            raise FatalInputError(f"cannot read '{path}' as {encoding}: {err}") from err
        graph = Graph()
        try:
            graph.parse(data=data, format=rdf_format, publicID=BASE_URI)
        except (SAXException, ParserError, SyntaxError, ValueError) as err:
            raise FatalInputError(f"cannot parse '{path}' as RDF ({rdf_format}): {err}") from err
        logger.info(f"read {len(graph)} statements from '{path}'")
        return cls(graph, namespace)

    # ----------------------------------------------------------------------
    # Primitives
    # ----------------------------------------------------------------------

    def predicate(self, name: str) -> URIRef:
        """Returns the CIM property `name`, e.g. "IdentifiedObject.name"."""
        return self.cim[name]

    def has_attribute(self, resource: Node, predicate: str) -> bool:
        return self.graph.value(resource, self.cim[predicate]) is not None

    def get_attribute(self, resource: Node, predicate: str, default: T) -> T:
        """
        Returns the value of `predicate` on `resource`, converted to the type
        of `default`, or `default` if the attribute is absent. Booleans are
        true only for the literal "true".
        """
        value = self.graph.value(resource, self.cim[predicate])
        if value is None:
            return default
        text = str(value).strip()
        try:
            if isinstance(default, bool):
                return text == "true"
            if isinstance(default, int):
                return int(float(text))
            if isinstance(default, float):
                return float(text)
        except ValueError:
            logger.warning(
                f"{local_name(str(resource))}: {predicate} = '{text}' is not "
                f"a {type(default).__name__}; using {default}"
            )
            return default
        return text

    def get_resource(self, resource: Node, predicate: str) -> URIRef | None:
        """Returns the resource `predicate` refers to, or None."""
        value = self.graph.value(resource, self.cim[predicate])
        if isinstance(value, Literal):
            return None
        return value

    def get_enum(self, resource: Node, predicate: str) -> str | None:
        """Returns the raw enumeration URI text of `predicate`, or None."""
        value = self.graph.value(resource, self.cim[predicate])
        if value is None:
            return None
        return str(value)

    def subjects(self, predicate: str, obj: Node) -> list[URIRef]:
        """All resources with `predicate` pointing at `obj`, sorted by URI."""
        return sorted(set(self.graph.subjects(self.cim[predicate], obj)), key=str)

    def instances(self, type_name: str) -> list[URIRef]:
        """All resources of CIM class `type_name`, sorted by URI."""
        return sorted(set(self.graph.subjects(RDF.type, self.cim[type_name])), key=str)

    def resource_type(self, resource: Node) -> str | None:
        """Returns the local CIM class name of `resource`, or None."""
        types = sorted(str(t) for t in self.graph.objects(resource, RDF.type))
        for t in types:
            if t.startswith(str(self.cim)):
                return t[len(str(self.cim)):]
        if types:
            return local_name(types[0])
        return None

    # ----------------------------------------------------------------------
    # Derived lookups
    # ----------------------------------------------------------------------

    def raw_name(self, resource: Node) -> str:
        """`IdentifiedObject.name`, or the local name of the resource URI."""
        value = self.graph.value(resource, self.cim["IdentifiedObject.name"])
        if value is None:
            return local_name(str(resource))
        return str(value)

    def name(self, resource: Node) -> str:
        """GridLAB-D compatible name of `resource`."""
        return gld_name(self.raw_name(resource))

    def find_base_voltage(self, equipment: Node) -> float:
        """
        Returns the nominal voltage of the equipment's own base voltage, or of
        its container's base voltage. Defaults to 1.0.
        """
        base = self.get_resource(equipment, "ConductingEquipment.BaseVoltage")
        if base is None:
            container = self.get_resource(equipment, "Equipment.EquipmentContainer")
            if container is not None:
                base = self.get_resource(container, "ConductingEquipment.BaseVoltage")
                if base is None:
                    base = self.get_resource(container, "VoltageLevel.BaseVoltage")
        if base is None:
            return 1.0
        return self.get_attribute(base, "BaseVoltage.nominalVoltage", 1.0)

    def single_phase_kinds(
        self,
        resource: Node,
        link: str,
        phase_predicate: str
    ) -> list[SinglePhaseKind]:
        """
        `SinglePhaseKind` of every phase sub-object attached to `resource`
        through `link` (e.g. "EnergyConsumerPhase.EnergyConsumer").
        """
        kinds = []
        for phase in self.subjects(link, resource):
            uri = self.get_enum(phase, phase_predicate)
            if uri is not None:
                kinds.append(SinglePhaseKind.parse(uri))
        return kinds

    def wire_phases(self, resource: Node, link: str, phase_predicate: str) -> str:
        """
        Phase string of `resource` accumulated from its phase sub-objects:
        "ABC" if there are none.
        """
        return wire_phases(self.single_phase_kinds(resource, link, phase_predicate))

    def iter_typed(self, type_names: Iterable[str]) -> list[tuple[str, URIRef]]:
        """(type name, resource) for all instances of each of `type_names`."""
        return [(t, r) for t in type_names for r in self.instances(t)]
