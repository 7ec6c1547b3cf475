"""
Shared fixtures: a small builder for CIM graphs on top of rdflib, so tests
work on real graphs instead of mocks.
"""
from __future__ import annotations

import pytest
from rdflib import Graph, Literal, Namespace, RDF, URIRef

from cim2glm.cim.access import BASE_URI, CIM16_NAMESPACE, CIMGraph
from cim2glm.network.config import TranslatorConfig
from cim2glm.network.context import TranslationContext
from cim2glm.network.topology import discover_topology


class CIMBuilder:
    """Builds a CIM16 graph one object and one triple at a time."""

    def __init__(self, namespace: str = CIM16_NAMESPACE):
        self.graph = Graph()
        self.cim = Namespace(namespace)
        self._count = 0

    def _next_id(self, prefix: str) -> str:
        self._count += 1
        return f"{prefix}{self._count:04d}"

    def build_cim_obj(self, rdf_type: str, mrid: str, name: str | None = None, **attrs) -> URIRef:
        node = URIRef(f"{BASE_URI}#_{mrid}")
        self.graph.add((node, RDF.type, self.cim[rdf_type]))
        if name is not None:
            self.graph.add((node, self.cim["IdentifiedObject.name"], Literal(name)))
        for predicate, value in attrs.items():
            self.add_triple(node, predicate.replace("__", "."), value)
        return node

    def add_triple(self, subject: URIRef, predicate: str, obj) -> None:
        if isinstance(obj, bool):
            self.graph.add((subject, self.cim[predicate], Literal(str(obj).lower())))
        elif isinstance(obj, URIRef):
            self.graph.add((subject, self.cim[predicate], obj))
        else:
            self.graph.add((subject, self.cim[predicate], Literal(str(obj))))

    def enum(self, type_name: str, value: str) -> URIRef:
        return self.cim[f"{type_name}.{value}"]

    def node(self, name: str) -> URIRef:
        return self.build_cim_obj("ConnectivityNode", f"cn_{name}", name)

    def terminal(
        self,
        equipment: URIRef,
        node: URIRef,
        seq: int | None = None,
        mrid: str | None = None
    ) -> URIRef:
        t = self.build_cim_obj("Terminal", mrid or self._next_id("t"))
        self.add_triple(t, "Terminal.ConductingEquipment", equipment)
        self.add_triple(t, "Terminal.ConnectivityNode", node)
        if seq is not None:
            self.add_triple(t, "ACDCTerminal.sequenceNumber", seq)
        return t

    def base_voltage(self, mrid: str, volts: float) -> URIRef:
        return self.build_cim_obj("BaseVoltage", mrid, BaseVoltage__nominalVoltage=volts)

    def phases(self, equipment: URIRef, link: str, phase_attr: str, kinds: str, prefix: str) -> None:
        """Attach one phase object per letter in `kinds` ("ABC", "s1s2" style)."""
        for kind in _split_kinds(kinds):
            p = self.build_cim_obj(prefix, self._next_id("ph"))
            self.add_triple(p, link, equipment)
            self.add_triple(p, phase_attr, self.enum("SinglePhaseKind", kind))

    def cim_graph(self) -> CIMGraph:
        return CIMGraph(self.graph)


def _split_kinds(kinds: str) -> list[str]:
    out = []
    i = 0
    while i < len(kinds):
        if kinds[i] == "s":
            out.append(kinds[i:i + 2])
            i += 2
        else:
            out.append(kinds[i])
            i += 1
    return out


@pytest.fixture
def builder() -> CIMBuilder:
    return CIMBuilder()


@pytest.fixture
def make_context():
    """Returns a function that creates a context with topology discovered."""
    def _make(b: CIMBuilder, config: TranslatorConfig | None = None) -> TranslationContext:
        ctx = TranslationContext(b.cim_graph(), config or TranslatorConfig())
        discover_topology(ctx)
        return ctx
    return _make
