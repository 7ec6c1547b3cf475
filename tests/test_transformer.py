"""
Tests for transformer configuration derivation and the transformer passes.
"""
import math

import pytest

from cim2glm.general.enums import WindingConnection as W
from cim2glm.network.components.transformer import (
    CONNECTION_TABLE,
    ConnectType,
    MeshEnd,
    WindingRating,
    bank_phases,
    mesh_configuration,
    nameplate_configuration,
    process_power_transformers,
    process_transformer_codes,
    resolve_connection
)
from cim2glm.network.diagnostics import DiagnosticKind


class TestConnection:
    """Test cases for the winding connection table."""

    def test_table_complete(self):
        """Every pair of the seven winding kinds has an entry."""
        assert len(CONNECTION_TABLE) == 49

    @pytest.mark.parametrize("kinds, expected", [
        ([W.Y, W.Y], ConnectType.WYE_WYE),
        ([W.Yn, W.A], ConnectType.WYE_WYE),
        ([W.D, W.Y], ConnectType.DELTA_GWYE),
        ([W.D, W.Yn], ConnectType.DELTA_GWYE),
        ([W.D, W.D], ConnectType.DELTA_DELTA),
        ([W.I, W.I], ConnectType.SINGLE_PHASE),
        ([W.I, W.I, W.I], ConnectType.SINGLE_PHASE_CENTER_TAPPED),
        ([W.Y, W.D], ConnectType.UNSUPPORTED),
        ([W.Z, W.Zn], ConnectType.UNSUPPORTED),
        ([W.Y], ConnectType.UNSUPPORTED),
    ])
    def test_resolve(self, kinds, expected):
        """Connection types of common winding combinations."""
        assert resolve_connection(kinds) == expected

    def test_keyword(self):
        """Unsupported connections have no GridLAB-D keyword."""
        assert ConnectType.DELTA_GWYE.gld_keyword == "DELTA_GWYE"
        assert ConnectType.UNSUPPORTED.gld_keyword is None


class TestNameplate:
    """Test cases for configurations derived from transformer codes."""

    def test_three_phase(self):
        """Per-unit impedances on the first winding, line-to-neutral voltages."""
        windings = [
            WindingRating(rated_U=1000.0, rated_S=1.0e5, r=0.1, connection=W.Y, x_sc=0.5),
            WindingRating(rated_U=100.0, rated_S=1.0e5, r=0.001, connection=W.Y),
        ]
        config = nameplate_configuration("xcon_t1", windings, no_load_loss=500.0, exciting_current=1.0)
        assert config.connect_type == ConnectType.WYE_WYE
        assert config.primary_voltage == pytest.approx(1000.0 / math.sqrt(3))
        assert config.secondary_voltage == pytest.approx(100.0 / math.sqrt(3))
        assert config.power_rating == pytest.approx(100.0)
        assert config.resistance == pytest.approx(0.02)
        assert config.reactance == pytest.approx(0.05)
        assert config.shunt_resistance == pytest.approx(200.0)
        assert config.shunt_reactance == pytest.approx(100.0)
        assert config.impedance is None

    def test_no_shunt(self):
        """Without no-load test data no shunt branch is written."""
        windings = [WindingRating(1000.0, 1.0e5), WindingRating(100.0, 1.0e5)]
        config = nameplate_configuration("xcon_t2", windings)
        assert config.shunt_resistance is None
        assert config.shunt_reactance is None

    def test_center_tapped(self):
        """The leakage reactance is split over the three windings."""
        windings = [
            WindingRating(rated_U=1000.0, rated_S=1.0e4, r=1.0, connection=W.I, x_sc=4.0),
            WindingRating(rated_U=100.0, rated_S=1.0e4, r=0.02, connection=W.I, x_sc=0.03),
            WindingRating(rated_U=100.0, rated_S=1.0e4, r=0.02, connection=W.I),
        ]
        config = nameplate_configuration("xcon_ct", windings)
        assert config.connect_type == ConnectType.SINGLE_PHASE_CENTER_TAPPED
        assert config.primary_voltage == pytest.approx(1000.0)
        assert config.impedance == pytest.approx(complex(0.01, 0.025))
        assert config.impedance1 == pytest.approx(complex(0.02, 0.015))
        assert config.impedance2 == pytest.approx(complex(0.02, 0.015))
        assert config.resistance is None

    def test_single_winding(self):
        """A transformer code needs two windings."""
        with pytest.raises(ValueError):
            nameplate_configuration("xcon_bad", [WindingRating(1000.0, 1.0e5)])

    def test_zero_rating(self):
        """A winding rated at 0 VA has no per-unit base."""
        with pytest.raises(ValueError):
            WindingRating(rated_U=1000.0, rated_S=0.0)


class TestMesh:
    """Test cases for configurations derived from mesh impedances."""

    def test_mesh(self):
        """Mesh reactance and core admittance in per-unit."""
        ends = [
            MeshEnd(rated_U=1000.0, rated_S=1.0e5, r=0.1, connection=W.Y),
            MeshEnd(rated_U=100.0, rated_S=1.0e5, r=0.001, connection=W.Yn),
        ]
        config = mesh_configuration("xcon_m", ends, x_mesh=0.5, core=[(0, 0.001, 0.002)])
        assert config.connect_type == ConnectType.WYE_WYE
        assert config.resistance == pytest.approx(0.02)
        assert config.reactance == pytest.approx(0.05)
        assert config.shunt_resistance == pytest.approx(100.0)
        assert config.shunt_reactance == pytest.approx(50.0)
        assert config.annotation is None

    def test_three_ends(self):
        """A third end is flagged on the configuration."""
        ends = [MeshEnd(1000.0, 1.0e5), MeshEnd(100.0, 1.0e5), MeshEnd(100.0, 1.0e5)]
        config = mesh_configuration("xcon_3w", ends)
        assert config.annotation == "too many windings for GridLAB-D"
        assert config.reactance is None


class TestBankPhases:
    """Test cases for bank_phases."""

    def test_secondary_end(self):
        """A split-phase end takes the primary phases of the other end."""
        assert bank_phases("A", "s12N", "A", "Iii") == ("A", "AS", "AS")

    def test_delta_primary(self):
        """Upper-case D puts the delta on the primary."""
        assert bank_phases("ABC", "ABC", "ABC", "Dyn1") == ("ABCD", "ABC", "ABC")

    def test_delta_secondary(self):
        """Lower-case d puts the delta on the secondary."""
        assert bank_phases("ABC", "ABC", "ABC", "Yd1") == ("ABC", "ABCD", "ABC")

    def test_wye(self):
        """Wye banks keep the merged phases on both sides."""
        assert bank_phases("AN", "AN", "A", "Yy0") == ("A", "A", "A")


def _tank_transformer(b, with_code=True, tap_step=None, rated_s=500000.0):
    hv, lv = b.node("hv"), b.node("lv")
    xf = b.build_cim_obj("PowerTransformer", "xf1", "xf1", PowerTransformer__vectorGroup="Yy0")
    t1 = b.terminal(xf, hv, seq=1)
    t2 = b.terminal(xf, lv, seq=2)
    tank = b.build_cim_obj("TransformerTank", "tank1", "tank1", TransformerTank__PowerTransformer=xf)
    for k, t in ((1, t1), (2, t2)):
        end = b.build_cim_obj(
            "TransformerTankEnd", f"te{k}",
            TransformerEnd__endNumber=k,
            TransformerEnd__Terminal=t,
            TransformerTankEnd__TransformerTank=tank,
            TransformerTankEnd__phases=b.enum("PhaseCode", "ABCN")
        )
        if k == 1 and tap_step is not None:
            b.build_cim_obj("RatioTapChanger", "rtc1", RatioTapChanger__TransformerEnd=end, TapChanger__step=tap_step)
    if with_code:
        info = b.build_cim_obj("TransformerTankInfo", "ti1", "code1")
        b.build_cim_obj("Asset", "asset1", Asset__PowerSystemResources=tank, Asset__AssetInfo=info)
        for k, u in ((1, 12470.0), (2, 480.0)):
            ei = b.build_cim_obj(
                "TransformerEndInfo", f"ei{k}",
                TransformerEndInfo__TransformerTankInfo=info,
                TransformerEndInfo__endNumber=k,
                TransformerEndInfo__ratedU=u,
                TransformerEndInfo__ratedS=rated_s,
                TransformerEndInfo__r=0.01,
                TransformerEndInfo__connectionKind=b.enum("WindingConnection", "Y")
            )
            if k == 1:
                b.build_cim_obj("ShortCircuitTest", "sct1", ShortCircuitTest__EnergisedEnd=ei, ShortCircuitTest__leakageImpedance=10.0)
    return xf


def _mesh_transformer(b, rated_s=5.0e6, phases=None):
    """Two-end transformer without tanks; `phases` are the terminal phase codes."""
    hv, lv = b.node("hv"), b.node("lv")
    xf = b.build_cim_obj("PowerTransformer", "xf2", "sub xf")
    ends = []
    for k, (node, u, conn) in enumerate(((hv, 12470.0, "D"), (lv, 4160.0, "Yn")), start=1):
        t = b.terminal(xf, node, seq=k)
        if phases is not None:
            b.add_triple(t, "Terminal.phases", b.enum("PhaseCode", phases[k - 1]))
        ends.append(b.build_cim_obj(
            "PowerTransformerEnd", f"pte{k}",
            PowerTransformerEnd__PowerTransformer=xf,
            TransformerEnd__endNumber=k,
            TransformerEnd__Terminal=t,
            PowerTransformerEnd__ratedU=u,
            PowerTransformerEnd__ratedS=rated_s,
            PowerTransformerEnd__connectionKind=b.enum("WindingConnection", conn)
        ))
    b.build_cim_obj(
        "TransformerMeshImpedance", "mesh1",
        TransformerMeshImpedance__FromTransformerEnd=ends[0],
        TransformerMeshImpedance__ToTransformerEnd=ends[1],
        TransformerMeshImpedance__x=2.0
    )
    return xf


class TestTransformerPasses:
    """Test cases for the transformer passes on small CIM graphs."""

    def test_transformer_code(self, builder, make_context):
        """A TransformerTankInfo becomes an xcon_ configuration."""
        _tank_transformer(builder)
        ctx = make_context(builder)
        configs = process_transformer_codes(ctx)
        assert len(configs) == 1
        config = configs[0]
        assert config.name == "xcon_code1"
        assert config.connect_type == ConnectType.WYE_WYE
        assert config.power_rating == pytest.approx(500.0)
        assert config.reactance == pytest.approx(10.0 * 500000.0 / 12470.0 ** 2)

    def test_tank_bank(self, builder, make_context):
        """A bank of tanks refers to the configuration of its transformer code."""
        _tank_transformer(builder)
        ctx = make_context(builder)
        out = process_power_transformers(ctx)
        assert len(out.transformers) == 1
        xf = out.transformers[0]
        assert xf.name == "xf_xf1"
        assert (xf.from_bus, xf.to_bus) == ("nd_hv", "nd_lv")
        assert xf.phases == "ABC"
        assert xf.configuration == "xcon_code1"
        assert ctx.registry.get_bus("nd_lv").phases == "ABC"
        assert len(ctx.diagnostics) == 0

    def test_tank_without_code(self, builder, make_context):
        """Tanks without a transformer code are reported."""
        _tank_transformer(builder, with_code=False)
        ctx = make_context(builder)
        out = process_power_transformers(ctx)
        assert out.transformers[0].configuration == "xcon_xf1"
        assert ctx.diagnostics.of_kind(DiagnosticKind.UNSUPPORTED_CONFIGURATION)

    def test_regulator(self, builder, make_context):
        """A tap changer on a tank end turns the bank into a regulator."""
        _tank_transformer(builder, tap_step=1.0125)
        ctx = make_context(builder)
        out = process_power_transformers(ctx)
        assert out.transformers == []
        assert len(out.regulators) == 1
        reg = out.regulators[0]
        assert reg.name == "reg_xf1"
        assert reg.configuration == "rcon_xf1"
        config = out.regulator_configurations[0]
        assert sorted(config.phases) == ["A", "B", "C"]
        assert config.phases["B"].tap == 2

    def test_mesh_transformer(self, builder, make_context):
        """A transformer without tanks carries its own configuration."""
        _mesh_transformer(builder)
        ctx = make_context(builder)
        out = process_power_transformers(ctx)
        config = out.configurations[0]
        assert config.name == "xcon_sub_xf"
        assert config.connect_type == ConnectType.DELTA_GWYE
        assert config.reactance == pytest.approx(2.0 * 5.0e6 / 12470.0 ** 2)
        assert out.transformers[0].configuration == "xcon_sub_xf"
        assert ctx.registry.get_bus("nd_lv").nominal_voltage == pytest.approx(4160.0 / math.sqrt(3))

    def test_mesh_secondary(self, builder, make_context):
        """A secondary second end takes the primary phases of the first end."""
        _mesh_transformer(builder, phases=("AN", "s12N"))
        ctx = make_context(builder)
        out = process_power_transformers(ctx)
        assert out.transformers[0].phases == "AS"
        hv, lv = ctx.registry.get_bus("nd_hv"), ctx.registry.get_bus("nd_lv")
        assert lv.secondary
        assert lv.phases == "A"
        assert not hv.secondary
        assert hv.phases == "A"

    def test_mesh_zero_rating(self, builder, make_context):
        """A transformer end rated at 0 VA is reported and the transformer skipped."""
        _mesh_transformer(builder, rated_s=0.0)
        ctx = make_context(builder)
        out = process_power_transformers(ctx)
        assert out.transformers == []
        assert out.configurations == []
        invalid = ctx.diagnostics.of_kind(DiagnosticKind.INVALID_VALUE)
        assert [d.subject for d in invalid] == ["sub_xf"]

    def test_zero_rated_code(self, builder, make_context):
        """A code rated at 0 VA is reported, and so is the bank that uses it."""
        _tank_transformer(builder, rated_s=0.0)
        ctx = make_context(builder)
        assert process_transformer_codes(ctx) == []
        out = process_power_transformers(ctx)
        assert out.transformers == []
        invalid = ctx.diagnostics.of_kind(DiagnosticKind.INVALID_VALUE)
        assert [d.subject for d in invalid] == ["code1", "xf1"]

    def test_mesh_single_end(self, builder, make_context):
        """A transformer with one end is reported and skipped."""
        b = builder
        xf = b.build_cim_obj("PowerTransformer", "xf3", "xf3")
        b.build_cim_obj("PowerTransformerEnd", "pte9", PowerTransformerEnd__PowerTransformer=xf)
        ctx = make_context(b)
        out = process_power_transformers(ctx)
        assert out.transformers == []
        assert ctx.diagnostics.of_kind(DiagnosticKind.INCONSISTENT_WINDING_COUNT)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
