"""
Tests for the per-bus load tensor.
"""
import numpy as np
import pytest

from cim2glm.calc.zip import ZIP, normalize_zip, zip_fractions
from cim2glm.network.components.bus import load_record
from cim2glm.network.graph import BusAccumulator, BusRegistry, P, Q
from cim2glm.network.loads import accumulate_load, phase_fractions, reapply_zip, rescale
from cim2glm.exceptions import UnknownBusError


class TestZipFractions:
    """Test cases for the ZIP split of one channel."""

    def test_percentages(self):
        """Percentages are normalised to fractions."""
        assert zip_fractions(0.0, 50.0, 25.0, 25.0) == (0.5, 0.25, 0.25)

    @pytest.mark.parametrize("exponent, expected", [
        (1.0, (0.0, 1.0, 0.0)),
        (2.0, (1.0, 0.0, 0.0)),
        (0.0, (0.0, 0.0, 1.0)),
        (1.1, (0.0, 0.0, 1.0)),
    ])
    def test_exponent(self, exponent, expected):
        """Without percentages the exponent picks one category."""
        assert zip_fractions(exponent, 0.0, 0.0, 0.0) == expected

    def test_all_zero(self):
        """ZIP coefficients that sum to zero cannot be normalised."""
        with pytest.raises(ValueError):
            normalize_zip(0.0, 0.0, 0.0)


class TestAccumulate:
    """Test cases for accumulate_load."""

    def test_constant_impedance_split(self):
        """A 100 % Z load on ABC lands in the Z bucket of every phase."""
        bus = BusAccumulator("nd_1")
        accumulate_load(bus, "ABC", 1000.0, 500.0, pz=100.0, qz=100.0)
        for ph in range(3):
            assert bus.load[ph, ZIP.Z, P] == pytest.approx(333.333, rel=1e-5)
            assert bus.load[ph, ZIP.Z, Q] == pytest.approx(166.667, rel=1e-5)
            assert bus.load[ph, ZIP.I, P] == 0.0
            assert bus.load[ph, ZIP.P, Q] == 0.0
        assert bus.phases == "ABC"

    def test_exponent_split(self):
        """Exponents 2 and 1 put P in Z and Q in I."""
        bus = BusAccumulator("nd_1")
        accumulate_load(bus, "ABC", 900.0, 300.0, p_exp=2.0, q_exp=1.0)
        for ph in range(3):
            assert bus.load[ph, ZIP.Z, P] == pytest.approx(300.0)
            assert bus.load[ph, ZIP.I, Q] == pytest.approx(100.0)
        assert bus.load[:, ZIP.P].sum() == 0.0

    def test_sum_preserved(self):
        """The tensor holds exactly the power that was added."""
        bus = BusAccumulator("nd_1")
        accumulate_load(bus, "AC", 1200.0, 400.0, pz=30.0, pi=30.0, pp=40.0, qp=1.0)
        accumulate_load(bus, "B", 100.0, 50.0)
        assert bus.load[:, :, P].sum() == pytest.approx(1300.0)
        assert bus.load[:, :, Q].sum() == pytest.approx(450.0)
        assert bus.phases == "ABC"

    def test_secondary(self):
        """A secondary load is split over both legs."""
        bus = BusAccumulator("nd_tpx")
        accumulate_load(bus, "S", 2000.0, 0.0)
        np.testing.assert_allclose(phase_fractions("S"), [0.5, 0.5, 0.0])
        assert bus.secondary
        assert bus.phase_power(0) == pytest.approx(1000.0)
        assert bus.phase_power(2) == 0.0

    def test_single_phase(self):
        """A single-phase load stays on its phase."""
        np.testing.assert_allclose(phase_fractions("BN"), [0.0, 1.0, 0.0])


class TestRescale:
    """Test cases for rescaling and redistributing load."""

    def test_rescale(self):
        """Every entry is multiplied."""
        bus = BusAccumulator("nd_1")
        accumulate_load(bus, "ABC", 300.0, 30.0)
        rescale(bus, 0.5)
        assert bus.load[:, :, P].sum() == pytest.approx(150.0)

    def test_reapply_zip(self):
        """Redistribution keeps the phase totals and uses the new split."""
        bus = BusAccumulator("nd_1")
        accumulate_load(bus, "ABC", 1000.0, 500.0, pz=100.0, qz=100.0)
        reapply_zip(bus, 0.0, 0.0, 1.0)
        for ph in range(3):
            assert bus.load[ph, ZIP.Z, P] == 0.0
            assert bus.load[ph, ZIP.P, P] == pytest.approx(1000.0 / 3)
            assert bus.load[ph, ZIP.P, Q] == pytest.approx(500.0 / 3)

    def test_reapply_zip_split(self):
        """Fractions need not be normalised on input."""
        bus = BusAccumulator("nd_1")
        accumulate_load(bus, "A", 100.0, 0.0)
        reapply_zip(bus, 2.0, 1.0, 1.0)
        assert bus.load[0, ZIP.Z, P] == pytest.approx(50.0)
        assert bus.load[0, ZIP.I, P] == pytest.approx(25.0)


class TestBus:
    """Test cases for bus flags and the registry."""

    def test_phase_suffix(self):
        """A bus carries exactly one connection suffix."""
        bus = BusAccumulator("nd_1")
        bus.add_phases("AB")
        assert bus.gld_phases == "ABN"
        bus.add_phases("BCD")
        assert bus.gld_phases == "ABCD"
        bus.add_phases("S")
        assert bus.gld_phases == "ABCS"

    def test_nominal_voltage(self):
        """The last writer wins."""
        bus = BusAccumulator("nd_1")
        assert bus.nominal_voltage == -1.0
        bus.set_nominal_voltage(7200.0)
        bus.set_nominal_voltage(120.0)
        assert bus.nominal_voltage == 120.0

    def test_registry(self):
        """Busses are created once and looked up by name."""
        reg = BusRegistry()
        bus = reg.get_or_create_bus("nd_1")
        assert reg.get_or_create_bus("nd_1") is bus
        assert "nd_1" in reg
        assert len(reg) == 1
        with pytest.raises(UnknownBusError):
            reg.get_bus("nd_2")

    def test_swing_bus(self):
        """The swing bus is found once marked."""
        reg = BusRegistry()
        reg.get_or_create_bus("nd_1")
        assert reg.swing_bus is None
        reg.get_or_create_bus("nd_2").mark_swing()
        assert reg.swing_bus.name == "nd_2"


class TestLoadRecord:
    """Test cases for the ZIP components of a primary load."""

    def test_negative_load(self):
        """A generator modelled as a negative load is written."""
        bus = BusAccumulator("nd_gen")
        bus.set_nominal_voltage(7200.0)
        accumulate_load(bus, "ABC", -3000.0, 0.0)
        rec = load_record(bus)
        for phase in "ABC":
            assert rec.constant_power[phase] == pytest.approx(complex(-1000.0, 0.0))
        assert rec.constant_impedance == {}
        assert rec.constant_current == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
