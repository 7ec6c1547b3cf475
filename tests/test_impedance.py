"""
Tests for line configuration matrices.
"""
import pytest

from cim2glm.calc.impedance import (
    ImpedanceMatrix,
    PhaseImpedanceData,
    assemble_phase_impedance,
    build_line_configurations,
    matrix_index,
    matrix_position,
    sequence_line_configurations,
    sequence_to_phase,
    susceptance_to_capacitance,
    triangle_size
)
from cim2glm.pint_setup import METRES_PER_MILE


class TestMatrixIndex:
    """Test cases for the lower-triangle enumeration."""

    def test_three_by_three_table(self):
        """Elements are enumerated row after row."""
        expected = {(0, 0): 0, (1, 0): 1, (1, 1): 2, (2, 0): 3, (2, 1): 4, (2, 2): 5}
        for (row, col), idx in expected.items():
            assert matrix_index(3, row, col) == idx

    def test_mirrored(self):
        """The upper triangle maps onto the lower one."""
        assert matrix_index(3, 0, 2) == matrix_index(3, 2, 0)

    @pytest.mark.parametrize("n", [1, 2, 3])
    def test_bijection(self, n):
        """Index and position are inverse and cover the whole triangle."""
        seen = set()
        for row in range(n):
            for col in range(row + 1):
                idx = matrix_index(n, row, col)
                assert matrix_position(n, idx) == (row, col)
                seen.add(idx)
        assert seen == set(range(triangle_size(n)))

    def test_out_of_range(self):
        """Elements outside the matrix are rejected."""
        with pytest.raises(IndexError):
            matrix_index(2, 2, 0)
        with pytest.raises(IndexError):
            matrix_position(2, 3)


class TestAssemble:
    """Test cases for assembling CIM phase impedance data."""

    def test_units(self):
        """Per-metre values are converted to per-mile values."""
        data = [PhaseImpedanceData(2, r=0.001, x=0.002, b=0.0)]
        m = assemble_phase_impedance(3, data)
        assert m.z(1, 0) == pytest.approx(complex(0.001 * METRES_PER_MILE, 0.002 * METRES_PER_MILE))
        assert m.z(0, 1) == m.z(1, 0)
        assert m.z(0, 0) == 0

    def test_legacy_capacitance(self):
        """Without a frequency the 377 rad/s constant is used."""
        assert susceptance_to_capacitance(377.0e-9) == pytest.approx(1.0)

    def test_frequency_capacitance(self):
        """With a frequency, omega = 2 pi f."""
        assert susceptance_to_capacitance(1.0e-9, 50.0) == pytest.approx(1.0 / 314.159265, rel=1e-6)

    def test_invalid_conductor_count(self):
        """Only 1 to 3 conductors have a GridLAB-D configuration."""
        with pytest.raises(ValueError):
            ImpedanceMatrix(4)


class TestBuildConfigurations:
    """Test cases for shaping a matrix into line configurations."""

    def _matrix(self, n):
        m = ImpedanceMatrix(n)
        for row in range(n):
            for col in range(row + 1):
                m.set(row, col, r=10 * row + col + 1, x=1.0, c=2.0)
        return m

    def test_single_conductor(self):
        """One conductor gives three single-phase variants."""
        configs = build_line_configurations("lc1", self._matrix(1))
        assert [c.name for c in configs] == ["lcon_lc1_A", "lcon_lc1_B", "lcon_lc1_C"]
        assert list(configs[1].z) == [(2, 2)]
        assert configs[2].z[(3, 3)] == complex(1, 1)

    def test_two_conductors(self):
        """Two conductors give the AB, BC and AC variants."""
        configs = build_line_configurations("lc2", self._matrix(2))
        assert [c.phases for c in configs] == ["AB", "BC", "AC"]
        ac = configs[2]
        assert list(ac.z) == [(1, 1), (1, 3), (3, 1), (3, 3)]
        assert ac.z[(1, 3)] == complex(11, 1)
        assert ac.z[(3, 3)] == complex(12, 1)

    def test_triplex(self):
        """Two conductors with 'triplex' in the name give a triplex configuration."""
        configs = build_line_configurations("triplex_400", self._matrix(2))
        assert len(configs) == 1
        assert configs[0].name == "tcon_triplex_400"
        assert configs[0].triplex
        assert configs[0].c == {}

    def test_triplex_without_secondary(self):
        """Triplex configurations are dropped when secondaries are not wanted."""
        assert build_line_configurations("triplex_400", self._matrix(2), want_secondary=False) == []

    def test_three_conductors(self):
        """Three conductors give one full, symmetric ABC variant."""
        configs = build_line_configurations("lc3", self._matrix(3))
        assert len(configs) == 1
        lc = configs[0]
        assert lc.name == "lcon_lc3_ABC"
        assert len(lc.z) == 9
        assert lc.z[(1, 3)] == lc.z[(3, 1)] == complex(21, 1)


class TestSequence:
    """Test cases for balanced lines given by sequence data."""

    def test_sequence_to_phase(self):
        """Self and mutual terms from zero and positive sequence."""
        zs, zm = sequence_to_phase(0.3, 0.1)
        assert zs == pytest.approx(0.166667, rel=1e-5)
        assert zm == pytest.approx(0.066667, rel=1e-5)

    def test_all_variants(self):
        """All seven phase variants are built, in a fixed order."""
        configs = sequence_line_configurations("seq", 0.1, 0.2, 10.0, 0.3, 0.6, 5.0)
        assert [c.phases for c in configs] == ["ABC", "AB", "AC", "BC", "A", "B", "C"]
        abc = configs[0]
        assert abc.z[(1, 1)] == pytest.approx(complex(0.5 / 3, 1.0 / 3))
        assert abc.z[(2, 3)] == pytest.approx(complex(0.2 / 3, 0.4 / 3))
        assert abc.c[(1, 1)] == pytest.approx(25.0 / 3)
        assert configs[5].z == {(2, 2): abc.z[(1, 1)]}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
