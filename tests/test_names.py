"""
Tests for the GridLAB-D name normalisation.
"""
import pytest

from cim2glm.general.names import FORBIDDEN_CHARS, gld_id, gld_name, local_name


class TestGldName:
    """Test cases for gld_name."""

    def test_forbidden_characters_replaced(self):
        """Every forbidden character becomes an underscore."""
        assert gld_name("a b.c=d+e^f$g*h|i[j]k{l}m(n)") == "a_b_c_d_e_f_g_h_i_j_k_l_m_n_"

    def test_other_characters_unchanged(self):
        """Characters outside the forbidden set pass through."""
        assert gld_name("Feeder-1_x/y#z") == "Feeder-1_x/y#z"

    def test_one_for_one_replacement(self):
        """Replacement keeps the length of the name."""
        s = "  ..(())"
        assert len(gld_name(s)) == len(s)
        assert gld_name(s) == "_" * len(s)

    @pytest.mark.parametrize("s", ["", "plain", "sw 1.2", FORBIDDEN_CHARS, "x(y)[z]{w}"])
    def test_idempotent(self, s):
        """Normalising twice gives the same result as normalising once."""
        assert gld_name(gld_name(s)) == gld_name(s)

    def test_bus_prefix(self):
        """Topological nodes get the nd_ prefix."""
        assert gld_name("650 A", bus=True) == "nd_650_A"


class TestIdentifiers:
    """Test cases for names derived from resource URIs."""

    def test_local_name_fragment(self):
        """The fragment after '#' is the local name."""
        assert local_name("http://gridlabd#_1234") == "_1234"

    def test_local_name_path(self):
        """Without a fragment the last path element is used."""
        assert local_name("urn:x/y/_abc") == "_abc"

    def test_gld_id(self):
        """mRID based names are normalised too."""
        assert gld_id("http://gridlabd#_A.B") == "_A_B"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
