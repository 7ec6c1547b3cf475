from __future__ import annotations

from ..pint_setup import Quantity, Q_

__all__ = ["PerUnitSystem"]


class PerUnitSystem:

    def __init__(self, S_base: Quantity, U_base: Quantity):
        """
        Creates a `PerUnitSystem` object for one transformer winding.

        Parameters
        ----------
        S_base:
            Base power of the per-unit system (rated power of the winding).
        U_base:
            Base voltage of the per-unit system (rated voltage of the winding).

        Raises
        ------
        ValueError
            If either base is not positive.
        """
        if S_base.magnitude <= 0.0 or U_base.magnitude <= 0.0:
            raise ValueError(
                f"per-unit bases must be positive (S_base = {S_base}, U_base = {U_base})"
            )
        self.S_base = S_base
        self.U_base = U_base
        self.Z_base: Quantity = U_base ** 2 / S_base

    @classmethod
    def from_ratings(cls, rated_S: float, rated_U: float) -> PerUnitSystem:
        """Creates the per-unit system from plain ratings in VA and V."""
        return cls(Q_(rated_S, 'VA'), Q_(rated_U, 'V'))

    def get_per_unit_impedance(self, Z_act: Quantity | float) -> float:
        """Returns the per-unit value of the actual impedance `Z_act` (ohm)."""
        if not isinstance(Z_act, Quantity):
            Z_act = Q_(Z_act, 'ohm')
        Z_pu: Quantity = Z_act / self.Z_base
        return Z_pu.to('ohm / ohm').magnitude

    def get_per_unit_admittance(self, Y_act: Quantity | float) -> float:
        """Returns the per-unit value of the actual admittance `Y_act` (S)."""
        if not isinstance(Y_act, Quantity):
            Y_act = Q_(Y_act, 'S')
        Y_pu: Quantity = Y_act * self.Z_base
        return Y_pu.to('S * ohm').magnitude

    def get_per_unit_power(self, S_act: Quantity | float) -> float:
        """Returns the per-unit value of the actual power `S_act` (W or VA)."""
        if not isinstance(S_act, Quantity):
            S_act = Q_(S_act, 'VA')
        S_pu: Quantity = S_act / self.S_base
        return S_pu.to('VA / VA').magnitude
