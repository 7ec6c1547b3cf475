from dataclasses import dataclass, asdict

from ..pint_setup import Quantity, Q_
from ..cim.access import CIM16_NAMESPACE


__all__ = ["TranslatorConfig"]


@dataclass
class TranslatorConfig:
    """
    Configuration settings of a CIM to GridLAB-D translation run.
    """
    # Multiplies every load after all loads have been accumulated.
    load_scale: float = 1.0

    # Include split-phase secondaries (triplex lines, loads and nodes and
    # center-tapped transformers). Turn off for debugging only, as this drops
    # all secondary load.
    want_secondary: bool = True

    # System frequency, converts susceptance to capacitance.
    frequency: Quantity = Q_(60.0, "Hz")

    # Convert CIM voltages to V and CIM p, q and s to W, var and VA.
    voltage_multiplier: float = 1.0
    power_multiplier: float = 1.0

    # If False, line names are taken from the mRID instead of
    # IdentifiedObject.name.
    unique_names: bool = True

    # Player that scales the base power of triplex loads; empty for none.
    schedule_name: str = ""

    # Z, I and P portions redistributed over every load; None keeps the
    # portions from the CIM load response characteristics.
    zip_coefficients: tuple[float, float, float] | None = None

    cim_namespace: str = CIM16_NAMESPACE

    # Settings of the swing bus substation object.
    swing_base_power: Quantity = Q_(12.0, "MVA")
    power_convergence: Quantity = Q_(100.0, "VA")

    @property
    def frequency_hz(self) -> float:
        return self.frequency.to("Hz").magnitude

    def __str__(self) -> str:
        d = asdict(self)
        s_list = []
        for k, v in d.items():
            if isinstance(v, Quantity):
                s_list.append(f"{k}: {v:~P.0f}")
            else:
                s_list.append(f"{k}: {v}")
        return "\n".join(s_list)
