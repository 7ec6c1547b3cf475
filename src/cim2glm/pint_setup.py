from __future__ import annotations

import pint
from pint.facets.plain.quantity import PlainQuantity as Quantity

UNITS = pint.UnitRegistry()

Q_ = UNITS.Quantity

unit_definitions = [
    'fraction = [] = frac',
    'percent = 1e-2 frac = % = pct',
]
for ud in unit_definitions:
    UNITS.define(ud)

pint.set_application_registry(UNITS)

# Length conversions used throughout the translation. CIM expresses lengths
# in metres; GridLAB-D wants feet for line lengths and "per mile" for
# impedance and capacitance data.
METRES_PER_MILE: float = Q_(1.0, 'mile').to('m').m
FEET_PER_METRE: float = Q_(1.0, 'm').to('ft').m
FEET_PER_MILE: float = Q_(1.0, 'mile').to('ft').m

__all__ = [
    "UNITS",
    "Q_",
    "Quantity",
    "METRES_PER_MILE",
    "FEET_PER_METRE",
    "FEET_PER_MILE"
]
