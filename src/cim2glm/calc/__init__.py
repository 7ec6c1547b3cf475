"""
Numeric helpers of the translation: impedance matrices, per-unit values and
ZIP load fractions.
"""
from .impedance import *
from .per_unit import *
from .zip import *
