"""
cim2glm

Translates CIM distribution feeder models into GridLAB-D power flow models.
"""
from .pint_setup import UNITS, Quantity
from .cim import CIMGraph
from .network import TranslatorConfig, TranslationResult, translate
from .glm import write_glm

from . import calc
from . import cim
from . import general
from . import network
from . import glm


__all__ = [
    "UNITS",
    "Quantity",
    "CIMGraph",
    "TranslatorConfig",
    "TranslationResult",
    "translate",
    "write_glm",
    "calc",
    "cim",
    "general",
    "network",
    "glm"
]


__version__ = "0.1.0"
