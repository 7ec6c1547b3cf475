"""
General helpers: closed CIM enumerations, phase algebra and names.
"""
from .enums import *
from .phases import *
from .names import *
