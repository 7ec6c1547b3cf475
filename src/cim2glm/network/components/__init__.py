"""
Equipment passes of the translation. Each pass reads one kind of CIM
equipment, updates the bus registry and returns the records to write.
"""
from .source import *
from .load import *
from .capacitor import *
from .regulator import *
from .transformer import *
from .line import *
from .switch import *
from .bus import *
