"""
Bus state and translation passes of a CIM to GridLAB-D run.
"""
from .config import *
from .diagnostics import *
from .graph import *
from .terminals import *
from .loads import *
from .context import *
from .topology import *
from .components import *
from .translator import *
