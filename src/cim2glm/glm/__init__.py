"""
GridLAB-D text output.
"""
from .writer import *
