"""
Access to the CIM model graph.
"""
from .access import *
