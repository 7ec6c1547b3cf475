"""
Conversion of CIM identifiers into names GridLAB-D accepts.
"""
__all__ = [
    "BUS_PREFIX",
    "gld_name",
    "prefixed_node_name",
    "gld_id",
    "local_name"
]


BUS_PREFIX = "nd_"

# Characters GridLAB-D does not accept in object names.
FORBIDDEN_CHARS = " .=+^$*|[]{}()"

_translation = str.maketrans({c: "_" for c in FORBIDDEN_CHARS})


def prefixed_node_name(arg: str) -> str:
    """Prefix a bus name with `nd_` so bus names don't collide with others."""
    return BUS_PREFIX + arg


def gld_name(arg: str, bus: bool = False) -> str:
    """
    Returns a GridLAB-D compatible name.

    Parameters
    ----------
    arg:
        Root name of the bus or component, usually the CIM
        `IdentifiedObject.name`.
    bus:
        If True, the name is prefixed with `nd_` for a topological node.

    Returns
    -------
    str
        Every character of `FORBIDDEN_CHARS` is replaced by an underscore; all
        other characters are left untouched.
    """
    s = arg.translate(_translation)
    if bus:
        return prefixed_node_name(s)
    return s


def local_name(uri: str) -> str:
    """Return the part of a URI after the last '#' (or '/' if there is none)."""
    if "#" in uri:
        return uri.rsplit("#", 1)[1]
    return uri.rsplit("/", 1)[-1]


def gld_id(uri: str) -> str:
    """Build a GridLAB-D name from the mRID fragment of a resource URI."""
    return gld_name(local_name(uri))
