"""
Canonical node and side counts of the standard Exodus element topologies.

Topology names are matched case-insensitively and aliases (``HEX`` for ``HEX8``, ``TET4`` for
``TETRA4`` and so on) resolve to their canonical form. Names not in the table are accepted by the
rest of the library without node-count validation, since Exodus allows arbitrary topology strings.
"""
from typing import Optional

# @@ TOPOLOGY TABLE @@ #
# canonical name -> (nodes per element, sides per element)
_TOPOLOGIES = {
    "SPHERE": (1, 0),
    "BAR2": (2, 2),
    "BAR3": (3, 2),
    "TRI3": (3, 3),
    "TRI6": (6, 3),
    "TRI7": (7, 3),
    "TRISHELL3": (3, 5),
    "TRISHELL6": (6, 5),
    "QUAD4": (4, 4),
    "QUAD8": (8, 4),
    "QUAD9": (9, 4),
    "SHELL4": (4, 6),
    "SHELL8": (8, 6),
    "SHELL9": (9, 6),
    "TETRA4": (4, 4),
    "TETRA8": (8, 4),
    "TETRA10": (10, 4),
    "TETRA14": (14, 4),
    "TETRA15": (15, 4),
    "PYRAMID5": (5, 5),
    "PYRAMID13": (13, 5),
    "PYRAMID14": (14, 5),
    "WEDGE6": (6, 5),
    "WEDGE15": (15, 5),
    "WEDGE18": (18, 5),
    "HEX8": (8, 6),
    "HEX20": (20, 6),
    "HEX27": (27, 6),
}

_ALIASES = {
    "HEX": "HEX8",
    "HEXAHEDRON": "HEX8",
    "TETRA": "TETRA4",
    "TET": "TETRA4",
    "TET4": "TETRA4",
    "TET10": "TETRA10",
    "WEDGE": "WEDGE6",
    "PYRAMID": "PYRAMID5",
    "QUAD": "QUAD4",
    "TRI": "TRI3",
    "TRIANGLE": "TRI3",
    "SHELL": "SHELL4",
    "BAR": "BAR2",
    "BEAM": "BAR2",
    "BEAM2": "BAR2",
    "TRUSS": "BAR2",
    "TRUSS2": "BAR2",
}


def canonical_topology(name: str) -> Optional[str]:
    """
    Resolve a topology name to its canonical spelling.

    Parameters
    ----------
    name : str
        The topology name as given by the caller or stored in a file.

    Returns
    -------
    str or None
        The canonical name, or ``None`` if the topology is not a standard one.
    """
    key = name.strip().upper()
    key = _ALIASES.get(key, key)
    return key if key in _TOPOLOGIES else None


def nodes_per_element(name: str) -> Optional[int]:
    """
    Canonical node count of ``name``, or ``None`` when the name does not pin one down.

    Only fully qualified names (``HEX8``, ``TETRA10``) pin the node count. Generic names such as
    ``HEX`` are used in practice for several node counts and return ``None``.
    """
    key = name.strip().upper()
    return _TOPOLOGIES[key][0] if key in _TOPOLOGIES else None


def sides_per_element(name: str) -> Optional[int]:
    """Number of sides of ``name``, or ``None`` for non-standard topologies."""
    key = canonical_topology(name)
    return _TOPOLOGIES[key][1] if key else None
