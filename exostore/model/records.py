"""
Typed records describing the contents of an Exodus file.

The records in this module perform validation only. They never touch a file; the file classes in
:py:mod:`exostore.file` translate them to and from storage.

Notes
-----
Every array field is normalized to a one dimensional :py:class:`numpy.ndarray` (``int64`` for ids and
indices, ``float64`` for distribution factors) when the record is built, so that records read back
from a file compare equal to the records that were written.
"""
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from exostore.exceptions import SchemaViolation
from exostore.io.codec import to_int_storage
from exostore.model.topology import nodes_per_element
from exostore.model.types import AttributeType, EntityType

# @@ STRING LIMITS @@ #
MAX_NAME_LENGTH = 32
MAX_TITLE_LENGTH = 80
MAX_LINE_LENGTH = 80
MAX_QA_LENGTH = 32


# @@ VALIDATION HELPERS @@ #
def _int_array(values: Any, label: str) -> np.ndarray:
    """Convert ``values`` to a flat ``int64`` array, rejecting non-integral or out of range input."""
    if values is None:
        return np.zeros(0, dtype=np.int64)

    return to_int_storage(values, np.int64, label)


def _float_array(values: Any, label: str) -> np.ndarray:
    """Convert ``values`` to a flat ``float64`` array."""
    if values is None:
        return np.zeros(0, dtype=np.float64)
    try:
        return np.asarray(values, dtype=np.float64).ravel()
    except (TypeError, ValueError) as e:
        raise SchemaViolation(f"{label} must contain numbers: {e}") from None


def _check_string(value: str, limit: int, label: str) -> str:
    if not isinstance(value, str):
        raise SchemaViolation(f"{label} must be a string, got {type(value).__name__}.")
    if len(value) > limit:
        raise SchemaViolation(
            f"{label} '{value}' is {len(value)} characters long; the limit is {limit}."
        )
    return value


def _check_count(value: int, label: str) -> int:
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise SchemaViolation(f"{label} must be an integer, got {value!r}.") from None
    if value < 0:
        raise SchemaViolation(f"{label} must be non-negative, got {value}.")
    return value


def _check_id(value: Any, label: str = "id") -> int:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, np.integer)):
        raise SchemaViolation(f"{label} must be an integer, got {value!r}.")
    return int(value)


def _check_one_based(values: np.ndarray, upper: Optional[int], label: str):
    if values.size == 0:
        return
    if values.min() < 1:
        raise SchemaViolation(f"{label} are 1-based; found {values.min()}.")
    if upper is not None and values.max() > upper:
        raise SchemaViolation(
            f"{label} reference {values.max()} but only {upper} exist."
        )


# @@ INITIALIZATION PARAMETERS @@ #
@dataclass
class InitParams:
    """
    The global sizing of an Exodus file.

    The parameters are written once, when a new file is initialized, and fix the reserved capacity of
    every block, set, map, assembly and blob category for the life of the file.
    """

    title: str = ""
    num_dim: int = 3
    num_nodes: int = 0
    num_edges: int = 0
    num_edge_blocks: int = 0
    num_faces: int = 0
    num_face_blocks: int = 0
    num_elems: int = 0
    num_elem_blocks: int = 0
    num_node_sets: int = 0
    num_edge_sets: int = 0
    num_face_sets: int = 0
    num_side_sets: int = 0
    num_elem_sets: int = 0
    num_node_maps: int = 0
    num_edge_maps: int = 0
    num_face_maps: int = 0
    num_elem_maps: int = 0
    num_assemblies: int = 0
    num_blobs: int = 0

    def __post_init__(self):
        _check_string(self.title, MAX_TITLE_LENGTH, "title")

        if self.num_dim not in (1, 2, 3):
            raise SchemaViolation(f"num_dim must be 1, 2 or 3, got {self.num_dim}.")

        for _name in self.__dataclass_fields__:
            if _name.startswith("num_"):
                setattr(self, _name, _check_count(getattr(self, _name), _name))

    # Which count each entity category reserves.
    _CAPACITY_FIELDS = {
        EntityType.ELEM_BLOCK: "num_elem_blocks",
        EntityType.EDGE_BLOCK: "num_edge_blocks",
        EntityType.FACE_BLOCK: "num_face_blocks",
        EntityType.NODE_SET: "num_node_sets",
        EntityType.EDGE_SET: "num_edge_sets",
        EntityType.FACE_SET: "num_face_sets",
        EntityType.SIDE_SET: "num_side_sets",
        EntityType.ELEM_SET: "num_elem_sets",
        EntityType.NODE_MAP: "num_node_maps",
        EntityType.EDGE_MAP: "num_edge_maps",
        EntityType.FACE_MAP: "num_face_maps",
        EntityType.ELEM_MAP: "num_elem_maps",
        EntityType.ASSEMBLY: "num_assemblies",
        EntityType.BLOB: "num_blobs",
    }

    def capacity(self, entity_type: EntityType) -> int:
        """
        Number of entities of ``entity_type`` reserved by these parameters.

        Raises
        ------
        SchemaViolation
            If ``entity_type`` is not a counted category (global or nodal).
        """
        try:
            return getattr(self, self._CAPACITY_FIELDS[entity_type])
        except KeyError:
            raise SchemaViolation(
                f"{entity_type} is not a counted entity category."
            ) from None


# @@ BLOCKS @@ #
@dataclass
class Block:
    """
    An element, edge or face block.

    A block groups entries that share one topology and therefore one node count. Its connectivity is
    a flat array of ``num_entries * num_nodes_per_entry`` 1-based node indices, so entry ``i``
    occupies the slice ``[i * npe, (i + 1) * npe)``.
    """

    id: int
    topology: str
    num_entries: int
    num_nodes_per_entry: int
    entity_type: EntityType = EntityType.ELEM_BLOCK
    num_edges_per_entry: int = 0
    num_faces_per_entry: int = 0
    num_attributes: int = 0

    def __post_init__(self):
        self.id = _check_id(self.id)
        self.entity_type = EntityType.coerce(self.entity_type)

        if not self.entity_type.is_block:
            raise SchemaViolation(f"{self.entity_type} is not a block type.")

        self.num_entries = _check_count(self.num_entries, "num_entries")
        self.num_nodes_per_entry = _check_count(
            self.num_nodes_per_entry, "num_nodes_per_entry"
        )
        self.num_edges_per_entry = _check_count(
            self.num_edges_per_entry, "num_edges_per_entry"
        )
        self.num_faces_per_entry = _check_count(
            self.num_faces_per_entry, "num_faces_per_entry"
        )
        self.num_attributes = _check_count(self.num_attributes, "num_attributes")
        self.topology = _check_string(self.topology, MAX_NAME_LENGTH, "topology").strip()

        if self.num_entries > 0:
            if not self.topology:
                raise SchemaViolation(
                    f"Block {self.id} has {self.num_entries} entries but no topology."
                )
            if self.num_nodes_per_entry == 0:
                raise SchemaViolation(
                    f"Block {self.id} has {self.num_entries} entries but no nodes per entry."
                )

        expected = nodes_per_element(self.topology) if self.topology else None
        if expected is not None and self.num_nodes_per_entry not in (0, expected):
            raise SchemaViolation(
                f"Topology {self.topology} has {expected} nodes per entry, "
                f"block {self.id} declares {self.num_nodes_per_entry}."
            )

    @property
    def connectivity_length(self) -> int:
        return self.num_entries * self.num_nodes_per_entry


# @@ SETS @@ #
@dataclass
class NodeSet:
    """A set of nodes with optional per-node distribution factors."""

    id: int
    nodes: Sequence[int] = field(default_factory=list)
    dist_factors: Sequence[float] = field(default_factory=list)

    def __post_init__(self):
        self.id = _check_id(self.id)
        self.nodes = _int_array(self.nodes, "nodes")
        self.dist_factors = _float_array(self.dist_factors, "dist_factors")

        _check_one_based(self.nodes, None, f"Node set {self.id} nodes")

        if self.dist_factors.size not in (0, self.nodes.size):
            raise SchemaViolation(
                f"Node set {self.id} has {self.nodes.size} nodes but "
                f"{self.dist_factors.size} distribution factors."
            )

    @property
    def entity_type(self) -> EntityType:
        return EntityType.NODE_SET

    def __eq__(self, other):
        if not isinstance(other, NodeSet):
            return NotImplemented
        return (
            self.id == other.id
            and np.array_equal(self.nodes, other.nodes)
            and np.array_equal(self.dist_factors, other.dist_factors)
        )


@dataclass
class SideSet:
    """
    A set of element sides.

    ``elements`` and ``sides`` are parallel arrays: entry ``i`` is side ``sides[i]`` of element
    ``elements[i]``. Distribution factors are per side-node, so any length is accepted.
    """

    id: int
    elements: Sequence[int] = field(default_factory=list)
    sides: Sequence[int] = field(default_factory=list)
    dist_factors: Sequence[float] = field(default_factory=list)

    def __post_init__(self):
        self.id = _check_id(self.id)
        self.elements = _int_array(self.elements, "elements")
        self.sides = _int_array(self.sides, "sides")
        self.dist_factors = _float_array(self.dist_factors, "dist_factors")

        if self.elements.size != self.sides.size:
            raise SchemaViolation(
                f"Side set {self.id} has {self.elements.size} elements but "
                f"{self.sides.size} sides."
            )

        _check_one_based(self.elements, None, f"Side set {self.id} elements")
        _check_one_based(self.sides, None, f"Side set {self.id} sides")

    @property
    def entity_type(self) -> EntityType:
        return EntityType.SIDE_SET

    def __len__(self):
        return self.elements.size

    def __eq__(self, other):
        if not isinstance(other, SideSet):
            return NotImplemented
        return (
            self.id == other.id
            and np.array_equal(self.elements, other.elements)
            and np.array_equal(self.sides, other.sides)
            and np.array_equal(self.dist_factors, other.dist_factors)
        )


@dataclass
class EntitySet:
    """A set of edges, faces or elements."""

    entity_type: EntityType
    id: int
    entities: Sequence[int] = field(default_factory=list)
    dist_factors: Sequence[float] = field(default_factory=list)

    _ALLOWED = (EntityType.EDGE_SET, EntityType.FACE_SET, EntityType.ELEM_SET)

    def __post_init__(self):
        self.entity_type = EntityType.coerce(self.entity_type)
        if self.entity_type not in self._ALLOWED:
            raise SchemaViolation(
                f"EntitySet must be an edge, face or elem set, got {self.entity_type}."
            )

        self.id = _check_id(self.id)
        self.entities = _int_array(self.entities, "entities")
        self.dist_factors = _float_array(self.dist_factors, "dist_factors")

        _check_one_based(self.entities, None, f"{self.entity_type} {self.id} entries")

        if self.dist_factors.size not in (0, self.entities.size):
            raise SchemaViolation(
                f"{self.entity_type} {self.id} has {self.entities.size} entries but "
                f"{self.dist_factors.size} distribution factors."
            )

    def __eq__(self, other):
        if not isinstance(other, EntitySet):
            return NotImplemented
        return (
            self.entity_type is other.entity_type
            and self.id == other.id
            and np.array_equal(self.entities, other.entities)
            and np.array_equal(self.dist_factors, other.dist_factors)
        )


# @@ GROUPING AND PAYLOADS @@ #
@dataclass
class Assembly:
    """A named, ordered reference to entities of one type. Assemblies never own their members."""

    id: int
    name: str
    entity_type: EntityType
    entity_list: Sequence[int] = field(default_factory=list)

    def __post_init__(self):
        self.id = _check_id(self.id)
        _check_string(self.name, MAX_NAME_LENGTH, "Assembly name")
        self.entity_type = EntityType.coerce(self.entity_type)
        self.entity_list = _int_array(self.entity_list, "entity_list")

    def __eq__(self, other):
        if not isinstance(other, Assembly):
            return NotImplemented
        return (
            self.id == other.id
            and self.name == other.name
            and self.entity_type is other.entity_type
            and np.array_equal(self.entity_list, other.entity_list)
        )


@dataclass
class Blob:
    """A named opaque byte payload."""

    id: int
    name: str
    data: bytes = b""

    def __post_init__(self):
        self.id = _check_id(self.id)
        _check_string(self.name, MAX_NAME_LENGTH, "Blob name")
        if isinstance(self.data, np.ndarray):
            self.data = self.data.astype(np.uint8).tobytes()
        else:
            self.data = bytes(self.data)


@dataclass(frozen=True)
class QaRecord:
    """One line of the quality assurance audit trail."""

    code_name: str
    code_version: str
    date: str
    time: str

    def __post_init__(self):
        for _name in ("code_name", "code_version", "date", "time"):
            _check_string(getattr(self, _name), MAX_QA_LENGTH, f"QA {_name}")

    def as_tuple(self) -> Tuple[str, str, str, str]:
        return self.code_name, self.code_version, self.date, self.time


# @@ ATTRIBUTES @@ #
@dataclass
class AttributeData:
    """
    A named attribute value attached to a block or set.

    Exactly one of the three kinds is held. Use the constructors :py:meth:`integer`,
    :py:meth:`double` and :py:meth:`char` rather than building the record directly.
    """

    kind: AttributeType
    value: Union[np.ndarray, str]

    def __post_init__(self):
        self.kind = AttributeType(self.kind)
        if self.kind is AttributeType.INTEGER:
            self.value = _int_array(np.atleast_1d(self.value), "integer attribute")
        elif self.kind is AttributeType.DOUBLE:
            self.value = _float_array(np.atleast_1d(self.value), "double attribute")
        elif not isinstance(self.value, str):
            raise SchemaViolation("char attributes must hold a string.")

    @classmethod
    def integer(cls, values) -> "AttributeData":
        return cls(AttributeType.INTEGER, values)

    @classmethod
    def double(cls, values) -> "AttributeData":
        return cls(AttributeType.DOUBLE, values)

    @classmethod
    def char(cls, value: str) -> "AttributeData":
        return cls(AttributeType.CHAR, value)

    def __eq__(self, other):
        if not isinstance(other, AttributeData):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        if self.kind is AttributeType.CHAR:
            return self.value == other.value
        return np.array_equal(self.value, other.value)


# @@ TRUTH TABLES @@ #
class TruthTable:
    """
    Dense boolean matrix of which (entity, variable) pairs are defined.

    Rows follow the storage order of the entities of ``entity_type``; columns follow the declared
    variable order. When ``entity_ids`` is known (tables read from a file always carry it) cells may
    also be addressed by entity id.

    Parameters
    ----------
    entity_type : EntityType
        A block or set type.
    num_entities : int
        Number of rows.
    num_vars : int
        Number of columns.
    table : array-like, optional
        Initial ``(num_entities, num_vars)`` contents. Defaults to all false.
    entity_ids : sequence of int, optional
        Entity ids in row order.
    """

    def __init__(
        self,
        entity_type: EntityType,
        num_entities: int,
        num_vars: int,
        table: Any = None,
        entity_ids: Optional[Sequence[int]] = None,
    ):
        self.entity_type = EntityType.coerce(entity_type)
        if not self.entity_type.has_truth_table:
            raise SchemaViolation(f"{self.entity_type} has no truth table.")

        num_entities = _check_count(num_entities, "num_entities")
        num_vars = _check_count(num_vars, "num_vars")

        if table is None:
            self.table = np.zeros((num_entities, num_vars), dtype=bool)
        else:
            self.table = np.array(table, dtype=bool).reshape(num_entities, num_vars)

        self.entity_ids = None
        if entity_ids is not None:
            self.entity_ids = tuple(int(i) for i in entity_ids)
            if len(self.entity_ids) != num_entities:
                raise SchemaViolation(
                    f"Truth table has {num_entities} rows but {len(self.entity_ids)} ids."
                )

    @classmethod
    def all_true(cls, entity_type, num_entities, num_vars, entity_ids=None):
        return cls(
            entity_type,
            num_entities,
            num_vars,
            np.ones((num_entities, num_vars), dtype=bool),
            entity_ids,
        )

    @property
    def num_entities(self) -> int:
        return self.table.shape[0]

    @property
    def num_vars(self) -> int:
        return self.table.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.table.shape

    def row_of(self, entity_id: int) -> int:
        """Row index of ``entity_id``."""
        if self.entity_ids is None:
            raise SchemaViolation("This truth table was built without entity ids.")
        try:
            return self.entity_ids.index(int(entity_id))
        except ValueError:
            raise SchemaViolation(
                f"{self.entity_type} {entity_id} is not a row of this truth table."
            ) from None

    def _check_cell(self, row: int, var_index: int):
        if not (0 <= row < self.num_entities):
            raise SchemaViolation(f"Row {row} outside [0, {self.num_entities}).")
        if not (0 <= var_index < self.num_vars):
            raise SchemaViolation(
                f"Variable index {var_index} outside [0, {self.num_vars})."
            )

    def get(self, row: int, var_index: int) -> bool:
        self._check_cell(row, var_index)
        return bool(self.table[row, var_index])

    def set(self, row: int, var_index: int, value: bool = True):
        self._check_cell(row, var_index)
        self.table[row, var_index] = bool(value)

    def get_by_id(self, entity_id: int, var_index: int) -> bool:
        return self.get(self.row_of(entity_id), var_index)

    def set_by_id(self, entity_id: int, var_index: int, value: bool = True):
        self.set(self.row_of(entity_id), var_index, value)

    def __getitem__(self, item):
        return self.table[item]

    def __eq__(self, other):
        if not isinstance(other, TruthTable):
            return NotImplemented
        return self.entity_type is other.entity_type and np.array_equal(
            self.table, other.table
        )

    def __repr__(self):
        return f"<TruthTable {self.entity_type} {self.num_entities}x{self.num_vars}>"
