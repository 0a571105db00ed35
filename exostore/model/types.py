"""
Enumerations and option records shared by the whole library.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from exostore.exceptions import SchemaViolation
from exostore.utilities.config import exostore_params

if TYPE_CHECKING:
    from exostore.performance import PerformanceConfig


class EntityType(Enum):
    """
    Every kind of entity an Exodus file can describe.

    The values are the integer codes used by the Exodus II API.
    """

    ELEM_BLOCK = 1
    NODE_SET = 2
    SIDE_SET = 3
    NODE_MAP = 4
    ELEM_MAP = 5
    EDGE_BLOCK = 6
    EDGE_SET = 7
    FACE_BLOCK = 8
    FACE_SET = 9
    ELEM_SET = 10
    EDGE_MAP = 11
    FACE_MAP = 12
    GLOBAL = 13
    NODAL = 14
    ASSEMBLY = 16
    BLOB = 17

    def __str__(self):
        return self.name.lower()

    @property
    def is_block(self) -> bool:
        return self in _BLOCK_TYPES

    @property
    def is_set(self) -> bool:
        return self in _SET_TYPES

    @property
    def is_map(self) -> bool:
        return self in _MAP_TYPES

    @property
    def has_variables(self) -> bool:
        """Whether per-sub-entity (time dependent) variables may be declared for this type."""
        return self in _BLOCK_TYPES or self in _SET_TYPES or self in (
            EntityType.GLOBAL,
            EntityType.NODAL,
        )

    @property
    def has_reduction_variables(self) -> bool:
        """Whether per-entity reduction variables may be declared for this type."""
        return self in _BLOCK_TYPES or self in _SET_TYPES or self in (
            EntityType.ASSEMBLY,
            EntityType.BLOB,
        )

    @property
    def has_truth_table(self) -> bool:
        return self in _BLOCK_TYPES or self in _SET_TYPES

    @classmethod
    def coerce(cls, value) -> "EntityType":
        """
        Build an :py:class:`EntityType` from an instance, its name or its integer code.

        Raises
        ------
        SchemaViolation
            If ``value`` names no entity type.
        """
        if isinstance(value, cls):
            return value
        try:
            if isinstance(value, str):
                return cls[value.upper()]
            return cls(value)
        except (KeyError, ValueError):
            raise SchemaViolation(f"Unknown entity type: {value!r}.") from None


_BLOCK_TYPES = frozenset(
    {EntityType.ELEM_BLOCK, EntityType.EDGE_BLOCK, EntityType.FACE_BLOCK}
)
_SET_TYPES = frozenset(
    {
        EntityType.NODE_SET,
        EntityType.SIDE_SET,
        EntityType.EDGE_SET,
        EntityType.FACE_SET,
        EntityType.ELEM_SET,
    }
)
_MAP_TYPES = frozenset(
    {EntityType.NODE_MAP, EntityType.ELEM_MAP, EntityType.EDGE_MAP, EntityType.FACE_MAP}
)


def _option(enum_cls, value, label: str):
    """Coerce a creation option to ``enum_cls``, raising SchemaViolation for unknown values."""
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(repr(member.value) for member in enum_cls)
        raise SchemaViolation(f"Invalid {label} {value!r}; expected one of {choices}.") from None


class CreateMode(Enum):
    """What to do when a file is created over an existing path."""

    CLOBBER = "w"
    NO_CLOBBER = "w-"


class FloatSize(Enum):
    """Storage width of floating point data."""

    FLOAT32 = 4
    FLOAT64 = 8

    @property
    def dtype(self) -> str:
        return "f4" if self is FloatSize.FLOAT32 else "f8"


class Int64Mode(Enum):
    """Storage width of integer data (ids, connectivity, maps)."""

    INT32 = 4
    INT64 = 8

    @property
    def dtype(self) -> str:
        return "i4" if self is Int64Mode.INT32 else "i8"


class Compression(Enum):
    """Dataset filters supported for bulk arrays."""

    NONE = None
    GZIP = "gzip"
    LZF = "lzf"


class AttributeType(Enum):
    """Kinds of value an :py:class:`~exostore.model.records.AttributeData` may hold."""

    INTEGER = "integer"
    DOUBLE = "double"
    CHAR = "char"


@dataclass
class CreateOptions:
    """
    Options fixed when a file is created.

    Parameters
    ----------
    mode : CreateMode
        Whether an existing file may be overwritten.
    float_size : FloatSize
        Width of stored floating point data.
    int64_mode : Int64Mode
        Width of stored integer data.
    compression : Compression
        Filter applied to bulk arrays.
    compression_level : int
        Level for ``gzip`` (1-9). Ignored by other filters.
    performance : PerformanceConfig, optional
        Cache and chunk configuration. Defaults to the configured preset.
    """

    mode: CreateMode = CreateMode.NO_CLOBBER
    float_size: FloatSize = field(
        default_factory=lambda: FloatSize(exostore_params["system.io.float_size"])
    )
    int64_mode: Int64Mode = field(
        default_factory=lambda: Int64Mode(exostore_params["system.io.int_size"])
    )
    compression: Compression = field(
        default_factory=lambda: Compression(exostore_params["system.io.compression"])
    )
    compression_level: int = field(
        default_factory=lambda: exostore_params["system.io.compression_level"]
    )
    performance: Optional["PerformanceConfig"] = None

    def __post_init__(self):
        self.mode = _option(CreateMode, self.mode, "create mode")
        self.float_size = _option(FloatSize, self.float_size, "float size")
        self.int64_mode = _option(Int64Mode, self.int64_mode, "integer size")
        self.compression = _option(Compression, self.compression, "compression")

        if self.compression is Compression.GZIP and not (
            1 <= int(self.compression_level) <= 9
        ):
            raise SchemaViolation(
                f"gzip compression level must be in [1, 9], got {self.compression_level}."
            )

    @property
    def dataset_filters(self) -> dict:
        """Keyword arguments for :py:meth:`h5py.Group.create_dataset` selecting the filter."""
        if self.compression is Compression.NONE:
            return {}
        if self.compression is Compression.GZIP:
            return dict(compression="gzip", compression_opts=int(self.compression_level))
        return dict(compression="lzf")
