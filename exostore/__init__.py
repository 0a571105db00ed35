"""
exostore: storage of finite element meshes and results in the Exodus II data model.

An Exodus file holds a mesh (coordinates, element, edge and face blocks, sets and id maps),
time-dependent results on it and descriptive metadata, in an HDF5 container laid out the netCDF-4
way. Files are accessed through three handles:

- :py:class:`~exostore.file.modes.ExodusWriter` creates a new file.
- :py:class:`~exostore.file.modes.ExodusReader` reads an existing file.
- :py:class:`~exostore.file.modes.ExodusAppender` adds results and entities to an existing file.
"""
from .exceptions import (
    AlreadyExists,
    ExodusError,
    InvalidState,
    NotDefined,
    NotFound,
    SchemaViolation,
    UnderlyingIOError,
)
from .file import ExodusAppender, ExodusReader, ExodusWriter
from .model import (
    Assembly,
    AttributeData,
    AttributeType,
    Blob,
    Block,
    Compression,
    CreateMode,
    CreateOptions,
    EntitySet,
    EntityType,
    FloatSize,
    InitParams,
    Int64Mode,
    NodeSet,
    QaRecord,
    SideSet,
    TruthTable,
)
from .performance import CacheConfig, ChunkConfig, NodeType, PerformanceConfig

__version__ = "0.1.0"

__all__ = [
    "ExodusReader",
    "ExodusWriter",
    "ExodusAppender",
    "ExodusError",
    "NotFound",
    "AlreadyExists",
    "InvalidState",
    "SchemaViolation",
    "NotDefined",
    "UnderlyingIOError",
    "Assembly",
    "AttributeData",
    "AttributeType",
    "Blob",
    "Block",
    "Compression",
    "CreateMode",
    "CreateOptions",
    "EntitySet",
    "EntityType",
    "FloatSize",
    "InitParams",
    "Int64Mode",
    "NodeSet",
    "QaRecord",
    "SideSet",
    "TruthTable",
    "CacheConfig",
    "ChunkConfig",
    "NodeType",
    "PerformanceConfig",
]
