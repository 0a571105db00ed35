"""
Entity and parameter model.

The records in :py:mod:`exostore.model.records` describe what an Exodus file contains; the
enumerations in :py:mod:`exostore.model.types` describe how it is stored.
"""
from .records import (
    Assembly,
    AttributeData,
    Blob,
    Block,
    EntitySet,
    InitParams,
    NodeSet,
    QaRecord,
    SideSet,
    TruthTable,
)
from .types import (
    AttributeType,
    Compression,
    CreateMode,
    CreateOptions,
    EntityType,
    FloatSize,
    Int64Mode,
)

__all__ = [
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
]
