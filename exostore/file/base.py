"""
The shared core of the three file classes.

:py:class:`ExodusFile` holds the open container, the metadata cache and every operation on the file.
The concrete classes in :py:mod:`exostore.file.modes` only decide which of those operations are
allowed by setting :py:attr:`ExodusFile._CAN_READ` and :py:attr:`ExodusFile._CAN_WRITE`. Calls outside
the capability of a handle raise :py:class:`~exostore.exceptions.InvalidState` instead of being
absent, so that the whole surface is discoverable on every handle.

The operations themselves are split by topic across mixins: blocks in
:py:mod:`~exostore.file.blocks`, sets in :py:mod:`~exostore.file.sets`, maps, assemblies and blobs in
:py:mod:`~exostore.file.maps`, and variables in :py:mod:`~exostore.file.variables`.
"""
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import numpy as np

from exostore.exceptions import (
    ExodusError,
    InvalidState,
    NotDefined,
    NotFound,
    SchemaViolation,
    UnderlyingIOError,
)
from exostore.io import codec
from exostore.io import naming as nm
from exostore.io.hdf5 import ExodusContainer
from exostore.model.records import (
    MAX_NAME_LENGTH,
    AttributeData,
    InitParams,
    QaRecord,
)
from exostore.model.types import AttributeType, CreateOptions, EntityType
from exostore.utilities.config import exostore_params
from exostore.utilities.containers import LRUCache
from exostore.utilities.logging import LogDescriptor

if TYPE_CHECKING:
    from logging import LoggerAdapter

    from exostore.performance import PerformanceConfig


# @@ CAPABILITY DECORATORS @@ #
# Every public operation is wrapped by exactly one of these. They check the handle
# state first, then translate low level OS errors into UnderlyingIOError.
def _guard_io(fun, self, args, kwargs):
    try:
        return fun(self, *args, **kwargs)
    except ExodusError:
        raise
    except OSError as e:
        raise UnderlyingIOError(f"{self.path}: {fun.__name__} failed: {e}") from e


def reads(fun):
    """Mark ``fun`` as a read operation."""

    @wraps(fun)
    def inner(self, *args, **kwargs):
        self._require_open(fun.__name__)
        if not self._CAN_READ:
            raise InvalidState(
                f"{self.path}: {fun.__name__} is a read and {type(self).__name__} is write-only."
            )
        return _guard_io(fun, self, args, kwargs)

    return inner


def writes(fun):
    """Mark ``fun`` as a write operation, which requires an initialized file."""

    @wraps(fun)
    def inner(self, *args, **kwargs):
        self._require_open(fun.__name__)
        if not self._CAN_WRITE:
            raise InvalidState(
                f"{self.path}: {fun.__name__} is a write and {type(self).__name__} is read-only."
            )
        if not self.is_initialized:
            raise InvalidState(
                f"{self.path}: put_init_params must be called before {fun.__name__}."
            )
        return _guard_io(fun, self, args, kwargs)

    return inner


def initializes(fun):
    """Mark ``fun`` as the one-time initialization of a new file."""

    @wraps(fun)
    def inner(self, *args, **kwargs):
        self._require_open(fun.__name__)
        if not self._CAN_WRITE:
            raise InvalidState(
                f"{self.path}: {fun.__name__} is a write and {type(self).__name__} is read-only."
            )
        if self.is_initialized:
            raise InvalidState(f"{self.path}: the file is already initialized.")
        return _guard_io(fun, self, args, kwargs)

    return inner


class ExodusFile:
    """
    Base class of :py:class:`~exostore.file.modes.ExodusReader`,
    :py:class:`~exostore.file.modes.ExodusWriter` and :py:class:`~exostore.file.modes.ExodusAppender`.

    Instances are built by the class methods of those subclasses, never directly.

    Parameters
    ----------
    handle : ExodusContainer
        The open container.
    performance : PerformanceConfig
        The resolved I/O configuration.
    options : CreateOptions, optional
        Creation options. When omitted (existing files) the storage widths are read from the file.
    """

    logger: "LoggerAdapter" = LogDescriptor()
    """ LoggerAdapter: The class logger, with messages prefixed by the file name."""

    _CAN_READ: bool = False
    _CAN_WRITE: bool = False

    def __init__(
        self,
        handle: ExodusContainer,
        performance: "PerformanceConfig",
        options: Optional[CreateOptions] = None,
    ):
        self._handle = handle
        self._path = Path(handle.filename)
        self._performance = performance
        self._closed = False
        self._cache = LRUCache(
            max_size=float(exostore_params["system.cache.metadata_cache_mb"])
        )

        if options is None:
            options = CreateOptions(
                float_size=int(handle.attrs.get(nm.ATT_FLOAT_WORD_SIZE, 8)),
                int64_mode=8 if int(handle.attrs.get(nm.ATT_INT64_STATUS, 0)) else 4,
            )
        self._options = options
        self._float_dtype = np.dtype(options.float_size.dtype)
        self._int_dtype = np.dtype(options.int64_mode.dtype)
        self._filters = options.dataset_filters

        # Entities whose structure was committed by an earlier session.
        self._frozen = set()

    # @@ LIFECYCLE @@ #
    @property
    def path(self) -> Path:
        """The path of the file on disk."""
        return self._path

    @property
    def performance(self) -> "PerformanceConfig":
        return self._performance

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def is_initialized(self) -> bool:
        """Whether the init parameters have been committed."""
        return not self._closed and self._handle.has_dimension(nm.DIM_NUM_DIM)

    def _require_open(self, operation: str):
        if self._closed:
            raise InvalidState(f"{self.path}: cannot {operation} on a closed file.")

    def sync(self):
        """Flush pending writes to disk."""
        self._require_open("sync")
        try:
            self._handle.flush()
        except OSError as e:
            raise UnderlyingIOError(f"{self.path}: flush failed: {e}") from e

    def close(self):
        """
        Flush and close the file. Calling :py:meth:`close` again is a no-op.
        """
        if getattr(self, "_closed", True):
            return
        self._closed = True
        self._cache.clear()
        try:
            if self._handle.id.valid:
                self._handle.flush()
        except OSError as e:
            raise UnderlyingIOError(f"{self.path}: close failed: {e}") from e
        finally:
            # The HDF5 id is released even when the final flush fails.
            self._handle.close()
        self.logger.debug("Closed.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __del__(self):
        try:
            self.close()
        except (ExodusError, ValueError, TypeError, AttributeError):
            pass

    def __str__(self):
        state = "closed" if self._closed else "open"
        return f"<{type(self).__name__} '{self.path}' ({state})>"

    def __repr__(self):
        return self.__str__()

    @reads
    def version(self) -> float:
        """The Exodus format version stored in the file."""
        return float(self._handle.attrs.get(nm.ATT_VERSION, 0.0))

    # @@ METADATA HELPERS @@ #
    # These never check capabilities; they back both reads and writes.
    def _dim(self, name: str, default: int = 0) -> int:
        return self._handle.optional_dimension_length(name, default)

    def _capacity(self, entity_type: EntityType) -> int:
        return self._dim(nm.count_dim(entity_type))

    def _ids(self, entity_type: EntityType) -> Tuple[int, ...]:
        """Ids of the defined entities of ``entity_type`` in storage order."""
        key = ("ids", entity_type)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        capacity = self._capacity(entity_type)
        ids = ()
        if capacity:
            if entity_type.is_block:
                ids = self._ids_from_status(
                    nm.block_names(entity_type).ids_var,
                    nm.block_names(entity_type).status_var,
                )
            elif entity_type.is_set:
                ids = self._ids_from_status(
                    nm.set_names(entity_type).ids_var, nm.set_names(entity_type).status_var
                )
            elif entity_type.is_map:
                names = nm.map_names(entity_type)
                prop = self._handle[names.ids_var][:]
                ids = tuple(
                    int(prop[slot])
                    for slot in range(capacity)
                    if nm.slot_name(names.map_var, slot) in self._handle
                )
            else:
                template = (
                    nm.VAR_ASSEMBLY if entity_type is EntityType.ASSEMBLY else nm.VAR_BLOB
                )
                ids = tuple(
                    int(self._handle[nm.slot_name(template, slot)].attrs["id"])
                    for slot in range(capacity)
                    if nm.slot_name(template, slot) in self._handle
                )

        self._cache[key] = ids
        return ids

    def _ids_from_status(self, ids_var: str, status_var: str) -> Tuple[int, ...]:
        status = self._handle[status_var][:]
        prop = self._handle[ids_var][:]
        return tuple(int(prop[slot]) for slot in np.flatnonzero(status))

    def _slot(self, entity_type: EntityType, entity_id: int) -> int:
        """Storage slot of an existing entity."""
        try:
            return self._ids(entity_type).index(int(entity_id))
        except (ValueError, TypeError):
            raise NotFound(f"{self.path}: no {entity_type} with id {entity_id}.") from None

    def _next_slot(self, entity_type: EntityType, entity_id: int) -> int:
        """Storage slot for a new entity, enforcing reserved capacity and id uniqueness."""
        ids = self._ids(entity_type)
        if int(entity_id) in ids:
            raise SchemaViolation(f"{entity_type} id {entity_id} is already defined.")
        capacity = self._capacity(entity_type)
        if len(ids) >= capacity:
            raise SchemaViolation(
                f"Cannot add {entity_type} {entity_id}: all {capacity} reserved slots are used."
            )
        return len(ids)

    def _invalidate(self, entity_type: Optional[EntityType] = None):
        if entity_type is None:
            self._cache.invalidate("ids")
        else:
            self._cache.invalidate(("ids", entity_type))

    def _store_ints(self, values, label: str) -> np.ndarray:
        return codec.to_int_storage(values, self._int_dtype, label)

    def _store_floats(self, values, label: str) -> np.ndarray:
        return codec.to_float_storage(values, self._float_dtype, label)

    def _chunks(self, shape, axis_kinds, resizable: bool = False):
        return self._performance.chunks.chunk_shape(shape, axis_kinds, resizable)

    def _define_names_var(self, var: str, count_dim: str):
        return self._handle.create_variable(var, (count_dim, nm.DIM_LEN_NAME), "S1")

    # @@ INITIALIZATION @@ #
    @initializes
    def put_init_params(self, params: InitParams):
        """
        Commit the global sizing of a new file.

        This defines every count dimension, the reserved id and status arrays of each block, set and
        map category, the coordinate arrays and the time axis. It may be called exactly once.

        Parameters
        ----------
        params : InitParams
            The sizing to commit.
        """
        h = self._handle

        h.attrs[nm.ATT_API_VERSION] = np.float32(nm.API_VERSION)
        h.attrs[nm.ATT_VERSION] = np.float32(nm.FILE_VERSION)
        h.attrs[nm.ATT_FLOAT_WORD_SIZE] = np.int32(self._float_dtype.itemsize)
        h.attrs[nm.ATT_FILE_SIZE] = np.int32(1)
        h.attrs[nm.ATT_INT64_STATUS] = np.int32(1 if self._int_dtype.itemsize == 8 else 0)
        h.attrs[nm.ATT_MAX_NAME_LENGTH] = np.int32(MAX_NAME_LENGTH)
        h.attrs[nm.ATT_TITLE] = params.title

        for dim, size in (
            (nm.DIM_LEN_STRING, nm.LEN_STRING),
            (nm.DIM_LEN_LINE, nm.LEN_LINE),
            (nm.DIM_LEN_NAME, nm.LEN_NAME),
            (nm.DIM_FOUR, 4),
        ):
            h.create_dimension(dim, size)
        h.create_dimension(nm.DIM_TIME_STEP, None)

        totals = (
            (nm.DIM_NUM_NODES, params.num_nodes),
            (nm.DIM_NUM_EDGE, params.num_edges),
            (nm.DIM_NUM_FACE, params.num_faces),
            (nm.DIM_NUM_ELEM, params.num_elems),
        )
        for dim, size in totals:
            if size:
                h.create_dimension(dim, size)

        h.create_variable(
            nm.VAR_TIME,
            (nm.DIM_TIME_STEP,),
            self._float_dtype,
            chunks=self._chunks((0,), ("time",), resizable=True),
        )

        # Reserve the id, status slots of every counted category.
        for entity_type in EntityType:
            try:
                capacity = params.capacity(entity_type)
            except SchemaViolation:
                continue
            if not capacity:
                continue

            count_dim = nm.count_dim(entity_type)
            h.create_dimension(count_dim, capacity)

            ids_var = nm.ids_var(entity_type)
            if ids_var is not None:
                ids = h.create_variable(ids_var, (count_dim,), self._int_dtype, fillvalue=0)
                ids.attrs["name"] = "ID"
            if entity_type.is_block:
                status_var = nm.block_names(entity_type).status_var
            elif entity_type.is_set:
                status_var = nm.set_names(entity_type).status_var
            else:
                continue
            h.create_variable(status_var, (count_dim,), "i4", fillvalue=0)

        # The number of spatial dimensions is written last: its presence marks
        # the file as initialized.
        if params.num_nodes:
            for axis in range(params.num_dim):
                h.create_variable(
                    nm.VAR_COORD[axis],
                    (nm.DIM_NUM_NODES,),
                    self._float_dtype,
                    chunks=self._chunks((params.num_nodes,), ("node",)),
                    filters=self._filters,
                )
        h.create_dimension(nm.DIM_NUM_DIM, params.num_dim)

        self._invalidate()
        self.logger.debug("Initialized: %s.", params)

    @reads
    def init_params(self) -> InitParams:
        """Read the global sizing of the file."""
        return self._init_params()

    def _init_params(self) -> InitParams:
        kwargs = {}
        for entity_type, field_name in InitParams._CAPACITY_FIELDS.items():
            kwargs[field_name] = self._capacity(entity_type)

        return InitParams(
            title=codec.attribute_to_str(self._handle.attrs.get(nm.ATT_TITLE, "")),
            num_dim=self._dim(nm.DIM_NUM_DIM),
            num_nodes=self._dim(nm.DIM_NUM_NODES),
            num_edges=self._dim(nm.DIM_NUM_EDGE),
            num_faces=self._dim(nm.DIM_NUM_FACE),
            num_elems=self._dim(nm.DIM_NUM_ELEM),
            **kwargs,
        )

    # @@ COORDINATES @@ #
    @writes
    def put_coords(self, x, y=None, z=None):
        """
        Write nodal coordinates.

        Parameters
        ----------
        x, y, z : array-like
            One array of ``num_nodes`` values per spatial dimension. Axes beyond the spatial
            dimension of the file must be omitted.
        """
        num_nodes = self._dim(nm.DIM_NUM_NODES)
        stored = self._coordinate_arrays(x, y, z, num_nodes)
        if num_nodes:
            for axis, arr in enumerate(stored):
                self._handle[nm.VAR_COORD[axis]][:] = arr

    def _coordinate_arrays(self, x, y, z, count: int) -> List[np.ndarray]:
        """Validate one array of ``count`` values per spatial dimension."""
        num_dim = self._dim(nm.DIM_NUM_DIM)
        given = [a for a in (x, y, z) if a is not None]
        if len(given) != num_dim or any(a is None for a in (x, y, z)[:num_dim]):
            raise SchemaViolation(
                f"Expected coordinates for {num_dim} dimensions, got {len(given)}."
            )

        stored = []
        for axis, values in enumerate(given):
            arr = self._store_floats(values, f"{'xyz'[axis]} coordinates")
            if arr.size != count:
                raise SchemaViolation(
                    f"{'xyz'[axis]} coordinates have {arr.size} values, expected {count}."
                )
            stored.append(arr)
        return stored

    def _node_range(self, start: int, count: int) -> slice:
        num_nodes = self._dim(nm.DIM_NUM_NODES)
        if isinstance(start, bool) or not isinstance(start, (int, np.integer)) or start < 0:
            raise SchemaViolation(f"Start node must be a non-negative integer, got {start!r}.")
        if count < 0 or start + count > num_nodes:
            raise SchemaViolation(
                f"Nodes [{start}, {start + count}) exceed the {num_nodes} nodes of the file."
            )
        return slice(int(start), int(start) + int(count))

    @writes
    def put_partial_coords(self, start: int, x, y=None, z=None):
        """
        Write the coordinates of the contiguous node range starting at 0-based node ``start``.

        The range length is taken from ``x``; ``y`` and ``z`` follow the same rules as in
        :py:meth:`put_coords`.
        """
        count = int(np.size(x))
        nodes = self._node_range(start, count)
        stored = self._coordinate_arrays(x, y, z, count)
        for axis, arr in enumerate(stored):
            if arr.size:
                self._handle[nm.VAR_COORD[axis]][nodes] = arr

    @reads
    def partial_coords(self, start: int, count: int) -> Tuple[np.ndarray, ...]:
        """Coordinates of nodes ``[start, start + count)``, one array per spatial dimension."""
        num_dim = self._dim(nm.DIM_NUM_DIM)
        nodes = self._node_range(start, count)
        if not count:
            return tuple(np.zeros(0) for _ in range(num_dim))
        return tuple(
            codec.from_storage(self._handle[nm.VAR_COORD[axis]][nodes])
            for axis in range(num_dim)
        )

    @reads
    def coords(self) -> Tuple[np.ndarray, ...]:
        """
        Read nodal coordinates.

        Returns
        -------
        tuple of numpy.ndarray
            One ``float64`` array per spatial dimension.
        """
        num_dim = self._dim(nm.DIM_NUM_DIM)
        if not self._dim(nm.DIM_NUM_NODES):
            return tuple(np.zeros(0) for _ in range(num_dim))
        return tuple(
            codec.from_storage(self._handle[nm.VAR_COORD[axis]][:]) for axis in range(num_dim)
        )

    @writes
    def put_coord_names(self, names: Sequence[str]):
        num_dim = self._dim(nm.DIM_NUM_DIM)
        if len(names) != num_dim:
            raise SchemaViolation(f"Expected {num_dim} coordinate names, got {len(names)}.")
        encoded = codec.encode_strings(names, nm.LEN_NAME, "coordinate name")

        if nm.VAR_COORD_NAMES not in self._handle:
            self._handle.create_variable(
                nm.VAR_COORD_NAMES, (nm.DIM_NUM_DIM, nm.DIM_LEN_NAME), "S1"
            )
        self._handle[nm.VAR_COORD_NAMES][...] = encoded

    @reads
    def coord_names(self, strict: bool = False) -> List[str]:
        """Coordinate axis names, empty strings when the file has none (or ``NotDefined`` if strict)."""
        if nm.VAR_COORD_NAMES not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: no coordinate names.")
            return [""] * self._dim(nm.DIM_NUM_DIM)
        return codec.decode_strings(self._handle[nm.VAR_COORD_NAMES][...])

    # @@ QA AND INFO @@ #
    def _append_text(self, var: str, dim: str, new_rows: np.ndarray, row_dims: Tuple[str, ...]):
        """Replace ``var`` by its current rows followed by ``new_rows``."""
        h = self._handle
        if var in h:
            rows = np.concatenate([h[var][...], new_rows], axis=0)
            del h[var]
            del h[dim]
        else:
            rows = new_rows
        h.create_dimension(dim, rows.shape[0])
        h.create_variable(var, (dim,) + row_dims, "S1", data=rows)

    @writes
    def put_qa_records(self, records: Sequence[QaRecord]):
        """
        Append quality assurance records.

        QA records form an append-only audit trail: new records are added after the existing ones.
        """
        records = [r if isinstance(r, QaRecord) else QaRecord(*r) for r in records]
        if not records:
            return
        rows = np.stack(
            [codec.encode_strings(r.as_tuple(), nm.LEN_STRING, "QA field") for r in records]
        )
        self._append_text(
            nm.VAR_QA, nm.DIM_NUM_QA, rows, (nm.DIM_FOUR, nm.DIM_LEN_STRING)
        )

    @reads
    def qa_records(self) -> List[QaRecord]:
        if nm.VAR_QA not in self._handle:
            return []
        return [QaRecord(*codec.decode_strings(rec)) for rec in self._handle[nm.VAR_QA][...]]

    @writes
    def put_info_records(self, lines: Sequence[str]):
        """Append free-form information lines (at most 80 characters each)."""
        lines = list(lines)
        if not lines:
            return
        rows = codec.encode_strings(lines, nm.LEN_LINE, "info record")
        self._append_text(nm.VAR_INFO, nm.DIM_NUM_INFO, rows, (nm.DIM_LEN_LINE,))

    @reads
    def info_records(self) -> List[str]:
        if nm.VAR_INFO not in self._handle:
            return []
        return codec.decode_strings(self._handle[nm.VAR_INFO][...])

    # @@ NAMES @@ #
    def _names_target(self, entity_type: EntityType) -> Tuple[str, str]:
        entity_type = EntityType.coerce(entity_type)
        return nm.names_var(entity_type), nm.count_dim(entity_type)

    @writes
    def put_name(self, entity_type: EntityType, entity_id: int, name: str):
        """Name one block, set or map."""
        entity_type = EntityType.coerce(entity_type)
        var, count_dim = self._names_target(entity_type)
        slot = self._slot(entity_type, entity_id)
        encoded = codec.encode_string(name, nm.LEN_NAME, "name")

        if var not in self._handle:
            self._define_names_var(var, count_dim)
        self._handle[var][slot] = encoded

    @writes
    def put_names(self, entity_type: EntityType, names: Sequence[str]):
        """Name every defined entity of ``entity_type``, in storage order."""
        entity_type = EntityType.coerce(entity_type)
        var, count_dim = self._names_target(entity_type)
        ids = self._ids(entity_type)
        if len(names) != len(ids):
            raise SchemaViolation(
                f"{len(names)} names given for {len(ids)} defined {entity_type} entities."
            )
        encoded = codec.encode_strings(names, nm.LEN_NAME, "name")

        if var not in self._handle:
            self._define_names_var(var, count_dim)
        if ids:
            self._handle[var][: len(ids)] = encoded

    @reads
    def name(self, entity_type: EntityType, entity_id: int, strict: bool = False) -> str:
        entity_type = EntityType.coerce(entity_type)
        var, _ = self._names_target(entity_type)
        slot = self._slot(entity_type, entity_id)
        if var not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: {entity_type} entities have no names.")
            return ""
        return codec.decode_string(self._handle[var][slot])

    @reads
    def names(self, entity_type: EntityType, strict: bool = False) -> List[str]:
        entity_type = EntityType.coerce(entity_type)
        var, _ = self._names_target(entity_type)
        count = len(self._ids(entity_type))
        if var not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: {entity_type} entities have no names.")
            return [""] * count
        return codec.decode_strings(self._handle[var][:count])

    # @@ PROPERTIES @@ #
    def _property_vars(self, entity_type: EntityType) -> dict:
        """Map property name -> variable name for ``entity_type``."""
        prefix = nm.property_prefix(entity_type)
        found = {}
        index = 1
        while f"{prefix}{index}" in self._handle:
            var = f"{prefix}{index}"
            found[codec.attribute_to_str(self._handle[var].attrs.get("name", var))] = var
            index += 1
        return found

    @writes
    def put_property(self, entity_type: EntityType, entity_id: int, prop_name: str, value: int):
        """
        Set integer property ``prop_name`` of one entity. The ``ID`` property is the entity id and
        cannot be written this way.
        """
        entity_type = EntityType.coerce(entity_type)
        self._check_property_name(prop_name)
        slot = self._slot(entity_type, entity_id)
        stored = self._store_ints([value], f"property {prop_name}")
        self._writable_property_var(entity_type, prop_name)[slot] = stored[0]

    def _check_property_name(self, prop_name: str):
        if prop_name.upper() == "ID":
            raise SchemaViolation("The ID property is fixed when the entity is defined.")
        codec.encode_string(prop_name, nm.LEN_NAME, "property name")

    def _writable_property_var(self, entity_type: EntityType, prop_name: str):
        props = self._property_vars(entity_type)
        var = props.get(prop_name)
        if var is None:
            var = nm.property_var(entity_type, len(props) + 1)
            ds = self._handle.create_variable(
                var, (nm.count_dim(entity_type),), self._int_dtype, fillvalue=0
            )
            ds.attrs["name"] = prop_name
        return self._handle[var]

    @writes
    def put_property_array(self, entity_type: EntityType, prop_name: str, values):
        """
        Set property ``prop_name`` of every defined entity of ``entity_type`` at once.

        ``values`` follows the storage order of the entities, as returned by the id listings.
        """
        entity_type = EntityType.coerce(entity_type)
        self._check_property_name(prop_name)
        ids = self._ids(entity_type)
        stored = self._store_ints(values, f"property {prop_name}")
        if stored.size != len(ids):
            raise SchemaViolation(
                f"Property {prop_name} needs {len(ids)} values for {entity_type}, "
                f"got {stored.size}."
            )
        var = self._writable_property_var(entity_type, prop_name)
        if ids:
            var[: len(ids)] = stored

    @reads
    def property(
        self, entity_type: EntityType, entity_id: int, prop_name: str, strict: bool = False
    ) -> int:
        entity_type = EntityType.coerce(entity_type)
        slot = self._slot(entity_type, entity_id)
        var = self._property_vars(entity_type).get(prop_name)
        if var is None:
            if strict:
                raise NotDefined(f"{self.path}: {entity_type} has no property {prop_name}.")
            return 0
        return int(self._handle[var][slot])

    @reads
    def property_array(
        self, entity_type: EntityType, prop_name: str, strict: bool = False
    ) -> np.ndarray:
        """
        Property ``prop_name`` of every defined entity of ``entity_type``, in storage order.

        A property that was never written reads as zeros unless ``strict`` is set.
        """
        entity_type = EntityType.coerce(entity_type)
        count = len(self._ids(entity_type))
        var = self._property_vars(entity_type).get(prop_name)
        if var is None:
            if strict:
                raise NotDefined(f"{self.path}: {entity_type} has no property {prop_name}.")
            return np.zeros(count, dtype=np.int64)
        return codec.from_storage(self._handle[var][:count])

    @reads
    def property_names(self, entity_type: EntityType) -> List[str]:
        return list(self._property_vars(EntityType.coerce(entity_type)))

    # @@ ATTRIBUTES @@ #
    def _attribute_target(self, entity_type: EntityType, entity_id: int):
        entity_type = EntityType.coerce(entity_type)
        slot = self._slot(entity_type, entity_id)
        if entity_type.is_block:
            return self._handle[nm.slot_name(nm.block_names(entity_type).conn_var, slot)]
        if entity_type.is_set:
            return self._handle[nm.slot_name(nm.set_names(entity_type).entries_var, slot)]
        raise SchemaViolation(f"Attributes are not supported on {entity_type}.")

    @writes
    def put_attribute(
        self, entity_type: EntityType, entity_id: int, name: str, data: AttributeData
    ):
        """Attach a named integer, double or string attribute to a block or set."""
        if name in nm.RESERVED_ATTRIBUTES or name.startswith("_"):
            raise SchemaViolation(f"'{name}' is a reserved attribute name.")
        codec.encode_string(name, nm.LEN_NAME, "attribute name")

        target = self._attribute_target(entity_type, entity_id)
        if data.kind is AttributeType.INTEGER:
            target.attrs[name] = codec.to_int_storage(data.value, np.int64, name)
        elif data.kind is AttributeType.DOUBLE:
            target.attrs[name] = np.asarray(data.value, dtype=np.float64)
        else:
            target.attrs[name] = np.bytes_(data.value.encode("utf-8"))

    @reads
    def attribute(self, entity_type: EntityType, entity_id: int, name: str) -> AttributeData:
        target = self._attribute_target(entity_type, entity_id)
        if name in nm.RESERVED_ATTRIBUTES or name not in target.attrs:
            raise NotDefined(f"{self.path}: {entity_type} {entity_id} has no attribute {name}.")

        value = target.attrs[name]
        if isinstance(value, (bytes, str, np.bytes_, np.str_)):
            return AttributeData.char(codec.attribute_to_str(value))
        value = np.atleast_1d(np.asarray(value))
        if value.dtype.kind in "iu":
            return AttributeData.integer(value)
        if value.dtype.kind == "f":
            return AttributeData.double(value)
        return AttributeData.char(codec.attribute_to_str(value))

    @reads
    def attribute_names(self, entity_type: EntityType, entity_id: int) -> List[str]:
        target = self._attribute_target(entity_type, entity_id)
        return [
            key
            for key in target.attrs.keys()
            if key not in nm.RESERVED_ATTRIBUTES and not key.startswith("_")
        ]
