"""
Time-dependent variables, truth tables and reduction variables.

Variables are declared per entity type as an ordered list of names and addressed by their 0-based
position in that list. Block and set variables are sparse: the truth table of the entity type says
which (entity, variable) pairs exist, and only those get storage.

Truth table rules
-----------------
- Until a table is committed with :py:meth:`VariableMixin.put_truth_table`, the first write of a
  pair marks its cell true and creates its storage.
- Once a table is committed it is authoritative: writing a false cell raises
  :py:class:`~exostore.exceptions.SchemaViolation`.
- Reading a false cell always raises :py:class:`~exostore.exceptions.NotDefined`.
- An appending session may turn cells on but never off.

Time steps are 0-based and written contiguously: a write may target any existing step or the step
right after the last one, which extends the time axis.
"""
from typing import List, Sequence, Tuple, Union

import numpy as np

from exostore.exceptions import NotDefined, SchemaViolation
from exostore.file.base import reads, writes
from exostore.io import codec
from exostore.io import naming as nm
from exostore.model.records import MAX_NAME_LENGTH, TruthTable
from exostore.model.types import EntityType

_EXPLICIT = "explicit"


class VariableMixin:
    """Variable operations of :py:class:`~exostore.file.base.ExodusFile`."""

    _STRUCTURE_FROZEN: bool = False

    # @@ HELPERS @@ #
    def _num_vars(self, entity_type: EntityType) -> int:
        """Number of declared variables; raises if the namespace was never declared."""
        names = nm.variable_names(entity_type)
        if names.count_dim is None:
            raise SchemaViolation(f"{entity_type} has no per-entry variables.")
        if names.count_dim not in self._handle:
            raise SchemaViolation(f"No {entity_type} variables have been declared.")
        return self._dim(names.count_dim)

    def _check_var_index(self, entity_type: EntityType, var_index: int) -> int:
        num_vars = self._num_vars(entity_type)
        if isinstance(var_index, bool) or not isinstance(var_index, (int, np.integer)):
            raise SchemaViolation(f"Variable index must be an integer, got {var_index!r}.")
        if not 0 <= var_index < num_vars:
            raise SchemaViolation(
                f"{entity_type} variable index {var_index} outside [0, {num_vars})."
            )
        return int(var_index)

    def _num_steps(self) -> int:
        return self._dim(nm.DIM_TIME_STEP)

    def _check_write_step(self, step: int) -> int:
        num_steps = self._num_steps()
        if isinstance(step, bool) or not isinstance(step, (int, np.integer)) or step < 0:
            raise SchemaViolation(f"Time step must be a non-negative integer, got {step!r}.")
        if step > num_steps:
            raise SchemaViolation(
                f"Time steps are written contiguously: step {step} requested but only "
                f"{num_steps} exist."
            )
        return int(step)

    def _check_read_step(self, step: int) -> int:
        num_steps = self._num_steps()
        if isinstance(step, bool) or not isinstance(step, (int, np.integer)):
            raise SchemaViolation(f"Time step must be an integer, got {step!r}.")
        if not 0 <= step < num_steps:
            raise SchemaViolation(f"Time step {step} outside [0, {num_steps}).")
        return int(step)

    def _check_step_range(self, start: int, end: int, writing: bool) -> Tuple[int, int]:
        num_steps = self._num_steps()
        if not (0 <= start <= end):
            raise SchemaViolation(f"Invalid time step range [{start}, {end}).")
        if writing and start > num_steps:
            raise SchemaViolation(
                f"Time steps are written contiguously: step {start} requested but only "
                f"{num_steps} exist."
            )
        if not writing and end > num_steps:
            raise SchemaViolation(f"Time step range [{start}, {end}) exceeds {num_steps} steps.")
        return int(start), int(end)

    def _entries_dim(self, entity_type: EntityType, slot: int) -> str:
        if entity_type.is_block:
            return nm.slot_name(nm.block_names(entity_type).entries_dim, slot)
        return nm.slot_name(nm.set_names(entity_type).entries_dim, slot)

    def _extent(self, entity_type: EntityType, entity_id: int) -> Tuple[int, int]:
        """Storage slot and number of values of one entity."""
        if entity_type is EntityType.GLOBAL:
            return 0, 1
        if entity_type is EntityType.NODAL:
            return 0, self._dim(nm.DIM_NUM_NODES)

        slot = self._slot(entity_type, entity_id)
        return slot, self._dim(self._entries_dim(entity_type, slot))

    def _table_explicit(self, entity_type: EntityType) -> bool:
        var = nm.variable_names(entity_type).truth_table_var
        return bool(self._handle[var].attrs.get(_EXPLICIT, 0))

    def _cell(self, entity_type: EntityType, slot: int, var_index: int) -> bool:
        var = nm.variable_names(entity_type).truth_table_var
        return bool(self._handle[var][slot, var_index])

    def _storage(self, entity_type: EntityType, slot: int, var_index: int) -> str:
        return nm.values_var(entity_type, var_index, slot)

    def _create_storage(self, entity_type: EntityType, slot: int, var_index: int):
        """Create the value array of one block or set variable."""
        extent_dim = self._entries_dim(entity_type, slot)
        extent = self._dim(extent_dim)
        self._handle.create_variable(
            self._storage(entity_type, slot, var_index),
            (nm.DIM_TIME_STEP, extent_dim),
            self._float_dtype,
            chunks=self._chunks((self._num_steps(), extent), ("time", "element"), True),
            filters=self._filters,
        )

    def _check_writable(self, entity_type: EntityType, slot: int, var_index: int):
        if not entity_type.has_truth_table:
            return
        if not self._cell(entity_type, slot, var_index) and self._table_explicit(entity_type):
            raise SchemaViolation(
                f"The truth table of {entity_type} excludes variable {var_index} on entity "
                f"{self._ids(entity_type)[slot]}."
            )

    def _prepare_storage(self, entity_type: EntityType, slot: int, var_index: int) -> str:
        """Name of the storage of a pair, creating it (and marking the cell) on first write."""
        storage = self._storage(entity_type, slot, var_index)
        if not entity_type.has_truth_table:
            return storage

        table_var = nm.variable_names(entity_type).truth_table_var
        if not self._cell(entity_type, slot, var_index):
            self._handle[table_var][slot, var_index] = 1
        if storage not in self._handle:
            self._create_storage(entity_type, slot, var_index)
        return storage

    def _defined_storage(self, entity_type: EntityType, slot: int, var_index: int) -> str:
        storage = self._storage(entity_type, slot, var_index)
        if entity_type.has_truth_table and (
            not self._cell(entity_type, slot, var_index) or storage not in self._handle
        ):
            raise NotDefined(
                f"{entity_type} variable {var_index} is not defined on entity "
                f"{self._ids(entity_type)[slot]}."
            )
        return storage

    # @@ DECLARATION @@ #
    def _check_declarable(self, count_dim: str, entity_type: EntityType, names: Sequence[str]):
        if self._STRUCTURE_FROZEN:
            raise SchemaViolation(
                f"{self.path}: variable namespaces are fixed once the file is created."
            )
        if count_dim in self._handle:
            raise SchemaViolation(f"{entity_type} variables are already declared.")
        if not names:
            raise SchemaViolation("At least one variable name is required.")
        if len(set(names)) != len(names):
            raise SchemaViolation(f"Duplicate {entity_type} variable names: {list(names)}.")
        for name in names:
            if not isinstance(name, str) or not name.strip():
                raise SchemaViolation(f"Invalid variable name {name!r}.")
            if len(name) > MAX_NAME_LENGTH:
                raise SchemaViolation(
                    f"Variable name '{name}' exceeds {MAX_NAME_LENGTH} characters."
                )

    @writes
    def define_variables(self, entity_type: EntityType, names: Sequence[str]):
        """
        Declare the variables of an entity type.

        The order of ``names`` fixes the variable indices. A namespace can be declared once.
        Block and set types start with an all-false truth table.
        """
        entity_type = EntityType.coerce(entity_type)
        if not entity_type.has_variables:
            raise SchemaViolation(f"{entity_type} has no per-entry variables.")
        vn = nm.variable_names(entity_type)
        names = list(names)
        self._check_declarable(vn.count_dim, entity_type, names)

        if entity_type is EntityType.NODAL and not self._dim(nm.DIM_NUM_NODES):
            raise SchemaViolation("Nodal variables need nodes.")
        if entity_type.has_truth_table and not self._capacity(entity_type):
            raise SchemaViolation(f"No {entity_type} entities are reserved.")

        encoded = codec.encode_strings(names, nm.LEN_NAME, "variable name")
        h = self._handle
        h.create_dimension(vn.count_dim, len(names))
        h.create_variable(vn.names_var, (vn.count_dim, nm.DIM_LEN_NAME), "S1", data=encoded)

        num_steps = self._num_steps()
        if entity_type is EntityType.GLOBAL:
            h.create_variable(
                vn.values_var,
                (nm.DIM_TIME_STEP, vn.count_dim),
                self._float_dtype,
                chunks=self._chunks((num_steps, len(names)), ("time", None), True),
            )
        elif entity_type is EntityType.NODAL:
            num_nodes = self._dim(nm.DIM_NUM_NODES)
            for index in range(len(names)):
                h.create_variable(
                    nm.values_var(entity_type, index),
                    (nm.DIM_TIME_STEP, nm.DIM_NUM_NODES),
                    self._float_dtype,
                    chunks=self._chunks((num_steps, num_nodes), ("time", "node"), True),
                    filters=self._filters,
                )
        else:
            h.create_variable(
                vn.truth_table_var,
                (nm.count_dim(entity_type), vn.count_dim),
                "i4",
                fillvalue=0,
            )

        self.logger.debug("Declared %d %s variables.", len(names), entity_type)

    @reads
    def variable_names(self, entity_type: EntityType, strict: bool = False) -> List[str]:
        """Declared variable names in index order, empty when none were declared."""
        entity_type = EntityType.coerce(entity_type)
        vn = nm.variable_names(entity_type)
        if vn.names_var is None or vn.names_var not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: no {entity_type} variables are declared.")
            return []
        return codec.decode_strings(self._handle[vn.names_var][...])

    # @@ TRUTH TABLES @@ #
    @writes
    def put_truth_table(self, entity_type: EntityType, table: Union[TruthTable, np.ndarray]):
        """
        Commit the truth table of a block or set type.

        Rows follow the storage order of the defined entities, columns the variable order. Storage
        is created for every true cell. The committed table is authoritative for later writes.
        """
        entity_type = EntityType.coerce(entity_type)
        if not entity_type.has_truth_table:
            raise SchemaViolation(f"{entity_type} has no truth table.")
        num_vars = self._num_vars(entity_type)
        ids = self._ids(entity_type)

        if isinstance(table, TruthTable):
            if table.entity_type is not entity_type:
                raise SchemaViolation(
                    f"A {table.entity_type} truth table cannot be stored for {entity_type}."
                )
            cells = table.table
        else:
            cells = np.asarray(table, dtype=bool)
        if cells.shape != (len(ids), num_vars):
            raise SchemaViolation(
                f"The {entity_type} truth table must be {len(ids)} x {num_vars}, "
                f"got {cells.shape}."
            )

        table_var = nm.variable_names(entity_type).truth_table_var
        current = self._handle[table_var][: len(ids)] != 0
        for row, col in np.argwhere(current & ~cells):
            if self._STRUCTURE_FROZEN or self._storage(entity_type, row, col) in self._handle:
                raise SchemaViolation(
                    f"Variable {col} of {entity_type} {ids[row]} is already defined and "
                    f"cannot be removed from the truth table."
                )

        if ids:
            self._handle[table_var][: len(ids)] = cells.astype(np.int32)
        self._handle[table_var].attrs[_EXPLICIT] = np.int32(1)

        for row, col in np.argwhere(cells):
            if self._storage(entity_type, row, col) not in self._handle:
                self._create_storage(entity_type, int(row), int(col))

    @reads
    def truth_table(self, entity_type: EntityType) -> TruthTable:
        entity_type = EntityType.coerce(entity_type)
        if not entity_type.has_truth_table:
            raise SchemaViolation(f"{entity_type} has no truth table.")
        ids = self._ids(entity_type)
        vn = nm.variable_names(entity_type)
        if vn.count_dim not in self._handle:
            return TruthTable(entity_type, len(ids), 0, entity_ids=ids)

        cells = self._handle[vn.truth_table_var][: len(ids)] != 0
        return TruthTable(entity_type, len(ids), cells.shape[1], cells, entity_ids=ids)

    @reads
    def is_var_in_truth_table(
        self, entity_type: EntityType, entity_id: int, var_index: int
    ) -> bool:
        entity_type = EntityType.coerce(entity_type)
        var_index = self._check_var_index(entity_type, var_index)
        if not entity_type.has_truth_table:
            return True
        return self._cell(entity_type, self._slot(entity_type, entity_id), var_index)

    # @@ TIME @@ #
    @writes
    def put_time(self, step: int, value: float):
        """Set the time value of ``step``, extending the time axis when ``step`` is the next one."""
        step = self._check_write_step(step)
        stored = self._store_floats([value], "time value")
        self._handle.resize_time(step + 1)
        self._handle[nm.VAR_TIME][step] = stored[0]

    @reads
    def time(self, step: int) -> float:
        step = self._check_read_step(step)
        return float(self._handle[nm.VAR_TIME][step])

    @reads
    def times(self) -> np.ndarray:
        return codec.from_storage(self._handle[nm.VAR_TIME][...])

    @reads
    def num_time_steps(self) -> int:
        return self._num_steps()

    # @@ VALUES @@ #
    def _write(self, storage: str, entity_type: EntityType, steps: slice, var_index, values):
        ds = self._handle[storage]
        if entity_type is EntityType.GLOBAL:
            ds[steps, var_index] = values[..., 0]
        else:
            ds[steps, :] = values

    @writes
    def put_var(self, step: int, entity_type: EntityType, entity_id: int, var_index: int, values):
        """
        Write one variable of one entity at one time step.

        Parameters
        ----------
        step : int
            0-based time step; at most the current number of steps.
        entity_type : EntityType
            Global, nodal, a block type or a set type.
        entity_id : int
            The block or set id. Ignored for global and nodal variables.
        var_index : int
            0-based index into the declared variables.
        values : array-like
            Exactly one value per entry: 1 for global, ``num_nodes`` for nodal, the entry count of
            the block or set otherwise.

        Raises
        ------
        SchemaViolation
            On a length mismatch, an unknown variable index, a non-contiguous step or a write to a
            cell excluded by a committed truth table.
        """
        entity_type = EntityType.coerce(entity_type)
        var_index = self._check_var_index(entity_type, var_index)
        step = self._check_write_step(step)
        slot, extent = self._extent(entity_type, entity_id)

        arr = self._store_floats(values, f"{entity_type} variable {var_index}")
        if arr.size != extent:
            raise SchemaViolation(
                f"{entity_type} variable {var_index} needs {extent} values, got {arr.size}."
            )
        self._check_writable(entity_type, slot, var_index)

        storage = self._prepare_storage(entity_type, slot, var_index)
        self._handle.resize_time(step + 1)
        self._write(storage, entity_type, step, var_index, arr)

    @reads
    def var(self, step: int, entity_type: EntityType, entity_id: int, var_index: int) -> np.ndarray:
        """
        Read one variable of one entity at one time step.

        Raises
        ------
        NotDefined
            If the truth table excludes the pair.
        """
        entity_type = EntityType.coerce(entity_type)
        var_index = self._check_var_index(entity_type, var_index)
        step = self._check_read_step(step)
        slot, _ = self._extent(entity_type, entity_id)
        storage = self._defined_storage(entity_type, slot, var_index)

        ds = self._handle[storage]
        if entity_type is EntityType.GLOBAL:
            return codec.from_storage(ds[step, var_index : var_index + 1])
        return codec.from_storage(ds[step, :])

    @writes
    def put_var_multi(self, step: int, entity_type: EntityType, entity_id: int, values):
        """
        Write every declared variable of one entity at one step.

        ``values`` is shaped ``(num_vars, extent)`` (or its flattening). The whole batch is validated
        before anything is written.
        """
        entity_type = EntityType.coerce(entity_type)
        num_vars = self._num_vars(entity_type)
        step = self._check_write_step(step)
        slot, extent = self._extent(entity_type, entity_id)

        arr = self._store_floats(values, f"{entity_type} variables")
        if arr.size != num_vars * extent:
            raise SchemaViolation(
                f"{entity_type} needs {num_vars} x {extent} values, got {arr.size}."
            )
        arr = arr.reshape(num_vars, extent)
        for var_index in range(num_vars):
            self._check_writable(entity_type, slot, var_index)

        self._handle.resize_time(step + 1)
        for var_index in range(num_vars):
            storage = self._prepare_storage(entity_type, slot, var_index)
            self._write(storage, entity_type, step, var_index, arr[var_index])

    @reads
    def var_multi(self, step: int, entity_type: EntityType, entity_id: int) -> np.ndarray:
        """Every declared variable of one entity at one step, shaped ``(num_vars, extent)``."""
        entity_type = EntityType.coerce(entity_type)
        num_vars = self._num_vars(entity_type)
        step = self._check_read_step(step)
        slot, extent = self._extent(entity_type, entity_id)

        out = np.empty((num_vars, extent), dtype=np.float64)
        for var_index in range(num_vars):
            ds = self._handle[self._defined_storage(entity_type, slot, var_index)]
            if entity_type is EntityType.GLOBAL:
                out[var_index] = ds[step, var_index]
            else:
                out[var_index] = ds[step, :]
        return out

    @writes
    def put_var_time_series(
        self,
        start: int,
        end: int,
        entity_type: EntityType,
        entity_id: int,
        var_index: int,
        values,
    ):
        """
        Write steps ``[start, end)`` of one variable of one entity.

        ``values`` is shaped ``(end - start, extent)``. The result is identical to writing each step
        with :py:meth:`put_var`.
        """
        entity_type = EntityType.coerce(entity_type)
        var_index = self._check_var_index(entity_type, var_index)
        start, end = self._check_step_range(start, end, writing=True)
        slot, extent = self._extent(entity_type, entity_id)

        arr = self._store_floats(values, f"{entity_type} variable {var_index}")
        if arr.size != (end - start) * extent:
            raise SchemaViolation(
                f"{entity_type} variable {var_index} needs {end - start} x {extent} values, "
                f"got {arr.size}."
            )
        if end == start:
            return
        self._check_writable(entity_type, slot, var_index)

        storage = self._prepare_storage(entity_type, slot, var_index)
        self._handle.resize_time(end)
        self._write(
            storage, entity_type, slice(start, end), var_index, arr.reshape(end - start, extent)
        )

    @reads
    def var_time_series(
        self, start: int, end: int, entity_type: EntityType, entity_id: int, var_index: int
    ) -> np.ndarray:
        """Steps ``[start, end)`` of one variable of one entity, shaped ``(end - start, extent)``."""
        entity_type = EntityType.coerce(entity_type)
        var_index = self._check_var_index(entity_type, var_index)
        start, end = self._check_step_range(start, end, writing=False)
        slot, extent = self._extent(entity_type, entity_id)
        storage = self._defined_storage(entity_type, slot, var_index)

        ds = self._handle[storage]
        if entity_type is EntityType.GLOBAL:
            data = ds[start:end, var_index : var_index + 1]
        else:
            data = ds[start:end, :]
        return codec.from_storage(data).reshape(end - start, extent)

    # @@ REDUCTION VARIABLES @@ #
    def _num_reduction_vars(self, entity_type: EntityType) -> int:
        if not entity_type.has_reduction_variables:
            raise SchemaViolation(f"{entity_type} has no reduction variables.")
        count_dim = nm.variable_names(entity_type).red_count_dim
        if count_dim not in self._handle:
            raise SchemaViolation(f"No {entity_type} reduction variables have been declared.")
        return self._dim(count_dim)

    @writes
    def define_reduction_variables(self, entity_type: EntityType, names: Sequence[str]):
        """
        Declare the reduction variables (one value per entity per step) of an entity type.

        Reduction variables live in their own namespace and never share storage with per-entry
        variables of the same type.
        """
        entity_type = EntityType.coerce(entity_type)
        if not entity_type.has_reduction_variables:
            raise SchemaViolation(f"{entity_type} has no reduction variables.")
        vn = nm.variable_names(entity_type)
        names = list(names)
        self._check_declarable(vn.red_count_dim, entity_type, names)
        if not self._capacity(entity_type):
            raise SchemaViolation(f"No {entity_type} entities are reserved.")

        encoded = codec.encode_strings(names, nm.LEN_NAME, "variable name")
        self._handle.create_dimension(vn.red_count_dim, len(names))
        self._handle.create_variable(
            vn.red_names_var, (vn.red_count_dim, nm.DIM_LEN_NAME), "S1", data=encoded
        )

    @reads
    def reduction_variable_names(self, entity_type: EntityType, strict: bool = False) -> List[str]:
        entity_type = EntityType.coerce(entity_type)
        vn = nm.variable_names(entity_type)
        if vn.red_names_var is None or vn.red_names_var not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: no {entity_type} reduction variables.")
            return []
        return codec.decode_strings(self._handle[vn.red_names_var][...])

    @writes
    def put_reduction_vars(self, step: int, entity_type: EntityType, entity_id: int, values):
        """Write all reduction variables of one entity at one step."""
        entity_type = EntityType.coerce(entity_type)
        num_vars = self._num_reduction_vars(entity_type)
        step = self._check_write_step(step)
        slot = self._slot(entity_type, entity_id)

        arr = self._store_floats(values, f"{entity_type} reduction variables")
        if arr.size != num_vars:
            raise SchemaViolation(
                f"{entity_type} has {num_vars} reduction variables, got {arr.size} values."
            )

        storage = nm.reduction_values_var(entity_type, slot)
        if storage not in self._handle:
            self._handle.create_variable(
                storage,
                (nm.DIM_TIME_STEP, nm.variable_names(entity_type).red_count_dim),
                self._float_dtype,
                chunks=self._chunks((self._num_steps(), num_vars), ("time", None), True),
            )
        self._handle.resize_time(step + 1)
        self._handle[storage][step, :] = arr

    @reads
    def reduction_vars(self, step: int, entity_type: EntityType, entity_id: int) -> np.ndarray:
        """
        All reduction variables of one entity at one step.

        Raises
        ------
        NotDefined
            If no reduction values were ever written for the entity.
        """
        entity_type = EntityType.coerce(entity_type)
        self._num_reduction_vars(entity_type)
        step = self._check_read_step(step)
        slot = self._slot(entity_type, entity_id)

        storage = nm.reduction_values_var(entity_type, slot)
        if storage not in self._handle:
            raise NotDefined(
                f"No reduction variables are stored for {entity_type} {entity_id}."
            )
        return codec.from_storage(self._handle[storage][step, :])
