"""
Element, edge and face blocks.

A block occupies one storage slot of its category. Its connectivity is stored as an
``(entries, nodes per entry)`` integer array, so reading entry ``i`` is a single fixed-stride slice.
"""
from typing import List, Optional, Sequence

import numpy as np

from exostore.exceptions import InvalidState, NotDefined, SchemaViolation
from exostore.file.base import reads, writes
from exostore.io import codec
from exostore.io import naming as nm
from exostore.model.records import Block
from exostore.model.types import EntityType


class BlockMixin:
    """Block operations of :py:class:`~exostore.file.base.ExodusFile`."""

    @writes
    def put_block(self, block: Block):
        """
        Define a block in the next free slot of its category.

        Raises
        ------
        SchemaViolation
            If the category is full or the id is already used.
        """
        names = nm.block_names(block.entity_type)
        slot = self._next_slot(block.entity_type, block.id)
        stored_id = self._store_ints([block.id], "block id")[0]

        h = self._handle
        entries_dim = nm.slot_name(names.entries_dim, slot)
        nodes_dim = nm.slot_name(names.nodes_dim, slot)
        h.create_dimension(entries_dim, block.num_entries)
        h.create_dimension(nodes_dim, block.num_nodes_per_entry)

        if names.edges_dim and block.num_edges_per_entry:
            h.create_dimension(nm.slot_name(names.edges_dim, slot), block.num_edges_per_entry)
        if names.faces_dim and block.num_faces_per_entry:
            h.create_dimension(nm.slot_name(names.faces_dim, slot), block.num_faces_per_entry)

        conn = h.create_variable(
            nm.slot_name(names.conn_var, slot),
            (entries_dim, nodes_dim),
            self._int_dtype,
            chunks=self._chunks(
                (block.num_entries, block.num_nodes_per_entry), ("element", None)
            ),
            filters=self._filters,
        )
        conn.attrs["elem_type"] = block.topology

        if block.num_attributes:
            attr_dim = nm.slot_name(names.attr_dim, slot)
            h.create_dimension(attr_dim, block.num_attributes)
            h.create_variable(
                nm.slot_name(names.attr_var, slot),
                (entries_dim, attr_dim),
                self._float_dtype,
                chunks=self._chunks(
                    (block.num_entries, block.num_attributes), ("element", None)
                ),
                filters=self._filters,
            )

        h[names.ids_var][slot] = stored_id
        h[names.status_var][slot] = 1
        self._invalidate(block.entity_type)
        self.logger.debug("Defined %s %d in slot %d.", block.entity_type, block.id, slot)

    def _block(self, entity_type: EntityType, block_id: int) -> Block:
        entity_type = EntityType.coerce(entity_type)
        names = nm.block_names(entity_type)
        slot = self._slot(entity_type, block_id)
        h = self._handle

        edges = faces = 0
        if names.edges_dim:
            edges = self._dim(nm.slot_name(names.edges_dim, slot))
            faces = self._dim(nm.slot_name(names.faces_dim, slot))

        return Block(
            id=int(block_id),
            entity_type=entity_type,
            topology=codec.attribute_to_str(
                h[nm.slot_name(names.conn_var, slot)].attrs.get("elem_type", "")
            ),
            num_entries=self._dim(nm.slot_name(names.entries_dim, slot)),
            num_nodes_per_entry=self._dim(nm.slot_name(names.nodes_dim, slot)),
            num_edges_per_entry=edges,
            num_faces_per_entry=faces,
            num_attributes=self._dim(nm.slot_name(names.attr_dim, slot)),
        )

    @reads
    def block(self, block_id: int, entity_type: EntityType = EntityType.ELEM_BLOCK) -> Block:
        """Read the definition of one block."""
        return self._block(entity_type, block_id)

    @reads
    def block_ids(self, entity_type: EntityType = EntityType.ELEM_BLOCK) -> List[int]:
        """Ids of the defined blocks of ``entity_type``, in storage order."""
        entity_type = EntityType.coerce(entity_type)
        if not entity_type.is_block:
            raise SchemaViolation(f"{entity_type} is not a block type.")
        return list(self._ids(entity_type))

    # @@ CONNECTIVITY @@ #
    @writes
    def put_connectivity(
        self, block_id: int, connectivity, entity_type: EntityType = EntityType.ELEM_BLOCK
    ):
        """
        Write the connectivity of a block.

        Parameters
        ----------
        block_id : int
            The block.
        connectivity : array-like
            ``entries * nodes_per_entry`` 1-based node indices, flat or shaped
            ``(entries, nodes_per_entry)``.
        entity_type : EntityType
            The block category.

        Raises
        ------
        SchemaViolation
            If the length does not match the block, or a node index is outside ``[1, num_nodes]``.
        InvalidState
            If the block was committed by an earlier session.
        """
        entity_type = EntityType.coerce(entity_type)
        block = self._block(entity_type, block_id)
        if (entity_type, block.id) in self._frozen:
            raise InvalidState(
                f"{self.path}: connectivity of {entity_type} {block_id} is immutable."
            )

        conn = self._store_ints(connectivity, "connectivity")
        if conn.size != block.connectivity_length:
            raise SchemaViolation(
                f"{entity_type} {block_id} needs {block.connectivity_length} connectivity "
                f"entries ({block.num_entries} x {block.num_nodes_per_entry}), got {conn.size}."
            )

        num_nodes = self._dim(nm.DIM_NUM_NODES)
        if conn.size and (conn.min() < 1 or conn.max() > num_nodes):
            raise SchemaViolation(
                f"Connectivity of {entity_type} {block_id} references nodes outside "
                f"[1, {num_nodes}]."
            )

        if conn.size:
            slot = self._slot(entity_type, block_id)
            var = nm.slot_name(nm.block_names(entity_type).conn_var, slot)
            self._handle[var][...] = conn.reshape(
                block.num_entries, block.num_nodes_per_entry
            )

    @reads
    def connectivity(
        self, block_id: int, entity_type: EntityType = EntityType.ELEM_BLOCK
    ) -> np.ndarray:
        """The flat, 1-based connectivity of a block."""
        return self._connectivity(entity_type, block_id).ravel()

    @reads
    def connectivity_array(
        self, block_id: int, entity_type: EntityType = EntityType.ELEM_BLOCK
    ) -> np.ndarray:
        """The connectivity of a block shaped ``(entries, nodes_per_entry)``."""
        return self._connectivity(entity_type, block_id)

    def _connectivity(self, entity_type, block_id) -> np.ndarray:
        entity_type = EntityType.coerce(entity_type)
        slot = self._slot(entity_type, block_id)
        var = nm.slot_name(nm.block_names(entity_type).conn_var, slot)
        return codec.from_storage(self._handle[var][...])

    # @@ BLOCK ATTRIBUTES @@ #
    def _attribute_var(self, entity_type, block_id) -> Optional[str]:
        entity_type = EntityType.coerce(entity_type)
        slot = self._slot(entity_type, block_id)
        var = nm.slot_name(nm.block_names(entity_type).attr_var, slot)
        return var if var in self._handle else None

    @writes
    def put_block_attributes(
        self, block_id: int, values, entity_type: EntityType = EntityType.ELEM_BLOCK
    ):
        """
        Write the per-entry attribute values of a block, shaped ``(entries, num_attributes)``.

        Attribute values may be updated by an appending session.
        """
        entity_type = EntityType.coerce(entity_type)
        block = self._block(entity_type, block_id)
        var = self._attribute_var(entity_type, block_id)
        if var is None:
            raise SchemaViolation(f"{entity_type} {block_id} declares no attributes.")

        arr = self._store_floats(values, "block attributes")
        expected = block.num_entries * block.num_attributes
        if arr.size != expected:
            raise SchemaViolation(
                f"{entity_type} {block_id} needs {expected} attribute values, got {arr.size}."
            )
        if arr.size:
            self._handle[var][...] = arr.reshape(block.num_entries, block.num_attributes)

    @reads
    def block_attributes(
        self, block_id: int, entity_type: EntityType = EntityType.ELEM_BLOCK
    ) -> np.ndarray:
        """Per-entry attribute values, shaped ``(entries, num_attributes)``."""
        entity_type = EntityType.coerce(entity_type)
        var = self._attribute_var(entity_type, block_id)
        if var is None:
            block = self._block(entity_type, block_id)
            return np.zeros((block.num_entries, 0))
        return codec.from_storage(self._handle[var][...])

    @writes
    def put_block_attribute_names(
        self, block_id: int, names: Sequence[str], entity_type: EntityType = EntityType.ELEM_BLOCK
    ):
        entity_type = EntityType.coerce(entity_type)
        block = self._block(entity_type, block_id)
        if len(names) != block.num_attributes:
            raise SchemaViolation(
                f"{entity_type} {block_id} has {block.num_attributes} attributes, "
                f"got {len(names)} names."
            )
        if not names:
            return

        block_names = nm.block_names(entity_type)
        slot = self._slot(entity_type, block_id)
        var = nm.slot_name(block_names.attr_names_var, slot)
        encoded = codec.encode_strings(names, nm.LEN_NAME, "attribute name")
        if var not in self._handle:
            self._handle.create_variable(
                var, (nm.slot_name(block_names.attr_dim, slot), nm.DIM_LEN_NAME), "S1"
            )
        self._handle[var][...] = encoded

    @reads
    def block_attribute_names(
        self,
        block_id: int,
        entity_type: EntityType = EntityType.ELEM_BLOCK,
        strict: bool = False,
    ) -> List[str]:
        entity_type = EntityType.coerce(entity_type)
        slot = self._slot(entity_type, block_id)
        var = nm.slot_name(nm.block_names(entity_type).attr_names_var, slot)
        if var not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: {entity_type} {block_id} has no attribute names.")
            return [""] * self._block(entity_type, block_id).num_attributes
        return codec.decode_strings(self._handle[var][...])

    def _element_topologies(self):
        """
        Cumulative element counts and topology names of the defined element blocks.

        Element ``e`` (1-based) belongs to the first block whose cumulative count is at least ``e``.
        """
        ends, topologies = [], []
        total = 0
        for block_id in self._ids(EntityType.ELEM_BLOCK):
            block = self._block(EntityType.ELEM_BLOCK, block_id)
            total += block.num_entries
            ends.append(total)
            topologies.append(block.topology)
        return np.asarray(ends, dtype=np.int64), topologies
