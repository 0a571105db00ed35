"""
Id maps, numbered maps, assemblies and blobs.

The id map of an entity category (``node_num_map`` and friends) gives the user-facing id of every
node, element, edge or face. Files without one use the identity map ``1..n``. Numbered maps
(``node_map1`` ...) are additional, id-tagged maps reserved by the init parameters. The element
order map lists the 1-based element indices in processing order.
"""
from typing import List

import numpy as np

from exostore.exceptions import NotDefined, SchemaViolation
from exostore.file.base import reads, writes
from exostore.io import codec
from exostore.io import naming as nm
from exostore.model.records import Assembly, Blob
from exostore.model.types import EntityType


class MapMixin:
    """Map, assembly and blob operations of :py:class:`~exostore.file.base.ExodusFile`."""

    def _map_extent(self, entity_type: EntityType) -> int:
        return self._dim(nm.map_names(entity_type).extent_dim)

    # @@ ID MAPS @@ #
    @writes
    def put_id_map(self, entity_type: EntityType, values):
        """
        Write the id map of a node, element, edge or face category.

        Raises
        ------
        SchemaViolation
            If the length differs from the number of entities of the category.
        """
        entity_type = EntityType.coerce(entity_type)
        names = nm.map_names(entity_type)
        extent = self._map_extent(entity_type)

        stored = self._store_ints(values, f"{entity_type} id map")
        if stored.size != extent:
            raise SchemaViolation(
                f"The {entity_type} id map needs {extent} values, got {stored.size}."
            )
        if not extent:
            return

        if names.id_map_var not in self._handle:
            self._handle.create_variable(
                names.id_map_var,
                (names.extent_dim,),
                self._int_dtype,
                chunks=self._chunks(
                    (extent,), ("node" if entity_type is EntityType.NODE_MAP else "element",)
                ),
                filters=self._filters,
            )
        self._handle[names.id_map_var][...] = stored

    @reads
    def id_map(self, entity_type: EntityType, strict: bool = False) -> np.ndarray:
        """
        The id map of a category, or the identity ``1..n`` when the file has none.

        With ``strict=True`` a missing map raises :py:class:`~exostore.exceptions.NotDefined`.
        """
        entity_type = EntityType.coerce(entity_type)
        names = nm.map_names(entity_type)
        if names.id_map_var not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: no {entity_type} id map.")
            return np.arange(1, self._map_extent(entity_type) + 1, dtype=np.int64)
        return codec.from_storage(self._handle[names.id_map_var][...])

    # @@ ELEMENT ORDER MAP @@ #
    @writes
    def put_elem_order_map(self, order):
        """
        Write the element order map: one 1-based element index per element, giving the order in
        which elements are processed.
        """
        num_elem = self._dim(nm.DIM_NUM_ELEM)
        stored = self._store_ints(order, "element order map")
        if stored.size != num_elem:
            raise SchemaViolation(
                f"The element order map needs {num_elem} values, got {stored.size}."
            )
        if not num_elem:
            return
        if stored.min() < 1 or stored.max() > num_elem:
            raise SchemaViolation(f"Element order map entries must lie in [1, {num_elem}].")

        if nm.VAR_ELEM_ORDER_MAP not in self._handle:
            self._handle.create_variable(
                nm.VAR_ELEM_ORDER_MAP,
                (nm.DIM_NUM_ELEM,),
                self._int_dtype,
                chunks=self._chunks((num_elem,), ("element",)),
                filters=self._filters,
            )
        self._handle[nm.VAR_ELEM_ORDER_MAP][:] = stored

    @reads
    def elem_order_map(self, strict: bool = False) -> np.ndarray:
        """The element order map, or the natural order ``1..num_elem`` when the file has none."""
        if nm.VAR_ELEM_ORDER_MAP not in self._handle:
            if strict:
                raise NotDefined(f"{self.path}: no element order map.")
            return np.arange(1, self._dim(nm.DIM_NUM_ELEM) + 1, dtype=np.int64)
        return codec.from_storage(self._handle[nm.VAR_ELEM_ORDER_MAP][...])

    # @@ NUMBERED MAPS @@ #
    @writes
    def put_map(self, entity_type: EntityType, map_id: int, values):
        """Define numbered map ``map_id`` of a category in its next reserved slot."""
        entity_type = EntityType.coerce(entity_type)
        names = nm.map_names(entity_type)
        extent = self._map_extent(entity_type)

        stored = self._store_ints(values, f"{entity_type} {map_id}")
        if stored.size != extent:
            raise SchemaViolation(
                f"{entity_type} {map_id} needs {extent} values, got {stored.size}."
            )
        slot = self._next_slot(entity_type, map_id)
        stored_id = self._store_ints([map_id], "map id")[0]

        self._handle.create_variable(
            nm.slot_name(names.map_var, slot),
            (names.extent_dim,) if extent else (),
            self._int_dtype,
            chunks=self._chunks((extent,), ("element",)) if extent else None,
            filters=self._filters,
            data=stored if extent else None,
        )
        self._handle[names.ids_var][slot] = stored_id
        self._invalidate(entity_type)

    @reads
    def map(self, entity_type: EntityType, map_id: int) -> np.ndarray:
        entity_type = EntityType.coerce(entity_type)
        slot = self._slot(entity_type, map_id)
        var = self._handle[nm.slot_name(nm.map_names(entity_type).map_var, slot)]
        if var.shape == ():
            return np.zeros(0, dtype=np.int64)
        return codec.from_storage(var[...])

    @reads
    def map_ids(self, entity_type: EntityType) -> List[int]:
        entity_type = EntityType.coerce(entity_type)
        nm.map_names(entity_type)
        return list(self._ids(entity_type))

    # @@ ASSEMBLIES @@ #
    @writes
    def put_assembly(self, assembly: Assembly):
        """
        Define an assembly.

        Members are stored by id and are not checked against the entities of the member type: an
        assembly may be written before its members.
        """
        slot = self._next_slot(EntityType.ASSEMBLY, assembly.id)
        stored_id = self._store_ints([assembly.id], "assembly id")[0]
        members = self._store_ints(assembly.entity_list, "assembly members")

        dim = nm.slot_name(nm.DIM_ASSEMBLY_ENTRIES, slot)
        self._handle.create_dimension(dim, members.size)
        var = self._handle.create_variable(
            nm.slot_name(nm.VAR_ASSEMBLY, slot), (dim,), self._int_dtype, data=members
        )
        var.attrs["id"] = stored_id
        var.attrs["name"] = assembly.name
        var.attrs["entity_type"] = np.int32(assembly.entity_type.value)
        self._invalidate(EntityType.ASSEMBLY)

    @reads
    def assembly(self, assembly_id: int) -> Assembly:
        slot = self._slot(EntityType.ASSEMBLY, assembly_id)
        var = self._handle[nm.slot_name(nm.VAR_ASSEMBLY, slot)]
        return Assembly(
            id=int(var.attrs["id"]),
            name=codec.attribute_to_str(var.attrs.get("name", "")),
            entity_type=EntityType(int(var.attrs["entity_type"])),
            entity_list=codec.from_storage(var[...]),
        )

    @reads
    def assembly_ids(self) -> List[int]:
        return list(self._ids(EntityType.ASSEMBLY))

    # @@ BLOBS @@ #
    @writes
    def put_blob(self, blob: Blob):
        """Store an opaque byte payload."""
        slot = self._next_slot(EntityType.BLOB, blob.id)
        stored_id = self._store_ints([blob.id], "blob id")[0]
        payload = np.frombuffer(blob.data, dtype=np.uint8)

        dim = nm.slot_name(nm.DIM_BLOB_BYTES, slot)
        self._handle.create_dimension(dim, payload.size)
        var = self._handle.create_variable(
            nm.slot_name(nm.VAR_BLOB, slot),
            (dim,),
            np.uint8,
            chunks=self._chunks((payload.size,), ("element",)),
            filters=self._filters,
            data=payload,
        )
        var.attrs["id"] = stored_id
        var.attrs["name"] = blob.name
        self._invalidate(EntityType.BLOB)

    @reads
    def blob(self, blob_id: int) -> Blob:
        slot = self._slot(EntityType.BLOB, blob_id)
        var = self._handle[nm.slot_name(nm.VAR_BLOB, slot)]
        return Blob(
            id=int(var.attrs["id"]),
            name=codec.attribute_to_str(var.attrs.get("name", "")),
            data=var[...].tobytes(),
        )

    @reads
    def blob_ids(self) -> List[int]:
        return list(self._ids(EntityType.BLOB))
