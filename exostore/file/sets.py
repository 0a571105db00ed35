"""
Node, side, edge, face and element sets.
"""
from typing import List, Optional

import numpy as np

from exostore.exceptions import SchemaViolation
from exostore.file.base import reads, writes
from exostore.io import codec
from exostore.io import naming as nm
from exostore.model.records import EntitySet, NodeSet, SideSet
from exostore.model.topology import sides_per_element
from exostore.model.types import EntityType


class SetMixin:
    """Set operations of :py:class:`~exostore.file.base.ExodusFile`."""

    def _put_set(
        self,
        entity_type: EntityType,
        set_id: int,
        entries: np.ndarray,
        dist_factors: np.ndarray,
        extra: Optional[np.ndarray] = None,
    ):
        """Validate and store one set. Nothing is written until every check has passed."""
        names = nm.set_names(entity_type)
        slot = self._next_slot(entity_type, set_id)
        stored_id = self._store_ints([set_id], "set id")[0]

        upper = self._dim(names.target_dim)
        if entries.size and entries.max() > upper:
            raise SchemaViolation(
                f"{entity_type} {set_id} references entry {entries.max()} but the file has "
                f"{upper} ({names.target_dim})."
            )
        stored_entries = self._store_ints(entries, f"{entity_type} entries")
        stored_extra = None if extra is None else self._store_ints(extra, "sides")
        stored_df = self._store_floats(dist_factors, "distribution factors")

        h = self._handle
        entries_dim = nm.slot_name(names.entries_dim, slot)
        h.create_dimension(entries_dim, entries.size)
        chunks = self._chunks((entries.size,), ("element",))

        h.create_variable(
            nm.slot_name(names.entries_var, slot),
            (entries_dim,),
            self._int_dtype,
            chunks=chunks,
            filters=self._filters,
            data=stored_entries,
        )
        if names.extra_var is not None:
            h.create_variable(
                nm.slot_name(names.extra_var, slot),
                (entries_dim,),
                self._int_dtype,
                chunks=chunks,
                filters=self._filters,
                data=stored_extra,
            )
        if stored_df.size:
            df_dim = nm.slot_name(names.df_dim, slot)
            h.create_dimension(df_dim, stored_df.size)
            h.create_variable(
                nm.slot_name(names.df_var, slot),
                (df_dim,),
                self._float_dtype,
                chunks=self._chunks((stored_df.size,), ("element",)),
                filters=self._filters,
                data=stored_df,
            )

        h[names.ids_var][slot] = stored_id
        h[names.status_var][slot] = 1
        self._invalidate(entity_type)
        self.logger.debug(
            "Defined %s %d in slot %d (%d entries).", entity_type, set_id, slot, entries.size
        )

    def _get_set(self, entity_type: EntityType, set_id: int):
        names = nm.set_names(entity_type)
        slot = self._slot(entity_type, set_id)
        h = self._handle

        entries = codec.from_storage(h[nm.slot_name(names.entries_var, slot)][...])
        extra = None
        if names.extra_var is not None:
            extra = codec.from_storage(h[nm.slot_name(names.extra_var, slot)][...])

        df_var = nm.slot_name(names.df_var, slot)
        dist_factors = codec.from_storage(h[df_var][...]) if df_var in h else np.zeros(0)
        return entries, extra, dist_factors

    def _check_sides(self, side_set: SideSet):
        """Reject side numbers beyond the side count of the owning element's topology."""
        if not len(side_set):
            return
        ends, topologies = self._element_topologies()
        if not ends.size:
            return

        owners = np.searchsorted(ends, side_set.elements, side="left")
        for element, side, owner in zip(side_set.elements, side_set.sides, owners):
            if owner >= len(topologies):
                continue
            limit = sides_per_element(topologies[owner])
            if limit and side > limit:
                raise SchemaViolation(
                    f"Side set {side_set.id}: element {element} ({topologies[owner]}) has "
                    f"{limit} sides, got side {side}."
                )

    @writes
    def put_node_set(self, node_set: NodeSet):
        """
        Define a node set.

        Raises
        ------
        SchemaViolation
            If all node set slots are used, the id is taken, or a node is outside
            ``[1, num_nodes]``.
        """
        self._put_set(EntityType.NODE_SET, node_set.id, node_set.nodes, node_set.dist_factors)

    @reads
    def node_set(self, set_id: int) -> NodeSet:
        entries, _, dist_factors = self._get_set(EntityType.NODE_SET, set_id)
        return NodeSet(set_id, entries, dist_factors)

    @writes
    def put_side_set(self, side_set: SideSet):
        """
        Define a side set.

        Elements must lie in ``[1, num_elem]``. When the owning element block has a standard
        topology, side numbers are checked against its side count.
        """
        self._check_sides(side_set)
        self._put_set(
            EntityType.SIDE_SET,
            side_set.id,
            side_set.elements,
            side_set.dist_factors,
            extra=side_set.sides,
        )

    @reads
    def side_set(self, set_id: int) -> SideSet:
        elements, sides, dist_factors = self._get_set(EntityType.SIDE_SET, set_id)
        return SideSet(set_id, elements, sides, dist_factors)

    @writes
    def put_entity_set(self, entity_set: EntitySet):
        """Define an edge, face or element set."""
        self._put_set(
            entity_set.entity_type,
            entity_set.id,
            entity_set.entities,
            entity_set.dist_factors,
        )

    @reads
    def entity_set(self, entity_type: EntityType, set_id: int) -> EntitySet:
        entity_type = EntityType.coerce(entity_type)
        entries, _, dist_factors = self._get_set(entity_type, set_id)
        return EntitySet(entity_type, set_id, entries, dist_factors)

    @reads
    def set_ids(self, entity_type: EntityType) -> List[int]:
        """Ids of the defined sets of ``entity_type``, in storage order."""
        entity_type = EntityType.coerce(entity_type)
        if not entity_type.is_set:
            raise SchemaViolation(f"{entity_type} is not a set type.")
        return list(self._ids(entity_type))
