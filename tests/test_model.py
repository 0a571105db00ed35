"""
Unit tests for the entity records and enumerations in :py:mod:`exostore.model`.
"""
import numpy as np
import pytest

from exostore import (
    Assembly,
    AttributeData,
    AttributeType,
    Blob,
    Block,
    CreateOptions,
    EntitySet,
    EntityType,
    InitParams,
    NodeSet,
    QaRecord,
    SchemaViolation,
    SideSet,
    TruthTable,
)
from exostore.model.topology import canonical_topology, nodes_per_element, sides_per_element
from exostore.model.types import Compression, FloatSize, Int64Mode


class TestEntityType:
    def test_codes_match_exodus(self):
        assert EntityType.ELEM_BLOCK.value == 1
        assert EntityType.NODE_SET.value == 2
        assert EntityType.SIDE_SET.value == 3
        assert EntityType.GLOBAL.value == 13
        assert EntityType.NODAL.value == 14
        assert EntityType.ASSEMBLY.value == 16
        assert EntityType.BLOB.value == 17

    @pytest.mark.parametrize("value", [EntityType.EDGE_SET, "edge_set", "EDGE_SET", 7])
    def test_coerce(self, value):
        assert EntityType.coerce(value) is EntityType.EDGE_SET

    def test_coerce_unknown(self):
        with pytest.raises(SchemaViolation):
            EntityType.coerce("volume")
        with pytest.raises(SchemaViolation):
            EntityType.coerce(15)

    def test_categories(self):
        assert EntityType.FACE_BLOCK.is_block and not EntityType.FACE_BLOCK.is_set
        assert EntityType.ELEM_SET.is_set
        assert EntityType.NODE_MAP.is_map
        assert EntityType.NODAL.has_variables and not EntityType.NODAL.has_truth_table
        assert EntityType.ASSEMBLY.has_reduction_variables
        assert not EntityType.ASSEMBLY.has_variables
        assert not EntityType.GLOBAL.has_reduction_variables


class TestInitParams:
    def test_defaults(self):
        params = InitParams()
        assert params.num_dim == 3
        assert params.capacity(EntityType.ELEM_BLOCK) == 0

    def test_capacity(self):
        params = InitParams(num_elem_blocks=3, num_side_sets=2, num_blobs=1)
        assert params.capacity(EntityType.ELEM_BLOCK) == 3
        assert params.capacity(EntityType.SIDE_SET) == 2
        assert params.capacity(EntityType.BLOB) == 1

    def test_capacity_of_uncounted_type(self):
        with pytest.raises(SchemaViolation):
            InitParams().capacity(EntityType.NODAL)

    @pytest.mark.parametrize("num_dim", [0, 4])
    def test_num_dim_range(self, num_dim):
        with pytest.raises(SchemaViolation):
            InitParams(num_dim=num_dim)

    def test_negative_count(self):
        with pytest.raises(SchemaViolation):
            InitParams(num_nodes=-1)

    def test_title_length(self):
        InitParams(title="t" * 80)
        with pytest.raises(SchemaViolation):
            InitParams(title="t" * 81)


class TestBlock:
    def test_connectivity_length(self):
        block = Block(id=1, topology="HEX8", num_entries=4, num_nodes_per_entry=8)
        assert block.connectivity_length == 32
        assert block.entity_type is EntityType.ELEM_BLOCK

    def test_topology_node_count_mismatch(self):
        with pytest.raises(SchemaViolation):
            Block(id=1, topology="HEX8", num_entries=1, num_nodes_per_entry=4)

    def test_generic_topology_accepts_any_count(self):
        # HEX is used for both 8 and 20 node hexahedra.
        Block(id=1, topology="HEX", num_entries=1, num_nodes_per_entry=20)

    def test_entries_need_nodes(self):
        with pytest.raises(SchemaViolation):
            Block(id=1, topology="QUAD4", num_entries=2, num_nodes_per_entry=0)

    def test_empty_block(self):
        block = Block(id=5, topology="", num_entries=0, num_nodes_per_entry=0)
        assert block.connectivity_length == 0

    def test_not_a_block_type(self):
        with pytest.raises(SchemaViolation):
            Block(1, "HEX8", 1, 8, entity_type=EntityType.NODE_SET)

    def test_id_must_be_integer(self):
        with pytest.raises(SchemaViolation):
            Block(id="1", topology="HEX8", num_entries=1, num_nodes_per_entry=8)


class TestSets:
    def test_node_set_normalizes(self):
        ns = NodeSet(10, [1, 2, 3])
        assert ns.nodes.dtype == np.int64
        assert ns.dist_factors.size == 0
        assert ns == NodeSet(10, np.array([1, 2, 3]), [])

    def test_node_set_factors_length(self):
        with pytest.raises(SchemaViolation):
            NodeSet(10, [1, 2, 3], [1.0])

    def test_node_set_one_based(self):
        with pytest.raises(SchemaViolation):
            NodeSet(10, [0, 1])

    def test_side_set_parallel_arrays(self):
        with pytest.raises(SchemaViolation):
            SideSet(1, [1, 2], [1])
        assert len(SideSet(1, [1, 2], [1, 3])) == 2

    def test_entity_set_types(self):
        es = EntitySet(EntityType.ELEM_SET, 3, [1, 2])
        assert es.entity_type is EntityType.ELEM_SET
        with pytest.raises(SchemaViolation):
            EntitySet(EntityType.NODE_SET, 3, [1, 2])

    @pytest.mark.parametrize(
        "members", [[1.0, 1e20], np.array([1, 2**63], dtype=np.uint64), [1.5]]
    )
    def test_members_never_wrap(self, members):
        with pytest.raises(SchemaViolation):
            Assembly(1, "everything", EntityType.ELEM_BLOCK, members)


class TestRecords:
    def test_assembly(self):
        a = Assembly(100, "left", "elem_block", [1, 2])
        assert a.entity_type is EntityType.ELEM_BLOCK
        assert a == Assembly(100, "left", EntityType.ELEM_BLOCK, np.array([1, 2]))

    def test_blob_accepts_arrays(self):
        blob = Blob(1, "payload", np.array([1, 2, 255], dtype=np.uint8))
        assert blob.data == b"\x01\x02\xff"

    def test_qa_field_length(self):
        QaRecord("code", "1.0", "2024-01-01", "12:00:00")
        with pytest.raises(SchemaViolation):
            QaRecord("c" * 33, "1.0", "today", "now")

    def test_attribute_data(self):
        assert AttributeData.integer(5).kind is AttributeType.INTEGER
        assert AttributeData.double([1.5, 2.5]) == AttributeData.double(np.array([1.5, 2.5]))
        assert AttributeData.char("abc") != AttributeData.integer(1)
        with pytest.raises(SchemaViolation):
            AttributeData(AttributeType.CHAR, 1)


class TestTruthTable:
    def test_default_all_false(self):
        table = TruthTable(EntityType.ELEM_BLOCK, 2, 3)
        assert table.shape == (2, 3)
        assert not table.table.any()

    def test_set_and_get(self):
        table = TruthTable(EntityType.ELEM_BLOCK, 2, 2, entity_ids=[10, 20])
        table.set_by_id(20, 1)
        assert table.get(1, 1)
        assert table.get_by_id(20, 1)
        assert not table.get_by_id(10, 1)

    def test_bounds(self):
        table = TruthTable.all_true(EntityType.NODE_SET, 1, 1)
        with pytest.raises(SchemaViolation):
            table.get(1, 0)
        with pytest.raises(SchemaViolation):
            table.row_of(3)

    def test_only_for_blocks_and_sets(self):
        with pytest.raises(SchemaViolation):
            TruthTable(EntityType.NODAL, 1, 1)


class TestTopology:
    def test_aliases(self):
        assert canonical_topology("hex") == "HEX8"
        assert canonical_topology("tet10") == "TETRA10"
        assert canonical_topology("polyhedron") is None

    def test_counts(self):
        assert nodes_per_element("QUAD4") == 4
        assert nodes_per_element("HEX") is None
        assert sides_per_element("hex") == 6
        assert sides_per_element("custom") is None


class TestCreateOptions:
    def test_coercion(self):
        options = CreateOptions(float_size=4, int64_mode=8, compression="gzip")
        assert options.float_size is FloatSize.FLOAT32
        assert options.int64_mode is Int64Mode.INT64
        assert options.dataset_filters["compression"] == "gzip"

    def test_uncompressed_has_no_filters(self):
        assert CreateOptions(compression=None).dataset_filters == {}

    def test_gzip_level(self):
        with pytest.raises(SchemaViolation):
            CreateOptions(compression=Compression.GZIP, compression_level=12)

    @pytest.mark.parametrize(
        "overrides",
        [
            dict(float_size=2),
            dict(float_size=3),
            dict(int64_mode=16),
            dict(mode="bogus"),
            dict(compression="zstd"),
        ],
    )
    def test_invalid_choices(self, overrides):
        with pytest.raises(SchemaViolation):
            CreateOptions(**overrides)
