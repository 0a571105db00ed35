"""
Tests of the mesh description: coordinates, blocks, sets, maps, assemblies, blobs and metadata.
"""
import h5py
import numpy as np
import pytest

from exostore import (
    Assembly,
    AttributeData,
    Blob,
    Block,
    EntitySet,
    EntityType,
    ExodusAppender,
    ExodusReader,
    ExodusWriter,
    InitParams,
    InvalidState,
    NodeSet,
    NotDefined,
    NotFound,
    QaRecord,
    SchemaViolation,
    SideSet,
)
from tests._utils import TWO_HEX_CONNECTIVITY, UNIT_CUBE, two_hex_coordinates, write_two_hex_mesh


# @@ COORDINATES AND BLOCKS @@ #
class TestUnitCube:
    def test_single_hex_round_trip(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(
                InitParams(num_dim=3, num_nodes=8, num_elems=1, num_elem_blocks=1)
            )
            exo.put_coords(*UNIT_CUBE)
            exo.put_block(Block(id=1, topology="HEX8", num_entries=1, num_nodes_per_entry=8))
            exo.put_connectivity(1, list(range(1, 9)))

        with ExodusReader.open(exo_path, performance) as exo:
            block = exo.block(1)
            assert block.num_entries == 1
            assert block.topology == "HEX8"
            np.testing.assert_array_equal(exo.connectivity(1), [1, 2, 3, 4, 5, 6, 7, 8])
            for axis, expected in zip(exo.coords(), UNIT_CUBE):
                np.testing.assert_array_equal(axis, expected)


    def test_partial_coordinates(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_nodes=5))
            exo.put_partial_coords(0, [0.0, 1.0], [0.0, 0.5])
            exo.put_partial_coords(2, [2.0, 3.0, 4.0], [1.0, 1.5, 2.0])
            with pytest.raises(SchemaViolation):
                exo.put_partial_coords(4, [5.0, 6.0], [0.0, 0.0])
            with pytest.raises(SchemaViolation):
                exo.put_partial_coords(-1, [5.0], [0.0])
            with pytest.raises(SchemaViolation):
                exo.put_partial_coords(0, [5.0], [0.0], [0.0])
            with pytest.raises(SchemaViolation):
                exo.put_partial_coords(0, [5.0, 6.0], [0.0])

        with ExodusReader.open(exo_path, performance) as exo:
            x, y = exo.coords()
            np.testing.assert_array_equal(x, [0.0, 1.0, 2.0, 3.0, 4.0])
            np.testing.assert_array_equal(y, [0.0, 0.5, 1.0, 1.5, 2.0])
            x, y = exo.partial_coords(1, 3)
            np.testing.assert_array_equal(x, [1.0, 2.0, 3.0])
            np.testing.assert_array_equal(y, [0.5, 1.0, 1.5])
            assert [a.size for a in exo.partial_coords(5, 0)] == [0, 0]
            with pytest.raises(SchemaViolation):
                exo.partial_coords(3, 3)


class TestBlocks:
    def test_read_back(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            assert exo.block_ids() == [1, 2]
            assert exo.block(2) == Block(
                id=2, topology="HEX8", num_entries=1, num_nodes_per_entry=8
            )
            conn = exo.connectivity_array(2)
            assert conn.shape == (1, 8)
            assert conn.dtype == np.int64
            np.testing.assert_array_equal(conn.ravel(), TWO_HEX_CONNECTIVITY[2])

    def test_unknown_block(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            with pytest.raises(NotFound):
                exo.block(3)
            with pytest.raises(NotFound):
                exo.connectivity(3)

    def test_capacity_and_duplicates(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_nodes=4, num_elem_blocks=1))
            exo.put_block(Block(id=7, topology="QUAD4", num_entries=1, num_nodes_per_entry=4))
            with pytest.raises(SchemaViolation):
                exo.put_block(Block(id=7, topology="QUAD4", num_entries=1, num_nodes_per_entry=4))
            with pytest.raises(SchemaViolation):
                exo.put_block(Block(id=8, topology="QUAD4", num_entries=1, num_nodes_per_entry=4))

    def test_connectivity_checks(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_nodes=4, num_elem_blocks=1))
            exo.put_block(Block(id=1, topology="QUAD4", num_entries=1, num_nodes_per_entry=4))
            with pytest.raises(SchemaViolation):
                exo.put_connectivity(1, [1, 2, 3])
            with pytest.raises(SchemaViolation):
                exo.put_connectivity(1, [1, 2, 3, 5])
            with pytest.raises(SchemaViolation):
                exo.put_connectivity(1, [0, 1, 2, 3])
            exo.put_connectivity(1, np.array([[1, 2, 3, 4]]))

    def test_narrowing_rejected(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_elem_blocks=1))
            with pytest.raises(SchemaViolation):
                exo.put_block(
                    Block(id=2**40, topology="", num_entries=0, num_nodes_per_entry=0)
                )

    def test_wide_ids_in_int64_files(self, exo_path, performance):
        with ExodusWriter.create(exo_path, int64_mode=8, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_elem_blocks=1))
            exo.put_block(Block(id=2**40, topology="", num_entries=0, num_nodes_per_entry=0))

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.block_ids() == [2**40]
            assert exo.connectivity(2**40).size == 0

    def test_edge_and_face_blocks(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(
                InitParams(
                    num_dim=2,
                    num_nodes=3,
                    num_edges=3,
                    num_edge_blocks=1,
                    num_faces=1,
                    num_face_blocks=1,
                )
            )
            exo.put_coords([0.0, 1.0, 0.0], [0.0, 0.0, 1.0])
            exo.put_block(Block(3, "BAR2", 3, 2, entity_type=EntityType.EDGE_BLOCK))
            exo.put_block(Block(4, "TRI3", 1, 3, entity_type="face_block"))
            exo.put_connectivity(3, [1, 2, 2, 3, 3, 1], EntityType.EDGE_BLOCK)
            exo.put_connectivity(4, [1, 2, 3], EntityType.FACE_BLOCK)

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.block_ids(EntityType.EDGE_BLOCK) == [3]
            assert exo.block(4, EntityType.FACE_BLOCK).topology == "TRI3"
            assert exo.connectivity_array(3, EntityType.EDGE_BLOCK).shape == (3, 2)
            assert exo.block_ids() == []

    def test_block_attributes(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=1, num_nodes=3, num_elem_blocks=1))
            exo.put_block(Block(1, "BAR2", 2, 2, num_attributes=2))
            exo.put_block_attributes(1, [[0.1, 1.0], [0.2, 2.0]])
            exo.put_block_attribute_names(1, ["area", "stiffness"])
            with pytest.raises(SchemaViolation):
                exo.put_block_attributes(1, [0.1, 1.0])

        with ExodusReader.open(exo_path, performance) as exo:
            np.testing.assert_allclose(exo.block_attributes(1), [[0.1, 1.0], [0.2, 2.0]])
            assert exo.block_attribute_names(1) == ["area", "stiffness"]

    def test_block_attribute_names_optional(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            assert exo.block_attribute_names(1) == []
            with pytest.raises(NotDefined):
                exo.block_attribute_names(1, strict=True)
            assert exo.block_attributes(1).shape == (1, 0)


# @@ SETS @@ #
class TestSets:
    def test_node_set_without_factors(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_nodes=4, num_node_sets=1))
            exo.put_node_set(NodeSet(id=10, nodes=[1, 2, 3]))

        with ExodusReader.open(exo_path, performance) as exo:
            node_set = exo.node_set(10)
            assert node_set.dist_factors.size == 0
            np.testing.assert_array_equal(node_set.nodes, [1, 2, 3])

    def test_read_back(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            assert exo.set_ids(EntityType.NODE_SET) == [10]
            assert exo.node_set(10) == NodeSet(10, [1, 4, 5, 8], [1.0, 1.0, 0.5, 0.5])
            assert exo.side_set(20) == SideSet(20, [1, 2], [4, 2])

    def test_out_of_range_entries(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(
                InitParams(num_dim=2, num_nodes=4, num_elems=1, num_node_sets=1, num_side_sets=1)
            )
            with pytest.raises(SchemaViolation):
                exo.put_node_set(NodeSet(1, [1, 5]))
            with pytest.raises(SchemaViolation):
                exo.put_side_set(SideSet(1, [2], [1]))
            # Failed writes leave the slot free.
            exo.put_node_set(NodeSet(1, [1, 4]))

    def test_side_numbers_follow_topology(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance, num_side_sets=2)
        with ExodusAppender.append(exo_path, performance) as exo:
            with pytest.raises(SchemaViolation):
                exo.put_side_set(SideSet(21, [1], [7]))
            exo.put_side_set(SideSet(21, [1], [6], [1.0, 1.0, 1.0, 1.0]))
            assert exo.side_set(21).dist_factors.size == 4

    def test_entity_sets(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(
                InitParams(num_dim=2, num_elems=3, num_elem_sets=1, num_edges=2, num_edge_sets=1)
            )
            exo.put_entity_set(EntitySet(EntityType.ELEM_SET, 4, [1, 3], [0.5, 0.5]))
            exo.put_entity_set(EntitySet("edge_set", 5, [2]))

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.entity_set(EntityType.ELEM_SET, 4) == EntitySet(
                EntityType.ELEM_SET, 4, [1, 3], [0.5, 0.5]
            )
            assert exo.set_ids("edge_set") == [5]
            with pytest.raises(NotFound):
                exo.entity_set(EntityType.ELEM_SET, 5)

    def test_set_ids_rejects_blocks(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            with pytest.raises(SchemaViolation):
                exo.set_ids(EntityType.ELEM_BLOCK)


# @@ MAPS, ASSEMBLIES AND BLOBS @@ #
class TestMaps:
    def test_identity_default(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            np.testing.assert_array_equal(exo.id_map(EntityType.NODE_MAP), np.arange(1, 13))
            with pytest.raises(NotDefined):
                exo.id_map(EntityType.ELEM_MAP, strict=True)

    def test_id_map_round_trip(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_id_map(EntityType.ELEM_MAP, [100, 200])
            with pytest.raises(SchemaViolation):
                exo.put_id_map(EntityType.NODE_MAP, [1, 2, 3])
            np.testing.assert_array_equal(exo.id_map(EntityType.ELEM_MAP), [100, 200])

    def test_numbered_maps(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance, num_elem_maps=1)
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_map(EntityType.ELEM_MAP, 3, [2, 1])
            with pytest.raises(SchemaViolation):
                exo.put_map(EntityType.ELEM_MAP, 4, [1, 2])

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.map_ids(EntityType.ELEM_MAP) == [3]
            np.testing.assert_array_equal(exo.map(EntityType.ELEM_MAP, 3), [2, 1])


    def test_wrapping_ids_rejected(self, exo_path, performance):
        with ExodusWriter.create(exo_path, int64_mode=8, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=1, num_nodes=2))
            with pytest.raises(SchemaViolation):
                exo.put_id_map(EntityType.NODE_MAP, [1e20, 2.0])
            exo.put_id_map(EntityType.NODE_MAP, [2.0**40, 2.0])

        with ExodusReader.open(exo_path, performance) as exo:
            np.testing.assert_array_equal(exo.id_map(EntityType.NODE_MAP), [2**40, 2])

    def test_elem_order_map(self, two_hex_mesh, performance):
        with ExodusAppender.append(two_hex_mesh, performance) as exo:
            np.testing.assert_array_equal(exo.elem_order_map(), [1, 2])
            with pytest.raises(NotDefined):
                exo.elem_order_map(strict=True)
            with pytest.raises(SchemaViolation):
                exo.put_elem_order_map([2, 1, 3])
            with pytest.raises(SchemaViolation):
                exo.put_elem_order_map([0, 1])
            exo.put_elem_order_map([2, 1])

        with ExodusReader.open(two_hex_mesh, performance) as exo:
            np.testing.assert_array_equal(exo.elem_order_map(strict=True), [2, 1])


class TestAssembliesAndBlobs:
    def test_assembly(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance, num_assemblies=1)
        assembly = Assembly(100, "both blocks", EntityType.ELEM_BLOCK, [1, 2])
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_assembly(assembly)
            with pytest.raises(SchemaViolation):
                exo.put_assembly(Assembly(101, "extra", EntityType.ELEM_BLOCK, [1]))

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.assembly_ids() == [100]
            assert exo.assembly(100) == assembly

    def test_blob(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance, num_blobs=2)
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_blob(Blob(1, "settings", b"\x00\x01binary"))
            exo.put_blob(Blob(2, "empty"))

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.blob_ids() == [1, 2]
            assert exo.blob(1).data == b"\x00\x01binary"
            assert exo.blob(2).name == "empty"
            assert exo.blob(2).data == b""


# @@ DESCRIPTIVE METADATA @@ #
class TestMetadata:
    def test_names(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        with ExodusAppender.append(exo_path, performance) as exo:
            assert exo.names(EntityType.ELEM_BLOCK) == ["", ""]
            with pytest.raises(NotDefined):
                exo.name(EntityType.ELEM_BLOCK, 1, strict=True)

            exo.put_names(EntityType.ELEM_BLOCK, ["left", "right"])
            exo.put_name(EntityType.NODE_SET, 10, "inlet")
            with pytest.raises(SchemaViolation):
                exo.put_name(EntityType.NODE_SET, 10, "n" * 33)
            with pytest.raises(SchemaViolation):
                exo.put_names(EntityType.ELEM_BLOCK, ["only one"])

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.names(EntityType.ELEM_BLOCK) == ["left", "right"]
            assert exo.name(EntityType.NODE_SET, 10) == "inlet"

    def test_coord_names(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.coord_names() == ["", "", ""]
            with pytest.raises(NotDefined):
                exo.coord_names(strict=True)

        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_coord_names(["x", "y", "z"])
            assert exo.coord_names() == ["x", "y", "z"]

    def test_properties(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_property(EntityType.ELEM_BLOCK, 2, "MATERIAL", 7)
            with pytest.raises(SchemaViolation):
                exo.put_property(EntityType.ELEM_BLOCK, 2, "ID", 3)

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.property_names(EntityType.ELEM_BLOCK) == ["ID", "MATERIAL"]
            assert exo.property(EntityType.ELEM_BLOCK, 2, "MATERIAL") == 7
            assert exo.property(EntityType.ELEM_BLOCK, 1, "MATERIAL") == 0
            assert exo.property(EntityType.ELEM_BLOCK, 1, "ID") == 1
            assert exo.property(EntityType.ELEM_BLOCK, 1, "DENSITY") == 0
            with pytest.raises(NotDefined):
                exo.property(EntityType.ELEM_BLOCK, 1, "DENSITY", strict=True)

    def test_property_arrays(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_property_array(EntityType.ELEM_BLOCK, "MATERIAL", [7, 9])
            with pytest.raises(SchemaViolation):
                exo.put_property_array(EntityType.ELEM_BLOCK, "DENSITY", [1])
            with pytest.raises(SchemaViolation):
                exo.put_property_array(EntityType.ELEM_BLOCK, "ID", [5, 6])

        with ExodusReader.open(exo_path, performance) as exo:
            np.testing.assert_array_equal(
                exo.property_array(EntityType.ELEM_BLOCK, "MATERIAL"), [7, 9]
            )
            np.testing.assert_array_equal(exo.property_array(EntityType.ELEM_BLOCK, "ID"), [1, 2])
            assert exo.property(EntityType.ELEM_BLOCK, 2, "MATERIAL") == 9
            np.testing.assert_array_equal(exo.property_array(EntityType.NODE_SET, "FLOW"), [0])
            with pytest.raises(NotDefined):
                exo.property_array(EntityType.NODE_SET, "FLOW", strict=True)

    def test_attributes(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_attribute(EntityType.ELEM_BLOCK, 1, "units", AttributeData.char("mm"))
            exo.put_attribute(EntityType.ELEM_BLOCK, 1, "levels", AttributeData.integer([1, 2]))
            exo.put_attribute(EntityType.NODE_SET, 10, "scale", AttributeData.double(2.5))
            with pytest.raises(SchemaViolation):
                exo.put_attribute(EntityType.ELEM_BLOCK, 1, "elem_type", AttributeData.char("x"))

        with ExodusReader.open(exo_path, performance) as exo:
            assert sorted(exo.attribute_names(EntityType.ELEM_BLOCK, 1)) == ["levels", "units"]
            assert exo.attribute(EntityType.ELEM_BLOCK, 1, "units") == AttributeData.char("mm")
            assert exo.attribute(EntityType.ELEM_BLOCK, 1, "levels") == AttributeData.integer(
                [1, 2]
            )
            assert exo.attribute(EntityType.NODE_SET, 10, "scale") == AttributeData.double(2.5)
            with pytest.raises(NotDefined):
                exo.attribute(EntityType.ELEM_BLOCK, 2, "units")

    @pytest.mark.parametrize(
        "name", ["DIMENSION_LABELS", "DIMENSION_LIST", "REFERENCE_LIST", "CLASS", "NAME"]
    )
    def test_dimension_scale_attributes_hidden(self, two_hex_mesh, performance, name):
        with ExodusAppender.append(two_hex_mesh, performance) as exo:
            assert exo.attribute_names(EntityType.ELEM_BLOCK, 1) == []
            assert exo.attribute_names(EntityType.SIDE_SET, 20) == []
            with pytest.raises(SchemaViolation):
                exo.put_attribute(EntityType.ELEM_BLOCK, 1, name, AttributeData.char("x"))
            with pytest.raises(NotDefined):
                exo.attribute(EntityType.ELEM_BLOCK, 1, name)

        with h5py.File(two_hex_mesh, "r") as raw:
            assert raw["connect1"].dims[0].label == "num_el_in_blk1"

    def test_qa_and_info_append(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        first = QaRecord("mesher", "1.0", "2024-01-01", "10:00:00")
        second = QaRecord("solver", "2.3", "2024-01-02", "11:30:00")

        with ExodusAppender.append(exo_path, performance) as exo:
            assert exo.qa_records() == []
            exo.put_qa_records([first])
            exo.put_info_records(["generated for testing"])

        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_qa_records([second])
            exo.put_info_records(["second line", "third line"])
            with pytest.raises(SchemaViolation):
                exo.put_info_records(["x" * 81])

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.qa_records() == [first, second]
            assert exo.info_records() == ["generated for testing", "second line", "third line"]


# @@ APPENDING @@ #
class TestAppendStructure:
    def test_coordinates_are_immutable(self, two_hex_mesh, performance):
        with ExodusAppender.append(two_hex_mesh, performance) as exo:
            with pytest.raises(InvalidState):
                exo.put_coords(*two_hex_coordinates())

    def test_partial_coordinates_are_immutable(self, two_hex_mesh, performance):
        with ExodusAppender.append(two_hex_mesh, performance) as exo:
            with pytest.raises(InvalidState):
                exo.put_partial_coords(0, [9.0], [9.0], [9.0])
            np.testing.assert_array_equal(exo.partial_coords(8, 1)[0], [2.0])

    def test_existing_connectivity_is_immutable(self, two_hex_mesh, performance):
        with ExodusAppender.append(two_hex_mesh, performance) as exo:
            with pytest.raises(InvalidState):
                exo.put_connectivity(1, TWO_HEX_CONNECTIVITY[1])

    def test_new_blocks_within_capacity(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance, num_elems=3, num_elem_blocks=3)
        with ExodusAppender.append(exo_path, performance) as exo:
            exo.put_block(Block(id=3, topology="HEX8", num_entries=1, num_nodes_per_entry=8))
            exo.put_connectivity(3, [9, 10, 3, 2, 11, 12, 7, 6])
            with pytest.raises(SchemaViolation):
                exo.put_block(Block(id=4, topology="HEX8", num_entries=1, num_nodes_per_entry=8))

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.block_ids() == [1, 2, 3]
            np.testing.assert_array_equal(exo.connectivity(3), [9, 10, 3, 2, 11, 12, 7, 6])
