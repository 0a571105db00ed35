"""
Lifecycle and capability tests of the reader, writer and appender handles.
"""
import os

import h5py
import numpy as np
import pytest

from exostore import (
    AlreadyExists,
    CreateMode,
    CreateOptions,
    ExodusAppender,
    ExodusReader,
    ExodusWriter,
    FloatSize,
    InitParams,
    Int64Mode,
    InvalidState,
    NotFound,
    SchemaViolation,
    UnderlyingIOError,
)
from tests._utils import write_two_hex_mesh


class TestCreate:
    def test_no_clobber_then_clobber(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)

        with pytest.raises(AlreadyExists):
            ExodusWriter.create(exo_path, performance=performance)

        with ExodusWriter.create(
            exo_path, mode=CreateMode.CLOBBER, performance=performance
        ) as exo:
            exo.put_init_params(InitParams(title="fresh", num_dim=2, num_nodes=3))

        with ExodusReader.open(exo_path, performance) as exo:
            params = exo.init_params()
            assert params.title == "fresh"
            assert params.num_elem_blocks == 0
            assert exo.block_ids() == []

    def test_already_exists_is_file_exists_error(self, exo_path, performance):
        write_two_hex_mesh(exo_path, performance)
        with pytest.raises(FileExistsError):
            ExodusWriter.create(exo_path, performance=performance)

    def test_options_object(self, exo_path, performance):
        options = CreateOptions(float_size=4, int64_mode=8, performance=performance)
        with ExodusWriter.create(exo_path, options) as exo:
            exo.put_init_params(InitParams(num_dim=1, num_nodes=2))
            exo.put_coords([0.5, 1.5])

        with h5py.File(exo_path, "r") as raw:
            assert raw["coordx"].dtype == np.float32
            assert raw.attrs["floating_point_word_size"] == 4
            assert raw.attrs["int64_status"] == 1

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo._float_dtype == np.float32
            assert exo._int_dtype == np.int64
            np.testing.assert_array_equal(exo.coords()[0], [0.5, 1.5])

    def test_overrides_replace_option_fields(self, exo_path, performance):
        options = CreateOptions(float_size=FloatSize.FLOAT64, performance=performance)
        with ExodusWriter.create(exo_path, options, int64_mode=Int64Mode.INT64) as exo:
            assert exo._int_dtype == np.int64
            assert exo._float_dtype == np.float64

    def test_gzip_compression(self, exo_path, performance):
        with ExodusWriter.create(
            exo_path, compression="gzip", compression_level=6, performance=performance
        ) as exo:
            exo.put_init_params(InitParams(num_dim=1, num_nodes=100))
            exo.put_coords(np.linspace(0, 1, 100))

        with h5py.File(exo_path, "r") as raw:
            assert raw["coordx"].compression == "gzip"

    def test_netcdf_layout(self, two_hex_mesh):
        with h5py.File(two_hex_mesh, "r") as raw:
            assert raw["num_nodes"].attrs["CLASS"] == b"DIMENSION_SCALE"
            assert raw["connect1"].dims[0].label == "num_el_in_blk1"
            assert raw["time_step"].maxshape == (None,)
            assert raw["eb_prop1"].attrs["name"] in ("ID", b"ID")


class TestOpen:
    def test_missing_file(self, temp_dir):
        missing = os.path.join(temp_dir, "missing.exo")
        with pytest.raises(NotFound):
            ExodusReader.open(missing)
        with pytest.raises(NotFound):
            ExodusAppender.append(missing)

    def test_appender_needs_initialized_file(self, exo_path, performance):
        ExodusWriter.create(exo_path, performance=performance).close()
        with pytest.raises(InvalidState):
            ExodusAppender.append(exo_path, performance)

    def test_version(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            assert exo.version() == pytest.approx(2.0)


class TestCapabilities:
    def test_reader_rejects_writes(self, two_hex_mesh, performance):
        with ExodusReader.open(two_hex_mesh, performance) as exo:
            with pytest.raises(InvalidState):
                exo.put_info_records(["no"])
            with pytest.raises(InvalidState):
                exo.put_init_params(InitParams())
            with pytest.raises(InvalidState):
                exo.put_time(0, 0.0)

    def test_writer_rejects_reads(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_nodes=1))
            with pytest.raises(InvalidState):
                exo.coords()
            with pytest.raises(InvalidState):
                exo.init_params()

    def test_writes_require_init_params(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            with pytest.raises(InvalidState):
                exo.put_coords([0.0])
            with pytest.raises(InvalidState):
                exo.put_qa_records([("a", "b", "c", "d")])

    def test_init_params_once(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2))
            with pytest.raises(InvalidState):
                exo.put_init_params(InitParams(num_dim=2))

    def test_appender_cannot_reinitialize(self, two_hex_mesh, performance):
        with ExodusAppender.append(two_hex_mesh, performance) as exo:
            with pytest.raises(InvalidState):
                exo.put_init_params(InitParams())

    def test_closed_handle(self, two_hex_mesh, performance):
        exo = ExodusReader.open(two_hex_mesh, performance)
        exo.close()
        exo.close()
        assert exo.closed
        with pytest.raises(InvalidState):
            exo.coords()
        with pytest.raises(InvalidState):
            exo.sync()

    def test_context_manager_closes(self, two_hex_mesh, performance):
        with ExodusAppender.append(two_hex_mesh, performance) as exo:
            exo.put_info_records(["appended"])
        assert exo.closed

    def test_failed_flush_still_releases_file(self, two_hex_mesh, performance, monkeypatch):
        exo = ExodusAppender.append(two_hex_mesh, performance)
        handle = exo._handle

        def failing_flush():
            raise OSError("disk full")

        monkeypatch.setattr(handle, "flush", failing_flush)
        with pytest.raises(UnderlyingIOError):
            exo.close()

        assert exo.closed
        assert not handle.id.valid
        exo.close()

    def test_failed_append_releases_file(self, two_hex_mesh, performance):
        with h5py.File(two_hex_mesh, "r+") as raw:
            raw.attrs["floating_point_word_size"] = np.int32(3)

        with pytest.raises(SchemaViolation):
            ExodusAppender.append(two_hex_mesh, performance)
        with pytest.raises(SchemaViolation):
            ExodusReader.open(two_hex_mesh, performance)

        # Truncating fails while any HDF5 id on the file is still open.
        h5py.File(two_hex_mesh, "w").close()


class TestInitParams:
    def test_round_trip(self, exo_path, performance):
        params = InitParams(
            title="full sizing",
            num_dim=3,
            num_nodes=10,
            num_edges=4,
            num_edge_blocks=1,
            num_faces=2,
            num_face_blocks=1,
            num_elems=3,
            num_elem_blocks=2,
            num_node_sets=2,
            num_side_sets=1,
            num_elem_sets=1,
            num_node_maps=1,
            num_elem_maps=2,
            num_assemblies=1,
            num_blobs=1,
        )
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(params)

        with ExodusReader.open(exo_path, performance) as exo:
            assert exo.init_params() == params

    def test_coordinate_shape(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(num_dim=2, num_nodes=3))
            with pytest.raises(SchemaViolation):
                exo.put_coords([0.0, 1.0, 2.0])
            with pytest.raises(SchemaViolation):
                exo.put_coords([0.0, 1.0], [0.0, 1.0])
            with pytest.raises(SchemaViolation):
                exo.put_coords([0.0, 1.0, 2.0], [0.0, 1.0, 2.0], [0.0, 1.0, 2.0])

    def test_no_nodes(self, exo_path, performance):
        with ExodusWriter.create(exo_path, performance=performance) as exo:
            exo.put_init_params(InitParams(title="empty", num_dim=3))

        with ExodusReader.open(exo_path, performance) as exo:
            assert all(axis.size == 0 for axis in exo.coords())
            assert exo.num_time_steps() == 0
