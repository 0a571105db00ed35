"""
On-disk naming convention of Exodus II files.

Every dimension and variable name the library reads or writes is produced here. Indices passed to
the helpers are **0-based storage slots**; the names they produce are 1-based, as in ``connect1`` for
the first element block.
"""
from typing import NamedTuple, Optional

from exostore.exceptions import SchemaViolation
from exostore.model.types import EntityType

# @@ GLOBAL ATTRIBUTES @@ #
ATT_API_VERSION = "api_version"
ATT_VERSION = "version"
ATT_FLOAT_WORD_SIZE = "floating_point_word_size"
ATT_FILE_SIZE = "file_size"
ATT_INT64_STATUS = "int64_status"
ATT_MAX_NAME_LENGTH = "maximum_name_length"
ATT_TITLE = "title"

API_VERSION = 9.04
FILE_VERSION = 2.0

# @@ FIXED DIMENSIONS @@ #
DIM_LEN_STRING = "len_string"
DIM_LEN_LINE = "len_line"
DIM_LEN_NAME = "len_name"
DIM_FOUR = "four"
DIM_NUM_DIM = "num_dim"
DIM_TIME_STEP = "time_step"
DIM_NUM_QA = "num_qa_rec"
DIM_NUM_INFO = "num_info"

LEN_STRING = 33
LEN_LINE = 81
LEN_NAME = 33

# @@ ENTITY COUNTS @@ #
DIM_NUM_NODES = "num_nodes"
DIM_NUM_EDGE = "num_edge"
DIM_NUM_FACE = "num_face"
DIM_NUM_ELEM = "num_elem"

# @@ COORDINATES, TIME AND TEXT @@ #
VAR_COORD = ("coordx", "coordy", "coordz")
VAR_COORD_NAMES = "coor_names"
VAR_TIME = "time_whole"
VAR_QA = "qa_records"
VAR_INFO = "info_records"
VAR_ELEM_ORDER_MAP = "elem_order_map"

# Attributes HDF5 writes for dimension scales and their attachments.
DIMENSION_SCALE_ATTRIBUTES = frozenset(
    {"CLASS", "NAME", "DIMENSION_LIST", "REFERENCE_LIST", "DIMENSION_LABELS"}
)

# Attribute names the library uses for its own bookkeeping. User attributes may not shadow them.
RESERVED_ATTRIBUTES = DIMENSION_SCALE_ATTRIBUTES | frozenset(
    {
        "elem_type",
        "id",
        "name",
        "entity_type",
        "_Netcdf4Dimid",
        "_Netcdf4Coordinates",
        "_FillValue",
    }
)


class BlockNames(NamedTuple):
    """Names used by one block category."""

    count_dim: str
    ids_var: str
    status_var: str
    names_var: str
    prop_prefix: str
    total_dim: str
    entries_dim: str
    nodes_dim: str
    edges_dim: Optional[str]
    faces_dim: Optional[str]
    conn_var: str
    attr_dim: str
    attr_var: str
    attr_names_var: str


class SetNames(NamedTuple):
    """Names used by one set category."""

    count_dim: str
    ids_var: str
    status_var: str
    names_var: str
    prop_prefix: str
    entries_dim: str
    entries_var: str
    extra_var: Optional[str]
    df_dim: str
    df_var: str
    target_dim: str


class MapNames(NamedTuple):
    """Names used by one map category."""

    count_dim: str
    ids_var: str
    names_var: str
    prop_prefix: str
    id_map_var: str
    map_var: str
    extent_dim: str


class VariableNames(NamedTuple):
    """Names used by the variable namespace of one entity type."""

    count_dim: str
    names_var: str
    truth_table_var: Optional[str]
    values_var: str
    red_count_dim: Optional[str]
    red_names_var: Optional[str]
    red_values_var: Optional[str]


_BLOCKS = {
    EntityType.ELEM_BLOCK: BlockNames(
        "num_el_blk",
        "eb_prop1",
        "eb_status",
        "eb_names",
        "eb_prop",
        DIM_NUM_ELEM,
        "num_el_in_blk{}",
        "num_nod_per_el{}",
        "num_edg_per_el{}",
        "num_fac_per_el{}",
        "connect{}",
        "num_att_in_blk{}",
        "attrib{}",
        "attrib_name{}",
    ),
    EntityType.EDGE_BLOCK: BlockNames(
        "num_ed_blk",
        "ed_prop1",
        "ed_status",
        "ed_names",
        "ed_prop",
        DIM_NUM_EDGE,
        "num_ed_in_blk{}",
        "num_nod_per_ed{}",
        None,
        None,
        "ebconn{}",
        "num_att_in_eblk{}",
        "eattrib{}",
        "eattrib_name{}",
    ),
    EntityType.FACE_BLOCK: BlockNames(
        "num_fa_blk",
        "fa_prop1",
        "fa_status",
        "fa_names",
        "fa_prop",
        DIM_NUM_FACE,
        "num_fa_in_blk{}",
        "num_nod_per_fa{}",
        None,
        None,
        "fbconn{}",
        "num_att_in_fblk{}",
        "fattrib{}",
        "fattrib_name{}",
    ),
}

_SETS = {
    EntityType.NODE_SET: SetNames(
        "num_node_sets",
        "ns_prop1",
        "ns_status",
        "ns_names",
        "ns_prop",
        "num_nod_ns{}",
        "node_ns{}",
        None,
        "num_df_ns{}",
        "dist_fact_ns{}",
        DIM_NUM_NODES,
    ),
    EntityType.SIDE_SET: SetNames(
        "num_side_sets",
        "ss_prop1",
        "ss_status",
        "ss_names",
        "ss_prop",
        "num_side_ss{}",
        "elem_ss{}",
        "side_ss{}",
        "num_df_ss{}",
        "dist_fact_ss{}",
        DIM_NUM_ELEM,
    ),
    EntityType.EDGE_SET: SetNames(
        "num_edge_sets",
        "es_prop1",
        "es_status",
        "es_names",
        "es_prop",
        "num_edge_es{}",
        "edge_es{}",
        None,
        "num_df_es{}",
        "dist_fact_es{}",
        DIM_NUM_EDGE,
    ),
    EntityType.FACE_SET: SetNames(
        "num_face_sets",
        "fs_prop1",
        "fs_status",
        "fs_names",
        "fs_prop",
        "num_face_fs{}",
        "face_fs{}",
        None,
        "num_df_fs{}",
        "dist_fact_fs{}",
        DIM_NUM_FACE,
    ),
    EntityType.ELEM_SET: SetNames(
        "num_elem_sets",
        "els_prop1",
        "els_status",
        "els_names",
        "els_prop",
        "num_ele_els{}",
        "elem_els{}",
        None,
        "num_df_els{}",
        "dist_fact_els{}",
        DIM_NUM_ELEM,
    ),
}

_MAPS = {
    EntityType.NODE_MAP: MapNames(
        "num_node_maps",
        "nm_prop1",
        "nmap_names",
        "nm_prop",
        "node_num_map",
        "node_map{}",
        DIM_NUM_NODES,
    ),
    EntityType.ELEM_MAP: MapNames(
        "num_elem_maps",
        "em_prop1",
        "emap_names",
        "em_prop",
        "elem_num_map",
        "elem_map{}",
        DIM_NUM_ELEM,
    ),
    EntityType.EDGE_MAP: MapNames(
        "num_edge_maps",
        "edm_prop1",
        "edmap_names",
        "edm_prop",
        "edge_num_map",
        "edge_map{}",
        DIM_NUM_EDGE,
    ),
    EntityType.FACE_MAP: MapNames(
        "num_face_maps",
        "fam_prop1",
        "famap_names",
        "fam_prop",
        "face_num_map",
        "face_map{}",
        DIM_NUM_FACE,
    ),
}

_VARIABLES = {
    EntityType.GLOBAL: VariableNames(
        "num_glo_var", "name_glo_var", None, "vals_glo_var", None, None, None
    ),
    EntityType.NODAL: VariableNames(
        "num_nod_var", "name_nod_var", None, "vals_nod_var{}", None, None, None
    ),
    EntityType.ELEM_BLOCK: VariableNames(
        "num_elem_var",
        "name_elem_var",
        "elem_var_tab",
        "vals_elem_var{}eb{}",
        "num_ele_red_var",
        "name_ele_red_var",
        "vals_elem_red_eb{}",
    ),
    EntityType.EDGE_BLOCK: VariableNames(
        "num_edge_var",
        "name_edge_var",
        "edge_var_tab",
        "vals_edge_var{}edb{}",
        "num_edg_red_var",
        "name_edg_red_var",
        "vals_edge_red_edgb{}",
    ),
    EntityType.FACE_BLOCK: VariableNames(
        "num_face_var",
        "name_face_var",
        "face_var_tab",
        "vals_face_var{}fab{}",
        "num_fac_red_var",
        "name_fac_red_var",
        "vals_face_red_facb{}",
    ),
    EntityType.NODE_SET: VariableNames(
        "num_nset_var",
        "name_nset_var",
        "nset_var_tab",
        "vals_nset_var{}ns{}",
        "num_nset_red_var",
        "name_nset_red_var",
        "vals_nset_red_ns{}",
    ),
    EntityType.EDGE_SET: VariableNames(
        "num_eset_var",
        "name_eset_var",
        "eset_var_tab",
        "vals_eset_var{}es{}",
        "num_eset_red_var",
        "name_eset_red_var",
        "vals_eset_red_es{}",
    ),
    EntityType.FACE_SET: VariableNames(
        "num_fset_var",
        "name_fset_var",
        "fset_var_tab",
        "vals_fset_var{}fs{}",
        "num_fset_red_var",
        "name_fset_red_var",
        "vals_fset_red_fs{}",
    ),
    EntityType.SIDE_SET: VariableNames(
        "num_sset_var",
        "name_sset_var",
        "sset_var_tab",
        "vals_sset_var{}ss{}",
        "num_sset_red_var",
        "name_sset_red_var",
        "vals_sset_red_ss{}",
    ),
    EntityType.ELEM_SET: VariableNames(
        "num_elset_var",
        "name_elset_var",
        "elset_var_tab",
        "vals_elset_var{}els{}",
        "num_elset_red_var",
        "name_elset_red_var",
        "vals_elset_red_els{}",
    ),
    EntityType.ASSEMBLY: VariableNames(
        None,
        None,
        None,
        None,
        "num_assembly_red_var",
        "name_assembly_red_var",
        "vals_assembly_red{}",
    ),
    EntityType.BLOB: VariableNames(
        None,
        None,
        None,
        None,
        "num_blob_red_var",
        "name_blob_red_var",
        "vals_blob_red{}",
    ),
}

# Assemblies and blobs are laid out one variable per entity.
DIM_NUM_ASSEMBLY = "num_assembly"
DIM_NUM_BLOB = "num_blob"
VAR_ASSEMBLY = "assembly{}"
DIM_ASSEMBLY_ENTRIES = "num_entity_assembly{}"
VAR_BLOB = "blob{}"
DIM_BLOB_BYTES = "num_values_blob{}"


# @@ LOOKUPS @@ #
def block_names(entity_type: EntityType) -> BlockNames:
    try:
        return _BLOCKS[entity_type]
    except KeyError:
        raise SchemaViolation(f"{entity_type} is not a block type.") from None


def set_names(entity_type: EntityType) -> SetNames:
    try:
        return _SETS[entity_type]
    except KeyError:
        raise SchemaViolation(f"{entity_type} is not a set type.") from None


def map_names(entity_type: EntityType) -> MapNames:
    try:
        return _MAPS[entity_type]
    except KeyError:
        raise SchemaViolation(f"{entity_type} is not a map type.") from None


def variable_names(entity_type: EntityType) -> VariableNames:
    try:
        return _VARIABLES[entity_type]
    except KeyError:
        raise SchemaViolation(f"{entity_type} carries no variables.") from None


def count_dim(entity_type: EntityType) -> str:
    """Name of the dimension holding the number of entities of ``entity_type``."""
    if entity_type in _BLOCKS:
        return _BLOCKS[entity_type].count_dim
    if entity_type in _SETS:
        return _SETS[entity_type].count_dim
    if entity_type in _MAPS:
        return _MAPS[entity_type].count_dim
    if entity_type is EntityType.ASSEMBLY:
        return DIM_NUM_ASSEMBLY
    if entity_type is EntityType.BLOB:
        return DIM_NUM_BLOB
    raise SchemaViolation(f"{entity_type} is not a counted entity category.")


def ids_var(entity_type: EntityType) -> Optional[str]:
    """Name of the id (``*_prop1``) variable of ``entity_type``; ``None`` for assemblies and blobs."""
    if entity_type in _BLOCKS:
        return _BLOCKS[entity_type].ids_var
    if entity_type in _SETS:
        return _SETS[entity_type].ids_var
    if entity_type in _MAPS:
        return _MAPS[entity_type].ids_var
    return None


def names_var(entity_type: EntityType) -> str:
    """Name of the ``*_names`` variable of ``entity_type``."""
    if entity_type in _BLOCKS:
        return _BLOCKS[entity_type].names_var
    if entity_type in _SETS:
        return _SETS[entity_type].names_var
    if entity_type in _MAPS:
        return _MAPS[entity_type].names_var
    raise SchemaViolation(f"{entity_type} carries no name variable.")


def property_var(entity_type: EntityType, prop_index: int) -> str:
    """Name of property variable ``prop_index`` (1 is the id property) of ``entity_type``."""
    if entity_type in _BLOCKS:
        prefix = _BLOCKS[entity_type].prop_prefix
    elif entity_type in _SETS:
        prefix = _SETS[entity_type].prop_prefix
    elif entity_type in _MAPS:
        prefix = _MAPS[entity_type].prop_prefix
    else:
        raise SchemaViolation(f"{entity_type} carries no properties.")
    return f"{prefix}{prop_index}"


def property_prefix(entity_type: EntityType) -> str:
    return property_var(entity_type, 0)[:-1]


def slot_name(template: str, slot: int) -> str:
    """Fill a one-index template with the 1-based name of storage ``slot``."""
    return template.format(slot + 1)


def values_var(entity_type: EntityType, var_index: int, slot: int = 0) -> str:
    """
    Name of the storage variable for variable ``var_index`` of entity ``slot``.

    Global variables share a single ``vals_glo_var(time_step, num_glo_var)`` array and nodal
    variables are stored one array per variable, so ``slot`` is ignored for them.
    """
    names = variable_names(entity_type)
    if names.values_var is None:
        raise SchemaViolation(f"{entity_type} has no per-entry variables.")
    if entity_type is EntityType.GLOBAL:
        return names.values_var
    if entity_type is EntityType.NODAL:
        return names.values_var.format(var_index + 1)
    return names.values_var.format(var_index + 1, slot + 1)


def reduction_values_var(entity_type: EntityType, slot: int) -> str:
    names = variable_names(entity_type)
    if names.red_values_var is None:
        raise SchemaViolation(f"{entity_type} has no reduction variables.")
    return names.red_values_var.format(slot + 1)
