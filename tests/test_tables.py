import pytest

from MarchingMetaballs.tables import (
    CORNER_OFFSETS,
    CORNER_WEIGHTS,
    CUBE_EDGES,
    EDGE_TABLE,
    MAX_TRIANGLES,
    NUM_TRIANGLES_TABLE,
    TRI_TABLE,
)


def test_table_sizes():
    assert len(EDGE_TABLE) == 256
    assert len(TRI_TABLE) == 256
    assert len(NUM_TRIANGLES_TABLE) == 256
    assert len(CORNER_OFFSETS) == 8
    assert len(CUBE_EDGES) == 12
    assert CORNER_WEIGHTS == tuple(2**i for i in range(8))


def test_edges_connect_neighbouring_corners():
    for v0, v1 in CUBE_EDGES:
        differing_axes = [
            a != b for a, b in zip(CORNER_OFFSETS[v0], CORNER_OFFSETS[v1])
        ]
        assert sum(differing_axes) == 1, (v0, v1)


def test_triangle_edges_match_edge_masks():
    for cube_index in range(256):
        row = TRI_TABLE[cube_index]
        assert len(row) <= MAX_TRIANGLES
        assert NUM_TRIANGLES_TABLE[cube_index] == len(row)
        used_edges = {edge for triangle in row for edge in triangle}
        assert all(0 <= edge < 12 for edge in used_edges)
        mask_edges = {e for e in range(12) if EDGE_TABLE[cube_index] & (1 << e)}
        assert used_edges == mask_edges, cube_index


def test_uniform_sign_rows_are_empty():
    assert EDGE_TABLE[0] == 0 and EDGE_TABLE[255] == 0
    assert TRI_TABLE[0] == () and TRI_TABLE[255] == ()


def test_complementary_cases_cross_the_same_edges():
    for cube_index in range(256):
        assert EDGE_TABLE[cube_index] == EDGE_TABLE[255 - cube_index]


@pytest.mark.parametrize("corner", range(8))
def test_single_corner_case_cuts_off_that_corner(corner):
    row = TRI_TABLE[CORNER_WEIGHTS[corner]]
    assert len(row) == 1
    incident_edges = {e for e, pair in enumerate(CUBE_EDGES) if corner in pair}
    assert set(row[0]) == incident_edges
