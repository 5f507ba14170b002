import numpy as np
import pytest

from fvmesh.mesh import UMesh
from fvmesh.readers import MeshData


def _square_data() -> MeshData:
    """Unit square split into a triangle pair plus one quad to its right."""
    coords = np.array(
        [[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [2.0, 0.0], [2.0, 1.0]]
    )
    inpoel = np.array([[0, 1, 2, -1], [0, 2, 3, -1], [1, 4, 5, 2]], dtype=np.int64)
    bface = np.array(
        [[0, 1, 7], [1, 4, 7], [4, 5, 8], [5, 2, 7], [2, 3, 7], [3, 0, 9]],
        dtype=np.int64,
    )
    return MeshData(
        npoin=6,
        nelem=3,
        nbface=6,
        nnode=[3, 3, 4],
        maxnnode=4,
        nfael=[3, 3, 4],
        maxnfael=4,
        nnofa=2,
        nbtag=1,
        ndtag=0,
        coords=coords,
        inpoel=inpoel,
        bface=bface,
        vol_regions=np.zeros((3, 0), dtype=np.int64),
    )


def test_init_copies_sizes_from_data():
    data = _square_data()
    m = UMesh(data)
    assert m.npoin == data.npoin
    assert m.nelem == data.nelem
    assert m.nbface == data.nbface
    assert m.npoinglobal == data.npoin
    assert m.nelemglobal == data.nelem
    assert m.nnode == data.nnode
    assert m.nconnface == 0
    assert np.array_equal(m.inpoel, data.inpoel)


def test_init_does_not_share_arrays_with_data():
    data = _square_data()
    m = UMesh(data)
    m.coords[0, 0] = 42.0
    m.inpoel[0, 0] = 5
    assert data.coords[0, 0] != m.coords[0, 0]
    assert data.inpoel[0, 0] != m.inpoel[0, 0]


def test_from_data_matches_constructor():
    data = _square_data()
    a = UMesh.from_data(data)
    b = UMesh(data)
    assert a.nelem == b.nelem
    assert np.array_equal(a.coords, b.coords)
    assert np.array_equal(a.bface, b.bface)


def test_empty_mesh():
    m = UMesh()
    assert m.nelem == 0
    assert m.npoin == 0
    assert m.connectivity_global_indices() == []


def test_node_eindex_first_node_is_face_index():
    m = UMesh(_square_data())
    for iel in range(m.nelem):
        for iface in range(m.nfael[iel]):
            assert m.node_eindex(iel, iface, 0) == iface


def test_node_eindex_wraps_around():
    m = UMesh(_square_data())
    for iel in range(m.nelem):
        last = m.nnode[iel] - 1
        assert m.node_eindex(iel, last, 1) == 0


def test_cell_centre_of_triangle():
    data = MeshData(
        npoin=3,
        nelem=1,
        nnode=[3],
        nfael=[3],
        maxnnode=3,
        maxnfael=3,
        coords=np.array([[0.0, 0.0], [3.0, 0.0], [0.0, 3.0]]),
        inpoel=np.array([[0, 1, 2]], dtype=np.int64),
    )
    m = UMesh(data)
    assert np.allclose(m.cell_centre(0), [1.0, 1.0])


def test_cell_centre_ignores_padding_nodes():
    m = UMesh(_square_data())
    centre = m.cell_centre(2)
    assert np.allclose(centre, [1.5, 0.5])
    assert centre.shape == (2,)


def test_reorder_cells_permutes_connectivity():
    data = _square_data()
    m = UMesh(data)
    perm = [2, 0, 1]
    m.reorder_cells(perm)
    for new, old in enumerate(perm):
        assert np.array_equal(m.inpoel[new], data.inpoel[old])
        assert m.nnode[new] == data.nnode[old]
        assert m.nfael[new] == data.nfael[old]


def test_reorder_cells_round_trip():
    data = _square_data()
    m = UMesh(data)
    perm = np.array([1, 2, 0])
    m.reorder_cells(perm)
    m.reorder_cells(np.argsort(perm))
    assert np.array_equal(m.inpoel, data.inpoel)
    assert m.nnode == data.nnode
    assert m.nfael == data.nfael


def test_reorder_cells_rejects_wrong_length():
    m = UMesh(_square_data())
    with pytest.raises(ValueError):
        m.reorder_cells([0, 1])


def test_reorder_cells_rejects_non_permutation():
    m = UMesh(_square_data())
    with pytest.raises(ValueError):
        m.reorder_cells([0, 0, 1])


def test_connectivity_global_indices_reads_fourth_column():
    m = UMesh(_square_data())
    m.nconnface = 2
    m.connface = np.array([[0, 1, 1, 11, 4], [2, 3, 1, 17, 6]], dtype=np.int64)
    assert m.connectivity_global_indices() == [11, 17]


def test_stats_mentions_sizes():
    m = UMesh(_square_data())
    text = m.stats()
    assert text.startswith("UMesh: No. of points: 6")
    assert f"no. of elements: {m.nelem}" in text
    assert f"no. of boundary faces {m.nbface}" in text