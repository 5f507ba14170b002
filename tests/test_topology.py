import numpy as np
import pytest

from fvmesh.mesh import UMesh
from fvmesh.readers import MeshData
from fvmesh.topology import (
    TopologyError,
    compute_elements_surrounding_elements,
    compute_elements_surrounding_points,
    compute_face_connectivity,
    compute_points_surrounding_points,
    compute_topological,
    correct_boundary_face_orientation,
    face_eindex,
    phy_bface_neighboring_elements,
)


def _make(coords, elems, bfaces, tag=1):
    nnode = [len(e) for e in elems]
    maxn = max(nnode)
    inpoel = np.full((len(elems), maxn), -1, dtype=np.int64)
    for i, e in enumerate(elems):
        inpoel[i, : len(e)] = e
    bface = np.array([list(f) + [tag] for f in bfaces], dtype=np.int64)
    data = MeshData(
        npoin=len(coords),
        nelem=len(elems),
        nbface=len(bfaces),
        nnode=nnode,
        maxnnode=maxn,
        nfael=list(nnode),
        maxnfael=maxn,
        nnofa=2,
        nbtag=1,
        ndtag=0,
        coords=np.array(coords, dtype=float),
        inpoel=inpoel,
        bface=bface,
        vol_regions=np.zeros((len(elems), 0), dtype=np.int64),
    )
    return UMesh(data)


def two_triangles():
    coords = [(0, 0), (1, 0), (1, 1), (0, 1)]
    elems = [[0, 1, 2], [0, 2, 3]]
    bfaces = [(0, 1), (1, 2), (2, 3), (3, 0)]
    return _make(coords, elems, bfaces)


def quad_grid(nx, ny):
    def p(i, j):
        return j * (nx + 1) + i

    coords = [(i, j) for j in range(ny + 1) for i in range(nx + 1)]
    elems = [
        [p(i, j), p(i + 1, j), p(i + 1, j + 1), p(i, j + 1)]
        for j in range(ny)
        for i in range(nx)
    ]
    bfaces = []
    bfaces += [(p(i, 0), p(i + 1, 0)) for i in range(nx)]
    bfaces += [(p(nx, j), p(nx, j + 1)) for j in range(ny)]
    bfaces += [(p(i + 1, ny), p(i, ny)) for i in range(nx)]
    bfaces += [(p(0, j + 1), p(0, j)) for j in range(ny)]
    return _make(coords, elems, bfaces)


def _esup_of(mesh, point):
    return set(mesh.esup[mesh.esup_p[point] : mesh.esup_p[point + 1]].tolist())


def _psup_of(mesh, point):
    return set(mesh.psup[mesh.psup_p[point] : mesh.psup_p[point + 1]].tolist())


def test_esup_lists_elements_containing_each_point():
    m = two_triangles()
    compute_elements_surrounding_points(m)
    assert m.esup_p[-1] == sum(m.nfael)
    for ip in range(m.npoin):
        expected = {e for e in range(m.nelem) if ip in m.inpoel[e, : m.nnode[e]]}
        assert _esup_of(m, ip) == expected


def test_esuel_shared_diagonal():
    m = two_triangles()
    compute_elements_surrounding_points(m)
    compute_elements_surrounding_elements(m)
    assert m.esuel[0, 2] == 1
    assert m.esuel[1, 0] == 0
    assert np.count_nonzero(m.esuel == -1) == 4


def test_esuel_is_symmetric_on_grid():
    m = quad_grid(3, 2)
    compute_elements_surrounding_points(m)
    compute_elements_surrounding_elements(m)
    for e in range(m.nelem):
        for k in range(m.nfael[e]):
            nbr = m.esuel[e, k]
            if nbr >= 0:
                assert e in m.esuel[nbr].tolist()
    # boundary faces are the unmatched ones
    assert np.count_nonzero(m.esuel == -1) == m.nbface


def test_face_eindex_boundary():
    m = two_triangles()
    assert face_eindex(m, True, 2, 1) == 1
    assert face_eindex(m, True, 2, 0) == -1
    assert face_eindex(m, True, 0, 0) == 0


def test_face_eindex_without_face_structure_raises():
    m = two_triangles()
    with pytest.raises(TopologyError):
        face_eindex(m, False, 0, 0)


def test_phy_bface_neighbors():
    m = two_triangles()
    compute_elements_surrounding_points(m)
    result = phy_bface_neighboring_elements(m)
    assert [e for e, _ in result] == [0, 0, 1, 1]
    for iface, (elem, eindex) in enumerate(result):
        nodes = {
            m.inpoel[elem, m.node_eindex(elem, eindex, k)] for k in range(2)
        }
        assert nodes == set(m.bface[iface, :2].tolist())


def test_phy_bface_on_interior_edge_raises():
    coords = [(0, 0), (1, 0), (1, 1), (0, 1)]
    m = _make(coords, [[0, 1, 2], [0, 2, 3]], [(0, 2)])
    compute_elements_surrounding_points(m)
    with pytest.raises(TopologyError):
        phy_bface_neighboring_elements(m)


def test_face_connectivity_two_triangles():
    m = two_triangles()
    compute_topological(m)
    assert m.ninface == 1
    assert m.naface == m.nbface + m.ninface
    interior = m.intfac[m.subdom_face_start]
    assert interior[0] == 0 and interior[1] == 1
    assert set(interior[2:4].tolist()) == {0, 2}
    assert m.dom_face_end == m.naface
    assert m.conn_bface_start == m.conn_bface_end == m.naface


def test_face_connectivity_invariants_on_grid():
    m = quad_grid(3, 2)
    compute_topological(m)
    assert sum(m.nfael) == 2 * m.ninface + m.nbface
    assert m.naface == m.nbface + m.ninface
    for iface in range(m.phy_bface_start, m.phy_bface_end):
        assert m.intfac[iface, 1] == m.nelem + m.nconnface + iface
        assert m.btags[iface, 0] == 1
        assert m.intfac[iface, 2:4].tolist() == m.bface[iface, :2].tolist()
    for iface in range(m.subdom_face_start, m.subdom_face_end):
        assert m.intfac[iface, 0] < m.intfac[iface, 1] < m.nelem
    for e in range(m.nelem):
        for k in range(m.nfael[e]):
            f = m.elemface[e, k]
            assert 0 <= f < m.naface
            assert e in m.intfac[f, :2].tolist()
            assert m.esuel[e, k] >= 0


def test_interior_faces_point_towards_greater_index():
    m = quad_grid(2, 2)
    compute_topological(m)
    for iface in range(m.subdom_face_start, m.subdom_face_end):
        left, right = m.intfac[iface, :2]
        a, b = m.intfac[iface, 2:4]
        dx, dy = m.coords[b] - m.coords[a]
        normal = np.array([dy, -dx])
        cl = m.cell_centre(left)
        cr = m.cell_centre(right)
        assert np.dot(normal, cr - cl) > 0


def test_psup_single_quad_excludes_diagonal():
    coords = [(0, 0), (1, 0), (1, 1), (0, 1)]
    m = _make(coords, [[0, 1, 2, 3]], [(0, 1), (1, 2), (2, 3), (3, 0)])
    compute_elements_surrounding_points(m)
    compute_points_surrounding_points(m)
    assert _psup_of(m, 0) == {1, 3}
    assert _psup_of(m, 2) == {1, 3}


def test_psup_triangles_and_symmetry():
    m = two_triangles()
    compute_elements_surrounding_points(m)
    compute_points_surrounding_points(m)
    assert _psup_of(m, 0) == {1, 2, 3}
    for i in range(m.npoin):
        assert i not in _psup_of(m, i)
        for j in _psup_of(m, i):
            assert i in _psup_of(m, j)


def test_psup_grid_interior_point_has_four_neighbours():
    m = quad_grid(2, 2)
    compute_elements_surrounding_points(m)
    compute_points_surrounding_points(m)
    centre = 4
    assert _psup_of(m, centre) == {1, 3, 5, 7}


def test_correct_orientation_flips_reversed_face():
    m = quad_grid(2, 1)
    original = m.bface.copy()
    assert correct_boundary_face_orientation(m) is False
    m.bface[1, 0], m.bface[1, 1] = m.bface[1, 1], m.bface[1, 0]
    assert correct_boundary_face_orientation(m) is True
    assert np.array_equal(m.bface, original)


def test_topology_after_reorder_is_consistent():
    m = quad_grid(3, 2)
    m.reorder_cells(list(reversed(range(m.nelem))))
    compute_topological(m)
    assert sum(m.nfael) == 2 * m.ninface + m.nbface
    for e in range(m.nelem):
        for k in range(m.nfael[e]):
            assert e in m.intfac[m.elemface[e, k], :2].tolist()