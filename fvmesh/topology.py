"""Topological connectivity structures of a 2D unstructured mesh.

All routines work on a :class:`fvmesh.mesh.UMesh` in place, filling its
elements-surrounding-points, elements-surrounding-elements, face and
points-surrounding-points structures.
"""

from __future__ import annotations

import logging

import numpy as np

from fvmesh.mesh import UMesh

logger = logging.getLogger(__name__)

# Number of vertices of a face; only 2D meshes are supported.
_NVERFA = 2


class TopologyError(ValueError):
    """Raised when the mesh connectivity is inconsistent."""


def _elements_around(mesh: UMesh, point: int) -> list[int]:
    return [int(e) for e in mesh.esup[mesh.esup_p[point] : mesh.esup_p[point + 1]]]


def compute_elements_surrounding_points(mesh: UMesh) -> None:
    """Compute the lists of elements surrounding each point (esup, esup_p)."""
    buckets: list[list[int]] = [[] for _ in range(mesh.npoin)]
    for ielem in range(mesh.nelem):
        for j in range(mesh.nfael[ielem]):
            buckets[int(mesh.inpoel[ielem, j])].append(ielem)

    esup_p = np.zeros(mesh.npoin + 1, dtype=np.int64)
    esup_p[1:] = np.cumsum([len(b) for b in buckets], dtype=np.int64)
    mesh.esup_p = esup_p
    mesh.esup = np.array(
        [e for bucket in buckets for e in bucket], dtype=np.int64
    )


def compute_elements_surrounding_elements(mesh: UMesh) -> None:
    """Compute the element adjacent to each face of each element (esuel).

    Requires the elements surrounding points to be available. Faces without a
    neighbouring element in the mesh are marked -1.
    """
    esuel = np.full((mesh.nelem, mesh.maxnfael), -1, dtype=np.int64)
    inpoel = mesh.inpoel

    for ielem in range(mesh.nelem):
        nn = mesh.nnode[ielem]
        for ifael in range(mesh.nfael[ielem]):
            face_points = [
                int(inpoel[ielem, (ifael + j) % nn]) for j in range(_NVERFA)
            ]
            face_set = set(face_points)
            for jelem in _elements_around(mesh, face_points[0]):
                if jelem == ielem:
                    continue
                nfj = mesh.nfael[jelem]
                for jfael in range(nfj):
                    jpoints = [
                        int(inpoel[jelem, (jfael + j) % nfj]) for j in range(_NVERFA)
                    ]
                    if sum(p in face_set for p in jpoints) == _NVERFA:
                        esuel[ielem, ifael] = jelem
                        esuel[jelem, jfael] = ielem

    mesh.esuel = esuel


def face_eindex(mesh: UMesh, phyboundary: bool, iface: int, elem: int) -> int:
    """Index of a face within an element, or -1 if the element does not contain it.

    If ``phyboundary`` is true, ``iface`` is a physical boundary face index
    (into bface); otherwise it is an index into the face structure intfac.
    """
    if not phyboundary and mesh.intfac.shape[0] == 0:
        raise TopologyError("Face structure is not available")

    if phyboundary:
        face_nodes = {int(n) for n in mesh.bface[iface, : mesh.nnofa]}
    else:
        face_nodes = {int(n) for n in mesh.intfac[iface, 2 : 2 + mesh.nnofa]}

    for ifael in range(mesh.nfael[elem]):
        if all(
            int(mesh.inpoel[elem, mesh.node_eindex(elem, ifael, inofa)]) in face_nodes
            for inofa in range(mesh.nnofa)
        ):
            return ifael
    return -1


def phy_bface_neighboring_elements(mesh: UMesh) -> list[tuple[int, int]]:
    """For each physical boundary face, its interior element and the face's index in it.

    Requires the elements surrounding points to be available.
    """
    result: list[tuple[int, int]] = []
    for iface in range(mesh.nbface):
        common: set[int] | None = None
        for j in range(mesh.nnofa):
            around = set(_elements_around(mesh, int(mesh.bface[iface, j])))
            common = around if common is None else common & around
        candidates = sorted(common or ())

        if len(candidates) > 1:
            raise TopologyError(
                f"More than one neighboring element found for bface {iface}"
            )
        if not candidates:
            raise TopologyError(f"No neighboring element found for bface {iface}")

        elem = candidates[0]
        eindex = face_eindex(mesh, True, iface, elem)
        if eindex < 0:
            raise TopologyError(
                f"Boundary face {iface} is not a face of element {elem}"
            )
        result.append((elem, eindex))
    return result


def compute_face_connectivity(mesh: UMesh) -> None:
    """Build the face structure intfac along with elemface and btags.

    Physical boundary faces come first, then interior subdomain faces, then
    connectivity faces. Afterwards esuel holds ghost-cell indices for
    boundary faces instead of -1.
    """
    nelem = mesh.nelem
    nbface = mesh.nbface
    nconnface = mesh.nconnface
    nnofa = mesh.nnofa
    esuel = mesh.esuel

    ninface = 0
    for ie in range(nelem):
        for j in range(mesh.nfael[ie]):
            je = int(esuel[ie, j])
            if ie < je < nelem:
                ninface += 1

    mesh.ninface = ninface
    mesh.naface = ninface + nbface + nconnface
    logger.info("compute_face_connectivity: total number of faces = %d", mesh.naface)

    intfac = np.zeros((mesh.naface, nnofa + 2), dtype=np.int64)
    elemface = np.full((nelem, mesh.maxnfael), -1, dtype=np.int64)
    btags = np.zeros((nbface, mesh.nbtag), dtype=np.int64)

    # Physical boundary faces
    mesh.phy_bface_start = 0
    mesh.phy_bface_end = nbface
    for iface, (elem, eindex) in enumerate(phy_bface_neighboring_elements(mesh)):
        ghost = nelem + nconnface + iface
        intfac[iface, 0] = elem
        intfac[iface, 1] = ghost
        intfac[iface, 2 : 2 + nnofa] = mesh.bface[iface, :nnofa]
        btags[iface, :] = mesh.bface[iface, nnofa : nnofa + mesh.nbtag]
        esuel[elem, eindex] = ghost
        elemface[elem, eindex] = iface

    # Interior faces of the subdomain
    mesh.subdom_face_start = nbface
    mesh.subdom_face_end = nbface + ninface
    faceindex = nbface
    for ie in range(nelem):
        nn = mesh.nnode[ie]
        for k in range(nn):
            je = int(esuel[ie, k])
            if not ie < je < nelem:
                continue
            k1 = (k + 1) % nn
            intfac[faceindex, 0] = ie
            intfac[faceindex, 1] = je
            intfac[faceindex, 2] = mesh.inpoel[ie, k]
            intfac[faceindex, 3] = mesh.inpoel[ie, k1]
            elemface[ie, k] = faceindex
            for jnode in range(mesh.nnode[je]):
                if mesh.inpoel[ie, k1] == mesh.inpoel[je, jnode]:
                    elemface[je, jnode] = faceindex
            faceindex += 1

    if faceindex - nbface != ninface:
        raise TopologyError("Inconsistent count of interior faces")

    # Connectivity faces with other subdomains
    mesh.conn_bface_start = nbface + ninface
    mesh.conn_bface_end = nbface + ninface + nconnface
    for iface in range(mesh.conn_bface_start, mesh.conn_bface_end):
        icface = iface - mesh.conn_bface_start
        inelem = int(mesh.connface[icface, 0])
        ceindex = int(mesh.connface[icface, 1])
        intfac[iface, 0] = inelem
        intfac[iface, 1] = nelem + icface
        esuel[inelem, ceindex] = nelem + icface
        elemface[inelem, ceindex] = iface
        for inode in range(nnofa):
            intfac[iface, 2 + inode] = mesh.inpoel[
                inelem, mesh.node_eindex(inelem, ceindex, inode)
            ]

    mesh.dom_face_start = nbface
    mesh.dom_face_end = nbface + nconnface + ninface

    mesh.intfac = intfac
    mesh.elemface = elemface
    mesh.btags = btags


def compute_points_surrounding_points(mesh: UMesh) -> None:
    """Compute the lists of points connected to each point by an edge (psup, psup_p).

    In triangles every node is connected to every other; in quadrangles only
    to the two adjacent nodes. Other element types contribute nothing.
    """
    lists: list[list[int]] = []
    for ip in range(mesh.npoin):
        seen = {ip}
        nbrs: list[int] = []
        for ielem in _elements_around(mesh, ip):
            nn = mesh.nnode[ielem]
            nodes = [int(mesh.inpoel[ielem, j]) for j in range(nn)]
            inode = max((j for j, p in enumerate(nodes) if p == ip), default=-1)

            if nn == 3:
                connected = [True] * nn
            elif nn == 4:
                connected = [
                    j == (inode + 1) % nn or j == (inode + nn - 1) % nn
                    for j in range(nn)
                ]
            else:
                connected = [False] * nn

            for jpoin, conn in zip(nodes, connected):
                if conn and jpoin not in seen:
                    seen.add(jpoin)
                    nbrs.append(jpoin)
        lists.append(nbrs)

    psup_p = np.zeros(mesh.npoin + 1, dtype=np.int64)
    psup_p[1:] = np.cumsum([len(n) for n in lists], dtype=np.int64)
    mesh.psup_p = psup_p
    mesh.psup = np.array([p for nbrs in lists for p in nbrs], dtype=np.int64)


def compute_topological(mesh: UMesh) -> None:
    """Compute elements surrounding points and elements, and the face structure."""
    compute_elements_surrounding_points(mesh)
    compute_elements_surrounding_elements(mesh)
    compute_face_connectivity(mesh)


def correct_boundary_face_orientation(mesh: UMesh) -> bool:
    """Reverse boundary faces whose node order disagrees with their interior element.

    Returns True if any face was reversed.
    """
    compute_elements_surrounding_points(mesh)
    flipped = False
    for iface, (helem, eface) in enumerate(phy_bface_neighboring_elements(mesh)):
        first = mesh.inpoel[helem, mesh.node_eindex(helem, eface, 0)]
        second = mesh.inpoel[helem, mesh.node_eindex(helem, eface, 1)]
        if first != mesh.bface[iface, 0] or second != mesh.bface[iface, 1]:
            mesh.bface[iface, 0], mesh.bface[iface, 1] = (
                mesh.bface[iface, 1],
                mesh.bface[iface, 0],
            )
            flipped = True
    if flipped:
        logger.info("Some boundary faces were inverted for consistency.")
    return flipped