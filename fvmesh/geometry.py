"""Geometric quantities of a 2D mesh, boundary point lists and Gmsh 2 output."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from fvmesh.mesh import UMesh
from fvmesh.readers import NDIM

logger = logging.getLogger(__name__)

# Tolerance for matching face centres of periodic boundaries
_PERIODIC_TOL = 1e-8

# Number of nodes per element -> Gmsh element type
_GMSH_ELEMENT_TYPES = {3: 2, 4: 3, 6: 9, 8: 16, 9: 10}


@dataclass(eq=False)
class BoundaryPoints:
    """Points lying on physical boundary faces.

    ``bpointsb[k]`` holds the mesh point index of boundary point k, the
    boundary face in which it is the second node and the boundary face in
    which it is the first node (-1 where there is none). ``bfacebp[f]``
    holds the boundary point numbers of the two nodes of boundary face f.
    """

    nbpoin: int
    bpointsb: np.ndarray
    bfacebp: np.ndarray


def _triangle_area(coords: np.ndarray, a: int, b: int, c: int) -> float:
    xa, ya = coords[a, 0], coords[a, 1]
    xb, yb = coords[b, 0], coords[b, 1]
    xc, yc = coords[c, 0], coords[c, 1]
    return 0.5 * (xa * (yb - yc) - ya * (xb - xc) + xb * yc - xc * yb)


def compute_areas(mesh: UMesh) -> np.ndarray:
    """Compute the signed areas of linear triangles and quadrangles.

    Cells of other kinds get zero area. The result is stored in ``mesh.area``
    and returned.
    """
    area = np.zeros(mesh.nelem)
    for i in range(mesh.nelem):
        nodes = [int(n) for n in mesh.inpoel[i, : mesh.nnode[i]]]
        if mesh.nnode[i] == 3:
            area[i] = _triangle_area(mesh.coords, nodes[0], nodes[1], nodes[2])
        elif mesh.nnode[i] == 4:
            area[i] = _triangle_area(
                mesh.coords, nodes[0], nodes[1], nodes[2]
            ) + _triangle_area(mesh.coords, nodes[0], nodes[2], nodes[3])
    mesh.area = area
    return area


def compute_face_metrics(mesh: UMesh) -> np.ndarray:
    """Compute the unit normal and the length of each face of the face structure.

    For a face from node 1 to node 2 the normal is (y2 - y1, -(x2 - x1)),
    normalized. Requires the face structure; stored in ``mesh.facemetric``.
    """
    n0 = mesh.intfac[: mesh.naface, 2]
    n1 = mesh.intfac[: mesh.naface, 3]
    nx = mesh.coords[n1, 1] - mesh.coords[n0, 1]
    ny = -(mesh.coords[n1, 0] - mesh.coords[n0, 0])
    length = np.hypot(nx, ny)
    metric = np.column_stack((nx / length, ny / length, length))
    mesh.facemetric = metric.reshape(mesh.naface, 3)
    return mesh.facemetric


def cell_centres(mesh: UMesh) -> np.ndarray:
    """Centres of all cells of the subdomain, as an nelem x 2 array."""
    centres = np.zeros((mesh.nelem, NDIM))
    for i in range(mesh.nelem):
        centres[i] = mesh.cell_centre(i)
    return centres


def compute_periodic_map(mesh: UMesh, marker: int, axis: int) -> list[int]:
    """Pair the faces of the periodic boundaries carrying ``marker``.

    ``axis`` is the coordinate (0 for x, 1 for y) along which the geometry is
    periodic. Faces are paired when their centres agree in the other
    coordinate; the ghost cell of each face is then set to the interior cell
    of its partner. Returns, for each physical boundary face, the index of
    its partner or -1. Requires the face structure.
    """
    periodicmap = [-1] * mesh.nbface
    if marker < 0:
        logger.info("No periodic boundary specified.")
        return periodicmap
    if axis < 0:
        logger.info("No periodic axis specified.")
        return periodicmap
    if axis >= NDIM:
        raise ValueError(f"Invalid periodic axis {axis}")

    ax = 1 - axis
    start = mesh.phy_bface_start

    def centre(face: int) -> float:
        return (
            mesh.coords[mesh.intfac[face, 2], ax] + mesh.coords[mesh.intfac[face, 3], ax]
        ) / 2.0

    for iface in range(mesh.nbface):
        if mesh.btags[iface, 0] != marker or periodicmap[iface] > -1:
            continue
        ifacface = start + iface
        ci = centre(ifacface)
        for jface in range(iface + 1, mesh.nbface):
            if mesh.btags[jface, 0] != marker:
                continue
            jfacface = start + jface
            if abs(ci - centre(jfacface)) <= _PERIODIC_TOL:
                periodicmap[iface] = jface
                periodicmap[jface] = iface
                mesh.intfac[ifacface, 1] = mesh.intfac[jfacface, 0]
                mesh.intfac[jfacface, 1] = mesh.intfac[ifacface, 0]
                break
    return periodicmap


def compute_boundary_points(mesh: UMesh) -> BoundaryPoints:
    """Number the boundary points and relate them to the boundary faces.

    Only for linear meshes. Also sets ``mesh.nbpoin``.
    """
    boundary_nodes = {int(n) for n in mesh.bface[: mesh.nbface, : mesh.nnofa].ravel()}
    nbpoin = len(boundary_nodes)
    mesh.nbpoin = nbpoin
    logger.info("compute_boundary_points: no. of boundary points = %d", nbpoin)

    bpointsb = np.full((nbpoin, 3), -1, dtype=np.int64)
    bfacebp = np.zeros((mesh.nbface, mesh.nnofa), dtype=np.int64)
    numbering: dict[int, int] = {}

    for iface in range(mesh.nbface):
        for local, column in ((0, 2), (1, 1)):
            point = int(mesh.bface[iface, local])
            bp = numbering.get(point)
            if bp is None:
                bp = len(numbering)
                numbering[point] = bp
                bpointsb[bp, 0] = point
            bpointsb[bp, column] = iface
            bfacebp[iface, local] = bp

    return BoundaryPoints(nbpoin=nbpoin, bpointsb=bpointsb, bfacebp=bfacebp)


def _num(value) -> str:
    return repr(float(value))


def write_gmsh2(mesh: UMesh, path) -> None:
    """Write the mesh in the Gmsh 2.2 ASCII format.

    Boundary faces are written first, then elements; every entity gets at
    least two tags.
    """
    logger.info("writeGmsh2: writing mesh to file %s", path)
    face_type = 8 if mesh.nnofa == 3 else 1
    default_tag = 1
    nbtagout = max(mesh.nbtag, 2)
    ndtagout = max(mesh.ndtag, 2)

    out: list[str] = ["$MeshFormat", "2.2 0 8", "$EndMeshFormat", "$Nodes", str(mesh.npoin)]
    for ip in range(mesh.npoin):
        fields = [str(ip + 1)]
        fields.extend(_num(mesh.coords[ip, j]) for j in range(NDIM))
        fields.extend(_num(0.0) for _ in range(3 - NDIM))
        out.append(" ".join(fields))
    out.append("$EndNodes")

    out.append("$Elements")
    out.append(str(mesh.nelem + mesh.nbface))
    for iface in range(mesh.nbface):
        fields = [str(iface + 1), str(face_type), str(nbtagout)]
        tags = [int(t) for t in mesh.bface[iface, mesh.nnofa : mesh.nnofa + mesh.nbtag]]
        fields.extend(str(t) for t in tags)
        extra = default_tag if mesh.nbtag == 0 else default_tag + tags[-1]
        fields.extend(str(extra) for _ in range(nbtagout - mesh.nbtag))
        fields.extend(str(int(n) + 1) for n in mesh.bface[iface, : mesh.nnofa])
        out.append(" ".join(fields))

    elm_type = 2
    for iel in range(mesh.nelem):
        elm_type = _GMSH_ELEMENT_TYPES.get(mesh.nnode[iel], elm_type)
        fields = [str(mesh.nbface + iel + 1), str(elm_type), str(ndtagout)]
        tags = [int(t) for t in mesh.vol_regions[iel, : mesh.ndtag]]
        fields.extend(str(t) for t in tags)
        extra = default_tag if mesh.ndtag == 0 else default_tag + tags[-1]
        fields.extend(str(extra) for _ in range(ndtagout - mesh.ndtag))
        fields.extend(str(int(n) + 1) for n in mesh.inpoel[iel, : mesh.nnode[iel]])
        out.append(" ".join(fields))
    out.append("$EndElements")

    Path(path).write_text("\n".join(out) + "\n")