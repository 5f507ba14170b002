"""Cell orderings built from lines of strongly coupled cells.

A line is a chain of cells that starts at a physical boundary and follows the
strongest local coupling, measured by the inverse distance between cell
centres. Cells in lines can be ordered consecutively. The hybrid ordering
also reorders a graph whose vertices are lines and the cells outside lines.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import scipy.sparse as sp
from scipy.sparse.csgraph import reverse_cuthill_mckee

from fvmesh.mesh import UMesh

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class LocalAnisotropies:
    """Coupling weights about each cell, sorted by decreasing weight.

    ``aniso[i, j]`` is the j-th largest neighbour weight of cell i divided by
    the smallest neighbour weight of that cell; ``face_idx[i, j]`` is the
    local face index of that neighbour. Unused entries hold 0 and -1.
    """

    aniso: np.ndarray
    face_idx: np.ndarray
    n_real_nbrs: list[int]


@dataclass(eq=False)
class LineConfig:
    """Lines found in a mesh."""

    lines: list[list[int]] = field(default_factory=list)
    """Cell indices making up each line."""
    celline: list[int] = field(default_factory=list)
    """For each cell, the index of its line, or -1 if it is in no line."""


@dataclass(frozen=True)
class GraphVertex:
    """A vertex of the line-point graph: a line or a point (a cell in no line)."""

    isline: bool
    idx: int


@dataclass(eq=False)
class GraphVertices:
    """Vertices of the line-point graph, lines first, then points."""

    gverts: list[GraphVertex]
    point_list: list[int]
    """Cell index of each point."""
    cells_to_pts_map: list[int]
    """For each cell, its point index, or -1 if the cell is in a line."""
    lines: LineConfig


def _real_neighbour(mesh: UMesh, ielem: int, jface: int) -> int | None:
    jel = int(mesh.esuel[ielem, jface])
    if jel < 0 or jel >= mesh.nelem:
        return None
    return jel


def compute_weights(mesh: UMesh) -> LocalAnisotropies:
    """Compute the normalized coupling weights about each cell.

    Requires elements surrounding elements to be available. Neighbours across
    boundary faces are skipped.
    """
    nelem = mesh.nelem
    aniso = np.zeros((nelem, mesh.maxnfael))
    face_idx = np.full((nelem, mesh.maxnfael), -1, dtype=np.int64)
    n_real = [0] * nelem

    centres = [mesh.cell_centre(iel) for iel in range(nelem)]

    for iel in range(nelem):
        weights: list[tuple[float, int]] = []
        for j in range(mesh.nfael[iel]):
            jel = _real_neighbour(mesh, iel, j)
            if jel is None:
                continue
            dist = float(np.sqrt(np.sum((centres[iel] - centres[jel]) ** 2)))
            weights.append((1.0 / dist, j))

        if weights:
            minw = min(w for w, _ in weights)
            weights = [(w / minw, j) for w, j in weights]
        weights.sort(key=lambda item: item[0], reverse=True)

        n_real[iel] = len(weights)
        for k, (w, j) in enumerate(weights):
            aniso[iel, k] = w
            face_idx[iel, k] = j

    return LocalAnisotropies(aniso=aniso, face_idx=face_idx, n_real_nbrs=n_real)


def find_lines(mesh: UMesh, threshold: float) -> LineConfig:
    """Find lines of cells whose local anisotropy exceeds ``threshold``.

    A line is attempted from the interior cell of each physical boundary face.
    Requires the face structure of the mesh to be available.
    """
    la = compute_weights(mesh)
    lc = LineConfig(lines=[], celline=[-1] * mesh.nelem)

    for iface in range(mesh.phy_bface_start, mesh.phy_bface_end):
        belem = int(mesh.intfac[iface, 0])
        if lc.celline[belem] >= 0:
            logger.debug("find_lines: a boundary cell is already part of a line")
            continue

        linelems: list[int] = []
        curelem = belem
        while True:
            if la.aniso[curelem, 0] <= threshold:
                break
            linelems.append(curelem)
            lc.celline[curelem] = len(lc.lines)

            nextelem = None
            for j in range(la.n_real_nbrs[curelem]):
                nbr = int(mesh.esuel[curelem, la.face_idx[curelem, j]])
                if lc.celline[nbr] == -1 and la.aniso[curelem, j] > threshold:
                    nextelem = nbr
                    break
            if nextelem is None:
                break
            curelem = nextelem

        if len(linelems) > 1:
            lc.lines.append(linelems)
        elif len(linelems) == 1:
            lc.celline[linelems[0]] = -1

    logger.info("find_lines: found %d lines", len(lc.lines))
    return lc


def line_ordering(mesh: UMesh, threshold: float) -> list[int]:
    """Cell ordering with the cells of each line first, then the remaining cells."""
    lc = find_lines(mesh, threshold)
    ordering = [cell for line in lc.lines for cell in line]
    ordering.extend(iel for iel, line in enumerate(lc.celline) if line == -1)
    return ordering


def line_reorder(mesh: UMesh, threshold: float) -> None:
    """Reorder the mesh cells so that the cells of each line are consecutive."""
    mesh.reorder_cells(line_ordering(mesh, threshold))


def create_line_point_graph_vertices(mesh: UMesh, lines: LineConfig) -> GraphVertices:
    """Create the list of line and point vertices from the line configuration."""
    if len(lines.celline) != mesh.nelem:
        raise ValueError("Line configuration does not match the mesh")

    point_list: list[int] = []
    cells_to_pts = [-1] * mesh.nelem
    for cell, line in enumerate(lines.celline):
        if line == -1:
            cells_to_pts[cell] = len(point_list)
            point_list.append(cell)

    gverts = [GraphVertex(True, i) for i in range(len(lines.lines))]
    gverts.extend(GraphVertex(False, i) for i in range(len(point_list)))
    return GraphVertices(
        gverts=gverts,
        point_list=point_list,
        cells_to_pts_map=cells_to_pts,
        lines=lines,
    )


def create_line_point_graph(mesh: UMesh, vertices: GraphVertices) -> sp.csr_matrix:
    """Adjacency matrix (with unit diagonal) of the graph of lines and points."""
    lc = vertices.lines
    nlines = len(lc.lines)
    npoints = len(vertices.point_list)

    def vertex_of(cell: int) -> int:
        if lc.celline[cell] >= 0:
            return lc.celline[cell]
        ipoin = vertices.cells_to_pts_map[cell]
        if ipoin < 0:
            raise ValueError(f"Cell {cell} is neither in a line nor a point")
        return ipoin + nlines

    entries: set[tuple[int, int]] = set()

    for iline, line in enumerate(lc.lines):
        entries.add((iline, iline))
        for cell in line:
            for j in range(mesh.nfael[cell]):
                nbr = _real_neighbour(mesh, cell, j)
                if nbr is not None:
                    entries.add((iline, vertex_of(nbr)))

    for ipoin, cell in enumerate(vertices.point_list):
        ipdx = ipoin + nlines
        entries.add((ipdx, ipdx))
        for j in range(mesh.nfael[cell]):
            nbr = _real_neighbour(mesh, cell, j)
            if nbr is not None:
                entries.add((ipdx, vertex_of(nbr)))

    n = nlines + npoints
    if entries:
        rows, cols = zip(*sorted(entries))
    else:
        rows, cols = (), ()
    data = np.ones(len(rows))
    return sp.csr_matrix(
        (data, (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))),
        shape=(n, n),
    )


def graph_ordering(graph, ordering: str) -> list[int]:
    """Compute an ordering of the vertices of a square sparse graph.

    Supported orderings are 'natural', 'rcm' (reverse Cuthill-McKee) and
    'rowlength' (increasing number of nonzeros per row). Entry i of the
    result is the old index of the vertex placed at position i.
    """
    matrix = sp.csr_matrix(graph)
    rows, cols = matrix.shape
    if rows != cols:
        raise ValueError("Graph matrix must be square")

    if ordering == "natural":
        logger.info("No further reordering of the graph to be done.")
        return list(range(rows))

    logger.info("Further reordering the graph in %s ordering.", ordering)
    if ordering == "rcm":
        perm = reverse_cuthill_mckee(matrix, symmetric_mode=True)
        return [int(p) for p in perm]
    if ordering == "rowlength":
        lengths = np.diff(matrix.indptr)
        return [int(p) for p in np.argsort(lengths, kind="stable")]
    raise ValueError(f"Unknown ordering {ordering!r}")


def hybrid_line_ordering(mesh: UMesh, threshold: float, ordering: str) -> list[int]:
    """Cell ordering from reordering the graph of lines and points.

    Cells within a line stay consecutive and in line order.
    """
    lc = find_lines(mesh, threshold)
    gv = create_line_point_graph_vertices(mesh, lc)
    graph = create_line_point_graph(mesh, gv)
    grordering = graph_ordering(graph, ordering)
    if len(grordering) != len(gv.gverts):
        raise ValueError("Graph ordering has the wrong size")

    cellordering: list[int] = []
    for gidx in grordering:
        vertex = gv.gverts[gidx]
        if vertex.isline:
            cellordering.extend(lc.lines[vertex.idx])
        else:
            cellordering.append(gv.point_list[vertex.idx])

    if len(cellordering) != mesh.nelem:
        raise ValueError("Hybrid ordering does not cover all cells")
    return cellordering


def hybrid_line_reorder(mesh: UMesh, threshold: float, ordering: str) -> None:
    """Reorder the mesh cells by the hybrid line-point ordering."""
    mesh.reorder_cells(hybrid_line_ordering(mesh, threshold, ordering))