"""Readers for 2D unstructured mesh files in the Gmsh 2 and SU2 formats."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, TypeVar

import numpy as np

NDIM = 2

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Gmsh element type -> (nodes per element, faces per element, nodes per face)
_GMSH_ELEMENTS = {
    2: (3, 3, 2),   # linear triangle
    3: (4, 4, 2),   # linear quadrangle
    9: (6, 3, 3),   # quadratic triangle
    16: (8, 4, 3),  # quadratic quadrangle, 8 nodes
    10: (9, 4, 3),  # quadratic quadrangle, 9 nodes
}

# Gmsh face (edge) type -> nodes per face
_GMSH_FACES = {
    1: 2,  # linear edge
    8: 3,  # quadratic edge
}

# SU2 element type -> (nodes per element, faces per element)
_SU2_ELEMENTS = {
    5: (3, 3),  # triangle
    9: (4, 4),  # quadrangle
}

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class MeshReadError(ValueError):
    """Raised when a mesh file is malformed or ends early."""


@dataclass(eq=False)
class MeshData:
    """Raw data read from a mesh file. Node indices are zero-based."""

    npoin: int = 0
    nelem: int = 0
    nbface: int = 0
    nnode: list[int] = field(default_factory=list)
    maxnnode: int = 0
    nfael: list[int] = field(default_factory=list)
    maxnfael: int = 0
    nnofa: int = 2
    nbtag: int = 0
    ndtag: int = 0
    coords: np.ndarray = field(default_factory=lambda: np.zeros((0, NDIM)))
    inpoel: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.int64))
    bface: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.int64))
    vol_regions: np.ndarray = field(
        default_factory=lambda: np.zeros((0, 0), dtype=np.int64)
    )


def read_mesh(path) -> MeshData:
    """Read a mesh, choosing SU2 for a '.su2' extension and Gmsh 2 otherwise."""
    if str(path).split(".")[-1] == "su2":
        return read_su2(path)
    return read_gmsh2(path)


def _take(tokens: Iterator[str], convert: Callable[[str], T], what: str) -> T:
    try:
        token = next(tokens)
    except StopIteration:
        raise MeshReadError(f"Unexpected end of file while reading {what}") from None
    try:
        return convert(token)
    except ValueError:
        raise MeshReadError(f"Invalid {what}: {token!r}") from None


def read_gmsh2(path) -> MeshData:
    """Read a mesh in the Gmsh 2.x ASCII format."""
    text = Path(path).read_text()
    lines = text.split("\n")
    if len(lines) < 5:
        raise MeshReadError("Gmsh file is too short")
    tokens = iter("\n".join(lines[4:]).split())

    m = MeshData()
    m.npoin = _take(tokens, int, "number of points")
    m.coords = np.zeros((m.npoin, NDIM))
    for ip in range(m.npoin):
        _take(tokens, int, "point index")
        for j in range(NDIM):
            m.coords[ip, j] = _take(tokens, float, "coordinate")
        for _ in range(3 - NDIM):
            _take(tokens, float, "coordinate")
    _take(tokens, str, "end of nodes marker")
    _take(tokens, str, "elements marker")

    nelm = _take(tokens, int, "number of elements")
    faces: list[tuple[list[int], list[int]]] = []
    elements: list[tuple[int, int, list[int], list[int]]] = []
    nnofa = 2
    for _ in range(nelm):
        _take(tokens, int, "element index")
        elmtype = _take(tokens, int, "element type")
        ntags = _take(tokens, int, "number of tags")
        tags = [_take(tokens, int, "tag") for _ in range(ntags)]
        if elmtype in _GMSH_FACES:
            nnofa = _GMSH_FACES[elmtype]
            nodes = [_take(tokens, int, "node index") for _ in range(nnofa)]
            faces.append((tags, nodes))
            continue
        if elmtype not in _GMSH_ELEMENTS:
            logger.warning(
                "readGmsh2: element type %d not recognized; setting as linear triangle",
                elmtype,
            )
        nn, nf, nnofa = _GMSH_ELEMENTS.get(elmtype, (3, 3, 2))
        nodes = [_take(tokens, int, "node index") for _ in range(nn)]
        elements.append((nn, nf, tags, nodes))

    m.nnofa = nnofa
    m.nbface = len(faces)
    m.nelem = len(elements)
    m.nbtag = max((len(tags) for tags, _ in faces), default=0)
    m.ndtag = max((len(tags) for _, _, tags, _ in elements), default=0)
    m.nnode = [nn for nn, _, _, _ in elements]
    m.nfael = [nf for _, nf, _, _ in elements]
    m.maxnnode = max(m.nnode, default=0)
    m.maxnfael = max(m.nfael, default=0)

    if m.nbface == 0:
        logger.warning("readGmsh2: there is no boundary data")
    m.bface = np.zeros((m.nbface, m.nnofa + m.nbtag), dtype=np.int64)
    for i, (tags, nodes) in enumerate(faces):
        for j, node in enumerate(nodes[: m.nnofa]):
            m.bface[i, j] = node - 1
        for j, tag in enumerate(tags):
            m.bface[i, m.nnofa + j] = tag

    m.inpoel = np.full((m.nelem, m.maxnnode), -1, dtype=np.int64)
    m.vol_regions = np.zeros((m.nelem, m.ndtag), dtype=np.int64)
    for i, (_, _, tags, nodes) in enumerate(elements):
        m.inpoel[i, : len(nodes)] = np.asarray(nodes, dtype=np.int64) - 1
        m.vol_regions[i, : len(tags)] = tags

    logger.info(
        "readGmsh2: points %d, elements %d, boundary faces %d, max nodes per element %d,"
        " nodes per face %d, max faces per element %d",
        m.npoin, m.nelem, m.nbface, m.maxnnode, m.nnofa, m.maxnfael,
    )
    return m


class _Su2Cursor:
    """Sequential reader over the text of an SU2 file."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def keyed_int(self, what: str) -> int:
        eq = self.text.find("=", self.pos)
        if eq < 0:
            raise MeshReadError(f"Missing keyword for {what}")
        end = self.text.find("\n", eq + 1)
        if end < 0:
            end = len(self.text)
        value = self.text[eq + 1 : end]
        self.pos = end + 1
        match = _LEADING_INT.match(value)
        if not match:
            raise MeshReadError(f"Invalid {what}: {value.strip()!r}")
        return int(match.group(1))

    def token(self, convert: Callable[[str], T], what: str) -> T:
        n = len(self.text)
        while self.pos < n and self.text[self.pos].isspace():
            self.pos += 1
        start = self.pos
        while self.pos < n and not self.text[self.pos].isspace():
            self.pos += 1
        if start == self.pos:
            raise MeshReadError(f"Unexpected end of file while reading {what}")
        raw = self.text[start : self.pos]
        try:
            return convert(raw)
        except ValueError:
            raise MeshReadError(f"Invalid {what}: {raw!r}") from None

    def skip_line(self) -> None:
        end = self.text.find("\n", self.pos)
        self.pos = len(self.text) if end < 0 else end + 1


def read_su2(path) -> MeshData:
    """Read a 2D mesh in the SU2 format; boundary marker names must be integers."""
    cur = _Su2Cursor(Path(path).read_text())
    m = MeshData()

    ndim = cur.keyed_int("dimension")
    if ndim != NDIM:
        logger.warning("readSU2: mesh is not %d-dimensional", NDIM)

    m.nelem = cur.keyed_int("number of elements")
    m.maxnnode = 4
    m.maxnfael = 4
    m.inpoel = np.full((m.nelem, m.maxnnode), -1, dtype=np.int64)
    m.nnode = [0] * m.nelem
    m.nfael = [0] * m.nelem
    for iel in range(m.nelem):
        eltype = cur.token(int, "element type")
        if eltype in _SU2_ELEMENTS:
            m.nnode[iel], m.nfael[iel] = _SU2_ELEMENTS[eltype]
        else:
            logger.warning("readSU2: unknown element type %d", eltype)
        for i in range(m.nnode[iel]):
            m.inpoel[iel, i] = cur.token(int, "node index")
        cur.token(int, "element index")
    cur.skip_line()

    m.npoin = cur.keyed_int("number of points")
    m.coords = np.zeros((m.npoin, NDIM))
    for ip in range(m.npoin):
        for j in range(NDIM):
            m.coords[ip, j] = cur.token(float, "coordinate")
        cur.token(int, "point index")
    cur.skip_line()

    m.nbtag = 1
    m.ndtag = 0
    m.vol_regions = np.zeros((m.nelem, 0), dtype=np.int64)

    nmarkers = cur.keyed_int("number of markers")
    markers: list[tuple[int, list[list[int]]]] = []
    for ib in range(nmarkers):
        tag = cur.keyed_int("marker tag")
        nfaces = cur.keyed_int("number of marker elements")
        m.nnofa = 2
        facelist = []
        for _ in range(nfaces):
            cur.token(int, "face type")
            facelist.append([cur.token(int, "node index") for _ in range(m.nnofa)])
        markers.append((tag, facelist))
        if ib < nmarkers - 1:
            cur.skip_line()

    m.nbface = sum(len(facelist) for _, facelist in markers)
    m.bface = np.zeros((m.nbface, m.nnofa + m.nbtag), dtype=np.int64)
    row = 0
    for tag, facelist in markers:
        for nodes in facelist:
            m.bface[row, : m.nnofa] = nodes
            m.bface[row, m.nnofa] = tag
            row += 1

    logger.info("readSU2: elements %d, boundary faces %d", m.nelem, m.nbface)
    return m