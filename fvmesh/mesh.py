"""Hybrid unstructured 2D mesh of triangles and quadrangles."""

from __future__ import annotations

import numpy as np

from fvmesh.readers import NDIM, MeshData


class UMesh:
    """Mesh state: raw connectivity from a mesh file plus derived structures.

    Derived structures (elements surrounding points and elements, face data,
    geometric quantities) start out empty and are filled in by the topology,
    geometry and partitioning routines.
    """

    def __init__(self, data: MeshData | None = None) -> None:
        if data is None:
            data = MeshData()

        # Global properties of the (possibly distributed) mesh
        self.npoinglobal: int = data.npoin
        self.nelemglobal: int = data.nelem

        # Local properties
        self.npoin: int = data.npoin
        self.nelem: int = data.nelem
        self.nbface: int = data.nbface
        self.nnode: list[int] = list(data.nnode)
        self.maxnnode: int = data.maxnnode
        self.nfael: list[int] = list(data.nfael)
        self.maxnfael: int = data.maxnfael
        self.nnofa: int = data.nnofa
        self.nbtag: int = data.nbtag
        self.ndtag: int = data.ndtag

        self.coords: np.ndarray = np.array(data.coords, dtype=float, copy=True)
        self.inpoel: np.ndarray = np.array(data.inpoel, dtype=np.int64, copy=True)
        self.bface: np.ndarray = np.array(data.bface, dtype=np.int64, copy=True)
        self.vol_regions: np.ndarray = np.array(
            data.vol_regions, dtype=np.int64, copy=True
        )

        # Face counts and index ranges into intfac
        self.naface: int = 0
        self.ninface: int = 0
        self.nconnface: int = 0
        self.nbpoin: int = 0
        self.phy_bface_start: int = 0
        self.phy_bface_end: int = 0
        self.subdom_face_start: int = 0
        self.subdom_face_end: int = 0
        self.conn_bface_start: int = 0
        self.conn_bface_end: int = 0
        self.dom_face_start: int = 0
        self.dom_face_end: int = 0

        # Connectivity faces: element, face EIndex, other rank,
        # global index of external element, global face index
        self.connface: np.ndarray = np.zeros((0, 5), dtype=np.int64)
        self.global_elem_index: list[int] = []

        # Derived topology
        self.esup_p: np.ndarray = np.zeros(0, dtype=np.int64)
        self.esup: np.ndarray = np.zeros(0, dtype=np.int64)
        self.psup_p: np.ndarray = np.zeros(0, dtype=np.int64)
        self.psup: np.ndarray = np.zeros(0, dtype=np.int64)
        self.esuel: np.ndarray = np.zeros((0, 0), dtype=np.int64)
        self.intfac: np.ndarray = np.zeros((0, 0), dtype=np.int64)
        self.btags: np.ndarray = np.zeros((0, 0), dtype=np.int64)
        self.elemface: np.ndarray = np.zeros((0, 0), dtype=np.int64)

        # Derived geometry
        self.area: np.ndarray = np.zeros(0)
        self.facemetric: np.ndarray = np.zeros((0, 3))

    @classmethod
    def from_data(cls, data: MeshData) -> "UMesh":
        """Build a mesh from data read from a mesh file."""
        return cls(data)

    def node_eindex(self, ielem: int, iface: int, inode: int) -> int:
        """Index of a node in an element, given its face EIndex and its index in that face."""
        return (iface + inode) % self.nnode[ielem]

    def reorder_cells(self, permutation) -> None:
        """Reorder cells so that new cell i is old cell permutation[i].

        Only the element-node connectivity and the per-element node and face
        counts are permuted; derived structures must be recomputed afterwards.
        """
        perm = np.asarray(permutation, dtype=np.int64)
        if perm.shape != (self.nelem,):
            raise ValueError(
                f"Permutation has length {perm.size}, expected {self.nelem}"
            )
        if not np.array_equal(np.sort(perm), np.arange(self.nelem)):
            raise ValueError("Argument is not a permutation of the cell indices")

        self.inpoel = self.inpoel[perm].copy()
        self.nnode = [self.nnode[p] for p in perm]
        self.nfael = [self.nfael[p] for p in perm]

    def connectivity_global_indices(self) -> list[int]:
        """Global indices of external elements across each connectivity face."""
        return [int(v) for v in self.connface[: self.nconnface, 3]]

    def cell_centre(self, ielem: int) -> np.ndarray:
        """Centre of a cell as the mean of its node coordinates."""
        nodes = self.inpoel[ielem, : self.nnode[ielem]]
        centre = np.zeros(NDIM)
        for node in nodes:
            centre += self.coords[node, :NDIM]
        return centre / self.nnode[ielem]

    def stats(self) -> str:
        """Summary of the mesh sizes."""
        return (
            f"UMesh: No. of points: {self.npoin}, no. of elements: {self.nelem}"
            f", no. of boundary faces {self.nbface}"
            f", max no. of nodes per element: {self.maxnnode}"
            f", no. of nodes per face: {self.nnofa}"
            f", max no. of faces per element: {self.maxnfael}"
        )