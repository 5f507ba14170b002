# fvmesh

Data structures and preprocessing for two-dimensional unstructured hybrid meshes
made of triangles and quadrilaterals, as used by cell-centred finite volume solvers.

## Modules

- `fvmesh.readers` – reads meshes in the Gmsh 2.x ASCII format and the SU2 format
  into a `MeshData` record. `read_mesh(path)` picks SU2 for a `.su2` extension and
  Gmsh otherwise; `read_gmsh2` and `read_su2` can be called directly. Malformed or
  truncated files raise `MeshReadError`. Node indices are stored zero-based.
- `fvmesh.mesh` – the `UMesh` class holding points, cells, boundary faces, tags and
  the derived structures. It offers `UMesh.from_data`, `node_eindex`,
  `reorder_cells`, `connectivity_global_indices`, `cell_centre` and `stats`.
- `fvmesh.topology` – fills in a mesh's connectivity in place:
  `compute_elements_surrounding_points`, `compute_elements_surrounding_elements`,
  `compute_face_connectivity` (physical boundary faces first, then interior faces,
  then connectivity faces), `compute_points_surrounding_points`,
  `compute_topological`, `face_eindex`, `phy_bface_neighboring_elements` and
  `correct_boundary_face_orientation`. Inconsistent connectivity raises
  `TopologyError`.
- `fvmesh.geometry` – `compute_areas`, `compute_face_metrics` (unit normals and
  lengths), `cell_centres`, `compute_periodic_map`, `compute_boundary_points`
  (returning a `BoundaryPoints` record) and `write_gmsh2`, which writes the mesh
  in the Gmsh 2.2 ASCII format.
- `fvmesh.ordering` – line orderings along chains of strongly coupled cells
  (`find_lines`, `line_ordering`, `line_reorder`) and hybrid orderings that reorder
  a graph of lines and remaining cells (`create_line_point_graph_vertices`,
  `create_line_point_graph`, `graph_ordering`, `hybrid_line_ordering`,
  `hybrid_line_reorder`). `graph_ordering` supports `"natural"`, `"rcm"`
  (reverse Cuthill–McKee) and `"rowlength"`; any other name raises `ValueError`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Usage

```python
from fvmesh.readers import read_mesh
from fvmesh.mesh import UMesh
from fvmesh.topology import compute_topological, correct_boundary_face_orientation
from fvmesh.geometry import compute_areas, compute_face_metrics, write_gmsh2

mesh = UMesh.from_data(read_mesh("channel.msh"))
correct_boundary_face_orientation(mesh)
compute_topological(mesh)
compute_areas(mesh)
compute_face_metrics(mesh)
print(mesh.stats())

write_gmsh2(mesh, "channel-out.msh")
```

Reordering cells along lines of anisotropic cells, then by reverse Cuthill–McKee:

```python
from fvmesh.ordering import hybrid_line_reorder

compute_topological(mesh)
hybrid_line_reorder(mesh, threshold=3.0, ordering="rcm")

# reorder_cells only permutes the cell-node lists and per-cell counts;
# derived structures must be recomputed.
compute_topological(mesh)
compute_areas(mesh)
compute_face_metrics(mesh)
```

The line orderings need the face structure, so call `compute_topological` first.

For SU2 files, boundary marker names must be integers.

## What this package does not do

- It does not partition a mesh among processes. A `UMesh` has fields for
  connectivity faces with other subdomains (`nconnface`, `connface`), and
  `compute_face_connectivity` handles them when they are filled in, but nothing
  in the package computes them; for a mesh read from a file there are none.
- It has no single call that reads and fully preprocesses a mesh; the steps
  shown above are run one by one.
- It has no command-line program and does no flow solving.