"""Two-dimensional unstructured hybrid meshes: reading, topology, geometry and cell orderings."""

__version__ = "0.1.0"

__all__ = ["readers", "mesh", "topology", "ordering", "geometry"]