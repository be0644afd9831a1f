"""Voxel chunk storage, greedy meshing, sparse voxel octrees and chunk compression."""

__version__ = "0.1.0"
__all__ = ["chunk", "svo", "greedy_mesh", "compression"]