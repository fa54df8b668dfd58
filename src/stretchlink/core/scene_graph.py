"""Scene graph with hierarchical transforms; nodes double as anchor frames."""

from typing import Optional

import numpy as np

from stretchlink.core.math_utils import (
    Mat4, Vec3, Quat,
    inverse_transform_point, mat4_identity, mat4_compose,
    quat_identity, quat_normalize, transform_point, vec3,
)


class SceneNode:
    """A node in the scene graph hierarchy.

    position, quaternion, scale → local matrix.
    World matrix = parent.world_matrix @ local_matrix.

    The point-mapping methods read the *current* world matrix, so callers
    refresh it (``update_world_matrix``) once per tick before resolving.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self.parent: Optional["SceneNode"] = None
        self.children: list["SceneNode"] = []

        # Transform
        self.position: Vec3 = vec3()
        self.quaternion: Quat = quat_identity()
        self.scale: Vec3 = vec3(1, 1, 1)

        # Matrices
        self.local_matrix: Mat4 = mat4_identity()
        self.world_matrix: Mat4 = mat4_identity()

        # Dirty flag for matrix updates
        self._matrix_dirty: bool = True

    def __repr__(self) -> str:
        return f"SceneNode({self.name!r})"

    def add(self, child: "SceneNode") -> "SceneNode":
        """Add a child node. Removes from previous parent if any."""
        if child.parent is not None:
            child.parent.remove(child)
        child.parent = self
        self.children.append(child)
        child._matrix_dirty = True
        return self

    def remove(self, child: "SceneNode") -> "SceneNode":
        """Remove a child node."""
        if child in self.children:
            self.children.remove(child)
            child.parent = None
        return self

    def set_position(self, x: float, y: float, z: float) -> "SceneNode":
        self.position = vec3(x, y, z)
        self._matrix_dirty = True
        return self

    def set_quaternion(self, q: Quat) -> "SceneNode":
        self.quaternion = quat_normalize(np.array(q, dtype=np.float64))
        self._matrix_dirty = True
        return self

    def set_scale(self, x: float, y: float, z: float) -> "SceneNode":
        self.scale = vec3(x, y, z)
        self._matrix_dirty = True
        return self

    def update_local_matrix(self) -> None:
        """Recompute local matrix from position, quaternion, scale."""
        self.local_matrix = mat4_compose(self.position, self.quaternion, self.scale)
        self._matrix_dirty = False

    def update_world_matrix(self, force: bool = False) -> None:
        """Recursively update world matrices for this node and all descendants."""
        if self._matrix_dirty or force:
            self.update_local_matrix()

        if self.parent is not None:
            self.world_matrix = self.parent.world_matrix @ self.local_matrix
        else:
            self.world_matrix = self.local_matrix.copy()

        for child in self.children:
            child.update_world_matrix(force=force)

    def find(self, name: str) -> Optional["SceneNode"]:
        """Find first descendant with given name."""
        if self.name == name:
            return self
        for child in self.children:
            found = child.find(name)
            if found is not None:
                return found
        return None

    def mark_dirty(self) -> None:
        """Mark this node and all descendants as needing matrix update."""
        self._matrix_dirty = True
        for child in self.children:
            child.mark_dirty()

    # ------------------------------------------------------------------
    # Anchor frame interface
    # ------------------------------------------------------------------

    def get_world_position(self) -> Vec3:
        """Extract world position from world matrix."""
        return self.world_matrix[:3, 3].copy()

    def transform_point(self, p: Vec3) -> Vec3:
        """Local → world, honoring rotation and non-uniform scale."""
        return transform_point(self.world_matrix, p)

    def inverse_transform_point(self, p: Vec3) -> Vec3:
        """World → local."""
        return inverse_transform_point(self.world_matrix, p)


class Scene(SceneNode):
    """Root scene node."""

    def __init__(self):
        super().__init__(name="scene")

    def update(self) -> None:
        """Update all world matrices in the scene."""
        self.update_world_matrix(force=False)
