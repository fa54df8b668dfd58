"""NumPy-backed math utilities for anchor frames and stretched segments.

Vectors are plain numpy arrays; quaternions are [x, y, z, w] arrays.
Matrices are 4x4 numpy arrays acting on column vectors, with the
translation in the last column.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

# Type aliases
Vec3 = NDArray[np.float64]
Mat4 = NDArray[np.float64]
Quat = NDArray[np.float64]  # [x, y, z, w]


def vec3(x: float = 0.0, y: float = 0.0, z: float = 0.0) -> Vec3:
    return np.array([x, y, z], dtype=np.float64)


def as_vec3(p: ArrayLike) -> Vec3:
    """Copy any 3-sequence into a fresh float64 vector."""
    v = np.array(p, dtype=np.float64).reshape(-1)
    if v.shape != (3,):
        raise ValueError(f"Expected a 3-vector, got shape {v.shape}")
    return v


def mat4_identity() -> Mat4:
    return np.eye(4, dtype=np.float64)


def mat4_from_quaternion(q: Quat) -> Mat4:
    """Convert quaternion [x,y,z,w] to 4x4 rotation matrix."""
    x, y, z, w = q
    m = np.eye(4, dtype=np.float64)
    m[0, 0] = 1 - 2 * (y * y + z * z)
    m[0, 1] = 2 * (x * y - z * w)
    m[0, 2] = 2 * (x * z + y * w)
    m[1, 0] = 2 * (x * y + z * w)
    m[1, 1] = 1 - 2 * (x * x + z * z)
    m[1, 2] = 2 * (y * z - x * w)
    m[2, 0] = 2 * (x * z - y * w)
    m[2, 1] = 2 * (y * z + x * w)
    m[2, 2] = 1 - 2 * (x * x + y * y)
    return m


def mat4_compose(position: Vec3, quaternion: Quat, scale: Vec3) -> Mat4:
    """Compose TRS matrix from position, quaternion rotation, and scale.

    Scale is applied first (per local axis), then rotation, then translation.
    """
    m = mat4_from_quaternion(quaternion)
    m[:3, 0] *= scale[0]
    m[:3, 1] *= scale[1]
    m[:3, 2] *= scale[2]
    m[0, 3] = position[0]
    m[1, 3] = position[1]
    m[2, 3] = position[2]
    return m


def mat4_inverse(m: Mat4) -> Mat4:
    return np.linalg.inv(m)


# Quaternion operations

def quat_identity() -> Quat:
    return np.array([0.0, 0.0, 0.0, 1.0], dtype=np.float64)


def quat_from_euler(x: float, y: float, z: float, order: str = "XYZ") -> Quat:
    """Create quaternion from Euler angles (radians)."""
    cx, sx = np.cos(x / 2), np.sin(x / 2)
    cy, sy = np.cos(y / 2), np.sin(y / 2)
    cz, sz = np.cos(z / 2), np.sin(z / 2)

    if order == "XYZ":
        return np.array([
            sx * cy * cz + cx * sy * sz,
            cx * sy * cz - sx * cy * sz,
            cx * cy * sz + sx * sy * cz,
            cx * cy * cz - sx * sy * sz,
        ], dtype=np.float64)
    elif order == "ZYX":
        return np.array([
            sx * cy * cz - cx * sy * sz,
            cx * sy * cz + sx * cy * sz,
            cx * cy * sz - sx * sy * cz,
            cx * cy * cz + sx * sy * sz,
        ], dtype=np.float64)
    else:
        raise ValueError(f"Unsupported Euler order: {order}")


def quat_from_axis_angle(axis: Vec3, angle: float) -> Quat:
    """Create quaternion from axis-angle."""
    half = angle / 2
    s = np.sin(half)
    a = normalize(axis)
    return np.array([a[0] * s, a[1] * s, a[2] * s, np.cos(half)], dtype=np.float64)


def quat_normalize(q: Quat) -> Quat:
    n = np.linalg.norm(q)
    if n < 1e-10:
        return quat_identity()
    return q / n


def quat_from_unit_vectors(v_from: Vec3, v_to: Vec3) -> Quat:
    """Shortest-arc rotation taking unit vector ``v_from`` onto ``v_to``."""
    r = float(np.dot(v_from, v_to)) + 1.0
    if r < 1e-10:
        # Antiparallel: rotate 180 degrees about any axis perpendicular to v_from
        if abs(v_from[0]) > abs(v_from[2]):
            axis = vec3(-v_from[1], v_from[0], 0.0)
        else:
            axis = vec3(0.0, -v_from[2], v_from[1])
        return quat_normalize(np.array([axis[0], axis[1], axis[2], 0.0]))
    c = np.cross(v_from, v_to)
    return quat_normalize(np.array([c[0], c[1], c[2], r], dtype=np.float64))


def quat_rotate_vec3(q: Quat, v: Vec3) -> Vec3:
    """Rotate a vector by a quaternion."""
    qv = q[:3]
    w = q[3]
    t = 2.0 * np.cross(qv, v)
    return v + w * t + np.cross(qv, t)


# Vector operations

def normalize(v: Vec3) -> Vec3:
    n = np.linalg.norm(v)
    if n < 1e-10:
        return np.zeros_like(v)
    return v / n


def distance(a: Vec3, b: Vec3) -> float:
    return float(np.linalg.norm(np.asarray(a) - np.asarray(b)))


def transform_point(m: Mat4, p: Vec3) -> Vec3:
    """Transform a point by a 4x4 matrix."""
    v = np.array([p[0], p[1], p[2], 1.0], dtype=np.float64)
    r = m @ v
    return r[:3]


def inverse_transform_point(m: Mat4, p: Vec3) -> Vec3:
    """Map a point into the space ``m`` transforms out of."""
    return transform_point(mat4_inverse(m), p)
