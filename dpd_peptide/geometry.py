"""
dpd_peptide.geometry
====================

Length units, coordinate transforms, quaternions and z-matrices.

Raw arrays are unitless Å. :func:`angstrom` and :func:`nostrom` attach and
strip ``openmm.unit`` lengths where positions leave or enter the structure
layer.

Quaternions are ``(x, y, z, w)`` tuples; Euler angles are
``(bank, heading, attitude)`` in radians, i.e. rotations about x, y and z.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import ArrayLike
from openmm import unit
from openmm.unit import Quantity

from dpd_peptide.errors import IndexOutOfRangeError, PeptideError

Quaternion = tuple[float, float, float, float]


def angstrom(array: ArrayLike) -> Quantity:
    """Attach Å units to a numeric array or vector."""
    return np.asarray(array, dtype=float) * unit.angstrom


def nostrom(quantity: Quantity) -> np.ndarray:
    """
    Strip units from a length array, returning Å as floats.

    Raises
    ------
    AttributeError
        If a unitless array is passed.
    """
    return np.asarray(quantity.value_in_unit(unit.angstrom), dtype=float)


def angle(array1: ArrayLike, array2: ArrayLike) -> float:
    """Unsigned angle between two vectors (radians, 0..π)."""
    a = np.asarray(array1, dtype=float)
    b = np.asarray(array2, dtype=float)
    return float(
        np.arccos(
            np.clip(np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b)), -1.0, 1.0)
        )
    )


def dihedral(p0: ArrayLike, p1: ArrayLike, p2: ArrayLike, p3: ArrayLike) -> float:
    """Torsion angle of four points about the ``p1``-``p2`` axis (radians, -π..π)."""
    p0, p1, p2, p3 = (np.asarray(p, dtype=float) for p in (p0, p1, p2, p3))
    b0 = p0 - p1
    b1 = p2 - p1
    b2 = p3 - p2
    b1 = b1 / np.linalg.norm(b1)
    v = b0 - np.dot(b0, b1) * b1
    w = b2 - np.dot(b2, b1) * b1
    return float(np.arctan2(np.dot(np.cross(b1, v), w), np.dot(v, w)))


def center(points: ArrayLike) -> np.ndarray:
    return np.asarray(points, dtype=float).reshape(-1, 3).mean(axis=0)


def diameter(points: ArrayLike, chunk: int = 1024) -> float:
    """Largest pairwise distance of a point set (0 for fewer than two points)."""
    xyz = np.asarray(points, dtype=float).reshape(-1, 3)
    best = 0.0
    for start in range(0, len(xyz), chunk):
        block = xyz[start : start + chunk]
        d = np.linalg.norm(block[:, None, :] - xyz[None, :, :], axis=-1)
        if d.size:
            best = max(best, float(d.max()))
    return best


def radius_of_gyration(points: ArrayLike) -> float:
    xyz = np.asarray(points, dtype=float).reshape(-1, 3)
    if not len(xyz):
        return 0.0
    return float(np.sqrt(((xyz - xyz.mean(axis=0)) ** 2).sum(axis=1).mean()))


# ---------------------------------------------------------------------- #
# Rotations
# ---------------------------------------------------------------------- #


def random_quaternion(rng: np.random.Generator) -> Quaternion:
    """
    Uniformly distributed random rotation.

    The last two components are returned as ``(..., w, z)`` of the textbook
    construction, which is the convention stored orientations use.
    """
    u1, u2, u3 = rng.random(3)
    a, b = math.sqrt(1.0 - u1), math.sqrt(u1)
    x = a * math.sin(2 * math.pi * u2)
    y = a * math.cos(2 * math.pi * u2)
    z = b * math.sin(2 * math.pi * u3)
    w = b * math.cos(2 * math.pi * u3)
    return (x, y, w, z)


def quaternion_to_euler(q: Quaternion) -> tuple[float, float, float]:
    """Euler angles ``(bank, heading, attitude)`` of a quaternion."""
    x, y, z, w = q
    sqw, sqx, sqy, sqz = w * w, x * x, y * y, z * z
    norm = sqx + sqy + sqz + sqw
    test = x * y + z * w
    if test > 0.499 * norm:
        return (0.0, 2 * math.atan2(x, w), math.pi / 2)
    if test < -0.499 * norm:
        return (0.0, -2 * math.atan2(x, w), -math.pi / 2)
    heading = math.atan2(2 * y * w - 2 * x * z, sqx - sqy - sqz + sqw)
    attitude = math.asin(2 * test / norm)
    bank = math.atan2(2 * x * w - 2 * y * z, -sqx + sqy - sqz + sqw)
    return (bank, heading, attitude)


def euler_to_quaternion(angles: ArrayLike) -> Quaternion:
    """Quaternion of Euler angles ``(bank, heading, attitude)``."""
    bank, heading, attitude = (float(a) for a in angles)
    c1, s1 = math.cos(heading / 2), math.sin(heading / 2)
    c2, s2 = math.cos(attitude / 2), math.sin(attitude / 2)
    c3, s3 = math.cos(bank / 2), math.sin(bank / 2)
    w = c1 * c2 * c3 - s1 * s2 * s3
    x = c1 * c2 * s3 + s1 * s2 * c3
    y = s1 * c2 * c3 + c1 * s2 * s3
    z = c1 * s2 * c3 - s1 * c2 * s3
    return (x, y, z, w)


def quaternion_to_matrix(q: Quaternion) -> np.ndarray:
    """3x3 rotation matrix of a unit quaternion."""
    x, y, z, w = q
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def transform_coordinates(
    chains: dict[str, np.ndarray],
    target_center: ArrayLike,
    radius: float,
    rotation: Quaternion | None = None,
) -> dict[str, np.ndarray]:
    """
    Fit per-chain coordinates into a sphere.

    All points are centred at the origin, optionally rotated, scaled so that
    their diameter becomes ``2 * radius`` and moved to ``target_center``.
    The rotation is given in the viewer frame, whose y and z axes are swapped
    with respect to the simulation box (``(x, y, z) -> (x, -z, y)`` on the
    Euler angles).
    """
    names = list(chains)
    sizes = [len(chains[name]) for name in names]
    xyz = np.concatenate([np.asarray(chains[n], dtype=float).reshape(-1, 3) for n in names])
    xyz = xyz - center(xyz)
    if rotation is not None:
        bank, heading, attitude = quaternion_to_euler(rotation)
        matrix = quaternion_to_matrix(euler_to_quaternion((bank, -attitude, heading)))
        xyz = xyz @ matrix.T
    size = diameter(xyz)
    if size > 0.0:
        xyz = xyz * (2.0 * radius / size)
    xyz = xyz - center(xyz) + np.asarray(target_center, dtype=float)

    out = {}
    offset = 0
    for name, n in zip(names, sizes):
        out[name] = xyz[offset : offset + n]
        offset += n
    return out


# ---------------------------------------------------------------------- #
# Z-matrix
# ---------------------------------------------------------------------- #


class ZMatrix:
    """
    Internal coordinates of a point chain.

    Row 0 holds one distance, row 1 a distance and an angle, every further
    row a distance, an angle and a dihedral (radians).
    """

    def __init__(self):
        self.rows: list[tuple[float, ...]] = []

    def add_first_distance(self, distance: float) -> None:
        self.rows = [(distance,)]

    def add_first_distance_angle_pair(self, distance: float, angle_: float) -> None:
        if len(self.rows) != 1:
            raise PeptideError("Illegal z-matrix state: first distance missing")
        self.rows.append((distance, angle_))

    def add_triplet(self, distance: float, angle_: float, dihedral_: float) -> None:
        if len(self.rows) < 2:
            raise PeptideError("Illegal z-matrix state: distance/angle pair missing")
        self.rows.append((distance, angle_, dihedral_))

    def step(self, index: int) -> tuple[float, ...]:
        if not 0 <= index < len(self.rows):
            raise IndexOutOfRangeError(f"Z-matrix step {index} out of range")
        return self.rows[index]

    def __len__(self) -> int:
        return len(self.rows)

    def __str__(self) -> str:
        return "".join(
            " ".join(f"{value:6.2f}" for value in row) + (" \n" if len(row) > 1 else "\n")
            for row in self.rows
        )

    @classmethod
    def from_points(cls, points: ArrayLike) -> ZMatrix:
        """
        Build the z-matrix of at least three points.

        Negative angles and dihedrals are shifted by 2π.
        """
        p = np.asarray(points, dtype=float).reshape(-1, 3)
        if len(p) < 3:
            raise PeptideError("A z-matrix needs at least three points")
        z = cls()
        z.add_first_distance(float(np.linalg.norm(p[1] - p[0])))
        z.add_first_distance_angle_pair(
            float(np.linalg.norm(p[2] - p[1])), angle(p[0] - p[1], p[2] - p[1])
        )
        for k in range(len(p) - 3):
            distance = float(np.linalg.norm(p[k + 3] - p[k + 2]))
            a = angle(p[k + 3] - p[k + 2], p[k + 1] - p[k + 2])
            t = dihedral(p[k + 3], p[k + 2], p[k + 1], p[k])
            if a < 0.0:
                a += 2 * math.pi
            if t < 0.0:
                t += 2 * math.pi
            z.add_triplet(distance, a, t)
        return z
