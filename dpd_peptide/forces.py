"""
dpd_peptide.forces
==================

Backbone distance restraints.

For a distance type ``k`` every pair of included backbone particles ``k``
steps apart within one segment gets a harmonic restraint at its current
distance. Lines read::

    <i> <i+k> distance forceConstant

with backbone-force indices counted over the included particles only.

Examples
--------
>>> import numpy as np
>>> from dpd_peptide.forces import DistanceForceTableGenerator
>>> xyz = np.array([[0.0, 0, 0], [3.8, 0, 0], [7.6, 0, 0]])
>>> DistanceForceTableGenerator(decimals=2).lines(1, xyz)
['<1> <2> 3.80 1.00', '<2> <3> 3.80 1.00']
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike


class DistanceForceTableGenerator:
    """
    Distance-force lines for backbone particles.

    Parameters
    ----------
    decimals : int, default=6
        Decimal places of distance and force constant.
    """

    def __init__(self, decimals: int = 6):
        self.decimals = decimals

    @staticmethod
    def _compact(
        positions: ArrayLike,
        status: Sequence[bool] | None,
        segments: Sequence[int] | None,
    ) -> tuple[np.ndarray, np.ndarray]:
        xyz = np.asarray(positions, dtype=float).reshape(-1, 3)
        keep = np.ones(len(xyz), dtype=bool) if status is None else np.asarray(status, dtype=bool)
        seg = np.zeros(len(xyz), dtype=int) if segments is None else np.asarray(segments, dtype=int)
        return xyz[keep], seg[keep]

    def lines(
        self,
        distance_type: int,
        positions: ArrayLike,
        status: Sequence[bool] | None = None,
        segments: Sequence[int] | None = None,
        factor: float = 1.0,
        force_constant: float = 1.0,
    ) -> list[str]:
        """
        Restraint lines for distance type ``distance_type``.

        Parameters
        ----------
        distance_type : int
            Index distance ``k >= 1`` between restrained particles.
        positions : array-like
            (n, 3) backbone coordinates in Å, one row per backbone particle.
        status : sequence of bool, optional
            Inclusion flags; all included if omitted.
        segments : sequence of int, optional
            Segment per particle; one segment if omitted.
        factor : float, default=1.0
            Å to simulation length conversion.
        force_constant : float, default=1.0

        Returns
        -------
        list of str
            Empty when there are fewer than ``k + 1`` included particles or
            no pair shares a segment.
        """
        xyz, seg = self._compact(positions, status, segments)
        k = distance_type
        if k < 1 or len(xyz) < k + 1:
            return []
        n = self.decimals
        result = []
        for i in range(len(xyz) - k):
            if seg[i] != seg[i + k]:
                continue
            distance = float(np.linalg.norm(xyz[i + k] - xyz[i])) * factor
            result.append(f"<{i + 1}> <{i + 1 + k}> {distance:.{n}f} {force_constant:.{n}f}")
        return result

    def count(
        self,
        distance_type: int,
        positions: ArrayLike,
        status: Sequence[bool] | None = None,
        segments: Sequence[int] | None = None,
    ) -> int:
        return len(self.lines(distance_type, positions, status, segments))

    @staticmethod
    def max_distance_type(status: Sequence[bool], segments: Sequence[int]) -> int:
        """
        Largest ``k`` for which at least one restraint exists.

        Returns 0 if no backbone particle is included.
        """
        seg = np.asarray(segments, dtype=int)[np.asarray(status, dtype=bool)]
        for k in range(len(seg) - 1, 0, -1):
            if np.any(seg[:-k] == seg[k:]):
                return k
        return 0
