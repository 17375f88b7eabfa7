"""
dpd_peptide.topology
====================

Coordinate/connection table of a coarse-grained protein.

Every particle of every residue fragment becomes one line::

    index name force x y z [offset ...]

``force`` is ``0`` for side-chain particles, ``<k>`` for the backbone particle
with backbone-force index ``k`` and ``<0>`` for an excluded backbone particle.
All particles of a residue sit at its (transformed) C-alpha position. The
offsets are relative line numbers of the bonded particles.

Classes
-------
CoordinateRecord
    One table line.
TopologyTable
    Records plus the last global and backbone-force indices used.
DisulfideBondResolver
    Collects ``[n]`` bond markers and links both partners of each bond.
CoarseGrainedTopologyBuilder
    Builds the table from per-chain SPICES and C-alpha coordinates.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from dpd_peptide.errors import PeptideError
from dpd_peptide.pool import SpicesPool
from dpd_peptide.spices import backbone_index, split_fragments

logger = logging.getLogger(__name__)

BACKBONE_FORCE_INDEX_START = "<"
BACKBONE_FORCE_INDEX_END = ">"


@dataclass
class CoordinateRecord:
    """
    One particle line.

    Attributes
    ----------
    index : int
        Global particle index.
    name : str
        Particle name.
    force_index : int or None
        None for side-chain particles, 0 for an excluded backbone particle,
        else the backbone-force index.
    position : numpy.ndarray
        Coordinates in simulation units.
    connections : list of int
        Relative line offsets of bonded particles.
    """

    index: int
    name: str
    force_index: int | None
    position: np.ndarray
    connections: list[int] = field(default_factory=list)

    def to_line(self) -> str:
        if self.force_index is None:
            force = "0"
        else:
            force = f"{BACKBONE_FORCE_INDEX_START}{self.force_index}{BACKBONE_FORCE_INDEX_END}"
        x, y, z = self.position
        line = f"{self.index} {self.name} {force} {x:.3f} {y:.3f} {z:.3f}"
        return line + "".join(f" {offset}" for offset in self.connections)


@dataclass
class TopologyTable:
    records: list[CoordinateRecord]
    last_index: int
    last_backbone_index: int

    def lines(self) -> list[str]:
        return [record.to_line() for record in self.records]


class DisulfideBondResolver:
    """
    Pairs up particles carrying the same bond index.

    Bond indices with other than two members are skipped with a warning;
    the table is still usable, only that connection is missing.
    """

    def __init__(self):
        self._members: dict[int, list[int]] = {}

    def record(self, bond: int, line_number: int) -> None:
        """Remember that 1-based table line ``line_number`` carries ``bond``."""
        self._members.setdefault(bond, []).append(line_number)

    def resolve(self, records: list[CoordinateRecord]) -> None:
        for bond in sorted(self._members):
            members = self._members[bond]
            if len(members) != 2:
                logger.warning(
                    "Bond index %d has %d member(s); connection omitted", bond, len(members)
                )
                continue
            first, second = members
            records[first - 1].connections.append(second - first)
            records[second - 1].connections.append(first - second)


class CoarseGrainedTopologyBuilder:
    """
    Emits coordinate records for line-broken chain SPICES.

    Parameters
    ----------
    pool : SpicesPool, optional
        Pool parsed fragments are borrowed from. A private pool is created if
        omitted.
    """

    def __init__(self, pool: SpicesPool | None = None):
        self.pool = pool if pool is not None else SpicesPool()

    def build(
        self,
        chain_spices: dict[str, str],
        chain_coordinates: dict[str, np.ndarray],
        chain_ca_keys: dict[str, list[str]] | None = None,
        start_index: int = 1,
        backbone_start_index: int = 1,
        status: Sequence[bool] | None = None,
        probes: dict[str, str] | None = None,
    ) -> TopologyTable:
        """
        Build the table for all chains in the order of ``chain_spices``.

        Parameters
        ----------
        chain_spices : dict
            Chain ID to SPICES with fragments separated by ``"\\n-"``.
        chain_coordinates : dict
            Chain ID to an (n, 3) array, one row per residue fragment.
        chain_ca_keys : dict, optional
            Chain ID to C-alpha keys, used to look up ``probes``.
        start_index, backbone_start_index : int, default=1
            First global index and first backbone-force index.
        status : sequence of bool, optional
            Inclusion flag per backbone particle over all chains; all
            included if omitted.
        probes : dict, optional
            C-alpha key to the particle replacing that backbone particle.

        Returns
        -------
        TopologyTable

        Raises
        ------
        PeptideError
            If a chain has a different number of fragments and coordinates.
        """
        probes = probes or {}
        chain_ca_keys = chain_ca_keys or {}
        records: list[CoordinateRecord] = []
        resolver = DisulfideBondResolver()
        index = start_index
        ca_index = backbone_start_index
        skipped = 0

        for chain, spices in chain_spices.items():
            fragments = split_fragments(spices)
            coordinates = np.asarray(chain_coordinates[chain], dtype=float).reshape(-1, 3)
            if len(fragments) != len(coordinates):
                raise PeptideError(
                    f"Chain {chain}: {len(fragments)} residue fragments but "
                    f"{len(coordinates)} C-alpha positions"
                )
            keys = chain_ca_keys.get(chain, [])
            previous = 0
            for i, text in enumerate(fragments):
                fragment = self.pool.acquire(text)
                included = True if status is None else bool(status[ca_index - backbone_start_index])
                layout = fragment.layout(backbone_index(fragment, i == 0))
                for position, (node_index, offsets) in enumerate(layout):
                    node = fragment.nodes[node_index]
                    for bond in node.bonds:
                        resolver.record(bond, index - start_index + 1)
                    if position == 0:
                        name = node.name
                        if i < len(keys) and keys[i] in probes:
                            name = probes[keys[i]]
                        connections = [-previous] if i > 0 else []
                        connections += offsets
                        if i < len(fragments) - 1:
                            connections.append(len(fragment))
                        force = ca_index - skipped if included else 0
                        records.append(
                            CoordinateRecord(index, name, force, coordinates[i], connections)
                        )
                    else:
                        records.append(
                            CoordinateRecord(index, node.name, None, coordinates[i], list(offsets))
                        )
                    index += 1
                if not included:
                    skipped += 1
                ca_index += 1
                previous = len(fragment)
                self.pool.release(fragment)

        resolver.resolve(records)
        return TopologyTable(records, index - 1, ca_index - skipped - 1)
