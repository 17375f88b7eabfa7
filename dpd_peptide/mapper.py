"""
dpd_peptide.mapper
==================

Structure-to-topology mapper.

:class:`PdbToDpd` holds one loaded PDB structure together with its
:class:`~dpd_peptide.masterdata.PdbToDpdMasterdata` (active chains, pH,
placement, backbone selection, probes, biological assembly) and derives from
it, on demand:

* the SPICES of the active chains, grouped by disulfide-connected chains,
* the coordinate/connection table of every coarse-grained particle,
* backbone distance-force tables,
* geometric summaries (radius of gyration, longest distance, z-matrices).

Nothing derived is cached; every call reflects the current masterdata.

Examples
--------
>>> from dpd_peptide.mapper import PdbToDpd
>>> mapper = PdbToDpd.from_file("data/1crn.pdb")  # doctest: +SKIP
>>> mapper.center, mapper.radius = (10.0, 10.0, 10.0), 5.0  # doctest: +SKIP
>>> mapper.coordinate_lines()[:2]  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from openmm.unit import Quantity

from dpd_peptide.amino_acids import AminoAcid
from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.errors import (
    IndexOutOfRangeError,
    MissingDataError,
    PeptideError,
    SequenceLengthError,
)
from dpd_peptide.forces import DistanceForceTableGenerator
from dpd_peptide.geometry import (
    Quaternion,
    ZMatrix,
    angstrom,
    diameter,
    euler_to_quaternion,
    quaternion_to_euler,
    radius_of_gyration,
    random_quaternion,
    transform_coordinates,
)
from dpd_peptide.masterdata import ASYMMETRIC_UNIT, PdbToDpdMasterdata
from dpd_peptide.notation import tokenize
from dpd_peptide.pdb import COORDINATES, ProteinStructure, build_assembly, parse_pdb
from dpd_peptide.pool import SpicesPool
from dpd_peptide.protein import Protein, ca_key
from dpd_peptide.spices import FRAGMENT_SEPARATOR, backbone_index, split_fragments, strip_markers
from dpd_peptide.topology import CoarseGrainedTopologyBuilder, TopologyTable

logger = logging.getLogger(__name__)

BIOLOGICAL_ASSEMBLY_PREFIX = "Biological Assembly"


class PdbToDpd:
    """
    Maps a PDB structure onto the coarse-grained peptide model.

    Parameters
    ----------
    pdb_text : str
        PDB file content.
    catalog : AminoAcidCatalog, optional
        Residue catalog; the default catalog if omitted.
    masterdata : PdbToDpdMasterdata, optional
        Stored state to continue from. A fresh one is created if omitted.
    pool : SpicesPool, optional
        Pool for parsed residue fragments.

    Raises
    ------
    MissingDataError
        If the catalog is incomplete.
    PeptideError
        If the PDB text holds no atoms.
    """

    def __init__(
        self,
        pdb_text: str,
        catalog: AminoAcidCatalog | None = None,
        masterdata: PdbToDpdMasterdata | None = None,
        pool: SpicesPool | None = None,
    ):
        self.catalog = catalog if catalog is not None else AminoAcidCatalog()
        if not self.catalog.is_complete:
            raise MissingDataError("Complete amino acid catalog")
        self.pool = pool if pool is not None else SpicesPool()
        self._source = parse_pdb(pdb_text)
        self._rng: np.random.Generator | None = None

        if masterdata is None:
            masterdata = self._new_masterdata(pdb_text)
        self.masterdata = masterdata
        self._load(self.masterdata.biological_assembly)

    @classmethod
    def from_file(cls, path: str | Path, catalog: AminoAcidCatalog | None = None) -> PdbToDpd:
        return cls(Path(path).read_text(), catalog)

    @classmethod
    def from_protein_data(cls, data: str, pool: SpicesPool | None = None) -> PdbToDpd:
        """
        Restore a mapper from :meth:`get_protein_data` output.

        The catalog is rebuilt from the stored definition.
        """
        masterdata = PdbToDpdMasterdata.from_compressed(data)
        if masterdata.original_pdb is None:
            raise MissingDataError("Original PDB")
        definition = masterdata.amino_acids_definition
        catalog = AminoAcidCatalog(definition) if definition else AminoAcidCatalog()
        return cls(masterdata.original_pdb, catalog, masterdata, pool)

    def get_protein_data(self) -> str:
        """Compressed masterdata snapshot."""
        return self.masterdata.to_compressed()

    def _new_masterdata(self, pdb_text: str) -> PdbToDpdMasterdata:
        masterdata = PdbToDpdMasterdata()
        masterdata.original_pdb = pdb_text
        masterdata.amino_acids_definition = self.catalog.definition
        return masterdata

    # ------------------------------------------------------------------ #
    # Biological assemblies
    # ------------------------------------------------------------------ #

    def _load(self, assembly: str) -> None:
        structure: ProteinStructure = self._source
        number = None
        if assembly != ASYMMETRIC_UNIT:
            number = int(assembly.split()[2])
            structure = build_assembly(self._source, number)
            logger.debug("Switched to %s", assembly)
        self.protein = Protein(structure, self.catalog)
        for chain, sequence in self.masterdata.overridden_sequences.items():
            self.protein.override_sequence(chain, sequence)
        if self.masterdata.active_chains is None:
            self.masterdata.active_chains = self.protein.chain_ids
        self.masterdata.biological_assembly = assembly
        self.masterdata.biological_assembly_filter = (
            None if number is None else f' filter "BIOMOLECULE {number}"'
        )
        self.masterdata.number_of_models = self.protein.number_of_models

    def biological_assemblies(self) -> list[str]:
        return [ASYMMETRIC_UNIT] + [
            f"{BIOLOGICAL_ASSEMBLY_PREFIX} {number}" for number in sorted(self._source.assemblies)
        ]

    @property
    def biological_assembly(self) -> str:
        return self.masterdata.biological_assembly

    def set_biological_assembly(self, assembly: str) -> None:
        """
        Select the asymmetric unit or a biological assembly.

        Choosing a different assembly resets all settings except the PDB text
        and the catalog definition.

        Raises
        ------
        PeptideError
            If the structure does not define ``assembly``.
        """
        if assembly not in self.biological_assemblies():
            raise PeptideError(f"Unknown biological assembly {assembly!r}")
        if assembly != self.masterdata.biological_assembly:
            self.masterdata = self._new_masterdata(self.masterdata.original_pdb or self._source.text)
            self._rng = None
        self._load(assembly)

    @property
    def is_biological_assembly(self) -> bool:
        return self.masterdata.biological_assembly != ASYMMETRIC_UNIT

    @property
    def biological_assembly_filter(self) -> str | None:
        return self.masterdata.biological_assembly_filter

    @property
    def number_of_models(self) -> int:
        return self.masterdata.number_of_models

    # ------------------------------------------------------------------ #
    # Structure information
    # ------------------------------------------------------------------ #

    @property
    def pdb(self) -> str:
        return self.masterdata.original_pdb or ""

    @property
    def pdb_code(self) -> str:
        return self.protein.pdb_code

    @property
    def title(self) -> str:
        return self.protein.title

    def compound_names(self) -> list[str]:
        return self.protein.compound_names()

    def name_chain_map(self) -> dict[str, str]:
        """Compound display name to chain ID."""
        return {name: chain for chain, name in self.protein.chain_names().items()}

    def has_disulfide_bonds(self) -> bool:
        return bool(self.protein.raw_ss_bonds)

    # ------------------------------------------------------------------ #
    # Settings
    # ------------------------------------------------------------------ #

    @property
    def active_chains(self) -> list[str]:
        return self.masterdata.active_chains or []

    def set_active_chains(self, chains: list[str]) -> None:
        """
        Select the chains to map. Backbone status and segments are reset.

        Raises
        ------
        PeptideError
            If a chain is not part of the structure.
        """
        unknown = sorted(set(chains) - set(self.protein.chain_ids))
        if unknown:
            raise PeptideError(f"Unknown chain(s): {', '.join(unknown)}")
        self.masterdata.active_chains = list(chains)
        self.masterdata.status = None
        self.masterdata.segments = None

    def has_chain_selection(self) -> bool:
        return bool(self.masterdata.active_chains)

    def clear_chain_selection(self) -> None:
        self.masterdata.active_chains = None
        self.masterdata.status = None
        self.masterdata.segments = None

    @property
    def ph(self) -> float | None:
        return self.masterdata.ph

    @ph.setter
    def ph(self, value: float | None) -> None:
        self.masterdata.ph = value

    def has_ph_value(self) -> bool:
        return self.masterdata.ph is not None

    def clear_ph_value(self) -> None:
        self.masterdata.ph = None

    @property
    def center(self) -> tuple[float, float, float] | None:
        return self.masterdata.center

    @center.setter
    def center(self, value) -> None:
        self.masterdata.center = value

    @property
    def radius(self) -> float | None:
        return self.masterdata.radius

    @radius.setter
    def radius(self, value: float | None) -> None:
        self.masterdata.radius = value

    @property
    def rotation(self) -> tuple[float, float, float]:
        """Euler angles in radians, zeros when no rotation is set."""
        quaternion = self.masterdata.rotation
        if quaternion is None:
            return (0.0, 0.0, 0.0)
        return quaternion_to_euler(quaternion)

    @rotation.setter
    def rotation(self, angles) -> None:
        self.masterdata.rotation = euler_to_quaternion(angles)

    def set_rotation_quaternion(self, quaternion: Quaternion) -> None:
        self.masterdata.rotation = quaternion

    def copy_rotation_to_default(self) -> None:
        self.masterdata.copy_rotation_to_default()

    def set_default_rotation(self) -> None:
        self.masterdata.restore_default_rotation()

    @property
    def seed(self) -> int:
        return self.masterdata.seed

    @seed.setter
    def seed(self, value: int) -> None:
        self.masterdata.seed = value
        self._rng = None

    def set_random_orientation(self) -> None:
        """Draw a uniformly distributed rotation from the seeded generator."""
        if self._rng is None:
            self._rng = np.random.default_rng(self.masterdata.seed)
        self.masterdata.rotation = random_quaternion(self._rng)

    @property
    def circular(self) -> bool:
        return self.masterdata.circular

    @circular.setter
    def circular(self, value: bool) -> None:
        self.masterdata.circular = value

    @property
    def decimals(self) -> int:
        return self.masterdata.decimals

    @decimals.setter
    def decimals(self, value: int) -> None:
        self.masterdata.decimals = value

    @property
    def use_frequency_spices(self) -> bool:
        return self.masterdata.use_frequency_spices

    @use_frequency_spices.setter
    def use_frequency_spices(self, value: bool) -> None:
        self.masterdata.use_frequency_spices = value

    @property
    def probes(self) -> dict[str, str]:
        return self.masterdata.probes

    @probes.setter
    def probes(self, value: dict[str, str] | None) -> None:
        self.masterdata.probes = value

    def clear_probes(self) -> None:
        self.masterdata.probes = None

    def has_probes(self) -> bool:
        return bool(self.masterdata.probes)

    # ------------------------------------------------------------------ #
    # Sequences and SPICES
    # ------------------------------------------------------------------ #

    def _chain_groups(self) -> list[list[str]]:
        """Active chains grouped by disulfide connections, each group sorted."""
        groups: list[set[str]] = []
        for first, second in self.protein.chain_connections(self.active_chains):
            joined = {first, second}
            rest = []
            for group in groups:
                if group & joined:
                    joined |= group
                else:
                    rest.append(group)
            groups = rest + [joined]
        for chain in self.active_chains:
            if not any(chain in group for group in groups):
                groups.append({chain})
        return [sorted(group) for group in groups]

    def _with_probes(self, chain: str, spices: str) -> str:
        probes = self.probes
        keys = self.ca_keys([chain])
        fragments = split_fragments(spices)
        for i, text in enumerate(fragments):
            if keys[i] not in probes:
                continue
            fragment = self.pool.acquire(text)
            name = fragment.nodes[backbone_index(fragment, i == 0)].name
            self.pool.release(fragment)
            fragments[i] = text.replace(name, probes[keys[i]], 1)
        return FRAGMENT_SEPARATOR.join(fragments)

    def get_spices(self) -> str:
        """
        SPICES of all active chains.

        Chains linked by disulfide bonds form one group in which every chain
        is a ``(\\n...)`` branch. With more than one active chain each group
        is wrapped ``<...>`` and, if frequency SPICES are enabled, runs of
        identical groups are written once with their count.
        """
        active = self.active_chains
        if not active:
            return ""
        spices = self.protein.spices(self.ph, active, self.circular)
        if self.has_probes():
            spices = {chain: self._with_probes(chain, text) for chain, text in spices.items()}

        tokens = []
        for group in self._chain_groups():
            if len(group) == 1:
                tokens.append(spices[group[0]])
            else:
                tokens.append("".join(f"(\n{spices[chain]})" for chain in group))
        if len(active) == 1:
            return tokens[0]
        if not self.use_frequency_spices:
            return "".join(f"<{token}>" for token in tokens)

        out = []
        i = 0
        while i < len(tokens):
            count = 1
            while i + count < len(tokens) and tokens[i + count] == tokens[i]:
                count += 1
            out.append(f"{count if count > 1 else ''}<{tokens[i]}>\n")
            i += count
        return "".join(out)

    def get_sequences(self) -> str:
        """``"<compound>:\\n<sequence>\\n"`` for every active chain."""
        sequences = self.protein.sequences(self.ph, self.active_chains, self.circular)
        return "".join(
            f"{self.protein.compound_string(chain)}:\n{sequences[chain]}\n"
            for chain in self.active_chains
        )

    def original_sequences(self) -> dict[str, str]:
        return self.protein.original_sequences()

    def current_sequences(self) -> dict[str, str]:
        return {chain: self.protein.raw_sequence(chain) for chain in self.protein.chain_ids}

    def override_sequence(self, chain_id: str, sequence: str) -> None:
        """
        Replace the sequence of one chain by one with the same residue count.

        Raises
        ------
        SequenceLengthError
            If the residue count differs.
        """
        self.protein.override_sequence(chain_id, sequence)
        self.masterdata.overridden_sequences = self.protein.overridden_sequences

    def has_changed_sequence(self) -> bool:
        return self.protein.has_overridden_sequences()

    def restore_original_sequences(self) -> None:
        self.protein.clear_overridden_sequences()
        self.masterdata.overridden_sequences = None

    def amino_acid(self, index: int) -> AminoAcid:
        """
        Amino acid at 1-based ``index`` over the active chains.

        Raises
        ------
        IndexOutOfRangeError
        """
        position = 1
        for chain in self.active_chains:
            for token in tokenize(self.protein.raw_sequence(chain)):
                if position <= index < position + token.frequency:
                    return self.catalog.get(token.code)
                position += token.frequency
        raise IndexOutOfRangeError(f"Residue index {index} out of range")

    # ------------------------------------------------------------------ #
    # Backbone particles
    # ------------------------------------------------------------------ #

    def ca_keys(self, chains: list[str] | None = None) -> list[str]:
        chains = self.active_chains if chains is None else chains
        return [
            ca_key(row)
            for atoms in self.protein.ca_atoms(chains).values()
            for _, row in atoms.iterrows()
        ]

    def indexed_ca_keys(self) -> list[str]:
        return [f"{i} - {key}" for i, key in enumerate(self.ca_keys(), start=1)]

    def number_of_backbone_particles(self) -> int:
        return sum(len(atoms) for atoms in self.protein.ca_atoms(self.active_chains).values())

    def ca_particles(self, chains: list[str] | None = None) -> list[str]:
        """Backbone particle name of every residue of ``chains``."""
        chains = self.protein.chain_ids if chains is None else chains
        names = []
        for spices in self.protein.spices(self.ph, chains, self.circular).values():
            for i, text in enumerate(split_fragments(spices)):
                fragment = self.pool.acquire(text)
                names.append(strip_markers(fragment.nodes[backbone_index(fragment, i == 0)].name))
                self.pool.release(fragment)
        return names

    def max_number_of_particles(self) -> int:
        count = 0
        for spices in self.protein.spices(self.ph, self.active_chains, self.circular).values():
            for text in split_fragments(spices):
                fragment = self.pool.acquire(text)
                count += len(fragment)
                self.pool.release(fragment)
        return count

    def _check_backbone_length(self, value: list, what: str) -> None:
        expected = self.number_of_backbone_particles()
        if len(value) != expected:
            raise SequenceLengthError(
                f"Backbone {what} has {len(value)} entries, expected {expected}"
            )

    @property
    def status(self) -> list[bool]:
        """Inclusion flag per backbone particle, all included by default."""
        status = self.masterdata.status
        if status is None:
            return [True] * self.number_of_backbone_particles()
        return status

    @status.setter
    def status(self, value: list[bool] | None) -> None:
        if value is not None:
            self._check_backbone_length(value, "status")
        self.masterdata.status = None if value is None else list(value)

    def has_status(self) -> bool:
        return self.masterdata.status is not None

    def clear_status(self) -> None:
        self.masterdata.status = None

    @property
    def segments(self) -> list[int]:
        """Segment per backbone particle, one segment by default."""
        segments = self.masterdata.segments
        if segments is None:
            return [0] * self.number_of_backbone_particles()
        return segments

    @segments.setter
    def segments(self, value: list[int] | None) -> None:
        if value is not None:
            self._check_backbone_length(value, "segments")
        self.masterdata.segments = None if value is None else list(value)

    def has_segments(self) -> bool:
        return self.masterdata.segments is not None

    def clear_segments(self) -> None:
        self.masterdata.segments = None

    def segments_by_chain(self) -> list[int]:
        """One segment per active chain, numbered from 1. Not stored."""
        result = []
        for ordinal, atoms in enumerate(self.protein.ca_atoms(self.active_chains).values(), start=1):
            result += [ordinal] * len(atoms)
        return result

    # ------------------------------------------------------------------ #
    # Geometry
    # ------------------------------------------------------------------ #

    def radius_of_gyration(self) -> float:
        return radius_of_gyration(self.protein.atom_coordinates(self.active_chains))

    def longest_distance(self) -> float:
        """Largest distance between two amino-acid atoms of the active chains."""
        return diameter(self.protein.atom_coordinates(self.active_chains))

    def mean_disulfide_bond_length(self) -> float:
        """Mean SG-SG distance of the disulfide bonds, -1 without bonds."""
        atoms = self.protein.atoms_named(["SG"], "CYS", self.active_chains)
        sulfur = {
            (row["ChainID"], int(row["Seq_Num"])): row[COORDINATES].to_numpy(dtype=float)
            for _, row in atoms.iterrows()
        }
        lengths = []
        for bond in self.protein.raw_ss_bonds:
            first = sulfur.get((bond.chain1, bond.resnum1))
            second = sulfur.get((bond.chain2, bond.resnum2))
            if first is not None and second is not None:
                lengths.append(float(np.linalg.norm(second - first)))
        if not lengths:
            return -1.0
        return float(np.mean(lengths))

    def mean_backbone_distance(self) -> float:
        """Mean distance of consecutive C-alpha atoms within the active chains."""
        distances = [
            np.linalg.norm(np.diff(xyz, axis=0), axis=1)
            for xyz in self.protein.ca_coordinates(self.active_chains).values()
            if len(xyz) > 1
        ]
        if not distances:
            return 0.0
        return float(np.concatenate(distances).mean())

    def centroid(self) -> Quantity:
        return self.protein.centroid(self.active_chains)

    def ca_position(self, key: str) -> Quantity:
        """
        Position of the C-alpha atom with ``key``.

        Raises
        ------
        PeptideError
            If no C-alpha atom has that key.
        """
        for atoms in self.protein.ca_atoms().values():
            for _, row in atoms.iterrows():
                if ca_key(row) == key:
                    return angstrom(row[COORDINATES].to_numpy(dtype=float))
        raise PeptideError(f"Unknown C-alpha key {key!r}")

    def z_matrices(self) -> dict[str, ZMatrix]:
        return self.protein.z_matrices(self.active_chains)

    def z_matrix(self) -> ZMatrix:
        return self.protein.z_matrix(self.active_chains)

    # ------------------------------------------------------------------ #
    # Tables
    # ------------------------------------------------------------------ #

    def coordinate_table(self, start_index: int = 1, ca_start_index: int = 1) -> TopologyTable:
        """
        Coordinate/connection table of the active chains.

        C-alpha positions are fitted into the sphere given by centre and
        radius (rotated first if a rotation is set). The last used indices
        are stored in the masterdata.

        Raises
        ------
        MissingDataError
            If centre or radius is not set or no chain is active.
        """
        center, radius = self.masterdata.center, self.masterdata.radius
        if center is None:
            raise MissingDataError("Protein center")
        if radius is None:
            raise MissingDataError("Protein radius")
        active = self.active_chains
        if not active:
            raise MissingDataError("Active chains")
        spices = self.protein.spices(self.ph, active, self.circular, unique_rings=True)
        coordinates = transform_coordinates(
            self.protein.ca_coordinates(active), center, radius, self.masterdata.rotation
        )
        keys = {
            chain: [ca_key(row) for _, row in atoms.iterrows()]
            for chain, atoms in self.protein.ca_atoms(active).items()
        }
        table = CoarseGrainedTopologyBuilder(self.pool).build(
            spices,
            coordinates,
            keys,
            start_index=start_index,
            backbone_start_index=ca_start_index,
            status=self.status,
            probes=self.probes,
        )
        self.masterdata.last_index = table.last_index
        self.masterdata.last_ca_index = table.last_backbone_index
        return table

    def coordinate_lines(self, start_index: int = 1, ca_start_index: int = 1) -> list[str]:
        return self.coordinate_table(start_index, ca_start_index).lines()

    @property
    def last_index(self) -> int:
        return self.masterdata.last_index

    @property
    def last_ca_index(self) -> int:
        return self.masterdata.last_ca_index

    def _backbone_positions(self) -> np.ndarray:
        xyz = list(self.protein.ca_coordinates(self.active_chains).values())
        if not xyz:
            return np.empty((0, 3))
        return np.concatenate(xyz)

    def max_distance_type(self) -> int:
        return DistanceForceTableGenerator.max_distance_type(self.status, self.segments)

    def distance_force_lines(
        self,
        distance_type: int,
        angstrom_to_dpd: float = 1.0,
        force_constant: float = 1.0,
    ) -> list[str]:
        """
        Distance restraints between included backbone particles
        ``distance_type`` apart within a segment (raw Å distances scaled by
        ``angstrom_to_dpd``).
        """
        return DistanceForceTableGenerator(self.decimals).lines(
            distance_type,
            self._backbone_positions(),
            self.status,
            self.segments,
            factor=angstrom_to_dpd,
            force_constant=force_constant,
        )

    def number_of_distance_forces(self, distance_type: int) -> int:
        return len(self.distance_force_lines(distance_type))
