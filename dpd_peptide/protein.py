"""
dpd_peptide.protein
===================

Per-chain view of a parsed structure in terms of the amino-acid catalog.

:class:`Protein` turns the atom table of a
:class:`~dpd_peptide.pdb.ProteinStructure` into one-letter chain sequences
(with disulfide and ring-closure markers and optional pH charging), chain
SPICES and C-alpha data. Only residues with a ``CA`` atom whose name is in the
catalog take part; chains without any such residue are ignored.

Examples
--------
>>> from dpd_peptide.catalog import AminoAcidCatalog
>>> from dpd_peptide.pdb import read_pdb
>>> from dpd_peptide.protein import Protein
>>> protein = Protein(read_pdb("data/1crn.pdb"), AminoAcidCatalog())  # doctest: +SKIP
>>> protein.sequences()["A"][:8]  # doctest: +SKIP
'TTC[1]C[2]PSI'
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from openmm.unit import Quantity

from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.charges import PeptideChargeAssigner
from dpd_peptide.converter import PeptideToSpicesConverter
from dpd_peptide.errors import MissingDataError, SequenceLengthError
from dpd_peptide.geometry import ZMatrix, angstrom
from dpd_peptide.notation import count_residues
from dpd_peptide.pdb import COORDINATES, ProteinStructure, SSBond
from dpd_peptide.validator import normalize


def ca_key(row: pd.Series) -> str:
    """C-alpha key ``[RES]seq:chain.CA #serial`` of one CA atom row."""
    return f"[{row['ResName']}]{row['Seq_Num']}:{row['ChainID']}.CA #{row['AtomSeq']}"


class Protein:
    """
    Catalog-aware protein built from a parsed structure.

    Parameters
    ----------
    structure : ProteinStructure
        Parsed PDB data (asymmetric unit or biological assembly).
    catalog : AminoAcidCatalog
        Complete amino-acid catalog.

    Raises
    ------
    MissingDataError
        If the catalog is incomplete.
    """

    def __init__(self, structure: ProteinStructure, catalog: AminoAcidCatalog):
        if not catalog.is_complete:
            raise MissingDataError("Complete amino acid catalog")
        self.structure = structure
        self.catalog = catalog
        self._converter = PeptideToSpicesConverter(catalog)
        self._charges = PeptideChargeAssigner(catalog)
        self._overridden: dict[str, str] = {}

        atoms = structure.atoms
        known = atoms["ResName"].str.upper().map(catalog.has_three_letter)
        self._atoms = atoms[known].reset_index(drop=True)
        ca = self._atoms[self._atoms["AtomTyp"] == "CA"]
        self._ca = {
            chain: group.reset_index(drop=True)
            for chain, group in ca.groupby("ChainID", sort=True)
        }
        self.chain_ids: list[str] = sorted(self._ca)

        self._ss_bonds: dict[int, SSBond] = {}
        for bond in structure.ss_bonds:
            self._ss_bonds.setdefault(bond.serial, bond)

    # ------------------------------------------------------------------ #
    # Names
    # ------------------------------------------------------------------ #

    @property
    def pdb_code(self) -> str:
        return self.structure.pdb_code

    @property
    def title(self) -> str:
        if self.structure.title:
            return f"{self.pdb_code} - {self.structure.title}"
        return self.pdb_code

    @property
    def number_of_models(self) -> int:
        return self.structure.number_of_models

    def compound_string(self, chain_id: str) -> str:
        """Unique display name of a chain."""
        compound = self.structure.compound(chain_id)
        if compound is None:
            return f"ChainID: {chain_id}"
        if len(self.chain_ids) <= 1:
            return compound.name
        return f"{compound.name} - ChainID: {chain_id}"

    def chain_names(self) -> dict[str, str]:
        return {chain: self.compound_string(chain) for chain in self.chain_ids}

    def compound_names(self) -> list[str]:
        return [self.compound_string(chain) for chain in self.chain_ids]

    # ------------------------------------------------------------------ #
    # Sequences
    # ------------------------------------------------------------------ #

    def start_residue_number(self, chain_id: str) -> int:
        return int(self._ca[chain_id]["Seq_Num"].iloc[0])

    def atom_sequence(self, chain_id: str) -> str:
        names = self._ca[chain_id]["ResName"]
        return "".join(self.catalog.three_to_one(name) for name in names)

    def raw_sequence(self, chain_id: str) -> str:
        """Overridden sequence of a chain if there is one, else the structure's."""
        return self._overridden.get(chain_id) or self.atom_sequence(chain_id)

    def original_sequences(self) -> dict[str, str]:
        return {chain: self.atom_sequence(chain) for chain in self.chain_ids}

    @property
    def overridden_sequences(self) -> dict[str, str]:
        return dict(self._overridden)

    def override_sequence(self, chain_id: str, sequence: str) -> None:
        """
        Replace the sequence of one chain.

        Raises
        ------
        SequenceLengthError
            If the residue count differs from the chain's.
        """
        sequence = normalize(sequence)
        expected = len(self._ca[chain_id])
        if count_residues(sequence) != expected:
            raise SequenceLengthError(
                f"Sequence for chain {chain_id} must have {expected} residues"
            )
        self._overridden[chain_id] = sequence

    def clear_overridden_sequences(self) -> None:
        self._overridden.clear()

    def has_overridden_sequences(self) -> bool:
        return bool(self._overridden)

    def _with_bond_markers(self, chain_id: str, sequence: str, chains: list[str]) -> str:
        bonds = [
            bond
            for bond in self._ss_bonds.values()
            if bond.chain1 in chains and bond.chain2 in chains
        ]
        if not bonds:
            return sequence
        out = []
        index = self.start_residue_number(chain_id) - 1
        inside = False
        for c in sequence:
            out.append(c)
            if c == "{":
                inside = True
            elif c == "}":
                inside = False
            elif not inside and self.catalog.has_one_letter(c):
                index += 1
                for bond in bonds:
                    if bond.chain1 == chain_id and bond.resnum1 == index:
                        out.append(f"[{bond.serial}]")
                    if bond.chain2 == chain_id and bond.resnum2 == index:
                        out.append(f"[{bond.serial}]")
        return "".join(out)

    @staticmethod
    def _make_circular(sequence: str) -> str:
        sequence = sequence[:1] + "[*]" + sequence[1:]
        last = 0
        inside = False
        for i, c in enumerate(sequence):
            if c == "{":
                inside = True
            elif c == "}":
                inside = False
            elif c.isalpha() and not inside:
                last = i
        return sequence[: last + 1] + "[*]" + sequence[last + 1 :]

    def sequences(
        self,
        ph: float | None = None,
        chains: list[str] | None = None,
        circular: bool = False,
    ) -> dict[str, str]:
        """
        One-letter sequence per chain.

        Parameters
        ----------
        ph : float, optional
            Charge the sequences for this pH.
        chains : list of str, optional
            Chains to return and to consider for disulfide bonds. Defaults to
            all chains.
        circular : bool, default=False
            Close every chain into a ring.

        Returns
        -------
        dict
            Chain ID to sequence. A disulfide bond ``[serial]`` is marked only
            if both of its chains are included.
        """
        chains = self.chain_ids if chains is None else chains
        result = {}
        for chain in chains:
            sequence = self._with_bond_markers(chain, self.raw_sequence(chain), chains)
            if circular:
                sequence = self._make_circular(sequence)
            if ph is not None:
                sequence = self._charges.charge(sequence, ph, circular)
            result[chain] = sequence
        return result

    def spices(
        self,
        ph: float | None = None,
        chains: list[str] | None = None,
        circular: bool = False,
        unique_rings: bool = False,
    ) -> dict[str, str]:
        """
        Line-broken SPICES per chain (see :meth:`sequences`).

        With ``unique_rings`` every chain closes its ring with its own bond
        index, placed after the highest disulfide serial, so that the rings
        of all chains can be resolved in one table.
        """
        sequences = self.sequences(ph, chains, circular)
        base = max((bond.serial for bond in self._bonds_within(list(sequences))), default=0)
        return {
            chain: self._converter.convert(
                sequence, line_break=True, ring_index=base + i + 1 if unique_rings else None
            )
            for i, (chain, sequence) in enumerate(sequences.items())
        }

    # ------------------------------------------------------------------ #
    # Disulfide bonds
    # ------------------------------------------------------------------ #

    @property
    def raw_ss_bonds(self) -> list[SSBond]:
        return list(self._ss_bonds.values())

    def _bonds_within(self, chains: list[str]) -> list[SSBond]:
        return [
            bond
            for bond in self._ss_bonds.values()
            if bond.chain1 in chains and bond.chain2 in chains
        ]

    def ss_bonds(self, chains: list[str] | None = None) -> list[str]:
        """Readable description of the disulfide bonds within ``chains``."""
        chains = self.chain_ids if chains is None else chains
        return [
            f"{self.compound_string(b.chain1)} - ResNo.: {b.resnum1} | "
            f"{self.compound_string(b.chain2)} - ResNo.: {b.resnum2}"
            for b in self._bonds_within(chains)
        ]

    def chain_connections(self, chains: list[str] | None = None) -> list[tuple[str, str]]:
        chains = self.chain_ids if chains is None else chains
        return [(b.chain1, b.chain2) for b in self._bonds_within(chains)]

    # ------------------------------------------------------------------ #
    # Atoms and coordinates
    # ------------------------------------------------------------------ #

    def ca_atoms(self, chains: list[str] | None = None) -> dict[str, pd.DataFrame]:
        chains = self.chain_ids if chains is None else chains
        return {chain: self._ca[chain] for chain in chains}

    def ca_coordinates(self, chains: list[str] | None = None) -> dict[str, np.ndarray]:
        """Raw C-alpha coordinates (Å) per chain."""
        return {
            chain: atoms[COORDINATES].to_numpy(dtype=float, copy=True)
            for chain, atoms in self.ca_atoms(chains).items()
        }

    def ca_positions(self, chain_id: str) -> Quantity:
        return angstrom(self._ca[chain_id][COORDINATES].to_numpy(dtype=float))

    def atom_coordinates(self, chains: list[str] | None = None) -> np.ndarray:
        """Coordinates of every amino-acid atom of ``chains``."""
        chains = self.chain_ids if chains is None else chains
        atoms = self._atoms[self._atoms["ChainID"].isin(chains)]
        return atoms[COORDINATES].to_numpy(dtype=float)

    def atoms_named(self, names: list[str], residue: str, chains: list[str]) -> pd.DataFrame:
        atoms = self._atoms
        return atoms[
            atoms["ChainID"].isin(chains)
            & atoms["AtomTyp"].isin(names)
            & (atoms["ResName"].str.upper() == residue)
        ]

    def centroid(self, chains: list[str] | None = None) -> Quantity:
        """Unweighted mean position of the amino-acid atoms of ``chains``."""
        return angstrom(self.atom_coordinates(chains).mean(axis=0))

    def z_matrices(self, chains: list[str] | None = None) -> dict[str, ZMatrix]:
        return {
            chain: ZMatrix.from_points(xyz)
            for chain, xyz in self.ca_coordinates(chains).items()
        }

    def z_matrix(self, chains: list[str] | None = None) -> ZMatrix:
        """One z-matrix over the concatenated C-alpha atoms of ``chains``."""
        return ZMatrix.from_points(np.concatenate(list(self.ca_coordinates(chains).values())))
