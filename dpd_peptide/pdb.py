"""
dpd_peptide.pdb
===============

Minimal PDB reader feeding the structure mapper.

Atom records are parsed with fixed column positions into a pandas DataFrame
(one row per atom). Header records supply the PDB code (``HEADER``), title
(``TITLE``), molecule names per chain (``COMPND``), disulfide bonds
(``SSBOND``) and biological assembly transforms (``REMARK 350``). Only the
first ``MODEL`` of a multi-model file is read.

Functions
---------
pdb_structure
    Split one atom line into fixed fields.
parse_pdb, read_pdb
    Build a :class:`ProteinStructure` from text or a file.
build_assembly
    Apply the BIOMT operations of one biological assembly.

Examples
--------
>>> from dpd_peptide.pdb import read_pdb
>>> structure = read_pdb("data/1crn.pdb")  # doctest: +SKIP
>>> structure.chain_ids  # doctest: +SKIP
['A']
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pandas as pd

from dpd_peptide.errors import PeptideError

logger = logging.getLogger(__name__)

PDB_ITEMS: list[str] = [
    "Records",  # "ATOM" or "HETATM"
    "AtomSeq",  # serial
    "AtomTyp",  # atom name
    "Alt_Loc",  # altloc flag
    "ResName",  # residue name
    "ChainID",  # chain identifier
    "Seq_Num",  # residue sequence number
    "InsCode",  # insertion code
    "Coord_X",
    "Coord_Y",
    "Coord_Z",
    "Element",
]

COORDINATES = ["Coord_X", "Coord_Y", "Coord_Z"]


def _pad80(s: str) -> str:
    return (s.rstrip("\n") + " " * 80)[:80]


def pdb_structure(line: str) -> list[str]:
    """Parse one ATOM/HETATM line into the fields of :data:`PDB_ITEMS`."""
    s = _pad80(line)
    return [
        s[0:6].strip(),
        s[6:11].strip(),
        s[12:16].strip(),
        s[16].strip(),
        s[17:20].strip(),
        s[21].strip(),
        s[22:26].strip(),
        s[26].strip(),
        s[30:38].strip(),
        s[38:46].strip(),
        s[46:54].strip(),
        s[76:78].strip(),
    ]


@dataclass
class SSBond:
    """Disulfide bond between two cysteines."""

    serial: int
    chain1: str
    resnum1: int
    chain2: str
    resnum2: int

    def in_model(self, model: int, serial_offset: int = 0) -> SSBond:
        """Copy of the bond in assembly model ``model``."""
        return SSBond(
            self.serial + serial_offset,
            f"{self.chain1}/{model}",
            self.resnum1,
            f"{self.chain2}/{model}",
            self.resnum2,
        )


@dataclass
class Compound:
    """Molecule of a ``COMPND`` record."""

    mol_id: int
    name: str
    chains: list[str] = field(default_factory=list)


@dataclass
class AssemblyOperation:
    """One BIOMT transform and the chains it applies to."""

    chains: list[str]
    matrix: np.ndarray  # 3x4, rotation | translation


@dataclass
class ProteinStructure:
    """
    Parsed structure: atoms plus the header data the mapper needs.

    Attributes
    ----------
    atoms : pandas.DataFrame
        One row per atom, columns :data:`PDB_ITEMS` with float coordinates
        and integer ``AtomSeq`` / ``Seq_Num``.
    pdb_code, title : str
        From ``HEADER`` and ``TITLE``.
    compounds : list of Compound
    ss_bonds : list of SSBond
    assemblies : dict
        Biological assembly number to its operations.
    is_biological_assembly : bool
        True for structures produced by :func:`build_assembly`; chain IDs are
        then ``"<chain>/<model>"``.
    number_of_models : int
    text : str
        The PDB text the structure was read from.
    """

    atoms: pd.DataFrame
    pdb_code: str = ""
    title: str = ""
    compounds: list[Compound] = field(default_factory=list)
    ss_bonds: list[SSBond] = field(default_factory=list)
    assemblies: dict[int, list[AssemblyOperation]] = field(default_factory=dict)
    is_biological_assembly: bool = False
    number_of_models: int = 1
    text: str = ""

    @property
    def chain_ids(self) -> list[str]:
        return sorted(self.atoms["ChainID"].unique().tolist())

    def compound(self, chain_id: str) -> Compound | None:
        """Compound of a chain (model suffix ignored)."""
        base = chain_id.split("/")[0]
        for compound in self.compounds:
            if base in compound.chains:
                return compound
        return None


# --------------------------- Header records ---------------------------


def _continued(lines: Sequence[str], record: str) -> str:
    """Concatenate the text columns of a continued record."""
    parts = [_pad80(line)[10:80].strip() for line in lines if line.startswith(record)]
    return " ".join(parts).strip()


def _parse_compounds(lines: Sequence[str]) -> list[Compound]:
    text = _continued(lines, "COMPND")
    compounds: list[Compound] = []
    for item in text.split(";"):
        key, _, value = item.partition(":")
        key, value = key.strip().upper(), value.strip()
        if key == "MOL_ID":
            compounds.append(Compound(int(value), ""))
        elif compounds and key == "MOLECULE":
            compounds[-1].name = value
        elif compounds and key == "CHAIN":
            compounds[-1].chains = [c.strip() for c in value.split(",") if c.strip()]
    return compounds


def _parse_ss_bonds(lines: Sequence[str]) -> list[SSBond]:
    bonds = []
    for line in lines:
        if not line.startswith("SSBOND"):
            continue
        s = _pad80(line)
        try:
            bonds.append(
                SSBond(
                    int(s[7:10]),
                    s[15].strip(),
                    int(s[17:21]),
                    s[29].strip(),
                    int(s[31:35]),
                )
            )
        except ValueError as exc:
            raise PeptideError(f"Invalid SSBOND record: {line.strip()!r}") from exc
    return bonds


_BIOMOLECULE = re.compile(r"BIOMOLECULE:\s*(\d+)")
_CHAINS = re.compile(r"(?:APPLY THE FOLLOWING TO CHAINS|AND CHAINS):\s*(.*)")


def _parse_assemblies(lines: Sequence[str]) -> dict[int, list[AssemblyOperation]]:
    assemblies: dict[int, list[AssemblyOperation]] = {}
    number = 0
    chains: list[str] = []
    rows: list[list[float]] = []
    for line in lines:
        if not line.startswith("REMARK 350"):
            continue
        body = line[10:].strip()
        molecule = _BIOMOLECULE.search(body)
        applied = _CHAINS.search(body)
        if molecule:
            number = int(molecule.group(1))
            assemblies[number] = []
            chains = []
        elif applied:
            if body.startswith("APPLY"):
                chains = []
            chains += [c.strip() for c in applied.group(1).split(",") if c.strip()]
        elif body.startswith("BIOMT") and number:
            # BIOMTn  serial  m1 m2 m3  t
            values = body.split()[2:6]
            rows.append([float(v) for v in values])
            if len(rows) == 3:
                assemblies[number].append(AssemblyOperation(list(chains), np.array(rows)))
                rows = []
    return assemblies


# --------------------------- Atom records ---------------------------


def _parse_atoms(lines: Sequence[str]) -> pd.DataFrame:
    data: list[list[str]] = []
    for line in lines:
        if line.startswith("ENDMDL"):
            break
        if line.startswith(("ATOM", "HETATM")):
            data.append(pdb_structure(line))
    df = pd.DataFrame(data, columns=PDB_ITEMS)
    df[COORDINATES] = df[COORDINATES].astype(float)
    df["AtomSeq"] = pd.to_numeric(df["AtomSeq"], errors="coerce").fillna(0).astype(int)
    df["Seq_Num"] = pd.to_numeric(df["Seq_Num"], errors="coerce").fillna(0).astype(int)
    # keep the first alternate location of every atom
    df = df.drop_duplicates(subset=["ChainID", "Seq_Num", "InsCode", "AtomTyp"], keep="first")
    return df.reset_index(drop=True)


def parse_pdb(text: str) -> ProteinStructure:
    """
    Parse PDB text.

    Raises
    ------
    PeptideError
        If the text holds no atom records or a malformed SSBOND.
    """
    lines = text.splitlines()
    atoms = _parse_atoms(lines)
    if atoms.empty:
        raise PeptideError("No atom records found in PDB data")

    pdb_code = ""
    for line in lines:
        if line.startswith("HEADER"):
            pdb_code = _pad80(line)[62:66].strip()
            break

    return ProteinStructure(
        atoms=atoms,
        pdb_code=pdb_code,
        title=_continued(lines, "TITLE"),
        compounds=_parse_compounds(lines),
        ss_bonds=_parse_ss_bonds(lines),
        assemblies=_parse_assemblies(lines),
        text=text,
    )


def read_pdb(path: str | Path) -> ProteinStructure:
    return parse_pdb(Path(path).read_text())


def build_assembly(structure: ProteinStructure, number: int) -> ProteinStructure:
    """
    Reconstruct biological assembly ``number``.

    Every BIOMT operation becomes one model: the chains it applies to are
    copied, transformed and renamed ``"<chain>/<model>"``. Disulfide bonds are
    copied into every model with serials shifted per model so they stay
    unique.

    Raises
    ------
    PeptideError
        If the structure does not define that assembly.
    """
    operations = structure.assemblies.get(number)
    if not operations:
        raise PeptideError(f"Biological assembly {number} is not defined")

    frames = []
    bonds: list[SSBond] = []
    for model, operation in enumerate(operations, start=1):
        chains = structure.atoms[structure.atoms["ChainID"].isin(operation.chains)].copy()
        xyz = chains[COORDINATES].to_numpy()
        rotation, translation = operation.matrix[:, :3], operation.matrix[:, 3]
        chains[COORDINATES] = xyz @ rotation.T + translation
        chains["ChainID"] = chains["ChainID"] + f"/{model}"
        frames.append(chains)
        offset = max((b.serial for b in structure.ss_bonds), default=0) * (model - 1)
        bonds += [bond.in_model(model, offset) for bond in structure.ss_bonds]
    logger.debug("Built biological assembly %d with %d models", number, len(operations))

    return ProteinStructure(
        atoms=pd.concat(frames, ignore_index=True),
        pdb_code=structure.pdb_code,
        title=structure.title,
        compounds=structure.compounds,
        ss_bonds=bonds,
        assemblies=structure.assemblies,
        is_biological_assembly=True,
        number_of_models=len(operations),
        text=structure.text,
    )
