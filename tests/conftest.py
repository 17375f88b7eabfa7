"""
Pytest configuration for the dpd_peptide test suite.

This file provides shared fixtures and markers for all tests:
- `slow` marker: Tests that take more than a few seconds
- `structure` marker: Tests that parse PDB text
- Default amino acid catalog
- Small synthetic PDB texts (one chain; two chains with a disulfide bond
  and two biological assemblies)
"""

import pytest

from dpd_peptide.catalog import AminoAcidCatalog


def pytest_configure(config):
    """Register custom markers to avoid warnings."""
    config.addinivalue_line("markers", "slow: marks tests as slow-running")
    config.addinivalue_line("markers", "structure: marks tests that parse PDB data")


# ---------------------------------------------------------------------------
# PDB text helpers
# ---------------------------------------------------------------------------


def atom_line(serial, name, res, chain, seq, x, y, z, element):
    """One fixed-column ATOM record."""
    return (
        f"ATOM  {serial:5d} {name:<4s} {res:3s} {chain}{seq:4d}    "
        f"{x:8.3f}{y:8.3f}{z:8.3f}  1.00  0.00          {element:>2s}"
    )


def ssbond_line(serial, chain1, res1, chain2, res2):
    return f"SSBOND {serial:3d} CYS {chain1} {res1:4d}    CYS {chain2} {res2:4d}"


def header_line(code):
    return f"HEADER    {'TEST PROTEIN':<40s}{'01-JAN-26':9s}   {code}"


def _residues(chain, residues, start_serial, y=0.0):
    """Atom lines for ``(name, seq, x)`` residues; Cys gets an SG atom."""
    lines = []
    serial = start_serial
    for res, seq, x in residues:
        lines.append(atom_line(serial, "N", res, chain, seq, x - 1.0, y, 0.5, "N"))
        lines.append(atom_line(serial + 1, "CA", res, chain, seq, x, y, 0.0, "C"))
        serial += 2
        if res == "CYS":
            lines.append(atom_line(serial, "SG", res, chain, seq, x, y + 1.0, 0.0, "S"))
            serial += 1
    return lines, serial


# ---------------------------------------------------------------------------
# Shared Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def catalog():
    """Default 20-residue catalog."""
    return AminoAcidCatalog()


@pytest.fixture
def one_chain_pdb():
    """Chain A: ALA-GLY-LYS with C-alpha atoms 3.8 Å apart on the x axis."""
    atoms, _ = _residues("A", [("ALA", 1, 0.0), ("GLY", 2, 3.8), ("LYS", 3, 7.6)], 1)
    lines = [
        header_line("1TST"),
        "TITLE     SYNTHETIC TRIPEPTIDE",
        "COMPND    MOL_ID: 1;",
        "COMPND   2 MOLECULE: TRIPEPTIDE;",
        "COMPND   3 CHAIN: A;",
        *atoms,
        "TER",
        "END",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def two_chain_pdb():
    """
    Chains A and B (ALA-CYS-GLY each) joined by one disulfide bond.

    Biological assembly 1 holds both chains, assembly 2 two copies of
    chain A (the second shifted by 20 Å along x).
    """
    atoms_a, serial = _residues("A", [("ALA", 1, 0.0), ("CYS", 2, 3.8), ("GLY", 3, 7.6)], 1)
    atoms_b, _ = _residues(
        "B", [("ALA", 1, 0.0), ("CYS", 2, 3.8), ("GLY", 3, 7.6)], serial, y=4.0
    )
    lines = [
        header_line("2TST"),
        "TITLE     SYNTHETIC DIMER",
        "COMPND    MOL_ID: 1;",
        "COMPND   2 MOLECULE: TRIPEPTIDE;",
        "COMPND   3 CHAIN: A, B;",
        "REMARK 350 BIOMOLECULE: 1",
        "REMARK 350 APPLY THE FOLLOWING TO CHAINS: A, B",
        "REMARK 350   BIOMT1   1  1.000000  0.000000  0.000000        0.00000",
        "REMARK 350   BIOMT2   1  0.000000  1.000000  0.000000        0.00000",
        "REMARK 350   BIOMT3   1  0.000000  0.000000  1.000000        0.00000",
        "REMARK 350 BIOMOLECULE: 2",
        "REMARK 350 APPLY THE FOLLOWING TO CHAINS: A",
        "REMARK 350   BIOMT1   1  1.000000  0.000000  0.000000        0.00000",
        "REMARK 350   BIOMT2   1  0.000000  1.000000  0.000000        0.00000",
        "REMARK 350   BIOMT3   1  0.000000  0.000000  1.000000        0.00000",
        "REMARK 350   BIOMT1   2  1.000000  0.000000  0.000000       20.00000",
        "REMARK 350   BIOMT2   2  0.000000  1.000000  0.000000        0.00000",
        "REMARK 350   BIOMT3   2  0.000000  0.000000  1.000000        0.00000",
        ssbond_line(1, "A", 2, "B", 2),
        *atoms_a,
        "TER",
        *atoms_b,
        "TER",
        "END",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def one_chain_file(tmp_path, one_chain_pdb):
    path = tmp_path / "one_chain.pdb"
    path.write_text(one_chain_pdb)
    return path


@pytest.fixture
def two_chain_file(tmp_path, two_chain_pdb):
    path = tmp_path / "two_chain.pdb"
    path.write_text(two_chain_pdb)
    return path
