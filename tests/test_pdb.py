"""
Tests for dpd_peptide.pdb.
"""

import pytest

from conftest import atom_line
from dpd_peptide.errors import PeptideError
from dpd_peptide.pdb import (
    PDB_ITEMS,
    SSBond,
    build_assembly,
    parse_pdb,
    pdb_structure,
    read_pdb,
)

pytestmark = pytest.mark.structure


class TestPdbStructure:
    """Tests for fixed-column atom parsing."""

    def test_fields(self):
        fields = pdb_structure(atom_line(12, "CA", "LYS", "B", 7, 1.5, -2.25, 30.0, "C"))
        record = dict(zip(PDB_ITEMS, fields))
        assert record["Records"] == "ATOM"
        assert record["AtomSeq"] == "12"
        assert record["AtomTyp"] == "CA"
        assert record["Alt_Loc"] == ""
        assert record["ResName"] == "LYS"
        assert record["ChainID"] == "B"
        assert record["Seq_Num"] == "7"
        assert float(record["Coord_X"]) == pytest.approx(1.5)
        assert float(record["Coord_Y"]) == pytest.approx(-2.25)
        assert float(record["Coord_Z"]) == pytest.approx(30.0)
        assert record["Element"] == "C"

    def test_short_line_is_padded(self):
        fields = pdb_structure("ATOM      1  N")
        assert len(fields) == len(PDB_ITEMS)
        assert fields[-1] == ""


class TestParsePdb:
    """Tests for parse_pdb()."""

    def test_header_records(self, one_chain_pdb):
        structure = parse_pdb(one_chain_pdb)
        assert structure.pdb_code == "1TST"
        assert structure.title == "SYNTHETIC TRIPEPTIDE"
        assert len(structure.compounds) == 1
        assert structure.compounds[0].name == "TRIPEPTIDE"
        assert structure.compounds[0].chains == ["A"]
        assert structure.text == one_chain_pdb

    def test_atoms(self, one_chain_pdb):
        atoms = parse_pdb(one_chain_pdb).atoms
        assert len(atoms) == 6
        assert atoms["Seq_Num"].tolist() == [1, 1, 2, 2, 3, 3]
        assert atoms["Coord_X"].dtype == float
        ca = atoms[atoms["AtomTyp"] == "CA"]
        assert ca["Coord_X"].tolist() == pytest.approx([0.0, 3.8, 7.6])

    def test_chain_ids(self, two_chain_pdb):
        assert parse_pdb(two_chain_pdb).chain_ids == ["A", "B"]

    def test_ss_bonds(self, two_chain_pdb):
        assert parse_pdb(two_chain_pdb).ss_bonds == [SSBond(1, "A", 2, "B", 2)]

    def test_assemblies(self, two_chain_pdb):
        assemblies = parse_pdb(two_chain_pdb).assemblies
        assert sorted(assemblies) == [1, 2]
        assert len(assemblies[1]) == 1
        assert assemblies[1][0].chains == ["A", "B"]
        assert len(assemblies[2]) == 2
        assert assemblies[2][1].chains == ["A"]
        assert assemblies[2][1].matrix.shape == (3, 4)
        assert assemblies[2][1].matrix[0, 3] == pytest.approx(20.0)

    def test_compound_lookup_ignores_model(self, two_chain_pdb):
        structure = parse_pdb(two_chain_pdb)
        assert structure.compound("B").name == "TRIPEPTIDE"
        assert structure.compound("A/2").name == "TRIPEPTIDE"
        assert structure.compound("Z") is None

    def test_first_model_only(self, one_chain_pdb):
        extra = atom_line(99, "CA", "ALA", "A", 9, 0.0, 0.0, 0.0, "C")
        text = one_chain_pdb.replace("TER", "ENDMDL\n" + extra)
        assert len(parse_pdb(text).atoms) == 6

    def test_alternate_locations_dropped(self, one_chain_pdb):
        duplicate = atom_line(50, "CA", "ALA", "A", 1, 9.0, 9.0, 9.0, "C")
        text = one_chain_pdb.replace("TER", duplicate + "\nTER")
        atoms = parse_pdb(text).atoms
        assert len(atoms) == 6
        assert atoms.loc[atoms["AtomSeq"] == 2, "Coord_X"].item() == pytest.approx(0.0)

    def test_no_atoms(self):
        with pytest.raises(PeptideError, match="No atom records"):
            parse_pdb("HEADER\nEND\n")

    def test_malformed_ssbond(self, one_chain_pdb):
        text = "SSBOND   X CYS A    2    CYS B    2\n" + one_chain_pdb
        with pytest.raises(PeptideError, match="SSBOND"):
            parse_pdb(text)

    def test_read_pdb(self, one_chain_file):
        assert read_pdb(one_chain_file).pdb_code == "1TST"


class TestBuildAssembly:
    """Tests for build_assembly()."""

    def test_models(self, two_chain_pdb):
        assembly = build_assembly(parse_pdb(two_chain_pdb), 2)
        assert assembly.is_biological_assembly
        assert assembly.number_of_models == 2
        assert assembly.chain_ids == ["A/1", "A/2"]

    def test_transform_applied(self, two_chain_pdb):
        atoms = build_assembly(parse_pdb(two_chain_pdb), 2).atoms
        ca = atoms[(atoms["AtomTyp"] == "CA") & (atoms["Seq_Num"] == 1)]
        by_chain = dict(zip(ca["ChainID"], ca["Coord_X"]))
        assert by_chain["A/1"] == pytest.approx(0.0)
        assert by_chain["A/2"] == pytest.approx(20.0)

    def test_disulfide_serials_unique(self, two_chain_pdb):
        bonds = build_assembly(parse_pdb(two_chain_pdb), 2).ss_bonds
        assert bonds == [SSBond(1, "A/1", 2, "B/1", 2), SSBond(2, "A/2", 2, "B/2", 2)]

    def test_single_model(self, two_chain_pdb):
        assembly = build_assembly(parse_pdb(two_chain_pdb), 1)
        assert assembly.chain_ids == ["A/1", "B/1"]
        assert assembly.number_of_models == 1

    def test_undefined_assembly(self, two_chain_pdb):
        with pytest.raises(PeptideError, match="not defined"):
            build_assembly(parse_pdb(two_chain_pdb), 3)
