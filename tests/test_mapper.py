"""
Tests for dpd_peptide.mapper.

This module tests the PdbToDpd structure mapper:
- SPICES and sequences of active chains, disulfide groups and assemblies
- Settings stored in the masterdata and restoring a mapper from it
- Coordinate and distance-force tables
- Geometric summaries
"""

import math

import numpy as np
import pytest
from openmm import unit

from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.errors import (
    IndexOutOfRangeError,
    MissingDataError,
    PeptideError,
    SequenceLengthError,
)
from dpd_peptide.geometry import nostrom
from dpd_peptide.mapper import PdbToDpd
from dpd_peptide.masterdata import ASYMMETRIC_UNIT

pytestmark = pytest.mark.structure

CHAIN_A_BRIDGED = "Nt(Ala)\n-Bb(CysS[1])\n-Gly-CtH"
CHAIN_A_FREE = "Nt(Ala)\n-Bb(CysH)\n-Gly-CtH"


@pytest.fixture
def one_chain(one_chain_pdb):
    return PdbToDpd(one_chain_pdb)


@pytest.fixture
def two_chain(two_chain_pdb):
    return PdbToDpd(two_chain_pdb)


@pytest.fixture
def placed(one_chain):
    one_chain.center = (0.0, 0.0, 0.0)
    one_chain.radius = 1.0
    return one_chain


def _columns(lines):
    return [(line.split()[1], line.split()[2], line.split()[6:]) for line in lines]


class TestConstruction:
    """Tests for creating and restoring mappers."""

    def test_defaults(self, one_chain, one_chain_pdb):
        assert one_chain.pdb == one_chain_pdb
        assert one_chain.pdb_code == "1TST"
        assert one_chain.title == "1TST - SYNTHETIC TRIPEPTIDE"
        assert one_chain.active_chains == ["A"]
        assert one_chain.biological_assembly == ASYMMETRIC_UNIT
        assert not one_chain.is_biological_assembly
        assert one_chain.biological_assembly_filter is None
        assert one_chain.number_of_models == 1

    def test_incomplete_catalog(self, one_chain_pdb):
        with pytest.raises(MissingDataError):
            PdbToDpd(one_chain_pdb, AminoAcidCatalog("1.0.0.0|1.0.0.0~Glycine~G~Gly~Gly~"))

    def test_from_file(self, one_chain_file):
        assert PdbToDpd.from_file(one_chain_file).pdb_code == "1TST"

    def test_protein_data_round_trip(self, two_chain):
        two_chain.ph = 7.0
        two_chain.set_active_chains(["A"])
        two_chain.override_sequence("A", "GCG")
        restored = PdbToDpd.from_protein_data(two_chain.get_protein_data())
        assert restored.active_chains == ["A"]
        assert restored.ph == 7.0
        assert restored.has_changed_sequence()
        assert restored.get_spices() == two_chain.get_spices()

    def test_protein_data_needs_pdb(self, one_chain):
        del one_chain.masterdata["ORIGINAL_PDB"]
        with pytest.raises(MissingDataError):
            PdbToDpd.from_protein_data(one_chain.get_protein_data())


class TestSpices:
    """Tests for get_spices() and get_sequences()."""

    def test_single_chain(self, one_chain):
        assert one_chain.get_spices() == "Nt(Ala)\n-Gly\n-Bb(Lys1-Lys)-CtH"

    def test_sequences(self, one_chain):
        assert one_chain.get_sequences() == "TRIPEPTIDE:\nAGK\n"

    def test_charged_sequences(self, one_chain):
        one_chain.ph = 7.0
        assert one_chain.has_ph_value()
        assert one_chain.get_sequences() == "TRIPEPTIDE:\nA{N+}GK{C-S+}\n"
        one_chain.clear_ph_value()
        assert one_chain.ph is None

    def test_disulfide_group(self, two_chain):
        """Chains joined by a disulfide bond form one bracketed group."""
        assert two_chain.get_spices() == (
            f"<(\n{CHAIN_A_BRIDGED})(\n{CHAIN_A_BRIDGED})>\n"
        )

    def test_disulfide_group_without_frequencies(self, two_chain):
        two_chain.use_frequency_spices = False
        assert two_chain.get_spices() == f"<(\n{CHAIN_A_BRIDGED})(\n{CHAIN_A_BRIDGED})>"

    def test_single_active_chain_drops_bond(self, two_chain):
        two_chain.set_active_chains(["A"])
        assert two_chain.get_spices() == CHAIN_A_FREE
        assert two_chain.get_sequences() == "TRIPEPTIDE - ChainID: A:\nACG\n"

    def test_no_active_chain(self, one_chain):
        one_chain.clear_chain_selection()
        assert not one_chain.has_chain_selection()
        assert one_chain.get_spices() == ""

    def test_unknown_chain(self, one_chain):
        with pytest.raises(PeptideError, match="Unknown chain"):
            one_chain.set_active_chains(["Z"])

    def test_circular(self, one_chain):
        one_chain.circular = True
        assert one_chain.get_spices() == "Bb[1](Ala)\n-Gly\n-Bb[1](Lys1-Lys)"

    def test_probes(self, one_chain):
        one_chain.probes = {"[GLY]2:A.CA #4": "Probe"}
        assert one_chain.has_probes()
        assert one_chain.get_spices() == "Nt(Ala)\n-Probe\n-Bb(Lys1-Lys)-CtH"
        one_chain.clear_probes()
        assert not one_chain.has_probes()


class TestBiologicalAssemblies:
    """Tests for switching to biological assemblies."""

    def test_available(self, two_chain, one_chain):
        assert two_chain.biological_assemblies() == [
            ASYMMETRIC_UNIT,
            "Biological Assembly 1",
            "Biological Assembly 2",
        ]
        assert one_chain.biological_assemblies() == [ASYMMETRIC_UNIT]

    def test_identical_models_use_frequency(self, two_chain):
        two_chain.set_biological_assembly("Biological Assembly 2")
        assert two_chain.is_biological_assembly
        assert two_chain.active_chains == ["A/1", "A/2"]
        assert two_chain.biological_assembly_filter == ' filter "BIOMOLECULE 2"'
        assert two_chain.number_of_models == 2
        assert two_chain.get_spices() == f"2<{CHAIN_A_FREE}>\n"

    def test_switch_resets_settings(self, two_chain, two_chain_pdb):
        two_chain.ph = 5.0
        two_chain.set_biological_assembly("Biological Assembly 1")
        assert two_chain.ph is None
        assert two_chain.pdb == two_chain_pdb
        assert two_chain.active_chains == ["A/1", "B/1"]

    def test_unknown_assembly(self, two_chain):
        with pytest.raises(PeptideError, match="Unknown biological assembly"):
            two_chain.set_biological_assembly("Biological Assembly 7")


class TestSequenceOverrides:
    """Tests for override_sequence() and amino_acid()."""

    def test_override(self, one_chain):
        one_chain.override_sequence("A", "GGG")
        assert one_chain.has_changed_sequence()
        assert one_chain.current_sequences() == {"A": "GGG"}
        assert one_chain.original_sequences() == {"A": "AGK"}
        assert one_chain.get_spices() == "Nt-Gly\n-Gly\n-Gly-CtH"
        one_chain.restore_original_sequences()
        assert not one_chain.has_changed_sequence()
        assert one_chain.masterdata.overridden_sequences == {}

    def test_override_wrong_length(self, one_chain):
        with pytest.raises(SequenceLengthError):
            one_chain.override_sequence("A", "GGGG")

    def test_amino_acid(self, one_chain):
        assert one_chain.amino_acid(1).name == "Alanine"
        assert one_chain.amino_acid(3).name == "Lysine"
        with pytest.raises(IndexOutOfRangeError):
            one_chain.amino_acid(4)

    def test_amino_acid_with_repeat_count(self, one_chain):
        one_chain.override_sequence("A", "A2G")
        assert one_chain.amino_acid(3).name == "Glycine"


class TestBackboneParticles:
    """Tests for C-alpha keys, backbone names, status and segments."""

    def test_ca_keys(self, one_chain):
        assert one_chain.ca_keys() == [
            "[ALA]1:A.CA #2",
            "[GLY]2:A.CA #4",
            "[LYS]3:A.CA #6",
        ]
        assert one_chain.indexed_ca_keys()[0] == "1 - [ALA]1:A.CA #2"

    def test_ca_particles(self, one_chain):
        assert one_chain.ca_particles() == ["Nt", "Gly", "Bb"]

    def test_counts(self, one_chain):
        assert one_chain.number_of_backbone_particles() == 3
        assert one_chain.max_number_of_particles() == 7

    def test_status_defaults(self, one_chain):
        assert one_chain.status == [True, True, True]
        assert not one_chain.has_status()
        one_chain.status = [True, False, True]
        assert one_chain.has_status()
        one_chain.clear_status()
        assert one_chain.status == [True, True, True]

    def test_segments(self, two_chain):
        assert two_chain.segments == [0] * 6
        assert two_chain.segments_by_chain() == [1, 1, 1, 2, 2, 2]
        two_chain.segments = two_chain.segments_by_chain()
        assert two_chain.has_segments()
        two_chain.set_active_chains(["A"])
        assert not two_chain.has_segments()

    def test_status_length_checked(self, one_chain):
        with pytest.raises(SequenceLengthError, match="expected 3"):
            one_chain.status = [True, False]

    def test_segments_length_checked(self, two_chain):
        with pytest.raises(SequenceLengthError, match="expected 6"):
            two_chain.segments = [1, 1, 1]


class TestSettings:
    """Tests for placement, rotation and seed settings."""

    def test_rotation(self, one_chain):
        assert one_chain.rotation == (0.0, 0.0, 0.0)
        one_chain.rotation = (0.1, 0.2, 0.3)
        assert one_chain.rotation == pytest.approx((0.1, 0.2, 0.3), abs=1e-5)

    def test_default_rotation(self, one_chain):
        one_chain.rotation = (0.1, 0.2, 0.3)
        one_chain.copy_rotation_to_default()
        one_chain.set_rotation_quaternion((0.0, 0.0, 0.0, 1.0))
        assert one_chain.rotation == pytest.approx((0.0, 0.0, 0.0))
        one_chain.set_default_rotation()
        assert one_chain.rotation == pytest.approx((0.1, 0.2, 0.3), abs=1e-5)

    def test_random_orientation_is_seeded(self, one_chain_pdb):
        first, second = PdbToDpd(one_chain_pdb), PdbToDpd(one_chain_pdb)
        first.seed = second.seed = 42
        first.set_random_orientation()
        second.set_random_orientation()
        assert first.masterdata.rotation == second.masterdata.rotation
        first.set_random_orientation()
        assert first.masterdata.rotation != second.masterdata.rotation

    def test_decimals(self, one_chain):
        one_chain.decimals = 2
        assert one_chain.distance_force_lines(1)[0] == "<1> <2> 3.80 1.00"


class TestCoordinateTable:
    """Tests for coordinate_table() and coordinate_lines()."""

    def test_requires_center_and_radius(self, one_chain):
        with pytest.raises(MissingDataError, match="center"):
            one_chain.coordinate_lines()
        one_chain.center = (0.0, 0.0, 0.0)
        with pytest.raises(MissingDataError, match="radius"):
            one_chain.coordinate_lines()

    def test_requires_active_chains(self, placed):
        placed.clear_chain_selection()
        with pytest.raises(MissingDataError, match="Active chains"):
            placed.coordinate_lines()

    def test_lines(self, placed):
        assert _columns(placed.coordinate_lines()) == [
            ("Nt", "<1>", ["1", "2"]),
            ("Ala", "0", ["-1"]),
            ("Gly", "<2>", ["-2", "1"]),
            ("Bb", "<3>", ["-1", "1", "3"]),
            ("Lys1", "0", ["-1", "1"]),
            ("Lys", "0", ["-1"]),
            ("CtH", "0", ["-3"]),
        ]
        assert placed.last_index == 7
        assert placed.last_ca_index == 3

    def test_positions_fitted_into_sphere(self, placed):
        table = placed.coordinate_table()
        xs = [record.position[0] for record in table.records]
        assert xs[0] == pytest.approx(-1.0)
        assert xs[2] == pytest.approx(0.0)
        assert xs[-1] == pytest.approx(1.0)

    def test_start_indices(self, placed):
        lines = placed.coordinate_lines(start_index=101, ca_start_index=11)
        assert lines[0].startswith("101 Nt <11> ")
        assert placed.last_index == 107
        assert placed.last_ca_index == 13

    def test_circular_ring_connection(self, placed):
        placed.circular = True
        columns = _columns(placed.coordinate_lines())
        assert columns[0] == ("Bb", "<1>", ["1", "2", "3"])
        assert columns[3] == ("Bb", "<3>", ["-1", "1", "-3"])

    def test_circular_rings_of_several_chains(self, two_chain):
        """Each chain of an assembly closes its own ring."""
        two_chain.set_biological_assembly("Biological Assembly 2")
        two_chain.circular = True
        two_chain.center, two_chain.radius = (0.0, 0.0, 0.0), 5.0
        columns = _columns(two_chain.coordinate_lines())
        assert len(columns) == 10
        for first, last in [(0, 4), (5, 9)]:
            assert columns[first][0] == "Bb"
            assert columns[last][0] == "Gly"
            assert "4" in columns[first][2]
            assert "-4" in columns[last][2]

    def test_disulfide_connection(self, two_chain):
        two_chain.center, two_chain.radius = (0.0, 0.0, 0.0), 5.0
        columns = _columns(two_chain.coordinate_lines())
        assert columns[3] == ("CysS", "0", ["-1", "6"])
        assert columns[9] == ("CysS", "0", ["-1", "-6"])

    def test_probe_in_table(self, placed):
        placed.probes = {"[LYS]3:A.CA #6": "Probe"}
        assert _columns(placed.coordinate_lines())[3][0] == "Probe"


class TestDistanceForces:
    """Tests for distance-force tables."""

    def test_neighbours(self, one_chain):
        assert one_chain.distance_force_lines(1) == [
            "<1> <2> 3.800000 1.000000",
            "<2> <3> 3.800000 1.000000",
        ]
        assert one_chain.number_of_distance_forces(1) == 2

    def test_max_distance_type(self, one_chain, two_chain):
        assert one_chain.max_distance_type() == 2
        two_chain.segments = two_chain.segments_by_chain()
        assert two_chain.max_distance_type() == 2

    def test_empty_table(self, one_chain):
        assert one_chain.distance_force_lines(5) == []

    def test_excluded_particle(self, one_chain):
        one_chain.status = [True, False, True]
        assert one_chain.distance_force_lines(1) == ["<1> <2> 7.600000 1.000000"]

    def test_conversion(self, one_chain):
        lines = one_chain.distance_force_lines(2, angstrom_to_dpd=0.5, force_constant=3.0)
        assert lines == ["<1> <3> 3.800000 3.000000"]


class TestGeometry:
    """Tests for geometric summaries."""

    def test_mean_backbone_distance(self, one_chain):
        assert one_chain.mean_backbone_distance() == pytest.approx(3.8)

    def test_longest_distance(self, one_chain):
        assert one_chain.longest_distance() == pytest.approx(math.hypot(8.6, 0.5))

    def test_radius_of_gyration(self, one_chain):
        assert one_chain.radius_of_gyration() > 0.0

    def test_disulfide_length(self, two_chain, one_chain):
        assert two_chain.has_disulfide_bonds()
        assert two_chain.mean_disulfide_bond_length() == pytest.approx(4.0)
        assert not one_chain.has_disulfide_bonds()
        assert one_chain.mean_disulfide_bond_length() == -1.0

    def test_centroid(self, one_chain):
        assert np.allclose(nostrom(one_chain.centroid()), [3.3, 0.0, 0.25])

    def test_ca_position(self, one_chain):
        position = one_chain.ca_position("[GLY]2:A.CA #4")
        assert position.unit == unit.angstrom
        assert np.allclose(nostrom(position), [3.8, 0.0, 0.0])
        with pytest.raises(PeptideError):
            one_chain.ca_position("[GLY]9:A.CA #99")

    def test_z_matrices(self, two_chain):
        assert sorted(two_chain.z_matrices()) == ["A", "B"]
        assert len(two_chain.z_matrix()) == 5

    def test_names(self, two_chain):
        assert two_chain.compound_names() == [
            "TRIPEPTIDE - ChainID: A",
            "TRIPEPTIDE - ChainID: B",
        ]
        assert two_chain.name_chain_map()["TRIPEPTIDE - ChainID: B"] == "B"
