"""
Tests for the dpd_peptide.run Python API.
"""

import logging

import pytest

from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.errors import PeptideError
from dpd_peptide.masterdata import ASYMMETRIC_UNIT, PdbToDpdMasterdata
from dpd_peptide.run import PdbToDpdConfig, PdbToDpdResult, run_pdb_to_dpd

pytestmark = pytest.mark.structure


@pytest.fixture(autouse=True)
def in_tmp_path(tmp_path, monkeypatch):
    """Run every job inside tmp_path so log files land there."""
    monkeypatch.chdir(tmp_path)


class TestPdbToDpdConfig:
    """Tests for the PdbToDpdConfig dataclass."""

    def test_config_defaults(self):
        """PdbToDpdConfig has sensible defaults."""
        config = PdbToDpdConfig(pdb_path="test.pdb")
        assert config.pdb_path == "test.pdb"
        assert config.name == "dpd_peptide"
        assert config.ph is None
        assert config.active_chains is None
        assert config.biological_assembly == ASYMMETRIC_UNIT
        assert config.center == (0.0, 0.0, 0.0)
        assert config.radius == 10.0
        assert config.rotation is None
        assert config.random_orientation is False
        assert config.decimals == 6
        assert config.use_frequency_spices is True
        assert config.distance_types is None
        assert config.probes == {}
        assert config.verbose is True

    def test_config_custom_values(self):
        """PdbToDpdConfig accepts custom values."""
        config = PdbToDpdConfig(
            pdb_path="data/1crn.pdb",
            name="crambin",
            ph=7.0,
            active_chains=["A"],
            center=(20.0, 20.0, 20.0),
            radius=8.0,
            distance_types=[1, 2],
            log_level="DEBUG",
        )
        assert config.ph == 7.0
        assert config.active_chains == ["A"]
        assert config.center == (20.0, 20.0, 20.0)
        assert config.distance_types == [1, 2]
        assert config.log_level == "DEBUG"

    def test_probes_not_shared(self):
        """Each config gets its own probe map."""
        first = PdbToDpdConfig(pdb_path="a.pdb")
        first.probes["key"] = "Probe"
        assert PdbToDpdConfig(pdb_path="b.pdb").probes == {}


class TestRunPdbToDpd:
    """Tests for run_pdb_to_dpd()."""

    def test_minimal(self, one_chain_file):
        """run_pdb_to_dpd maps a structure with default settings."""
        result = run_pdb_to_dpd(
            PdbToDpdConfig(pdb_path=str(one_chain_file), name="test", verbose=False)
        )
        assert isinstance(result, PdbToDpdResult)
        assert result.spices == "Nt(Ala)\n-Gly\n-Bb(Lys1-Lys)-CtH"
        assert result.sequences == "TRIPEPTIDE:\nAGK\n"
        assert len(result.coordinate_lines) == 7
        assert result.last_index == 7
        assert result.last_ca_index == 3
        assert sorted(result.distance_forces) == [1, 2]
        assert result.distance_forces[1] == [
            "<1> <2> 3.800000 1.000000",
            "<2> <3> 3.800000 1.000000",
        ]

    def test_log_file_written(self, one_chain_file, tmp_path):
        run_pdb_to_dpd(PdbToDpdConfig(pdb_path=str(one_chain_file), name="logged", verbose=False))
        log = (tmp_path / "logged_output.log").read_text()
        assert "[INFO] PDB code: 1TST" in log
        assert "[INFO] Centroid (angstrom): 3.300 0.000 0.250" in log
        assert "[INFO] Completed." in log

    def test_repeated_runs_close_previous_log(self, one_chain_file):
        config = PdbToDpdConfig(pdb_path=str(one_chain_file), name="repeated", verbose=False)
        run_pdb_to_dpd(config)
        logger = logging.getLogger("dpd_peptide.repeated")
        (first,) = logger.handlers
        run_pdb_to_dpd(config)
        assert first not in logger.handlers
        assert first.stream is None
        assert len(logger.handlers) == 1

    def test_masterdata_in_result(self, one_chain_file):
        result = run_pdb_to_dpd(
            PdbToDpdConfig(pdb_path=str(one_chain_file), name="test", ph=7.0, verbose=False)
        )
        data = PdbToDpdMasterdata.from_compressed(result.protein_data)
        assert data.ph == 7.0
        assert data.last_index == 7
        assert PdbToDpdMasterdata.from_xml(result.masterdata_xml) == data

    def test_empty_distance_type_warns(self, one_chain_file, caplog):
        config = PdbToDpdConfig(
            pdb_path=str(one_chain_file), name="test", distance_types=[1, 5], verbose=False
        )
        with caplog.at_level(logging.WARNING):
            result = run_pdb_to_dpd(config)
        assert result.distance_forces[5] == []
        assert "No distance forces of type 5" in caplog.text

    def test_chain_selection_and_ph(self, two_chain_file):
        result = run_pdb_to_dpd(
            PdbToDpdConfig(
                pdb_path=str(two_chain_file),
                name="test",
                active_chains=["B"],
                ph=7.0,
                verbose=False,
            )
        )
        assert result.sequences == "TRIPEPTIDE - ChainID: B:\nA{N+}CG{C-}\n"

    def test_biological_assembly(self, two_chain_file):
        result = run_pdb_to_dpd(
            PdbToDpdConfig(
                pdb_path=str(two_chain_file),
                name="test",
                biological_assembly="Biological Assembly 2",
                verbose=False,
            )
        )
        assert result.spices == "2<Nt(Ala)\n-Bb(CysH)\n-Gly-CtH>\n"
        assert len(result.coordinate_lines) == 12

    def test_random_orientation_sets_default(self, one_chain_file):
        result = run_pdb_to_dpd(
            PdbToDpdConfig(
                pdb_path=str(one_chain_file),
                name="test",
                random_orientation=True,
                seed=3,
                verbose=False,
            )
        )
        data = PdbToDpdMasterdata.from_xml(result.masterdata_xml)
        assert data.rotation is not None
        assert data["DEFAULT_ROTATION"] == data["ROTATION"]

    def test_probes(self, one_chain_file):
        result = run_pdb_to_dpd(
            PdbToDpdConfig(
                pdb_path=str(one_chain_file),
                name="test",
                probes={"[GLY]2:A.CA #4": "Probe"},
                verbose=False,
            )
        )
        assert "\n-Probe\n" in result.spices
        assert result.coordinate_lines[2].split()[1] == "Probe"

    def test_custom_catalog(self, one_chain_file, tmp_path):
        catalog = AminoAcidCatalog()
        catalog.set_spices("Lysine", "Bb(Lys)")
        path = catalog.save(tmp_path / "amino_acids.txt")
        result = run_pdb_to_dpd(
            PdbToDpdConfig(
                pdb_path=str(one_chain_file),
                name="test",
                amino_acids_path=str(path),
                verbose=False,
            )
        )
        assert result.spices.endswith("\n-Bb(Lys)-CtH")

    def test_unknown_chain(self, one_chain_file):
        with pytest.raises(PeptideError):
            run_pdb_to_dpd(
                PdbToDpdConfig(
                    pdb_path=str(one_chain_file), name="test", active_chains=["Q"], verbose=False
                )
            )


class TestPdbToDpdResult:
    """Tests for PdbToDpdResult.save()."""

    def test_save(self, one_chain_file, tmp_path):
        result = run_pdb_to_dpd(
            PdbToDpdConfig(pdb_path=str(one_chain_file), name="job", verbose=False)
        )
        written = result.save(tmp_path / "out")
        assert sorted(p.name for p in written) == [
            "job.spices",
            "job_coordinates.txt",
            "job_distance_forces_1.txt",
            "job_distance_forces_2.txt",
            "job_masterdata.xml",
            "job_sequences.txt",
        ]
        out = tmp_path / "out"
        assert (out / "job.spices").read_text() == result.spices
        assert (out / "job_coordinates.txt").read_text().count("\n") == 7
        assert (out / "job_distance_forces_2.txt").read_text() == "<1> <3> 7.600000 1.000000\n"
