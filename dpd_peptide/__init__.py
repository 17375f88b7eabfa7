"""
dpd-peptide - Peptides and proteins for DPD
============================================

A Python package that translates peptide sequences and PDB protein
structures into the SPICES particle notation and the coordinate and
distance-force tables of a dissipative particle dynamics simulation.

Public API
----------
PeptideToSpices : Validate, charge and convert peptide sequences.
AminoAcidCatalog : Residue templates used by every conversion.
PdbToDpd : Map a PDB structure onto the coarse-grained model.
run_pdb_to_dpd : Run a complete structure mapping job.
PdbToDpdConfig : Configuration for a mapping job.
PdbToDpdResult : Result of a mapping job.

Examples
--------
>>> from dpd_peptide import PeptideToSpices
>>> PeptideToSpices().to_spices("AG")
'Nt(Ala)-Gly-CtH'
"""

from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.converter import PeptideToSpices, PeptideToSpicesConverter
from dpd_peptide.errors import PeptideError
from dpd_peptide.mapper import PdbToDpd
from dpd_peptide.run import PdbToDpdConfig, PdbToDpdResult, run_pdb_to_dpd

__all__ = [
    "AminoAcidCatalog",
    "PeptideToSpices",
    "PeptideToSpicesConverter",
    "PeptideError",
    "PdbToDpd",
    "run_pdb_to_dpd",
    "PdbToDpdConfig",
    "PdbToDpdResult",
]
