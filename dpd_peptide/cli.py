"""
dpd_peptide.cli
===============

Command line front-end.

``dpd-peptide pdb`` maps a PDB file and writes SPICES, sequences,
coordinate and distance-force tables. ``dpd-peptide peptide`` validates a
sequence and prints its SPICES.
"""

from __future__ import annotations

import argparse
import logging
import sys

from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.converter import PeptideToSpices
from dpd_peptide.errors import PeptideError
from dpd_peptide.masterdata import ASYMMETRIC_UNIT
from dpd_peptide.run import PdbToDpdConfig, run_pdb_to_dpd


# --------------------------------------------------------------------------- #
# CLI
# --------------------------------------------------------------------------- #
def _parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="dpd-peptide - peptides and proteins for DPD")
    p.add_argument("--log", default="INFO", help="logging level (DEBUG, INFO, ...)")
    p.add_argument("-a", "--amino-acids", default=None, help="amino acid catalog definition file")
    sub = p.add_subparsers(dest="command", required=True)

    pdb = sub.add_parser("pdb", help="map a PDB structure")
    pdb.add_argument("-p", "--pdb", required=True, help="PDB file")
    pdb.add_argument("-n", "--name", default="dpd_peptide", help="job name prefix")
    pdb.add_argument("-o", "--output", default=".", help="output directory")
    pdb.add_argument("--ph", type=float, default=None, help="pH value for charging")
    pdb.add_argument("--chains", nargs="+", default=None, help="active chain IDs")
    pdb.add_argument("--assembly", default=ASYMMETRIC_UNIT, help="biological assembly")
    pdb.add_argument("--center", type=float, nargs=3, default=(0.0, 0.0, 0.0), help="target centre")
    pdb.add_argument("--radius", type=float, default=10.0, help="target radius")
    pdb.add_argument("--rotation", type=float, nargs=3, default=None, help="Euler angles (rad)")
    pdb.add_argument("--random-orientation", action="store_true", help="random rotation")
    pdb.add_argument("--seed", type=int, default=1, help="random seed")
    pdb.add_argument("--circular", action="store_true", help="close chains into rings")
    pdb.add_argument("--decimals", type=int, default=6, help="decimals of force values")
    pdb.add_argument("--no-frequency", action="store_true", help="no run-length SPICES")
    pdb.add_argument("--start-index", type=int, default=1, help="first particle index")
    pdb.add_argument("--ca-start-index", type=int, default=1, help="first backbone index")
    pdb.add_argument("-k", "--distance-types", type=int, nargs="+", default=None, help="distance types")
    pdb.add_argument("--angstrom-to-dpd", type=float, default=1.0, help="length conversion factor")
    pdb.add_argument("--force-constant", type=float, default=1.0, help="distance force constant")
    pdb.add_argument("-q", "--quiet", action="store_true", help="no console logging")

    pep = sub.add_parser("peptide", help="convert a peptide sequence to SPICES")
    pep.add_argument("sequence", help="one-letter (or three-letter) sequence")
    pep.add_argument("--three-letter", action="store_true", help="sequence uses three-letter codes")
    pep.add_argument("--ph", type=float, default=None, help="pH value for charging")
    pep.add_argument("--line-break", action="store_true", help="one residue per line")
    return p.parse_args(argv)


# --------------------------------------------------------------------------- #
# Helper to emit progress into log & console
# --------------------------------------------------------------------------- #
def _setup_logging(level: str) -> logging.Logger:
    logging.basicConfig(level=level.upper(), format="[%(levelname)s] %(message)s")
    return logging.getLogger("dpd_peptide")


def _run_pdb(args: argparse.Namespace) -> int:
    config = PdbToDpdConfig(
        pdb_path=args.pdb,
        name=args.name,
        ph=args.ph,
        active_chains=args.chains,
        biological_assembly=args.assembly,
        center=tuple(args.center),
        radius=args.radius,
        rotation=None if args.rotation is None else tuple(args.rotation),
        random_orientation=args.random_orientation,
        seed=args.seed,
        circular=args.circular,
        decimals=args.decimals,
        use_frequency_spices=not args.no_frequency,
        start_index=args.start_index,
        ca_start_index=args.ca_start_index,
        distance_types=args.distance_types,
        angstrom_to_dpd=args.angstrom_to_dpd,
        force_constant=args.force_constant,
        amino_acids_path=args.amino_acids,
        log_level=args.log.upper(),
        verbose=not args.quiet,
    )
    result = run_pdb_to_dpd(config)
    for path in result.save(args.output):
        print(path)
    return 0


def _run_peptide(args: argparse.Namespace, log: logging.Logger) -> int:
    catalog = (
        AminoAcidCatalog.from_file(args.amino_acids) if args.amino_acids else AminoAcidCatalog()
    )
    service = PeptideToSpices(catalog)
    width = 3 if args.three_letter else 1
    message = (
        service.check_three_letter(args.sequence)
        if args.three_letter
        else service.check_one_letter(args.sequence)
    )
    if message:
        log.error(message)
        return 1
    print(service.to_spices(args.sequence, ph=args.ph, width=width, line_break=args.line_break))
    return 0


# --------------------------------------------------------------------------- #
# MAIN
# --------------------------------------------------------------------------- #
def main(argv: list[str] | None = None) -> int:
    args = _parse_cli(argv)
    log = _setup_logging(args.log)
    try:
        if args.command == "pdb":
            return _run_pdb(args)
        return _run_peptide(args, log)
    except PeptideError as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
