"""
dpd_peptide.run
===============

Python API for mapping a PDB structure onto the coarse-grained peptide model.

Use :class:`PdbToDpdConfig` to configure a job and :func:`run_pdb_to_dpd` to
execute it. The result carries the SPICES, sequences, coordinate table,
distance-force tables and the masterdata of the job.

Examples
--------
>>> from dpd_peptide.run import PdbToDpdConfig, run_pdb_to_dpd
>>> config = PdbToDpdConfig(
...     pdb_path="data/1crn.pdb",
...     name="crambin",
...     ph=7.0,
...     center=(20.0, 20.0, 20.0),
...     radius=8.0,
... )
>>> result = run_pdb_to_dpd(config)  # doctest: +SKIP
>>> result.save("out")  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.geometry import nostrom
from dpd_peptide.mapper import PdbToDpd
from dpd_peptide.masterdata import ASYMMETRIC_UNIT

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
Vector = tuple[float, float, float]


@dataclass
class PdbToDpdConfig:
    """
    Configuration of a structure mapping job.

    Parameters
    ----------
    pdb_path : str
        Path to the PDB file.
    name : str, default="dpd_peptide"
        Job name (used for output files).
    ph : float, optional
        Charge residues for this pH; uncharged if omitted.
    active_chains : list of str, optional
        Chains to map; all chains if omitted.
    biological_assembly : str, default="Asymmetric Unit"
        ``"Asymmetric Unit"`` or ``"Biological Assembly n"``.
    center : tuple of float, default=(0, 0, 0)
        Target centre of the C-alpha particles.
    radius : float, default=10.0
        Target radius of the C-alpha particles.
    rotation : tuple of float, optional
        Euler angles (radians) applied before scaling.
    random_orientation : bool, default=False
        Draw the rotation from a generator seeded with ``seed``; overrides
        ``rotation``.
    seed : int, default=1
    circular : bool, default=False
        Close every chain into a ring.
    decimals : int, default=6
        Decimal places of distance-force values.
    use_frequency_spices : bool, default=True
        Run-length compress identical chain groups in the SPICES.
    start_index, ca_start_index : int, default=1
        First particle index and first backbone-force index.
    distance_types : list of int, optional
        Distance types to tabulate; every possible one if omitted.
    angstrom_to_dpd : float, default=1.0
        Length conversion for distance forces.
    force_constant : float, default=1.0
    probes : dict, optional
        C-alpha key to probe particle.
    amino_acids_path : str, optional
        Catalog definition file; the built-in catalog if omitted.
    log_level : {"DEBUG", "INFO", "WARNING", "ERROR"}, default="INFO"
    verbose : bool, default=True
        Whether to log progress to console.

    Examples
    --------
    >>> config = PdbToDpdConfig(pdb_path="data/1crn.pdb", ph=7.0)
    >>> config.biological_assembly
    'Asymmetric Unit'
    """

    pdb_path: str
    name: str = "dpd_peptide"
    ph: float | None = None
    active_chains: list[str] | None = None
    biological_assembly: str = ASYMMETRIC_UNIT
    center: Vector = (0.0, 0.0, 0.0)
    radius: float = 10.0
    rotation: Vector | None = None
    random_orientation: bool = False
    seed: int = 1
    circular: bool = False
    decimals: int = 6
    use_frequency_spices: bool = True
    start_index: int = 1
    ca_start_index: int = 1
    distance_types: list[int] | None = None
    angstrom_to_dpd: float = 1.0
    force_constant: float = 1.0
    probes: dict[str, str] = field(default_factory=dict)
    amino_acids_path: str | None = None
    log_level: LogLevel = "INFO"
    verbose: bool = True


@dataclass
class PdbToDpdResult:
    """
    Result of a structure mapping job.

    Attributes
    ----------
    spices : str
        SPICES of the active chains.
    sequences : str
        Compound names and sequences of the active chains.
    coordinate_lines : list of str
        Coordinate/connection table.
    distance_forces : dict
        Distance type to distance-force lines.
    protein_data : str
        Compressed masterdata, see :meth:`PdbToDpd.from_protein_data`.
    masterdata_xml : str
    last_index, last_ca_index : int
        Last particle and backbone-force index used.
    config : PdbToDpdConfig
    """

    spices: str
    sequences: str
    coordinate_lines: list[str]
    distance_forces: dict[int, list[str]]
    protein_data: str
    masterdata_xml: str
    last_index: int
    last_ca_index: int
    config: PdbToDpdConfig

    def save(self, directory: str | Path) -> list[Path]:
        """
        Write every table into ``directory`` (created if missing).

        Returns
        -------
        list of Path
            Written files.
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        name = self.config.name
        files = {
            f"{name}.spices": self.spices,
            f"{name}_sequences.txt": self.sequences,
            f"{name}_coordinates.txt": "\n".join(self.coordinate_lines) + "\n",
            f"{name}_masterdata.xml": self.masterdata_xml,
        }
        for k, lines in self.distance_forces.items():
            files[f"{name}_distance_forces_{k}.txt"] = "".join(f"{line}\n" for line in lines)

        written = []
        for filename, text in files.items():
            path = directory / filename
            path.write_text(text)
            written.append(path)
        return written


def _setup_logger(name: str, verbose: bool, level: str = "INFO") -> logging.Logger:
    """Set up logger for the run."""
    logger = logging.getLogger(f"dpd_peptide.{name}")
    logger.setLevel(level.upper())
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    # File handler
    file_handler = logging.FileHandler(f"{name}_output.log", mode="w")
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(file_handler)

    # Console handler (if verbose)
    if verbose:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(console)

    return logger


def _configure(mapper: PdbToDpd, config: PdbToDpdConfig) -> None:
    if config.biological_assembly != mapper.biological_assembly:
        mapper.set_biological_assembly(config.biological_assembly)
    if config.active_chains:
        mapper.set_active_chains(config.active_chains)
    mapper.ph = config.ph
    mapper.center = config.center
    mapper.radius = config.radius
    mapper.circular = config.circular
    mapper.decimals = config.decimals
    mapper.use_frequency_spices = config.use_frequency_spices
    mapper.seed = config.seed
    mapper.probes = config.probes or None
    if config.random_orientation:
        mapper.set_random_orientation()
    elif config.rotation is not None:
        mapper.rotation = config.rotation
    mapper.copy_rotation_to_default()


def run_pdb_to_dpd(config: PdbToDpdConfig) -> PdbToDpdResult:
    """
    Map a PDB structure onto the coarse-grained model.

    Parameters
    ----------
    config : PdbToDpdConfig
        Job configuration.

    Returns
    -------
    PdbToDpdResult

    Raises
    ------
    PeptideError
        If the structure, catalog or a setting is invalid.
    """
    logger = _setup_logger(config.name, config.verbose, config.log_level)
    logger.info("Job: %s", config.name)
    logger.info("Input file: %s", config.pdb_path)

    if config.amino_acids_path:
        catalog = AminoAcidCatalog.from_file(config.amino_acids_path)
        logger.info("Amino acid catalog: %s", config.amino_acids_path)
    else:
        catalog = AminoAcidCatalog()

    mapper = PdbToDpd.from_file(config.pdb_path, catalog)
    _configure(mapper, config)
    logger.info("PDB code: %s", mapper.pdb_code or "-")
    logger.info("Biological assembly: %s", mapper.biological_assembly)
    logger.info("Active chains: %s", ", ".join(mapper.active_chains))
    if mapper.active_chains:
        logger.info("Centroid (angstrom): %.3f %.3f %.3f", *nostrom(mapper.centroid()))
    if mapper.ph is not None:
        logger.info("pH: %s", mapper.ph)

    spices = mapper.get_spices()
    sequences = mapper.get_sequences()
    table = mapper.coordinate_table(config.start_index, config.ca_start_index)
    logger.info(
        "Coordinate table: %d particles, last index %d, last backbone index %d",
        len(table.records),
        table.last_index,
        table.last_backbone_index,
    )

    if config.distance_types is None:
        distance_types = list(range(1, mapper.max_distance_type() + 1))
    else:
        distance_types = list(config.distance_types)
    distance_forces = {}
    for k in distance_types:
        lines = mapper.distance_force_lines(k, config.angstrom_to_dpd, config.force_constant)
        if not lines:
            logger.warning("No distance forces of type %d", k)
        distance_forces[k] = lines
    logger.info("Distance force types: %s", distance_types)

    logger.info("Completed.")
    return PdbToDpdResult(
        spices=spices,
        sequences=sequences,
        coordinate_lines=table.lines(),
        distance_forces=distance_forces,
        protein_data=mapper.get_protein_data(),
        masterdata_xml=mapper.masterdata.to_xml(),
        last_index=table.last_index,
        last_ca_index=table.last_backbone_index,
        config=config,
    )
