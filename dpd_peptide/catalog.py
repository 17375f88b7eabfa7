"""
dpd_peptide.catalog
===================

Amino-acid catalog: the set of residue templates a conversion works with.

The catalog is an explicitly constructed object that converters, the charge
assigner and the structure mapper receive as a collaborator. It is built from
definition text (``VERSION|aa1|aa2|...``) or, by default, from
:data:`DEFAULT_DEFINITION`, a complete 20-residue coarse-grained model with a
shared backbone particle ``Bb``.

Classes
-------
AminoAcidCatalog
    Lookup by code or name, code conversion and serialization.

Examples
--------
>>> from dpd_peptide.catalog import AminoAcidCatalog
>>> catalog = AminoAcidCatalog()
>>> catalog.is_complete
True
>>> catalog.one_to_three("W"), catalog.three_to_one("trp")
('TRP', 'W')
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from dpd_peptide.amino_acids import (
    DEFINITION_VERSION,
    SEPARATOR,
    AminoAcid,
)
from dpd_peptide.errors import PeptideError, UnknownAminoAcidError

NUMBER_OF_AMINO_ACIDS = 20

# Backbone "Bb" carries the N/C terminal groups; side chains hang off it.
# pKs values: terminal groups and free side chains after Lehninger, bound
# side chains use typical in-protein values.
_DEFAULT_RESIDUES = (
    "Alanine~A~Ala~Bb(Ala)~TN&9.69?NtH+:Nt;TC&2.34?CtH:Ct-",
    "Arginine~R~Arg~Bb(Arg1-Arg)~TN&9.04?NtH+:Nt;TC&2.17?CtH:Ct-;"
    "SCB&12.5?ArgH+:Arg;SCF&12.48?ArgH+:Arg",
    "Asparagine~N~Asn~Bb(Asn)~TN&8.80?NtH+:Nt;TC&2.02?CtH:Ct-",
    "Aspartic acid~D~Asp~Bb(AspH)~TN&9.60?NtH+:Nt;TC&1.88?CtH:Ct-;"
    "SCB&3.9?AspH:Asp-;SCF&3.65?AspH:Asp-",
    "Cysteine~C~Cys~Bb(CysH)~TN&10.28?NtH+:Nt;TC&1.96?CtH:Ct-;"
    "SCB&8.3?CysH:Cys-;SCF&8.18?CysH:Cys-;SS&CysH?CysS",
    "Glutamic acid~E~Glu~Bb(GluH)~TN&9.67?NtH+:Nt;TC&2.19?CtH:Ct-;"
    "SCB&4.3?GluH:Glu-;SCF&4.25?GluH:Glu-",
    "Glutamine~Q~Gln~Bb(Gln)~TN&9.13?NtH+:Nt;TC&2.17?CtH:Ct-",
    "Glycine~G~Gly~Gly~TN&9.60?NtH+:Nt;TC&2.34?CtH:Ct-",
    "Histidine~H~His~Bb(His1-His)~TN&9.17?NtH+:Nt;TC&1.82?CtH:Ct-;"
    "SCB&6.0?HisH+:His;SCF&6.00?HisH+:His",
    "Isoleucine~I~Ile~Bb(Ile)~TN&9.68?NtH+:Nt;TC&2.36?CtH:Ct-",
    "Leucine~L~Leu~Bb(Leu)~TN&9.60?NtH+:Nt;TC&2.36?CtH:Ct-",
    "Lysine~K~Lys~Bb(Lys1-Lys)~TN&8.95?NtH+:Nt;TC&2.18?CtH:Ct-;"
    "SCB&10.5?LysH+:Lys;SCF&10.53?LysH+:Lys",
    "Methionine~M~Met~Bb(Met)~TN&9.21?NtH+:Nt;TC&2.28?CtH:Ct-",
    "Phenylalanine~F~Phe~Bb(Phe1-Phe2)~TN&9.13?NtH+:Nt;TC&1.83?CtH:Ct-",
    "Proline~P~Pro~Bb(Pro)~TN&10.96?NtH+:Nt;TC&1.99?CtH:Ct-",
    "Serine~S~Ser~Bb(Ser)~TN&9.15?NtH+:Nt;TC&2.21?CtH:Ct-",
    "Threonine~T~Thr~Bb(Thr)~TN&9.62?NtH+:Nt;TC&2.11?CtH:Ct-",
    "Tryptophan~W~Trp~Bb(Trp1-Trp2)~TN&9.39?NtH+:Nt;TC&2.38?CtH:Ct-",
    "Tyrosine~Y~Tyr~Bb(Tyr1-TyrH)~TN&9.11?NtH+:Nt;TC&2.20?CtH:Ct-;"
    "SCB&10.1?TyrH:Tyr-;SCF&10.07?TyrH:Tyr-",
    "Valine~V~Val~Bb(Val)~TN&9.62?NtH+:Nt;TC&2.32?CtH:Ct-",
)

DEFAULT_DEFINITION = SEPARATOR.join(
    [DEFINITION_VERSION]
    + [f"{DEFINITION_VERSION}~{residue}" for residue in _DEFAULT_RESIDUES]
)


class AminoAcidCatalog:
    """
    Ordered collection of :class:`~dpd_peptide.amino_acids.AminoAcid`.

    Parameters
    ----------
    definition : str, optional
        Catalog definition text. Defaults to :data:`DEFAULT_DEFINITION`.

    Raises
    ------
    PeptideError
        If the text is malformed or defines a code twice.
    """

    def __init__(self, definition: str | None = None):
        definition = DEFAULT_DEFINITION if definition is None else definition
        items = definition.strip().split(SEPARATOR)
        if not items or items[0] != DEFINITION_VERSION:
            raise PeptideError("Invalid amino acid catalog definition")

        self._by_one: dict[str, AminoAcid] = {}
        self._by_three: dict[str, AminoAcid] = {}
        for item in items[1:]:
            amino_acid = AminoAcid.from_definition(item, catalog=self)
            if (
                amino_acid.one_letter in self._by_one
                or amino_acid.three_letter in self._by_three
            ):
                raise PeptideError(f"Amino acid defined twice: {amino_acid.name!r}")
            self._by_one[amino_acid.one_letter] = amino_acid
            self._by_three[amino_acid.three_letter] = amino_acid

    @classmethod
    def from_file(cls, path: str | Path) -> AminoAcidCatalog:
        """Read a catalog definition file."""
        return cls(Path(path).read_text(encoding="utf-8"))

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.write_text(self.definition, encoding="utf-8")
        return path

    # ------------------------------------------------------------------ #

    def __len__(self) -> int:
        return len(self._by_one)

    def __iter__(self) -> Iterator[AminoAcid]:
        return iter(self._by_one.values())

    @property
    def is_complete(self) -> bool:
        return len(self._by_one) == NUMBER_OF_AMINO_ACIDS

    @property
    def is_only_single_particle(self) -> bool:
        """True if no residue has a bracketed side chain."""
        return all(aa.is_single_particle for aa in self._by_one.values())

    @property
    def definition(self) -> str:
        """Serialized catalog (``VERSION|aa1|aa2|...``)."""
        return SEPARATOR.join(
            [DEFINITION_VERSION] + [aa.definition for aa in self._by_one.values()]
        )

    @property
    def particles(self) -> list[str]:
        """Sorted names of all particles any residue can emit."""
        names: set[str] = set()
        for amino_acid in self._by_one.values():
            names |= amino_acid.particles
        return sorted(names)

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def has_one_letter(self, code: str) -> bool:
        return code.upper() in self._by_one

    def has_three_letter(self, code: str) -> bool:
        return code.upper() in self._by_three

    def get(self, code: str) -> AminoAcid:
        """
        Residue for a one- or three-letter code (case-insensitive).

        Raises
        ------
        UnknownAminoAcidError
            If the code is not in the catalog.
        """
        key = code.upper()
        amino_acid = self._by_one.get(key) or self._by_three.get(key)
        if amino_acid is None:
            raise UnknownAminoAcidError(code)
        return amino_acid

    def get_by_name(self, name: str) -> AminoAcid:
        for amino_acid in self._by_one.values():
            if amino_acid.name == name:
                return amino_acid
        raise UnknownAminoAcidError(name)

    def one_to_three(self, code: str) -> str:
        """Upper-case three-letter code for a one-letter code."""
        if not self.has_one_letter(code):
            raise UnknownAminoAcidError(code)
        return self._by_one[code.upper()].three_letter

    def three_to_one(self, code: str) -> str:
        """One-letter code for a three-letter code."""
        if not self.has_three_letter(code):
            raise UnknownAminoAcidError(code)
        return self._by_three[code.upper()].one_letter

    def set_spices(self, name: str, spices: str) -> None:
        """Replace the SPICES fragment of the residue called ``name``."""
        self.get_by_name(name).spices = spices
