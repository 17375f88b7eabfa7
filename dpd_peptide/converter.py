"""
dpd_peptide.converter
=====================

Peptide sequence to SPICES conversion.

Classes
-------
PeptideToSpicesConverter
    Expands repeat counts, applies charge, disulfide and terminal particles
    and places bond markers, one residue fragment at a time.
PeptideToSpices
    Facade bundling validation, code conversion, charging and conversion
    around one catalog.

Examples
--------
>>> from dpd_peptide.catalog import AminoAcidCatalog
>>> from dpd_peptide.converter import PeptideToSpicesConverter
>>> converter = PeptideToSpicesConverter(AminoAcidCatalog())
>>> converter.convert("AG")
'Nt(Ala)-Gly-CtH'
>>> converter.convert("C[*]GC[*]")
'Bb[1](CysH)-Gly-Bb[1](CysH)'
"""

from __future__ import annotations

import re

from dpd_peptide.amino_acids import ChargeType
from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.charges import PeptideChargeAssigner
from dpd_peptide.errors import MissingDataError
from dpd_peptide.notation import (
    ResidueToken,
    has_one_letter_charge,
    one_letter_symbols,
    one_to_three,
    remove_one_letter_charges,
    three_letter_symbols,
    three_to_one,
    tokenize,
)
from dpd_peptide.spices import FRAGMENT_SEPARATOR
from dpd_peptide.validator import CodeWidth, PeptideNotationValidator


class _FragmentBuilder:
    """SPICES of one residue with known marker insertion points."""

    def __init__(self, spices: str):
        self.spices = spices

    def add_ring_closure(self, index: int) -> None:
        # directly after the backbone particle
        match = re.search(r"[(\-]", self.spices)
        at = match.start() if match else len(self.spices)
        self.spices = f"{self.spices[:at]}[{index}]{self.spices[at:]}"

    def add_disulfide_bond(self, index: int) -> None:
        # on the outermost side-chain particle
        at = self.spices.rfind(")")
        at = len(self.spices) if at < 0 else at
        self.spices = f"{self.spices[:at]}[{index}]{self.spices[at:]}"


class PeptideToSpicesConverter:
    """
    Converts one-letter sequences into SPICES.

    Parameters
    ----------
    catalog : AminoAcidCatalog
        Complete residue catalog.
    """

    def __init__(self, catalog: AminoAcidCatalog):
        self.catalog = catalog

    def convert(
        self, sequence: str, line_break: bool = False, ring_index: int | None = None
    ) -> str:
        """
        Convert a (possibly charged) one-letter sequence.

        Parameters
        ----------
        sequence : str
            Valid one-letter sequence.
        line_break : bool, default=False
            Separate residue fragments with ``"\\n-"`` instead of ``"-"``.
        ring_index : int, optional
            Bond index of the ring closure. Defaults to one past the highest
            disulfide bond index of the sequence.

        Returns
        -------
        str
            SPICES of the peptide.

        Raises
        ------
        MissingDataError
            If the catalog does not define all 20 residues.
        NotationSyntaxError
            If the sequence cannot be tokenized.
        """
        if not self.catalog.is_complete:
            raise MissingDataError("Complete amino acid catalog")
        tokens = tokenize(sequence)
        if not tokens:
            return ""

        circular = any(token.ring_closure for token in tokens)
        used = [index for token in tokens for index in token.bonds]
        if ring_index is None:
            ring_index = max(used, default=0) + 1

        fragments = []
        for position, token in enumerate(tokens):
            for repeat in range(token.frequency):
                final_repeat = repeat == token.frequency - 1
                first = position == 0 and repeat == 0
                last = position == len(tokens) - 1 and final_repeat
                disulfide = final_repeat and bool(token.bonds)
                builder = _FragmentBuilder(
                    self._residue_spices(token, first, last, disulfide, circular)
                )
                if final_repeat:
                    for marker in token.markers:
                        if marker == "*":
                            builder.add_ring_closure(ring_index)
                        else:
                            builder.add_disulfide_bond(int(marker))
                fragments.append(builder.spices)

        separator = FRAGMENT_SEPARATOR if line_break else "-"
        return separator.join(fragments)

    def _residue_spices(
        self,
        token: ResidueToken,
        first: bool,
        last: bool,
        disulfide: bool,
        circular: bool,
    ) -> str:
        amino_acid = self.catalog.get(token.code)
        argument = token.argument
        if argument:
            spices = amino_acid.charged_spices(argument, first, last, disulfide)
        else:
            spices = amino_acid.spices
        if disulfide:
            spices = amino_acid.spices_in_disulfide_bond(spices)

        if first and not circular and "N" not in argument:
            setting = amino_acid.charge_setting(ChargeType.TN)
            if setting is not None:
                if amino_acid.is_single_particle:
                    spices = f"{setting.uncharged_particle}-{spices}"
                else:
                    spices = spices.replace(
                        amino_acid.backbone_particle, setting.uncharged_particle
                    )
        if last and not circular and "C" not in argument:
            setting = amino_acid.charge_setting(ChargeType.TC)
            if setting is not None:
                spices = f"{spices}-{setting.uncharged_particle}"
        return spices


class PeptideToSpices:
    """
    One-stop peptide notation service around a single catalog.

    Parameters
    ----------
    catalog : AminoAcidCatalog, optional
        Defaults to the built-in 20-residue catalog.

    Raises
    ------
    MissingDataError
        If the catalog is incomplete.
    """

    def __init__(self, catalog: AminoAcidCatalog | None = None):
        self.catalog = catalog or AminoAcidCatalog()
        if not self.catalog.is_complete:
            raise MissingDataError("Complete amino acid catalog")
        self.validator = PeptideNotationValidator(self.catalog)
        self.converter = PeptideToSpicesConverter(self.catalog)
        self.charges = PeptideChargeAssigner(self.catalog)

    def check_one_letter(self, sequence: str) -> str:
        return self.validator.validate(sequence, 1)

    def check_three_letter(self, sequence: str) -> str:
        return self.validator.validate(sequence, 3)

    def one_to_three(self, sequence: str) -> str:
        return one_to_three(sequence, self.catalog)

    def three_to_one(self, sequence: str) -> str:
        return three_to_one(sequence, self.catalog)

    def one_letter_to_spices(self, sequence: str, line_break: bool = False) -> str:
        return self.converter.convert(sequence, line_break)

    def three_letter_to_spices(self, sequence: str, line_break: bool = False) -> str:
        return self.converter.convert(self.three_to_one(sequence), line_break)

    def charge(self, sequence: str, ph: float, circular: bool = False) -> str:
        return self.charges.charge(sequence, ph, circular)

    def to_spices(
        self,
        sequence: str,
        ph: float | None = None,
        width: CodeWidth = 1,
        line_break: bool = False,
    ) -> str:
        """
        Validate, optionally charge and convert a sequence.

        Raises
        ------
        PeptideError
            The first problem the validator finds.
        """
        self.validator.check(sequence, width)
        if width == 3:
            sequence = self.three_to_one(sequence)
        if ph is not None:
            sequence = self.charge(sequence, ph, circular="[*]" in sequence)
        return self.converter.convert(sequence, line_break)

    @staticmethod
    def remove_charges(sequence: str) -> str:
        return remove_one_letter_charges(sequence)

    @staticmethod
    def has_charge(sequence: str) -> bool:
        return has_one_letter_charge(sequence)

    def one_letter_symbols(self) -> list[str]:
        return one_letter_symbols(self.catalog)

    def three_letter_symbols(self) -> list[str]:
        return three_letter_symbols(self.catalog)
