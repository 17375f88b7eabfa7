"""
dpd_peptide.validator
=====================

Grammar check for one-letter and three-letter peptide sequences.

A sequence is a run of residue tokens::

    Token := Digits? Code ({ChargeArgument})? ([Digit] | [*])?

``[n]`` pairs two cysteines through disulfide bond ``n`` (every ``n`` must
occur exactly twice), ``[*]`` closes a ring between the first and the last
residue (zero or two occurrences), and a ``{...}`` block must be accepted by
the residue it follows.

Classes
-------
PeptideNotationValidator
    :meth:`~PeptideNotationValidator.validate` returns ``""`` or an error
    message; :meth:`~PeptideNotationValidator.check` raises instead.

Examples
--------
>>> from dpd_peptide.catalog import AminoAcidCatalog
>>> from dpd_peptide.validator import PeptideNotationValidator
>>> validator = PeptideNotationValidator(AminoAcidCatalog())
>>> validator.validate("AC[1]GC[1]")
''
>>> validator.validate("AC[1]GC[2]")
'Disulfide bond index 1 occurs 1 time(s), expected 2'
"""

from __future__ import annotations

import re
from typing import Literal, TypeAlias

from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.errors import (
    InvalidChargeArgumentError,
    NotationSyntaxError,
    PeptideError,
    StructuralCountError,
)

CodeWidth: TypeAlias = Literal[1, 3]

_WHITESPACE = re.compile(r"\s+")


def normalize(sequence: str) -> str:
    """Upper-case a sequence and drop all whitespace."""
    return _WHITESPACE.sub("", sequence).upper()


class PeptideNotationValidator:
    """
    Left-to-right scanner for peptide notation.

    Parameters
    ----------
    catalog : AminoAcidCatalog
        Residues that count as valid codes.
    """

    def __init__(self, catalog: AminoAcidCatalog):
        self.catalog = catalog

    def validate(self, sequence: str, width: CodeWidth = 1) -> str:
        """
        Check a sequence and report the first problem.

        Parameters
        ----------
        sequence : str
            One- or three-letter sequence; whitespace and case are ignored.
        width : {1, 3}, default=1
            Code width.

        Returns
        -------
        str
            Empty string if the sequence is valid, else the error message.
            Positions in messages are 1-based offsets into the normalized
            sequence.
        """
        try:
            self.check(sequence, width)
        except PeptideError as err:
            return str(err)
        return ""

    def is_valid(self, sequence: str, width: CodeWidth = 1) -> bool:
        return self.validate(sequence, width) == ""

    def check(self, sequence: str, width: CodeWidth = 1) -> None:
        """
        Raising twin of :meth:`validate`.

        Raises
        ------
        NotationSyntaxError
            Malformed code, marker or bracket; misplaced ring closure or a
            disulfide marker not attached to a cysteine.
        InvalidChargeArgumentError
            A ``{...}`` block the residue does not accept.
        StructuralCountError
            Ring closures not 0 or 2, or a bond index not used exactly twice.
        """
        seq = normalize(sequence)
        if not seq:
            return

        n = len(seq)
        last_start = self._last_residue_start(seq, width)
        bonds: dict[int, int] = {}
        rings = 0
        first = True
        i = 0
        while i < n:
            if seq[i].isdigit():
                while i < n and seq[i].isdigit():
                    i += 1
                if not self._is_code(seq, i, width):
                    raise NotationSyntaxError(i + 1)
                continue
            if not self._is_code(seq, i, width):
                raise NotationSyntaxError(i + 1)

            code = seq[i : i + width]
            i += width
            while i < n and seq[i] in "[{":
                if seq[i] == "{":
                    end = seq.find("}", i)
                    if end < 0:
                        raise NotationSyntaxError(i + 1)
                    argument = seq[i + 1 : end]
                    if not self.catalog.get(code).is_valid_charge_argument(argument):
                        raise InvalidChargeArgumentError(argument, code)
                    i = end + 1
                    continue

                marker = seq[i + 1] if i + 1 < n else ""
                if marker.isdigit():
                    if self.catalog.get(code).one_letter != "C":
                        raise NotationSyntaxError(
                            i + 1,
                            f"Disulfide bond at position {i + 1} must follow a cysteine",
                        )
                    bonds[int(marker)] = bonds.get(int(marker), 0) + 1
                elif marker == "*":
                    if not first and i + 1 < last_start:
                        raise NotationSyntaxError(
                            i + 2, f"Illegal ring closure at position {i + 2}"
                        )
                    rings += 1
                else:
                    raise NotationSyntaxError(i + 2)
                if i + 2 >= n or seq[i + 2] != "]":
                    raise NotationSyntaxError(i + 3)
                i += 3
            first = False

        if rings not in (0, 2):
            raise StructuralCountError(
                f"Number of ring closures is {rings}, expected 0 or 2"
            )
        for index in sorted(bonds):
            if bonds[index] != 2:
                raise StructuralCountError(
                    f"Disulfide bond index {index} occurs {bonds[index]} time(s), expected 2"
                )

    # ------------------------------------------------------------------ #

    def _is_code(self, seq: str, i: int, width: CodeWidth) -> bool:
        code = seq[i : i + width]
        if len(code) != width or not code.isalpha():
            return False
        if width == 1:
            return self.catalog.has_one_letter(code)
        return self.catalog.has_three_letter(code)

    @staticmethod
    def _last_residue_start(seq: str, width: CodeWidth) -> int:
        """Offset of the last residue code, skipping ``{...}`` and ``[...]``."""
        last = -1
        i = 0
        while i < len(seq):
            c = seq[i]
            if c in "{[":
                end = seq.find("}" if c == "{" else "]", i)
                i = len(seq) if end < 0 else end + 1
            elif c.isalpha():
                last = i
                i += width
            else:
                i += 1
        return last
