"""
dpd_peptide.notation
====================

Text-level helpers for peptide sequences.

Functions
---------
tokenize
    Split a one-letter sequence into :class:`ResidueToken` objects.
count_residues
    Residue count with repeat counts expanded.
one_to_three, three_to_one
    Convert between one-letter and three-letter notation.
has_one_letter_charge, remove_one_letter_charges
    Detect or strip ``{...}`` charge blocks.
followed_by_disulfide
    True if the residue at an offset carries a ``[n]`` bond marker.
one_letter_symbols, three_letter_symbols
    Help tables listing every symbol a sequence may contain.

Examples
--------
>>> from dpd_peptide.catalog import AminoAcidCatalog
>>> from dpd_peptide.notation import one_to_three, three_to_one
>>> catalog = AminoAcidCatalog()
>>> one_to_three("2AC[1]", catalog)
'2Ala Cys[1]'
>>> three_to_one("2Ala Cys[1]", catalog)
'2AC[1]'
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from itertools import combinations

from dpd_peptide.amino_acids import ChargeType
from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.errors import NotationSyntaxError
from dpd_peptide.validator import normalize

_CHARGE_BLOCK = re.compile(r"\{[^}]*\}")


@dataclass
class ResidueToken:
    """
    One residue of a one-letter sequence.

    Attributes
    ----------
    code : str
        One-letter code.
    frequency : int
        Repeat count (leading digits), 1 if absent.
    argument : str
        Content of the ``{...}`` block, empty if absent.
    markers : list of str
        Bracket contents in order of appearance (``"*"`` or a digit).
    """

    code: str
    frequency: int = 1
    argument: str = ""
    markers: list[str] = field(default_factory=list)

    @property
    def ring_closure(self) -> bool:
        return "*" in self.markers

    @property
    def bonds(self) -> list[int]:
        return [int(m) for m in self.markers if m.isdigit()]


def tokenize(sequence: str) -> list[ResidueToken]:
    """
    Split a normalized one-letter sequence into residue tokens.

    Raises
    ------
    NotationSyntaxError
        On a character that does not fit the token grammar.
    """
    seq = normalize(sequence)
    tokens: list[ResidueToken] = []
    i = 0
    while i < len(seq):
        start = i
        while i < len(seq) and seq[i].isdigit():
            i += 1
        if i >= len(seq) or not seq[i].isalpha():
            raise NotationSyntaxError(i + 1)
        token = ResidueToken(seq[i], int(seq[start:i]) if i > start else 1)
        i += 1
        while i < len(seq) and seq[i] in "{[":
            close = "}" if seq[i] == "{" else "]"
            end = seq.find(close, i)
            if end < 0:
                raise NotationSyntaxError(i + 1)
            if close == "}":
                token.argument += seq[i + 1 : end]
            else:
                token.markers.append(seq[i + 1 : end])
            i = end + 1
        tokens.append(token)
    return tokens


def count_residues(sequence: str) -> int:
    """Number of residues after expanding repeat counts."""
    return sum(token.frequency for token in tokenize(sequence))


def has_one_letter_charge(sequence: str) -> bool:
    return "{" in sequence and "}" in sequence


def remove_one_letter_charges(sequence: str) -> str:
    """Drop every ``{...}`` block."""
    return _CHARGE_BLOCK.sub("", sequence)


def followed_by_disulfide(sequence: str, index: int) -> bool:
    """
    True if the residue code at ``index`` is followed by a ``[digit`` marker.

    ``{...}`` blocks and ``[*]`` ring closures between the code and the bond
    marker are skipped.
    """
    i = index + 1
    while i < len(sequence):
        if sequence[i] == "{":
            end = sequence.find("}", i)
            if end < 0:
                return False
            i = end + 1
        elif sequence.startswith("[*]", i):
            i += 3
        else:
            return sequence[i] == "[" and sequence[i + 1 : i + 2].isdigit()
    return False


def one_to_three(sequence: str, catalog: AminoAcidCatalog) -> str:
    """
    Convert one-letter notation into space separated three-letter codes.

    Charge blocks, digits and brackets are copied unchanged.
    """
    seq = normalize(sequence)
    out = []
    inside = False
    last = len(seq) - 1
    for i, c in enumerate(seq):
        if inside:
            out.append(c)
            if c == "}":
                inside = False
                if i < last:
                    out.append(" ")
        elif c == "{":
            inside = True
            out.append(c)
        elif c.isalpha():
            out.append(catalog.one_to_three(c).capitalize())
            if i < last and seq[i + 1] not in "{[":
                out.append(" ")
        else:
            out.append(c)
    return "".join(out).rstrip()


def three_to_one(sequence: str, catalog: AminoAcidCatalog) -> str:
    """
    Convert three-letter notation into one-letter notation.

    Raises
    ------
    UnknownAminoAcidError
        If a three-letter code is not in the catalog.
    """
    seq = normalize(sequence)
    out = []
    i = 0
    while i < len(seq):
        c = seq[i]
        if c == "{":
            end = seq.find("}", i)
            end = len(seq) - 1 if end < 0 else end
            out.append(seq[i : end + 1])
            i = end + 1
        elif c.isalpha():
            out.append(catalog.three_to_one(seq[i : i + 3]))
            i += 3
        else:
            out.append(c)
            i += 1
    return "".join(out)


# ---------------------------------------------------------------------- #
# Symbol tables
# ---------------------------------------------------------------------- #


def _charged_variants(catalog: AminoAcidCatalog, three_letter: bool) -> list[str]:
    variants: dict[str, str] = {}
    for amino_acid in catalog:
        code = (
            amino_acid.three_letter.capitalize() if three_letter else amino_acid.one_letter
        )
        arguments = []
        for setting in amino_acid.charge_settings:
            if setting.type is ChargeType.SS or setting.charge_argument in arguments:
                continue
            arguments.append(setting.charge_argument)
        for size in range(1, len(arguments) + 1):
            for combo in combinations(arguments, size):
                variants[code + "{" + "".join(combo) + "}"] = amino_acid.name
    if not variants:
        return []
    width = max(len(key) for key in variants)
    return [f"{key:<{width}} : {variants[key]}" for key in sorted(variants)]


def _symbols(catalog: AminoAcidCatalog, three_letter: bool) -> list[str]:
    lines = [
        "[ : Disulfide bond open",
        "] : Disulfide bond close",
    ]
    lines += [f"{i} : Frequency digit" for i in range(10)]
    for amino_acid in catalog:
        code = (
            amino_acid.three_letter.capitalize() if three_letter else amino_acid.one_letter
        )
        lines.append(f"{code} : {amino_acid.name}")
    return lines + _charged_variants(catalog, three_letter)


def one_letter_symbols(catalog: AminoAcidCatalog) -> list[str]:
    """
    Help lines for one-letter notation.

    Bracket and digit symbols, one ``code : name`` line per residue and one
    line per charged variant (every non-empty combination of a residue's
    charge arguments), sorted.
    """
    return _symbols(catalog, three_letter=False)


def three_letter_symbols(catalog: AminoAcidCatalog) -> list[str]:
    """Same as :func:`one_letter_symbols` with capitalized three-letter codes."""
    return _symbols(catalog, three_letter=True)
