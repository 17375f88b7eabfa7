"""
dpd_peptide.errors
==================

Exception hierarchy for peptide notation and structure mapping.

All errors derive from :class:`PeptideError`, itself a ``RuntimeError``, so a
caller can catch the whole family with one clause and surface the message
verbatim.

Classes
-------
PeptideError : Root of the hierarchy.
NotationSyntaxError : Malformed sequence notation (carries a 1-based position).
StructuralCountError : Disulfide-bond or ring-closure counts are inconsistent.
MissingDataError : A required piece of state (protein, centre, radius,
    complete amino-acid catalog) has not been set.
UnknownAminoAcidError : A code or name is not part of the catalog.
InvalidChargeArgumentError : A charge argument is not accepted by a residue.
IndexOutOfRangeError : A residue or step index is out of bounds.
SequenceLengthError : A replacement sequence has the wrong residue count.

Examples
--------
>>> from dpd_peptide.errors import NotationSyntaxError
>>> err = NotationSyntaxError(4)
>>> err.position
4
>>> str(err)
'Syntax error at position 4'
"""

from __future__ import annotations


class PeptideError(RuntimeError):
    """
    Base class of all errors raised by :mod:`dpd_peptide`.

    Raised directly for inconsistent internal state (for example a z-matrix
    filled in the wrong order).
    """

    pass


class NotationSyntaxError(PeptideError):
    """
    Exception raised when a sequence cannot be scanned.

    Parameters
    ----------
    position : int
        1-based offset of the offending character.
    message : str, optional
        Replacement for the default message.
    """

    def __init__(self, position: int, message: str | None = None):
        self.position = position
        super().__init__(message or f"Syntax error at position {position}")


class StructuralCountError(PeptideError):
    """Raised when disulfide-bond or ring-closure markers are unbalanced."""

    pass


class MissingDataError(PeptideError):
    """
    Raised when an operation needs state that has not been provided.

    Parameters
    ----------
    what : str
        Human-readable name of the missing item (e.g. ``"Protein center"``).
    """

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"Missing data: {what}")


class UnknownAminoAcidError(PeptideError):
    """Raised when a one-letter code, three-letter code or name is unknown."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Not a valid amino acid: {code!r}")


class InvalidChargeArgumentError(PeptideError):
    """Raised when a ``{...}`` charge argument is rejected by its residue."""

    def __init__(self, argument: str, code: str = ""):
        self.argument = argument
        self.code = code
        suffix = f" for amino acid {code!r}" if code else ""
        super().__init__(f"Incorrect charge argument {argument!r}{suffix}")


class IndexOutOfRangeError(PeptideError, IndexError):
    """Raised when a residue index or z-matrix step is out of bounds."""

    pass


class SequenceLengthError(PeptideError):
    """Raised when a sequence or per-residue array does not match the residue count."""

    pass
