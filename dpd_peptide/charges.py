"""
dpd_peptide.charges
===================

pH-dependent charge annotation of one-letter sequences.

:class:`PeptideChargeAssigner` strips existing ``{...}`` blocks and adds the
charge arguments each residue carries at the requested pH. The first residue
keeps its free amino group, the last residue its free carboxyl group (unless
the peptide is circular) and a cysteine bound in a disulfide bridge keeps an
uncharged side chain.

Examples
--------
>>> from dpd_peptide.catalog import AminoAcidCatalog
>>> from dpd_peptide.charges import PeptideChargeAssigner
>>> assigner = PeptideChargeAssigner(AminoAcidCatalog())
>>> assigner.charge("AKD", 7.0)
'A{N+}K{S+}D{C-S-}'
"""

from __future__ import annotations

from dpd_peptide.amino_acids import SidechainBehaviour
from dpd_peptide.catalog import AminoAcidCatalog
from dpd_peptide.notation import followed_by_disulfide, remove_one_letter_charges, tokenize
from dpd_peptide.validator import normalize


def _split_terminal_frequencies(sequence: str) -> str:
    """
    Rewrite the repeat counts of the first and last token.

    ``3A`` at the start becomes ``A2A`` and ``3A`` at the end becomes ``2AA``,
    so only the outermost occurrence receives terminal treatment. Bond and
    ring markers stay with the last piece.
    """
    tokens = tokenize(sequence)
    pieces = []
    for index, token in enumerate(tokens):
        markers = "".join(f"[{m}]" for m in token.markers)
        code, f = token.code, token.frequency
        is_first = index == 0
        is_last = index == len(tokens) - 1
        if f > 1 and is_first and is_last:
            middle = ""
            if f > 2:
                middle = (str(f - 2) if f - 2 > 1 else "") + code
            pieces.append(code + middle + code + markers)
        elif f > 1 and is_first:
            pieces.append(code + (str(f - 1) if f - 1 > 1 else "") + code + markers)
        elif f > 1 and is_last:
            pieces.append((str(f - 1) if f - 1 > 1 else "") + code + code + markers)
        else:
            pieces.append((str(f) if f > 1 else "") + code + markers)
    return "".join(pieces)


class PeptideChargeAssigner:
    """
    Adds pH-dependent ``{...}`` charge arguments to a sequence.

    Parameters
    ----------
    catalog : AminoAcidCatalog
        Residue templates with their charge settings.
    """

    def __init__(self, catalog: AminoAcidCatalog):
        self.catalog = catalog

    def charge(self, sequence: str, ph: float, circular: bool = False) -> str:
        """
        Charge a one-letter sequence.

        Parameters
        ----------
        sequence : str
            One-letter sequence, charged or not.
        ph : float
            Target pH.
        circular : bool, default=False
            Skip terminal treatment of the first and last residue.

        Returns
        -------
        str
            The sequence with ``{...}`` blocks inserted.
        """
        seq = remove_one_letter_charges(normalize(sequence))
        if not seq:
            return ""
        if len(seq) == 1:
            return self.catalog.get(seq).one_letter_code_charged(ph)

        seq = _split_terminal_frequencies(seq)
        letters = [i for i, c in enumerate(seq) if c.isalpha()]
        first, last = letters[0], letters[-1]

        out = []
        for i, c in enumerate(seq):
            if not c.isalpha():
                out.append(c)
                continue
            behaviour = SidechainBehaviour.BOUND
            if c == "C" and followed_by_disulfide(seq, i):
                behaviour = SidechainBehaviour.IGNORE
            if i == first and not circular:
                c_bound, n_bound = True, False
            elif i == last and not circular:
                c_bound, n_bound = False, True
            else:
                c_bound, n_bound = True, True
            out.append(
                self.catalog.get(c).one_letter_code_charged(ph, behaviour, c_bound, n_bound)
            )
        return "".join(out)
