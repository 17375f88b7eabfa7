"""
dpd_peptide.amino_acids
=======================

Residue templates for the SPICES peptide notation.

An :class:`AminoAcid` couples a one-letter and a three-letter code with a
SPICES fragment (the coarse-grained particles of the residue) and a list of
:class:`ChargeSetting` rows describing how terminal groups, side chains and
disulfide bridges change particles with pH.

Definition text
---------------
A residue is stored as one line of ``~``-separated items::

    1.0.0.0~Aspartic acid~D~Asp~Bb(AspH)~TN&9.9?NtH+:Nt;TC&2.0?CtH:Ct-;SCB&3.9?AspH:Asp-

Each charge setting is ``TYPE&pKs?protonated:deprotonated``. Exactly one of
the two particle names carries a ``+`` or ``-`` suffix which marks the
charged state; the suffix is stripped from the stored name. The disulfide
setting is ``SS&particle?bridgeParticle``.

Examples
--------
>>> from dpd_peptide.amino_acids import ChargeSetting, ChargeType
>>> s = ChargeSetting.parse("SCB&3.9?AspH:Asp-")
>>> s.type is ChargeType.SCB, s.charge_argument, s.charged_particle
(<ChargeType.SCB: 'SCB'>, 'S-', 'Asp')
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, TypeAlias

from dpd_peptide.errors import PeptideError, UnknownAminoAcidError

if TYPE_CHECKING:
    from dpd_peptide.catalog import AminoAcidCatalog

DEFINITION_VERSION = "1.0.0.0"
LINE_SEPARATOR = "~"
SEPARATOR = "|"

ONE_LETTER_PATTERN = re.compile(r"[ARNDCEQGHILKMFPSTWYV]")
THREE_LETTER_PATTERN = re.compile(r"[A-Z][A-Za-z][A-Za-z]")
SINGLE_PARTICLE_PATTERN = re.compile(r"^[A-Z][A-Za-z0-9]{0,9}$")
SIDE_CHAIN_PATTERN = re.compile(r"^[A-Z][A-Za-z0-9]{0,9}\(.+\)$")

# A charge argument such as "N+" or "S-": one letter plus the charge sign.
ChargeArgument: TypeAlias = str


class ChargeType(Enum):
    """Site a :class:`ChargeSetting` applies to."""

    TC = "TC"  # terminal carboxyl group
    TN = "TN"  # terminal amino group
    SCF = "SCF"  # side chain of a free amino acid
    SCB = "SCB"  # side chain of a peptide-bound amino acid
    SS = "SS"  # disulfide bridge


class SidechainBehaviour(Enum):
    """Which side-chain settings take part in pH-dependent charging."""

    FREE = "Free"
    BOUND = "Bound"
    IGNORE = "Ignore"


_ARGUMENT_PREFIX = {
    ChargeType.TC: "C",
    ChargeType.TN: "N",
    ChargeType.SCF: "S",
    ChargeType.SCB: "S",
}


@dataclass(frozen=True)
class ChargeSetting:
    """
    One protonation (or disulfide) rule of a residue.

    Attributes
    ----------
    type : ChargeType
        Site of the rule.
    pks : float
        Acid constant; 0 for disulfide rules.
    deprotonated : str
        Particle of the deprotonated state (bridge particle for ``SS``).
    protonated : str
        Particle of the protonated state (free thiol particle for ``SS``).
    charge : {"+", "-"} or None
        Sign of the charged state; None for ``SS``.
    protonated_charged : bool
        True if the protonated particle is the charged one.
    """

    type: ChargeType
    pks: float
    deprotonated: str
    protonated: str
    charge: str | None = None
    protonated_charged: bool = False

    @classmethod
    def parse(cls, text: str) -> ChargeSetting:
        """
        Parse ``TYPE&pKs?protonated:deprotonated`` (or ``SS&a?b``).

        Raises
        ------
        PeptideError
            If the text is not a well-formed setting.
        """
        try:
            type_text, rest = text.split("&", 1)
            charge_type = ChargeType(type_text)
            head, tail = rest.split("?", 1)
        except ValueError as exc:
            raise PeptideError(f"Invalid charge setting: {text!r}") from exc

        if charge_type is ChargeType.SS:
            return cls(charge_type, 0.0, deprotonated=tail, protonated=head)

        try:
            pks = float(head)
            protonated, deprotonated = tail.split(":", 1)
        except ValueError as exc:
            raise PeptideError(f"Invalid charge setting: {text!r}") from exc

        if protonated.endswith("+") or "-" in protonated:
            charge = "+" if "+" in protonated else "-"
            protonated_charged = True
            protonated = protonated.replace("+", "").replace("-", "")
        else:
            charge = "+" if "+" in deprotonated else "-"
            protonated_charged = False
            deprotonated = deprotonated.replace("+", "").replace("-", "")
        return cls(charge_type, pks, deprotonated, protonated, charge, protonated_charged)

    @property
    def charge_argument(self) -> ChargeArgument | None:
        """Two-character argument selecting this setting, e.g. ``"C-"``."""
        if self.type is ChargeType.SS:
            return None
        return _ARGUMENT_PREFIX[self.type] + self.charge

    @property
    def charged_particle(self) -> str:
        return self.protonated if self.protonated_charged else self.deprotonated

    @property
    def uncharged_particle(self) -> str:
        return self.deprotonated if self.protonated_charged else self.protonated

    def to_text(self) -> str:
        """Serialize back to the definition-text form."""
        if self.type is ChargeType.SS:
            return f"SS&{self.protonated}?{self.deprotonated}"
        protonated = self.protonated + (self.charge if self.protonated_charged else "")
        deprotonated = self.deprotonated + ("" if self.protonated_charged else self.charge)
        return f"{self.type.value}&{self.pks:g}?{protonated}:{deprotonated}"


def split_charge_argument(argument: str) -> list[ChargeArgument]:
    """Split ``"N+S-"`` into ``["N+", "S-"]`` (trailing odd character dropped)."""
    return [argument[i : i + 2] for i in range(0, len(argument) - 1, 2)]


class AminoAcid:
    """
    Residue template: codes, SPICES fragment and charge settings.

    Parameters
    ----------
    name : str
        Full name, e.g. ``"Cystein"``.
    one_letter : str
        One-letter code (one of the 20 standard letters).
    three_letter : str
        Three-letter code; stored upper-case.
    spices : str
        Either a single particle (``"Gly"``) or a backbone particle with a
        bracketed side chain (``"Bb(CysH)"``).
    charge_settings : str
        ``;``-joined charge settings.
    catalog : AminoAcidCatalog, optional
        Owning catalog. Needed for disulfide variants of other residues and
        for the single-particle-only N-terminal rule.

    Raises
    ------
    UnknownAminoAcidError
        If a code does not have the expected shape.
    PeptideError
        If the SPICES fragment or a separator character is invalid.
    """

    def __init__(
        self,
        name: str,
        one_letter: str,
        three_letter: str,
        spices: str,
        charge_settings: str,
        catalog: AminoAcidCatalog | None = None,
    ):
        for item in (name, one_letter, three_letter, spices, charge_settings):
            if LINE_SEPARATOR in item or SEPARATOR in item:
                raise PeptideError(f"Invalid separator character in {item!r}")
        if not ONE_LETTER_PATTERN.fullmatch(one_letter.upper()):
            raise UnknownAminoAcidError(one_letter)
        if not THREE_LETTER_PATTERN.fullmatch(three_letter):
            raise UnknownAminoAcidError(three_letter)

        self.name = name
        self.one_letter = one_letter.upper()
        self.three_letter = three_letter.upper()
        self._three_letter_text = three_letter
        self.catalog = catalog
        self.spices = spices
        self.charge_settings = [
            ChargeSetting.parse(s) for s in charge_settings.split(";") if s
        ]

    @classmethod
    def from_definition(
        cls, definition: str, catalog: AminoAcidCatalog | None = None
    ) -> AminoAcid:
        """
        Build a residue from its ``~``-separated definition line.

        Raises
        ------
        PeptideError
            If the line does not have six items or the version is unknown.
        """
        items = definition.split(LINE_SEPARATOR) if definition else []
        if len(items) != 6 or items[0] != DEFINITION_VERSION:
            raise PeptideError(f"Invalid amino acid definition: {definition!r}")
        _, name, one, three, spices, settings = items
        return cls(name, one, three, spices, settings, catalog=catalog)

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def spices(self) -> str:
        return self._spices

    @spices.setter
    def spices(self, value: str) -> None:
        self.is_single_particle = bool(SINGLE_PARTICLE_PATTERN.match(value))
        if not self.is_single_particle and not SIDE_CHAIN_PATTERN.match(value):
            raise PeptideError(f"Invalid amino acid SPICES: {value!r}")
        self._spices = value

    @property
    def backbone_particle(self) -> str:
        """First particle of the fragment (the one mapped onto C-alpha)."""
        return re.split(r"[(\-]", self._spices, maxsplit=1)[0]

    @property
    def definition(self) -> str:
        """Definition line reflecting the current SPICES and settings."""
        settings = ";".join(s.to_text() for s in self.charge_settings)
        return LINE_SEPARATOR.join(
            [
                DEFINITION_VERSION,
                self.name,
                self.one_letter,
                self._three_letter_text,
                self._spices,
                settings,
            ]
        )

    @property
    def particles(self) -> set[str]:
        """Every particle name the residue can emit."""
        names = set(re.split(r"[()\-]", self._spices)) - {""}
        for s in self.charge_settings:
            names.update((s.protonated, s.deprotonated))
        return names

    def charge_setting(self, charge_type: ChargeType) -> ChargeSetting | None:
        """Return the first setting of the given type, or None."""
        for setting in self.charge_settings:
            if setting.type is charge_type:
                return setting
        return None

    def __repr__(self) -> str:
        return f"AminoAcid({self.one_letter!r}, {self.three_letter!r}, {self._spices!r})"

    # ------------------------------------------------------------------ #
    # Charging
    # ------------------------------------------------------------------ #

    def is_valid_charge_argument(self, argument: str) -> bool:
        """True if the argument is a non-empty run of accepted two-character chunks."""
        if not argument or len(argument) % 2:
            return False
        accepted = {s.charge_argument for s in self.charge_settings}
        return all(chunk in accepted for chunk in split_charge_argument(argument))

    def one_letter_code_charged(
        self,
        ph: float,
        behaviour: SidechainBehaviour = SidechainBehaviour.FREE,
        terminal_c_bound: bool = False,
        terminal_n_bound: bool = False,
    ) -> str:
        """
        One-letter code with the charge arguments that apply at ``ph``.

        A protonated-charged setting applies at ``ph <= pKs``, a
        deprotonated-charged one at ``ph > pKs``.

        Parameters
        ----------
        ph : float
            Target pH.
        behaviour : SidechainBehaviour, default=FREE
            ``FREE`` applies ``SCF`` rows, ``BOUND`` applies ``SCB`` rows,
            ``IGNORE`` applies neither.
        terminal_c_bound, terminal_n_bound : bool, default=False
            Suppress the ``TC`` / ``TN`` rows.

        Returns
        -------
        str
            e.g. ``"D{N+C-S-}"`` or plain ``"A"`` when nothing applies.

        Examples
        --------
        >>> from dpd_peptide.catalog import AminoAcidCatalog
        >>> AminoAcidCatalog().get("K").one_letter_code_charged(7.0)
        'K{N+C-S+}'
        """
        arguments = []
        for setting in self.charge_settings:
            if setting.type is ChargeType.TC and terminal_c_bound:
                continue
            if setting.type is ChargeType.TN and terminal_n_bound:
                continue
            if setting.type is ChargeType.SCF and behaviour is not SidechainBehaviour.FREE:
                continue
            if setting.type is ChargeType.SCB and behaviour is not SidechainBehaviour.BOUND:
                continue
            if setting.type is ChargeType.SS:
                continue
            if (ph <= setting.pks) == setting.protonated_charged:
                arguments.append(setting.charge_argument)
        if not arguments:
            return self.one_letter
        return self.one_letter + "{" + "".join(arguments) + "}"

    def spices_in_disulfide_bond(self, spices: str | None = None) -> str:
        """Swap the cystein thiol particle for its bridge particle."""
        spices = self._spices if spices is None else spices
        setting = self._disulfide_setting()
        if setting is None:
            return spices
        return spices.replace(setting.protonated, setting.deprotonated)

    def charged_spices(
        self,
        argument: str,
        first: bool = False,
        last: bool = False,
        disulfide: bool = False,
    ) -> str:
        """
        SPICES fragment after applying a ``{...}`` charge argument.

        ``TC`` appends the charged C-terminal particle, ``TN`` replaces (or,
        for single-particle residues, prepends) the backbone particle and
        ``SCB`` replaces the side-chain particle just before the last ``)``.
        ``SCF`` never changes a peptide fragment.

        Parameters
        ----------
        argument : str
            Concatenated two-character charge arguments.
        first, last : bool, default=False
            Position of the residue in its peptide.
        disulfide : bool, default=False
            Apply the disulfide-bridge particle swap.

        Returns
        -------
        str
            The modified fragment.
        """
        spices = self._spices
        only_single = self.catalog is not None and self.catalog.is_only_single_particle
        for chunk in split_charge_argument(argument):
            for setting in self.charge_settings:
                if chunk != setting.charge_argument:
                    continue
                if setting.type is ChargeType.TC:
                    spices = f"{spices}-{setting.charged_particle}"
                    if disulfide:
                        spices = self.spices_in_disulfide_bond(spices)
                elif setting.type is ChargeType.TN:
                    if only_single or self.is_single_particle:
                        spices = f"{setting.charged_particle}-{spices}"
                    else:
                        match = re.search(r"[(\-]", spices)
                        tail = spices[match.start() :] if match else ""
                        spices = setting.charged_particle + tail
                    if disulfide:
                        spices = self.spices_in_disulfide_bond(spices)
                elif setting.type is ChargeType.SCB:
                    spices = self._charge_side_chain(spices, setting, first or last)
        return spices

    def _charge_side_chain(
        self, spices: str, setting: ChargeSetting, terminal: bool
    ) -> str:
        if self.is_single_particle:
            if terminal and "-" in spices:
                return spices.replace(setting.uncharged_particle, setting.charged_particle)
            return setting.charged_particle
        end = spices.rfind(")")
        start = max(spices.rfind("-", 0, end), spices.rfind("(", 0, end))
        return spices[: start + 1] + setting.charged_particle + spices[end:]

    def _disulfide_setting(self) -> ChargeSetting | None:
        if self.catalog is not None and self.catalog.has_one_letter("C"):
            return self.catalog.get("C").charge_setting(ChargeType.SS)
        return self.charge_setting(ChargeType.SS)
