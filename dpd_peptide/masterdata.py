"""
dpd_peptide.masterdata
======================

Persistent key/value state of a structure mapping session.

:class:`PdbToDpdMasterdata` is a ``dict`` of strings with typed accessors.
It serializes to XML (root ``PDBTODPD_MASTERDATA``, one child per key in
alphabetical order) and to a compact zlib-compressed base64 form, so a
mapper can be stored and restored with everything it needs: original PDB
text, catalog definition and all selections.

Examples
--------
>>> from dpd_peptide.masterdata import PdbToDpdMasterdata
>>> data = PdbToDpdMasterdata()
>>> data.center = (1.0, 2.0, 3.0)
>>> PdbToDpdMasterdata.from_compressed(data.to_compressed()).center
(1.0, 2.0, 3.0)
"""

from __future__ import annotations

import base64
import xml.etree.ElementTree as ET
import zlib

from dpd_peptide.errors import PeptideError

TAG = "PDBTODPD_MASTERDATA"
VERSION = "1.0.0.0"
ASYMMETRIC_UNIT = "Asymmetric Unit"

ORIGINAL_PDB = "ORIGINAL_PDB"
ACTIVE_CHAINS = "ACTIVE_CHAINS"
PH_VALUE = "PH_VALUE"
RADIUS = "RADIUS"
CENTER = "CENTER"
ROTATION = "ROTATION"
DEFAULT_ROTATION = "DEFAULT_ROTATION"
LAST_INDEX = "LAST_INDEX"
LAST_CALPHA_INDEX = "LAST_CALPHA_INDEX"
NUMBER_OF_DECIMALS = "NUMBER_OF_DECIMALS_FOR_COORDINATES"
CA_ATOM_INDEX_PROBE_MAP = "CA_ATOM_INDEX_PROBE_MAP"
BACKBONE_PARTICLE_STATUS = "BACKBONE_PARTICLE_STATUS"
BACKBONE_PARTICLE_SEGMENTS = "BACKBONE_PARTICLE_SEGMENTS"
IS_CIRCULAR = "IS_CIRCULAR"
OVERRIDDEN_SEQUENCES = "OVERRIDDEN_SEQUENCES"
BIOLOGICAL_ASSEMBLY = "BIOLOGICAL_ASSEMBLY"
BIOLOGICAL_ASSEMBLY_FILTER = "BIOLOGICAL_ASSEMBLY_FILTER"
NUMBER_OF_MODELS_ASSEMBLY = "NUMBER_OF_MODELS_ASSEMBLY"
USE_FREQUENCY_SPICES = "USE_FSMILES_FREQUENCIES"
SEED = "SEED"
AMINO_ACIDS_DEFINITION = "AMINO_ACIDS_DEFINITION"
VERSION_KEY = "VERSION"


def _join(values) -> str:
    return "".join(f"{v};" for v in values)


def _split(text: str) -> list[str]:
    return [v for v in text.split(";") if v]


class PdbToDpdMasterdata(dict):
    """String map with typed accessors for every persisted setting."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.setdefault(USE_FREQUENCY_SPICES, "true")
        self.setdefault(VERSION_KEY, VERSION)

    # ------------------------------------------------------------------ #
    # Serialization
    # ------------------------------------------------------------------ #

    def to_xml(self) -> str:
        root = ET.Element(TAG)
        root.text = "\n"
        for key in sorted(self):
            node = ET.SubElement(root, key)
            node.text = self[key]
            node.tail = "\n"
        return ET.tostring(root, encoding="unicode")

    @classmethod
    def from_xml(cls, text: str) -> PdbToDpdMasterdata:
        """
        Raises
        ------
        PeptideError
            If the text is not masterdata XML.
        """
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise PeptideError("Cannot read masterdata XML") from exc
        if root.tag != TAG:
            raise PeptideError(f"Unexpected masterdata root {root.tag!r}")
        return cls({child.tag: child.text or "" for child in root})

    def to_compressed(self) -> str:
        return base64.b64encode(zlib.compress(self.to_xml().encode("utf-8"))).decode("ascii")

    @classmethod
    def from_compressed(cls, text: str) -> PdbToDpdMasterdata:
        """Restore from :meth:`to_compressed` output or from plain XML."""
        if text.lstrip().startswith("<"):
            return cls.from_xml(text)
        try:
            xml = zlib.decompress(base64.b64decode(text)).decode("utf-8")
        except (ValueError, zlib.error) as exc:
            raise PeptideError("Cannot decompress masterdata") from exc
        return cls.from_xml(xml)

    # ------------------------------------------------------------------ #
    # Typed accessors
    # ------------------------------------------------------------------ #

    def _set_or_remove(self, key: str, value: str | None) -> None:
        if value is None:
            self.pop(key, None)
        else:
            self[key] = value

    @property
    def version(self) -> str:
        return self.get(VERSION_KEY, VERSION)

    @property
    def original_pdb(self) -> str | None:
        return self.get(ORIGINAL_PDB)

    @original_pdb.setter
    def original_pdb(self, value: str) -> None:
        self[ORIGINAL_PDB] = value

    @property
    def amino_acids_definition(self) -> str | None:
        return self.get(AMINO_ACIDS_DEFINITION)

    @amino_acids_definition.setter
    def amino_acids_definition(self, value: str) -> None:
        self[AMINO_ACIDS_DEFINITION] = value

    @property
    def active_chains(self) -> list[str] | None:
        if ACTIVE_CHAINS not in self:
            return None
        return sorted(_split(self[ACTIVE_CHAINS]))

    @active_chains.setter
    def active_chains(self, chains: list[str] | None) -> None:
        self._set_or_remove(ACTIVE_CHAINS, None if chains is None else _join(sorted(chains)))

    @property
    def ph(self) -> float | None:
        return float(self[PH_VALUE]) if PH_VALUE in self else None

    @ph.setter
    def ph(self, value: float | None) -> None:
        self._set_or_remove(PH_VALUE, None if value is None else repr(float(value)))

    @property
    def radius(self) -> float | None:
        return float(self[RADIUS]) if RADIUS in self else None

    @radius.setter
    def radius(self, value: float | None) -> None:
        self._set_or_remove(RADIUS, None if value is None else repr(float(value)))

    @property
    def center(self) -> tuple[float, float, float] | None:
        if CENTER not in self:
            return None
        x, y, z = (float(v) for v in self[CENTER].split(";")[:3])
        return (x, y, z)

    @center.setter
    def center(self, value) -> None:
        self._set_or_remove(
            CENTER, None if value is None else "{:f};{:f};{:f}".format(*value)
        )

    @property
    def rotation(self) -> tuple[float, float, float, float] | None:
        """Quaternion ``(x, y, z, w)``."""
        if ROTATION not in self:
            return None
        x, y, z, w = (float(v) for v in self[ROTATION].split(";")[:4])
        return (x, y, z, w)

    @rotation.setter
    def rotation(self, value) -> None:
        self._set_or_remove(
            ROTATION, None if value is None else "{:f};{:f};{:f};{:f}".format(*value)
        )

    def copy_rotation_to_default(self) -> None:
        if ROTATION in self:
            self[DEFAULT_ROTATION] = self[ROTATION]

    def restore_default_rotation(self) -> None:
        if DEFAULT_ROTATION in self:
            self[ROTATION] = self[DEFAULT_ROTATION]

    @property
    def last_index(self) -> int:
        return int(self.get(LAST_INDEX, 0))

    @last_index.setter
    def last_index(self, value: int) -> None:
        self[LAST_INDEX] = str(value)

    @property
    def last_ca_index(self) -> int:
        return int(self.get(LAST_CALPHA_INDEX, 0))

    @last_ca_index.setter
    def last_ca_index(self, value: int) -> None:
        self[LAST_CALPHA_INDEX] = str(value)

    @property
    def decimals(self) -> int:
        return int(self.get(NUMBER_OF_DECIMALS, 6))

    @decimals.setter
    def decimals(self, value: int) -> None:
        self[NUMBER_OF_DECIMALS] = str(value)

    @property
    def probes(self) -> dict[str, str]:
        """C-alpha key to probe particle."""
        result = {}
        for entry in _split(self.get(CA_ATOM_INDEX_PROBE_MAP, "")):
            key, _, probe = entry.partition("_")
            result[key] = probe
        return result

    @probes.setter
    def probes(self, value: dict[str, str] | None) -> None:
        self._set_or_remove(
            CA_ATOM_INDEX_PROBE_MAP,
            _join(f"{k}_{v}" for k, v in value.items()) if value else None,
        )

    @property
    def status(self) -> list[bool] | None:
        if BACKBONE_PARTICLE_STATUS not in self:
            return None
        return [v == "true" for v in _split(self[BACKBONE_PARTICLE_STATUS])]

    @status.setter
    def status(self, value: list[bool] | None) -> None:
        self._set_or_remove(
            BACKBONE_PARTICLE_STATUS,
            None if value is None else _join("true" if v else "false" for v in value),
        )

    @property
    def segments(self) -> list[int] | None:
        if BACKBONE_PARTICLE_SEGMENTS not in self:
            return None
        return [int(v) for v in _split(self[BACKBONE_PARTICLE_SEGMENTS])]

    @segments.setter
    def segments(self, value: list[int] | None) -> None:
        self._set_or_remove(
            BACKBONE_PARTICLE_SEGMENTS, None if value is None else _join(int(v) for v in value)
        )

    @property
    def circular(self) -> bool:
        return self.get(IS_CIRCULAR, "false") == "true"

    @circular.setter
    def circular(self, value: bool) -> None:
        self[IS_CIRCULAR] = "true" if value else "false"

    @property
    def use_frequency_spices(self) -> bool:
        return self.get(USE_FREQUENCY_SPICES, "false") == "true"

    @use_frequency_spices.setter
    def use_frequency_spices(self, value: bool) -> None:
        self[USE_FREQUENCY_SPICES] = "true" if value else "false"

    @property
    def overridden_sequences(self) -> dict[str, str]:
        """Chain ID to overriding one-letter sequence."""
        result = {}
        for entry in _split(self.get(OVERRIDDEN_SEQUENCES, "")):
            chain, _, sequence = entry.partition("_")
            result[chain] = sequence
        return result

    @overridden_sequences.setter
    def overridden_sequences(self, value: dict[str, str] | None) -> None:
        self._set_or_remove(
            OVERRIDDEN_SEQUENCES,
            _join(f"{k}_{v}" for k, v in value.items()) if value else None,
        )

    @property
    def biological_assembly(self) -> str:
        return self.get(BIOLOGICAL_ASSEMBLY, ASYMMETRIC_UNIT)

    @biological_assembly.setter
    def biological_assembly(self, value: str) -> None:
        self[BIOLOGICAL_ASSEMBLY] = value

    @property
    def biological_assembly_filter(self) -> str | None:
        return self.get(BIOLOGICAL_ASSEMBLY_FILTER)

    @biological_assembly_filter.setter
    def biological_assembly_filter(self, value: str | None) -> None:
        self._set_or_remove(BIOLOGICAL_ASSEMBLY_FILTER, value)

    @property
    def number_of_models(self) -> int:
        return int(self.get(NUMBER_OF_MODELS_ASSEMBLY, 1))

    @number_of_models.setter
    def number_of_models(self, value: int) -> None:
        self[NUMBER_OF_MODELS_ASSEMBLY] = str(value)

    @property
    def seed(self) -> int:
        return int(self.get(SEED, 1))

    @seed.setter
    def seed(self, value: int) -> None:
        self[SEED] = str(value)
