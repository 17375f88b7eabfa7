"""
dpd_peptide.spices
==================

Parsed SPICES fragments.

A residue fragment such as ``Bb(Lys1-LysH)-CtH`` or ``Bb(CysS[1])`` is parsed
into an arena: a flat list of :class:`SpicesNode` objects that refer to each
other by index. ``(`` opens a branch on the current particle, ``)`` returns to
it, ``-`` links the next particle to the current one and ``[n]`` attaches a
bond (disulfide or ring closure) index to the particle it follows.

The arena is re-rootable: :meth:`SpicesFragment.layout` walks the tree from
any particle, which is how the first residue of a chain gets its backbone
particle emitted first when an N-terminal particle precedes it.

Functions
---------
split_fragments
    Split a line-broken chain SPICES into residue fragments.
backbone_index
    Index of the particle that represents the C-alpha atom.
strip_markers
    Remove bond markers, newlines and parentheses from a name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from dpd_peptide.errors import NotationSyntaxError

FRAGMENT_SEPARATOR = "\n-"

_MARKERS = re.compile(r"\[[^\]]*\]|[()\n]")
_TOKEN = re.compile(r"[A-Za-z][A-Za-z0-9]*|\[\d+\]|[()\-]")


@dataclass
class SpicesNode:
    """One particle of a fragment."""

    name: str
    parent: int = -1
    children: list[int] = field(default_factory=list)
    bonds: list[int] = field(default_factory=list)


class SpicesFragment:
    """
    Arena tree of one residue fragment.

    Parameters
    ----------
    text : str
        Fragment text without the leading ``-`` separator.

    Raises
    ------
    NotationSyntaxError
        On unbalanced parentheses or unknown characters.
    """

    def __init__(self, text: str):
        self.text = text
        self.nodes: list[SpicesNode] = []
        self._parse(text.strip())

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def names(self) -> list[str]:
        return [node.name for node in self.nodes]

    @property
    def has_branch(self) -> bool:
        return "(" in self.text

    def _parse(self, text: str) -> None:
        stack: list[int] = []
        current = -1
        position = 0
        for match in _TOKEN.finditer(text):
            if match.start() != position:
                raise NotationSyntaxError(position + 1)
            position = match.end()
            token = match.group()
            if token == "(":
                if current < 0:
                    raise NotationSyntaxError(match.start() + 1)
                stack.append(current)
            elif token == ")":
                if not stack:
                    raise NotationSyntaxError(match.start() + 1)
                current = stack.pop()
            elif token == "-":
                continue
            elif token.startswith("["):
                if current < 0:
                    raise NotationSyntaxError(match.start() + 1)
                self.nodes[current].bonds.append(int(token[1:-1]))
            else:
                node = SpicesNode(token, parent=current)
                self.nodes.append(node)
                index = len(self.nodes) - 1
                if current >= 0:
                    self.nodes[current].children.append(index)
                current = index
        if position != len(text) or stack or not self.nodes:
            raise NotationSyntaxError(position + 1)

    def _neighbours(self, index: int) -> list[int]:
        node = self.nodes[index]
        around = list(node.children)
        if node.parent >= 0:
            around.append(node.parent)
        return sorted(around)

    def layout(self, root: int = 0) -> list[tuple[int, list[int]]]:
        """
        Emission order and relative connections, walking from ``root``.

        Particles are emitted depth first, neighbours in text order. Each
        entry is ``(node index, offsets)`` where the offsets point from the
        emitted particle to its connected particles within the fragment: the
        parent first (negative), then the children (positive, ascending).

        Examples
        --------
        >>> SpicesFragment("Bb(A-B)(C)-D").layout()
        [(0, [1, 3, 4]), (1, [-1, 1]), (2, [-1]), (3, [-3]), (4, [-4])]
        """
        order: list[int] = []
        parent_of = {root: -1}
        pending = [root]
        while pending:
            index = pending.pop()
            order.append(index)
            below = [n for n in self._neighbours(index) if n != parent_of[index]]
            for n in below:
                parent_of[n] = index
            pending.extend(reversed(below))

        position = {index: i for i, index in enumerate(order)}
        result = []
        for i, index in enumerate(order):
            offsets = []
            if parent_of[index] >= 0:
                offsets.append(position[parent_of[index]] - i)
            offsets += sorted(
                position[n] - i
                for n in self._neighbours(index)
                if n != parent_of[index]
            )
            result.append((index, offsets))
        return result


def split_fragments(chain_spices: str) -> list[str]:
    """Split a line-broken chain SPICES string into residue fragments."""
    return [f for f in chain_spices.split(FRAGMENT_SEPARATOR) if f]


def backbone_index(fragment: SpicesFragment, first: bool) -> int:
    """
    Index of the backbone (C-alpha) particle of a fragment.

    The first fragment of a chain without a branch starts with an N-terminal
    particle when it has more than one particle, so its second particle is
    the backbone. Otherwise the first particle is.
    """
    if first and not fragment.has_branch and len(fragment) > 1:
        return 1
    return 0


def strip_markers(name: str) -> str:
    """Remove ``[n]`` markers, newlines and parentheses."""
    return _MARKERS.sub("", name)
