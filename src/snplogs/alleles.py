"""Allele codes used by mutation logs.

A log allele is one IUPAC symbol: the four nucleotides, the no-call ``N``,
or one of the six two-base ambiguity codes used for heterozygous sites.

    M = A/C    R = A/G    W = A/T
    S = C/G    Y = C/T    K = G/T

Every conversion here is total: unknown symbols decode to ``N`` and every
code splits into exactly one unordered base pair.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Tuple


class AlleleCode(Enum):
    A = "A"
    C = "C"
    G = "G"
    T = "T"
    N = "N"
    M = "M"
    R = "R"
    W = "W"
    S = "S"
    Y = "Y"
    K = "K"

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def is_base(self) -> bool:
        """True for the four nucleotides (not N, not ambiguity codes)."""
        return self in _BASES

    @property
    def is_ambiguous(self) -> bool:
        """True for the six heterozygous ambiguity codes."""
        return self in _PAIR_BY_CODE

    def split(self) -> Tuple["AlleleCode", "AlleleCode"]:
        return split(self)


_BASES: FrozenSet[AlleleCode] = frozenset(
    {AlleleCode.A, AlleleCode.C, AlleleCode.G, AlleleCode.T}
)

_PAIR_BY_CODE: Dict[AlleleCode, Tuple[AlleleCode, AlleleCode]] = {
    AlleleCode.M: (AlleleCode.A, AlleleCode.C),
    AlleleCode.R: (AlleleCode.A, AlleleCode.G),
    AlleleCode.W: (AlleleCode.A, AlleleCode.T),
    AlleleCode.S: (AlleleCode.C, AlleleCode.G),
    AlleleCode.Y: (AlleleCode.C, AlleleCode.T),
    AlleleCode.K: (AlleleCode.G, AlleleCode.T),
}

_CODE_BY_PAIR: Dict[FrozenSet[AlleleCode], AlleleCode] = {
    frozenset(pair): code for code, pair in _PAIR_BY_CODE.items()
}

_CODE_BY_SYMBOL: Dict[str, AlleleCode] = {c.value: c for c in AlleleCode}


def decode(symbol: str) -> AlleleCode:
    """Decode a log allele string into an AlleleCode.

    Only the first character is considered, case-insensitively. Anything
    that is not one of the eleven symbols (including an empty string or an
    indel marker) decodes to ``N``.
    """
    if not symbol:
        return AlleleCode.N
    return _CODE_BY_SYMBOL.get(symbol[0].upper(), AlleleCode.N)


def encode(code: AlleleCode) -> str:
    return code.value


def split(code: AlleleCode) -> Tuple[AlleleCode, AlleleCode]:
    """Decompose a code into its two haploid bases.

    Homozygous codes (and ``N``) pair with themselves; ambiguity codes return
    their defining pair in alphabetical order.
    """
    pair = _PAIR_BY_CODE.get(code)
    if pair is None:
        return code, code
    return pair


def degenerate(a: AlleleCode, b: AlleleCode) -> AlleleCode:
    """Combine two haploid calls into one diploid code."""
    if a == b:
        return a
    if not (a.is_base and b.is_base):
        return AlleleCode.N
    return _CODE_BY_PAIR[frozenset((a, b))]
