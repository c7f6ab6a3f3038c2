from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .alleles import AlleleCode, decode


@dataclass(frozen=True)
class VariantRecord:
    """One line of a mutation log.

    Positions are 1-based, as written in the log.

    Attributes
    ----------
    scaffold:
        Scaffold (contig) name.
    position:
        1-based position on the scaffold.
    ref:
        Reference allele string exactly as read from the log.
    alt:
        Called allele string exactly as read from the log. Observed logs may
        carry multi-character strings at indel sites.
    depth:
        Raw sequencing depth from the optional 5th column.
    """

    scaffold: str
    position: int
    ref: str
    alt: str
    depth: Optional[int] = None

    @property
    def ref_code(self) -> AlleleCode:
        return decode(self.ref)

    @property
    def alt_code(self) -> AlleleCode:
        return decode(self.alt)

    @property
    def is_multibase(self) -> bool:
        """True when either allele string is longer than one character (indel site)."""
        return len(self.ref) > 1 or len(self.alt) > 1


@dataclass(frozen=True)
class IndelEvent:
    """An insertion or deletion from an indel log (0-based position)."""

    scaffold: str
    position: int
    is_insertion: bool
    size: int


@dataclass(frozen=True)
class Breakpoint:
    """Source (original) position and the target (downstream) position it maps to."""

    source: int
    target: int

    @property
    def offset(self) -> int:
        return self.target - self.source
