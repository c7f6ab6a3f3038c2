"""Coordinate-space mapping across indels.

An indel log lists, per scaffold, the insertions and deletions applied to a
branch in order::

    scaffold  position(0-based)  kind("ins" or anything else = deletion)  size

The map built from it holds, per scaffold, breakpoints ``(source, target)``
starting at ``(0, 0)``. ``target - source`` is the cumulative net offset of
all indels up to that breakpoint, so a downstream (post-indel) position ``p``
lying at or after a breakpoint's target translates back to
``p + source - target``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import InputOpenError, LogParseError, LogReadError
from .models import Breakpoint, IndelEvent
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

_ORIGIN = Breakpoint(source=0, target=0)
_IDENTITY: Tuple[Breakpoint, ...] = (_ORIGIN,)


@dataclass(frozen=True)
class CoordinateMap:
    """Per-scaffold breakpoint sequences; scaffolds not listed map identically."""

    table: Mapping[str, Tuple[Breakpoint, ...]]

    def breakpoints(self, scaffold: str) -> Tuple[Breakpoint, ...]:
        return self.table.get(scaffold, _IDENTITY)

    def __contains__(self, scaffold: object) -> bool:
        return scaffold in self.table

    def cursor(self, scaffold: str) -> "BreakpointCursor":
        return BreakpointCursor(self.breakpoints(scaffold))


def build_coordinate_map(events: Iterable[IndelEvent]) -> CoordinateMap:
    """Accumulate indel events into per-scaffold breakpoints.

    Each scaffold keeps its own running offset starting at 0, also when its
    events are interleaved with another scaffold's. Zero-size events have no
    coordinate effect but still register their scaffold.
    """
    table: Dict[str, List[Breakpoint]] = {}
    offsets: Dict[str, int] = {}
    for ev in events:
        if ev.scaffold not in table:
            offsets[ev.scaffold] = 0
            table[ev.scaffold] = [_ORIGIN]
        if ev.size == 0:
            continue
        offsets[ev.scaffold] += ev.size if ev.is_insertion else -ev.size
        source = ev.position + 1
        table[ev.scaffold].append(Breakpoint(source=source, target=source + offsets[ev.scaffold]))
    return CoordinateMap(table=MappingProxyType({k: tuple(v) for k, v in table.items()}))


def _parse_indel_line(line: str, *, path: Path, line_no: int) -> IndelEvent:
    fields = line.split("\t")
    if len(fields) < 4:
        raise LogParseError(
            "Expected 4 tab-delimited fields in indel log",
            path=path,
            line_no=line_no,
            scaffold=fields[0],
            line=line,
        )
    try:
        position = int(fields[1])
        size = int(fields[3])
    except ValueError:
        raise LogParseError(
            "Non-numeric position or size in indel log",
            path=path,
            line_no=line_no,
            scaffold=fields[0],
            line=line,
        ) from None
    if size < 0:
        raise LogParseError(
            "Negative indel size",
            path=path,
            line_no=line_no,
            scaffold=fields[0],
            line=line,
        )
    return IndelEvent(
        scaffold=fields[0],
        position=position,
        is_insertion=fields[2] == "ins",
        size=size,
    )


def load_coordinate_map(path: str | Path, *, role: str = "indel log") -> CoordinateMap:
    """Read an indel log and build its CoordinateMap."""
    p = Path(path)
    try:
        fh = open_textmaybe_gzip(p, "rt")
    except OSError as e:
        raise InputOpenError(role, p, exit_code=3) from e

    events: List[IndelEvent] = []
    with fh:
        try:
            for line_no, line in enumerate(fh, start=1):
                line = line.rstrip("\r\n")
                if not line:
                    continue
                events.append(_parse_indel_line(line, path=p, line_no=line_no))
        except OSError as e:
            raise LogReadError(
                f"Failed to construct coordinate-space mapping from {p}: {e}", path=p
            ) from e

    cmap = build_coordinate_map(events)
    logger.info("Coordinate map built from %d indel events on %d scaffolds", len(events), len(cmap.table))
    return cmap


class BreakpointCursor:
    """Forward-only position translator for one scaffold.

    Successive calls to :meth:`translate` must use non-decreasing downstream
    positions. The cursor never rescans from the start; it only steps back by
    one breakpoint when it has overshot the bracketing interval.
    """

    def __init__(self, breakpoints: Tuple[Breakpoint, ...]) -> None:
        if not breakpoints:
            breakpoints = _IDENTITY
        self._bps = breakpoints
        self._idx = 0
        self._left = 0

    def flanks(self, position: int) -> Tuple[int, int, Breakpoint]:
        """Advance to ``position``; return (left_flank, right_flank, anchor breakpoint).

        The anchor is the last breakpoint whose target is <= ``position``; its
        offset is the one that applies at ``position``.
        """
        bps = self._bps
        n = len(bps)
        while self._idx < n and position > bps[self._idx].target:
            self._left = self._idx
            self._idx += 1
        right = bps[min(self._idx, n - 1)]
        if self._idx == n or (position < bps[self._idx].target and self._idx > 0):
            self._idx -= 1
        left = bps[self._left]
        left_flank = left.target + right.source - left.source
        return left_flank, right.target, bps[self._idx]

    def translate(self, position: int) -> Optional[int]:
        """Map a downstream position back to source coordinates.

        Returns None when the position falls strictly inside an inserted
        stretch, which has no source coordinate.
        """
        left_flank, right_flank, anchor = self.flanks(position)
        if left_flank < position < right_flank:
            return None
        return position + anchor.source - anchor.target
