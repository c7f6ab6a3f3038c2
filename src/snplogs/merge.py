"""Merge a second branch's mutation log into the first branch's coordinates.

Branch 1 (A) is expressed in original coordinates. Branch 2 (B) descends
from branch 1 *after* branch 1's indels, so its positions are downstream
coordinates. Each B record is translated back through the CoordinateMap and
merged with A in one forward pass per scaffold:

- A records before the translated position are emitted unchanged.
- A B record landing on an A record is transitively reduced: A's reference
  allele, B's called allele.
- A B record strictly inside an inserted stretch has no A coordinate and is
  dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .alleles import encode
from .coordmap import BreakpointCursor, CoordinateMap
from .models import VariantRecord
from .varlog import VariantLog

logger = logging.getLogger(__name__)


def _normalized(rec: VariantRecord, *, position: Optional[int] = None) -> VariantRecord:
    return VariantRecord(
        scaffold=rec.scaffold,
        position=rec.position if position is None else position,
        ref=encode(rec.ref_code),
        alt=encode(rec.alt_code),
    )


@dataclass
class ScaffoldMergeState:
    """Cursors for one scaffold: breakpoints plus a forward index into branch A."""

    scaffold: str
    breakpoints: BreakpointCursor
    branch_a: Tuple[VariantRecord, ...]
    a_idx: int = 0
    last_position: int = 0

    def peek_a(self) -> Optional[VariantRecord]:
        if self.a_idx < len(self.branch_a):
            return self.branch_a[self.a_idx]
        return None


def merge_step(state: ScaffoldMergeState, rec: VariantRecord, *, debug: bool = False) -> List[VariantRecord]:
    """Consume one branch B record; return the records it releases, in order."""
    adjusted = state.breakpoints.translate(rec.position)
    if adjusted is None:
        if debug:
            logger.warning(
                "Mutation along branch 2 is within insertion on branch 1 at unadjusted position %s:%d",
                state.scaffold,
                rec.position,
            )
        return []

    out: List[VariantRecord] = []
    nxt = state.peek_a()
    while nxt is not None and nxt.position < adjusted:
        out.append(_normalized(nxt))
        state.last_position = nxt.position
        state.a_idx += 1
        nxt = state.peek_a()

    if adjusted <= state.last_position:
        logger.warning(
            "Dropping branch 2 record at %s:%d: translated position %d does not follow "
            "already merged position %d",
            state.scaffold,
            rec.position,
            adjusted,
            state.last_position,
        )
        return out

    if nxt is not None and nxt.position == adjusted:
        if debug and nxt.alt_code != rec.ref_code:
            logger.warning(
                "Allele mismatch during transitive reduction at %s position %d: "
                "branch 1 says %s->%s, branch 2 says %s->%s",
                state.scaffold,
                adjusted,
                encode(nxt.ref_code),
                encode(nxt.alt_code),
                encode(rec.ref_code),
                encode(rec.alt_code),
            )
        merged = VariantRecord(
            scaffold=state.scaffold,
            position=adjusted,
            ref=encode(nxt.ref_code),
            alt=encode(rec.alt_code),
        )
        state.a_idx += 1
    else:
        merged = _normalized(rec, position=adjusted)

    out.append(merged)
    state.last_position = adjusted
    return out


def finish_scaffold(state: ScaffoldMergeState) -> List[VariantRecord]:
    """Flush the branch A records left after branch B is exhausted."""
    rest = [_normalized(r) for r in state.branch_a[state.a_idx :]]
    state.a_idx = len(state.branch_a)
    if rest:
        state.last_position = rest[-1].position
    return rest


def merge_scaffold(
    scaffold: str,
    branch_a: Sequence[VariantRecord],
    branch_b: Iterable[VariantRecord],
    breakpoints: BreakpointCursor,
    *,
    debug: bool = False,
) -> List[VariantRecord]:
    state = ScaffoldMergeState(
        scaffold=scaffold,
        breakpoints=breakpoints,
        branch_a=tuple(branch_a),
    )
    out: List[VariantRecord] = []
    for rec in branch_b:
        out.extend(merge_step(state, rec, debug=debug))
    out.extend(finish_scaffold(state))
    return out


def merge_scaffold_order(
    branch1: VariantLog,
    branch2: VariantLog,
    index_order: Optional[Sequence[str]] = None,
) -> List[str]:
    """Index order first (if any), then branch 1's scaffolds, then branch-2-only ones."""
    order: List[str] = []
    seen = set()
    candidates: List[str] = list(index_order or [])
    candidates += list(branch1.scaffolds()) + list(branch2.scaffolds())
    for name in candidates:
        if name in seen:
            continue
        seen.add(name)
        if name in branch1 or name in branch2:
            order.append(name)
    return order


def merge_logs(
    branch1: VariantLog,
    branch2: VariantLog,
    coordinate_map: CoordinateMap,
    *,
    index_order: Optional[Sequence[str]] = None,
    debug: bool = False,
) -> List[VariantRecord]:
    """Merge branch 2 into branch 1's coordinate space across all scaffolds."""
    if debug:
        for scaffold, bps in coordinate_map.table.items():
            for bp in bps:
                logger.debug("%s\t%d\t%d", scaffold, bp.source, bp.target)

    merged: List[VariantRecord] = []
    for scaffold in merge_scaffold_order(branch1, branch2, index_order):
        merged.extend(
            merge_scaffold(
                scaffold,
                branch1.records(scaffold),
                branch2.records(scaffold),
                coordinate_map.cursor(scaffold),
                debug=debug,
            )
        )
    logger.info("Merged %d branch 1 and %d branch 2 records into %d", len(branch1), len(branch2), len(merged))
    return merged
