"""Mutation log reading and writing.

A mutation log is tab-delimited, one site per line::

    scaffold  position(1-based)  ref_allele  called_allele  [depth]

Records are grouped per scaffold in file order. Per-scaffold sequences are
expected to be strictly increasing in position; that is the producer's
contract and is not checked here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, TextIO, Tuple

from .errors import InputOpenError, LogParseError, LogReadError, MissingDepthError
from .models import VariantRecord
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

Site = Tuple[str, int]


@dataclass(frozen=True)
class VariantLog:
    """Per-scaffold, position-sorted mutation records.

    Built once by :func:`load_variant_log` (or :meth:`from_records`) and never
    mutated afterwards; engines only read it through :meth:`records`.
    """

    order: Tuple[str, ...]
    table: Mapping[str, Tuple[VariantRecord, ...]]
    uncallable: FrozenSet[Site] = field(default_factory=frozenset)

    @classmethod
    def from_records(
        cls,
        records: Iterable[VariantRecord],
        *,
        uncallable: Iterable[Site] = (),
    ) -> "VariantLog":
        grouped: Dict[str, List[VariantRecord]] = {}
        for rec in records:
            grouped.setdefault(rec.scaffold, []).append(rec)
        return cls(
            order=tuple(grouped),
            table=MappingProxyType({k: tuple(v) for k, v in grouped.items()}),
            uncallable=frozenset(uncallable),
        )

    def __contains__(self, scaffold: object) -> bool:
        return scaffold in self.table

    def __len__(self) -> int:
        return sum(len(v) for v in self.table.values())

    def records(self, scaffold: str) -> Tuple[VariantRecord, ...]:
        return self.table.get(scaffold, ())

    def scaffolds(self) -> Tuple[str, ...]:
        return self.order


def _parse_line(
    line: str,
    *,
    path: Path,
    line_no: int,
    min_depth: int,
) -> VariantRecord:
    fields = line.split("\t")
    scaffold = fields[0]
    if len(fields) < 4:
        raise LogParseError(
            "Expected at least 4 tab-delimited fields in mutation log",
            path=path,
            line_no=line_no,
            scaffold=scaffold,
            line=line,
        )
    try:
        position = int(fields[1])
    except ValueError:
        raise LogParseError(
            "Non-numeric position in mutation log",
            path=path,
            line_no=line_no,
            scaffold=scaffold,
            line=line,
        ) from None

    depth: Optional[int] = None
    if min_depth > 0:
        if len(fields) < 5:
            raise MissingDepthError(
                "Used non-zero minimum callable depth, but no depths provided in "
                f"{path} (line {line_no}, scaffold {scaffold})"
            )
        try:
            depth = int(fields[4])
        except ValueError:
            raise LogParseError(
                "Non-numeric depth in mutation log",
                path=path,
                line_no=line_no,
                scaffold=scaffold,
                line=line,
            ) from None

    return VariantRecord(
        scaffold=scaffold,
        position=position,
        ref=fields[2],
        alt=fields[3],
        depth=depth,
    )


def load_variant_log(
    path: str | Path,
    *,
    role: str = "SNP log",
    open_exit_code: int = 5,
    min_depth: int = 0,
    debug: bool = False,
) -> VariantLog:
    """Read a whole mutation log into memory.

    Parameters
    ----------
    path:
        Log path (plain or gzip).
    role:
        Human-readable role used in messages (e.g. "expected SNP log").
    open_exit_code:
        Exit code carried by the InputOpenError raised if the file cannot be
        opened.
    min_depth:
        When > 0, every line must carry a depth column; records with depth
        below the threshold are left out of the log and collected in
        ``VariantLog.uncallable`` instead.
    debug:
        Warn about non-ACGT alleles.
    """
    p = Path(path)
    try:
        fh = open_textmaybe_gzip(p, "rt")
    except OSError as e:
        raise InputOpenError(role, p, exit_code=open_exit_code) from e

    logger.info("Reading %s %s", role, p)
    records: List[VariantRecord] = []
    uncallable: List[Site] = []
    with fh:
        try:
            for line_no, line in enumerate(fh, start=1):
                line = line.rstrip("\r\n")
                if not line:
                    continue
                rec = _parse_line(line, path=p, line_no=line_no, min_depth=min_depth)
                if debug and not (rec.ref_code.is_base and rec.alt_code.is_base):
                    logger.warning(
                        "Found non-ACGT base in %s at %s position %d",
                        role,
                        rec.scaffold,
                        rec.position,
                    )
                if rec.depth is not None and rec.depth < min_depth:
                    uncallable.append((rec.scaffold, rec.position))
                    continue
                records.append(rec)
        except OSError as e:
            raise LogReadError(f"Failed reading {role} {p}: {e}", path=p) from e

    log = VariantLog.from_records(records, uncallable=uncallable)
    logger.info(
        "Done reading %s: %d records on %d scaffolds (%d uncallable)",
        role,
        len(records),
        len(log.order),
        len(log.uncallable),
    )
    return log


def format_record(scaffold: str, position: int, ref: str, alt: str) -> str:
    return f"{scaffold}\t{position}\t{ref}\t{alt}\n"


def write_records(fh: TextIO, records: Iterable[VariantRecord]) -> int:
    """Write records in the 4-column log format; returns the number written."""
    n = 0
    for rec in records:
        fh.write(format_record(rec.scaffold, rec.position, rec.ref, rec.alt))
        n += 1
    return n
