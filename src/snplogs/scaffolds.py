from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

import pysam

from .errors import InputOpenError, LogParseError, LogReadError
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)

_FASTA_SUFFIXES = {".fa", ".fasta", ".fna", ".fas"}


@dataclass(frozen=True)
class ScaffoldIndex:
    """Ordered scaffold names and lengths (the iteration order for every engine)."""

    names: Tuple[str, ...]
    lengths: Dict[str, int]

    @property
    def genome_size(self) -> int:
        return sum(self.lengths.values())

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, scaffold: object) -> bool:
        return scaffold in self.lengths

    def length(self, scaffold: str) -> int:
        return self.lengths.get(scaffold, 0)


def _is_fasta(path: Path) -> bool:
    suffixes = [s.lower() for s in path.suffixes]
    if suffixes and suffixes[-1] == ".gz":
        suffixes = suffixes[:-1]
    return bool(suffixes) and suffixes[-1] in _FASTA_SUFFIXES


def _load_from_fasta(path: Path, role: str) -> ScaffoldIndex:
    fai = Path(str(path) + ".fai")
    try:
        if not fai.exists():
            logger.info("Building FASTA index %s", fai)
            pysam.faidx(str(path))
        with pysam.FastaFile(str(path)) as fa:
            names = tuple(fa.references)
            lengths = dict(zip(fa.references, (int(n) for n in fa.lengths)))
    except (OSError, pysam.SamtoolsError) as e:
        raise InputOpenError(role, path, exit_code=3) from e
    return ScaffoldIndex(names=names, lengths=lengths)


def load_scaffold_index(path: str | Path, *, role: str = "FASTA .fai index file") -> ScaffoldIndex:
    """Load scaffold order and lengths.

    ``path`` is either a samtools ``.fai`` (only the first two columns are
    used) or a FASTA file, in which case pysam reads (and if needed builds)
    its index.
    """
    p = Path(path)
    if _is_fasta(p):
        return _load_from_fasta(p, role)

    try:
        fh = open_textmaybe_gzip(p, "rt")
    except OSError as e:
        raise InputOpenError(role, p, exit_code=3) from e

    names: List[str] = []
    lengths: Dict[str, int] = {}
    with fh:
        try:
            for line_no, line in enumerate(fh, start=1):
                line = line.rstrip("\r\n")
                if not line:
                    continue
                fields = line.split("\t")
                if len(fields) < 2:
                    raise LogParseError(
                        "Expected at least 2 tab-delimited fields in scaffold index",
                        path=p,
                        line_no=line_no,
                        scaffold=fields[0],
                        line=line,
                    )
                try:
                    length = int(fields[1])
                except ValueError:
                    raise LogParseError(
                        "Non-numeric scaffold length",
                        path=p,
                        line_no=line_no,
                        scaffold=fields[0],
                        line=line,
                    ) from None
                if fields[0] not in lengths:
                    names.append(fields[0])
                else:
                    logger.warning("Scaffold %s listed twice in %s; keeping the last length", fields[0], p)
                lengths[fields[0]] = length
        except OSError as e:
            raise LogReadError(f"Failed reading scaffold index {p}: {e}", path=p) from e

    return ScaffoldIndex(names=tuple(names), lengths=lengths)
