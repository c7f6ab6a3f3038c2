from __future__ import annotations

import logging
from typing import Iterable, List

from .scaffolds import ScaffoldIndex
from .varlog import VariantLog

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def unindexed_scaffolds(log: VariantLog, index: ScaffoldIndex) -> List[str]:
    """Scaffolds that carry records in ``log`` but are missing from ``index``."""
    return [s for s in log.scaffolds() if s not in index]


def check_log_scaffolds(log: VariantLog, index: ScaffoldIndex, *, role: str) -> List[str]:
    """Warn about log scaffolds the index does not list; those records are not scored.

    Returns the missing scaffold names.
    """
    missing = unindexed_scaffolds(log, index)
    if not missing:
        return missing

    n_records = sum(len(log.records(s)) for s in missing)
    logger.warning(
        "%d scaffold(s) in %s are absent from the scaffold index and will be ignored "
        "(%d records; first: %s)",
        len(missing),
        role,
        n_records,
        missing[0],
    )
    if len(missing) == len(log.scaffolds()):
        log_style = detect_contig_style(log.scaffolds())
        index_style = detect_contig_style(index.names)
        if log_style != index_style:
            logger.warning(
                "Contig naming mismatch between %s (%s) and scaffold index (%s), e.g. chr1 vs 1.",
                role,
                log_style,
                index_style,
            )
    return missing
