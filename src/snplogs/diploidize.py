"""Combine two haploid mutation logs into one diploid log.

At each site the two haploid calls collapse into a single code: identical
bases stay homozygous, two distinct bases become their ambiguity code, and
anything involving a no-call becomes ``N``. A site present in only one
haploid pairs that haploid's call with its reference base.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from tqdm import tqdm

from .alleles import degenerate, encode
from .models import VariantRecord
from .varlog import VariantLog

logger = logging.getLogger(__name__)


def _against_ref(rec: VariantRecord) -> VariantRecord:
    return VariantRecord(
        scaffold=rec.scaffold,
        position=rec.position,
        ref=encode(rec.ref_code),
        alt=encode(degenerate(rec.alt_code, rec.ref_code)),
    )


def _combined(first: VariantRecord, second: VariantRecord) -> VariantRecord:
    if first.ref_code != second.ref_code:
        logger.warning(
            "Old alleles for site %d on scaffold %s do not match between haploids: "
            "haploid 1 says %s while haploid 2 says %s",
            first.position,
            first.scaffold,
            encode(first.ref_code),
            encode(second.ref_code),
        )
    return VariantRecord(
        scaffold=first.scaffold,
        position=first.position,
        ref=encode(first.ref_code),
        alt=encode(degenerate(first.alt_code, second.alt_code)),
    )


def diploidize_scaffold(
    hap1: Sequence[VariantRecord],
    hap2: Sequence[VariantRecord],
) -> List[VariantRecord]:
    out: List[VariantRecord] = []
    i = j = 0
    while i < len(hap1) and j < len(hap2):
        a, b = hap1[i], hap2[j]
        if a.position < b.position:
            out.append(_against_ref(a))
            i += 1
        elif a.position > b.position:
            out.append(_against_ref(b))
            j += 1
        else:
            out.append(_combined(a, b))
            i += 1
            j += 1
    out.extend(_against_ref(a) for a in hap1[i:])
    out.extend(_against_ref(b) for b in hap2[j:])
    return out


def diploidize_logs(
    hap1: VariantLog,
    hap2: VariantLog,
    scaffold_order: Iterable[str],
    *,
    progress: bool = False,
) -> List[VariantRecord]:
    """Diploidize both haploids over ``scaffold_order`` (normally the scaffold index)."""
    logger.info("Diploidizing SNP logs")
    scaffolds = scaffold_order
    if progress:
        scaffolds = tqdm(scaffolds, unit="scaffold", desc="Diploidizing")
    out: List[VariantRecord] = []
    for scaffold in scaffolds:
        out.extend(diploidize_scaffold(hap1.records(scaffold), hap2.records(scaffold)))
    logger.info("Done diploidizing SNP logs: %d sites", len(out))
    return out
