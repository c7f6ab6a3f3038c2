"""Score an observed (called) mutation log against an expected (true) one.

Both logs are walked per scaffold, in scaffold index order, with one forward
cursor each. Every site in either log lands in exactly one bucket, counted
in diploid allele-copy units (2 per site in the simple cases):

- expected only: false negative
- observed only: false positive, unless masked (``N``), an indel site
  (multi-character allele) or uncallable for lack of depth
- both, same call: true positive
- both, observed masked: false negative
- both, different calls: split-allele attribution between true positive,
  false negative and wrong call

True negatives are what remains of ``2 * scaffold_length``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, TextIO

import numpy as np
from tqdm import tqdm

from .alleles import AlleleCode, encode, split
from .models import VariantRecord
from .scaffolds import ScaffoldIndex
from .utils import dataclass_to_jsonable, format_number
from .varlog import Site, VariantLog, format_record

logger = logging.getLogger(__name__)


class DetailCategory(Enum):
    FALSE_NEGATIVE = "false negative"
    FALSE_POSITIVE = "false positive"
    TRUE_POSITIVE = "true positive"
    WRONG_CALL = "erroneous call"


@dataclass
class ConfusionCounters:
    """Genome-wide tallies.

    Two-letter fields are (call, truth): R = homozygous reference,
    H = heterozygous, A = homozygous alt, N = masked, I = indel site.
    ``rh_mismatch`` is a het truth called hom ref, ``hr_mismatch`` a hom ref
    truth called het, and so on. They count sites.

    ``tps``, ``fps``, ``fns``, ``tns`` and ``wrong_calls`` are in allele-copy
    units (2 per site).
    """

    rh_mismatch: int = 0
    ra_mismatch: int = 0
    hr_mismatch: int = 0
    hh_match: int = 0
    hh_mismatch: int = 0
    ha_mismatch: int = 0
    ar_mismatch: int = 0
    ah_mismatch: int = 0
    aa_match: int = 0
    aa_mismatch: int = 0
    nr_masked: int = 0
    nh_masked: int = 0
    na_masked: int = 0
    ir_masked: int = 0
    ih_masked: int = 0
    ia_masked: int = 0
    masked_bases: int = 0
    indel_sites: int = 0
    tps: int = 0
    fps: int = 0
    fns: int = 0
    tns: int = 0
    wrong_calls: int = 0

    @property
    def ref_mismatches(self) -> int:
        return self.rh_mismatch + self.ra_mismatch

    @property
    def het_mismatches(self) -> int:
        return self.hr_mismatch + self.hh_mismatch + self.ha_mismatch

    @property
    def alt_mismatches(self) -> int:
        return self.ar_mismatch + self.ah_mismatch + self.aa_mismatch

    @property
    def mismatches(self) -> int:
        return self.ref_mismatches + self.het_mismatches + self.alt_mismatches


@dataclass
class ScaffoldTally:
    """Per-scaffold bucket totals in allele-copy units."""

    scaffold: str
    length: int
    tps: int = 0
    fps: int = 0
    fns: int = 0
    wrong_calls: int = 0

    @property
    def tns(self) -> int:
        return 2 * self.length - self.tps - self.fns - self.wrong_calls - self.fps


def _rate(num: float, den: float) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(num) / np.float64(den))


@dataclass(frozen=True)
class ComparisonStats:
    true_positives: float
    false_positives: float
    true_negatives: float
    false_negatives: float
    wrong_calls: float
    fpr: float
    fnr: float
    fnr_with_wrong: float
    wrong_call_rate: float
    sensitivity: float
    specificity: float
    fdr: float

    @classmethod
    def from_counters(cls, c: ConfusionCounters) -> "ComparisonStats":
        return cls(
            true_positives=c.tps / 2.0,
            false_positives=c.fps / 2.0,
            true_negatives=c.tns / 2.0,
            false_negatives=c.fns / 2.0,
            wrong_calls=c.wrong_calls / 2.0,
            fpr=_rate(c.fps, c.fps + c.tns),
            fnr=_rate(c.fns, c.fns + c.tps),
            fnr_with_wrong=_rate(c.fns + c.wrong_calls, c.fns + c.wrong_calls + c.tps),
            wrong_call_rate=_rate(c.wrong_calls, c.wrong_calls + c.tps + c.fps),
            sensitivity=_rate(c.tps, c.tps + c.fns),
            specificity=_rate(c.tns, c.tns + c.fps),
            fdr=_rate(c.fps, c.tps + c.fps),
        )


@dataclass
class ComparisonResult:
    counters: ConfusionCounters
    genome_size: int
    uncallable_sites: int
    scaffolds: List[ScaffoldTally] = field(default_factory=list)

    @property
    def hom_ref_matches(self) -> int:
        c = self.counters
        return (
            self.genome_size
            - c.indel_sites
            - c.masked_bases
            - c.mismatches
            - c.hh_match
            - c.aa_match
        )

    @property
    def stats(self) -> ComparisonStats:
        return ComparisonStats.from_counters(self.counters)


class _Comparer:
    """Classification rules for one comparison run."""

    def __init__(
        self,
        counters: ConfusionCounters,
        uncallable: FrozenSet[Site],
        sinks: Mapping[DetailCategory, TextIO],
        debug: bool,
    ) -> None:
        self.c = counters
        self.uncallable = uncallable
        self.sinks = sinks
        self.debug = debug

    def _emit(self, category: DetailCategory, scaffold: str, position: int, a: str, b: str) -> None:
        fh = self.sinks.get(category)
        if fh is not None:
            fh.write(format_record(scaffold, position, a, b))

    def expected_only(self, tally: ScaffoldTally, e: VariantRecord) -> None:
        if e.alt_code.is_ambiguous:
            self.c.rh_mismatch += 1
        else:
            self.c.ra_mismatch += 1
        tally.fns += 2
        self._emit(
            DetailCategory.FALSE_NEGATIVE,
            tally.scaffold,
            e.position,
            encode(e.ref_code),
            encode(e.alt_code),
        )

    def observed_only(self, tally: ScaffoldTally, o: VariantRecord) -> None:
        if o.is_multibase:
            self.c.ir_masked += 1
            self.c.indel_sites += 1
            return
        if o.alt == "N":
            self.c.nr_masked += 1
            self.c.masked_bases += 1
            return
        if o.alt_code.is_ambiguous:
            self.c.hr_mismatch += 1
        else:
            self.c.ar_mismatch += 1
        if (tally.scaffold, o.position) in self.uncallable:
            return
        tally.fps += 2
        self._emit(DetailCategory.FALSE_POSITIVE, tally.scaffold, o.position, o.ref, o.alt)

    def both(self, tally: ScaffoldTally, e: VariantRecord, o: VariantRecord) -> None:
        truth = e.alt_code
        call = o.alt_code
        if self.debug and encode(e.ref_code) != o.ref:
            logger.warning(
                "Ref alleles for site %d on scaffold %s do not match between SNP logs: "
                "expected SNP log says %s while observed log says %s",
                e.position,
                tally.scaffold,
                encode(e.ref_code),
                o.ref,
            )

        if truth == call:
            if truth.is_ambiguous:
                self.c.hh_match += 1
            else:
                self.c.aa_match += 1
            tally.tps += 2
            self._emit(DetailCategory.TRUE_POSITIVE, tally.scaffold, e.position, encode(truth), o.alt)
            return

        if call is AlleleCode.N:
            if o.is_multibase:
                if truth.is_ambiguous:
                    self.c.ih_masked += 1
                else:
                    self.c.ia_masked += 1
                self.c.indel_sites += 1
            else:
                if truth.is_ambiguous:
                    self.c.nh_masked += 1
                else:
                    self.c.na_masked += 1
                self.c.masked_bases += 1
            tally.fns += 2
            self._emit(
                DetailCategory.FALSE_NEGATIVE,
                tally.scaffold,
                e.position,
                encode(e.ref_code),
                encode(truth),
            )
            return

        if truth.is_ambiguous:
            if call.is_ambiguous:
                self.c.hh_mismatch += 1
            else:
                self.c.ah_mismatch += 1
        elif call.is_ambiguous:
            self.c.ha_mismatch += 1
        else:
            self.c.aa_mismatch += 1
        attribute_wrong_call(tally, e, o)
        self._emit(DetailCategory.WRONG_CALL, tally.scaffold, e.position, encode(truth), o.alt)


def attribute_wrong_call(tally: ScaffoldTally, e: VariantRecord, o: VariantRecord) -> None:
    """Split a mismatched site's two allele copies between TP, FN and wrong call.

    Both calls are decomposed into their two haploid bases. A shared base is
    one true positive; the remaining observed base is a false negative if it
    is the reference base, else a wrong call. With no shared base, an
    observed reference base gives one false negative plus one wrong call;
    otherwise both copies are wrong calls.
    """
    x0, x1 = split(e.alt_code)
    y0, y1 = split(o.alt_code)
    ref = e.ref_code
    truth = (x0, x1)
    if y0 in truth or y1 in truth:
        tally.tps += 1
        other = y1 if y0 in truth else y0
        if other == ref:
            tally.fns += 1
        else:
            tally.wrong_calls += 1
    elif y0 == ref or y1 == ref:
        tally.fns += 1
        tally.wrong_calls += 1
    else:
        tally.wrong_calls += 2


def compare_scaffold(
    comparer: _Comparer,
    tally: ScaffoldTally,
    expected: Iterable[VariantRecord],
    observed: Iterable[VariantRecord],
) -> ScaffoldTally:
    e_recs = list(expected)
    o_recs = list(observed)
    i = j = 0
    while i < len(e_recs) and j < len(o_recs):
        e, o = e_recs[i], o_recs[j]
        if e.position < o.position:
            comparer.expected_only(tally, e)
            i += 1
        elif e.position > o.position:
            comparer.observed_only(tally, o)
            j += 1
        else:
            comparer.both(tally, e, o)
            i += 1
            j += 1
    for e in e_recs[i:]:
        comparer.expected_only(tally, e)
    for o in o_recs[j:]:
        comparer.observed_only(tally, o)
    return tally


def compare_logs(
    expected: VariantLog,
    observed: VariantLog,
    index: ScaffoldIndex,
    *,
    detail_sinks: Optional[Mapping[DetailCategory, TextIO]] = None,
    debug: bool = False,
    progress: bool = False,
) -> ComparisonResult:
    """Classify every site of both logs over the scaffolds of ``index``.

    ``expected.uncallable`` lists depth-filtered sites: they never count as
    false positives and are subtracted from the true negatives.
    """
    counters = ConfusionCounters()
    comparer = _Comparer(counters, expected.uncallable, dict(detail_sinks or {}), debug)
    result = ComparisonResult(
        counters=counters,
        genome_size=index.genome_size,
        uncallable_sites=len(expected.uncallable),
    )

    logger.info("Comparing SNP logs")
    scaffolds: Iterable[str] = index.names
    if progress:
        scaffolds = tqdm(scaffolds, unit="scaffold", desc="Comparing")
    for scaffold in scaffolds:
        tally = compare_scaffold(
            comparer,
            ScaffoldTally(scaffold=scaffold, length=index.length(scaffold)),
            expected.records(scaffold),
            observed.records(scaffold),
        )
        counters.tps += tally.tps
        counters.fps += tally.fps
        counters.fns += tally.fns
        counters.wrong_calls += tally.wrong_calls
        counters.tns += tally.tns
        result.scaffolds.append(tally)

    counters.tns -= 2 * result.uncallable_sites
    logger.info("Done comparing SNP logs")
    return result


def _json_rate(x: float) -> Optional[float]:
    # undefined rates are null in JSON
    if math.isnan(x):
        return None
    return x


def summary_dict(result: ComparisonResult) -> Dict[str, object]:
    """Machine-readable summary for summary.json."""
    return {
        "genome_size": result.genome_size,
        "uncallable_sites": result.uncallable_sites,
        "hom_ref_matches": result.hom_ref_matches,
        "counters": dict(dataclass_to_jsonable(result.counters)),
        "stats": {k: _json_rate(v) for k, v in dataclass_to_jsonable(result.stats).items()},
        "scaffolds": [
            {
                "scaffold": t.scaffold,
                "length": t.length,
                "tps": t.tps,
                "fps": t.fps,
                "fns": t.fns,
                "wrong_calls": t.wrong_calls,
                "tns": t.tns,
            }
            for t in result.scaffolds
        ],
    }


def format_stats_report(result: ComparisonResult) -> str:
    """Render the fixed-format statistics report (name<TAB>value lines)."""
    c = result.counters
    s = result.stats
    rr_match = result.hom_ref_matches

    def row(name: str, value: float) -> str:
        return f"{name}\t{format_number(value)}"

    lines = [
        row("True positives", s.true_positives),
        row("False positives", s.false_positives),
        row("True negatives", s.true_negatives),
        row("False negatives", s.false_negatives),
        row("Wrong calls", s.wrong_calls),
        row("FPR", s.fpr),
        row("FNR", s.fnr),
        row("FNR+wrong", s.fnr_with_wrong),
        row("Wrong call rate (wrong calls out of all calls)", s.wrong_call_rate),
        row("Sensitivity", s.sensitivity),
        row("Specificity", s.specificity),
        row("FDR", s.fdr),
        "",
        "Call types:",
        row("Masked", c.masked_bases),
        row("Indel site", c.indel_sites),
        row("Homozygous ref", rr_match + c.ref_mismatches),
        row("Heterozygous", c.hh_match + c.het_mismatches),
        row("Homozygous alt", c.aa_match + c.alt_mismatches),
        "",
        "Matches:",
        row("Homozygous ref", rr_match),
        row("Heterozygous", c.hh_match),
        row("Homozygous alt", c.aa_match),
        "",
        "Mismatches:",
        row("Het->RR", c.rh_mismatch),
        row("Alt->RR", c.ra_mismatch),
        row("RR->Het", c.hr_mismatch),
        row("Het->Other Het", c.hh_mismatch),
        row("Alt->Het", c.ha_mismatch),
        row("RR->Alt", c.ar_mismatch),
        row("Het->Alt", c.ah_mismatch),
        row("Alt->Other Alt", c.aa_mismatch),
        "",
        "Masking:",
        row("RR->N", c.nr_masked),
        row("Het->N", c.nh_masked),
        row("Alt->N", c.na_masked),
        "",
        "Indel Sites:",
        row("RR->Indel", c.ir_masked),
        row("Het->Indel", c.ih_masked),
        row("Alt->Indel", c.ia_masked),
    ]
    return "\n".join(lines) + "\n"
