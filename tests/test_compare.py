import io
import json
import logging
import math

from snplogs.compare import DetailCategory, compare_logs, format_stats_report, summary_dict
from snplogs.models import VariantRecord
from snplogs.scaffolds import ScaffoldIndex
from snplogs.varlog import VariantLog


def rec(pos: int, ref: str, alt: str, scaffold: str = "chr1") -> VariantRecord:
    return VariantRecord(scaffold=scaffold, position=pos, ref=ref, alt=alt)


def index(**lengths: int) -> ScaffoldIndex:
    return ScaffoldIndex(names=tuple(lengths), lengths=dict(lengths))


def run(expected, observed, idx=None, uncallable=(), **kwargs):
    return compare_logs(
        VariantLog.from_records(expected, uncallable=uncallable),
        VariantLog.from_records(observed),
        idx or index(chr1=200),
        **kwargs,
    )


def test_perfect_match():
    sites = [rec(10, "A", "C"), rec(20, "G", "R"), rec(30, "T", "A")]
    result = run(sites, sites)
    c = result.counters
    assert c.tps == 6
    assert c.fps == c.fns == c.wrong_calls == 0
    assert c.tns == 400 - 6
    assert c.hh_match == 1
    assert c.aa_match == 2
    assert result.hom_ref_matches == 200 - 3


def test_hom_alt_vs_different_hom_alt_is_two_wrong_calls():
    result = run([rec(100, "A", "C")], [rec(100, "A", "G")])
    c = result.counters
    assert c.wrong_calls == 2
    assert c.tps == c.fns == c.fps == 0
    assert c.aa_mismatch == 1


def test_het_called_hom_ref_base():
    # truth A/G over ref A, called A: one copy right, the other missed
    result = run([rec(5, "A", "R")], [rec(5, "A", "A")])
    c = result.counters
    assert (c.tps, c.fns, c.wrong_calls) == (1, 1, 0)
    assert c.ah_mismatch == 1


def test_het_call_sharing_only_the_reference():
    result = run([rec(5, "A", "G")], [rec(5, "A", "M")])
    c = result.counters
    assert (c.tps, c.fns, c.wrong_calls) == (0, 1, 1)
    assert c.ha_mismatch == 1


def test_hom_alt_truth_called_het_matching_second_base():
    # truth G over ref A, called A/G: G shared, the other copy is the reference
    result = run([rec(5, "A", "G")], [rec(5, "A", "R")])
    c = result.counters
    assert (c.tps, c.fns, c.wrong_calls) == (1, 1, 0)
    assert c.ha_mismatch == 1


def test_ref_mismatch_warning_does_not_change_counts(caplog):
    expected = [rec(10, "A", "C"), rec(20, "T", "G")]
    observed = [rec(10, "G", "C"), rec(20, "T", "A")]
    quiet = run(expected, observed)
    with caplog.at_level(logging.WARNING):
        loud = run(expected, observed, debug=True)
    assert "do not match between SNP logs" in caplog.text
    assert loud.counters == quiet.counters


def test_het_truth_called_other_het():
    # truth A/C, called C/T over ref A: C shared, T wrong
    result = run([rec(5, "A", "M")], [rec(5, "A", "Y")])
    c = result.counters
    assert (c.tps, c.fns, c.wrong_calls) == (1, 0, 1)
    assert c.hh_mismatch == 1


def test_expected_only_is_false_negative():
    result = run([rec(10, "A", "C"), rec(20, "A", "R")], [])
    c = result.counters
    assert c.fns == 4
    assert c.ra_mismatch == 1
    assert c.rh_mismatch == 1


def test_observed_only_masking_and_indels_are_not_false_positives():
    result = run([], [rec(10, "A", "C"), rec(20, "A", "N"), rec(30, "A", "+T"), rec(40, "A", "W")])
    c = result.counters
    assert c.fps == 4
    assert c.ar_mismatch == 1
    assert c.hr_mismatch == 1
    assert c.nr_masked == 1 and c.masked_bases == 1
    assert c.ir_masked == 1 and c.indel_sites == 1


def test_masked_and_indel_calls_at_true_sites():
    result = run(
        [rec(10, "A", "C"), rec(20, "G", "K")],
        [rec(10, "A", "N"), rec(20, "G", "-T")],
    )
    c = result.counters
    assert c.fns == 4
    assert c.na_masked == 1 and c.masked_bases == 1
    assert c.ih_masked == 1 and c.indel_sites == 1


def test_uncallable_sites_are_excluded():
    result = run(
        [rec(10, "A", "C")],
        [rec(10, "A", "C"), rec(50, "T", "G")],
        uncallable=[("chr1", 50)],
    )
    c = result.counters
    assert c.fps == 0
    assert c.ar_mismatch == 1
    assert c.tns == 400 - 2 - 2
    assert result.uncallable_sites == 1


def test_total_conservation_per_scaffold():
    expected = [rec(3, "A", "C"), rec(8, "A", "R"), rec(5, "C", "T", "chr2"), rec(9, "C", "G", "chr2")]
    observed = [rec(3, "A", "G"), rec(12, "T", "A"), rec(5, "C", "N", "chr2"), rec(9, "C", "S", "chr2")]
    result = run(expected, observed, index(chr1=50, chr2=30))
    for t in result.scaffolds:
        assert t.tps + t.fps + t.fns + t.wrong_calls + t.tns == 2 * t.length
    c = result.counters
    assert c.tps + c.fps + c.fns + c.wrong_calls + c.tns == 2 * 80


def test_unindexed_scaffolds_are_ignored():
    result = run([rec(3, "A", "C", "chrX")], [rec(4, "A", "C", "chrX")])
    c = result.counters
    assert c.fns == c.fps == 0
    assert [t.scaffold for t in result.scaffolds] == ["chr1"]


def test_detail_sinks():
    sinks = {category: io.StringIO() for category in DetailCategory}
    run(
        [rec(10, "A", "C"), rec(20, "G", "T"), rec(30, "A", "G")],
        [rec(10, "A", "c"), rec(30, "A", "T"), rec(40, "C", "a")],
        detail_sinks=sinks,
    )
    assert sinks[DetailCategory.TRUE_POSITIVE].getvalue() == "chr1\t10\tC\tc\n"
    assert sinks[DetailCategory.FALSE_NEGATIVE].getvalue() == "chr1\t20\tG\tT\n"
    assert sinks[DetailCategory.WRONG_CALL].getvalue() == "chr1\t30\tG\tT\n"
    assert sinks[DetailCategory.FALSE_POSITIVE].getvalue() == "chr1\t40\tC\ta\n"


def test_rates_and_report():
    result = run([], [])
    s = result.stats
    assert s.fpr == 0.0
    assert math.isnan(s.fnr)
    assert math.isnan(s.sensitivity)
    assert s.true_negatives == 200

    sites = [rec(10, "A", "C"), rec(20, "G", "R")]
    result = run(sites, sites)
    report = format_stats_report(result)
    assert "True positives\t2\n" in report
    assert "Sensitivity\t1\n" in report
    assert "Homozygous ref\t198\n" in report
    assert report.index("Mismatches:") < report.index("Indel Sites:")

    summary = summary_dict(result)
    assert summary["counters"]["tps"] == 4
    assert summary["scaffolds"][0]["tns"] == 396


def test_summary_undefined_rates_are_null():
    summary = summary_dict(run([], []))
    assert summary["stats"]["fnr"] is None
    assert summary["stats"]["fpr"] == 0.0
    json.dumps(summary, allow_nan=False)
