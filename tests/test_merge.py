import logging

from snplogs.coordmap import build_coordinate_map
from snplogs.merge import merge_logs, merge_scaffold_order
from snplogs.models import IndelEvent, VariantRecord
from snplogs.varlog import VariantLog


def rec(scaffold: str, pos: int, ref: str, alt: str) -> VariantRecord:
    return VariantRecord(scaffold=scaffold, position=pos, ref=ref, alt=alt)


def test_identity_merge_reproduces_branch1():
    branch1 = [rec("s1", 5, "A", "C"), rec("s1", 10, "G", "T"), rec("s2", 3, "C", "A")]
    cmap = build_coordinate_map([IndelEvent("s1", 4, True, 0), IndelEvent("s2", 1, False, 0)])
    merged = merge_logs(
        VariantLog.from_records(branch1),
        VariantLog.from_records(branch1),
        cmap,
    )
    assert merged == branch1


def test_transitive_composition_after_translation():
    cmap = build_coordinate_map([IndelEvent("s1", 4, True, 3)])
    merged = merge_logs(
        VariantLog.from_records([rec("s1", 10, "A", "C")]),
        VariantLog.from_records([rec("s1", 13, "C", "G")]),
        cmap,
    )
    assert merged == [rec("s1", 10, "A", "G")]


def test_insertion_flank_drop_keeps_later_positions():
    cmap = build_coordinate_map([IndelEvent("s1", 4, True, 3)])
    merged = merge_logs(
        VariantLog.from_records([rec("s1", 2, "A", "C"), rec("s1", 20, "G", "T")]),
        VariantLog.from_records([rec("s1", 6, "T", "A"), rec("s1", 30, "C", "G")]),
        cmap,
    )
    assert merged == [
        rec("s1", 2, "A", "C"),
        rec("s1", 20, "G", "T"),
        rec("s1", 27, "C", "G"),
    ]


def test_remaining_branch1_records_are_flushed():
    cmap = build_coordinate_map([])
    merged = merge_logs(
        VariantLog.from_records([rec("s1", 2, "A", "C"), rec("s1", 50, "G", "T"), rec("s1", 60, "T", "A")]),
        VariantLog.from_records([rec("s1", 10, "C", "G")]),
        cmap,
    )
    assert [r.position for r in merged] == [2, 10, 50, 60]


def test_alleles_are_normalized():
    merged = merge_logs(
        VariantLog.from_records([rec("s1", 2, "a", "c")]),
        VariantLog.from_records([rec("s1", 4, "g", "x")]),
        build_coordinate_map([]),
    )
    assert merged == [rec("s1", 2, "A", "C"), rec("s1", 4, "G", "N")]


def test_colliding_translation_is_dropped(caplog):
    cmap = build_coordinate_map([IndelEvent("s1", 9, True, 3)])
    with caplog.at_level(logging.WARNING):
        merged = merge_logs(
            VariantLog.from_records([]),
            VariantLog.from_records([rec("s1", 10, "A", "C"), rec("s1", 13, "G", "T")]),
            cmap,
        )
    assert merged == [rec("s1", 10, "A", "C")]
    assert "does not follow" in caplog.text


def test_scaffold_order():
    a = VariantLog.from_records([rec("s1", 1, "A", "C"), rec("s3", 1, "A", "C")])
    b = VariantLog.from_records([rec("s2", 1, "A", "C"), rec("s1", 2, "A", "C")])
    assert merge_scaffold_order(a, b) == ["s1", "s3", "s2"]
    assert merge_scaffold_order(a, b, ["s2", "s9", "s1"]) == ["s2", "s1", "s3"]


def test_branch2_only_scaffold_is_emitted():
    merged = merge_logs(
        VariantLog.from_records([rec("s1", 3, "A", "C")]),
        VariantLog.from_records([rec("s2", 7, "T", "G")]),
        build_coordinate_map([]),
    )
    assert merged == [rec("s1", 3, "A", "C"), rec("s2", 7, "T", "G")]


def test_transitive_allele_mismatch_warns_without_changing_output(caplog):
    branch1 = VariantLog.from_records([rec("s1", 10, "A", "C")])
    branch2 = VariantLog.from_records([rec("s1", 10, "T", "G")])
    cmap = build_coordinate_map([])
    quiet = merge_logs(branch1, branch2, cmap)
    with caplog.at_level(logging.WARNING):
        loud = merge_logs(branch1, branch2, cmap, debug=True)
    assert "Allele mismatch during transitive reduction" in caplog.text
    assert loud == quiet == [rec("s1", 10, "A", "G")]
