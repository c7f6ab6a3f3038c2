from pathlib import Path

import pytest

from snplogs.coordmap import BreakpointCursor, build_coordinate_map, load_coordinate_map
from snplogs.errors import InputOpenError, LogParseError
from snplogs.models import Breakpoint, IndelEvent


def test_build_offsets_accumulate_and_reset_per_scaffold():
    cmap = build_coordinate_map(
        [
            IndelEvent("s1", 9, True, 3),
            IndelEvent("s1", 49, False, 5),
            IndelEvent("s2", 4, False, 2),
        ]
    )
    assert cmap.breakpoints("s1") == (
        Breakpoint(0, 0),
        Breakpoint(10, 13),
        Breakpoint(50, 48),
    )
    assert cmap.breakpoints("s2") == (Breakpoint(0, 0), Breakpoint(5, 3))


def test_interleaved_scaffolds_keep_separate_offsets():
    cmap = build_coordinate_map(
        [
            IndelEvent("s1", 9, True, 3),
            IndelEvent("s2", 4, False, 10),
            IndelEvent("s1", 49, True, 2),
        ]
    )
    assert cmap.breakpoints("s1") == (
        Breakpoint(0, 0),
        Breakpoint(10, 13),
        Breakpoint(50, 55),
    )
    assert cmap.breakpoints("s2") == (Breakpoint(0, 0), Breakpoint(5, -5))


def test_zero_size_events_register_scaffold_only():
    cmap = build_coordinate_map([IndelEvent("s1", 9, True, 0)])
    assert "s1" in cmap
    assert cmap.breakpoints("s1") == (Breakpoint(0, 0),)


def test_unknown_scaffold_maps_identically():
    cmap = build_coordinate_map([])
    cursor = cmap.cursor("nowhere")
    assert [cursor.translate(p) for p in (1, 7, 1000)] == [1, 7, 1000]


def test_cursor_translates_across_insertion():
    cursor = BreakpointCursor((Breakpoint(0, 0), Breakpoint(10, 13)))
    assert cursor.translate(5) == 5
    assert cursor.translate(12) is None
    assert cursor.translate(20) == 17


def test_cursor_translates_across_deletion():
    cursor = BreakpointCursor((Breakpoint(0, 0), Breakpoint(10, 8)))
    assert cursor.translate(7) == 7
    assert cursor.translate(20) == 22


def test_load_coordinate_map(tmp_path: Path):
    p = tmp_path / "indels.tsv"
    p.write_text("s1\t9\tins\t3\n\ns1\t49\tdel\t5\n", encoding="utf-8")
    cmap = load_coordinate_map(p)
    assert cmap.breakpoints("s1")[-1] == Breakpoint(50, 48)


def test_load_coordinate_map_parse_error(tmp_path: Path):
    p = tmp_path / "indels.tsv"
    p.write_text("s1\tnine\tins\t3\n", encoding="utf-8")
    with pytest.raises(LogParseError) as exc:
        load_coordinate_map(p)
    assert "line 1" in str(exc.value)
    assert "s1" in str(exc.value)
    assert exc.value.exit_code == 4


def test_load_coordinate_map_missing_file(tmp_path: Path):
    with pytest.raises(InputOpenError) as exc:
        load_coordinate_map(tmp_path / "missing.tsv")
    assert exc.value.exit_code == 3
