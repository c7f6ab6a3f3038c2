import json
import subprocess
import sys
from pathlib import Path

from snplogs.toy_data import make_toy_data


def _run_cli(args: list[str]) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "snplogs"] + args,
        check=False,
        capture_output=True,
        text=True,
    )


def _lines(path: Path) -> list[list[str]]:
    return [line.split("\t") for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_quickstart_output() -> None:
    cp = _run_cli(["quickstart"])
    assert cp.returncode == 0
    assert "snplogs merge" in cp.stdout
    assert "snplogs compare" in cp.stdout
    assert "snplogs diploidize" in cp.stdout


def test_make_toy_data_dry_run(tmp_path: Path) -> None:
    cp = _run_cli(["make-toy-data", "--outdir", str(tmp_path / "toy"), "--dry-run"])
    assert cp.returncode == 0
    assert not (tmp_path / "toy").exists()


def test_make_toy_data_and_compare_report(tmp_path: Path) -> None:
    toy_dir = tmp_path / "toy"
    cp = _run_cli(["make-toy-data", "--outdir", str(toy_dir)])
    assert cp.returncode == 0
    toy = json.loads(cp.stdout)
    assert Path(toy["ref_fai"]).exists()

    report_dir = tmp_path / "report"
    fns = tmp_path / "fns.tsv"
    cp = _run_cli(
        [
            "compare",
            "-i",
            toy["ref_fai"],
            "-e",
            toy["expected_log"],
            "-o",
            toy["observed_log"],
            "-n",
            str(fns),
            "-m",
            "5",
            "--report-dir",
            str(report_dir),
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    assert cp.stdout.startswith("True positives\t")
    assert "Indel Sites:" in cp.stdout
    assert fns.exists()
    assert (report_dir / "report.html").exists()
    assert (report_dir / "plots" / "confusion.png").exists()

    summary = json.loads((report_dir / "summary.json").read_text(encoding="utf-8"))
    c = summary["counters"]
    total = c["tps"] + c["fps"] + c["fns"] + c["wrong_calls"] + c["tns"]
    assert total + 2 * summary["uncallable_sites"] == 2 * summary["genome_size"]


def test_merge_toy_data(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    out = tmp_path / "merged.tsv"
    cp = _run_cli(
        [
            "merge",
            "-i",
            toy["indel_log"],
            "-b",
            toy["branch1_log"],
            "-c",
            toy["branch2_log"],
            "--index",
            toy["ref_fai"],
            "--output",
            str(out),
        ]
    )
    assert cp.returncode == 0, cp.stderr
    rows = _lines(out)
    assert rows
    for scaffold in {r[0] for r in rows}:
        positions = [int(r[1]) for r in rows if r[0] == scaffold]
        assert positions == sorted(set(positions))


def test_diploidize_to_stdout(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        [
            "diploidize",
            "-i",
            toy["ref_fai"],
            "-a",
            toy["hap1_log"],
            "-b",
            toy["hap2_log"],
            "--no-progress",
        ]
    )
    assert cp.returncode == 0, cp.stderr
    rows = [line.split("\t") for line in cp.stdout.splitlines()]
    assert rows
    assert all(len(r) == 4 and len(r[3]) == 1 for r in rows)


def test_missing_required_flag_is_usage_error(tmp_path: Path) -> None:
    cp = _run_cli(["compare", "-i", str(tmp_path / "ref.fa.fai")])
    assert cp.returncode == 2


def test_exit_codes_per_input_role(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    missing = str(tmp_path / "missing.tsv")

    cp = _run_cli(["compare", "-i", missing, "-e", toy["expected_log"], "-o", toy["observed_log"]])
    assert cp.returncode == 3
    assert "InputOpenError" in cp.stderr

    cp = _run_cli(["compare", "-i", toy["ref_fai"], "-e", missing, "-o", toy["observed_log"]])
    assert cp.returncode == 5

    cp = _run_cli(["compare", "-i", toy["ref_fai"], "-e", toy["expected_log"], "-o", missing])
    assert cp.returncode == 6

    cp = _run_cli(["merge", "-i", toy["indel_log"], "-b", toy["branch1_log"], "-c", missing])
    assert cp.returncode == 6


def test_min_depth_without_depth_column(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        ["compare", "-i", toy["ref_fai"], "-e", toy["observed_log"], "-o", toy["observed_log"], "-m", "3"]
    )
    assert cp.returncode == 7
    assert "MissingDepthError" in cp.stderr


def test_unwritable_output(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    cp = _run_cli(
        [
            "diploidize",
            "-i",
            toy["ref_fai"],
            "-a",
            toy["hap1_log"],
            "-b",
            toy["hap2_log"],
            "--output",
            str(tmp_path / "no" / "such" / "dir" / "out.tsv"),
        ]
    )
    assert cp.returncode == 8


def test_compare_output_failures_exit_before_writing(tmp_path: Path) -> None:
    toy = make_toy_data(outdir=tmp_path / "toy")
    fns = tmp_path / "fns.tsv"
    stats = tmp_path / "stats.txt"
    base = ["compare", "-i", toy["ref_fai"], "-e", toy["expected_log"], "-o", toy["observed_log"], "--no-progress"]

    # report directory nested under a regular file
    cp = _run_cli(base + ["-n", str(fns), "--output", str(stats), "--report-dir", str(Path(toy["expected_log"]) / "report")])
    assert cp.returncode == 8
    assert "OutputOpenError" in cp.stderr
    assert not fns.exists()
    assert not stats.exists()

    cp = _run_cli(base + ["-n", str(fns), "--output", str(tmp_path / "no" / "such" / "stats.txt")])
    assert cp.returncode == 8
    assert not fns.exists()
