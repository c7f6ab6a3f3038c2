from __future__ import annotations

import argparse
import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import Dict, Iterable, Optional, TextIO

from . import __version__
from .compare import DetailCategory, compare_logs, format_stats_report
from .coordmap import load_coordinate_map
from .diploidize import diploidize_logs
from .errors import SnplogsError
from .merge import merge_logs
from .models import VariantRecord
from .report import prepare_report_dir, render_report
from .scaffolds import load_scaffold_index
from .toy_data import make_toy_data
from .utils import open_output
from .validation import check_log_scaffolds
from .varlog import load_variant_log, write_records

logger = logging.getLogger("snplogs")


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an integer: {value}") from None
    if n < 0:
        raise argparse.ArgumentTypeError(f"Must be >= 0: {value}")
    return n


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"
    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    if isinstance(err, SnplogsError):
        return err.exit_code
    return 2


def _primary_output(path: Optional[str], role: str) -> contextlib.AbstractContextManager:
    if path:
        return open_output(path, role)
    return contextlib.nullcontext(sys.stdout)


def _write_log_output(path: Optional[str], records: Iterable[VariantRecord], *, role: str) -> int:
    with _primary_output(path, role) as fh:
        return write_records(fh, records)


def _log_file(args: argparse.Namespace) -> Optional[Path]:
    return Path(args.log_file).expanduser().resolve() if args.log_file else None


def _add_common_flags(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--output", default=None, help="Write the primary output here instead of stdout.")
    sp.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable consistency warnings (allele mismatches, non-ACGT bases).",
    )
    sp.add_argument("--log-file", default=None, help="Also write log messages to this file.")
    sp.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="snplogs",
        description=(
            "snplogs: merge, compare and diploidize per-site mutation logs "
            "(scaffold, position, ref allele, called allele[, depth])."
        ),
    )
    p.add_argument("--version", action="version", version=f"snplogs {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for the three commands.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference and matching mutation logs for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # merge
    # -----------------
    m = sub.add_parser(
        "merge",
        help="Merge a branch 2 SNP log into branch 1 coordinates across branch 1 indels.",
    )
    m.add_argument("-i", "--indel-log", required=True, help="Branch 1 indel log.")
    m.add_argument("-b", "--branch1-snp-log", required=True, help="Branch 1 SNP log (original coordinates).")
    m.add_argument(
        "-c",
        "--branch2-snp-log",
        required=True,
        help="Branch 2 SNP log (coordinates after branch 1 indels).",
    )
    m.add_argument(
        "--index",
        default=None,
        help="Optional .fai index (or FASTA) fixing the scaffold output order.",
    )
    _add_common_flags(m)

    # -----------------
    # compare
    # -----------------
    c = sub.add_parser(
        "compare",
        help="Score an observed SNP log against an expected one (confusion matrix + rates).",
    )
    c.add_argument("-i", "--input-fai", required=True, help="Reference .fai index (or FASTA).")
    c.add_argument("-e", "--expected-snps", required=True, help="Expected (true) SNP log.")
    c.add_argument("-o", "--observed-insnp", required=True, help="Observed (called) SNP log.")
    c.add_argument("-n", "--output-fns", default=None, help="Write false-negative sites here.")
    c.add_argument("-p", "--output-fps", default=None, help="Write false-positive sites here.")
    c.add_argument("-t", "--output-tps", default=None, help="Write true-positive sites here.")
    c.add_argument("-r", "--output-errors", default=None, help="Write erroneous (wrong) calls here.")
    c.add_argument(
        "-m",
        "--min-depth",
        type=_non_negative_int,
        default=0,
        help="Minimum depth (5th column of the expected log) for a site to be callable; 0 disables.",
    )
    c.add_argument(
        "--report-dir",
        default=None,
        help="Write summary.json, per_scaffold.tsv, plots and report.html into this directory.",
    )
    c.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    _add_common_flags(c)

    # -----------------
    # diploidize
    # -----------------
    dp = sub.add_parser(
        "diploidize",
        help="Combine two haploid SNP logs into a diploid log with IUPAC ambiguity codes.",
    )
    dp.add_argument("-i", "--input-fai", required=True, help="Reference .fai index (or FASTA).")
    dp.add_argument("-a", "--hap1-snp-log", required=True, help="Haploid 1 SNP log.")
    dp.add_argument("-b", "--hap2-snp-log", required=True, help="Haploid 2 SNP log.")
    dp.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    _add_common_flags(dp)

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "snplogs quickstart (copy/paste):",
        "",
        "0) Generate toy inputs:",
        "   snplogs make-toy-data --outdir toy/",
        "",
        "1) Merge branch 2 into branch 1 coordinates:",
        "   snplogs merge \\",
        "     --indel-log toy/indels.tsv \\",
        "     --branch1-snp-log toy/branch1.tsv \\",
        "     --branch2-snp-log toy/branch2.tsv \\",
        "     --output merged.tsv",
        "",
        "2) Score observed calls against the expected log:",
        "   snplogs compare \\",
        "     --input-fai toy/toy_ref.fa.fai \\",
        "     --expected-snps toy/expected.tsv \\",
        "     --observed-insnp toy/observed.tsv \\",
        "     --min-depth 5 \\",
        "     --report-dir compare_report/",
        "   Outputs: stats on stdout, compare_report/report.html, compare_report/summary.json",
        "",
        "3) Diploidize two haploid logs:",
        "   snplogs diploidize \\",
        "     --input-fai toy/toy_ref.fa.fai \\",
        "     --hap1-snp-log toy/hap1.tsv \\",
        "     --hap2-snp-log toy/hap2.tsv \\",
        "     --output diploid.tsv",
        "",
        "Tip: add --debug to see allele consistency warnings, -v for progress messages.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def cmd_merge(args: argparse.Namespace) -> int:
    log_path = _log_file(args)
    _setup_logging(args.verbose, logfile=log_path)
    logger.info("snplogs %s", __version__)

    try:
        cmap = load_coordinate_map(args.indel_log)
        branch1 = load_variant_log(
            args.branch1_snp_log,
            role="branch 1 SNP log",
            open_exit_code=5,
            debug=args.debug,
        )
        branch2 = load_variant_log(
            args.branch2_snp_log,
            role="branch 2 SNP log",
            open_exit_code=6,
            debug=args.debug,
        )
        index_order = None
        if args.index:
            index_order = load_scaffold_index(args.index).names

        merged = merge_logs(branch1, branch2, cmap, index_order=index_order, debug=args.debug)
        n = _write_log_output(args.output, merged, role="merged SNP log")
        logger.info("Wrote %d merged records", n)
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_compare(args: argparse.Namespace) -> int:
    log_path = _log_file(args)
    _setup_logging(args.verbose, logfile=log_path)
    logger.info("snplogs %s", __version__)

    try:
        index = load_scaffold_index(args.input_fai)
        expected = load_variant_log(
            args.expected_snps,
            role="expected SNP log",
            open_exit_code=5,
            min_depth=args.min_depth,
            debug=args.debug,
        )
        observed = load_variant_log(
            args.observed_insnp,
            role="observed SNP log",
            open_exit_code=6,
            debug=args.debug,
        )
        check_log_scaffolds(expected, index, role="expected SNP log")
        check_log_scaffolds(observed, index, role="observed SNP log")

        report_dir = None
        if args.report_dir:
            report_dir = prepare_report_dir(Path(args.report_dir).expanduser().resolve())

        detail_paths: Dict[DetailCategory, Optional[str]] = {
            DetailCategory.FALSE_NEGATIVE: args.output_fns,
            DetailCategory.FALSE_POSITIVE: args.output_fps,
            DetailCategory.TRUE_POSITIVE: args.output_tps,
            DetailCategory.WRONG_CALL: args.output_errors,
        }
        with contextlib.ExitStack() as stack:
            out = stack.enter_context(_primary_output(args.output, "statistics"))
            sinks: Dict[DetailCategory, TextIO] = {}
            for category, path in detail_paths.items():
                if path:
                    sinks[category] = stack.enter_context(open_output(path, category.value))
            result = compare_logs(
                expected,
                observed,
                index,
                detail_sinks=sinks,
                debug=args.debug,
                progress=not args.no_progress,
            )
            out.write(format_stats_report(result))

        if report_dir is not None:
            render_report(
                outdir=report_dir,
                version=__version__,
                result=result,
                inputs={
                    "index": args.input_fai,
                    "expected": args.expected_snps,
                    "observed": args.observed_insnp,
                },
                min_depth=args.min_depth,
            )
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_diploidize(args: argparse.Namespace) -> int:
    log_path = _log_file(args)
    _setup_logging(args.verbose, logfile=log_path)
    logger.info("snplogs %s", __version__)

    try:
        index = load_scaffold_index(args.input_fai)
        hap1 = load_variant_log(
            args.hap1_snp_log,
            role="haploid 1 SNP log",
            open_exit_code=5,
            debug=args.debug,
        )
        hap2 = load_variant_log(
            args.hap2_snp_log,
            role="haploid 2 SNP log",
            open_exit_code=6,
            debug=args.debug,
        )
        check_log_scaffolds(hap1, index, role="haploid 1 SNP log")
        check_log_scaffolds(hap2, index, role="haploid 2 SNP log")

        diploid = diploidize_logs(hap1, hap2, index.names, progress=not args.no_progress)
        _write_log_output(args.output, diploid, role="diploid SNP log")
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "merge":
        return cmd_merge(args)
    if args.cmd == "compare":
        return cmd_compare(args)
    if args.cmd == "diploidize":
        return cmd_diploidize(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
