from __future__ import annotations

import datetime as _dt
import logging
import math
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Template

from .compare import ComparisonResult, summary_dict
from .errors import OutputOpenError
from .plotting import plot_mismatch_types, plot_outcome_counts
from .utils import ensure_outdir, format_number, write_json

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>snplogs comparison report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 8px; }
    th { background: #f2f2f2; text-align: left; }
    td.num { text-align: right; }
    .grid { display: grid; grid-template-columns: 1fr 1fr; gap: 16px; }
    .card { border: 1px solid #ddd; border-radius: 8px; padding: 12px; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>snplogs comparison report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Inputs</h2>
<table>
  <tr><th>Scaffold index</th><td><code>{{ index_path }}</code></td></tr>
  <tr><th>Expected log</th><td><code>{{ expected_path }}</code></td></tr>
  <tr><th>Observed log</th><td><code>{{ observed_path }}</code></td></tr>
  <tr><th>Minimum callable depth</th><td>{{ min_depth }}</td></tr>
  <tr><th>Genome size</th><td>{{ genome_size }}</td></tr>
  <tr><th>Uncallable sites</th><td>{{ uncallable_sites }}</td></tr>
</table>

<div class="grid">
  <div class="card">
    <h3>Totals (sites)</h3>
    <table>
      {% for name, value in totals %}
      <tr><th>{{ name }}</th><td class="num">{{ value }}</td></tr>
      {% endfor %}
    </table>
  </div>
  <div class="card">
    <h3>Rates</h3>
    <table>
      {% for name, value in rates %}
      <tr><th>{{ name }}</th><td class="num">{{ value }}</td></tr>
      {% endfor %}
    </table>
  </div>
</div>

<h2>Plots</h2>
<div class="grid">
  <div class="card">
    <h3>Call outcomes</h3>
    <img src="{{ plots.outcomes }}" alt="call outcomes">
  </div>
  <div class="card">
    <h3>Mismatch types</h3>
    <img src="{{ plots.mismatch_types }}" alt="mismatch types">
  </div>
</div>

<h2>Per-scaffold tallies (allele copies)</h2>
<table>
  <tr><th>Scaffold</th><th>Length</th><th>TP</th><th>FP</th><th>FN</th><th>Wrong</th><th>TN</th></tr>
  {% for t in scaffolds %}
  <tr>
    <td><code>{{ t.scaffold }}</code></td>
    <td class="num">{{ t.length }}</td>
    <td class="num">{{ t.tps }}</td>
    <td class="num">{{ t.fps }}</td>
    <td class="num">{{ t.fns }}</td>
    <td class="num">{{ t.wrong_calls }}</td>
    <td class="num">{{ t.tns }}</td>
  </tr>
  {% endfor %}
</table>

<h2>Notes</h2>
<ul>
  <li>Per-scaffold tallies count allele copies (2 per diploid site); totals above are in sites.</li>
  <li>True negatives exclude depth-filtered uncallable sites genome-wide, not per scaffold.</li>
  <li>Masked (<code>N</code>) and indel-site calls never count as false positives.</li>
</ul>

<hr>
<p class="small">snplogs {{ version }}</p>
</body>
</html>"""
)


def _fmt(x: float) -> str:
    if isinstance(x, float) and math.isnan(x):
        return "n/a"
    return format_number(x)


def write_per_scaffold_tsv(result: ComparisonResult, out_path: str | Path) -> Path:
    out_path = Path(out_path)
    with open(out_path, "wt", encoding="utf-8") as fh:
        fh.write("scaffold\tlength\ttps\tfps\tfns\twrong_calls\ttns\n")
        for t in result.scaffolds:
            fh.write(f"{t.scaffold}\t{t.length}\t{t.tps}\t{t.fps}\t{t.fns}\t{t.wrong_calls}\t{t.tns}\n")
    return out_path


def prepare_report_dir(outdir: str | Path) -> Path:
    """Create ``outdir`` and its plots/ subdirectory, raising OutputOpenError on failure."""
    try:
        outdir = ensure_outdir(outdir)
        ensure_outdir(outdir / "plots")
    except OSError as e:
        raise OutputOpenError("report", outdir) from e
    return outdir


def render_report(
    *,
    outdir: str | Path,
    version: str,
    result: ComparisonResult,
    inputs: Dict[str, Optional[str]],
    min_depth: int = 0,
) -> Path:
    """Write summary.json, per_scaffold.tsv, plots and report.html into ``outdir``."""
    outdir = prepare_report_dir(outdir)

    s = result.stats
    totals = [
        ("True positives", _fmt(s.true_positives)),
        ("False positives", _fmt(s.false_positives)),
        ("True negatives", _fmt(s.true_negatives)),
        ("False negatives", _fmt(s.false_negatives)),
        ("Wrong calls", _fmt(s.wrong_calls)),
    ]
    rates = [
        ("Sensitivity", _fmt(s.sensitivity)),
        ("Specificity", _fmt(s.specificity)),
        ("FPR", _fmt(s.fpr)),
        ("FNR", _fmt(s.fnr)),
        ("FNR+wrong", _fmt(s.fnr_with_wrong)),
        ("Wrong call rate", _fmt(s.wrong_call_rate)),
        ("FDR", _fmt(s.fdr)),
    ]

    outcomes_png = outdir / "plots" / "confusion.png"
    mismatch_png = outdir / "plots" / "mismatch_types.png"
    out_path = outdir / "report.html"
    try:
        write_json(outdir / "summary.json", summary_dict(result))
        write_per_scaffold_tsv(result, outdir / "per_scaffold.tsv")
        plot_outcome_counts(counters=result.counters, out_png=outcomes_png)
        plot_mismatch_types(counters=result.counters, out_png=mismatch_png)

        html = _REPORT_TEMPLATE.render(
            generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
            version=version,
            index_path=inputs.get("index"),
            expected_path=inputs.get("expected"),
            observed_path=inputs.get("observed"),
            min_depth=min_depth,
            genome_size=result.genome_size,
            uncallable_sites=result.uncallable_sites,
            totals=totals,
            rates=rates,
            scaffolds=result.scaffolds,
            plots={
                "outcomes": str(Path("plots") / outcomes_png.name),
                "mismatch_types": str(Path("plots") / mismatch_png.name),
            },
        )
        out_path.write_text(html, encoding="utf-8")
    except OSError as e:
        raise OutputOpenError("report", outdir) from e

    logger.info("Report written: %s", out_path)
    return out_path
