from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import matplotlib.pyplot as plt

from .compare import ConfusionCounters

logger = logging.getLogger(__name__)


def plot_outcome_counts(
    *,
    counters: ConfusionCounters,
    out_png: str | Path,
    title: str = "Call outcomes",
) -> None:
    """Bar plot of TP / FP / FN / wrong calls in site units."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    labels = ["True positive", "False positive", "False negative", "Wrong call"]
    values = [
        counters.tps / 2.0,
        counters.fps / 2.0,
        counters.fns / 2.0,
        counters.wrong_calls / 2.0,
    ]

    plt.figure()
    plt.bar(labels, values)
    plt.ylabel("Sites")
    plt.title(title)
    plt.xticks(rotation=15, ha="right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def _mismatch_types(counters: ConfusionCounters) -> Dict[str, int]:
    return {
        "Het->RR": counters.rh_mismatch,
        "Alt->RR": counters.ra_mismatch,
        "RR->Het": counters.hr_mismatch,
        "Het->Other Het": counters.hh_mismatch,
        "Alt->Het": counters.ha_mismatch,
        "RR->Alt": counters.ar_mismatch,
        "Het->Alt": counters.ah_mismatch,
        "Alt->Other Alt": counters.aa_mismatch,
        "RR->N": counters.nr_masked,
        "Het->N": counters.nh_masked,
        "Alt->N": counters.na_masked,
        "RR->Indel": counters.ir_masked,
        "Het->Indel": counters.ih_masked,
        "Alt->Indel": counters.ia_masked,
    }


def plot_mismatch_types(
    *,
    counters: ConfusionCounters,
    out_png: str | Path,
    title: str = "Mismatch, masking and indel types (truth->call)",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    types = _mismatch_types(counters)

    plt.figure(figsize=(8, 4.5))
    plt.bar(range(len(types)), list(types.values()))
    plt.xticks(range(len(types)), list(types.keys()), rotation=45, ha="right")
    plt.ylabel("Sites")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
