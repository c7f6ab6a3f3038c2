from __future__ import annotations

import random
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import pysam

from .alleles import decode, degenerate, encode
from .models import VariantRecord
from .utils import ensure_outdir, write_json
from .varlog import write_records

_SCAFFOLDS: Tuple[Tuple[str, int], ...] = (("scaffold_1", 240), ("scaffold_2", 150))
_BASES = "ACGT"


def _write_fasta(path: Path, contigs: Sequence[Tuple[str, str]]) -> None:
    lines: List[str] = []
    for name, seq in contigs:
        lines.append(f">{name}")
        for i in range(0, len(seq), 60):
            lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _mutate_base(base: str, rng: random.Random) -> str:
    return rng.choice([b for b in _BASES if b != base])


def _write_log(path: Path, records: Sequence[VariantRecord]) -> None:
    with open(path, "wt", encoding="utf-8") as fh:
        write_records(fh, records)


def _sites(rng: random.Random, length: int, n: int) -> List[int]:
    return sorted(rng.sample(range(1, length + 1), n))


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny two-scaffold genome and a matching set of mutation logs.

    The outputs include:
    - toy_ref.fa (+ .fai)
    - indels.tsv, branch1.tsv, branch2.tsv (inputs for ``merge``)
    - expected.tsv (with a depth column), observed.tsv (inputs for ``compare``)
    - hap1.tsv, hap2.tsv (inputs for ``diploidize``)

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    rng = random.Random(7)

    genome = {name: "".join(rng.choice(_BASES) for _ in range(length)) for name, length in _SCAFFOLDS}
    ref_fa = outdir_p / "toy_ref.fa"
    _write_fasta(ref_fa, list(genome.items()))
    pysam.faidx(str(ref_fa))

    # Branch 1: one insertion and one deletion on scaffold_1, a no-op on scaffold_2
    indel_log = outdir_p / "indels.tsv"
    with open(indel_log, "wt", encoding="utf-8") as fh:
        fh.write("scaffold_1\t59\tins\t4\n")
        fh.write("scaffold_1\t149\tdel\t2\n")
        fh.write("scaffold_2\t70\tdel\t0\n")

    branch1: List[VariantRecord] = []
    branch2: List[VariantRecord] = []
    for name, length in _SCAFFOLDS:
        seq = genome[name]
        for pos in _sites(rng, length, 8):
            ref = seq[pos - 1]
            branch1.append(VariantRecord(name, pos, ref, _mutate_base(ref, rng)))
        # scaffold_2 maps identically, so sites shared with branch 1 stack there
        shared: Dict[int, str] = {}
        if name == "scaffold_2":
            shared = {r.position: r.alt for r in branch1 if r.scaffold == name}
            shared = dict(list(shared.items())[:2])
        for pos in sorted(set(_sites(rng, length, 6)) | set(shared)):
            ref = shared.get(pos, seq[pos - 1])
            branch2.append(VariantRecord(name, pos, ref, _mutate_base(ref, rng)))

    branch1_log = outdir_p / "branch1.tsv"
    branch2_log = outdir_p / "branch2.tsv"
    _write_log(branch1_log, branch1)
    _write_log(branch2_log, branch2)

    # Two haploids sharing some sites, sometimes with different calls
    hap1: List[VariantRecord] = []
    hap2: List[VariantRecord] = []
    for name, length in _SCAFFOLDS:
        seq = genome[name]
        sites = _sites(rng, length, 12)
        for i, pos in enumerate(sites):
            ref = seq[pos - 1]
            alt = _mutate_base(ref, rng)
            if i % 3 != 2:
                hap1.append(VariantRecord(name, pos, ref, alt))
            if i % 3 != 1:
                hap2.append(VariantRecord(name, pos, ref, alt if i % 2 == 0 else _mutate_base(ref, rng)))

    hap1_log = outdir_p / "hap1.tsv"
    hap2_log = outdir_p / "hap2.tsv"
    _write_log(hap1_log, hap1)
    _write_log(hap2_log, hap2)

    expected: List[Tuple[VariantRecord, int]] = []
    for name, length in _SCAFFOLDS:
        seq = genome[name]
        for pos in _sites(rng, length, 15):
            ref = seq[pos - 1]
            a = _mutate_base(ref, rng)
            b = ref if rng.random() < 0.5 else a
            call = encode(degenerate(decode(a), decode(b)))
            expected.append((VariantRecord(name, pos, ref, call), rng.randint(2, 40)))

    expected_log = outdir_p / "expected.tsv"
    with open(expected_log, "wt", encoding="utf-8") as fh:
        for rec, depth in expected:
            fh.write(f"{rec.scaffold}\t{rec.position}\t{rec.ref}\t{rec.alt}\t{depth}\n")

    # Observed calls: mostly right, with misses, wrong calls, masking and an indel
    observed: List[VariantRecord] = []
    taken = {(r.scaffold, r.position) for r, _ in expected}
    for i, (rec, _depth) in enumerate(expected):
        roll = i % 10
        if roll == 3:
            continue
        if roll == 5:
            observed.append(VariantRecord(rec.scaffold, rec.position, rec.ref, _mutate_base(rec.ref, rng)))
        elif roll == 7:
            observed.append(VariantRecord(rec.scaffold, rec.position, rec.ref, "N"))
        elif roll == 9:
            observed.append(VariantRecord(rec.scaffold, rec.position, rec.ref, "+" + rng.choice(_BASES)))
        else:
            observed.append(rec)
    for name, length in _SCAFFOLDS:
        seq = genome[name]
        for pos in _sites(rng, length, 3):
            if (name, pos) not in taken:
                ref = seq[pos - 1]
                observed.append(VariantRecord(name, pos, ref, _mutate_base(ref, rng)))
    observed.sort(key=lambda r: ([n for n, _ in _SCAFFOLDS].index(r.scaffold), r.position))

    observed_log = outdir_p / "observed.tsv"
    _write_log(observed_log, observed)

    summary = {
        "ref_fa": str(ref_fa),
        "ref_fai": str(ref_fa) + ".fai",
        "indel_log": str(indel_log),
        "branch1_log": str(branch1_log),
        "branch2_log": str(branch2_log),
        "expected_log": str(expected_log),
        "observed_log": str(observed_log),
        "hap1_log": str(hap1_log),
        "hap2_log": str(hap2_log),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
