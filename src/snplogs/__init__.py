"""snplogs: reconcile per-site mutation logs from simulation and variant-calling runs.

Public API is intentionally small; most users should use the CLI:

    snplogs merge --indel-log ... --branch1-snp-log ... --branch2-snp-log ...
    snplogs compare --input-fai ... --expected-snps ... --observed-insnp ...
    snplogs diploidize --input-fai ... --hap1-snp-log ... --hap2-snp-log ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "1.4.0"
