from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from .utils import reverse_hostname


def read_stats_tsv(path: str) -> list[str]:
    """
    Read a stats-exporter TSV file. The first column of every row holds a
    label-reversed hostname (com.example.www); return the fqdns in file
    order. Raises OSError / csv.Error when the file cannot be read.
    """
    hostnames: list[str] = []
    with Path(path).open(newline="", encoding="utf-8") as fh:
        for row in csv.reader(fh, delimiter="\t"):
            if not row or not row[0].strip():
                continue
            hostnames.append(reverse_hostname(row[0].strip()))
    return hostnames


def collect_hostnames(positional: Iterable[str], stats_tsv: str | None = None) -> list[str]:
    if stats_tsv:
        return read_stats_tsv(stats_tsv)
    return [h.strip() for h in positional if h.strip()]
