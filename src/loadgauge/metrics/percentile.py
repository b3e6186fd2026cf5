from __future__ import annotations

from typing import Sequence

import numpy as np


def percentile(sample: Sequence[int], p: float) -> int:
    return percentiles(sample, (p,))[0]


def percentiles(sample: Sequence[int], ps: Sequence[float]) -> list[int]:
    for p in ps:
        if not 0 < p <= 100:
            msg = f"Percentile must be in (0, 100], got {p}"
            raise ValueError(msg)
    if len(sample) == 0:
        return [0 for _ in ps]
    ordered = np.sort(np.asarray(sample, dtype=np.int64))
    # rank p/100 * (n - 1), interpolated between neighbouring order statistics
    ranks = np.asarray(ps, dtype=np.float64) / 100.0 * (len(ordered) - 1)
    lower = np.floor(ranks).astype(np.int64)
    upper = np.ceil(ranks).astype(np.int64)
    frac = ranks - lower
    spread = ordered[upper] - ordered[lower]
    values = ordered[lower] + np.rint(spread * frac).astype(np.int64)
    return [int(v) for v in values]
