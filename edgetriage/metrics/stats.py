from __future__ import annotations
import math
from collections import Counter
from typing import Hashable, Iterable, List, Optional, Sequence, Tuple


def clean_numbers(values: Iterable[Optional[float]]) -> List[float]:
    out: List[float] = []
    for v in values:
        if v is None or isinstance(v, bool):
            continue
        try:
            n = float(v)
        except (TypeError, ValueError):
            continue
        if math.isfinite(n):
            out.append(n)
    return out

def percentile_sorted(sorted_vals: Sequence[float], p: float) -> Optional[float]:
    """Linear interpolation between closest ranks, index = p/100 * (n-1)."""
    if not sorted_vals:
        return None
    idx = (p / 100.0) * (len(sorted_vals) - 1)
    lo = math.floor(idx)
    hi = math.ceil(idx)
    if lo == hi:
        return float(sorted_vals[lo])
    w = idx - lo
    return sorted_vals[lo] * (1 - w) + sorted_vals[hi] * w

def percentile(values: Iterable[Optional[float]], p: float) -> Optional[float]:
    return percentile_sorted(sorted(clean_numbers(values)), p)

def pct(part: int, total: int) -> Optional[float]:
    if not total:
        return None
    return part / total * 100.0

def top_counts(values: Iterable[Hashable], limit: Optional[int] = None) -> List[Tuple[Hashable, int]]:
    # Counter keeps discovery order, most_common sorts stably
    counts: Counter = Counter()
    for v in values:
        if v is None or (isinstance(v, str) and not v.strip()):
            continue
        counts[v] += 1
    return counts.most_common(limit)
