from __future__ import annotations

NS_PER_US = 1_000
NS_PER_MS = 1_000_000
NS_PER_SEC = 1_000_000_000
NS_PER_MIN = 60 * NS_PER_SEC
NS_PER_HOUR = 60 * NS_PER_MIN


def format_duration(ns: int) -> str:
    """Render nanoseconds as a compact duration string.

    Sub-second values use the largest fitting unit (``"850ns"``, ``"12.5µs"``,
    ``"123.456ms"``); longer values are split into hours, minutes and seconds
    (``"1m2.5s"``, ``"1h0m0s"``). Trailing fractional zeros are dropped.
    """
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    value = abs(ns)
    if value < NS_PER_US:
        return f"{sign}{value}ns"
    if value < NS_PER_MS:
        return f"{sign}{_scaled(value, NS_PER_US)}µs"
    if value < NS_PER_SEC:
        return f"{sign}{_scaled(value, NS_PER_MS)}ms"
    hours, rest = divmod(value, NS_PER_HOUR)
    minutes, rest = divmod(rest, NS_PER_MIN)
    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return f"{out}{_scaled(rest, NS_PER_SEC)}s"


def ms_to_ns(ms: float) -> int:
    return round(ms * NS_PER_MS)


def _scaled(value: int, unit: int) -> str:
    whole, frac = divmod(value, unit)
    if frac == 0:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{frac:0{digits}d}".rstrip("0")
