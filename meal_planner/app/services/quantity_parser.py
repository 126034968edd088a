import math
import unicodedata
from decimal import Decimal, DecimalException
from typing import Any, Optional

_VULGAR_FRACTIONS = "¼½¾⅐⅑⅒⅓⅔⅕⅖⅗⅘⅙⅚⅛⅜⅝⅞"


def _split_vulgar_fraction(value: str) -> str:
    # "1½" -> "1 1/2"
    out = []
    for ch in value:
        if ch in _VULGAR_FRACTIONS:
            num, _, denom = unicodedata.normalize("NFKC", ch).partition("⁄")
            if out and out[-1] != " ":
                out.append(" ")
            out.append(f"{num}/{denom}")
        else:
            out.append(ch)
    return "".join(out).strip()


def _parse_fraction(value: str) -> Optional[Decimal]:
    num_str, denom_str = value.split("/", 1)
    denom = Decimal(denom_str)
    if denom == 0:
        return None
    return Decimal(num_str) / denom


def parse_quantity(raw: Any) -> Optional[float]:
    """Parse an ingredient quantity ("2", "0.5", "1/2", "1 1/2", "1½") into a float."""
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        try:
            number = float(raw)
        except OverflowError:
            return None
        return number if math.isfinite(number) and number >= 0 else None
    if not isinstance(raw, str):
        return None
    value = _split_vulgar_fraction(raw.strip())
    if not value:
        return None

    try:
        if "/" not in value and " " not in value:
            parsed = Decimal(value)
        elif " " in value:
            whole_part, frac_part = value.split(" ", 1)
            frac = _parse_fraction(frac_part.strip())
            if frac is None:
                return None
            parsed = Decimal(whole_part) + frac
        else:
            parsed = _parse_fraction(value)
            if parsed is None:
                return None
    except (DecimalException, ValueError):
        return None

    if not parsed.is_finite() or parsed < 0:
        return None
    number = float(parsed)
    # "1e999" is a finite Decimal but overflows a float
    return number if math.isfinite(number) else None
