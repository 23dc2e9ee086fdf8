import logging
import time
from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

log = logging.getLogger("formatting")


def _strip_fraction(s: str) -> str:
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def format_token_balance(raw_balance: str, decimals: int) -> str:
    """Smallest-unit integer string -> human amount with thousands separators."""
    try:
        with localcontext() as ctx:
            ctx.prec = 100
            amount = Decimal(int(raw_balance)).scaleb(-int(decimals))
            if amount >= 1000:
                places = 2
            elif amount >= 1:
                places = 4
            elif amount > 0:
                places = 6
            else:
                places = 0
            amount = amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)
            return _strip_fraction(f"{amount:,.{places}f}")
    except (ValueError, TypeError, InvalidOperation) as e:
        log.warning("Error formatting balance %r: %s", raw_balance, e)
        return raw_balance


def format_large_number(n: float) -> str:
    for limit, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if n >= limit:
            return f"${n / limit:.2f}{suffix}"
    return f"${n:.2f}"


def format_timestamp(ts: float) -> str:
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(ts))
