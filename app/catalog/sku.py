"""SKU generation.

Used as the insert hook by both repositories whenever a product is
stored without a SKU.
"""

import re
import secrets
import time

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def _base36(number: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def generate_sku(category: str | None = None) -> str:
    """Generate a SKU such as ``SHI-LQ3K9ZP1-4F2A``.

    Args:
        category: Product category; its first three letters form the prefix.

    Returns:
        A new SKU string.
    """
    prefix = _NON_ALNUM.sub("", category or "")[:3].upper() or "PRD"
    stamp = _base36(int(time.time() * 1000))
    return f"{prefix}-{stamp}-{secrets.token_hex(2).upper()}"
