"""Slug and currency formatting helpers."""
import re
import unicodedata

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def make_slug(*parts: object) -> str:
    """
    Build a URL slug from the given parts.

    Example:
        make_slug("Clean Water for Everyone", 7) -> "clean-water-for-everyone-7"
    """
    text = " ".join(str(part) for part in parts)
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    return _NON_SLUG_CHARS.sub("-", text.lower()).strip("-")


def format_idr(amount: int) -> str:
    """
    Format an integer Rupiah amount, e.g. 1500000 -> "Rp1.500.000,00".
    """
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", ".")
    return f"{sign}Rp{grouped},00"
