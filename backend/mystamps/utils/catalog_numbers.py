"""Parsing of comma-separated catalog numbers entered in forms.

The form fields hold strings such as ``"1, 2,3"``. Each token is trimmed,
empty tokens are ignored and duplicates collapse into one value object.
"""

from typing import Optional, Set, Type, TypeVar

from ..entities import CatalogNumber

N = TypeVar('N', bound=CatalogNumber)


def split_catalog_numbers(raw: Optional[str]) -> Set[str]:
    """Return the distinct non-empty codes found in `raw`."""
    if raw is None:
        return set()
    return {token.strip() for token in raw.split(',') if token.strip()}


def parse_catalog_numbers(raw: Optional[str], number_cls: Type[N]) -> Optional[Set[N]]:
    """Parse `raw` into a set of `number_cls` values.

    Returns `None` when `raw` is `None` or contains no codes at all, so a
    blank field behaves like an absent one.
    """
    codes = split_catalog_numbers(raw)
    if not codes:
        return None
    return {number_cls(code) for code in codes}
