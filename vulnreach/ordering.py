"""Total order over call sites and functions used by every sorting site."""

from __future__ import annotations

from typing import Optional, Tuple

from .models import CallSite, FuncNode, Position

OrderKey = Tuple[bool, int, int, str, str]


def order_key(pos: Optional[Position], name: str) -> OrderKey:
    """Sort key: positioned before unpositioned, then line, column, filename.

    Records at the same (or no) position fall back to their own qualified
    name.
    """
    if pos is None:
        return (True, 0, 0, "", name)
    return (False, pos.line, pos.column, pos.filename, name)


def call_site_key(cs: CallSite) -> Tuple[OrderKey, bool]:
    # resolved sites first when everything else ties
    return (order_key(cs.pos, cs.qualified_name), not cs.resolved)


def func_key(fn: FuncNode) -> Tuple[OrderKey, int]:
    return (order_key(fn.pos, fn.qualified_name), fn.id)


def call_site_less(cs1: CallSite, cs2: Optional[CallSite]) -> bool:
    """Report whether ``cs1`` sorts strictly before ``cs2``; None sorts last."""
    if cs2 is None:
        return True
    return call_site_key(cs1) < call_site_key(cs2)
