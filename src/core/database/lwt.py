"""Helpers for lightweight transaction (``IF [NOT] EXISTS``) results."""

from typing import Any


def was_applied(rows: list[Any]) -> bool:
    """Read the ``[applied]`` column of a conditional statement's result.

    The first column of the first row is always ``[applied]``; when the
    condition failed the remaining columns hold the existing values.
    """
    if not rows:
        return False
    return bool(rows[0][0])
