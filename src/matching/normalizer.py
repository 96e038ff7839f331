"""
Identifier normalisation shared by requested field names and column names.
"""
from __future__ import annotations

import re

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def normalize(value: str) -> str:
    """Lower-case *value* and drop every character outside ``[a-z0-9]``.

    >>> normalize("Suggested Qty")
    'suggestedqty'
    >>> normalize("PurchaseOrders.Order_Id")
    'purchaseordersorderid'
    """
    return _NON_ALNUM_RE.sub("", value.lower())
