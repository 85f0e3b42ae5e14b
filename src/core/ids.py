"""24-character hex identifiers.

Layout: 4-byte big-endian seconds timestamp, 5 random bytes fixed per
process, 3-byte incrementing counter. Ids sort roughly by creation time
and are distinguishable from slugs by shape alone.
"""

import itertools
import os
import re
import threading
import time


OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")

_PROCESS_RANDOM = os.urandom(5)
_counter = itertools.count(int.from_bytes(os.urandom(3), "big"))
_counter_lock = threading.Lock()


def new_object_id() -> str:
    """Generate a new 24-hex identifier."""
    with _counter_lock:
        count = next(_counter) & 0xFFFFFF
    raw = (
        int(time.time()).to_bytes(4, "big")
        + _PROCESS_RANDOM
        + count.to_bytes(3, "big")
    )
    return raw.hex()


def is_object_id(value: str) -> bool:
    """True when ``value`` has the shape of a generated identifier."""
    return bool(OBJECT_ID_PATTERN.match(value))
