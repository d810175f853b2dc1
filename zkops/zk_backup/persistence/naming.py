"""
File naming convention for ZooKeeper persisted state.

ZooKeeper names every snapshot and transaction log after the zxid it
starts at:

    snapshot.<hex zxid>     e.g. snapshot.a3f
    log.<hex zxid>          e.g. log.1b2

Both kinds live under a "version-2" sub-directory of the configured
data directories.

Invariants:
    - Prefixes, separator and radix are identical to ZooKeeper's
    - Names are never rewritten; archived files keep them verbatim
    - A zxid is an unsigned 64-bit value
"""

from __future__ import annotations

import re

from ..errors import MalformedNameError

SNAPSHOT_PREFIX = "snapshot"
LOG_PREFIX = "log"
VERSION_DIR = "version-2"

MAX_ZXID = (1 << 64) - 1

_HEX_RE = re.compile(r"[0-9a-fA-F]+")


def parse_zxid(filename: str, prefix: str) -> int:
    """Extract the zxid from a persisted file name.

    Args:
        filename: Base file name, e.g. "snapshot.a3f"
        prefix: Expected kind prefix ("snapshot" or "log")

    Returns:
        The zxid encoded in the name

    Raises:
        MalformedNameError: If the name lacks "<prefix>." or the suffix
            is not a 64-bit hexadecimal number
    """
    head = prefix + "."
    if not filename.startswith(head):
        raise MalformedNameError(filename, prefix, f"expected '{head}' prefix")

    suffix = filename[len(head):]
    # int(x, 16) would also take "0x", signs, underscores and whitespace
    if not _HEX_RE.fullmatch(suffix):
        raise MalformedNameError(filename, prefix, f"suffix '{suffix}' is not hexadecimal")

    zxid = int(suffix, 16)
    if zxid > MAX_ZXID:
        raise MalformedNameError(filename, prefix, "zxid does not fit in 64 bits")
    return zxid


def make_name(prefix: str, zxid: int) -> str:
    """Build a persisted file name the way ZooKeeper does (lowercase hex, no padding)."""
    if zxid < 0 or zxid > MAX_ZXID:
        raise ValueError(f"zxid out of range: {zxid}")
    return f"{prefix}.{zxid:x}"


def has_prefix(filename: str, prefix: str) -> bool:
    """Whether a name claims to be a file of the given kind."""
    return filename.startswith(prefix + ".")
