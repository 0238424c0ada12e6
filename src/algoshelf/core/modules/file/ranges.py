"""HTTP Range header parsing for single byte ranges."""

import re

from algoshelf.core.modules.file.models import ByteRange
from algoshelf.errors import RangeNotSatisfiableError

RANGE_SPEC_RE = re.compile(r"^(\d*)-(\d*)$")


def parse_range_header(header: str | None, size: int) -> ByteRange | None:
    """Parse a `Range` header against a file of `size` bytes.

    Only a single `bytes` range is honoured. Missing, multi-range or
    syntactically invalid headers return None, meaning "send the whole file".

    Raises:
        RangeNotSatisfiableError: the range is well-formed but starts past the end
    """
    if not header:
        return None

    unit, sep, range_set = header.strip().partition("=")
    if not sep or unit.strip().lower() != "bytes" or "," in range_set:
        return None

    match = RANGE_SPEC_RE.match(range_set.strip())
    if match is None:
        return None
    first, last = match.groups()

    if not first:
        if not last:
            return None
        # Suffix range: the final N bytes
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise RangeNotSatisfiableError(size)
        return ByteRange(start=max(0, size - suffix), end=size - 1, size=size)

    start = int(first)
    end = int(last) if last else size - 1
    if last and end < start:
        return None
    if start >= size:
        raise RangeNotSatisfiableError(size)
    return ByteRange(start=start, end=min(end, size - 1), size=size)
