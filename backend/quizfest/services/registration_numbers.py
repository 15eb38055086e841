"""
Public registration number generation.

Numbers look like ``QF-0K3ZD``: the last five base36 digits of the
millisecond clock, offset by the attempt count on collision. Short enough
to read out over the phone, ordered roughly by submission time.
"""

import string
import time
from typing import Awaitable, Callable, Optional

PREFIX = "QF-"
CODE_LENGTH = 5
MAX_ATTEMPTS = 100

_BASE36_DIGITS = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """
    Uppercase base36 representation of a non-negative integer.

    Example:
        >>> to_base36(35)
        'Z'
    """
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def format_registration_number(millis: int) -> str:
    code = to_base36(millis).rjust(CODE_LENGTH, "0")[-CODE_LENGTH:]
    return f"{PREFIX}{code}"


async def generate_registration_number(
    exists: Callable[[str], Awaitable[bool]],
    clock: Optional[Callable[[], int]] = None,
) -> str:
    """
    Produce a number not yet in use.

    Args:
        exists: Async predicate telling whether a number is taken
        clock: Millisecond clock (injectable for tests)

    Returns:
        A free registration number. After MAX_ATTEMPTS collisions the last
        candidate is returned and the unique constraint decides.
    """
    now_ms = clock or (lambda: time.time_ns() // 1_000_000)

    candidate = format_registration_number(now_ms())
    for attempt in range(MAX_ATTEMPTS):
        candidate = format_registration_number(now_ms() + attempt)
        if not await exists(candidate):
            return candidate
    return candidate
