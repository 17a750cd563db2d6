"""State token format check.

A state is 16 ASCII digits whose digit sum is 1 modulo 7, with a '4' at
index 5 and a '2' at index 11. This is only an anti-enumeration gate for the
deposit path: there are 7 checksum classes and two fixed digits, so it is not
cryptographically secure and must not be relied on to authenticate anyone.
"""

import secrets

STATE_LENGTH = 16
CHECKSUM_MODULUS = 7
CHECKSUM_REMAINDER = 1
MARKERS = {5: '4', 11: '2'}

_DIGITS = '0123456789'


def is_valid_state(state):
    """Return True if `state` has the expected shape, checksum and markers."""
    if not isinstance(state, str) or len(state) != STATE_LENGTH:
        return False
    # str.isdigit() accepts non-ASCII digits such as '٣'
    if any(c not in _DIGITS for c in state):
        return False
    if sum(int(c) for c in state) % CHECKSUM_MODULUS != CHECKSUM_REMAINDER:
        return False
    return all(state[i] == digit for i, digit in MARKERS.items())


def generate_state():
    """Generate a random state accepted by is_valid_state().

    The relay never calls this; it is for the application starting the flow.
    """
    digits = [secrets.choice(_DIGITS) for _ in range(STATE_LENGTH)]
    for i, digit in MARKERS.items():
        digits[i] = digit
    # fix up the checksum with the last free position
    last = STATE_LENGTH - 1
    partial = sum(int(d) for d in digits[:last])
    candidates = [d for d in _DIGITS if (partial + int(d)) % CHECKSUM_MODULUS == CHECKSUM_REMAINDER]
    digits[last] = secrets.choice(candidates)
    return ''.join(digits)
