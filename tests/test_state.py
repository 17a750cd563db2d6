import pytest

from token_relay.state import generate_state, is_valid_state


@pytest.mark.parametrize("state", ["0000040000020002", "1234541234521231", "9999949999929994"])
def test_valid_states(state):
    assert is_valid_state(state)


@pytest.mark.parametrize(
    "state",
    [
        "000004000002002",  # 15 chars
        "00000400000200020",  # 17 chars
        "",
        "00000400000200a2",  # non-digit
        "000004000002000 ",
        "-000040000020002",
        "000004000002000٢",  # Arabic-Indic digit two
        "0000040000020001",  # digit sum 7
        "0000040000020003",  # digit sum 9
        "0000050000020001",  # index 5 is not '4'
        "0000040000030001",  # index 11 is not '2'
    ],
)
def test_invalid_states(state):
    assert not is_valid_state(state)


@pytest.mark.parametrize("state", [None, 4000002000200000, b"0000040000020002"])
def test_non_string_state_is_invalid(state):
    assert not is_valid_state(state)


def test_checksum_rule_across_last_digit():
    # only the last digit varies; the digit sum modulo 7 decides
    for last in range(10):
        state = "000004000002000" + str(last)
        assert is_valid_state(state) == ((6 + last) % 7 == 1)


def test_generated_states_are_valid():
    states = {generate_state() for _ in range(200)}
    assert all(is_valid_state(s) for s in states)
    assert len(states) > 1
