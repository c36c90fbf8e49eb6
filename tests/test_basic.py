import pytest

from chatadapter.basic import ALPHABET, calc_hex, random_hex


@pytest.mark.parametrize("n", [0, 1, 5, 21])
def test_random_hex_length_and_alphabet(n):
    value = random_hex(n)
    assert len(value) == n
    assert set(value) <= set(ALPHABET)


def test_random_hex_varies():
    assert len({random_hex(16) for _ in range(10)}) > 1


def test_calc_hex_known_vector():
    assert calc_hex("abc") == "a9993e364706816aba3e25717850c26c9cd0d89d"


def test_calc_hex_is_stable_and_hex():
    value = calc_hex("gpt-4hello")
    assert value == calc_hex("gpt-4hello")
    assert len(value) == 40
    assert set(value) <= set("0123456789abcdef")
    assert value != calc_hex("gpt-4hello!")