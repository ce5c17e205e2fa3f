import uuid

import pytest

from billing.codes import ALPHABET, BASE, InvalidCodeError, decode, encode, generate_codes

SERIES_ID = uuid.UUID('3f2a9c4e-1b7d-4e8a-9f00-123456789abc')


def test_alphabet_excludes_ambiguous_letters():
    assert BASE == len(ALPHABET) == 33
    for letter in 'IOQ':
        assert letter not in ALPHABET
    assert len(set(ALPHABET)) == BASE


def test_encode_format():
    assert encode(SERIES_ID, 1) == '3F2A9C-001'
    assert encode(SERIES_ID, 0) == '3F2A9C-000'
    assert encode(SERIES_ID, BASE) == '3F2A9C-010'
    assert encode(SERIES_ID, 33 * 33 * 33) == '3F2A9C-1000'


def test_decode_recovers_index_across_width_boundary():
    assert decode('3F2A9C-ZZZ') == 35936
    assert decode(encode(SERIES_ID, 35937)) == 35937


def test_negative_index_rejected():
    with pytest.raises(InvalidCodeError):
        encode(SERIES_ID, -1)


@pytest.mark.parametrize('code', ['3F2A9C001', '3F2A9C-00-1', '-001', '3F2A9C-', '', 'ABC-0I1', 'ABC-0O1', 'ABC-Q01', 'ABC-a01'])
def test_decode_rejects_malformed_codes(code):
    with pytest.raises(InvalidCodeError):
        decode(code)


def test_invalid_code_error_is_value_error():
    assert issubclass(InvalidCodeError, ValueError)


def test_generate_codes_starts_at_one_and_is_unique():
    codes = list(generate_codes(SERIES_ID, 40))
    assert len(codes) == len(set(codes)) == 40
    assert codes[0] == '3F2A9C-001'
    assert [decode(code) for code in codes] == list(range(1, 41))
