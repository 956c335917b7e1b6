import pytest

from primotape.basic import (
    BASIC_START,
    check_load_addresses,
    decode_basic_line,
    decode_token,
    is_basic_token,
    primo_to_utf,
    token_length,
)


def test_first_tokens_of_table():
    assert decode_token(128) == b"END"
    assert decode_token(129) == b"FOR"


def test_token_length_matches_decoded_text():
    for token in range(128, 252):
        assert token_length(token) == len(decode_token(token))


def test_token_range():
    assert not is_basic_token(127)
    assert is_basic_token(128)
    assert is_basic_token(251)
    assert not is_basic_token(252)


def test_primo_to_utf_accents_and_plain():
    assert primo_to_utf(0x7D) == 0xC3A1
    assert primo_to_utf(0xF1) == 0xC5B0
    assert primo_to_utf(0x41) == 0x41


def test_decode_line_with_token():
    line = decode_basic_line(bytes([0x10, 0x44, 10, 0, 0x80, 0]), 2048, False)
    assert line.next_address == 0x4410
    assert line.line_number == 10
    assert line.text_line == b"END"
    assert line.bin_line == b"\x80"
    assert line.full_length == 6
    assert line.charset == "P"


def test_decode_line_utf8():
    raw = bytes([0, 0, 1, 0, 0x41, 0x7D, 0])
    assert decode_basic_line(raw, 2048, True).text_line == b"A" + (0xC3A1).to_bytes(2, "big")
    assert decode_basic_line(raw, 2048, False).text_line == b"A\x7d"


def test_decode_line_too_long():
    with pytest.raises(ValueError):
        decode_basic_line(bytes([0, 0, 1, 0, 0x41, 0x42, 0]), 6, False)


def test_decode_line_unterminated():
    with pytest.raises(ValueError):
        decode_basic_line(bytes([0, 0, 1, 0, 0x41]), 2048, False)


def _program():
    return bytearray([0, 0, 10, 0, 0x80, 0, 0, 0, 20, 0, 0x41, 0x42, 0, 0, 0])


def test_check_load_addresses_fixes_pointers():
    program = _program()
    assert check_load_addresses(program, BASIC_START) == 2
    first = program[0] | program[1] << 8
    second = program[6] | program[7] << 8
    assert first == BASIC_START + 6
    assert second == first + 7
    assert program[2:6] == bytearray([10, 0, 0x80, 0])


def test_check_load_addresses_idempotent():
    program = _program()
    check_load_addresses(program, BASIC_START)
    fixed = bytes(program)
    assert check_load_addresses(program, BASIC_START) == 0
    assert bytes(program) == fixed