"""Decoding of tokenised Primo BASIC program lines."""

from __future__ import annotations

from dataclasses import dataclass

MAX_LINE_LENGTH = 2048
BASIC_START = 0x43EA

# Keyword table of the BASIC interpreter: the first character of every
# keyword has its high bit set, and keywords are numbered from 128 upwards.
TOKENS = bytes((
    0xC5, 0x4E, 0x44, 0xC6, 0x4F, 0x52, 0xD2, 0x45, 0x53, 0x45, 0x54, 0xD3, 0x45, 0x54, 0xC3, 0x4C,
    0x53, 0xC3, 0x4D, 0x44, 0xD2, 0x41, 0x4E, 0x44, 0x4F, 0x4D, 0xCE, 0x45, 0x58, 0x54, 0xC4, 0x41,
    0x54, 0x41, 0xC9, 0x4E, 0x50, 0x55, 0x54, 0xC4, 0x49, 0x4D, 0xD2, 0x45, 0x41, 0x44, 0xCC, 0x45,
    0x54, 0xC7, 0x4F, 0x54, 0x4F, 0xD2, 0x55, 0x4E, 0xC9, 0x46, 0xD2, 0x45, 0x53, 0x54, 0x4F, 0x52,
    0x45, 0xC7, 0x4F, 0x53, 0x55, 0x42, 0xD2, 0x45, 0x54, 0x55, 0x52, 0x4E, 0xD2, 0x45, 0x4D, 0xD3,
    0x54, 0x4F, 0x50, 0xC5, 0x4C, 0x53, 0x45, 0xD4, 0x52, 0x4F, 0x4E, 0xD4, 0x52, 0x4F, 0x46, 0x46,
    0xC4, 0x45, 0x46, 0x53, 0x54, 0x52, 0xC4, 0x45, 0x46, 0x49, 0x4E, 0x54, 0xC4, 0x45, 0x46, 0x53,
    0x4E, 0x47, 0xC4, 0x45, 0x46, 0x44, 0x42, 0x4C, 0xC2, 0x45, 0x45, 0x50, 0xC5, 0x44, 0x49, 0x54,
    0xC5, 0x52, 0x52, 0x4F, 0x52, 0xD2, 0x45, 0x53, 0x55, 0x4D, 0x45, 0xCF, 0x55, 0x54, 0xCF, 0x4E,
    0xCF, 0x50, 0x45, 0x4E, 0xC6, 0x49, 0x45, 0x4C, 0x44, 0xC7, 0x45, 0x54, 0xD0, 0x55, 0x54, 0xC3,
    0x4C, 0x4F, 0x53, 0x45, 0xCC, 0x4F, 0x41, 0x44, 0xCD, 0x45, 0x52, 0x47, 0x45, 0xD4, 0x45, 0x53,
    0x54, 0xCB, 0x49, 0x4C, 0x4C, 0xC3, 0x52, 0x45, 0x41, 0x54, 0x45, 0xE6, 0x6E, 0xD3, 0x41, 0x56,
    0x45, 0xD3, 0x43, 0x52, 0x45, 0x45, 0x4E, 0xCC, 0x50, 0x52, 0x49, 0x4E, 0x54, 0xC4, 0x45, 0x46,
    0xD0, 0x4F, 0x4B, 0x45, 0xD0, 0x52, 0x49, 0x4E, 0x54, 0xC3, 0x4F, 0x4E, 0x54, 0xCC, 0x49, 0x53,
    0x54, 0xCC, 0x4C, 0x49, 0x53, 0x54, 0xC4, 0x45, 0x4C, 0x45, 0x54, 0x45, 0xC1, 0x55, 0x54, 0x4F,
    0xC3, 0x4C, 0x45, 0x41, 0x52, 0xC3, 0x4C, 0x4F, 0x41, 0x44, 0xC3, 0x53, 0x41, 0x56, 0x45, 0xCE,
    0x45, 0x57, 0xD4, 0x41, 0x42, 0x28, 0xD4, 0x4F, 0xC6, 0x4E, 0xD5, 0x53, 0x49, 0x4E, 0x47, 0xD6,
    0x41, 0x52, 0x50, 0x54, 0x52, 0xC3, 0x41, 0x4C, 0x4C, 0xC5, 0x52, 0x4C, 0xC5, 0x52, 0x52, 0xD3,
    0x54, 0x52, 0x49, 0x4E, 0x47, 0x24, 0xC9, 0x4E, 0x53, 0x54, 0x52, 0xD0, 0x4F, 0x49, 0x4E, 0x54,
    0xD4, 0x49, 0x4D, 0x45, 0x24, 0xD0, 0x49, 0xC9, 0x4E, 0x4B, 0x45, 0x59, 0x24, 0xD4, 0x48, 0x45,
    0x4E, 0xCE, 0x4F, 0x54, 0xD3, 0x54, 0x45, 0x50, 0xAB, 0xAD, 0xAA, 0xAF, 0x9F, 0xC1, 0x4E, 0x44,
    0xCF, 0x52, 0xBE, 0xBD, 0xBC, 0xD3, 0x47, 0x4E, 0xC9, 0x4E, 0x54, 0xC1, 0x42, 0x53, 0xC6, 0x52,
    0x45, 0xC9, 0x4E, 0x50, 0xD0, 0x4F, 0x53, 0xD3, 0x51, 0x52, 0xD2, 0x4E, 0x44, 0xCC, 0x4F, 0x47,
    0xC5, 0x58, 0x50, 0xC3, 0x4F, 0x53, 0xD3, 0x49, 0x4E, 0xD4, 0x41, 0x4E, 0xC1, 0x54, 0x4E, 0xD0,
    0x45, 0x45, 0x4B, 0xC3, 0x56, 0x49, 0xC3, 0x56, 0x53, 0xC3, 0x56, 0x44, 0xC5, 0x4F, 0x46, 0xCC,
    0x4F, 0x43, 0xCC, 0x4F, 0x46, 0xCD, 0x4B, 0x49, 0x24, 0xCD, 0x4B, 0x53, 0x24, 0xCD, 0x4B, 0x44,
    0x24, 0xC3, 0x49, 0x4E, 0x54, 0xC3, 0x53, 0x4E, 0x47, 0xC3, 0x44, 0x42, 0x4C, 0xC6, 0x49, 0x58,
    0xCC, 0x45, 0x4E, 0xD3, 0x54, 0x52, 0x24, 0xD6, 0x41, 0x4C, 0xC1, 0x53, 0x43, 0xC3, 0x48, 0x52,
    0x24, 0xCC, 0x45, 0x46, 0x54, 0x24, 0xD2, 0x49, 0x47, 0x48, 0x54, 0x24, 0xCD, 0x49, 0x44, 0x24,
    0xA7,
))

# Primo character code -> UTF-8 bytes (as a big-endian integer) of the
# Hungarian accented letters that replace ASCII punctuation on the machine.
_PRIMO_UTF8 = {
    0x7D: 0xC3A1,  # á
    0x5D: 0xC381,  # Á
    0x60: 0xC3A9,  # é
    0x40: 0xC389,  # É
    0x7C: 0xC3B6,  # ö
    0x5C: 0xC396,  # Ö
    0x5B: 0xC3B3,  # ó
    0x7B: 0xC591,  # ő
    0x7E: 0xC3BC,  # ü
    0x5E: 0xC39C,  # Ü
    0x1E: 0xC3AD,  # í
    0x5F: 0xC3BA,  # ú
    0x7F: 0xC5B1,  # ű
    0xF1: 0xC5B0,  # Ű
}


def _build_keywords() -> dict[int, bytes]:
    keywords: dict[int, bytearray] = {}
    token = 127
    for byte in TOKENS:
        if byte > 127:
            token += 1
            keywords[token] = bytearray([byte - 128])
        else:
            keywords[token].append(byte)
    return {key: bytes(value) for key, value in keywords.items()}


_KEYWORDS = _build_keywords()


@dataclass
class BasicLine:
    """One decoded line of a tokenised BASIC program."""

    full_length: int
    next_address: int
    line_number: int
    bin_line: bytes
    text_line: bytes
    charset: str = "P"


def primo_to_utf(character: int) -> int:
    """Map a Primo character code to its UTF-8 byte pair, or return it unchanged."""
    return _PRIMO_UTF8.get(character, character)


def is_basic_token(byte: int) -> bool:
    """Tell whether a byte of a program line stands for a keyword."""
    return 127 < byte < 252


def token_length(token: int) -> int:
    """Length of the keyword text that a token stands for (0 if unknown)."""
    return len(_KEYWORDS.get(token, b""))


def decode_token(token: int) -> bytes:
    """Keyword text of a token; empty for tokens missing from the table."""
    return _KEYWORDS.get(token, b"")


def decode_basic_line(data: bytes, max_size: int = MAX_LINE_LENGTH, utf8: bool = False) -> BasicLine:
    """Decode one binary BASIC line: next-line address, line number, tokens, closing zero."""
    data = bytes(data)
    if len(data) < 4:
        raise ValueError("BASIC line header is truncated")
    end = data.find(0, 4)
    if end < 0:
        raise ValueError("BASIC line has no closing zero")
    body = data[4:end]
    full_length = len(body) + 5
    if full_length > max_size:
        raise ValueError("Size error! Invalid basic block splice?")
    text = bytearray()
    for byte in body:
        if is_basic_token(byte):
            text += decode_token(byte)
        elif utf8 and (code := primo_to_utf(byte)) > 0xFF:
            text += code.to_bytes(2, "big")
        else:
            text.append(byte)
    return BasicLine(
        full_length=full_length,
        next_address=data[0] | data[1] << 8,
        line_number=data[2] | data[3] << 8,
        bin_line=body,
        text_line=bytes(text),
    )


def check_load_addresses(program: bytearray, load_address: int = BASIC_START) -> int:
    """Rewrite the next-line pointers of a program loaded at load_address.

    The program is corrected in place; the number of changed pointers is returned.
    """
    length = len(program)
    pos = 0
    changed = 0
    while pos < length - 4:
        start = pos
        next_address = program[pos] | program[pos + 1] << 8
        pos += 4
        while pos < length and program[pos]:
            pos += 1
        pos += 1
        real_next = (load_address + pos - start) & 0xFFFF
        if next_address != real_next:
            program[start] = real_next & 0xFF
            program[start + 1] = real_next >> 8
            changed += 1
        load_address = real_next
    return changed