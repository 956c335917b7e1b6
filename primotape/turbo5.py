"""Convert a Primo .ptp file into a turbo WAV file for machines clocked at 2.5 MHz."""

from __future__ import annotations

import getopt
import sys
from pathlib import Path

from .loaders import LoaderImage, turbo5_loader
from .payload import SCREEN_RECORD, Payload, PayloadBlock, load_payload
from .ptp2c import PtpFormatError
from .tapewav import HEADER_SIZE, TURBO5_PROFILE, WavWriter, speed_report
from .turbo import (
    BASIC_RUN,
    NEXT_BLOCK,
    PAYLOAD_GAP,
    RETURN_TO_BASIC,
    RUN_ADDRESS,
    LoaderPlacementError,
    _machine_report,
    _put_word,
    check_payload_overlap,
)

VERSION = "0.1b"
LOADER_TITLE = "Turbo loader 2.5"
NAME_OFFSET = 0x2D
BLOCK_GAP = 10

# Offsets inside the loader code that hold absolute addresses.
GET_BYTE_REF = 0x6B
LOADING_MSG_REF = 0x51
LOADING_MSG_OFFSET = 0x2A
ERROR_MSG_REF = 0x91
ERROR_MSG_OFFSET = 0x1D

BIT1_LOW = 4
BIT0_LOW = 2
HIGH = 3


def shift_loader5(loader: LoaderImage, payload: Payload, first_free: int, verbose: bool = False) -> list[str]:
    """Move the loader up to first_free when it lies above the loader; return the messages to show."""
    first_free &= 0xFFFF
    last_loader_address = (first_free + loader.size) & 0xFFFF
    messages = [_machine_report(last_loader_address)]
    if first_free > loader.load_address:
        shift = first_free - loader.load_address
        if verbose:
            for block in payload.blocks:
                start = block.load_address & 0xFFFF
                end = (start + block.size - 1) & 0xFFFF
                messages.append(f"  - Payload block from 0x{start:04X} to 0x{end:04X}")
        check_payload_overlap(payload, first_free, last_loader_address)
        messages.append(
            f"Move loader (size={loader.size}) from 0x{loader.load_address:04X} "
            f"to 0x{first_free:04X} with 0x{shift:04X}"
        )
        loader.load_address = (loader.load_address + shift) & 0xFFFF
        loader.run_address = (loader.run_address + shift) & 0xFFFF
        _put_word(loader.data, GET_BYTE_REF, first_free)
        _put_word(loader.data, LOADING_MSG_REF, first_free + LOADING_MSG_OFFSET)
        _put_word(loader.data, ERROR_MSG_REF, first_free + ERROR_MSG_OFFSET)
    else:
        messages.append(f"Loader stay on 0x{loader.load_address:04X} address")
    return messages


def _turbo5_byte(writer: WavWriter, value: int) -> None:
    top = writer.profile.top
    bottom = writer.profile.bottom
    value &= 0xFF
    for bit in range(8):
        writer.samples(bottom, BIT1_LOW if value >> bit & 1 else BIT0_LOW)
        writer.samples(top, HIGH)
    writer.samples(top, HIGH)


def _turbo5_word(writer: WavWriter, value: int) -> None:
    _turbo5_byte(writer, value & 0xFF)
    _turbo5_byte(writer, (value >> 8) & 0xFF)


def _turbo5_header(writer: WavWriter) -> None:
    checksum = 0
    for i in range(14):
        value = i * 3
        checksum = (checksum + value * 0x101) & 0xFFFF
        _turbo5_byte(writer, value)
    _turbo5_word(writer, checksum)


def _block_header(writer: WavWriter, block: PayloadBlock) -> str:
    _turbo5_byte(writer, 1 if block.type == SCREEN_RECORD else 0)
    _turbo5_word(writer, block.load_address)
    _turbo5_word(writer, block.size)
    writer.samples(writer.profile.top, block.size // 400)
    return (
        f"Create turbo 2.5 block (type=0x{block.type:02X}, size=0x{block.size:04X}, "
        f"load address=0x{block.load_address:04X})"
    )


def _selector(writer: WavWriter, payload: Payload, last: bool, auto_basic_run: bool) -> None:
    if not last:
        _turbo5_byte(writer, NEXT_BLOCK)
    elif auto_basic_run and payload.basic_block_count:
        _turbo5_byte(writer, BASIC_RUN)
    elif payload.run_address:
        _turbo5_byte(writer, RUN_ADDRESS)
        _turbo5_word(writer, payload.run_address)
    else:
        _turbo5_byte(writer, RETURN_TO_BASIC)


def encode_payload5(writer: WavWriter, payload: Payload, auto_basic_run: bool = False) -> list[str]:
    """Write the payload in the 2.5 MHz turbo format; return the messages to show."""
    _turbo5_header(writer)
    messages = []
    count = len(payload.blocks)
    for number, block in enumerate(payload.blocks, start=1):
        messages.append(_block_header(writer, block))
        for value in block.data:
            _turbo5_byte(writer, value)
        _turbo5_byte(writer, sum(block.data) & 0xFF)
        _selector(writer, payload, number == count, auto_basic_run)
        writer.samples(writer.profile.top, BLOCK_GAP)
    return messages


def build_turbo5_wav(payload: Payload, auto_basic_run: bool = False, move_to: int = 0,
                     verbose: bool = False) -> bytes:
    """Build the WAV file: the loader in ROM format followed by the turbo payload.

    A non-zero move_to places the loader there instead of just above the payload.
    """
    loader = turbo5_loader()
    target = move_to & 0xFFFF if move_to else payload.max_address + 1
    for message in shift_loader5(loader, payload, target, verbose):
        print(message)
    name = payload.name.encode("latin-1", "replace")[:16]
    loader.data[NAME_OFFSET:NAME_OFFSET + len(name)] = name
    writer = WavWriter(TURBO5_PROFILE)
    writer.write_loader(loader, LOADER_TITLE)
    writer.silence(PAYLOAD_GAP)
    payload_start = len(writer)
    for message in encode_payload5(writer, payload, auto_basic_run):
        print(message)
    image = writer.getvalue()
    print(speed_report(payload.full_size, len(image) - HEADER_SIZE, len(image) - payload_start,
                       TURBO5_PROFILE.sample_rate))
    return image


def _parse_address(text: str) -> int:
    """Read a number the way strtol with base 0 does; unreadable text gives 0."""
    text = text.strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text[:2].lower() == "0x":
        base, digits, text = 16, "0123456789abcdef", text[2:]
    elif text.startswith("0"):
        base, digits = 8, "01234567"
    else:
        base, digits = 10, "0123456789"
    prefix = ""
    for char in text.lower():
        if char not in digits:
            break
        prefix += char
    value = int(prefix, base) if prefix else 0
    return (sign * value) & 0xFFFF


def _usage() -> int:
    print(f"ptp2turbo5 v{VERSION}")
    print("Convert .ptp file to turbo wav file.")
    print("Only for Primo with 2.5Mhz!")
    print("Usage:")
    print("ptp2turbo5 -i <ptp_filename> -o <wav_filename>")
    print("-a      : BASIC auto RUN command after load.")
    print("-m addr : Move loader to defined address (0x prefix for hex).")
    print("-v      : Verbose mode.")
    return 1


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        options, _ = getopt.getopt(args, "va?hi:o:m:")
    except getopt.GetoptError:
        return _usage()
    verbose = 0
    auto_basic_run = False
    move_to = 0
    source = target = None
    for option, value in options:
        if option in ("-?", "-h"):
            return _usage()
        if option == "-v":
            verbose += 1
        elif option == "-a":
            auto_basic_run = True
        elif option == "-m":
            move_to = _parse_address(value)
        elif option == "-i":
            source = value
        elif option == "-o":
            target = value
    if source is None or target is None:
        return _usage()
    try:
        data = Path(source).read_bytes()
    except OSError:
        print(f"Error opening {source}.", file=sys.stderr)
        return 4
    try:
        payload = load_payload(data, 0, False, verbose > 1)
        image = build_turbo5_wav(payload, auto_basic_run, move_to, verbose > 0)
    except (PtpFormatError, LoaderPlacementError) as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        Path(target).write_bytes(image)
    except OSError:
        print(f"Error creating {target}.", file=sys.stderr)
        return 4
    return 0