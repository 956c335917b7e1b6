"""Convert Primo .pp memory images into .ptp tape files."""

from __future__ import annotations

import getopt
import os
import struct
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

from .paths import chop_extension, is_dir, output_path

VERSION = "0.1b"

PTP_BLOCK = 0x55
PTP_LAST_BLOCK = 0xAA
NAME_RECORD = 0x83
DATA_RECORD = 0xF9
AUTOSTART_RECORD = 0xB9


class PpFormatError(ValueError):
    """The .pp input is too short or too large."""


def bcd(value: int) -> int:
    """Pack the decimal digits of value into a BCD byte."""
    result = 0
    shift = 0
    value &= 0xFF
    while value:
        result |= (value % 10) << shift
        value //= 10
        shift += 4
    return result & 0xFF


def _tape_name(name) -> bytes:
    raw = name.encode("latin-1", "replace") if isinstance(name, str) else bytes(name)
    return raw[:16]


def name_record(name) -> bytes:
    """PTP block holding the tape name record."""
    raw = _tape_name(name)
    length = len(raw)
    crc = (sum(raw) + length) & 0xFF
    return struct.pack("<BHBBB", PTP_BLOCK, length + 4, NAME_RECORD, 0, length) + raw + bytes([crc])


def data_record(data: bytes, load_address: int, block_index: int) -> bytes:
    """PTP block holding a machine code record of 1 to 256 bytes."""
    data = bytes(data)
    if not 1 <= len(data) <= 256:
        raise ValueError(f"data record must hold 1 to 256 bytes, not {len(data)}")
    load_address &= 0xFFFF
    block_index &= 0xFF
    counter = len(data) & 0xFF
    crc = (block_index + (load_address >> 8) + (load_address & 0xFF) + counter + sum(data)) & 0xFF
    header = struct.pack(
        "<BHBBHB", PTP_BLOCK, len(data) + 6, DATA_RECORD, bcd(block_index), load_address, counter
    )
    return header + data + bytes([crc])


def last_record(start_address: int, block_index: int) -> bytes:
    """Closing PTP block with the autostart address record."""
    start_address &= 0xFFFF
    block_index &= 0xFF
    crc = (block_index + (start_address >> 8) + (start_address & 0xFF)) & 0xFF
    return struct.pack(
        "<BHBBHB", PTP_LAST_BLOCK, 5, AUTOSTART_RECORD, bcd(block_index), start_address, crc
    )


def _records(load_address: int, start_address: int, payload: bytes, name) -> Iterator[tuple[str, bytes]]:
    yield f"Create  0. tape name record (0x{NAME_RECORD:02X}). Name for load is {_tape_name(name)!r}", name_record(name)
    block_index = 1
    for offset in range(0, len(payload), 256):
        chunk = payload[offset:offset + 256]
        yield (
            f"Create {block_index:2d}. tape data record (0x{DATA_RECORD:02X}) from {len(chunk)} bytes. "
            f"Load address is 0x{load_address:04X}",
            data_record(chunk, load_address, block_index),
        )
        load_address = (load_address + len(chunk)) & 0xFFFF
        block_index += 1
    yield (
        f"Create {block_index:2d}. - last - tape record (0x{AUTOSTART_RECORD:02X}). "
        f"Start address is 0x{start_address:04X}",
        last_record(start_address, block_index),
    )


def _build(pp_bytes: bytes, name, report: Callable[[str], None] | None) -> bytes:
    pp_bytes = bytes(pp_bytes)
    if len(pp_bytes) < 4:
        raise PpFormatError("File block read error: missing load and start addresses")
    load_address, start_address = struct.unpack_from("<HH", pp_bytes)
    payload = pp_bytes[4:]
    if len(payload) > 0xFFFF:
        raise PpFormatError("pp payload exceeds 65535 bytes")
    parts = []
    for message, record in _records(load_address, start_address, payload, name):
        if report:
            report(message)
        parts.append(record)
    body = b"".join(parts)
    return struct.pack("<BH", 0xFF, (len(body) + 3) & 0xFFFF) + body


def pp_to_ptp(pp_bytes: bytes, name) -> bytes:
    """Build a complete .ptp image from the contents of a .pp file."""
    return _build(pp_bytes, name, None)


def convert_pp_file(pp_path, output=None, name=None, verbose=False) -> str:
    """Convert a .pp file and write the .ptp file; return the path written.

    output may be a file name, a directory, or None for the input's directory.
    """
    pp_path = os.fspath(pp_path)
    data = Path(pp_path).read_bytes()
    base = chop_extension(os.path.basename(pp_path), 4)
    if output is None or is_dir(output):
        directory = os.fspath(output) if output is not None else (os.path.dirname(pp_path) or ".")
        target = output_path(directory, base, ".ptp")
        print(f"Create file {target}")
    else:
        target = os.fspath(output)
    image = _build(data, name if name else base, print if verbose else None)
    Path(target).write_bytes(image)
    return target


def _usage() -> int:
    print(f"pp2ptp v{VERSION}")
    print("Convert Primo .pp file to .ptp format.")
    print("Usage:")
    print("pp2ptp [options] -i <pp_filename> [ -o <ptp_filename> ]")
    print("Command line option:")
    print("-o <ptp_file> : Output filename or directory. Default, the input filename with ptp extension.")
    print("-n <name>     : Name for the load. Default, the basename of the input file.")
    print("-v            : Verbose output.")
    return 1


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        options, _ = getopt.getopt(args, "v?hi:n:o:")
    except getopt.GetoptError:
        return _usage()
    verbose = False
    source = output = name = None
    for option, value in options:
        if option in ("-?", "-h"):
            return _usage()
        if option == "-v":
            verbose = True
        elif option == "-i":
            source = value
        elif option == "-n":
            name = value
        elif option == "-o":
            output = value
    if source is None:
        return _usage()
    if not os.path.isfile(source):
        print(f"Error opening {source}.", file=sys.stderr)
        return 4
    try:
        convert_pp_file(source, output, name, verbose)
    except PpFormatError as exc:
        print(exc, file=sys.stderr)
        return 1
    except OSError:
        print(f"Error creating {output if output else source}.", file=sys.stderr)
        return 4
    print("Ok")
    return 0