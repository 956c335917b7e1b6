"""Convert Primo .ptp tape files into .pri (.prg) memory images."""

from __future__ import annotations

import getopt
import struct
import sys
from pathlib import Path

from .ptp2c import PtpFormatError, Report, _Reader

VERSION = "0.1b"

# Tape record type -> .pri block type for records whose data is kept.
_COPIED = {0xF1: 0xD1, 0xF5: 0xD5, 0xF9: 0xD9}
# Tape record type -> (has data, has load address) for records that are dropped.
_SKIPPED = {
    0x83: (True, False),
    0x87: (True, False),
    0xF7: (True, True),
    0xB1: (False, False),
    0xB5: (False, False),
    0xB7: (False, False),
}


def pri_close_block(address: int) -> bytes:
    """Closing block: a jump to the autostart address, or a return when there is none."""
    if address:
        return bytes([0xC3, address & 0xFF, (address >> 8) & 0xFF])
    return b"\xC9"


def _tape_block(reader: _Reader, out: bytearray, report: Report) -> int | None:
    """Convert one tape record; return the autostart address when it holds one."""
    tape_type = reader.byte()
    index = reader.byte()
    report(f"\t{index:02X}. tape block type: {tape_type:02X}")
    if tape_type in _COPIED:
        report(f"\t{index:02X}. tape block type: Data")
        low, high = reader.byte(), reader.byte()
        count = reader.byte() or 256
        out += bytes([_COPIED[tape_type], low, high]) + struct.pack("<H", count)
        out += reader.take(count)
        reader.byte()  # crc
        return None
    if tape_type in _SKIPPED:
        report("\tSKIP this block")
        has_data, has_address = _SKIPPED[tape_type]
        if has_address:
            reader.take(2)
        if has_data:
            reader.take(reader.byte())
        reader.byte()  # crc
        return None
    if tape_type == 0xB9:
        address = reader.word()
        reader.byte()  # crc
        return address
    raise PtpFormatError(f"Invalid tape block type: 0x{tape_type:02X} at position {reader.pos - 1}")


def _convert(data: bytes, report: Report | None) -> bytes:
    report = report or (lambda message: None)
    if not data or data[0] != 0xFF:
        raise PtpFormatError("Invalid ptp fileformat.")
    reader = _Reader(data)
    reader.byte()
    reader.word()  # total length, not needed
    out = bytearray()
    autostart = 0
    while True:
        position = reader.pos
        block_type = reader.byte()
        if block_type not in (0x55, 0xAA):
            raise PtpFormatError(f"Invalid ptp block type: 0x{block_type:02X} at position {position}")
        report(f"PTP Block type: 0x{block_type:02X}")
        size = reader.word()
        end = reader.pos + size
        while reader.pos < end:
            address = _tape_block(reader, out, report)
            if address is not None:
                autostart = address
        if block_type == 0xAA:
            break
    out += pri_close_block(autostart)
    return bytes(out)


def ptp_to_pri(data: bytes) -> bytes:
    """Build the .pri image of a .ptp file."""
    return _convert(data, None)


def _usage() -> int:
    print(f"ptp2pri v{VERSION}")
    print("Microkey Primo ptp to .PRI (.PRG) file converter.")
    print("Usage:")
    print("ptp2pri [options] -i <input_ptp_filename> -o <output_pri_filename>")
    print("Command line option:")
    print("-v           : verbose mode")
    print("-h           : prints this text")
    return 1


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        options, _ = getopt.getopt(args, "v?hi:o:")
    except getopt.GetoptError:
        return _usage()
    verbose = False
    source = target = None
    for option, value in options:
        if option in ("-?", "-h"):
            return _usage()
        if option == "-v":
            verbose = True
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
        image = _convert(data, print if verbose else None)
    except PtpFormatError as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        Path(target).write_bytes(image)
    except OSError:
        print(f"Error creating {target}.", file=sys.stderr)
        return 4
    return 0