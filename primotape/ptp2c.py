"""Turn the machine code held in a Primo .ptp file into C source code."""

from __future__ import annotations

import getopt
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

VERSION = "0.2b"
DEFAULT_VAR_NAME = "ptp_content"

Report = Callable[[str], None]


class PtpFormatError(ValueError):
    """The .ptp data is malformed or holds records that cannot be handled."""


class _Reader:
    """Sequential reader over the bytes of a .ptp image."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self.pos = 0

    def byte(self) -> int:
        if self.pos >= len(self._data):
            raise PtpFormatError(f"Unexpected end of ptp data at position {self.pos}")
        value = self._data[self.pos]
        self.pos += 1
        return value

    def word(self) -> int:
        low = self.byte()
        return low | self.byte() << 8

    def take(self, count: int) -> bytes:
        if self.pos + count > len(self._data):
            raise PtpFormatError(f"Unexpected end of ptp data at position {len(self._data)}")
        chunk = self._data[self.pos:self.pos + count]
        self.pos += count
        return chunk


@dataclass
class TapeImage:
    """Name, addresses and contiguous machine code read from a .ptp file."""

    name: str
    load_address: int
    run_address: int
    data: bytes

    @property
    def first_free(self) -> int:
        """Address following the last loaded byte."""
        return self.load_address + len(self.data)


class _ImageReader:
    def __init__(self, data: bytes, report: Report | None) -> None:
        self.reader = _Reader(data)
        self.report = report or (lambda message: None)
        self.name = ""
        self.load_address = 0
        self.run_address = 0
        self.content = bytearray()

    def read(self) -> TapeImage:
        reader = self.reader
        reader.word()  # total length, not needed
        while True:
            block_type = reader.byte()
            if block_type not in (0x55, 0xAA):
                raise PtpFormatError(f"Invalid ptp block type: 0x{block_type:02X}")
            self.report(f"PTP Block type: 0x{block_type:02X}")
            size = reader.word()
            self.report("\tRead first tape block in ptp block.")
            total = self._tape_block()
            while total < size:
                self.report(
                    f"\tRead next tape block in ptp block, because tapes sum size ({total}) "
                    f"smaller than ptp block size ({size})."
                )
                total += self._tape_block()
            if total > size:
                raise PtpFormatError(f"Invalid ptp block size: {size}")
            if block_type == 0xAA:
                break
        return TapeImage(self.name, self.load_address, self.run_address, bytes(self.content))

    def _tape_block(self) -> int:
        tape_type = self.reader.byte()
        index = self.reader.byte()
        if tape_type in (0x83, 0x87):
            return self._name_block(index)
        if tape_type == 0xF9:
            return self._data_block(index)
        if tape_type == 0xB9:
            return self._close_block(index)
        raise PtpFormatError(f"Invalid tape block type: 0x{tape_type:02X}")

    def _name_block(self, index: int) -> int:
        self.report(f"\t{index:02X}. tape block type: Name")
        size = self.reader.byte()
        if size > 16:
            raise PtpFormatError(f"Error: tape name too long! ({size}>16)")
        self.name = self.reader.take(size).decode("latin-1")
        self.reader.byte()  # crc
        return size + 4

    def _data_block(self, index: int) -> int:
        address = self.reader.word()
        counter = self.reader.byte()
        self.report(
            f"\t{index:02X}. tape block type: Data. Load: 0x{address:04X}, Count1: 0x{counter:02X}"
        )
        count = counter or 256
        if not self.content:
            self.load_address = address
        elif self.load_address + len(self.content) != address:
            raise PtpFormatError(
                f"ERROR: Space in block chain! Last addr: 0x{self.load_address + len(self.content):04X}, "
                f"First addr: 0x{address:04X}"
            )
        self.content += self.reader.take(count)
        self.reader.byte()  # crc
        return count + 6

    def _close_block(self, index: int) -> int:
        self.report(f"\t{index:02X}. tape block type: Close")
        self.run_address = self.reader.word()
        self.reader.byte()  # crc
        return 5


def _read(data: bytes, report: Report | None) -> TapeImage:
    if not data or data[0] != 0xFF:
        raise PtpFormatError("Invalid ptp fileformat.")
    reader = _ImageReader(data[1:], report)
    return reader.read()


def read_ptp_image(data: bytes) -> TapeImage:
    """Collect the name, run address and machine code of a .ptp image."""
    return _read(data, None)


def render_c_source(image: TapeImage, var_name: str = DEFAULT_VAR_NAME, hex_data: bool = True,
                    const: bool = True) -> str:
    """Render the image as a C struct initialiser."""
    count = len(image.data)
    lines = [
        f"/* ptp2c generated c source code from '{image.name}' ptp file.*/",
        "",
        f"static {'const ' if const else ''}struct {{",
        "    char name[ 17 ];",
        "    uint16_t run_address;",
        "    uint16_t load_address;",
        "    uint16_t byte_counter;",
        f"    unsigned char bytes[ {count} ];",
    ]
    if hex_data:
        lines.append(
            f'}} {var_name} = {{ "{image.name}", 0x{image.run_address:04X}, 0x{image.load_address:04X}, '
            f"0x{count:04X} // First free address: 0x{image.first_free:04X}"
        )
        item = "0x{:02X}"
    else:
        lines.append(f"}} {var_name} = {{ {image.run_address}, {image.load_address}, {count}")
        item = "{}"
    indent = " " * (len(var_name) + 5)
    for offset in range(0, count, 16):
        lines.append(indent + "".join(", " + item.format(b) for b in image.data[offset:offset + 16]))
    lines.append(indent + "};")
    return "\n".join(lines) + "\n"


def _usage() -> int:
    print(f"ptp2c v{VERSION}")
    print("Convert System .ptp file contents to .c source file.")
    print("Usage:")
    print("ptp2c -i <ptp_filename> [ -o <c_filename> ]")
    print(f"-n name : Set the name of created c variable. Default value is: {DEFAULT_VAR_NAME}.")
    print("-N      : No const! The generated variable is no const. Default is const.")
    print("-v      : Verbose mode.")
    return 1


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        options, _ = getopt.getopt(args, "v?hNn:i:o:")
    except getopt.GetoptError:
        return _usage()
    verbose = False
    const = True
    var_name = DEFAULT_VAR_NAME
    source = target = None
    for option, value in options:
        if option in ("-?", "-h"):
            return _usage()
        if option == "-v":
            verbose = True
        elif option == "-n":
            var_name = value
        elif option == "-N":
            const = False
        elif option == "-i":
            source = value
        elif option == "-o":
            target = value
    if source is None:
        return _usage()
    try:
        data = Path(source).read_bytes()
    except OSError:
        print(f"Error opening {source}.", file=sys.stderr)
        return 4
    try:
        image = _read(data, print if verbose else None)
    except PtpFormatError as exc:
        print(exc, file=sys.stderr)
        return 1
    text = render_c_source(image, var_name, True, const)
    if target is None:
        sys.stdout.write(text)
        return 0
    try:
        with open(target, "w", encoding="latin-1", newline="") as handle:
            handle.write(text)
    except OSError:
        print(f"Error creating {target}.", file=sys.stderr)
        return 4
    return 0