"""Read the loadable blocks of a Primo .ptp file for the turbo converters."""

from __future__ import annotations

from dataclasses import dataclass, field

from .basic import BASIC_START, check_load_addresses
from .ptp2c import PtpFormatError, Report, _Reader

MAX_BLOCKS = 100
MAX_BLOCK_SIZE = 0xFFFF

NAME_RECORDS = (0x83, 0x87)
BASIC_RECORD = 0xF1
SCREEN_RECORD = 0xF5
MACHINE_RECORD = 0xF9
BASIC_CLOSE = 0xB1
AUTOSTART_CLOSE = 0xB9


@dataclass
class PayloadBlock:
    """A run of bytes that loads to consecutive addresses."""

    type: int
    load_address: int
    data: bytearray = field(default_factory=bytearray)

    @property
    def size(self) -> int:
        """Number of bytes in the block."""
        return len(self.data)

    @property
    def last_address(self) -> int:
        """Address of the last byte of the block."""
        return self.load_address + len(self.data) - 1


@dataclass
class Payload:
    """Everything a turbo loader has to put into memory."""

    name: str = ""
    run_address: int = 0
    blocks: list[PayloadBlock] = field(default_factory=list)
    corrections: int = 0

    def _placed(self) -> list[PayloadBlock]:
        return [block for block in self.blocks if block.load_address]

    @property
    def min_address(self) -> int:
        """Lowest load address of the blocks not loaded to address 0."""
        placed = self._placed()
        return min((block.load_address for block in placed), default=0)

    @property
    def max_address(self) -> int:
        """Highest address written by the blocks not loaded to address 0."""
        placed = self._placed()
        return max((max(block.last_address, 0) for block in placed), default=0) & 0xFFFF

    @property
    def full_size(self) -> int:
        """Number of bytes in the blocks not loaded to address 0."""
        return sum(block.size for block in self._placed()) & 0xFFFF

    @property
    def basic_block_count(self) -> int:
        """Number of blocks that hold BASIC program code."""
        return sum(1 for block in self.blocks if block.type == BASIC_RECORD)


class _PayloadReader:
    def __init__(self, basic_run_address: int, strict_basic_close: bool, report: Report | None) -> None:
        self.basic_run_address = basic_run_address & 0xFFFF
        self.strict = strict_basic_close
        self.report = report or (lambda message: None)
        self.payload = Payload()
        self.last_type = 0
        self.is_basic = False

    def read(self, data: bytes) -> Payload:
        data = bytes(data)
        if not data or data[0] != 0xFF:
            raise PtpFormatError("Invalid ptp fileformat.")
        reader = _Reader(data)
        reader.byte()
        reader.word()  # total length, not needed
        while self._ptp_block(reader) != 0xAA:
            pass
        return self.payload

    def _ptp_block(self, reader: _Reader) -> int:
        block_type = reader.byte()
        if block_type not in (0x55, 0xAA):
            raise PtpFormatError(f"Invalid ptp block type: 0x{block_type:02X}")
        self.report(f"PTP Block type: 0x{block_type:02X}")
        size = reader.word()
        self.report("\tRead first tape block in ptp block.")
        total = self._tape_block(reader)
        while total < size:
            self.report(
                f"\tRead next tape block in ptp block, because tapes sum size ({total}) "
                f"smaller than ptp block size ({size})."
            )
            total += self._tape_block(reader)
        if total > size:
            raise PtpFormatError(f"Invalid ptp block size: {size}")
        return block_type

    def _tape_block(self, reader: _Reader) -> int:
        tape_type = reader.byte()
        index = reader.byte()
        if tape_type in NAME_RECORDS:
            return self._name_block(reader, index)
        if tape_type == BASIC_RECORD:
            self.is_basic = True
            return self._data_block(reader, tape_type, index, BASIC_START)
        if tape_type in (SCREEN_RECORD, MACHINE_RECORD):
            return self._data_block(reader, tape_type, index, 0)
        if tape_type == BASIC_CLOSE:
            self.payload.run_address = self.basic_run_address
            if self.last_type == BASIC_RECORD:
                self._check_basic()
            elif self.strict or self.is_basic:
                raise PtpFormatError("Invalid BASIC close block! Not after BASIC code")
            return self._close_block(reader, index, autostart=False)
        if tape_type == AUTOSTART_CLOSE:
            return self._close_block(reader, index, autostart=True)
        raise PtpFormatError(f"Invalid tape block type: 0x{tape_type:02X}")

    def _name_block(self, reader: _Reader, index: int) -> int:
        self.report(f"\t{index:02X}. tape block type: Name")
        size = reader.byte()
        if size > 16:
            raise PtpFormatError(f"Error: tape name too long! ({size}>16)")
        self.payload.name = reader.take(size).decode("latin-1")
        reader.byte()  # crc
        return size + 4

    def _close_block(self, reader: _Reader, index: int, autostart: bool) -> int:
        self.report(f"\t{index:02X}. tape block type: Close")
        if autostart:
            self.payload.run_address = reader.word()
            reader.byte()  # crc
            return 5
        reader.byte()  # crc
        return 3

    def _new_block(self, load_address: int, tape_type: int) -> PayloadBlock:
        if len(self.payload.blocks) >= MAX_BLOCKS:
            raise PtpFormatError("Too many tape blocks!")
        block = PayloadBlock(tape_type, load_address)
        self.payload.blocks.append(block)
        return block

    def _check_basic(self) -> None:
        block = self.payload.blocks[-1]
        count = check_load_addresses(block.data, BASIC_START)
        if count:
            print(f"*** Basic next line memory address correction: {count}")
            self.payload.corrections += count

    def _data_block(self, reader: _Reader, tape_type: int, index: int, base: int) -> int:
        address = (reader.word() + base) & 0xFFFF
        if self.last_type != tape_type:
            if self.last_type == BASIC_RECORD:
                self._check_basic()
            self._new_block(address, tape_type)
            self.last_type = tape_type
        block = self.payload.blocks[-1]
        counter = reader.byte()
        self.report(
            f"\t{index:02X}. tape block type: Data (0x{tape_type:02X}). "
            f"Load: 0x{address:04X}, Count1: 0x{counter:02X}"
        )
        count = counter or 256
        if block.load_address + block.size != address:
            block = self._new_block(address, tape_type)
        if block.size + count > MAX_BLOCK_SIZE:
            raise PtpFormatError("Tape block chain exceeds 65535 bytes")
        block.data += reader.take(count)
        reader.byte()  # crc
        return count + 6


def load_payload(data: bytes, basic_run_address: int = 0, strict_basic_close: bool = True,
                 verbose=False) -> Payload:
    """Collect the blocks, name and run address of a .ptp image.

    With strict_basic_close a BASIC close record must follow BASIC code;
    otherwise it is only rejected when the file holds BASIC code at all.
    """
    reader = _PayloadReader(basic_run_address, strict_basic_close, print if verbose else None)
    return reader.read(data)