"""Build 8-bit mono WAV images of Primo tape signals."""

from __future__ import annotations

import struct
from dataclasses import dataclass

HEADER_SIZE = 44
SYNC_BYTE = 0xFF
SYNC_COUNT = 96
BLOCK_MARK = 0xD3
BLOCK_MARK_COUNT = 3
LEADER_BYTE = 0xAA
LEADER_COUNT = 512
LEADER_SILENCE = 2000

NAME_RECORD = 0x83
DATA_RECORD = 0xF9
RUN_RECORD = 0xB9


@dataclass(frozen=True)
class WavProfile:
    """Sample rate, signal levels and bit lengths of one tape signal flavour."""

    sample_rate: int
    pos_peak: int
    neg_peak: int
    bit1_count: int
    bit0_count: int
    silence_level: int = 0x80

    @property
    def top(self) -> int:
        """Level of the high half of a turbo pulse."""
        return self.neg_peak

    @property
    def bottom(self) -> int:
        """Level of the low half of a turbo pulse."""
        return self.pos_peak


TURBO_PROFILE = WavProfile(sample_rate=54000, pos_peak=0xFF, neg_peak=0x00, bit1_count=12, bit0_count=36)
TURBO5_PROFILE = WavProfile(sample_rate=62000, pos_peak=0xF8, neg_peak=0x08, bit1_count=13, bit0_count=39)


class WavWriter:
    """Collects the samples of a WAV file and renders it with its header."""

    def __init__(self, profile: WavProfile = TURBO_PROFILE) -> None:
        self.profile = profile
        self._data = bytearray()
        self._bits = {
            True: bytes([profile.pos_peak]) * profile.bit1_count + bytes([profile.neg_peak]) * profile.bit1_count,
            False: bytes([profile.pos_peak]) * profile.bit0_count + bytes([profile.neg_peak]) * profile.bit0_count,
        }

    def __len__(self) -> int:
        """Size of the file written so far, header included."""
        return HEADER_SIZE + len(self._data)

    def samples(self, value: int, count: int) -> None:
        """Append count samples of the given level."""
        if count > 0:
            self._data += bytes([value & 0xFF]) * count

    def silence(self, count: int) -> None:
        """Append count samples of silence."""
        self.samples(self.profile.silence_level, count)

    def slow_byte(self, value: int, crc: int = 0) -> int:
        """Write one byte in the ROM loader's format, most significant bit first; return the updated crc."""
        value &= 0xFF
        for shift in range(7, -1, -1):
            self._data += self._bits[bool(value >> shift & 1)]
        return (crc + value) & 0xFF

    def slow_bytes(self, data: bytes, crc: int = 0) -> int:
        """Write bytes in the ROM loader's format; return the updated crc."""
        for value in data:
            crc = self.slow_byte(value, crc)
        return crc

    def slow_repeat(self, value: int, count: int) -> None:
        """Write the same byte count times."""
        for _ in range(count):
            self.slow_byte(value)

    def _block_header(self) -> None:
        self.slow_repeat(SYNC_BYTE, SYNC_COUNT)
        self.slow_repeat(BLOCK_MARK, BLOCK_MARK_COUNT)

    def name_block(self, name) -> None:
        """Write a program name record."""
        raw = name.encode("latin-1", "replace") if isinstance(name, str) else bytes(name)
        raw = raw[:255]
        self._block_header()
        self.slow_byte(NAME_RECORD)
        crc = self.slow_byte(0, 0)
        crc = self.slow_byte(len(raw), crc)
        crc = self.slow_bytes(raw, crc)
        self.slow_byte(crc)

    def data_block(self, block_index: int, load_address: int, data: bytes) -> None:
        """Write a machine code record of 1 to 256 bytes."""
        data = bytes(data)
        if not 1 <= len(data) <= 256:
            raise ValueError(f"data record must hold 1 to 256 bytes, not {len(data)}")
        load_address &= 0xFFFF
        self._block_header()
        self.slow_byte(DATA_RECORD)
        crc = self.slow_byte(block_index, 0)
        crc = self.slow_byte(load_address & 0xFF, crc)
        crc = self.slow_byte(load_address >> 8, crc)
        crc = self.slow_byte(len(data) & 0xFF, crc)
        crc = self.slow_bytes(data, crc)
        self.slow_byte(crc)

    def run_block(self, block_index: int, run_address: int) -> None:
        """Write the closing record with the autostart address."""
        run_address &= 0xFFFF
        self._block_header()
        self.slow_byte(RUN_RECORD)
        crc = self.slow_byte(block_index, 0)
        crc = self.slow_byte(run_address & 0xFF, crc)
        crc = self.slow_byte(run_address >> 8, crc)
        self.slow_byte(crc)

    def write_loader(self, loader, title: str) -> None:
        """Write a loader program so that the ROM LOAD command can read it."""
        self.silence(LEADER_SILENCE)
        self.slow_repeat(LEADER_BYTE, LEADER_COUNT)
        self.name_block(title)
        data = bytes(loader.data)
        block_index = 1
        for offset in range(0, len(data), 256):
            chunk = data[offset:offset + 256]
            self.data_block(block_index & 0xFF, loader.load_address + offset, chunk)
            block_index += 1
            if offset + 256 >= len(data):
                self.run_block(block_index & 0xFF, loader.run_address)
                block_index += 1

    def getvalue(self) -> bytes:
        """The whole WAV file with its sizes filled in."""
        total = len(self) & 0xFFFFFFFF
        rate = self.profile.sample_rate
        header = struct.pack(
            "<4sI4s4sIHHIIHH4sI",
            b"RIFF", total, b"WAVE", b"fmt ", 16, 1, 1, rate, rate, 1, 8, b"data", len(self._data),
        )
        return header + bytes(self._data)


def speed_report(full_size: int, data_size: int, payload_wav_size: int, sample_rate: int) -> str:
    """Summary of the payload size, playing time and effective speeds."""
    speed = full_size * 8 * sample_rate // data_size if data_size else 0
    turbo_speed = full_size * 8 * sample_rate // payload_wav_size if payload_wav_size else 0
    return "\n".join((
        f"Full size is {full_size // 1024}KB",
        f"Full time is {data_size // sample_rate} seconds",
        f"Speed is {speed} baud (turbo speed - without original slow loader - is {turbo_speed} baud)",
    ))