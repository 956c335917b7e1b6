"""Convert a Primo .ptp file into a turbo-loading WAV file."""

from __future__ import annotations

import getopt
import sys
from pathlib import Path

from .loaders import LoaderImage, turbo_loader
from .payload import SCREEN_RECORD, Payload, PayloadBlock, load_payload
from .ptp2c import PtpFormatError
from .tapewav import HEADER_SIZE, TURBO_PROFILE, WavWriter, speed_report

VERSION = "0.1b"
TICK = 2
NAME_OFFSET_FROM_END = 36
LOADER_TITLE = "Turbo loader"
PAYLOAD_GAP = 20000

RUN_ADDRESS = 0
NEXT_BLOCK = 1
RETURN_TO_BASIC = 2
BASIC_RUN = 3


class LoaderPlacementError(ValueError):
    """The turbo loader cannot be placed in memory next to the payload."""


def check_payload_overlap(payload: Payload, first: int, last: int) -> None:
    """Raise if any payload block touches the memory range first..last."""
    for block in payload.blocks:
        start = block.load_address & 0xFFFF
        end = (start + block.size - 1) & 0xFFFF
        if first <= start <= last:
            raise LoaderPlacementError("Turbo loader error: payload content in loader memory (1)")
        if first <= end <= last:
            raise LoaderPlacementError("Turbo loader error: payload content in loader memory (2)")
        if start <= first and end >= last:
            raise LoaderPlacementError("Turbo loader error: payload content in loader memory (3)")


def _machine_report(last_loader_address: int) -> str:
    if last_loader_address <= 0x67A0:
        return "Run on A32"
    if last_loader_address <= 0xA7A0:
        return "Run on A48"
    if last_loader_address <= 0xE7A0:
        return "Run on A64"
    raise LoaderPlacementError("Turbo loading not possible. (Not enough room on top of payload.):(")


def _put_word(data: bytearray, offset: int, value: int) -> None:
    data[offset] = value & 0xFF
    data[offset + 1] = (value >> 8) & 0xFF


def shift_loader(loader: LoaderImage, payload: Payload, first_free: int) -> list[str]:
    """Move the loader above the payload when needed; return the messages to show."""
    first_free &= 0xFFFF
    last_loader_address = (first_free + loader.size) & 0xFFFF
    messages = [_machine_report(last_loader_address)]
    if first_free > loader.load_address:
        if first_free - loader.load_address < loader.size:
            first_free = (loader.load_address + loader.size) & 0xFFFF
        shift = (loader.load_address - first_free) & 0xFFFF
        check_payload_overlap(payload, first_free, last_loader_address)
        messages.append(
            f"Move loader from 0x{loader.load_address:04X} to 0x{first_free:04X} with 0x{shift:04X}"
        )
        loader.load_address = (loader.load_address - shift) & 0xFFFF
        loader.run_address = (loader.run_address - shift) & 0xFFFF
        _put_word(loader.data, 0x63, first_free)
        _put_word(loader.data, 0x49, first_free + 0x136)
        _put_word(loader.data, 0x105, first_free + 0x31)
    else:
        messages.append(f"Loader stay on 0x{loader.load_address:04X} address")
    return messages


def _turbo_byte(writer: WavWriter, value: int) -> None:
    top = writer.profile.top
    bottom = writer.profile.bottom
    value &= 0xFF
    for bit in range(8):
        writer.samples(top, 2 * TICK)
        if value >> bit & 1:
            writer.samples(bottom, TICK)
            writer.samples(top, 2 * TICK)
        else:
            writer.samples(bottom, 2 * TICK)
            writer.samples(top, TICK)
        writer.samples(bottom, TICK)
    writer.samples(top, 2 * TICK)


def _turbo_word(writer: WavWriter, value: int) -> None:
    _turbo_byte(writer, value & 0xFF)
    _turbo_byte(writer, (value >> 8) & 0xFF)


def _turbo_header(writer: WavWriter) -> None:
    writer.samples(writer.profile.bottom, TICK)
    checksum = 0
    for i in range(14):
        value = i * 3
        checksum = (checksum + value * 0x101) & 0xFFFF
        _turbo_byte(writer, value)
    _turbo_word(writer, checksum)


def _block_header(writer: WavWriter, block: PayloadBlock) -> str:
    _turbo_byte(writer, 1 if block.type == SCREEN_RECORD else 0)
    _turbo_word(writer, block.load_address)
    _turbo_word(writer, block.size)
    writer.samples(writer.profile.top, block.size // 1200 * TICK)
    return f"Create turbo block (size=0x{block.size:04X})"


def _selector(writer: WavWriter, payload: Payload, last: bool, auto_basic_run: bool) -> None:
    if not last:
        _turbo_byte(writer, NEXT_BLOCK)
    elif auto_basic_run and payload.basic_block_count:
        _turbo_byte(writer, BASIC_RUN)
    elif payload.run_address:
        _turbo_byte(writer, RUN_ADDRESS)
        _turbo_word(writer, payload.run_address)
    else:
        _turbo_byte(writer, RETURN_TO_BASIC)


def encode_payload(writer: WavWriter, payload: Payload, auto_basic_run: bool = False) -> list[str]:
    """Write the payload in turbo format; return the messages to show."""
    _turbo_header(writer)
    messages = []
    count = len(payload.blocks)
    for number, block in enumerate(payload.blocks, start=1):
        messages.append(_block_header(writer, block))
        for value in block.data:
            _turbo_byte(writer, value)
        _selector(writer, payload, number == count, auto_basic_run)
    return messages


def build_turbo_wav(payload: Payload, auto_basic_run: bool = False) -> bytes:
    """Build the WAV file: the loader in ROM format followed by the turbo payload."""
    loader = turbo_loader()
    for message in shift_loader(loader, payload, payload.max_address + 1):
        print(message)
    name = payload.name.encode("latin-1", "replace")[:16]
    offset = loader.size - NAME_OFFSET_FROM_END
    loader.data[offset:offset + len(name)] = name
    writer = WavWriter(TURBO_PROFILE)
    writer.write_loader(loader, LOADER_TITLE)
    writer.silence(PAYLOAD_GAP)
    payload_start = len(writer)
    for message in encode_payload(writer, payload, auto_basic_run):
        print(message)
    image = writer.getvalue()
    print(speed_report(payload.full_size, len(image) - HEADER_SIZE, len(image) - payload_start,
                       TURBO_PROFILE.sample_rate))
    return image


def _usage() -> int:
    print(f"ptp2turbo v{VERSION}")
    print("Convert .ptp file to turbo wav file.")
    print("Usage:")
    print("ptp2turbo -i <ptp_filename> -o <wav_filename>")
    print("-a      : BASIC auto RUN command after load.")
    print("-v      : Verbose mode.")
    return 1


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        options, _ = getopt.getopt(args, "va?hi:o:")
    except getopt.GetoptError:
        return _usage()
    verbose = False
    auto_basic_run = False
    source = target = None
    for option, value in options:
        if option in ("-?", "-h"):
            return _usage()
        if option == "-v":
            verbose = True
        elif option == "-a":
            auto_basic_run = True
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
        payload = load_payload(data, 0, True, verbose)
        image = build_turbo_wav(payload, auto_basic_run)
    except (PtpFormatError, LoaderPlacementError) as exc:
        print(exc, file=sys.stderr)
        return 1
    try:
        Path(target).write_bytes(image)
    except OSError:
        print(f"Error creating {target}.", file=sys.stderr)
        return 4
    return 0