import struct

import pytest

from primotape.loaders import turbo_loader
from primotape.payload import Payload, PayloadBlock
from primotape.pp2ptp import pp_to_ptp
from primotape.tapewav import HEADER_SIZE, TURBO_PROFILE, WavWriter
from primotape.turbo import (
    LoaderPlacementError,
    build_turbo_wav,
    check_payload_overlap,
    encode_payload,
    main,
    shift_loader,
)


def decode_turbo(stream, profile=TURBO_PROFILE):
    assert stream[:2] == bytes([profile.bottom]) * 2
    stream = stream[2:]
    assert len(stream) % 100 == 0
    values = []
    for offset in range(0, len(stream), 100):
        chunk = stream[offset:offset + 100]
        value = 0
        for bit in range(8):
            if chunk[bit * 12 + 6] == profile.top:
                value |= 1 << bit
        values.append(value)
    return values


def make_payload(blocks, run_address=0x5000, name="DEMO"):
    return Payload(name=name, run_address=run_address, blocks=blocks)


def encoded(payload, auto=False):
    writer = WavWriter()
    messages = encode_payload(writer, payload, auto)
    return decode_turbo(writer.getvalue()[HEADER_SIZE:]), messages


def test_check_payload_overlap():
    payload = make_payload([PayloadBlock(0xF9, 0x5000, bytearray(16))])
    check_payload_overlap(payload, 0x6000, 0x6100)
    with pytest.raises(LoaderPlacementError, match=r"\(1\)"):
        check_payload_overlap(payload, 0x4FF0, 0x5008)
    with pytest.raises(LoaderPlacementError, match=r"\(2\)"):
        check_payload_overlap(payload, 0x5008, 0x5100)
    with pytest.raises(LoaderPlacementError, match=r"\(3\)"):
        check_payload_overlap(payload, 0x5002, 0x5004)


def test_shift_loader_moves_above_payload():
    loader = turbo_loader()
    payload = make_payload([PayloadBlock(0xF9, 0x5000, bytearray(b"\x01\x02\x03"))])
    messages = shift_loader(loader, payload, 0x5003)
    assert messages[0] == "Run on A32"
    assert messages[1].startswith("Move loader from 0x4400 to 0x5003")
    assert loader.load_address == 0x5003
    assert loader.run_address - loader.load_address == 0x4448 - 0x4400
    assert loader.data[0x63] | loader.data[0x64] << 8 == 0x5003
    assert loader.data[0x49] | loader.data[0x4A] << 8 == 0x5003 + 0x136
    assert loader.data[0x105] | loader.data[0x106] << 8 == 0x5003 + 0x31


def test_shift_loader_stays_when_payload_is_low():
    loader = turbo_loader()
    original = bytes(loader.data)
    payload = make_payload([PayloadBlock(0xF9, 0x3000, bytearray(3))])
    messages = shift_loader(loader, payload, 0x3003)
    assert messages == ["Run on A32", "Loader stay on 0x4400 address"]
    assert loader.load_address == 0x4400
    assert bytes(loader.data) == original


def test_shift_loader_keeps_clear_of_own_code():
    loader = turbo_loader()
    end = loader.first_free
    payload = make_payload([PayloadBlock(0xF9, 0x3000, bytearray(3))])
    shift_loader(loader, payload, 0x4401)
    assert loader.load_address == end


def test_shift_loader_without_room():
    loader = turbo_loader()
    payload = make_payload([])
    with pytest.raises(LoaderPlacementError, match="Not enough room"):
        shift_loader(loader, payload, 0xF000)


def test_encode_single_block_with_run_address():
    payload = make_payload([PayloadBlock(0xF9, 0x5000, bytearray(b"\x01\x02\x03"))])
    values, messages = encoded(payload)
    assert values[:14] == [i * 3 for i in range(14)]
    assert values[16:] == [0, 0x00, 0x50, 3, 0, 1, 2, 3, 0, 0x00, 0x50]
    assert messages == ["Create turbo block (size=0x0003)"]


def test_encode_two_blocks_and_return_to_basic():
    blocks = [
        PayloadBlock(0xF5, 0x4000, bytearray(b"\xAA")),
        PayloadBlock(0xF9, 0x6000, bytearray(b"\xBB")),
    ]
    values, _ = encoded(make_payload(blocks, run_address=0))
    assert values[16:] == [1, 0x00, 0x40, 1, 0, 0xAA, 1, 0, 0x00, 0x60, 1, 0, 0xBB, 2]


def test_encode_basic_auto_run():
    payload = make_payload([PayloadBlock(0xF1, 0x43EA, bytearray(b"\x00"))])
    values, _ = encoded(payload, auto=True)
    assert values[-1] == 3
    values, _ = encoded(payload, auto=False)
    assert values[-3:] == [0, 0x00, 0x50]


def test_build_turbo_wav(capsys):
    payload = make_payload([PayloadBlock(0xF9, 0x5000, bytearray(b"\x01\x02\x03"))])
    image = build_turbo_wav(payload)
    assert image[:4] == b"RIFF"
    assert struct.unpack_from("<I", image, 40)[0] == len(image) - HEADER_SIZE
    out = capsys.readouterr().out
    assert "Move loader from 0x4400 to 0x5003" in out
    assert "Full size is 0KB" in out


def test_main_converts_ptp(tmp_path, capsys):
    ptp = pp_to_ptp(struct.pack("<HH", 0x5000, 0x5000) + b"\x01\x02\x03", "DEMO")
    source = tmp_path / "demo.ptp"
    target = tmp_path / "demo.wav"
    source.write_bytes(ptp)
    assert main(["-i", str(source), "-o", str(target)]) == 0
    image = target.read_bytes()
    assert image[:4] == b"RIFF"
    assert "Run on A32" in capsys.readouterr().out


def test_main_errors(tmp_path):
    assert main([]) == 1
    bad = tmp_path / "bad.ptp"
    bad.write_bytes(b"\x00\x00\x00")
    assert main(["-i", str(bad), "-o", str(tmp_path / "out.wav")]) == 1
    assert main(["-i", str(tmp_path / "missing.ptp"), "-o", str(tmp_path / "out.wav")]) == 4