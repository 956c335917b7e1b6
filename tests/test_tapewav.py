import struct

import pytest

from primotape.loaders import LoaderImage
from primotape.tapewav import (
    HEADER_SIZE,
    TURBO_PROFILE,
    WavWriter,
    speed_report,
)


def decode_slow(stream, profile=TURBO_PROFILE):
    values = []
    bits = []
    i = 0
    while i < len(stream) and stream[i] == profile.pos_peak:
        high = 0
        while i < len(stream) and stream[i] == profile.pos_peak:
            high += 1
            i += 1
        low = 0
        while i < len(stream) and stream[i] == profile.neg_peak:
            low += 1
            i += 1
        assert high == low
        assert high in (profile.bit1_count, profile.bit0_count)
        bits.append(1 if high == profile.bit1_count else 0)
        if len(bits) == 8:
            value = 0
            for bit in bits:
                value = value << 1 | bit
            values.append(value)
            bits = []
    assert not bits
    return values


def split_records(values):
    records = []
    i = 0
    while i < len(values):
        assert values[i:i + 99] == [0xFF] * 96 + [0xD3] * 3
        i += 99
        kind = values[i]
        if kind == 0x83:
            size = 3 + values[i + 2] + 1
        elif kind == 0xF9:
            size = 5 + (values[i + 4] or 256) + 1
        else:
            size = 5
        records.append(values[i:i + size])
        i += size
    return records


def body(writer):
    return writer.getvalue()[HEADER_SIZE:]


def test_empty_writer_has_header_only():
    writer = WavWriter()
    assert len(writer) == HEADER_SIZE
    value = writer.getvalue()
    assert value[:4] == b"RIFF"
    assert value[8:16] == b"WAVEfmt "
    assert value[36:40] == b"data"


def test_header_fields_track_data():
    writer = WavWriter()
    writer.samples(0x80, 10)
    writer.silence(5)
    value = writer.getvalue()
    assert len(value) == len(writer)
    riff_size, = struct.unpack_from("<I", value, 4)
    data_size, = struct.unpack_from("<I", value, 40)
    rate, byte_rate = struct.unpack_from("<II", value, 24)
    assert riff_size == len(value)
    assert data_size == len(value) - HEADER_SIZE
    assert rate == byte_rate == TURBO_PROFILE.sample_rate
    assert body(writer) == bytes([0x80]) * 15


def test_slow_byte_returns_crc_and_encodes_bits():
    writer = WavWriter()
    assert writer.slow_byte(0x80, 0x90) == (0x80 + 0x90) & 0xFF
    samples = body(writer)
    p = TURBO_PROFILE
    assert samples[:p.bit1_count] == bytes([p.pos_peak]) * p.bit1_count
    assert decode_slow(samples) == [0x80]


def test_slow_bytes_round_trip():
    writer = WavWriter()
    data = bytes([0x00, 0xFF, 0xA5, 0x3C])
    crc = writer.slow_bytes(data, 7)
    assert crc == (7 + sum(data)) & 0xFF
    assert decode_slow(body(writer)) == list(data)


def test_slow_repeat():
    writer = WavWriter()
    writer.slow_repeat(0xAA, 4)
    assert decode_slow(body(writer)) == [0xAA] * 4


def test_run_block_crc():
    writer = WavWriter()
    writer.run_block(5, 0x1234)
    (record,) = split_records(decode_slow(body(writer)))
    assert record[:4] == [0xB9, 5, 0x34, 0x12]
    assert record[-1] == sum(record[1:-1]) & 0xFF


def test_data_block_full_size_counter_is_zero():
    writer = WavWriter()
    data = bytes(range(256))
    writer.data_block(1, 0x4400, data)
    (record,) = split_records(decode_slow(body(writer)))
    assert record[:5] == [0xF9, 1, 0x00, 0x44, 0]
    assert bytes(record[5:-1]) == data
    assert record[-1] == sum(record[1:-1]) & 0xFF


def test_data_block_rejects_bad_sizes():
    writer = WavWriter()
    with pytest.raises(ValueError):
        writer.data_block(1, 0x4400, b"")
    with pytest.raises(ValueError):
        writer.data_block(1, 0x4400, bytes(257))


def test_name_block():
    writer = WavWriter()
    writer.name_block("LOADER")
    (record,) = split_records(decode_slow(body(writer)))
    assert record[:3] == [0x83, 0, 6]
    assert bytes(record[3:-1]) == b"LOADER"
    assert record[-1] == sum(record[1:-1]) & 0xFF


def test_write_loader_splits_into_blocks():
    data = bytearray(i & 0xFF for i in range(300))
    loader = LoaderImage("x", 0x4010, 0x4000, data)
    writer = WavWriter()
    writer.write_loader(loader, "T")
    samples = body(writer)
    assert samples[:2000] == bytes([0x80]) * 2000
    values = decode_slow(samples[2000:])
    assert values[:512] == [0xAA] * 512
    records = split_records(values[512:])
    assert [r[0] for r in records] == [0x83, 0xF9, 0xF9, 0xB9]
    assert bytes(records[0][3:-1]) == b"T"
    assert records[1][:5] == [0xF9, 1, 0x00, 0x40, 0]
    assert bytes(records[1][5:-1]) == bytes(data[:256])
    assert records[2][:5] == [0xF9, 2, 0x00, 0x41, 44]
    assert bytes(records[2][5:-1]) == bytes(data[256:])
    assert records[3][:4] == [0xB9, 3, 0x10, 0x40]
    for record in records:
        assert record[-1] == sum(record[1:-1]) & 0xFF


def test_speed_report():
    lines = speed_report(2048, 54000, 27000, 54000).splitlines()
    assert lines[0] == "Full size is 2KB"
    assert lines[1] == "Full time is 1 seconds"
    numbers = [int(word) for word in lines[2].split() if word.isdigit()]
    assert numbers[1] == 2 * numbers[0]