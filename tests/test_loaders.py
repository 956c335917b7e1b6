from primotape.loaders import LoaderImage, turbo5_loader, turbo_loader


def test_turbo_loader_layout():
    loader = turbo_loader()
    assert loader.name == "wavloader"
    assert loader.run_address == 0x4448
    assert loader.load_address == 0x4400
    assert loader.size == 0x015D
    assert loader.first_free == 0x455D


def test_turbo5_loader_layout():
    loader = turbo5_loader()
    assert loader.run_address == 0x4450
    assert loader.load_address == 0x4400
    assert loader.size == 0x0133
    assert loader.first_free == 0x4533


def test_code_boundaries():
    for loader in (turbo_loader(), turbo5_loader()):
        assert loader.data[:4] == bytes([0x06, 0x80, 0x0E, 0x00])
        assert loader.data[-1] == 0xFF


def test_turbo_name_slot_is_blank():
    loader = turbo_loader()
    start = loader.size - 36
    assert loader.data[start:start + 16] == b" " * 16
    assert loader.data[start + 16:start + 16 + 16] == b"\ris turbo loading"[:16]


def test_turbo5_name_slot_is_blank():
    loader = turbo5_loader()
    assert loader.data[0x2D:0x2D + 16] == b" " * 16


def test_turbo_message_references():
    loader = turbo_loader()
    assert loader.data[0x63] | loader.data[0x64] << 8 == loader.load_address
    assert loader.data[0x49] | loader.data[0x4A] << 8 == loader.load_address + 0x136
    assert loader.data[0x105] | loader.data[0x106] << 8 == loader.load_address + 0x31


def test_turbo5_message_references():
    loader = turbo5_loader()
    assert loader.data[0x6B] | loader.data[0x6C] << 8 == loader.load_address
    assert loader.data[0x51] | loader.data[0x52] << 8 == loader.load_address + 0x2A
    assert loader.data[0x91] | loader.data[0x92] << 8 == loader.load_address + 0x1D


def test_each_call_returns_independent_copy():
    first = turbo_loader()
    first.data[0] = 0
    first.load_address = 0x8000
    second = turbo_loader()
    assert second.data[0] == 0x06
    assert second.load_address == 0x4400


def test_loader_image_properties():
    image = LoaderImage("x", 1, 0x100, bytearray(b"abc"))
    assert image.size == 3
    assert image.first_free == 0x103