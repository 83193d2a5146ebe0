import pytest

import builders
import pybindump
from pybindump import binary
from pybindump.elf import Elf
from pybindump.errors import DecodeError, MalformedHeader, Truncated, UnknownMagic
from pybindump.mach_o import Mach
from pybindump.pe import Pe


def test_identify_magics():
    cases = [
        (builders.fat([]), 'universal'),
        (builders.macho(is_64=False, endian='>'), 'mach-o'),
        (builders.macho(endian='>'), 'mach-o'),
        (builders.macho(), 'mach-o'),
        (builders.macho(is_64=False), 'mach-o'),
        (builders.pe(), 'pe'),
        (builders.elf(), 'elf'),
    ]
    for data, name in cases:
        assert binary.identify(data).name == name


def test_decode_dispatches_to_format():
    assert isinstance(binary.decode(builders.macho()), Mach)
    assert isinstance(binary.decode(builders.elf()), Elf)
    assert isinstance(binary.decode(builders.pe()), Pe)


def test_decode_short_buffer():
    for data in (b'', b'\xca', b'\xca\xfe\xba'):
        with pytest.raises(Truncated) as excinfo:
            binary.decode(data)
        assert excinfo.value.needed == 4
        assert excinfo.value.available == len(data)


def test_decode_unknown_magic():
    with pytest.raises(UnknownMagic) as excinfo:
        binary.decode(b'ABCDEFGH')
    assert excinfo.value.magic == b'ABCD'


def test_decode_unsupported_universal_variants():
    # byte swapped and 64-bit universal headers are not decoded
    for magic in (b'\xbe\xba\xfe\xca', b'\xca\xfe\xba\xbf'):
        with pytest.raises(UnknownMagic):
            binary.decode(magic + bytes(28))


def test_decode_accepts_memoryview_and_bytearray():
    data = builders.macho([builders.uuid_command()])
    assert len(binary.decode(memoryview(data)).load_commands) == 1
    assert len(binary.decode(bytearray(data)).load_commands) == 1


def test_register_format(monkeypatch):
    monkeypatch.setattr(binary, 'formats', list(binary.formats))
    decoded = []

    def decode_widget(data, strict=False, file_off=0, depth=0):
        decoded.append((bytes(data), strict, file_off, depth))
        return 'widget'

    fmt = binary.register_format('widget', b'WDGT', decode_widget)
    assert fmt in binary.formats
    assert binary.decode(b'WDGT\x01', strict=True) == 'widget'
    assert decoded == [(b'WDGT\x01', True, 0, 0)]


def test_nesting_depth_limit():
    with pytest.raises(MalformedHeader):
        binary.decode(builders.macho(), depth=binary.MAX_NESTING_DEPTH + 1)
    assert binary.decode(builders.macho(), depth=binary.MAX_NESTING_DEPTH).is_valid()


def test_self_referencing_universal():
    # A single arch entry that covers the whole file, universal header included
    data = builders.fat_entries([(builders.CPU_TYPE_X86_64, 3, 0, 28, 0)])
    with pytest.raises(MalformedHeader):
        binary.decode(data)


def test_universal_slice_routes_through_registry():
    data = builders.fat([(builders.CPU_TYPE_X86_64, 3, 0, builders.elf())])
    macho = binary.decode(data)
    assert isinstance(macho.archs[0].object, Elf)
    assert macho.archs[0].object.file_off == 28


def test_load(tmp_path):
    path = tmp_path / 'hello'
    path.write_bytes(builders.macho([builders.uuid_command()]))
    macho = binary.load(str(path))
    assert macho.is_skinny()
    assert pybindump.load(str(path)).description() == macho.description()


def test_load_strict(tmp_path):
    path = tmp_path / 'mismatch'
    path.write_bytes(builders.macho([builders.uuid_command()], sizeofcmds=4))
    assert len(binary.load(str(path)).warnings) == 1
    with pytest.raises(DecodeError):
        binary.load(str(path), strict=True)


def test_load_missing_file(tmp_path):
    with pytest.raises(OSError):
        binary.load(str(tmp_path / 'missing'))
