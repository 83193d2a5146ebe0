import pytest

import builders
from pybindump import pe
from pybindump.errors import MalformedHeader, OutOfBounds, Truncated
from pybindump.pe import Pe

IMAGE_SCN_CNT_CODE = 0x00000020
IMAGE_SCN_MEM_EXECUTE = 0x20000000
IMAGE_SCN_MEM_READ = 0x40000000
TEXT_BYTES = b'\x48\x83\xec\x28\x31\xc0\x48\x83\xc4\x28\xc3'


def setup_pe_generic(data):
    return Pe(data)


def setup_hello_pe_data(**kwargs):
    return builders.pe(sections=[
        ('.text', IMAGE_SCN_CNT_CODE | IMAGE_SCN_MEM_EXECUTE | IMAGE_SCN_MEM_READ, TEXT_BYTES),
        ('.rdata', IMAGE_SCN_MEM_READ, b'hello\0'),
        ('.bss', pe.IMAGE_SCN_CNT_UNINITIALIZED_DATA, 0x200),
    ], **kwargs)


def setup_pe_amd64():
    return setup_pe_generic(setup_hello_pe_data())


def test_open_pe_amd64():
    obj = setup_pe_amd64()
    assert obj.is_valid()
    assert obj.is_64_bit()


def test_headers_amd64():
    obj = setup_pe_amd64()
    assert obj.e_lfanew == 0x40
    assert obj.machine == 0x8664
    assert obj.number_of_sections == 3
    assert obj.size_of_optional_header == 0xf0
    assert obj.optional_magic == pe.IMAGE_NT_OPTIONAL_HDR64_MAGIC
    assert obj.address_of_entry_point == 0x1000
    assert obj.image_base == 0x140000000


def test_pe32():
    obj = setup_pe_generic(setup_hello_pe_data(is_64=False, machine=0x14c, image_base=0x400000))
    assert not obj.is_64_bit()
    assert obj.optional_magic == pe.IMAGE_NT_OPTIONAL_HDR32_MAGIC
    assert obj.image_base == 0x400000
    assert obj.description() == '0x00000000: pe (IMAGE_FILE_MACHINE_I386)'


def test_sections_amd64():
    obj = setup_pe_amd64()
    assert [s.name for s in obj.sections] == ['.text', '.rdata', '.bss']
    assert [s.index for s in obj.sections] == [1, 2, 3]
    text = obj.get_section_by_name('.text')
    assert text.virtual_address == 0x1000
    assert text.size_of_raw_data == len(TEXT_BYTES)
    assert obj.get_section_by_name('.reloc') is None


def test_section_contents():
    obj = setup_pe_amd64()
    assert obj.get_section_by_name('.text').get_contents(obj) == TEXT_BYTES
    assert obj.get_section_by_name('.rdata').get_contents(obj) == b'hello\0'
    assert obj.get_section_by_name('.bss').get_contents(obj) == b''


def test_missing_pe_signature():
    with pytest.raises(MalformedHeader):
        setup_pe_generic(setup_hello_pe_data(signature=b'NE\0\0'))


def test_unknown_optional_magic():
    data = bytearray(setup_hello_pe_data())
    # optional header starts after the signature and the COFF header
    data[0x40 + 4 + 20] = 0x99
    with pytest.raises(MalformedHeader):
        setup_pe_generic(bytes(data))


def test_e_lfanew_out_of_bounds():
    data = bytearray(setup_hello_pe_data())
    data[0x3c:0x40] = b'\x00\x00\x01\x00'
    with pytest.raises(OutOfBounds):
        setup_pe_generic(bytes(data))


def test_truncated():
    data = setup_hello_pe_data()
    with pytest.raises(Truncated):
        setup_pe_generic(data[:0x20])
    # section table cut short
    with pytest.raises(Truncated):
        setup_pe_generic(data[:0x40 + 4 + 20 + 0xf0 + 50])


def test_render():
    text = str(setup_pe_amd64())
    lines = text.split('\n')
    assert lines[0] == 'PE Header'
    assert '       machine: 0x8664 IMAGE_FILE_MACHINE_AMD64' in lines
    assert '   opt. header: PE32+' in lines
    assert 'Sections:' in lines
    assert '.rdata' in text


def test_decode_entry_point():
    obj = pe.decode(setup_hello_pe_data())
    assert isinstance(obj, Pe)
    assert obj.description() == '0x00000000: pe (IMAGE_FILE_MACHINE_AMD64)'
