import struct

import pytest

import builders
from pybindump import elf
from pybindump.elf import Elf
from pybindump.errors import MalformedHeader, OutOfBounds, Truncated

TEXT_BYTES = b'\x55\x48\x89\xe5\x31\xc0\x5d\xc3'
SHT_PROGBITS = 1
SHT_NOBITS = 8


def setup_elf_generic(data):
    elf = Elf(data)
    return elf


def setup_hello_elf_data(is_64=True, endian='<', **kwargs):
    return builders.elf(is_64=is_64, endian=endian, sections=[
        ('.text', SHT_PROGBITS, TEXT_BYTES),
        ('.data', SHT_PROGBITS, b'hello\0'),
        ('.bss', SHT_NOBITS, 0x40),
    ], **kwargs)


def setup_elf_x86_64():
    return setup_elf_generic(setup_hello_elf_data())


def setup_sections_x86_64():
    elf = setup_elf_x86_64()
    sections = elf.get_section_headers()
    return sections


def setup_get_sect_num_x86_64(sect_num):
    return setup_sections_x86_64()[sect_num]


def test_open_elf_x86_64():
    elf = setup_elf_x86_64()
    assert elf.is_valid()
    assert elf.is_64_bit()


def test_header_x86_64():
    elf = setup_elf_x86_64()
    assert elf.e_machine == 0x3e
    assert elf.e_type == 2
    assert elf.e_entry == 0x401000
    assert elf.e_shnum == 5
    assert elf.e_shstrndx == 4


def test_num_sections_x86_64():
    assert len(setup_sections_x86_64()) == 5


def test_section_names_x86_64():
    names = [sh.name for sh in setup_sections_x86_64()]
    assert names == ['', '.text', '.data', '.bss', '.shstrtab']


def test_sect_text_x86_64():
    text = setup_get_sect_num_x86_64(1)
    assert text.index == 1
    assert text.sh_type == SHT_PROGBITS
    assert text.sh_offset == 64
    assert text.sh_size == len(TEXT_BYTES)


def test_section_contents():
    elf = setup_elf_x86_64()
    assert elf.get_section_by_name('.text').get_contents(elf) == TEXT_BYTES
    assert elf.get_section_by_name('.data').get_contents(elf) == b'hello\0'
    assert elf.get_section_by_name('.bss').get_contents(elf) == b''
    assert elf.get_section_by_name('.rodata') is None


def test_32_bit_big_endian():
    elf = setup_elf_generic(setup_hello_elf_data(is_64=False, endian='>', e_machine=0x14))
    assert not elf.is_64_bit()
    assert elf.get_byte_order() == '>'
    assert [sh.name for sh in elf.get_section_headers()] == ['', '.text', '.data', '.bss', '.shstrtab']
    assert elf.get_section_by_name('.text').get_contents(elf) == TEXT_BYTES
    assert 'EM_PPC' in str(elf)


def test_unknown_class():
    with pytest.raises(MalformedHeader):
        setup_elf_generic(setup_hello_elf_data(elf_class=3))


def test_unknown_data_encoding():
    with pytest.raises(MalformedHeader):
        setup_elf_generic(setup_hello_elf_data(elf_data=0))


def test_bad_magic():
    with pytest.raises(MalformedHeader):
        setup_elf_generic(b'\x7fELG' + bytes(60))


def test_truncated_header():
    data = setup_hello_elf_data()
    for k in (3, 8, 20, 63):
        with pytest.raises(Truncated):
            setup_elf_generic(data[:k])


def test_section_table_out_of_bounds():
    data = setup_hello_elf_data()
    with pytest.raises(OutOfBounds):
        setup_elf_generic(data[:-1])


def test_section_entry_size_too_small():
    data = bytearray(setup_hello_elf_data())
    # e_shentsize lives at offset 58 of a 64-bit header
    struct.pack_into('<H', data, 58, 32)
    with pytest.raises(MalformedHeader):
        setup_elf_generic(bytes(data))


def test_render():
    text = str(setup_elf_x86_64())
    lines = text.split('\n')
    assert lines[0] == 'ELF Header'
    assert '      class: ELFCLASS64' in lines
    assert '    machine: 0x003e EM_X86_64' in lines
    assert 'Section Headers:' in lines
    assert '.text' in text
    assert 'SHT_NOBITS' in text


def test_description():
    assert setup_elf_x86_64().description() == '0x00000000: elf (EM_X86_64)'


def test_decode_entry_point():
    obj = elf.decode(setup_hello_elf_data(), file_off=0x40)
    assert isinstance(obj, Elf)
    assert obj.description() == '0x00000040: elf (EM_X86_64)'
