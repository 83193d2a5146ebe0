import logging

from .errors import MalformedHeader, Truncated
from .util import file_extract
from .util.file_extract import LITTLE, checked_slice

log = logging.getLogger(__name__)

DOS_MAGIC = b'MZ'
PE_SIGNATURE = b'PE\0\0'

DOS_HEADER_SIZE = 0x40
E_LFANEW_OFFSET = 0x3c

IMAGE_NT_OPTIONAL_HDR32_MAGIC = 0x10b
IMAGE_NT_OPTIONAL_HDR64_MAGIC = 0x20b
IMAGE_ROM_OPTIONAL_HDR_MAGIC = 0x107

IMAGE_SCN_CNT_UNINITIALIZED_DATA = 0x00000080

machine_names = {
    0x0000: 'IMAGE_FILE_MACHINE_UNKNOWN',
    0x014c: 'IMAGE_FILE_MACHINE_I386',
    0x01c0: 'IMAGE_FILE_MACHINE_ARM',
    0x01c4: 'IMAGE_FILE_MACHINE_ARMNT',
    0x0200: 'IMAGE_FILE_MACHINE_IA64',
    0x8664: 'IMAGE_FILE_MACHINE_AMD64',
    0xaa64: 'IMAGE_FILE_MACHINE_ARM64',
}

optional_magic_names = {
    IMAGE_NT_OPTIONAL_HDR32_MAGIC: 'PE32',
    IMAGE_NT_OPTIONAL_HDR64_MAGIC: 'PE32+',
    IMAGE_ROM_OPTIONAL_HDR_MAGIC: 'ROM',
}


class Pe(object):
    """A decoded PE file: DOS stub header, COFF header and section table."""

    class SectionHeader(object):

        def __init__(self, index=0):
            self.index = index
            self.name = ''
            self.virtual_size = 0
            self.virtual_address = 0
            self.size_of_raw_data = 0
            self.pointer_to_raw_data = 0
            self.pointer_to_relocations = 0
            self.pointer_to_linenumbers = 0
            self.number_of_relocations = 0
            self.number_of_linenumbers = 0
            self.characteristics = 0

        def unpack(self, data):
            self.name = data.get_fixed_length_c_string(8)
            (self.virtual_size, self.virtual_address, self.size_of_raw_data,
             self.pointer_to_raw_data, self.pointer_to_relocations,
             self.pointer_to_linenumbers) = data.get_n_uint32(6)
            self.number_of_relocations, self.number_of_linenumbers = data.get_n_uint16(2)
            self.characteristics = data.get_uint32()

        def get_contents(self, pe):
            if self.characteristics & IMAGE_SCN_CNT_UNINITIALIZED_DATA:
                return b''
            return bytes(checked_slice(pe.data, self.pointer_to_raw_data, self.size_of_raw_data,
                                       'section %s' % self.name))

        def __str__(self):
            return "[%3u] %-8s %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x" % (
                self.index, self.name, self.virtual_address, self.virtual_size,
                self.pointer_to_raw_data, self.size_of_raw_data, self.characteristics)

    def __init__(self, data=None, strict=False, file_off=0):
        self.data = None
        self.file_off = file_off
        self.e_lfanew = 0
        self.machine = 0
        self.number_of_sections = 0
        self.time_date_stamp = 0
        self.pointer_to_symbol_table = 0
        self.number_of_symbols = 0
        self.size_of_optional_header = 0
        self.characteristics = 0
        self.optional_magic = None
        self.address_of_entry_point = 0
        self.image_base = 0
        self.sections = list()
        if data is not None:
            self.unpack(data)

    def is_valid(self):
        return self.data is not None

    def is_64_bit(self):
        return self.optional_magic == IMAGE_NT_OPTIONAL_HDR64_MAGIC

    def unpack(self, data):
        extractor = file_extract.FileExtract(data, LITTLE, base=self.file_off)
        if len(extractor) < DOS_HEADER_SIZE:
            raise Truncated(self.file_off, DOS_HEADER_SIZE, len(extractor), 'DOS header')
        if bytes(extractor.read_size(2)) != DOS_MAGIC:
            raise MalformedHeader("missing DOS magic")
        extractor.seek(E_LFANEW_OFFSET)
        self.e_lfanew = extractor.get_uint32()

        nt = extractor.sub_extract(self.e_lfanew, len(extractor) - self.e_lfanew, 'NT headers')
        if bytes(nt.read_size(4)) != PE_SIGNATURE:
            raise MalformedHeader("missing PE signature at offset %#x" % self.e_lfanew)
        self.machine, self.number_of_sections = nt.get_n_uint16(2)
        self.time_date_stamp, self.pointer_to_symbol_table, self.number_of_symbols = nt.get_n_uint32(3)
        self.size_of_optional_header, self.characteristics = nt.get_n_uint16(2)

        optional_start = nt.tell()
        if self.size_of_optional_header >= 2:
            self.unpack_optional_header(nt.sub_extract(optional_start, self.size_of_optional_header,
                                                       'optional header'))
        nt.seek(optional_start + self.size_of_optional_header)
        for i in range(self.number_of_sections):
            section = Pe.SectionHeader(i + 1)
            section.unpack(nt)
            self.sections.append(section)
        self.data = extractor.data
        log.debug("Found %u PE sections", len(self.sections))

    def unpack_optional_header(self, data):
        self.optional_magic = data.get_uint16()
        if self.optional_magic not in optional_magic_names:
            raise MalformedHeader("unknown optional header magic %#x" % self.optional_magic)
        if self.optional_magic == IMAGE_ROM_OPTIONAL_HDR_MAGIC:
            return
        data.seek(16)
        self.address_of_entry_point = data.get_uint32()
        if self.is_64_bit():
            data.seek(24)
            self.image_base = data.get_uint64()
        else:
            data.seek(28)
            self.image_base = data.get_uint32()

    def description(self):
        return '%#8.8x: pe (%s)' % (self.file_off, machine_names.get(self.machine, '%#x' % self.machine))

    def get_section_by_name(self, name):
        for section in self.sections:
            if section.name == name:
                return section
        return None

    def __str__(self):
        lines = [
            "PE Header",
            "      e_lfanew: %#8.8x" % self.e_lfanew,
            "       machine: %#6.4x %s" % (self.machine, machine_names.get(self.machine, '???')),
            "      sections: %u" % self.number_of_sections,
            "     timestamp: %#8.8x" % self.time_date_stamp,
            "   opt. header: %s" % optional_magic_names.get(self.optional_magic, 'none'),
            "   entry point: %#8.8x" % self.address_of_entry_point,
            "    image base: %#x" % self.image_base,
            "characteristics: %#6.4x" % self.characteristics,
            "Sections:",
        ]
        for section in self.sections:
            lines.append('    ' + str(section))
        return '\n'.join(lines)


def decode(data, strict=False, file_off=0, depth=0):
    return Pe(data, strict=strict, file_off=file_off)
