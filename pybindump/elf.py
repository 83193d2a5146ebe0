import logging

from .errors import MalformedHeader
from .util import file_extract
from .util.file_extract import BIG, LITTLE, checked_slice, read_c_string

log = logging.getLogger(__name__)

ELF_MAGIC = b'\x7fELF'

# e_ident[EI_CLASS]
ELFCLASS32  = 1
ELFCLASS64  = 2

# e_ident[EI_DATA]
ELFDATA2LSB = 1
ELFDATA2MSB = 2

SHN_UNDEF   = 0
SHT_NOBITS  = 8

SHDR_SIZE_32 = 40
SHDR_SIZE_64 = 64

e_type_names = {
    0: 'ET_NONE',
    1: 'ET_REL',
    2: 'ET_EXEC',
    3: 'ET_DYN',
    4: 'ET_CORE',
}

e_machine_names = {
    0x00: 'EM_NONE',
    0x02: 'EM_SPARC',
    0x03: 'EM_386',
    0x08: 'EM_MIPS',
    0x14: 'EM_PPC',
    0x15: 'EM_PPC64',
    0x28: 'EM_ARM',
    0x2b: 'EM_SPARCV9',
    0x32: 'EM_IA_64',
    0x3e: 'EM_X86_64',
    0xb7: 'EM_AARCH64',
    0xf3: 'EM_RISCV',
}

sh_type_names = {
    0: 'SHT_NULL',
    1: 'SHT_PROGBITS',
    2: 'SHT_SYMTAB',
    3: 'SHT_STRTAB',
    4: 'SHT_RELA',
    5: 'SHT_HASH',
    6: 'SHT_DYNAMIC',
    7: 'SHT_NOTE',
    8: 'SHT_NOBITS',
    9: 'SHT_REL',
    11: 'SHT_DYNSYM',
    14: 'SHT_INIT_ARRAY',
    15: 'SHT_FINI_ARRAY',
}


def _name(table, value):
    return table.get(value, '%#x' % value)


class Elf(object):
    """A decoded ELF file: identification, file header and section headers."""

    class SectionHeader(object):

        def __init__(self, index=0):
            self.index = index
            self.name = ''
            self.sh_name = 0
            self.sh_type = 0
            self.sh_flags = 0
            self.sh_addr = 0
            self.sh_offset = 0
            self.sh_size = 0
            self.sh_link = 0
            self.sh_info = 0
            self.sh_addralign = 0
            self.sh_entsize = 0

        def unpack(self, data):
            self.sh_name, self.sh_type = data.get_n_uint32(2)
            self.sh_flags, self.sh_addr, self.sh_offset, self.sh_size = data.get_n_address(4)
            self.sh_link, self.sh_info = data.get_n_uint32(2)
            self.sh_addralign, self.sh_entsize = data.get_n_address(2)

        def get_contents(self, elf):
            if self.sh_type == SHT_NOBITS:
                return b''
            return bytes(checked_slice(elf.data, self.sh_offset, self.sh_size, 'section %s' % self.name))

        def __str__(self):
            return "[%3u] %-20s %-14s %#16.16x %#8.8x %#8.8x" % (
                self.index, self.name, _name(sh_type_names, self.sh_type),
                self.sh_addr, self.sh_offset, self.sh_size)

    def __init__(self, data=None, strict=False, file_off=0):
        self.data = None
        self.file_off = file_off
        self.elf_class = 0
        self.elf_data = 0
        self.ei_version = 0
        self.ei_osabi = 0
        self.e_type = 0
        self.e_machine = 0
        self.e_version = 0
        self.e_entry = 0
        self.e_phoff = 0
        self.e_shoff = 0
        self.e_flags = 0
        self.e_ehsize = 0
        self.e_phentsize = 0
        self.e_phnum = 0
        self.e_shentsize = 0
        self.e_shnum = 0
        self.e_shstrndx = 0
        self.section_headers = list()
        if data is not None:
            self.unpack(data)

    def is_valid(self):
        return self.data is not None

    def is_64_bit(self):
        return self.elf_class == ELFCLASS64

    def get_byte_order(self):
        if self.elf_data == ELFDATA2MSB:
            return BIG
        return LITTLE

    def unpack(self, data):
        extractor = file_extract.FileExtract(data, LITTLE, base=self.file_off)
        if bytes(extractor.read_size(4)) != ELF_MAGIC:
            raise MalformedHeader("missing ELF magic")
        self.elf_class, self.elf_data, self.ei_version, self.ei_osabi = bytes(extractor.read_size(4))
        if self.elf_class not in (ELFCLASS32, ELFCLASS64):
            raise MalformedHeader("unknown ELF class %u" % self.elf_class)
        if self.elf_data not in (ELFDATA2LSB, ELFDATA2MSB):
            raise MalformedHeader("unknown ELF data encoding %u" % self.elf_data)
        extractor.seek(16)
        extractor.set_byte_order(self.get_byte_order())
        extractor.set_addr_size(8 if self.is_64_bit() else 4)

        self.e_type, self.e_machine = extractor.get_n_uint16(2)
        self.e_version = extractor.get_uint32()
        self.e_entry, self.e_phoff, self.e_shoff = extractor.get_n_address(3)
        self.e_flags = extractor.get_uint32()
        (self.e_ehsize, self.e_phentsize, self.e_phnum,
         self.e_shentsize, self.e_shnum, self.e_shstrndx) = extractor.get_n_uint16(6)
        self.data = extractor.data
        self.unpack_section_headers(extractor)

    def unpack_section_headers(self, extractor):
        if self.e_shnum == 0:
            return
        shdr_size = SHDR_SIZE_64 if self.is_64_bit() else SHDR_SIZE_32
        if self.e_shentsize < shdr_size:
            raise MalformedHeader("e_shentsize %u is smaller than a section header (%u)" % (
                self.e_shentsize, shdr_size))
        table = extractor.sub_extract(self.e_shoff, self.e_shnum * self.e_shentsize,
                                      'section header table')
        for i in range(self.e_shnum):
            table.seek(i * self.e_shentsize)
            sh = Elf.SectionHeader(i)
            sh.unpack(table)
            self.section_headers.append(sh)

        if self.e_shstrndx != SHN_UNDEF and self.e_shstrndx < self.e_shnum:
            shstrtab = self.section_headers[self.e_shstrndx]
            strtab = checked_slice(self.data, shstrtab.sh_offset, shstrtab.sh_size,
                                   'section name table')
            for sh in self.section_headers:
                if sh.sh_name == 0 and len(strtab) == 0:
                    continue
                sh.name = read_c_string(strtab, sh.sh_name)
        log.debug("Found %u ELF section headers", len(self.section_headers))

    def description(self):
        return '%#8.8x: elf (%s)' % (self.file_off, _name(e_machine_names, self.e_machine))

    def get_section_headers(self):
        return self.section_headers

    def get_section_by_name(self, name):
        for sh in self.section_headers:
            if sh.name == name:
                return sh
        return None

    def __str__(self):
        lines = [
            "ELF Header",
            "      class: %s" % ('ELFCLASS64' if self.is_64_bit() else 'ELFCLASS32'),
            "       data: %s" % ('ELFDATA2MSB' if self.elf_data == ELFDATA2MSB else 'ELFDATA2LSB'),
            "      osabi: %u" % self.ei_osabi,
            "       type: %#6.4x %s" % (self.e_type, _name(e_type_names, self.e_type)),
            "    machine: %#6.4x %s" % (self.e_machine, _name(e_machine_names, self.e_machine)),
            "      entry: %#x" % self.e_entry,
            "      phoff: %#x" % self.e_phoff,
            "      shoff: %#x" % self.e_shoff,
            "      flags: %#8.8x" % self.e_flags,
            "      phnum: %u" % self.e_phnum,
            "      shnum: %u" % self.e_shnum,
            "   shstrndx: %u" % self.e_shstrndx,
            "Section Headers:",
        ]
        for sh in self.section_headers:
            lines.append('    ' + str(sh))
        return '\n'.join(lines)


def decode(data, strict=False, file_off=0, depth=0):
    return Elf(data, strict=strict, file_off=file_off)
