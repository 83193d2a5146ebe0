import logging
import struct
from enum import IntEnum

from .errors import (
    ArchOutOfBounds,
    StructuralMismatch,
    Truncated,
    TruncatedLoadCommand,
    UnknownCpuType,
    UnknownFileType,
    UnknownLoadCommandTag,
    UnknownMagic,
)
from .util import file_extract
from .util.file_extract import BIG, LITTLE, checked_slice

log = logging.getLogger(__name__)

# Mach header "magic" constants, as read big endian from the first 4 bytes
MH_MAGIC                    = 0xfeedface
MH_CIGAM                    = 0xcefaedfe
MH_MAGIC_64                 = 0xfeedfacf
MH_CIGAM_64                 = 0xcffaedfe
FAT_MAGIC                   = 0xcafebabe

# Mach header "filetype" constants
MH_OBJECT                   = 0x00000001
MH_EXECUTE                  = 0x00000002
MH_FVMLIB                   = 0x00000003
MH_CORE                     = 0x00000004
MH_PRELOAD                  = 0x00000005
MH_DYLIB                    = 0x00000006
MH_DYLINKER                 = 0x00000007
MH_BUNDLE                   = 0x00000008
MH_DYLIB_STUB               = 0x00000009
MH_DSYM                     = 0x0000000a
MH_KEXT_BUNDLE              = 0x0000000b
MH_FILESET                  = 0x0000000c
MH_GPU_EXECUTE              = 0x0000000d
MH_GPU_DYLIB                = 0x0000000e

# Mach header "flag" constant bits
MH_NOUNDEFS                 = 0x00000001
MH_INCRLINK                 = 0x00000002
MH_DYLDLINK                 = 0x00000004
MH_BINDATLOAD               = 0x00000008
MH_PREBOUND                 = 0x00000010
MH_SPLIT_SEGS               = 0x00000020
MH_LAZY_INIT                = 0x00000040
MH_TWOLEVEL                 = 0x00000080
MH_FORCE_FLAT               = 0x00000100
MH_NOMULTIDEFS              = 0x00000200
MH_NOFIXPREBINDING          = 0x00000400
MH_PREBINDABLE              = 0x00000800
MH_ALLMODSBOUND             = 0x00001000
MH_SUBSECTIONS_VIA_SYMBOLS  = 0x00002000
MH_CANONICAL                = 0x00004000
MH_WEAK_DEFINES             = 0x00008000
MH_BINDS_TO_WEAK            = 0x00010000
MH_ALLOW_STACK_EXECUTION    = 0x00020000
MH_ROOT_SAFE                = 0x00040000
MH_SETUID_SAFE              = 0x00080000
MH_NO_REEXPORTED_DYLIBS     = 0x00100000
MH_PIE                      = 0x00200000
MH_DEAD_STRIPPABLE_DYLIB    = 0x00400000
MH_HAS_TLV_DESCRIPTORS      = 0x00800000
MH_NO_HEAP_EXECUTION        = 0x01000000
MH_APP_EXTENSION_SAFE       = 0x02000000
MH_NLIST_OUTOFSYNC_WITH_DYLDINFO = 0x04000000
MH_SIM_SUPPORT              = 0x08000000
MH_DYLIB_IN_CACHE           = 0x80000000

# Mach load command constants
LC_REQ_DYLD                 = 0x80000000
LC_SEGMENT                  = 0x00000001
LC_SYMTAB                   = 0x00000002
LC_SYMSEG                   = 0x00000003
LC_THREAD                   = 0x00000004
LC_UNIXTHREAD               = 0x00000005
LC_LOADFVMLIB               = 0x00000006
LC_IDFVMLIB                 = 0x00000007
LC_IDENT                    = 0x00000008
LC_FVMFILE                  = 0x00000009
LC_PREPAGE                  = 0x0000000a
LC_DYSYMTAB                 = 0x0000000b
LC_LOAD_DYLIB               = 0x0000000c
LC_ID_DYLIB                 = 0x0000000d
LC_LOAD_DYLINKER            = 0x0000000e
LC_ID_DYLINKER              = 0x0000000f
LC_PREBOUND_DYLIB           = 0x00000010
LC_ROUTINES                 = 0x00000011
LC_SUB_FRAMEWORK            = 0x00000012
LC_SUB_UMBRELLA             = 0x00000013
LC_SUB_CLIENT               = 0x00000014
LC_SUB_LIBRARY              = 0x00000015
LC_TWOLEVEL_HINTS           = 0x00000016
LC_PREBIND_CKSUM            = 0x00000017
LC_LOAD_WEAK_DYLIB          = 0x00000018 | LC_REQ_DYLD
LC_SEGMENT_64               = 0x00000019
LC_ROUTINES_64              = 0x0000001a
LC_UUID                     = 0x0000001b
LC_RPATH                    = 0x0000001c | LC_REQ_DYLD
LC_CODE_SIGNATURE           = 0x0000001d
LC_SEGMENT_SPLIT_INFO       = 0x0000001e
LC_REEXPORT_DYLIB           = 0x0000001f | LC_REQ_DYLD
LC_LAZY_LOAD_DYLIB          = 0x00000020
LC_ENCRYPTION_INFO          = 0x00000021
LC_DYLD_INFO                = 0x00000022
LC_DYLD_INFO_ONLY           = 0x00000022 | LC_REQ_DYLD
LC_LOAD_UPWARD_DYLIB        = 0x00000023 | LC_REQ_DYLD
LC_VERSION_MIN_MACOSX       = 0x00000024
LC_VERSION_MIN_IPHONEOS     = 0x00000025
LC_FUNCTION_STARTS          = 0x00000026
LC_DYLD_ENVIRONMENT         = 0x00000027
LC_MAIN                     = 0x00000028 | LC_REQ_DYLD
LC_DATA_IN_CODE             = 0x00000029
LC_SOURCE_VERSION           = 0x0000002A
LC_DYLIB_CODE_SIGN_DRS      = 0x0000002B
LC_ENCRYPTION_INFO_64       = 0x0000002C
LC_LINKER_OPTION            = 0x0000002D
LC_LINKER_OPTIMIZATION_HINT = 0x0000002E
LC_VERSION_MIN_TVOS         = 0x0000002F
LC_VERSION_MIN_WATCHOS      = 0x00000030
LC_NOTE                     = 0x00000031
LC_BUILD_VERSION            = 0x00000032
LC_DYLD_EXPORTS_TRIE        = 0x00000033 | LC_REQ_DYLD
LC_DYLD_CHAINED_FIXUPS      = 0x00000034 | LC_REQ_DYLD
LC_FILESET_ENTRY            = 0x00000035 | LC_REQ_DYLD

# Segment flags
SG_HIGHVM                   = 0x00000001
SG_FVMLIB                   = 0x00000002
SG_NORELOC                  = 0x00000004
SG_PROTECTED_VERSION_1      = 0x00000008
SG_READ_ONLY                = 0x00000010

# Section flags
SECTION_TYPE                = 0x000000ff
SECTION_ATTRIBUTES          = 0xffffff00

# Section type constants
S_REGULAR                               = 0x0
S_ZEROFILL                              = 0x1
S_CSTRING_LITERALS                      = 0x2
S_4BYTE_LITERALS                        = 0x3
S_8BYTE_LITERALS                        = 0x4
S_LITERAL_POINTERS                      = 0x5
S_NON_LAZY_SYMBOL_POINTERS              = 0x6
S_LAZY_SYMBOL_POINTERS                  = 0x7
S_SYMBOL_STUBS                          = 0x8
S_MOD_INIT_FUNC_POINTERS                = 0x9
S_MOD_TERM_FUNC_POINTERS                = 0xa
S_COALESCED                             = 0xb
S_GB_ZEROFILL                           = 0xc
S_INTERPOSING                           = 0xd
S_16BYTE_LITERALS                       = 0xe
S_DTRACE_DOF                            = 0xf
S_LAZY_DYLIB_SYMBOL_POINTERS            = 0x10
S_THREAD_LOCAL_REGULAR                  = 0x11
S_THREAD_LOCAL_ZEROFILL                 = 0x12
S_THREAD_LOCAL_VARIABLES                = 0x13
S_THREAD_LOCAL_VARIABLE_POINTERS        = 0x14
S_THREAD_LOCAL_INIT_FUNCTION_POINTERS   = 0x15
S_INIT_FUNC_OFFSETS                     = 0x16

# Section attribute constants
S_ATTR_PURE_INSTRUCTIONS    = 0x80000000
S_ATTR_NO_TOC               = 0x40000000
S_ATTR_STRIP_STATIC_SYMS    = 0x20000000
S_ATTR_NO_DEAD_STRIP        = 0x10000000
S_ATTR_LIVE_SUPPORT         = 0x08000000
S_ATTR_SELF_MODIFYING_CODE  = 0x04000000
S_ATTR_DEBUG                = 0x02000000
S_ATTR_SOME_INSTRUCTIONS    = 0x00000400
S_ATTR_EXT_RELOC            = 0x00000200
S_ATTR_LOC_RELOC            = 0x00000100

# Mach CPU constants
CPU_ARCH_ABI64              = 0x01000000
CPU_ARCH_ABI64_32           = 0x02000000
CPU_SUBTYPE_MASK            = 0x00ffffff

# Fixed record sizes, not counting the 8 byte cmd/cmdsize prefix for segments
MACH_HEADER_SIZE            = 28
MACH_HEADER_64_SIZE         = 32
FAT_ARCH_SIZE               = 20
SEGMENT_COMMAND_SIZE        = 48
SEGMENT_COMMAND_64_SIZE     = 64
SECTION_SIZE                = 68
SECTION_64_SIZE             = 80

vm_prot_names = [ '---', 'r--', '-w-', 'rw-', '--x', 'r-x', '-wx', 'rwx' ]


def vm_prot_to_str(prot):
    if 0 <= prot < len(vm_prot_names):
        return vm_prot_names[prot]
    return int_to_hex32(prot & 0xffffffff)

def int_to_hex32(i):
    return '0x%8.8x' % (i)

def indent(s, prefix='    '):
    return '\n'.join(prefix + line if line else line for line in s.split('\n'))


class CpuType(IntEnum):
    """Processor architectures a Mach-O header or fat_arch entry may name."""
    ANY         = -1
    VAX         = 1
    MC680X0     = 6
    X86         = 7
    X86_64      = 7 | CPU_ARCH_ABI64
    MC98000     = 10
    HPPA        = 11
    ARM         = 12
    ARM64       = 12 | CPU_ARCH_ABI64
    ARM64_32    = 12 | CPU_ARCH_ABI64_32
    MC88000     = 13
    SPARC       = 14
    I860        = 15
    POWERPC     = 18
    POWERPC64   = 18 | CPU_ARCH_ABI64

    @classmethod
    def decode(cls, value):
        try:
            return cls(value)
        except ValueError:
            raise UnknownCpuType(value)

    def is_64_bit(self):
        return self.value != -1 and (self.value & CPU_ARCH_ABI64) != 0


class Mach(object):
    """A decoded Mach-O file: either a universal container or a single object.

    The decoded tree lives in self.content, which is a Mach.Universal or a
    Mach.Skinny. Attribute lookups that Mach does not answer itself are
    forwarded to the content.
    """

    class Arch(object):
        """Names a (cpu type, cpu subtype) pair"""

        cpu_infos = [
            [ "arm"         , CpuType.ARM       , 0  ],
            [ "armv4t"      , CpuType.ARM       , 5  ],
            [ "armv6"       , CpuType.ARM       , 6  ],
            [ "armv5"       , CpuType.ARM       , 7  ],
            [ "xscale"      , CpuType.ARM       , 8  ],
            [ "armv7"       , CpuType.ARM       , 9  ],
            [ "armv7f"      , CpuType.ARM       , 10 ],
            [ "armv7s"      , CpuType.ARM       , 11 ],
            [ "armv7k"      , CpuType.ARM       , 12 ],
            [ "armv6m"      , CpuType.ARM       , 14 ],
            [ "armv7m"      , CpuType.ARM       , 15 ],
            [ "armv7em"     , CpuType.ARM       , 16 ],
            [ "arm64"       , CpuType.ARM64     , 0  ],
            [ "arm64v8"     , CpuType.ARM64     , 1  ],
            [ "arm64e"      , CpuType.ARM64     , 2  ],
            [ "arm64_32"    , CpuType.ARM64_32  , 1  ],
            [ "ppc"         , CpuType.POWERPC   , 0  ],
            [ "ppc601"      , CpuType.POWERPC   , 1  ],
            [ "ppc603"      , CpuType.POWERPC   , 3  ],
            [ "ppc604"      , CpuType.POWERPC   , 6  ],
            [ "ppc750"      , CpuType.POWERPC   , 9  ],
            [ "ppc7400"     , CpuType.POWERPC   , 10 ],
            [ "ppc7450"     , CpuType.POWERPC   , 11 ],
            [ "ppc970"      , CpuType.POWERPC   , 100],
            [ "ppc64"       , CpuType.POWERPC64 , 0  ],
            [ "ppc970-64"   , CpuType.POWERPC64 , 100],
            [ "i386"        , CpuType.X86       , 3  ],
            [ "i486"        , CpuType.X86       , 4  ],
            [ "i486sx"      , CpuType.X86       , 0x84],
            [ "x86_64"      , CpuType.X86_64    , 3  ],
            [ "x86_64h"     , CpuType.X86_64    , 8  ],
            [ "sparc"       , CpuType.SPARC     , 0  ],
            [ "hppa"        , CpuType.HPPA      , 0  ],
            [ "m68k"        , CpuType.MC680X0   , 1  ],
            [ "m88k"        , CpuType.MC88000   , 0  ],
            [ "i860"        , CpuType.I860      , 0  ],
            [ "vax"         , CpuType.VAX       , 0  ],
        ]

        def __init__(self, c=0, s=0):
            self.cpu = c
            self.sub = s

        def __eq__(self, rhs):
            return isinstance(rhs, Mach.Arch) and self.cpu == rhs.cpu and self.sub == rhs.sub

        def __hash__(self):
            return hash((self.cpu, self.sub))

        def __str__(self):
            for info in self.cpu_infos:
                if self.cpu == info[1] and (self.sub & CPU_SUBTYPE_MASK) == info[2]:
                    return info[0]
            return "{0}.{1}".format(int(self.cpu), self.sub)

    class Magic(IntEnum):
        MH_MAGIC    = MH_MAGIC
        MH_CIGAM    = MH_CIGAM
        MH_MAGIC_64 = MH_MAGIC_64
        MH_CIGAM_64 = MH_CIGAM_64
        FAT_MAGIC   = FAT_MAGIC

        @classmethod
        def decode(cls, value):
            try:
                return cls(value)
            except ValueError:
                raise UnknownMagic(struct.pack('>I', value))

        @classmethod
        def unpack(cls, data):
            # Magic values are compared as the big endian reading of the
            # first four bytes; the byte order of the object follows from it.
            data.set_byte_order(BIG)
            return cls.decode(data.get_uint32())

        def is_universal_mach_file(self):
            return self == Mach.Magic.FAT_MAGIC

        def get_byte_order(self):
            if self in (Mach.Magic.MH_CIGAM, Mach.Magic.MH_CIGAM_64):
                return LITTLE
            return BIG

        def is_64_bit(self):
            return self in (Mach.Magic.MH_MAGIC_64, Mach.Magic.MH_CIGAM_64)

    class FileType(IntEnum):
        MH_OBJECT       = MH_OBJECT
        MH_EXECUTE      = MH_EXECUTE
        MH_FVMLIB       = MH_FVMLIB
        MH_CORE         = MH_CORE
        MH_PRELOAD      = MH_PRELOAD
        MH_DYLIB        = MH_DYLIB
        MH_DYLINKER     = MH_DYLINKER
        MH_BUNDLE       = MH_BUNDLE
        MH_DYLIB_STUB   = MH_DYLIB_STUB
        MH_DSYM         = MH_DSYM
        MH_KEXT_BUNDLE  = MH_KEXT_BUNDLE
        MH_FILESET      = MH_FILESET
        MH_GPU_EXECUTE  = MH_GPU_EXECUTE
        MH_GPU_DYLIB    = MH_GPU_DYLIB

        @classmethod
        def decode(cls, value):
            try:
                return cls(value)
            except ValueError:
                raise UnknownFileType(value)

    class Flags(object):

        flag_names = [
            (MH_NOUNDEFS,                   'MH_NOUNDEFS'),
            (MH_INCRLINK,                   'MH_INCRLINK'),
            (MH_DYLDLINK,                   'MH_DYLDLINK'),
            (MH_BINDATLOAD,                 'MH_BINDATLOAD'),
            (MH_PREBOUND,                   'MH_PREBOUND'),
            (MH_SPLIT_SEGS,                 'MH_SPLIT_SEGS'),
            (MH_LAZY_INIT,                  'MH_LAZY_INIT'),
            (MH_TWOLEVEL,                   'MH_TWOLEVEL'),
            (MH_FORCE_FLAT,                 'MH_FORCE_FLAT'),
            (MH_NOMULTIDEFS,                'MH_NOMULTIDEFS'),
            (MH_NOFIXPREBINDING,            'MH_NOFIXPREBINDING'),
            (MH_PREBINDABLE,                'MH_PREBINDABLE'),
            (MH_ALLMODSBOUND,               'MH_ALLMODSBOUND'),
            (MH_SUBSECTIONS_VIA_SYMBOLS,    'MH_SUBSECTIONS_VIA_SYMBOLS'),
            (MH_CANONICAL,                  'MH_CANONICAL'),
            (MH_WEAK_DEFINES,               'MH_WEAK_DEFINES'),
            (MH_BINDS_TO_WEAK,              'MH_BINDS_TO_WEAK'),
            (MH_ALLOW_STACK_EXECUTION,      'MH_ALLOW_STACK_EXECUTION'),
            (MH_ROOT_SAFE,                  'MH_ROOT_SAFE'),
            (MH_SETUID_SAFE,                'MH_SETUID_SAFE'),
            (MH_NO_REEXPORTED_DYLIBS,       'MH_NO_REEXPORTED_DYLIBS'),
            (MH_PIE,                        'MH_PIE'),
            (MH_DEAD_STRIPPABLE_DYLIB,      'MH_DEAD_STRIPPABLE_DYLIB'),
            (MH_HAS_TLV_DESCRIPTORS,        'MH_HAS_TLV_DESCRIPTORS'),
            (MH_NO_HEAP_EXECUTION,          'MH_NO_HEAP_EXECUTION'),
            (MH_APP_EXTENSION_SAFE,         'MH_APP_EXTENSION_SAFE'),
            (MH_NLIST_OUTOFSYNC_WITH_DYLDINFO, 'MH_NLIST_OUTOFSYNC_WITH_DYLDINFO'),
            (MH_SIM_SUPPORT,                'MH_SIM_SUPPORT'),
            (MH_DYLIB_IN_CACHE,             'MH_DYLIB_IN_CACHE'),
        ]

        def __init__(self, b):
            self.bits = b

        def __str__(self):
            return ' | '.join(name for bit, name in self.flag_names if self.bits & bit)

    def __init__(self, data=None, strict=False, file_off=0, depth=0):
        self.magic = None
        self.content = None
        self.file_off = file_off
        if data is not None:
            self.unpack(data, strict, depth)

    def __getattr__(self, attr):
        if attr == 'content' or attr.startswith('__'):
            raise AttributeError(attr)
        thing = getattr(self.content, attr)
        if thing is None:
            raise AttributeError(attr)
        return thing

    def unpack(self, data, strict=False, depth=0):
        '''Decode "data", a bytes-like object starting with a Mach-O or
        universal magic.'''
        extractor = file_extract.FileExtract(data, BIG, base=self.file_off)
        self.magic = Mach.Magic.unpack(extractor)
        if self.magic.is_universal_mach_file():
            self.content = Mach.Universal(self.file_off)
            self.content.unpack(extractor, self.magic, strict, depth)
        else:
            self.content = Mach.Skinny(self.file_off)
            self.content.unpack(extractor, self.magic, strict)

    def is_valid(self):
        return self.content is not None

    def is_universal(self):
        return isinstance(self.content, Mach.Universal)

    def is_skinny(self):
        return isinstance(self.content, Mach.Skinny)

    def get_architecture_slice_at_index(self, index):
        return self.content.get_architecture_slice_at_index(index)

    def description(self):
        return self.content.description()

    def __str__(self):
        return str(self.content)

    class Universal(object):

        def __init__(self, file_off=0):
            self.type       = 'universal'
            self.file_off   = file_off
            self.magic      = None
            self.nfat_arch  = 0
            self.archs      = list()

        @property
        def warnings(self):
            warnings = list()
            for arch in self.archs:
                warnings.extend(getattr(arch.object, 'warnings', None) or [])
            return warnings

        def get_num_archs(self):
            return len(self.archs)

        def get_architecture(self, index):
            if index < len(self.archs):
                return self.archs[index].arch
            return None

        def get_architecture_slice(self, arch_name):
            for arch in self.archs:
                if str(arch.arch) == arch_name:
                    return arch.object
            return None

        def get_architecture_slice_at_index(self, index):
            if index < len(self.archs):
                return self.archs[index].object
            return None

        def description(self):
            return '%#8.8x: universal (%s)' % (
                self.file_off, ', '.join(str(arch.arch) for arch in self.archs))

        def unpack(self, data, magic, strict=False, depth=0):
            # Deferred to avoid a circular import: universal slices go back
            # through the format registry.
            from .binary import decode

            self.magic = magic
            # Universal headers are always in big endian
            data.set_byte_order(BIG)
            self.nfat_arch = data.get_uint32()
            # The whole arch table must be present before any slice is looked at
            needed = self.nfat_arch * FAT_ARCH_SIZE
            if needed > data.bytes_left():
                raise Truncated(data.file_tell(), needed, data.bytes_left(), 'fat_arch table')
            for i in range(self.nfat_arch):
                arch = Mach.Universal.ArchInfo()
                arch.unpack(data)
                self.archs.append(arch)
            for arch in self.archs:
                contents = checked_slice(data.data, arch.offset, arch.size,
                                         exc_class=ArchOutOfBounds)
                log.debug("Found %s slice @ %#x (%#x bytes)", arch.arch, arch.offset, arch.size)
                arch.object = decode(contents, strict=strict,
                                     file_off=data.base + arch.offset,
                                     depth=depth + 1)

        def __str__(self):
            lines = ["Universal Mach File: magic = %s, nfat_arch = %u" % (self.magic.name, self.nfat_arch)]
            for i, arch in enumerate(self.archs):
                lines.append("Arch %u: %s" % (i, arch.arch))
                lines.append(indent(str(arch)))
            return '\n'.join(lines)

        class ArchInfo(object):

            def __init__(self):
                self.file_off    = 0
                self.cpu_type    = CpuType.ANY
                self.cpu_subtype = 0
                self.offset      = 0
                self.size        = 0
                self.align       = 1
                self.object      = None

            @property
            def arch(self):
                return Mach.Arch(self.cpu_type, self.cpu_subtype)

            def unpack(self, data):
                self.file_off = data.file_tell()
                # Universal headers are always in big endian
                data.set_byte_order(BIG)
                self.cpu_type = CpuType.decode(data.get_sint32())
                self.cpu_subtype = data.get_sint32()
                self.offset, self.size = data.get_n_uint32(2)
                self.align = data.get_alignment()

            def __str__(self):
                lines = [
                    "   cputype: %#8.8x %s" % (self.cpu_type & 0xffffffff, self.cpu_type.name),
                    "cpusubtype: %#8.8x" % (self.cpu_subtype & 0xffffffff),
                    "    offset: %#8.8x" % self.offset,
                    "      size: %#8.8x (%u)" % (self.size, self.size),
                    "     align: %#8.8x (%u)" % (self.align, self.align),
                    str(self.object),
                ]
                return '\n'.join(lines)

            def __repr__(self):
                return "Mach.Universal.ArchInfo: %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x" % (
                    self.cpu_type & 0xffffffff, self.cpu_subtype & 0xffffffff, self.offset, self.size, self.align)

    class Header(object):

        def __init__(self):
            self.magic       = None
            self.cpu_type    = CpuType.ANY
            self.cpu_subtype = 0
            self.filetype    = None
            self.ncmds       = 0
            self.sizeofcmds  = 0
            self.flags       = 0
            self.reserved    = None

        def unpack(self, data, magic):
            self.magic = magic
            self.cpu_type = CpuType.decode(data.get_sint32())
            self.cpu_subtype = data.get_sint32()
            self.filetype = Mach.FileType.decode(data.get_uint32())
            self.ncmds, self.sizeofcmds, self.flags = data.get_n_uint32(3)
            if magic.is_64_bit():
                # mach_header_64 carries one extra reserved word
                self.reserved = data.get_uint32()

        def __str__(self):
            lines = [
                "Mach Header",
                "       magic: %#8.8x %s" % (self.magic.value, self.magic.name),
                "     cputype: %#8.8x %s" % (self.cpu_type & 0xffffffff, self.cpu_type.name),
                "  cpusubtype: %#8.8x" % (self.cpu_subtype & 0xffffffff),
                "    filetype: %#8.8x %s" % (self.filetype.value, self.filetype.name),
                "       ncmds: %#8.8x %u" % (self.ncmds, self.ncmds),
                "  sizeofcmds: %#8.8x %u" % (self.sizeofcmds, self.sizeofcmds),
                "       flags: %#8.8x %s" % (self.flags, Mach.Flags(self.flags)),
            ]
            if self.reserved is not None:
                lines.append("    reserved: %#8.8x" % self.reserved)
            return '\n'.join(lines)

    class Skinny(object):

        def __init__(self, file_off=0):
            self.type          = 'skinny'
            self.data          = None
            self.file_off      = file_off
            self.magic         = None
            self.header        = None
            self.load_commands = list()
            self.segments      = list()
            self.sections      = list()
            self.warnings      = list()

        @property
        def arch(self):
            return Mach.Arch(self.header.cpu_type, self.header.cpu_subtype)

        def get_num_archs(self):
            return 1

        def get_architecture(self, index):
            if index == 0:
                return self.arch
            return None

        def get_architecture_slice(self, arch_name):
            if str(self.arch) == arch_name:
                return self
            return None

        def get_architecture_slice_at_index(self, index):
            if index == 0:
                return self
            return None

        def description(self):
            return '%#8.8x: mach-o (%s)' % (self.file_off, self.arch)

        def is_64_bit(self):
            return self.magic.is_64_bit()

        def unpack(self, data, magic, strict=False):
            self.data = data.data
            self.magic = magic
            data.set_byte_order(magic.get_byte_order())
            data.set_addr_size(8 if magic.is_64_bit() else 4)
            header_size = MACH_HEADER_64_SIZE if magic.is_64_bit() else MACH_HEADER_SIZE
            if len(data) < header_size:
                raise Truncated(data.base, header_size, len(data), 'mach header')
            self.header = Mach.Header()
            self.header.unpack(data, magic)

            # Load commands may only use the bytes that follow the header
            commands = data.sub_extract(data.tell(), data.bytes_left())
            for i in range(self.header.ncmds):
                self.load_commands.append(self.unpack_load_command(commands))
            self.check_sizeofcmds(strict)

        def unpack_load_command(self, data):
            start = data.tell()
            file_off = data.file_tell()
            available = data.bytes_left()
            command, cmdsize = data.get_n_uint32(2)
            if cmdsize < 8 or cmdsize > available:
                raise TruncatedLoadCommand(file_off, cmdsize, available)
            lc_command = Mach.LoadCommand.Command.decode(command, file_off)
            payload = data.sub_extract(start + 8, cmdsize - 8)
            log.debug("Found %s @ %#x", lc_command.name, file_off)
            if lc_command in (LC_SEGMENT, LC_SEGMENT_64):
                lc = Mach.SegmentLoadCommand(lc_command, cmdsize, file_off)
            else:
                lc = Mach.LoadCommand(lc_command, cmdsize, file_off)
            lc.unpack(self, payload)
            # The next command starts cmdsize bytes after this one, no
            # matter how much of the payload was decoded.
            data.seek(start + cmdsize)
            return lc

        def check_sizeofcmds(self, strict=False):
            total = sum(lc.size for lc in self.load_commands)
            if total == self.header.sizeofcmds:
                return
            mismatch = StructuralMismatch(
                "load commands occupy %u bytes but sizeofcmds is %u" % (total, self.header.sizeofcmds),
                declared=self.header.sizeofcmds, actual=total)
            if strict:
                raise mismatch
            log.warning("%s: %s", self.description(), mismatch)
            self.warnings.append(mismatch)

        def get_segment(self, segname):
            for segment in self.segments:
                if segment.segname == segname:
                    return segment
            return None

        def get_section_by_name(self, name):
            for section in self.sections:
                if section.sectname == name:
                    return section
            return None

        def get_section_by_segname_sectname(self, segname, sectname):
            seg = self.get_segment(segname)
            if seg is not None:
                for section in seg.sections:
                    if section.sectname == sectname:
                        return section
            return None

        def get_first_load_command(self, lc_enum_value):
            for lc in self.load_commands:
                if lc.command == lc_enum_value:
                    return lc
            return None

        def __str__(self):
            lines = [self.description(), str(self.header), "Load Commands:"]
            for lc in self.load_commands:
                lines.append(indent(str(lc)))
            for warning in self.warnings:
                lines.append("warning: %s" % warning)
            return '\n'.join(lines)

    class LoadCommand(object):
        """A load command this package recognizes but does not decode.

        The payload, everything after the cmd/cmdsize prefix, is kept in
        "data" as a view into the original buffer.
        """

        class Command(IntEnum):
            LC_SEGMENT                  = LC_SEGMENT
            LC_SYMTAB                   = LC_SYMTAB
            LC_SYMSEG                   = LC_SYMSEG
            LC_THREAD                   = LC_THREAD
            LC_UNIXTHREAD               = LC_UNIXTHREAD
            LC_LOADFVMLIB               = LC_LOADFVMLIB
            LC_IDFVMLIB                 = LC_IDFVMLIB
            LC_IDENT                    = LC_IDENT
            LC_FVMFILE                  = LC_FVMFILE
            LC_PREPAGE                  = LC_PREPAGE
            LC_DYSYMTAB                 = LC_DYSYMTAB
            LC_LOAD_DYLIB               = LC_LOAD_DYLIB
            LC_ID_DYLIB                 = LC_ID_DYLIB
            LC_LOAD_DYLINKER            = LC_LOAD_DYLINKER
            LC_ID_DYLINKER              = LC_ID_DYLINKER
            LC_PREBOUND_DYLIB           = LC_PREBOUND_DYLIB
            LC_ROUTINES                 = LC_ROUTINES
            LC_SUB_FRAMEWORK            = LC_SUB_FRAMEWORK
            LC_SUB_UMBRELLA             = LC_SUB_UMBRELLA
            LC_SUB_CLIENT               = LC_SUB_CLIENT
            LC_SUB_LIBRARY              = LC_SUB_LIBRARY
            LC_TWOLEVEL_HINTS           = LC_TWOLEVEL_HINTS
            LC_PREBIND_CKSUM            = LC_PREBIND_CKSUM
            LC_LOAD_WEAK_DYLIB          = LC_LOAD_WEAK_DYLIB
            LC_SEGMENT_64               = LC_SEGMENT_64
            LC_ROUTINES_64              = LC_ROUTINES_64
            LC_UUID                     = LC_UUID
            LC_RPATH                    = LC_RPATH
            LC_CODE_SIGNATURE           = LC_CODE_SIGNATURE
            LC_SEGMENT_SPLIT_INFO       = LC_SEGMENT_SPLIT_INFO
            LC_REEXPORT_DYLIB           = LC_REEXPORT_DYLIB
            LC_LAZY_LOAD_DYLIB          = LC_LAZY_LOAD_DYLIB
            LC_ENCRYPTION_INFO          = LC_ENCRYPTION_INFO
            LC_DYLD_INFO                = LC_DYLD_INFO
            LC_DYLD_INFO_ONLY           = LC_DYLD_INFO_ONLY
            LC_LOAD_UPWARD_DYLIB        = LC_LOAD_UPWARD_DYLIB
            LC_VERSION_MIN_MACOSX       = LC_VERSION_MIN_MACOSX
            LC_VERSION_MIN_IPHONEOS     = LC_VERSION_MIN_IPHONEOS
            LC_FUNCTION_STARTS          = LC_FUNCTION_STARTS
            LC_DYLD_ENVIRONMENT         = LC_DYLD_ENVIRONMENT
            LC_MAIN                     = LC_MAIN
            LC_DATA_IN_CODE             = LC_DATA_IN_CODE
            LC_SOURCE_VERSION           = LC_SOURCE_VERSION
            LC_DYLIB_CODE_SIGN_DRS      = LC_DYLIB_CODE_SIGN_DRS
            LC_ENCRYPTION_INFO_64       = LC_ENCRYPTION_INFO_64
            LC_LINKER_OPTION            = LC_LINKER_OPTION
            LC_LINKER_OPTIMIZATION_HINT = LC_LINKER_OPTIMIZATION_HINT
            LC_VERSION_MIN_TVOS         = LC_VERSION_MIN_TVOS
            LC_VERSION_MIN_WATCHOS      = LC_VERSION_MIN_WATCHOS
            LC_NOTE                     = LC_NOTE
            LC_BUILD_VERSION            = LC_BUILD_VERSION
            LC_DYLD_EXPORTS_TRIE        = LC_DYLD_EXPORTS_TRIE
            LC_DYLD_CHAINED_FIXUPS      = LC_DYLD_CHAINED_FIXUPS
            LC_FILESET_ENTRY            = LC_FILESET_ENTRY

            @classmethod
            def decode(cls, value, file_off=None):
                try:
                    return cls(value)
                except ValueError:
                    raise UnknownLoadCommandTag(value, file_off)

        def __init__(self, command, size=0, file_off=0):
            self.command = command
            self.size = size
            self.file_off = file_off
            self.data = None

        def unpack(self, mach_file, data):
            self.data = data.data

        def __str__(self):
            return '%#8.8x: <%#4.4x> %s' % (self.file_off, self.size, self.command.name)

    class SegmentLoadCommand(LoadCommand):
        """LC_SEGMENT and LC_SEGMENT_64, along with the sections they own."""

        flag_names = [
            (SG_HIGHVM,                 'SG_HIGHVM'),
            (SG_FVMLIB,                 'SG_FVMLIB'),
            (SG_NORELOC,                'SG_NORELOC'),
            (SG_PROTECTED_VERSION_1,    'SG_PROTECTED_VERSION_1'),
            (SG_READ_ONLY,              'SG_READ_ONLY'),
        ]

        def __init__(self, command, size=0, file_off=0):
            Mach.LoadCommand.__init__(self, command, size, file_off)
            self.segname  = None
            self.vmaddr   = 0
            self.vmsize   = 0
            self.fileoff  = 0
            self.filesize = 0
            self.maxprot  = 0
            self.initprot = 0
            self.nsects   = 0
            self.flags    = 0
            self.sections = list()

        @property
        def is_64(self):
            return self.command == LC_SEGMENT_64

        def unpack(self, mach_file, data):
            Mach.LoadCommand.unpack(self, mach_file, data)
            data.set_addr_size(8 if self.is_64 else 4)
            if self.is_64:
                command_size, section_size = SEGMENT_COMMAND_64_SIZE, SECTION_64_SIZE
            else:
                command_size, section_size = SEGMENT_COMMAND_SIZE, SECTION_SIZE
            if len(data) < command_size:
                raise Truncated(data.file_tell(), command_size, len(data), 'segment command')
            self.segname = data.get_fixed_length_c_string(16)
            self.vmaddr, self.vmsize, self.fileoff, self.filesize = data.get_n_address(4)
            self.maxprot, self.initprot = data.get_n_sint32(2)
            self.nsects, self.flags = data.get_n_uint32(2)
            if self.nsects * section_size > data.bytes_left():
                raise Truncated(data.file_tell(), self.nsects * section_size, data.bytes_left(), 'sections')
            # Anything in cmdsize past the last section is left alone
            for i in range(self.nsects):
                section = Mach.Section()
                section.unpack(self.is_64, data)
                section.index = len(mach_file.sections) + 1
                mach_file.sections.append(section)
                self.sections.append(section)
            mach_file.segments.append(self)

        def get_flags_as_string(self):
            return ' | '.join(name for bit, name in self.flag_names if self.flags & bit)

        def get_contents(self, mach_file):
            '''Return the bytes of this segment's file range.'''
            return bytes(checked_slice(mach_file.data, self.fileoff, self.filesize,
                                       'segment %s' % self.segname))

        def __str__(self):
            s = Mach.LoadCommand.__str__(self) + ' '
            if self.is_64:
                s += "%#16.16x %#16.16x %#16.16x %#16.16x " % (self.vmaddr, self.vmsize, self.fileoff, self.filesize)
            else:
                s += "%#8.8x %#8.8x %#8.8x %#8.8x " % (self.vmaddr, self.vmsize, self.fileoff, self.filesize)
            s += "%s %s %3u %#8.8x" % (vm_prot_to_str(self.maxprot), vm_prot_to_str(self.initprot), self.nsects, self.flags)
            s += " '%s'" % self.segname
            flags = self.get_flags_as_string()
            if flags:
                s += ' (%s)' % flags
            lines = [s]
            for section in self.sections:
                lines.append(indent(str(section)))
            return '\n'.join(lines)

    class Section(object):

        type_names = {
            S_REGULAR                               : 'S_REGULAR',
            S_ZEROFILL                              : 'S_ZEROFILL',
            S_CSTRING_LITERALS                      : 'S_CSTRING_LITERALS',
            S_4BYTE_LITERALS                        : 'S_4BYTE_LITERALS',
            S_8BYTE_LITERALS                        : 'S_8BYTE_LITERALS',
            S_LITERAL_POINTERS                      : 'S_LITERAL_POINTERS',
            S_NON_LAZY_SYMBOL_POINTERS              : 'S_NON_LAZY_SYMBOL_POINTERS',
            S_LAZY_SYMBOL_POINTERS                  : 'S_LAZY_SYMBOL_POINTERS',
            S_SYMBOL_STUBS                          : 'S_SYMBOL_STUBS',
            S_MOD_INIT_FUNC_POINTERS                : 'S_MOD_INIT_FUNC_POINTERS',
            S_MOD_TERM_FUNC_POINTERS                : 'S_MOD_TERM_FUNC_POINTERS',
            S_COALESCED                             : 'S_COALESCED',
            S_GB_ZEROFILL                           : 'S_GB_ZEROFILL',
            S_INTERPOSING                           : 'S_INTERPOSING',
            S_16BYTE_LITERALS                       : 'S_16BYTE_LITERALS',
            S_DTRACE_DOF                            : 'S_DTRACE_DOF',
            S_LAZY_DYLIB_SYMBOL_POINTERS            : 'S_LAZY_DYLIB_SYMBOL_POINTERS',
            S_THREAD_LOCAL_REGULAR                  : 'S_THREAD_LOCAL_REGULAR',
            S_THREAD_LOCAL_ZEROFILL                 : 'S_THREAD_LOCAL_ZEROFILL',
            S_THREAD_LOCAL_VARIABLES                : 'S_THREAD_LOCAL_VARIABLES',
            S_THREAD_LOCAL_VARIABLE_POINTERS        : 'S_THREAD_LOCAL_VARIABLE_POINTERS',
            S_THREAD_LOCAL_INIT_FUNCTION_POINTERS   : 'S_THREAD_LOCAL_INIT_FUNCTION_POINTERS',
            S_INIT_FUNC_OFFSETS                     : 'S_INIT_FUNC_OFFSETS',
        }

        attribute_names = [
            (S_ATTR_PURE_INSTRUCTIONS,      'S_ATTR_PURE_INSTRUCTIONS'),
            (S_ATTR_NO_TOC,                 'S_ATTR_NO_TOC'),
            (S_ATTR_STRIP_STATIC_SYMS,      'S_ATTR_STRIP_STATIC_SYMS'),
            (S_ATTR_NO_DEAD_STRIP,          'S_ATTR_NO_DEAD_STRIP'),
            (S_ATTR_LIVE_SUPPORT,           'S_ATTR_LIVE_SUPPORT'),
            (S_ATTR_SELF_MODIFYING_CODE,    'S_ATTR_SELF_MODIFYING_CODE'),
            (S_ATTR_DEBUG,                  'S_ATTR_DEBUG'),
            (S_ATTR_SOME_INSTRUCTIONS,      'S_ATTR_SOME_INSTRUCTIONS'),
            (S_ATTR_EXT_RELOC,              'S_ATTR_EXT_RELOC'),
            (S_ATTR_LOC_RELOC,              'S_ATTR_LOC_RELOC'),
        ]

        zerofill_types = (S_ZEROFILL, S_GB_ZEROFILL, S_THREAD_LOCAL_ZEROFILL)

        def __init__(self):
            self.file_off = 0
            self.index = 0
            self.is_64 = False
            self.sectname = None
            self.segname = None
            self.addr = 0
            self.size = 0
            self.offset = 0
            self.align = 1
            self.reloff = 0
            self.nreloc = 0
            self.flags = 0
            self.reserved1 = 0
            self.reserved2 = 0
            self.reserved3 = None

        def unpack(self, is_64, data):
            self.file_off = data.file_tell()
            self.is_64 = is_64
            data.set_addr_size(8 if is_64 else 4)
            self.sectname = data.get_fixed_length_c_string(16)
            self.segname = data.get_fixed_length_c_string(16)
            self.addr, self.size = data.get_n_address(2)
            self.offset = data.get_uint32()
            self.align = data.get_alignment()
            self.reloff, self.nreloc, self.flags, self.reserved1, self.reserved2 = data.get_n_uint32(5)
            if self.is_64:
                self.reserved3 = data.get_uint32()

        def get_type(self):
            return self.flags & SECTION_TYPE

        def get_type_as_string(self):
            section_type = self.get_type()
            return self.type_names.get(section_type, "??? (%#2.2x)" % section_type)

        def get_attributes_as_string(self):
            return ' | '.join(name for bit, name in self.attribute_names if self.flags & bit)

        def get_flags_as_string(self):
            attr_str = self.get_attributes_as_string()
            if len(attr_str):
                return 'type = ' + self.get_type_as_string() + ', attrs = ' + attr_str
            return 'type = ' + self.get_type_as_string()

        def get_contents(self, mach_file):
            '''Return the bytes of this section's file range.'''
            if self.get_type() in self.zerofill_types:
                return b''
            return bytes(checked_slice(mach_file.data, self.offset, self.size,
                                       'section %s.%s' % (self.segname, self.sectname)))

        def contains_vmaddr(self, vmaddr):
            return self.addr <= vmaddr < self.addr + self.size

        def __str__(self):
            if self.is_64:
                s = "%#8.8x: [%3u] %#16.16x %#16.16x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x" % (
                    self.file_off, self.index, self.addr, self.size, self.offset, self.align, self.reloff,
                    self.nreloc, self.flags, self.reserved1, self.reserved2, self.reserved3)
            else:
                s = "%#8.8x: [%3u] %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x %#8.8x" % (
                    self.file_off, self.index, self.addr, self.size, self.offset, self.align, self.reloff,
                    self.nreloc, self.flags, self.reserved1, self.reserved2)
            return s + " %s.%s (%s)" % (self.segname, self.sectname, self.get_flags_as_string())


def decode(data, strict=False, file_off=0, depth=0):
    '''Decode a Mach-O or universal file held in "data".'''
    return Mach(data, strict=strict, file_off=file_off, depth=depth)
