"""struct based builders for the synthetic object files used by the tests."""
import struct

from pybindump import mach_o

CPU_TYPE_X86_64 = 0x01000007
CPU_TYPE_ARM64 = 0x0100000c
CPU_TYPE_I386 = 7
CPU_TYPE_POWERPC = 18


def mach_header(ncmds, sizeofcmds, is_64=True, endian='<', cputype=CPU_TYPE_X86_64,
                cpusubtype=3, filetype=mach_o.MH_EXECUTE, flags=0):
    if is_64:
        return struct.pack(endian + 'IiiIIIII', mach_o.MH_MAGIC_64, cputype, cpusubtype,
                           filetype, ncmds, sizeofcmds, flags, 0)
    return struct.pack(endian + 'IiiIIII', mach_o.MH_MAGIC, cputype, cpusubtype,
                       filetype, ncmds, sizeofcmds, flags)


def load_command(cmd, payload=b'', cmdsize=None, endian='<'):
    if cmdsize is None:
        cmdsize = 8 + len(payload)
    return struct.pack(endian + 'II', cmd, cmdsize) + payload


def uuid_command(uuid=bytes(range(16)), endian='<'):
    return load_command(mach_o.LC_UUID, uuid, endian=endian)


def section(sectname, segname, addr=0, size=0, offset=0, align=0, flags=0,
            is_64=True, endian='<', reloff=0, nreloc=0):
    name = sectname.encode('utf-8') if isinstance(sectname, str) else sectname
    seg = segname.encode('utf-8') if isinstance(segname, str) else segname
    if is_64:
        return struct.pack(endian + '16s16sQQ8I', name, seg, addr, size, offset, align,
                           reloff, nreloc, flags, 0, 0, 0)
    return struct.pack(endian + '16s16s9I', name, seg, addr, size, offset, align,
                       reloff, nreloc, flags, 0, 0)


def segment_command(segname, sections=(), vmaddr=0, vmsize=0, fileoff=0, filesize=0,
                    maxprot=7, initprot=5, flags=0, is_64=True, endian='<', padding=0):
    seg = segname.encode('utf-8')
    if is_64:
        body = struct.pack(endian + '16sQQQQiiII', seg, vmaddr, vmsize, fileoff, filesize,
                           maxprot, initprot, len(sections), flags)
        cmd = mach_o.LC_SEGMENT_64
    else:
        body = struct.pack(endian + '16sIIIIiiII', seg, vmaddr, vmsize, fileoff, filesize,
                           maxprot, initprot, len(sections), flags)
        cmd = mach_o.LC_SEGMENT
    payload = body + b''.join(sections) + b'\0' * padding
    return load_command(cmd, payload, endian=endian)


def macho(commands=(), is_64=True, endian='<', sizeofcmds=None, ncmds=None, tail=b'', **kwargs):
    '''Build a thin Mach-O object from already packed load commands.'''
    cmds = b''.join(commands)
    if sizeofcmds is None:
        sizeofcmds = len(cmds)
    if ncmds is None:
        ncmds = len(commands)
    return mach_header(ncmds, sizeofcmds, is_64=is_64, endian=endian, **kwargs) + cmds + tail


def fat(archs, start=None):
    '''Build a universal file.

    "archs" is a list of (cputype, cpusubtype, align_exponent, object_bytes).
    Objects are laid out one after the other, beginning at "start" or right
    after the arch table.'''
    header_size = 8 + 20 * len(archs)
    offset = header_size if start is None else start
    table = struct.pack('>II', mach_o.FAT_MAGIC, len(archs))
    blobs = b''
    for cputype, cpusubtype, align, obj in archs:
        table += struct.pack('>iiIII', cputype, cpusubtype, offset, len(obj), align)
        blobs += obj
        offset += len(obj)
    if start is not None:
        table += b'\0' * (start - header_size)
    return table + blobs


def fat_entries(entries):
    '''Build a universal header from raw (cputype, cpusubtype, offset, size, align) rows.'''
    data = struct.pack('>II', mach_o.FAT_MAGIC, len(entries))
    for entry in entries:
        data += struct.pack('>iiIII', *entry)
    return data


def elf(is_64=True, endian='<', sections=(), e_machine=0x3e, e_type=2, entry=0x401000,
        elf_class=None, elf_data=None):
    '''Build an ELF file with a section name table.

    "sections" is a list of (name, sh_type, contents).'''
    if elf_class is None:
        elf_class = 2 if is_64 else 1
    if elf_data is None:
        elf_data = 1 if endian == '<' else 2
    ehsize = 64 if is_64 else 52
    shentsize = 64 if is_64 else 40

    strtab = b'\0'
    name_offsets = []
    for name, sh_type, contents in sections:
        name_offsets.append(len(strtab))
        strtab += name.encode('utf-8') + b'\0'
    shstrtab_name = len(strtab)
    strtab += b'.shstrtab\0'

    body = b''
    offset = ehsize
    rows = [(0, 0, 0, 0, 0)]
    for (name, sh_type, contents), name_off in zip(sections, name_offsets):
        size = len(contents) if not isinstance(contents, int) else contents
        rows.append((name_off, sh_type, offset, size, 0x1000 + offset))
        if not isinstance(contents, int):
            body += contents
            offset += len(contents)
    rows.append((shstrtab_name, 3, offset, len(strtab), 0))
    body += strtab
    offset += len(strtab)
    pad = (-offset) % 8
    body += b'\0' * pad
    shoff = offset + pad
    shnum = len(rows)
    shstrndx = shnum - 1

    ident = b'\x7fELF' + bytes([elf_class, elf_data, 1, 0]) + b'\0' * 8
    if is_64:
        header = struct.pack(endian + 'HHIQQQIHHHHHH', e_type, e_machine, 1, entry, 0, shoff,
                             0, ehsize, 0, 0, shentsize, shnum, shstrndx)
        shdr_fmt = endian + 'IIQQQQIIQQ'
    else:
        header = struct.pack(endian + 'HHIIIIIHHHHHH', e_type, e_machine, 1, entry, 0, shoff,
                             0, ehsize, 0, 0, shentsize, shnum, shstrndx)
        shdr_fmt = endian + '10I'
    table = b''
    for name_off, sh_type, sh_offset, size, addr in rows:
        table += struct.pack(shdr_fmt, name_off, sh_type, 0, addr, sh_offset, size, 0, 0, 1, 0)
    return ident + header + body + table


def pe(sections=(), is_64=True, machine=0x8664, entry=0x1000, image_base=0x140000000,
       e_lfanew=0x40, signature=b'PE\0\0'):
    '''Build a PE file. "sections" is a list of (name, characteristics, contents).'''
    dos = b'MZ' + b'\0' * (0x3c - 2) + struct.pack('<I', e_lfanew)
    dos += b'\0' * (e_lfanew - len(dos))

    if is_64:
        optional = struct.pack('<H14xIII', 0x20b, entry, 0, 0)
        optional = optional[:24] + struct.pack('<Q', image_base)
    else:
        optional = struct.pack('<H14xIIII', 0x10b, entry, 0, 0, image_base)
    optional += b'\0' * (0xf0 - len(optional))

    coff = struct.pack('<HHIIIHH', machine, len(sections), 0x5f000000, 0, 0,
                       len(optional), 0x22)

    headers_size = len(dos) + 4 + len(coff) + len(optional) + 40 * len(sections)
    raw_ptr = headers_size
    table = b''
    raw = b''
    for i, (name, characteristics, contents) in enumerate(sections):
        if isinstance(contents, int):
            table += struct.pack('<8s6I2HI', name.encode('utf-8'), contents, 0x1000 * (i + 1),
                                 0, 0, 0, 0, 0, 0, characteristics)
        else:
            table += struct.pack('<8s6I2HI', name.encode('utf-8'), len(contents), 0x1000 * (i + 1),
                                 len(contents), raw_ptr, 0, 0, 0, 0, characteristics)
            raw += contents
            raw_ptr += len(contents)
    return dos + signature + coff + optional + table + raw
