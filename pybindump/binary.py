"""Format dispatch: pick a decoder from the leading magic bytes of a buffer.

The registry is a plain list of Format entries, tried in order. Adding a
format means appending an entry, either here or at run time through
register_format().
"""
import logging

from . import elf, mach_o, pe
from .errors import MalformedHeader, Truncated, UnknownMagic

log = logging.getLogger(__name__)

MAGIC_SIZE = 4

# A universal file holds objects, never other universal files, so two
# levels are all a well formed file needs. Anything deeper is hostile.
MAX_NESTING_DEPTH = 4


class Format(object):
    """Binds a magic byte prefix to a decoder entry point.

    The decoder is called as decoder(data, strict=..., file_off=..., depth=...)
    and returns the decoded object.
    """

    def __init__(self, name, magic, decoder):
        self.name = name
        self.magic = bytes(magic)
        self.decoder = decoder

    def matches(self, data):
        return bytes(data[:len(self.magic)]) == self.magic

    def __repr__(self):
        return "Format(%r, %s)" % (self.name, self.magic.hex())


formats = [
    Format('universal', b'\xca\xfe\xba\xbe', mach_o.decode),
    Format('mach-o', b'\xfe\xed\xfa\xce', mach_o.decode),
    Format('mach-o', b'\xfe\xed\xfa\xcf', mach_o.decode),
    Format('mach-o', b'\xcf\xfa\xed\xfe', mach_o.decode),
    Format('mach-o', b'\xce\xfa\xed\xfe', mach_o.decode),
    Format('pe', b'MZ', pe.decode),
    Format('elf', b'\x7fELF', elf.decode),
]


def register_format(name, magic, decoder):
    '''Add a decoder for buffers starting with "magic" and return its entry.'''
    fmt = Format(name, magic, decoder)
    formats.append(fmt)
    return fmt


def identify(data):
    '''Return the Format entry whose magic prefixes "data".'''
    if len(data) < MAGIC_SIZE:
        raise Truncated(0, MAGIC_SIZE, len(data), 'magic')
    for fmt in formats:
        if fmt.matches(data):
            return fmt
    raise UnknownMagic(data[:MAGIC_SIZE])


def decode(data, strict=False, file_off=0, depth=0):
    '''Decode the object file held in "data".

    "file_off" is the absolute offset of data[0] in the file it came from and
    "depth" the number of containers enclosing it; both are set by container
    decoders when they recurse.'''
    if depth > MAX_NESTING_DEPTH:
        raise MalformedHeader("containers nested deeper than %u levels at offset %#x" % (
            MAX_NESTING_DEPTH, file_off))
    fmt = identify(data)
    log.debug("Decoding %s @ %#x (%#x bytes)", fmt.name, file_off, len(data))
    return fmt.decoder(data, strict=strict, file_off=file_off, depth=depth)


def load(path, strict=False):
    '''Read the file at "path" into memory and decode it.'''
    with open(path, 'rb') as f:
        data = f.read()
    return decode(data, strict=strict)
