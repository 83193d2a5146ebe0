"""Exceptions raised while decoding object files.

Every decoder raises a subclass of DecodeError as soon as it meets input it
cannot make sense of. StructuralMismatch is the exception to that rule: it
is normally attached to the decoded object as a warning and only raised
when the caller asks for strict decoding.
"""


class DecodeError(Exception):
    """Base class for every error raised while decoding an object file."""
    pass


class Truncated(DecodeError):
    """Fewer bytes are available than a field or record requires."""

    def __init__(self, offset, needed, available, what=None):
        self.offset = offset
        self.needed = needed
        self.available = available
        self.what = what
        if what:
            msg = "truncated %s at offset %#x: need %u bytes, %u available" % (
                what, offset, needed, available)
        else:
            msg = "truncated data at offset %#x: need %u bytes, %u available" % (
                offset, needed, available)
        DecodeError.__init__(self, msg)


class TruncatedLoadCommand(Truncated):
    """A load command declares a size below 8 bytes or past its region."""

    def __init__(self, offset, cmdsize, available):
        self.offset = offset
        self.needed = max(cmdsize, 8)
        self.available = available
        self.what = 'load command'
        self.cmdsize = cmdsize
        DecodeError.__init__(self, "truncated load command at offset %#x: cmdsize = %u, %u bytes available" % (
            offset, cmdsize, available))


class UnknownMagic(DecodeError):
    def __init__(self, magic):
        self.magic = bytes(magic)
        DecodeError.__init__(self, "unknown magic bytes: %s" % (
            ' '.join('%02x' % b for b in self.magic)))


class UnknownCpuType(DecodeError):
    def __init__(self, value):
        self.value = value
        DecodeError.__init__(self, "unknown cpu type %d (%#x)" % (value, value & 0xffffffff))


class UnknownFileType(DecodeError):
    def __init__(self, value):
        self.value = value
        DecodeError.__init__(self, "unknown mach-o file type %#x" % value)


class UnknownLoadCommandTag(DecodeError):
    def __init__(self, value, offset=None):
        self.value = value
        self.offset = offset
        if offset is None:
            msg = "unknown load command %#x" % value
        else:
            msg = "unknown load command %#x at offset %#x" % (value, offset)
        DecodeError.__init__(self, msg)


class InvalidAlignment(DecodeError):
    def __init__(self, exponent):
        self.exponent = exponent
        DecodeError.__init__(self, "invalid alignment exponent %u (must be < 32)" % exponent)


class OutOfBounds(DecodeError):
    """An offset/size pair points outside the buffer it refers to."""

    def __init__(self, offset, size, available, what=None):
        self.offset = offset
        self.size = size
        self.available = available
        self.what = what
        DecodeError.__init__(self, "%s [%#x - %#x) exceeds buffer of %#x bytes" % (
            what or 'range', offset, offset + size, available))


class ArchOutOfBounds(OutOfBounds):
    def __init__(self, offset, size, available, what='architecture'):
        OutOfBounds.__init__(self, offset, size, available, what)


class MalformedHeader(DecodeError):
    """A sibling format header holds a value its decoder cannot accept."""
    pass


class StructuralMismatch(DecodeError):
    """The object decoded, but its parts disagree with each other.

    Attached to the decoded object as a warning unless strict decoding was
    requested, in which case it is raised.
    """

    def __init__(self, message, declared=None, actual=None):
        self.declared = declared
        self.actual = actual
        DecodeError.__init__(self, message)
