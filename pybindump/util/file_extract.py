"""Bounds-checked primitive readers over an in-memory byte buffer.

Nothing in here ever reads past the end of the buffer it was handed: every
read checks the remaining length first and raises Truncated, and every
"offset + size into a buffer" field is resolved through checked_slice().
Slices are memoryviews, so sub-regions share the original buffer.
"""
import struct

from ..errors import InvalidAlignment, OutOfBounds, Truncated

BIG = '>'
LITTLE = '<'
NATIVE = '='

_byte_order_names = {
    'big': BIG,
    'little': LITTLE,
    'native': NATIVE,
    BIG: BIG,
    LITTLE: LITTLE,
    NATIVE: NATIVE,
}


def byte_order_char(byte_order):
    try:
        return _byte_order_names[byte_order]
    except KeyError:
        raise ValueError("invalid byte order '%s'" % (byte_order))


def checked_slice(data, offset, size, what=None, exc_class=OutOfBounds):
    '''Return a view of data[offset:offset+size] without copying.

    Raises exc_class (OutOfBounds by default) when the range does not lie
    completely inside data.'''
    available = len(data)
    if offset < 0 or size < 0 or offset + size > available:
        if what:
            raise exc_class(offset, size, available, what)
        raise exc_class(offset, size, available)
    return memoryview(data)[offset:offset + size]


def _check(data, offset, needed, what=None):
    available = len(data) - offset
    if offset < 0 or available < needed:
        raise Truncated(offset, needed, max(available, 0), what)


def _unpack(fmt, data, byte_order, offset):
    fmt = byte_order_char(byte_order) + fmt
    _check(data, offset, struct.calcsize(fmt))
    return struct.unpack_from(fmt, data, offset)[0]


def read_u32(data, byte_order, offset=0):
    return _unpack('I', data, byte_order, offset)


def read_i32(data, byte_order, offset=0):
    return _unpack('i', data, byte_order, offset)


def read_u64(data, byte_order, offset=0):
    return _unpack('Q', data, byte_order, offset)


def read_fixed_name(data, width, offset=0):
    '''Read a fixed width name field.

    The name stops at the first NUL byte, or fills the whole field when
    there is none. Bytes that are not valid UTF-8 are replaced.'''
    _check(data, offset, width, 'name')
    raw = bytes(data[offset:offset + width])
    nul = raw.find(b'\0')
    if nul >= 0:
        raw = raw[:nul]
    return raw.decode('utf-8', 'replace')


def read_c_string(data, offset=0):
    '''Read a NUL terminated string starting at "offset".

    A string that runs to the end of data without a terminator is returned
    whole.'''
    if offset < 0 or offset >= len(data):
        raise Truncated(offset, 1, max(len(data) - offset, 0), 'string')
    raw = bytes(data[offset:])
    nul = raw.find(b'\0')
    if nul >= 0:
        raw = raw[:nul]
    return raw.decode('utf-8', 'replace')


def read_alignment_exponent(data, byte_order, offset=0):
    '''Read a power of two alignment stored as its exponent.'''
    exponent = read_u32(data, byte_order, offset)
    if exponent >= 32:
        raise InvalidAlignment(exponent)
    return 1 << exponent


class FileExtract(object):
    '''Sequential reader over a byte buffer with a settable byte order.

    "base" is the absolute offset of data[0] within the file the buffer was
    cut from. It is only used to report absolute offsets.'''

    def __init__(self, data, byte_order=NATIVE, addr_size=0, base=0):
        self.data = memoryview(data)
        self.byte_order = byte_order_char(byte_order)
        self.addr_size = addr_size
        self.base = base
        self.offset = 0

    def __len__(self):
        return len(self.data)

    def set_byte_order(self, byte_order):
        self.byte_order = byte_order_char(byte_order)

    def get_byte_order(self):
        return self.byte_order

    def set_addr_size(self, addr_size):
        self.addr_size = addr_size

    def get_addr_size(self):
        return self.addr_size

    def tell(self):
        return self.offset

    def file_tell(self):
        return self.base + self.offset

    def bytes_left(self):
        return len(self.data) - self.offset

    def seek(self, offset, whence=0):
        if whence == 1:
            offset += self.offset
        elif whence == 2:
            offset += len(self.data)
        if offset < 0:
            raise OutOfBounds(self.base + offset, 0, len(self.data), 'seek target')
        if offset > len(self.data):
            raise Truncated(self.file_tell(), offset - self.offset, self.bytes_left(), 'seek target')
        self.offset = offset

    def _require(self, needed, what=None):
        if self.bytes_left() < needed:
            raise Truncated(self.file_tell(), needed, self.bytes_left(), what)

    def _get(self, fmt, what=None):
        fmt = self.byte_order + fmt
        size = struct.calcsize(fmt)
        self._require(size, what)
        values = struct.unpack_from(fmt, self.data, self.offset)
        self.offset += size
        return values

    def read_size(self, size):
        self._require(size)
        view = self.data[self.offset:self.offset + size]
        self.offset += size
        return view

    def get_uint8(self):
        return self._get('B')[0]

    def get_uint16(self):
        return self._get('H')[0]

    def get_uint32(self):
        return self._get('I')[0]

    def get_sint32(self):
        return self._get('i')[0]

    def get_uint64(self):
        return self._get('Q')[0]

    def get_address(self):
        if self.addr_size == 8:
            return self.get_uint64()
        return self.get_uint32()

    def get_n_uint16(self, n):
        return self._get('%uH' % n)

    def get_n_uint32(self, n):
        return self._get('%uI' % n)

    def get_n_sint32(self, n):
        return self._get('%ui' % n)

    def get_n_uint64(self, n):
        return self._get('%uQ' % n)

    def get_n_address(self, n):
        if self.addr_size == 8:
            return self.get_n_uint64(n)
        return self.get_n_uint32(n)

    def get_fixed_length_c_string(self, n):
        self._require(n, 'name')
        name = read_fixed_name(self.data, n, self.offset)
        self.offset += n
        return name

    def get_alignment(self):
        self._require(4, 'alignment')
        align = read_alignment_exponent(self.data, self.byte_order, self.offset)
        self.offset += 4
        return align

    def sub_extract(self, offset, size, what=None, exc_class=OutOfBounds):
        '''Return a new extractor over [offset, offset+size) of this one.'''
        view = checked_slice(self.data, offset, size, what, exc_class)
        return FileExtract(view, self.byte_order, self.addr_size, self.base + offset)
