from .__about__ import __version__
from .binary import decode, load, register_format
from .elf import Elf
from .errors import (
    ArchOutOfBounds,
    DecodeError,
    InvalidAlignment,
    MalformedHeader,
    OutOfBounds,
    StructuralMismatch,
    Truncated,
    TruncatedLoadCommand,
    UnknownCpuType,
    UnknownFileType,
    UnknownLoadCommandTag,
    UnknownMagic,
)
from .mach_o import CpuType, Mach
from .pe import Pe
