import logging
import optparse
import sys

from .__about__ import __version__
from .binary import load
from .errors import DecodeError
from .mach_o import Mach, indent


def summarize(obj):
    '''Return the one line description of "obj", plus one line per
    architecture when it is a universal file.'''
    lines = [obj.description()]
    if isinstance(obj, Mach) and obj.is_universal():
        for arch in obj.archs:
            lines.append(indent(arch.object.description()))
    return '\n'.join(lines)


def handle_path(options, path):
    obj = load(path, strict=options.strict)
    if options.dump_header:
        print(summarize(obj))
    else:
        print(obj)


def main(argv=None):
    parser = optparse.OptionParser(
        usage='%prog [options] PATH [PATH ...]',
        version='%prog ' + __version__,
        description='Decode the structure of Mach-O, universal, ELF and PE files.')
    parser.add_option('-v', '--verbose', action='store_true', dest='verbose', help='display verbose debug info', default=False)
    parser.add_option('--strict', action='store_true', dest='strict', help='treat structural mismatches as errors', default=False)
    parser.add_option('-H', '--header', action='store_true', dest='dump_header', help='only print a summary line per file and architecture', default=False)
    (options, paths) = parser.parse_args(argv)
    if not paths:
        parser.error('no files specified')

    logging.basicConfig(level=logging.DEBUG if options.verbose else logging.WARNING,
                        format='%(levelname)s:%(name)s: %(message)s')

    status = 0
    for path in paths:
        try:
            handle_path(options, path)
        except (DecodeError, OSError) as e:
            print('error: %s: %s' % (path, e), file=sys.stderr)
            status = 1
    return status


if __name__ == '__main__':
    sys.exit(main())
