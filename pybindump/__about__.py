__title__ = "pybindump"
__version__ = "0.1.0b1"
__summary__ = "A package to decode the structure of executable object files, such as Mach-O, ELF and PE."

"""
See PEP 440 for version scheme
https://www.python.org/dev/peps/pep-0440/#examples-of-compliant-version-schemes
Examples:

FINAL
0.9
0.9.1
1.0

PRE_RELEASES

X.YaN   # Alpha release
X.YbN   # Beta release
X.YrcN  # Release Candidate
X.Y     # Final release
"""
