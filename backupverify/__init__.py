"""
Backup verifier.

Checks that a backup directory tree is a faithful, current copy of an
original tree and summarises the result as a difference percentage.
"""

__version__ = "1.0.0"
