"""
AB Database - Serialized single-connection SQLite access

A single-writer wrapper around one embedded SQLite connection. Every
operation is funneled through one serialization lane, transactions are
tracked with monotonically increasing tokens, and conflicting operations
may be retried once after a caller-supplied delay.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
