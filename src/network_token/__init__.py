"""Network Token Service.

Generates network tokens and cryptograms through a remote tokenization API
and records each successful run.
"""

__version__ = "0.1.0"
