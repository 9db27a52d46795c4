"""
taxtoken — a fungible-token ledger with a time-decaying sale tax.

Sales into designated liquidity pools are taxed (10% → 7% → 5% as the pool
ages), the tax is held by the token itself and converted into the venue's
reference currency on later transfers, and the proceeds are paid to a treasury.

Only lightweight metadata is exposed at import time. Import the facade
explicitly:

    from taxtoken.token import TaxToken
"""

from .version import __version__, version_metadata

__all__ = ["__version__", "version_metadata"]
