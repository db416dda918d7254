"""Non-custodial gateway for a price-insurance market."""

__version__ = "0.1.0"
