"""Transaction signing services.

The faucet is the only component that holds a key:
- FaucetSigner: single-writer actor minting test stable tokens
"""

from priceinsure.signing.faucet import FaucetReceipt, FaucetSigner

__all__ = [
    "FaucetReceipt",
    "FaucetSigner",
]
