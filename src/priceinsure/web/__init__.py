"""Web boundary layer for non-custodial operations.

SECURITY PRINCIPLES:
1. This layer MUST NOT import from:
   - signing/ (the faucet identity)

2. This layer CAN import from:
   - ledger/ (read calls and unsigned transaction encoding)
   - units, errors, config

3. All operations in this layer are read-only or prepare data for
   client-side signing (non-custodial).
"""

__all__ = [
    "contracts",
    "services",
    "controllers",
]
