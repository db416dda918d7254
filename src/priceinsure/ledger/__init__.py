"""Ledger access layer.

The connector holds the single JSON-RPC session; program handles expose the
fixed call interface of each ledger-resident program.
"""

from priceinsure.ledger.abis import MAX_UINT256, ZERO_ADDRESS
from priceinsure.ledger.connector import LedgerConnector, ProgramAddresses
from priceinsure.ledger.programs import (
    InstrumentPair,
    InsurancePoolProgram,
    OrderBookProgram,
    OrderRecord,
    TokenProgram,
    TransactionDescriptor,
)

__all__ = [
    "MAX_UINT256",
    "ZERO_ADDRESS",
    "LedgerConnector",
    "ProgramAddresses",
    "InstrumentPair",
    "InsurancePoolProgram",
    "OrderBookProgram",
    "OrderRecord",
    "TokenProgram",
    "TransactionDescriptor",
]
