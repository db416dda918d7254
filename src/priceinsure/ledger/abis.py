"""Fixed call interfaces of the ledger-resident programs.

These fragments are the complete surface this service is allowed to touch.
A function missing here is treated as an unsupported program version.
"""

from web3 import Web3

MAX_UINT256 = 2**256 - 1
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def _function(name: str, inputs: list[str], outputs: list[str], view: bool = False) -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": f"arg{i}", "type": t} for i, t in enumerate(inputs)],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": "view" if view else "nonpayable",
    }


def signature(entry: dict) -> str:
    """Canonical signature, e.g. ``approve(address,uint256)``."""
    types = ",".join(i["type"] for i in entry["inputs"])
    return f"{entry['name']}({types})"


def selector(entry: dict) -> bytes:
    """4-byte function selector."""
    return bytes(Web3.keccak(text=signature(entry))[:4])


# Fungible asset (base stable token and instrument tokens)
TOKEN_ABI = [
    _function("balanceOf", ["address"], ["uint256"], view=True),
    _function("allowance", ["address", "address"], ["uint256"], view=True),
    _function("decimals", [], ["uint8"], view=True),
    _function("symbol", [], ["string"], view=True),
    _function("name", [], ["string"], view=True),
    _function("approve", ["address", "uint256"], ["bool"]),
    _function("mint", ["address", "uint256"], []),
]

INSURANCE_POOL_ABI = [
    _function("COLLATERAL_TOKEN", [], ["address"], view=True),
    _function("finalized", [], ["bool"], view=True),
    _function("FinalPrice", [], ["uint256"], view=True),
    _function("getInsuranceTokens", ["uint256"], ["address", "address"], view=True),
    _function("issueInsurance", ["uint256", "uint256", "address", "address"], []),
    _function("redeemInsurance", ["uint256", "uint256"], ["uint256"]),
    _function("finalize", ["uint256"], []),
    _function("settleInsurance", ["uint256[]"], ["uint256"]),
]

ORDER_BOOK_ABI = [
    _function("insurancePool", [], ["address"], view=True),
    _function("collateralToken", [], ["address"], view=True),
    _function("feeRate", [], ["uint256"], view=True),
    _function("depositCollateral", ["uint256"], []),
    _function("withdrawCollateral", ["uint256"], []),
    _function("createClaimTokenOrder", ["uint256", "uint256", "uint256"], ["uint256"]),
    _function("createInsuranceOrder", ["uint256", "uint256", "uint256"], ["uint256"]),
    _function("cancelOrder", ["uint256"], []),
    _function("fillOrder", ["uint256", "uint256"], []),
    _function(
        "getOrder", ["uint256"], ["address", "uint256", "uint256", "uint256", "bool"], view=True
    ),
    _function("isOrderFillable", ["uint256"], ["bool"], view=True),
    _function("userCollateralBalance", ["address"], ["uint256"], view=True),
]
