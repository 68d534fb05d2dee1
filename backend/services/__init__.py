"""Backend services."""

from services.contract_normalizer import (
    normalize_contract,
    normalize_contracts,
    NormalizedContract,
    InputSource,
)

__all__ = [
    "normalize_contract",
    "normalize_contracts",
    "NormalizedContract",
    "InputSource",
]
