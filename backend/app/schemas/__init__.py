"""Schema exports."""

from app.schemas.auth import Token
from app.schemas.holding_deposit import (
    BankDetailsRead,
    HoldingDepositByApplication,
    HoldingDepositCreate,
    HoldingDepositMutationResponse,
    HoldingDepositRead,
    HoldingDepositStatusUpdate,
    ReleaseExpiredResponse,
    TenantHoldingDepositResponse,
)

__all__ = [
    "BankDetailsRead",
    "HoldingDepositByApplication",
    "HoldingDepositCreate",
    "HoldingDepositMutationResponse",
    "HoldingDepositRead",
    "HoldingDepositStatusUpdate",
    "ReleaseExpiredResponse",
    "TenantHoldingDepositResponse",
    "Token",
]
