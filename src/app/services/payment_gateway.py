"""Payment Gateway Interface

Contract for the card / connected-account provider. Card operations report
failure through their result objects; money movement to casts raises
PaymentGatewayError so callers can record where the sequence stopped.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional


class PaymentGatewayError(Exception):
    """Raised when the provider rejects a transfer, payout or webhook"""


@dataclass
class PaymentMethodInfo:
    id: str
    card_last4: Optional[str] = None
    brand: Optional[str] = None


@dataclass
class ChargeResult:
    success: bool
    payment_intent_id: Optional[str] = None
    status: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class CaptureResult:
    success: bool
    status: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class TransferResult:
    transfer_id: str
    amount: int


@dataclass
class PayoutResult:
    payout_id: str
    amount: int
    status: Optional[str] = None


@dataclass
class PlatformBalance:
    """Available balance per currency, in minor units (yen)"""
    available: dict[str, int] = field(default_factory=dict)
    pending: dict[str, int] = field(default_factory=dict)

    def available_for(self, currency: str = "jpy") -> int:
        return self.available.get(currency, 0)


@dataclass
class ConnectedAccountStatus:
    account_id: str
    payouts_enabled: bool
    charges_enabled: bool = False
    details_submitted: bool = False


class PaymentGateway(ABC):

    @abstractmethod
    async def create_customer(self, email: Optional[str], metadata: dict[str, Any]) -> str:
        """Create a customer profile and return its id"""
        pass

    @abstractmethod
    async def list_payment_methods(self, customer_id: str) -> list[PaymentMethodInfo]:
        """Registered cards, in the provider's listed order"""
        pass

    @abstractmethod
    async def authorize_charge(
        self,
        customer_id: str,
        payment_method_id: str,
        amount: int,
        currency: str,
        description: str,
        metadata: dict[str, Any],
    ) -> ChargeResult:
        """Authorize-only (manual capture) off-session charge"""
        pass

    @abstractmethod
    async def capture_charge(self, payment_intent_id: str) -> CaptureResult:
        pass

    @abstractmethod
    async def cancel_charge(self, payment_intent_id: str) -> CaptureResult:
        pass

    @abstractmethod
    async def create_transfer(
        self, amount: int, currency: str, destination: str, metadata: dict[str, Any]
    ) -> TransferResult:
        """Move funds from the platform to a connected account"""
        pass

    @abstractmethod
    async def create_payout(
        self,
        amount: int,
        currency: str,
        connected_account_id: str,
        instant: bool,
        metadata: dict[str, Any],
    ) -> PayoutResult:
        """Pay out a connected account's balance to its bank"""
        pass

    @abstractmethod
    async def get_platform_balance(self) -> PlatformBalance:
        pass

    @abstractmethod
    async def get_connected_account_status(self, account_id: str) -> ConnectedAccountStatus:
        pass

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a webhook signature and return the event; raises PaymentGatewayError"""
        pass
