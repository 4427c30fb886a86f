"""Payment Domain Events"""

from dataclasses import dataclass

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money


@dataclass
class WalletToppedUp(DomainEvent):
    """Event: A gateway top-up was verified and credited to the wallet"""
    amount: Money = None
    balance: Money = None
    payment_id: str | None = None
