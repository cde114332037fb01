"""
Payment Gateway Interface

The gateway is an external collaborator. Initiation happens strictly outside
any inventory transaction; confirmation arrives later and is handed to
ConfirmPaymentUseCase, which re-validates the order before fulfilling it.
"""

from abc import ABC, abstractmethod

import attrs


@attrs.frozen
class PaymentSession:
    reference: str
    redirect_url: str


class IPaymentGateway(ABC):
    @abstractmethod
    async def initiate(self, *, order_id: int, amount: int) -> PaymentSession:
        """
        Start a checkout for `amount` minor units.

        Returns:
            Gateway reference and the URL to send the buyer to
        """
        pass
