import secrets

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.service.ticket_inventory.app.interface.i_payment_gateway import (
    IPaymentGateway,
    PaymentSession,
)


class MockPaymentGatewayImpl(IPaymentGateway):
    """
    Local stand-in for the payment provider.

    Hands out a `mock_pay_<hex>` reference and a redirect URL under
    PAYMENT_REDIRECT_BASE_URL; confirmation is driven by calling
    ConfirmPaymentUseCase directly.
    """

    def __init__(self, *, redirect_base_url: str | None = None) -> None:
        self.redirect_base_url = (redirect_base_url or settings.PAYMENT_REDIRECT_BASE_URL).rstrip(
            '/'
        )

    @Logger.io
    async def initiate(self, *, order_id: int, amount: int) -> PaymentSession:
        reference = f'mock_pay_{secrets.token_hex(12)}'
        Logger.base.info(f'💳 [PAYMENT] Initiated {reference} for order {order_id} ({amount})')
        return PaymentSession(
            reference=reference,
            redirect_url=f'{self.redirect_base_url}?order_id={order_id}&reference={reference}',
        )
