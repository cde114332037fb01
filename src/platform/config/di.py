"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html

Use cases are Factories: every resolution gets a fresh Unit of Work, so two
concurrent callers never share a session.
"""

from datetime import timedelta

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.ticket_inventory.app.command.cancel_order_use_case import CancelOrderUseCase
from src.service.ticket_inventory.app.command.complete_order_use_case import (
    CompleteOrderUseCase,
)
from src.service.ticket_inventory.app.command.confirm_payment_use_case import (
    ConfirmPaymentUseCase,
)
from src.service.ticket_inventory.app.command.create_order_use_case import CreateOrderUseCase
from src.service.ticket_inventory.app.command.create_ticket_type_use_case import (
    CreateTicketTypeUseCase,
)
from src.service.ticket_inventory.app.command.delete_order_use_case import DeleteOrderUseCase
from src.service.ticket_inventory.app.command.delete_ticket_type_use_case import (
    DeleteTicketTypeUseCase,
)
from src.service.ticket_inventory.app.command.initiate_payment_use_case import (
    InitiatePaymentUseCase,
)
from src.service.ticket_inventory.app.command.redeem_ticket_use_case import RedeemTicketUseCase
from src.service.ticket_inventory.app.command.refund_order_use_case import RefundOrderUseCase
from src.service.ticket_inventory.app.command.release_reservation_use_case import (
    ReleaseReservationUseCase,
)
from src.service.ticket_inventory.app.command.reserve_tickets_use_case import (
    ReserveTicketsUseCase,
)
from src.service.ticket_inventory.app.command.sweep_expired_orders_use_case import (
    SweepExpiredOrdersUseCase,
)
from src.service.ticket_inventory.app.command.update_order_status_use_case import (
    UpdateOrderStatusUseCase,
)
from src.service.ticket_inventory.app.command.update_ticket_type_use_case import (
    UpdateTicketTypeUseCase,
)
from src.service.ticket_inventory.app.query.get_order_use_case import GetOrderUseCase
from src.service.ticket_inventory.app.query.get_ticket_type_availability_use_case import (
    GetTicketTypeAvailabilityUseCase,
)
from src.service.ticket_inventory.app.query.list_orders_use_case import ListOrdersUseCase
from src.service.ticket_inventory.app.query.list_tickets_use_case import ListTicketsUseCase
from src.service.ticket_inventory.app.query.validate_ticket_use_case import ValidateTicketUseCase
from src.service.ticket_inventory.driven_adapter.payment.mock_payment_gateway_impl import (
    MockPaymentGatewayImpl,
)


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (uses AsyncEngineManager unless a session maker is overridden in)
    database = providers.Singleton(Database)

    # Unit of Work - one per use case instance
    uow = providers.Factory(
        SqlAlchemyUnitOfWork,
        session_factory=database.provided.session_maker.call(),
    )

    # External collaborators
    payment_gateway = providers.Singleton(
        MockPaymentGatewayImpl,
        redirect_base_url=config_service.provided.PAYMENT_REDIRECT_BASE_URL,
    )

    # Ticket Type Ledger
    create_ticket_type_use_case = providers.Factory(CreateTicketTypeUseCase, uow=uow)
    update_ticket_type_use_case = providers.Factory(UpdateTicketTypeUseCase, uow=uow)
    delete_ticket_type_use_case = providers.Factory(DeleteTicketTypeUseCase, uow=uow)

    # Reservation Manager
    reserve_tickets_use_case = providers.Factory(
        ReserveTicketsUseCase,
        uow=uow,
        default_ttl=providers.Factory(
            timedelta, minutes=config_service.provided.RESERVATION_TTL_MINUTES
        ),
        max_quantity=config_service.provided.MAX_TICKETS_PER_RESERVATION,
    )
    release_reservation_use_case = providers.Factory(ReleaseReservationUseCase, uow=uow)

    # Order State Machine
    create_order_use_case = providers.Factory(
        CreateOrderUseCase,
        uow=uow,
        max_order_number_attempts=config_service.provided.ORDER_NUMBER_MAX_ATTEMPTS,
    )
    cancel_order_use_case = providers.Factory(CancelOrderUseCase, uow=uow)
    refund_order_use_case = providers.Factory(RefundOrderUseCase, uow=uow)
    delete_order_use_case = providers.Factory(DeleteOrderUseCase, uow=uow)
    update_order_status_use_case = providers.Factory(UpdateOrderStatusUseCase, uow=uow)
    redeem_ticket_use_case = providers.Factory(RedeemTicketUseCase, uow=uow)

    # Fulfillment Transaction
    complete_order_use_case = providers.Factory(CompleteOrderUseCase, uow=uow)
    initiate_payment_use_case = providers.Factory(
        InitiatePaymentUseCase, uow=uow, payment_gateway=payment_gateway
    )
    confirm_payment_use_case = providers.Factory(
        ConfirmPaymentUseCase, uow=uow, complete_order_use_case=complete_order_use_case
    )

    # Expiry Sweeper
    sweep_expired_orders_use_case = providers.Factory(
        SweepExpiredOrdersUseCase,
        uow=uow,
        ttl=providers.Factory(timedelta, minutes=config_service.provided.RESERVATION_TTL_MINUTES),
        batch_size=config_service.provided.SWEEP_BATCH_SIZE,
    )

    # Queries
    get_ticket_type_availability_use_case = providers.Factory(
        GetTicketTypeAvailabilityUseCase,
        uow=uow,
        sweep_use_case=sweep_expired_orders_use_case,
        lazy_sweep=config_service.provided.LAZY_SWEEP_ON_READ,
    )
    get_order_use_case = providers.Factory(GetOrderUseCase, uow=uow)
    list_orders_use_case = providers.Factory(ListOrdersUseCase, uow=uow)
    list_tickets_use_case = providers.Factory(ListTicketsUseCase, uow=uow)
    validate_ticket_use_case = providers.Factory(ValidateTicketUseCase, uow=uow)


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()
