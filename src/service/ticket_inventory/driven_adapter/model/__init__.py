from src.service.ticket_inventory.driven_adapter.model.order_model import OrderModel
from src.service.ticket_inventory.driven_adapter.model.reservation_model import ReservationModel
from src.service.ticket_inventory.driven_adapter.model.ticket_model import TicketModel
from src.service.ticket_inventory.driven_adapter.model.ticket_type_model import TicketTypeModel

__all__ = ['OrderModel', 'ReservationModel', 'TicketModel', 'TicketTypeModel']
