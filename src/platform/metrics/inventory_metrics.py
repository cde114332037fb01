from prometheus_client import Counter, Histogram


class InventoryMetrics:
    """
    Ticket Inventory Core Metrics Collector

    Tracks the contended `sold` counter from the outside: how reservations end,
    how fulfillment calls resolve, and how much the sweeper reclaims.
    """

    def __init__(self) -> None:
        # ========== Reservation Metrics ==========
        self.reservation_requests = Counter(
            'inventory_reservation_requests_total',
            'Total reservation attempts',
            ['ticket_type_id', 'result'],  # result: held/insufficient_stock/sale_closed
        )

        self.reserved_units = Counter(
            'inventory_reserved_units_total',
            'Units moved into the sold counter by reservations',
            ['ticket_type_id'],
        )

        self.released_units = Counter(
            'inventory_released_units_total',
            'Units returned to sale',
            ['ticket_type_id', 'reason'],  # reason: explicit/order_cancelled/expired
        )

        self.reservation_duration = Histogram(
            'inventory_reservation_duration_seconds',
            'Reserve transaction duration (includes row-lock wait)',
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0],
        )

        # ========== Fulfillment Metrics ==========
        self.fulfillments = Counter(
            'inventory_fulfillments_total',
            'Order completion attempts',
            ['result'],  # result: completed/idempotent/conflict/rejected
        )

        self.tickets_issued = Counter(
            'inventory_tickets_issued_total',
            'Ticket rows minted by fulfillment',
        )

        # ========== Sweeper Metrics ==========
        self.sweeper_cancelled_orders = Counter(
            'inventory_sweeper_cancelled_orders_total',
            'Pending orders cancelled by the expiry sweeper',
        )

        self.sweeper_orphan_releases = Counter(
            'inventory_sweeper_orphan_releases_total',
            'Expired holds never attached to an order, released by the sweeper',
        )

        self.sweeper_run_duration = Histogram(
            'inventory_sweeper_run_duration_seconds',
            'Duration of one sweep pass',
            buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0],
        )

    def record_reservation(self, *, ticket_type_id: int, result: str, quantity: int = 0) -> None:
        self.reservation_requests.labels(ticket_type_id=str(ticket_type_id), result=result).inc()
        if quantity:
            self.reserved_units.labels(ticket_type_id=str(ticket_type_id)).inc(quantity)

    def record_release(self, *, ticket_type_id: int, quantity: int, reason: str) -> None:
        self.released_units.labels(ticket_type_id=str(ticket_type_id), reason=reason).inc(quantity)

    def record_fulfillment(self, *, result: str, tickets: int = 0) -> None:
        self.fulfillments.labels(result=result).inc()
        if tickets:
            self.tickets_issued.inc(tickets)


# Global metrics instance
inventory_metrics = InventoryMetrics()
