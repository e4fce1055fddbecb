"""Inventory ledger - the authority on how many tickets of a type remain.

sold_count is only ever changed here, through single conditional updates, so
the check and the increment cannot be separated by another writer.
"""

import logging

from ticketing.conf import TicketingPolicy
from ticketing.domain.errors import (
    InsufficientInventoryError,
    InventoryUnderflowError,
    TicketInactiveError,
    TicketTypeNotFoundError,
)
from ticketing.domain.models import TicketType
from ticketing.domain.value_objects import TicketTypeId
from ticketing.stores.interfaces import InventoryStore

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Reserve and release ticket inventory."""

    def __init__(self, store: InventoryStore, policy: TicketingPolicy | None = None) -> None:
        self._store = store
        self._policy = policy or TicketingPolicy()

    def acquire(self, ticket_type_id: TicketTypeId) -> TicketType | None:
        """Lock a ticket type for the enclosing transaction and return its current state.

        Raises:
            InventoryContendedError: If the lock wait exceeds the configured timeout.
        """
        return self._store.lock_ticket_type(
            ticket_type_id, self._policy.inventory_lock_timeout_ms
        )

    def availability(self, ticket_type_id: TicketTypeId) -> int:
        """Return the number of unsold tickets.

        Raises:
            TicketTypeNotFoundError: If the ticket type does not exist.
        """
        ticket_type = self._store.get_ticket_type(ticket_type_id)
        if ticket_type is None:
            raise TicketTypeNotFoundError(str(ticket_type_id.value))
        return ticket_type.available

    def reserve(self, ticket_type_id: TicketTypeId, quantity: int) -> None:
        """Take quantity tickets out of the pool, or nothing at all.

        Raises:
            TicketTypeNotFoundError: If the ticket type does not exist.
            TicketInactiveError: If the ticket type is not on sale.
            InsufficientInventoryError: If fewer than quantity tickets remain.
        """
        if quantity < 1:
            raise ValueError("quantity must be positive")
        with self._store.atomic():
            if self._store.increment_sold_count(ticket_type_id, quantity):
                return
            ticket_type = self._store.get_ticket_type(ticket_type_id)
        if ticket_type is None:
            raise TicketTypeNotFoundError(str(ticket_type_id.value))
        if not ticket_type.is_active:
            raise TicketInactiveError(str(ticket_type_id.value))
        raise InsufficientInventoryError(ticket_type.available)

    def release(self, ticket_type_id: TicketTypeId, quantity: int) -> None:
        """Return quantity tickets to the pool.

        Raises:
            TicketTypeNotFoundError: If the ticket type does not exist.
            InventoryUnderflowError: If fewer than quantity tickets were sold.
        """
        if quantity < 1:
            raise ValueError("quantity must be positive")
        with self._store.atomic():
            if self._store.decrement_sold_count(ticket_type_id, quantity):
                return
            ticket_type = self._store.get_ticket_type(ticket_type_id)
        if ticket_type is None:
            raise TicketTypeNotFoundError(str(ticket_type_id.value))
        logger.critical(
            "Inventory underflow on ticket type %s: releasing %s with sold_count %s",
            ticket_type_id.value,
            quantity,
            ticket_type.sold_count.value,
        )
        raise InventoryUnderflowError(str(ticket_type_id.value), quantity)
