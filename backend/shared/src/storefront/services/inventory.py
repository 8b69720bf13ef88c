"""Inventory reservation ledger.

A reservation is a tentative stock hold created at checkout. It is settled
exactly once by the payment outcome: finalized on capture, restored on
failure. Settlement is a compare-and-set on ``status = held`` so concurrent
or repeated webhook deliveries can never apply both outcomes.
"""

import datetime as dt
import uuid
from collections import Counter
from typing import TYPE_CHECKING

from storefront.models import OrderItem, Reservation, ReservationStatus, ReservedItem
from storefront.utils.logging import get_logger, log_payment_operation

from .dynamodb import RESERVATIONS_TABLE
from .repositories import to_dynamo_item

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class ReservationNotFoundError(Exception):
    """Raised when settling a reservation that does not exist."""

    def __init__(self, reservation_id: str) -> None:
        self.reservation_id = reservation_id
        super().__init__(f"Reservation not found: {reservation_id}")


class ReservationAlreadySettledError(Exception):
    """Raised when a reservation was already settled the other way."""

    def __init__(self, reservation_id: str, current: ReservationStatus) -> None:
        self.reservation_id = reservation_id
        self.current = current
        super().__init__(f"Reservation {reservation_id} already {current.value}")


class ReservationLedger:
    """Creates and settles inventory reservations."""

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def _generate_reservation_id(self) -> str:
        return f"RSV-{uuid.uuid4().hex[:12].upper()}"

    def create_reservation(self, order_id: str, items: list[OrderItem]) -> Reservation:
        """Hold stock for the items of a new order.

        Quantities of repeated product lines are merged.

        Args:
            order_id: Internal order ID the hold belongs to
            items: Cart lines

        Returns:
            The stored reservation in ``held`` status.
        """
        quantities: Counter[str] = Counter()
        for item in items:
            quantities[item.product_id] += item.quantity

        reservation = Reservation(
            reservation_id=self._generate_reservation_id(),
            order_id=order_id,
            items=[
                ReservedItem(product_id=product_id, quantity=quantity)
                for product_id, quantity in quantities.items()
            ],
            created_at=dt.datetime.now(dt.UTC),
        )
        self.db.put_item(
            RESERVATIONS_TABLE,
            to_dynamo_item(reservation),
            condition_expression="attribute_not_exists(reservation_id)",
        )
        log_payment_operation(
            logger,
            "create_reservation",
            order_id=order_id,
            reservation_id=reservation.reservation_id,
            status=reservation.status.value,
            items_count=len(reservation.items),
        )
        return reservation

    def get(self, reservation_id: str) -> Reservation | None:
        item = self.db.get_item(RESERVATIONS_TABLE, {"reservation_id": reservation_id})
        if item is None:
            return None
        return Reservation.model_validate(item)

    def finalize_reservation(self, reservation_id: str) -> bool:
        """Commit the held stock after a captured payment.

        Returns:
            True if this call settled the reservation, False if it was
            already finalized.

        Raises:
            ReservationNotFoundError: Unknown reservation ID.
            ReservationAlreadySettledError: The reservation was restored.
        """
        return self._settle(reservation_id, ReservationStatus.FINALIZED)

    def restore_reservation(self, reservation_id: str) -> bool:
        """Release the held stock after a failed payment.

        Returns:
            True if this call settled the reservation, False if it was
            already restored.

        Raises:
            ReservationNotFoundError: Unknown reservation ID.
            ReservationAlreadySettledError: The reservation was finalized.
        """
        return self._settle(reservation_id, ReservationStatus.RESTORED)

    def _settle(self, reservation_id: str, target: ReservationStatus) -> bool:
        updated = self.db.set_attributes(
            RESERVATIONS_TABLE,
            {"reservation_id": reservation_id},
            {
                "status": target.value,
                "settled_at": dt.datetime.now(dt.UTC).isoformat(),
            },
            condition_expression="attribute_exists(reservation_id) AND #status = :held",
            condition_values={":held": ReservationStatus.HELD.value},
        )
        if updated is not None:
            log_payment_operation(
                logger,
                f"{target.value}_reservation",
                order_id=updated.get("order_id"),
                reservation_id=reservation_id,
                status=target.value,
            )
            return True

        current = self.get(reservation_id)
        if current is None:
            raise ReservationNotFoundError(reservation_id)
        if current.status == target:
            logger.info("Reservation %s already %s, nothing to do", reservation_id, target.value)
            return False
        raise ReservationAlreadySettledError(reservation_id, current.status)
