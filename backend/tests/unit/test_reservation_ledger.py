"""Unit tests for the inventory reservation ledger.

A reservation is settled exactly once; the second outcome is either a
no-op (same outcome) or a conflict (opposite outcome).
"""

import pytest

from storefront.models import OrderItem, ReservationStatus
from storefront.services.inventory import (
    ReservationAlreadySettledError,
    ReservationLedger,
    ReservationNotFoundError,
)


def _items() -> list[OrderItem]:
    return [
        OrderItem(product_id="PRD-TEAK-STOOL", product_name="Teak Stool", quantity=1, price=1500),
        OrderItem(product_id="PRD-JUTE-RUG", product_name="Jute Rug", quantity=2, price=800),
        OrderItem(product_id="PRD-TEAK-STOOL", product_name="Teak Stool", quantity=2, price=1500),
    ]


class TestCreateReservation:
    def test_merges_repeated_products(self, ledger: ReservationLedger) -> None:
        reservation = ledger.create_reservation("ORD-1", _items())

        quantities = {item.product_id: item.quantity for item in reservation.items}
        assert quantities == {"PRD-TEAK-STOOL": 3, "PRD-JUTE-RUG": 2}
        assert reservation.status == ReservationStatus.HELD
        assert reservation.reservation_id.startswith("RSV-")

    def test_is_persisted(self, ledger: ReservationLedger) -> None:
        reservation = ledger.create_reservation("ORD-1", _items())

        stored = ledger.get(reservation.reservation_id)
        assert stored is not None
        assert stored.order_id == "ORD-1"
        assert stored.status == ReservationStatus.HELD


class TestSettlement:
    def test_finalize_once(self, ledger: ReservationLedger) -> None:
        reservation = ledger.create_reservation("ORD-1", _items())

        assert ledger.finalize_reservation(reservation.reservation_id) is True
        assert ledger.finalize_reservation(reservation.reservation_id) is False

        stored = ledger.get(reservation.reservation_id)
        assert stored is not None
        assert stored.status == ReservationStatus.FINALIZED
        assert stored.settled_at is not None

    def test_restore_once(self, ledger: ReservationLedger) -> None:
        reservation = ledger.create_reservation("ORD-1", _items())

        assert ledger.restore_reservation(reservation.reservation_id) is True
        assert ledger.restore_reservation(reservation.reservation_id) is False

    def test_restore_after_finalize_conflicts(self, ledger: ReservationLedger) -> None:
        reservation = ledger.create_reservation("ORD-1", _items())
        ledger.finalize_reservation(reservation.reservation_id)

        with pytest.raises(ReservationAlreadySettledError) as exc_info:
            ledger.restore_reservation(reservation.reservation_id)

        assert exc_info.value.current == ReservationStatus.FINALIZED
        stored = ledger.get(reservation.reservation_id)
        assert stored is not None
        assert stored.status == ReservationStatus.FINALIZED

    def test_finalize_after_restore_conflicts(self, ledger: ReservationLedger) -> None:
        reservation = ledger.create_reservation("ORD-1", _items())
        ledger.restore_reservation(reservation.reservation_id)

        with pytest.raises(ReservationAlreadySettledError):
            ledger.finalize_reservation(reservation.reservation_id)

    def test_unknown_reservation(self, ledger: ReservationLedger) -> None:
        with pytest.raises(ReservationNotFoundError):
            ledger.finalize_reservation("RSV-DOESNOTEXIST")

        assert ledger.get("RSV-DOESNOTEXIST") is None
