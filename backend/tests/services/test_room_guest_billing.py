"""
房间、客人、账单服务测试
"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from app.models.ontology import (
    ActivityLog, ClientType, Payment, PaymentMethod, PaymentStatus, RoomStatus, ReservationStatus,
    SystemLog
)
from app.models.schemas import GuestCreate, GuestUpdate, PaymentCreate, RoomCreate, RoomUpdate
from app.hotel.domain.validation import EntityNotFoundError, ReservationValidationError
from app.services.billing_service import BillingService
from app.services.guest_service import GuestService
from app.services.room_service import RoomService

from conftest import TODAY


# ── rooms ───────────────────────────────────────────────

class TestRoomService:

    def test_create_and_lookup(self, db_session):
        service = RoomService(db_session)
        room = service.create_room(RoomCreate(
            room_number="201", room_type="deluxe", capacity=3,
            price_per_night=Decimal("350.00"), amenities=["wifi", "minibar"],
        ))
        assert room.status == RoomStatus.AVAILABLE
        assert service.get_room_by_number("201").id == room.id
        assert room.amenities == ["wifi", "minibar"]

    def test_duplicate_number(self, db_session, sample_room):
        with pytest.raises(ValueError):
            RoomService(db_session).create_room(RoomCreate(
                room_number="101", room_type="standard", capacity=2, price_per_night=Decimal("1")
            ))

    def test_update(self, db_session, sample_room):
        room = RoomService(db_session).update_room(sample_room.id, RoomUpdate(price_per_night=Decimal("220.00")))
        assert room.price_per_night == Decimal("220.00")

    def test_manual_status_change_is_logged(self, db_session, sample_room):
        room = RoomService(db_session).update_room_status(sample_room.id, RoomStatus.MAINTENANCE, "Leaking tap")
        assert room.status == RoomStatus.MAINTENANCE

        log = db_session.query(ActivityLog).one()
        assert log.action_type == "room_status_changed"
        assert log.details["old_status"] == "available"
        assert log.details["new_status"] == "maintenance"

    def test_occupied_room_cannot_be_released_manually(self, db_session, sample_room):
        sample_room.status = RoomStatus.OCCUPIED
        db_session.commit()
        with pytest.raises(ValueError):
            RoomService(db_session).update_room_status(sample_room.id, RoomStatus.AVAILABLE)

    def test_occupied_only_through_check_in(self, db_session, sample_room):
        with pytest.raises(ValueError):
            RoomService(db_session).update_room_status(sample_room.id, RoomStatus.OCCUPIED)

    def test_unknown_room(self, db_session):
        with pytest.raises(EntityNotFoundError):
            RoomService(db_session).update_room_status(999, RoomStatus.MAINTENANCE)

    def test_status_summary(self, db_session, sample_room):
        service = RoomService(db_session)
        service.create_room(RoomCreate(
            room_number="102", room_type="standard", capacity=2,
            price_per_night=Decimal("200.00"), status=RoomStatus.OUT_OF_SERVICE,
        ))
        summary = service.get_room_status_summary()
        assert summary["total"] == 2
        assert summary["available"] == 1
        assert summary["out_of_service"] == 1
        assert summary["occupied"] == 0


# ── guests ──────────────────────────────────────────────

class TestGuestService:

    def test_company_guest(self, db_session):
        guest = GuestService(db_session).create_guest(GuestCreate(
            client_type=ClientType.COMPANY, company_name="Acme Ltda", email="billing@acme.example",
        ))
        assert guest.display_name == "Acme Ltda"

    def test_company_requires_name(self):
        with pytest.raises(ValueError):
            GuestCreate(client_type=ClientType.COMPANY)

    def test_individual_requires_full_name(self):
        with pytest.raises(ValueError):
            GuestCreate(client_type=ClientType.INDIVIDUAL, first_name="Ana")

    def test_duplicate_email(self, db_session, sample_guest):
        with pytest.raises(ValueError, match="already registered"):
            GuestService(db_session).create_guest(GuestCreate(
                first_name="Other", last_name="Person", email="maria@example.com",
            ))

    def test_update_keeps_own_email(self, db_session, sample_guest):
        guest = GuestService(db_session).update_guest(sample_guest.id, GuestUpdate(
            email="maria@example.com", phone="+55 11 90000-0000",
        ))
        assert guest.phone == "+55 11 90000-0000"

    def test_search(self, db_session, sample_guest):
        service = GuestService(db_session)
        assert service.get_guests(search="Mar") == [sample_guest]
        assert service.get_guests(client_type=ClientType.COMPANY) == []

    def test_reservation_history(self, db_session, make_reservation, sample_guest):
        older = make_reservation(check_in_date=TODAY - timedelta(days=30))
        newer = make_reservation()
        assert GuestService(db_session).get_guest_reservations(sample_guest.id) == [newer, older]


# ── billing ─────────────────────────────────────────────

class TestBillingService:

    @pytest.fixture
    def payments(self, db_session, make_reservation, sample_guest):
        reservation = make_reservation(status=ReservationStatus.CHECKED_OUT)
        paid_at = datetime(2026, 3, 10, 11, 0)
        rows = [
            Payment(reservation_id=reservation.id, guest_id=sample_guest.id, amount=Decimal("400.00"),
                    payment_method=PaymentMethod.PIX, payment_date=paid_at),
            Payment(reservation_id=reservation.id, guest_id=sample_guest.id, amount=Decimal("50.00"),
                    payment_method=PaymentMethod.CASH, payment_date=paid_at),
            Payment(reservation_id=reservation.id, guest_id=sample_guest.id, amount=Decimal("70.00"),
                    payment_method=PaymentMethod.CASH, payment_date=paid_at,
                    payment_status=PaymentStatus.REFUNDED),
            Payment(reservation_id=reservation.id, guest_id=sample_guest.id, amount=Decimal("90.00"),
                    payment_method=PaymentMethod.CASH, payment_date=paid_at - timedelta(days=1)),
        ]
        db_session.add_all(rows)
        db_session.commit()
        return reservation

    def test_daily_revenue(self, db_session, payments):
        revenue = BillingService(db_session).calculate_daily_revenue(TODAY)
        assert revenue["count"] == 2
        assert revenue["total"] == Decimal("450.00")
        assert revenue["by_method"]["pix"] == Decimal("400.00")
        assert revenue["by_method"]["cash"] == Decimal("50.00")
        assert revenue["by_method"]["credit_card"] == Decimal("0")

    def test_payments_by_reservation(self, db_session, payments):
        service = BillingService(db_session)
        assert len(service.get_payments(reservation_id=payments.id)) == 4
        assert service.get_payments(reservation_id=999) == []

    def test_register_payment(self, db_session, make_reservation):
        reservation = make_reservation(status=ReservationStatus.CHECKED_IN)
        payment = BillingService(db_session).create_payment(PaymentCreate(
            reservation_id=reservation.id, amount=Decimal("120.00"),
            payment_method=PaymentMethod.CREDIT_CARD, transaction_id="TX-42",
        ))
        assert payment.payment_status == PaymentStatus.COMPLETED
        assert payment.guest_id == reservation.guest_id
        assert payment.transaction_id == "TX-42"
        assert reservation.reservation_code in payment.description

        log = db_session.query(ActivityLog).one()
        assert log.action_type == "payment_registered"
        assert log.entity_id == reservation.id
        assert log.details["amount"] == 120.0
        assert db_session.query(SystemLog).filter(SystemLog.entity_id == payment.id).count() == 1

    @pytest.mark.parametrize("status", [ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW])
    def test_register_payment_rejected_by_status(self, db_session, make_reservation, status):
        reservation = make_reservation(status=status)
        with pytest.raises(ReservationValidationError):
            BillingService(db_session).create_payment(PaymentCreate(
                reservation_id=reservation.id, amount=Decimal("10.00"),
            ))
        assert db_session.query(Payment).count() == 0
        assert db_session.query(ActivityLog).count() == 0

    def test_register_payment_rejects_negative_amount(self, db_session, make_reservation):
        reservation = make_reservation()
        with pytest.raises(ReservationValidationError, match="greater than zero"):
            BillingService(db_session).create_payment(PaymentCreate(
                reservation_id=reservation.id, amount=Decimal("-5.00"),
            ))

    def test_register_payment_unknown_reservation(self, db_session):
        with pytest.raises(EntityNotFoundError):
            BillingService(db_session).create_payment(PaymentCreate(
                reservation_id=999, amount=Decimal("10.00"),
            ))
