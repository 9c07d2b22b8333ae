"""
预订生命周期校验规则单元测试
规则是纯函数，这里用简单对象代替 ORM 实体
"""
import pytest
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

from app.models.ontology import ReservationStatus, RoomStatus, ConsumptionStatus
from app.hotel.domain.validation import (
    Severity, Accepted, AcceptedWithWarning, Rejected, Informational
)
from app.hotel.domain.rules.reservation_rules import (
    TRANSITION_SUGGESTIONS,
    validate_check_in,
    validate_check_out,
    validate_cancellation,
    validate_no_show,
    validate_finalize_consumptions,
    validate_status_transition,
    validate_reservation_modification,
    validate_payment,
    validate_consumption_registration,
)

TODAY = date(2026, 3, 10)


# ── helpers ──────────────────────────────────────────────

def _room(status=RoomStatus.AVAILABLE, number="101"):
    return SimpleNamespace(room_number=number, status=status)


def _reservation(status=ReservationStatus.CONFIRMED, check_in_offset=0, stay=2,
                 room=None, open_checkout=False):
    check_in = TODAY + timedelta(days=check_in_offset)
    return SimpleNamespace(
        id=1,
        status=status,
        check_in_date=check_in,
        check_out_date=None if open_checkout else check_in + timedelta(days=stay),
        room=room or _room(),
    )


def _consumption(status, amount="10.00"):
    return SimpleNamespace(status=status, total_amount=Decimal(amount))


# ── validation result ───────────────────────────────────

class TestValidationResult:

    def test_accepted_without_message_has_no_severity(self):
        result = Accepted()
        assert result.valid is True
        assert result.severity is None
        assert result.to_dict() == {"valid": True, "severity": None, "message": None, "suggestions": []}

    def test_warning_is_valid(self):
        result = AcceptedWithWarning("careful", ["a", "b"])
        assert result.valid is True
        assert result.severity == Severity.WARNING
        assert result.suggestions == ("a", "b")
        assert not result.is_error

    def test_rejected_is_error(self):
        result = Rejected("no")
        assert result.valid is False
        assert result.is_error
        assert result.to_dict()["severity"] == "error"

    def test_informational_is_never_an_error(self):
        assert not Informational("nothing to do").is_error
        assert Informational("ok", valid=True).valid is True


# ── check-in ────────────────────────────────────────────

class TestValidateCheckIn:

    @pytest.mark.parametrize("status", [
        ReservationStatus.CHECKED_IN,
        ReservationStatus.CHECKED_OUT,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    ])
    def test_requires_confirmed(self, status):
        result = validate_check_in(_reservation(status=status), today=TODAY)
        assert result.is_error
        assert status.value in result.message

    @pytest.mark.parametrize("room_status,fragment", [
        (RoomStatus.OCCUPIED, "occupied"),
        (RoomStatus.MAINTENANCE, "maintenance"),
        (RoomStatus.OUT_OF_SERVICE, "out of service"),
    ])
    def test_blocking_room_status(self, room_status, fragment):
        result = validate_check_in(_reservation(room=_room(room_status)), today=TODAY)
        assert result.is_error
        assert fragment in result.message
        assert "Room 101" in result.message
        assert len(result.suggestions) == 2

    @pytest.mark.parametrize("room_status", [RoomStatus.AVAILABLE, RoomStatus.RESERVED])
    def test_non_blocking_room_status(self, room_status):
        result = validate_check_in(_reservation(room=_room(room_status)), today=TODAY)
        assert result.valid

    def test_on_scheduled_date(self):
        result = validate_check_in(_reservation(), today=TODAY)
        assert result.valid
        assert result.message is None

    def test_seven_days_early_is_warning(self):
        result = validate_check_in(_reservation(check_in_offset=7), today=TODAY)
        assert result.valid
        assert result.severity == Severity.WARNING
        assert "7 days before" in result.message

    def test_eight_days_early_is_rejected(self):
        result = validate_check_in(_reservation(check_in_offset=8), today=TODAY)
        assert result.is_error

    def test_one_day_early_or_late_is_silent(self):
        assert validate_check_in(_reservation(check_in_offset=1), today=TODAY).message is None
        assert validate_check_in(_reservation(check_in_offset=-1), today=TODAY).message is None

    def test_three_days_late_is_warning(self):
        result = validate_check_in(_reservation(check_in_offset=-3), today=TODAY)
        assert result.valid
        assert result.severity == Severity.WARNING
        assert "3 days after" in result.message

    def test_four_days_late_is_rejected(self):
        result = validate_check_in(_reservation(check_in_offset=-4), today=TODAY)
        assert result.is_error
        assert "Mark the reservation as no-show" in result.suggestions


# ── check-out ───────────────────────────────────────────

class TestValidateCheckOut:

    def test_requires_checked_in(self):
        result = validate_check_out(_reservation(), [], today=TODAY)
        assert result.is_error

    def test_pending_consumption_blocks(self):
        consumptions = [_consumption(ConsumptionStatus.BILLED)] * 2 + [
            _consumption(ConsumptionStatus.PENDING),
            _consumption(ConsumptionStatus.PENDING),
        ]
        reservation = _reservation(status=ReservationStatus.CHECKED_IN, check_in_offset=-2)
        result = validate_check_out(reservation, consumptions, today=TODAY)
        assert result.is_error
        assert "2 pending consumption(s)" in result.message

    def test_on_time(self):
        reservation = _reservation(status=ReservationStatus.CHECKED_IN, check_in_offset=-2)
        result = validate_check_out(reservation, [_consumption(ConsumptionStatus.BILLED)], today=TODAY)
        assert result.valid
        assert result.message is None

    def test_early_checkout_warning(self):
        reservation = _reservation(status=ReservationStatus.CHECKED_IN, check_in_offset=-1, stay=4)
        result = validate_check_out(reservation, [], today=TODAY)
        assert result.severity == Severity.WARNING
        assert "3 days before" in result.message

    def test_one_day_early_is_silent(self):
        reservation = _reservation(status=ReservationStatus.CHECKED_IN, check_in_offset=-1, stay=2)
        assert validate_check_out(reservation, [], today=TODAY).message is None

    def test_late_checkout_warning(self):
        reservation = _reservation(status=ReservationStatus.CHECKED_IN, check_in_offset=-3, stay=2)
        result = validate_check_out(reservation, [], today=TODAY)
        assert result.valid
        assert result.severity == Severity.WARNING
        assert "1 day(s) after" in result.message

    def test_open_checkout_skips_date_checks(self):
        reservation = _reservation(status=ReservationStatus.CHECKED_IN, check_in_offset=-30,
                                   open_checkout=True)
        result = validate_check_out(reservation, None, today=TODAY)
        assert result.valid
        assert result.message is None


# ── cancellation ────────────────────────────────────────

class TestValidateCancellation:

    @pytest.mark.parametrize("status", [
        ReservationStatus.CHECKED_OUT,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    ])
    def test_terminal_rejected(self, status):
        assert validate_cancellation(_reservation(status=status), today=TODAY).is_error

    def test_checked_in_warns(self):
        result = validate_cancellation(_reservation(status=ReservationStatus.CHECKED_IN), today=TODAY)
        assert result.valid
        assert result.severity == Severity.WARNING
        assert len(result.suggestions) == 3

    def test_late_cancellation_warns(self):
        result = validate_cancellation(_reservation(check_in_offset=-1), today=TODAY)
        assert result.severity == Severity.WARNING
        assert "after its scheduled check-in date" in result.message

    def test_cancellation_on_check_in_day_is_clean(self):
        result = validate_cancellation(_reservation(), today=TODAY)
        assert result.valid
        assert result.message is None


# ── no-show ─────────────────────────────────────────────

class TestValidateNoShow:

    def test_requires_confirmed(self):
        result = validate_no_show(_reservation(status=ReservationStatus.CHECKED_IN), today=TODAY)
        assert result.is_error

    def test_before_check_in_date_rejected(self):
        result = validate_no_show(_reservation(check_in_offset=1), today=TODAY)
        assert result.is_error
        assert "Wait until the check-in date" in result.suggestions

    def test_on_check_in_date(self):
        assert validate_no_show(_reservation(), today=TODAY).message is None

    def test_seven_days_is_silent(self):
        assert validate_no_show(_reservation(check_in_offset=-7), today=TODAY).message is None

    def test_stale_no_show_warns(self):
        result = validate_no_show(_reservation(check_in_offset=-8), today=TODAY)
        assert result.valid
        assert result.severity == Severity.WARNING
        assert "8 days ago" in result.message


# ── finalize consumptions ───────────────────────────────

class TestValidateFinalizeConsumptions:

    def test_empty_list_is_informational(self):
        result = validate_finalize_consumptions([])
        assert result.valid is False
        assert result.severity == Severity.INFO
        assert not result.is_error

    def test_nothing_pending_is_informational(self):
        result = validate_finalize_consumptions([_consumption(ConsumptionStatus.BILLED)])
        assert result.valid is False
        assert result.severity == Severity.INFO

    def test_one_pending_among_ten(self):
        consumptions = [_consumption(ConsumptionStatus.BILLED) for _ in range(9)]
        consumptions.append(_consumption(ConsumptionStatus.PENDING))
        result = validate_finalize_consumptions(consumptions)
        assert result.valid is True
        assert result.severity == Severity.INFO
        assert result.message.startswith("1 pending")


# ── status transition dispatcher ────────────────────────

class TestValidateStatusTransition:

    def test_table_violation_uses_specific_message(self):
        reservation = _reservation()
        result = validate_status_transition(
            ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_OUT, reservation, [], today=TODAY
        )
        assert result.is_error
        assert result.message == "Cannot check out without checking in first."
        assert result.suggestions == TRANSITION_SUGGESTIONS

    @pytest.mark.parametrize("terminal", [
        ReservationStatus.CHECKED_OUT,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    ])
    def test_terminal_rejects_everything(self, terminal):
        reservation = _reservation(status=terminal)
        for target in ReservationStatus:
            result = validate_status_transition(terminal, target, reservation, [], today=TODAY)
            assert result.is_error

    def test_dispatches_to_check_out_rules(self):
        reservation = _reservation(status=ReservationStatus.CHECKED_IN, check_in_offset=-2)
        result = validate_status_transition(
            ReservationStatus.CHECKED_IN, ReservationStatus.CHECKED_OUT, reservation,
            [_consumption(ConsumptionStatus.PENDING)], today=TODAY
        )
        assert result.is_error
        assert "1 pending consumption(s)" in result.message

    def test_dispatches_to_check_in_rules(self):
        reservation = _reservation(room=_room(RoomStatus.OCCUPIED))
        result = validate_status_transition(
            "confirmed", "checked_in", reservation, None, today=TODAY
        )
        assert result.is_error
        assert "occupied" in result.message


# ── modification / payment / consumption ────────────────

class TestOtherRules:

    def test_modification_of_terminal_rejected(self):
        result = validate_reservation_modification(_reservation(status=ReservationStatus.CANCELLED))
        assert result.is_error
        assert "cancelled" in result.message

    def test_modification_after_check_in_warns(self):
        result = validate_reservation_modification(_reservation(status=ReservationStatus.CHECKED_IN))
        assert result.valid
        assert result.severity == Severity.WARNING

    def test_payment_rules(self):
        assert validate_payment(_reservation(), Decimal("10")).valid
        assert validate_payment(_reservation(), 0).is_error
        assert validate_payment(_reservation(status=ReservationStatus.NO_SHOW), 10).is_error

    def test_consumption_registration(self):
        checked_in = _reservation(status=ReservationStatus.CHECKED_IN)
        product = SimpleNamespace(name="Beer", active=True, stock_quantity=3)
        assert validate_consumption_registration(checked_in, product, 3).valid
        assert validate_consumption_registration(checked_in, product, 4).is_error
        assert validate_consumption_registration(checked_in, product, 0).is_error
        assert validate_consumption_registration(_reservation(), product, 1).is_error
        inactive = SimpleNamespace(name="Old", active=False, stock_quantity=3)
        assert validate_consumption_registration(checked_in, inactive, 1).is_error
