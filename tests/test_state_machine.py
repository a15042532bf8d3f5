import pytest

from easyagenda.core.errors import InvalidTransitionError
from easyagenda.schemas.booking import BookingStatus
from easyagenda.schemas.catalog import ConfirmationType
from easyagenda.scheduling.state_machine import check_transition, initial_status, is_terminal, status_after_payment
from tests.conftest import MONDAY, at

SLOT_END = at(MONDAY, 11)
BEFORE_END = at(MONDAY, 10, 30)
AFTER_END = at(MONDAY, 12)


class TestInitialStatus:

    def test_fee_waits_for_payment(self):
        assert initial_status(True, ConfirmationType.AUTOMATIC) == BookingStatus.PENDING_PAYMENT
        assert initial_status(True, ConfirmationType.MANUAL) == BookingStatus.PENDING_PAYMENT

    def test_without_fee_follows_confirmation_type(self):
        assert initial_status(False, ConfirmationType.AUTOMATIC) == BookingStatus.CONFIRMED
        assert initial_status(False, ConfirmationType.MANUAL) == BookingStatus.PENDING_APPROVAL

    def test_after_payment(self):
        assert status_after_payment(ConfirmationType.MANUAL) == BookingStatus.PENDING_APPROVAL
        assert status_after_payment("automatic") == BookingStatus.CONFIRMED


class TestCheckTransition:

    @pytest.mark.parametrize("current", [
        BookingStatus.PENDING_PAYMENT,
        BookingStatus.PENDING_APPROVAL,
        BookingStatus.CONFIRMED,
    ])
    def test_cancel_from_non_terminal(self, current):
        assert check_transition(current, BookingStatus.CANCELLED, SLOT_END, BEFORE_END) is True

    def test_cancel_twice_is_a_no_op(self):
        assert check_transition(BookingStatus.CANCELLED, BookingStatus.CANCELLED, SLOT_END, BEFORE_END) is False

    @pytest.mark.parametrize("current", [BookingStatus.COMPLETED, BookingStatus.NO_SHOW])
    def test_terminal_cannot_be_cancelled(self, current):
        with pytest.raises(InvalidTransitionError):
            check_transition(current, BookingStatus.CANCELLED, SLOT_END, AFTER_END)

    def test_complete_needs_slot_end(self):
        with pytest.raises(InvalidTransitionError):
            check_transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, SLOT_END, BEFORE_END)
        assert check_transition(BookingStatus.CONFIRMED, BookingStatus.COMPLETED, SLOT_END, AFTER_END)

    def test_no_show_only_from_confirmed(self):
        with pytest.raises(InvalidTransitionError):
            check_transition(BookingStatus.PENDING_APPROVAL, BookingStatus.NO_SHOW, SLOT_END, AFTER_END)
        assert check_transition(BookingStatus.CONFIRMED, BookingStatus.NO_SHOW, SLOT_END, AFTER_END)

    def test_no_skipping_approval_backwards(self):
        with pytest.raises(InvalidTransitionError):
            check_transition(BookingStatus.CONFIRMED, BookingStatus.PENDING_APPROVAL, SLOT_END, BEFORE_END)


def test_terminal_statuses():
    assert is_terminal("cancelled")
    assert is_terminal(BookingStatus.NO_SHOW)
    assert not is_terminal(BookingStatus.CONFIRMED)
