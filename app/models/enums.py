from enum import Enum


class BookingStatus(str, Enum):
    PENDING_VENDOR_CONFIRMATION = "pending_vendor_confirmation"
    PENDING_DEPOSIT_PAYMENT = "pending_deposit_payment"
    CONFIRMED = "confirmed"
    PENDING_FINAL_PAYMENT = "pending_final_payment"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED_BY_COUPLE = "cancelled_by_couple"
    CANCELLED_BY_VENDOR = "cancelled_by_vendor"

    def allowed_next(self) -> frozenset:
        return _TRANSITIONS.get(self, frozenset())

    def can_transition_to(self, target: "BookingStatus") -> bool:
        return BookingStatus(target) in self.allowed_next()

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self in (BookingStatus.CANCELLED_BY_COUPLE, BookingStatus.CANCELLED_BY_VENDOR)


# Single source of truth for legal status changes
_TRANSITIONS = {
    BookingStatus.PENDING_VENDOR_CONFIRMATION: frozenset({
        BookingStatus.PENDING_DEPOSIT_PAYMENT,
        BookingStatus.REJECTED,
    }),
    BookingStatus.PENDING_DEPOSIT_PAYMENT: frozenset({
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED_BY_COUPLE,
        BookingStatus.CANCELLED_BY_VENDOR,
    }),
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.PENDING_FINAL_PAYMENT,
        BookingStatus.CANCELLED_BY_COUPLE,
        BookingStatus.CANCELLED_BY_VENDOR,
    }),
    BookingStatus.PENDING_FINAL_PAYMENT: frozenset({
        BookingStatus.COMPLETED,
        BookingStatus.CANCELLED_BY_COUPLE,
        BookingStatus.CANCELLED_BY_VENDOR,
    }),
}

TERMINAL_STATUSES = frozenset({
    BookingStatus.REJECTED,
    BookingStatus.CANCELLED_BY_COUPLE,
    BookingStatus.CANCELLED_BY_VENDOR,
    BookingStatus.COMPLETED,
})

ACTIVE_STATUSES = frozenset(BookingStatus) - TERMINAL_STATUSES

# Once a venue is accepted it anchors the project, paid or not
ANCHOR_VENUE_STATUSES = frozenset({
    BookingStatus.PENDING_DEPOSIT_PAYMENT,
    BookingStatus.CONFIRMED,
    BookingStatus.PENDING_FINAL_PAYMENT,
    BookingStatus.COMPLETED,
})


class PaymentType(str, Enum):
    DEPOSIT = "deposit"
    FINAL = "final"
    CANCELLATION_FEE = "cancellation_fee"


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    TOUCH_N_GO = "touch_n_go"


class TimeSlotStatus(str, Enum):
    BOOKED = "booked"
    PERSONAL_TIME_OFF = "personal_time_off"


class CancelledBy(str, Enum):
    COUPLE = "couple"
    VENDOR = "vendor"


class RefundStatus(str, Enum):
    NOT_APPLICABLE = "not_applicable"
    PENDING = "pending"
    PROCESSED = "processed"


class ServiceCategory(str, Enum):
    VENUE = "Venue"
    CATERING = "Catering"
    PHOTOGRAPHY = "Photography"
    VIDEOGRAPHY = "Videography"
    FLORIST = "Florist"
    DJ_MUSIC = "DJ_Music"
    DECORATION = "Decoration"
    OTHER = "Other"


def db_enum_values(enum_cls):
    """Persist enum values (not member names) in the database."""
    return [member.value for member in enum_cls]
