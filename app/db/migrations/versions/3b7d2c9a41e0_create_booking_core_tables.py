"""create booking core tables

Revision ID: 3b7d2c9a41e0
Revises:
Create Date: 2026-10-19 09:00:00
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3b7d2c9a41e0"
down_revision = None
branch_labels = None
depends_on = None

BOOKING_STATUSES = (
    "pending_vendor_confirmation",
    "pending_deposit_payment",
    "confirmed",
    "pending_final_payment",
    "completed",
    "rejected",
    "cancelled_by_couple",
    "cancelled_by_vendor",
)


def upgrade():
    booking_status = sa.Enum(*BOOKING_STATUSES, name="bookingstatus")
    payment_type = sa.Enum("deposit", "final", "cancellation_fee", name="paymenttype")
    payment_method = sa.Enum("credit_card", "bank_transfer", "touch_n_go", name="paymentmethod")
    time_slot_status = sa.Enum("booked", "personal_time_off", name="timeslotstatus")
    cancelled_by = sa.Enum("couple", "vendor", name="cancelledby")
    refund_status = sa.Enum("not_applicable", "pending", "processed", name="refundstatus")

    # 1️⃣ Listings and projects (venue binding FK added once bookings exist)
    op.create_table(
        "service_listings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("cancellation_policy", sa.Text(), nullable=True),
        sa.Column("cancellation_fee_tiers", sa.JSON(), nullable=True),
    )
    op.create_index("ix_service_listings_id", "service_listings", ["id"])
    op.create_index("ix_service_listings_vendor_id", "service_listings", ["vendor_id"])
    op.create_index("ix_service_listings_category", "service_listings", ["category"])

    op.create_table(
        "wedding_projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("couple_id", sa.Integer(), nullable=False),
        sa.Column("project_name", sa.String(), nullable=False),
        sa.Column("wedding_date", sa.Date(), nullable=False),
        sa.Column("venue_booking_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_wedding_projects_id", "wedding_projects", ["id"])
    op.create_index("ix_wedding_projects_couple_id", "wedding_projects", ["couple_id"])
    op.create_index("ix_wedding_projects_wedding_date", "wedding_projects", ["wedding_date"])

    # 2️⃣ Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("couple_id", sa.Integer(), nullable=False),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column(
            "project_id", sa.Integer(),
            sa.ForeignKey("wedding_projects.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("reserved_date", sa.Date(), nullable=False),
        sa.Column("status", booking_status, nullable=False),
        sa.Column("deposit_due_date", sa.Date(), nullable=True),
        sa.Column("final_due_date", sa.Date(), nullable=True),
        sa.Column(
            "depends_on_venue_booking_id", sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("is_pending_venue_replacement", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("original_deposit_due_date", sa.Date(), nullable=True),
        sa.Column("original_final_due_date", sa.Date(), nullable=True),
        sa.Column("venue_cancellation_date", sa.DateTime(), nullable=True),
        sa.Column("grace_period_end_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    for column in ("id", "couple_id", "vendor_id", "project_id", "reserved_date", "status",
                   "depends_on_venue_booking_id"):
        op.create_index(f"ix_bookings_{column}", "bookings", [column])

    with op.batch_alter_table("wedding_projects") as batch:
        batch.create_foreign_key(
            "fk_project_venue_booking", "bookings", ["venue_booking_id"], ["id"], ondelete="SET NULL"
        )

    op.create_table(
        "selected_services",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "booking_id", sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "service_listing_id", sa.Integer(),
            sa.ForeignKey("service_listings.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
    )
    op.create_index("ix_selected_services_id", "selected_services", ["id"])
    op.create_index("ix_selected_services_booking_id", "selected_services", ["booking_id"])
    op.create_index("ix_selected_services_service_listing_id", "selected_services", ["service_listing_id"])

    # 3️⃣ Payments and cancellations
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "booking_id", sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("payment_type", payment_type, nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column("payment_date", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("receipt", sa.String(), nullable=True),
        sa.Column("released_to_vendor", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("released_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_booking_id", "payments", ["booking_id"])

    op.create_table(
        "cancellations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "booking_id", sa.Integer(),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, unique=True,
        ),
        sa.Column("cancelled_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("cancelled_by", cancelled_by, nullable=False),
        sa.Column("cancelled_by_user_id", sa.Integer(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancellation_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "cancellation_fee_payment_id", sa.Integer(), sa.ForeignKey("payments.id"), nullable=True
        ),
        sa.Column("refund_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("refund_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("refund_status", refund_status, nullable=False, server_default="not_applicable"),
    )
    op.create_index("ix_cancellations_id", "cancellations", ["id"])
    op.create_index("ix_cancellations_cancelled_at", "cancellations", ["cancelled_at"])
    op.create_index("ix_cancellations_refund_status", "cancellations", ["refund_status"])

    # 4️⃣ Vendor calendar
    op.create_table(
        "time_slots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("vendor_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", time_slot_status, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("vendor_id", "date", name="uq_time_slot_vendor_date"),
    )
    op.create_index("ix_time_slots_id", "time_slots", ["id"])
    op.create_index("ix_time_slots_vendor_id", "time_slots", ["vendor_id"])
    op.create_index("ix_time_slots_date", "time_slots", ["date"])


def downgrade():
    op.drop_table("time_slots")
    op.drop_table("cancellations")
    op.drop_table("payments")
    op.drop_table("selected_services")

    with op.batch_alter_table("wedding_projects") as batch:
        batch.drop_constraint("fk_project_venue_booking", type_="foreignkey")

    op.drop_table("bookings")
    op.drop_table("wedding_projects")
    op.drop_table("service_listings")

    bind = op.get_bind()
    for name in ("timeslotstatus", "refundstatus", "cancelledby", "paymentmethod", "paymenttype", "bookingstatus"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
