"""users, profiles, locations, ads, applications and messages"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "initial_20241001"
down_revision = None
branch_labels = None
depends_on = None


POSTER_CATEGORIES = ("private", "business")
APPLICATION_STATUSES = ("pending", "accepted", "rejected", "rejected_read")


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("username", sa.String(length=80), nullable=True),
        sa.Column("email_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("municipality", sa.String(length=120), nullable=True),
        sa.Column("avatar_url", sa.String(length=512), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("region", sa.String(length=120), nullable=False),
        sa.Column("municipality", sa.String(length=120), nullable=True),
        sa.UniqueConstraint("region", "municipality", name="uq_locations_region_municipality"),
    )
    op.create_index("ix_locations_region", "locations", ["region"])

    poster_category_enum = sa.Enum(*POSTER_CATEGORIES, name="poster_category_enum")
    op.create_table(
        "ads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("region", sa.String(length=120), nullable=False),
        sa.Column("municipality", sa.String(length=120), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("category", sa.String(length=80), nullable=True),
        sa.Column("poster_category", poster_category_enum, nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_ads_region", "ads", ["region"])
    op.create_index("ix_ads_municipality", "ads", ["municipality"])
    op.create_index("ix_ads_user_id", "ads", ["user_id"])
    op.create_index("ix_ads_created_at", "ads", ["created_at"])

    application_status_enum = sa.Enum(*APPLICATION_STATUSES, name="application_status_enum")
    op.create_table(
        "applications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("ad_id", sa.Integer(), sa.ForeignKey("ads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("applicant_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("poster_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", application_status_enum, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("ad_id", "applicant_id", name="uq_applications_ad_applicant"),
    )
    op.create_index("ix_applications_ad_id", "applications", ["ad_id"])
    op.create_index("ix_applications_applicant_id", "applications", ["applicant_id"])
    op.create_index("ix_applications_poster_id", "applications", ["poster_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "application_id",
            sa.Integer(),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("receiver_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("is_system_message", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("for_applicant_only", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_status", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_messages_application_id", "messages", ["application_id"])
    op.create_index("ix_messages_receiver_id", "messages", ["receiver_id"])


def downgrade():
    op.drop_index("ix_messages_receiver_id", table_name="messages")
    op.drop_index("ix_messages_application_id", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_applications_poster_id", table_name="applications")
    op.drop_index("ix_applications_applicant_id", table_name="applications")
    op.drop_index("ix_applications_ad_id", table_name="applications")
    op.drop_table("applications")
    sa.Enum(*APPLICATION_STATUSES, name="application_status_enum").drop(
        op.get_bind(), checkfirst=True
    )

    op.drop_index("ix_ads_created_at", table_name="ads")
    op.drop_index("ix_ads_user_id", table_name="ads")
    op.drop_index("ix_ads_municipality", table_name="ads")
    op.drop_index("ix_ads_region", table_name="ads")
    op.drop_table("ads")
    sa.Enum(*POSTER_CATEGORIES, name="poster_category_enum").drop(
        op.get_bind(), checkfirst=True
    )

    op.drop_index("ix_locations_region", table_name="locations")
    op.drop_table("locations")
    op.drop_table("profiles")
    op.drop_table("users")
