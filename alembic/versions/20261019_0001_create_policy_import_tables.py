"""create policy import tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "insurance_carriers",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("short_code", sa.String(length=30), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "insurance_branches",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("code", sa.String(length=30), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("firm_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("owner_type", sa.SmallInteger(), nullable=False, comment="1 individual, 2 organization"),
        sa.Column("first_name", sa.String(length=150), nullable=True),
        sa.Column("surname", sa.String(length=30), nullable=True),
        sa.Column("national_id", sa.String(length=11), nullable=True),
        sa.Column("tax_id", sa.String(length=10), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_firm_id", "customers", ["firm_id"], unique=False)
    op.create_index("ix_customers_firm_national_id", "customers", ["firm_id", "national_id"], unique=False)
    op.create_index("ix_customers_firm_tax_id", "customers", ["firm_id", "tax_id"], unique=False)

    op.create_table(
        "policies",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("firm_id", sa.Integer(), nullable=False),
        sa.Column("carrier_id", sa.Integer(), nullable=False),
        sa.Column("policy_no", sa.String(length=50), nullable=False),
        sa.Column("plate", sa.String(length=20), nullable=True),
        sa.Column("insured_name", sa.String(length=200), nullable=True),
        sa.Column("customer_id", sa.BigInteger(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_policies_firm_plate", "policies", ["firm_id", "plate"], unique=False)
    op.create_index("ix_policies_firm_start_date", "policies", ["firm_id", "start_date"], unique=False)

    op.create_table(
        "staged_policies",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("firm_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("carrier_id", sa.Integer(), nullable=False),
        sa.Column("policy_no", sa.String(length=50), nullable=False),
        sa.Column("endorsement_no", sa.Integer(), nullable=False),
        sa.Column("renewal_no", sa.String(length=20), nullable=True),
        sa.Column("policy_kind", sa.String(length=20), nullable=False, comment="TAHAKKUK or IPTAL"),
        sa.Column("plate", sa.String(length=20), nullable=True),
        sa.Column("issue_date", sa.DateTime(), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("end_date", sa.DateTime(), nullable=False),
        sa.Column("gross_premium", sa.Numeric(18, 2), nullable=False),
        sa.Column("net_premium", sa.Numeric(18, 2), nullable=False),
        sa.Column("tax", sa.Numeric(18, 2), nullable=False),
        sa.Column("commission", sa.Numeric(18, 2), nullable=False),
        sa.Column("product_branch_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.BigInteger(), nullable=True),
        sa.Column("national_id", sa.String(length=11), nullable=True),
        sa.Column("tax_id", sa.String(length=10), nullable=True),
        sa.Column("insured_name", sa.String(length=200), nullable=True),
        sa.Column("agent_code", sa.String(length=50), nullable=True),
        sa.Column("detection_source", sa.String(length=50), nullable=False),
        sa.Column("source_file_name", sa.String(length=255), nullable=True),
        sa.Column("import_session_id", sa.String(length=64), nullable=True),
        sa.Column("record_status", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "firm_id",
            "carrier_id",
            "policy_no",
            "endorsement_no",
            name="uq_staged_policies_firm_carrier_policy_endorsement",
        ),
    )
    op.create_index("ix_staged_policies_firm_carrier", "staged_policies", ["firm_id", "carrier_id"], unique=False)
    op.create_index(
        "ix_staged_policies_import_session_id",
        "staged_policies",
        ["import_session_id"],
        unique=False,
    )

    op.create_table(
        "policy_import_runs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("carrier_id", sa.Integer(), nullable=False),
        sa.Column("firm_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("success_count", sa.Integer(), nullable=False),
        sa.Column("duplicate_count", sa.Integer(), nullable=False),
        sa.Column("failed_count", sa.Integer(), nullable=False),
        sa.Column("new_customers_created", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, comment="running, completed, partial, failed"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id"),
    )
    op.create_index("ix_policy_import_runs_firm_id", "policy_import_runs", ["firm_id"], unique=False)
    op.create_index("ix_policy_import_runs_started_at", "policy_import_runs", ["started_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_policy_import_runs_started_at", table_name="policy_import_runs")
    op.drop_index("ix_policy_import_runs_firm_id", table_name="policy_import_runs")
    op.drop_table("policy_import_runs")
    op.drop_index("ix_staged_policies_import_session_id", table_name="staged_policies")
    op.drop_index("ix_staged_policies_firm_carrier", table_name="staged_policies")
    op.drop_table("staged_policies")
    op.drop_index("ix_policies_firm_start_date", table_name="policies")
    op.drop_index("ix_policies_firm_plate", table_name="policies")
    op.drop_table("policies")
    op.drop_index("ix_customers_firm_tax_id", table_name="customers")
    op.drop_index("ix_customers_firm_national_id", table_name="customers")
    op.drop_index("ix_customers_firm_id", table_name="customers")
    op.drop_table("customers")
    op.drop_table("insurance_branches")
    op.drop_table("insurance_carriers")
