from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    ]


def _owner():
    return sa.Column("user_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "financial_accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("balance", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="ARS"),
        sa.Column("color", sa.String(length=16), nullable=True),
        sa.Column("icon", sa.String(length=32), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_financial_accounts_user_id", "financial_accounts", ["user_id"])

    op.create_table(
        "bank_accounts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        sa.Column("account_name", sa.String(length=128), nullable=False),
        sa.Column("bank", sa.String(length=32), nullable=False),
        sa.Column("account_type", sa.String(length=16), nullable=False),
        sa.Column("account_number", sa.String(length=64), nullable=False),
        sa.Column("cbu", sa.String(length=22), nullable=True, unique=True),
        sa.Column("alias", sa.String(length=64), nullable=True, unique=True),
        sa.Column("iban", sa.String(length=34), nullable=True, unique=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="ARS"),
        sa.Column("balance", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("owner_name", sa.String(length=128), nullable=False),
        sa.Column("owner_document", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_bank_accounts_user_idempotency"),
    )
    op.create_index("ix_bank_accounts_user_id", "bank_accounts", ["user_id"])

    op.create_table(
        "digital_wallets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("wallet_name", sa.String(length=128), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="ARS"),
        sa.Column("balance", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column(
            "linked_bank_account_id",
            sa.String(length=36),
            sa.ForeignKey("bank_accounts.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_digital_wallets_user_id", "digital_wallets", ["user_id"])

    op.create_table(
        "contacts",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("idempotency_key", sa.String(length=128), nullable=True),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("first_name", sa.String(length=64), nullable=True),
        sa.Column("last_name", sa.String(length=64), nullable=True),
        sa.Column("display_name", sa.String(length=128), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("document", sa.String(length=32), nullable=True),
        sa.Column("cbu", sa.String(length=22), nullable=True),
        sa.Column("alias", sa.String(length=64), nullable=True),
        sa.Column("iban", sa.String(length=34), nullable=True),
        sa.Column("bank", sa.String(length=32), nullable=True),
        sa.Column("account_number", sa.String(length=64), nullable=True),
        sa.Column("bank_account_type", sa.String(length=16), nullable=True),
        sa.Column("is_favorite", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_contacts_user_idempotency"),
    )
    op.create_index("ix_contacts_user_id", "contacts", ["user_id"])
    op.create_index("ix_contacts_cbu", "contacts", ["cbu"])
    op.create_index("ix_contacts_alias", "contacts", ["alias"])

    op.create_table(
        "contact_folders",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("color", sa.String(length=16), nullable=True),
        sa.Column("icon", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
    )
    op.create_index("ix_contact_folders_user_id", "contact_folders", ["user_id"])

    op.create_table(
        "contact_folder_members",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "folder_id", sa.String(length=36), sa.ForeignKey("contact_folders.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("contact_id", sa.String(length=36), sa.ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.UniqueConstraint("folder_id", "contact_id", name="uq_contact_folder_member"),
    )
    op.create_index("ix_contact_folder_members_folder_id", "contact_folder_members", ["folder_id"])
    op.create_index("ix_contact_folder_members_contact_id", "contact_folder_members", ["contact_id"])

    op.create_table(
        "savings_goals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("current_amount", sa.Numeric(15, 2), nullable=False, server_default="0"),
        sa.Column("deadline", sa.DateTime(), nullable=True),
        sa.Column("priority", sa.String(length=8), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        *_timestamps(),
    )
    op.create_index("ix_savings_goals_user_id", "savings_goals", ["user_id"])
    op.create_index("ix_savings_goals_status", "savings_goals", ["status"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _owner(),
        sa.Column("idempotency_key", sa.String(length=128), nullable=False),
        sa.Column("state", sa.String(length=16), nullable=False, server_default="DRAFT"),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="ARS"),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("date", sa.DateTime(), nullable=False),
        sa.Column("from_account_id", sa.String(length=36), sa.ForeignKey("financial_accounts.id", ondelete="SET NULL")),
        sa.Column("to_account_id", sa.String(length=36), sa.ForeignKey("financial_accounts.id", ondelete="SET NULL")),
        sa.Column("from_bank_account_id", sa.String(length=36), sa.ForeignKey("bank_accounts.id", ondelete="SET NULL")),
        sa.Column("to_bank_account_id", sa.String(length=36), sa.ForeignKey("bank_accounts.id", ondelete="SET NULL")),
        sa.Column("from_wallet_id", sa.String(length=36), sa.ForeignKey("digital_wallets.id", ondelete="SET NULL")),
        sa.Column("to_wallet_id", sa.String(length=36), sa.ForeignKey("digital_wallets.id", ondelete="SET NULL")),
        sa.Column("contact_id", sa.String(length=36), sa.ForeignKey("contacts.id", ondelete="SET NULL")),
        sa.Column("transfer_recipient", sa.String(length=128), nullable=True),
        sa.Column("transfer_sender", sa.String(length=128), nullable=True),
        sa.Column("payment_method", sa.String(length=16), nullable=True),
        sa.Column("goal_id", sa.String(length=36), sa.ForeignKey("savings_goals.id", ondelete="SET NULL")),
        sa.Column("is_transfer_between_own_accounts", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_transfer_to_third_party", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_cash_withdrawal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_cash_deposit", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_transactions_user_idempotency"),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_type", "transactions", ["type"])
    op.create_index("ix_transactions_date", "transactions", ["date"])

    op.create_table(
        "transaction_metadata",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.String(length=36),
            sa.ForeignKey("transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("reference_number", sa.String(length=64), nullable=True),
        sa.Column("merchant_name", sa.String(length=128), nullable=True),
        sa.Column("internal_notes", sa.Text(), nullable=True),
        sa.Column("is_reconciled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("reconciliation_date", sa.DateTime(), nullable=True),
        sa.Column("is_flagged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("flag_reason", sa.String(length=256), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_transaction_metadata_transaction_id", "transaction_metadata", ["transaction_id"], unique=True)
    op.create_index("ix_transaction_metadata_is_flagged", "transaction_metadata", ["is_flagged"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"])
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"])
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"])


def downgrade():
    op.drop_table("audit_logs")
    op.drop_table("transaction_metadata")
    op.drop_table("transactions")
    op.drop_table("savings_goals")
    op.drop_table("contact_folder_members")
    op.drop_table("contact_folders")
    op.drop_table("contacts")
    op.drop_table("digital_wallets")
    op.drop_table("bank_accounts")
    op.drop_table("financial_accounts")
    op.drop_table("users")
