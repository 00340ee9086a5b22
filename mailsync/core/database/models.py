"""SQLAlchemy table definitions for synced mailboxes and messages."""

from sqlalchemy import (
    Column,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)

from mailsync.core.database.base import metadata

# Timestamps are stored as ISO8601 strings with timezone, e.g. 2026-10-18T09:30:00+00:00

mailboxes = Table(
    "mailboxes",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("username", String(500), nullable=False, default="", server_default=""),
    Column("host", String(255), nullable=False, default="", server_default=""),
    Column("port", Integer, nullable=False, default=993, server_default="993"),
    Column("last_synced_at", String(32), nullable=True),
)

folders = Table(
    "folders",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("mailbox_id", String(255), nullable=True, index=True),
    Column("name", String(500), nullable=False, default="", server_default=""),
    Column("path", String(1000), nullable=False, default="", server_default=""),
    Column("message_count", Integer, nullable=False, default=0, server_default="0"),
    Column("last_synced_at", String(32), nullable=True),
)

messages = Table(
    "messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("mailbox_id", String(255), nullable=False),
    Column("folder_id", String(255), nullable=False, index=True),
    Column("message_id", String(998), nullable=False),
    Column("subject", String(1000), nullable=False, default="", server_default=""),
    Column("sender_name", String(500), nullable=False, default="", server_default=""),
    Column("sender_email", String(500), nullable=False, index=True),
    Column("to_addresses", Text, nullable=False, default="[]", server_default="[]"),
    Column("cc_addresses", Text, nullable=False, default="[]", server_default="[]"),
    Column("bcc_addresses", Text, nullable=False, default="[]", server_default="[]"),
    Column("text_body", Text, nullable=False, default="", server_default=""),
    Column("html_body", Text, nullable=False, default="", server_default=""),
    Column("sent_at", String(32), nullable=False),
    Column("received_at", String(32), nullable=False),
    UniqueConstraint("mailbox_id", "message_id", name="uq_messages_mailbox_message"),
    Index("ix_messages_sent_at", "sent_at"),
)

ALL_TABLES = {
    "mailboxes": mailboxes,
    "folders": folders,
    "messages": messages,
}
