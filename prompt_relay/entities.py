# prompt_relay/entities.py
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from typing import TypeAlias
UUID: TypeAlias = str
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkspaceInstallation(Base):
    """
    One row per platform workspace (Slack team) that installed the app.
    The installing user is the internal user prompts are attributed to.
    """
    __tablename__ = "workspace_installation"

    external_team_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    organization_id: Mapped[UUID] = mapped_column(String(36), nullable=False)
    user_id: Mapped[UUID] = mapped_column(String(36), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )


class Agent(Base):
    __tablename__ = "ai_agent"

    agent_id: Mapped[UUID] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    organization_id: Mapped[UUID] = mapped_column(String(36), nullable=False)
    project_id: Mapped[UUID] = mapped_column(String(36), nullable=False)

    name: Mapped[str] = mapped_column(
        String,
        nullable=False,
        server_default=text("''"),
    )

    # channel the agent answers in
    external_channel_id: Mapped[str | None] = mapped_column(String(64))

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "external_channel_id",
            name="uq_ai_agent_org_channel",
        ),
    )


class Prompt(Base):
    __tablename__ = "ai_prompt"

    prompt_id: Mapped[UUID] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    organization_id: Mapped[UUID] = mapped_column(String(36), nullable=False)
    project_id: Mapped[UUID] = mapped_column(String(36), nullable=False)
    agent_id: Mapped[UUID | None] = mapped_column(String(36))
    user_id: Mapped[UUID] = mapped_column(String(36), nullable=False)

    external_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    external_channel_id: Mapped[str] = mapped_column(String(64), nullable=False)
    external_thread_ts: Mapped[str] = mapped_column(String(32), nullable=False)
    external_prompt_ts: Mapped[str] = mapped_column(String(32), nullable=False)
    external_response_ts: Mapped[str | None] = mapped_column(String(32))

    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)

    human_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    created_from_prompt_id: Mapped[UUID | None] = mapped_column(
        String(36),
        ForeignKey("ai_prompt.prompt_id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    __table_args__ = (
        # dedup key: at-least-once delivery must never create a second row
        UniqueConstraint(
            "external_channel_id",
            "external_prompt_ts",
            name="uq_ai_prompt_channel_ts",
        ),
        Index("ix_ai_prompt_thread", "external_channel_id", "external_thread_ts"),
    )


class QueueMessage(Base):
    __tablename__ = "queue_messages"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    sender_id = Column(String, nullable=False)      # "<app_key>::<project_id>"
    receiver_id = Column(String, nullable=False)    # worker queue address
    type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
