# prompt_relay/prompt_store.py
import logging
from typing import Any, Dict

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from prompt_relay.entities import Prompt
from prompt_relay.errors import DuplicatePromptError, PromptNotFoundError

logger = logging.getLogger("prompt_relay.store")


class PromptStore:
    """
    Durable prompt records.

    Every call opens its own short-lived session, so no lock or connection is
    held while the caller talks to the platform or the scheduler.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create_if_absent(self, fields: Dict[str, Any]) -> Prompt:
        """
        Insert a prompt keyed by (external_channel_id, external_prompt_ts).

        There is no read-before-write: the unique constraint decides, so two
        concurrent inserts for the same key end with one row and one
        DuplicatePromptError.
        """
        session: Session = self.session_factory()
        try:
            prompt = Prompt(**fields)
            session.add(prompt)
            session.commit()
            session.refresh(prompt)
            return prompt
        except IntegrityError as e:
            session.rollback()
            if not self._is_dedup_violation(session, fields):
                raise
            logger.debug("create_if_absent(): duplicate key -> %s", e.orig)
            raise DuplicatePromptError(
                fields["external_channel_id"], fields["external_prompt_ts"]
            ) from e
        finally:
            session.close()

    def _is_dedup_violation(self, session: Session, fields: Dict[str, Any]) -> bool:
        # other constraints (e.g. a dangling created_from_prompt_id) must not pass as duplicates
        existing = (
            session.query(Prompt.prompt_id)
            .filter(
                Prompt.external_channel_id == fields["external_channel_id"],
                Prompt.external_prompt_ts == fields["external_prompt_ts"],
            )
            .one_or_none()
        )
        return existing is not None

    def get(self, prompt_id: str) -> Prompt:
        session: Session = self.session_factory()
        try:
            prompt = (
                session.query(Prompt)
                .filter(Prompt.prompt_id == str(prompt_id))
                .one_or_none()
            )
            if prompt is None:
                raise PromptNotFoundError(prompt_id)
            return prompt
        finally:
            session.close()

    def count_for_key(self, channel_id: str, message_ts: str) -> int:
        """
        Number of prompts stored under one dedup key; 0 or 1 while the
        uniqueness contract holds. Ops/reconciliation query.
        """
        session: Session = self.session_factory()
        try:
            return (
                session.query(Prompt)
                .filter(
                    Prompt.external_channel_id == channel_id,
                    Prompt.external_prompt_ts == message_ts,
                )
                .count()
            )
        finally:
            session.close()

    def add_score(self, prompt_id: str, delta: int) -> int:
        """
        Add delta to human_score in a single UPDATE and return the new score.
        """
        session: Session = self.session_factory()
        try:
            result = session.execute(
                update(Prompt)
                .where(Prompt.prompt_id == str(prompt_id))
                .values(human_score=Prompt.human_score + delta)
            )
            if result.rowcount == 0:
                session.rollback()
                raise PromptNotFoundError(prompt_id)
            session.commit()

            return session.query(Prompt.human_score).filter(
                Prompt.prompt_id == str(prompt_id)
            ).scalar()
        finally:
            session.close()

    def set_response_timestamp(self, prompt_id: str, response_ts: str) -> None:
        session: Session = self.session_factory()
        try:
            result = session.execute(
                update(Prompt)
                .where(Prompt.prompt_id == str(prompt_id))
                .values(external_response_ts=response_ts)
            )
            if result.rowcount == 0:
                session.rollback()
                raise PromptNotFoundError(prompt_id)
            session.commit()
        finally:
            session.close()
