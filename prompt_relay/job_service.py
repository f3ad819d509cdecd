# prompt_relay/job_service.py
import logging
import threading
from collections import OrderedDict
from typing import Optional, Protocol

from pydantic import BaseModel
from sqlalchemy.orm import Session, sessionmaker

from prompt_relay.entities import QueueMessage

logger = logging.getLogger("prompt_relay.jobs")

PROMPT_JOB_TYPE = "slack_ai_prompt"
PROMPT_APP_KEY = "slack_ai_prompt"
PROMPT_APP_KEY_DELIM = "::"


class PromptJobPayload(BaseModel):
    prompt_id: str
    organization_id: str
    project_id: str
    user_id: Optional[str] = None


class Scheduler(Protocol):
    def enqueue(self, payload: PromptJobPayload) -> None: ...


class QueueScheduler:
    """
    Writes one queue_messages row per job. The worker polling receiver_id
    routes by the "<app_key>::<project_id>" sender prefix.
    """

    def __init__(self, session_factory: sessionmaker, receiver_id: str):
        if not receiver_id:
            raise RuntimeError("QueueScheduler requires a receiver_id")
        self.session_factory = session_factory
        self.receiver_id = receiver_id

    def enqueue(self, payload: PromptJobPayload) -> None:
        session: Session = self.session_factory()
        try:
            session.add(
                QueueMessage(
                    sender_id=f"{PROMPT_APP_KEY}{PROMPT_APP_KEY_DELIM}{payload.project_id}",
                    receiver_id=str(self.receiver_id),
                    type=PROMPT_JOB_TYPE,
                    payload=payload.model_dump(),
                )
            )
            session.commit()
        finally:
            session.close()


class JobHandoff:
    """
    Fire-and-forget submission of created prompts.

    - At most once per prompt id among the last max_tracked hand-offs of the
      process; the oldest ids are evicted first.
    - No retries: a scheduler failure propagates and the prompt stays
      created-but-not-enqueued.
    """

    def __init__(self, scheduler: Scheduler, max_tracked: int = 10_000) -> None:
        if max_tracked <= 0:
            raise ValueError("max_tracked must be positive")
        self.scheduler = scheduler
        self.max_tracked = max_tracked
        self._lock = threading.Lock()
        self._handed_off: "OrderedDict[str, None]" = OrderedDict()

    def _claim(self, prompt_id: str) -> bool:
        with self._lock:
            if prompt_id in self._handed_off:
                self._handed_off.move_to_end(prompt_id)
                return False
            self._handed_off[prompt_id] = None
            while len(self._handed_off) > self.max_tracked:
                self._handed_off.popitem(last=False)
            return True

    def tracked_count(self) -> int:
        with self._lock:
            return len(self._handed_off)

    def enqueue(
        self,
        prompt_id: str,
        organization_id: str,
        project_id: str,
        user_id: Optional[str] = None,
    ) -> bool:
        if not self._claim(str(prompt_id)):
            logger.debug("enqueue(): prompt %s already handed off, skipping", prompt_id)
            return False

        self.scheduler.enqueue(
            PromptJobPayload(
                prompt_id=str(prompt_id),
                organization_id=organization_id,
                project_id=project_id,
                user_id=user_id,
            )
        )
        logger.debug("enqueue(): prompt %s handed off", prompt_id)
        return True
