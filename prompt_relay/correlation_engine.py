# prompt_relay/correlation_engine.py
import logging
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, field_validator

from prompt_relay.agent_directory import AgentConfig, AgentDirectory
from prompt_relay.entities import Prompt
from prompt_relay.errors import PromptLinkageError
from prompt_relay.identity import IdentityResolver
from prompt_relay.prompt_store import PromptStore

logger = logging.getLogger("prompt_relay.correlation")


class PromptEvent(BaseModel):
    team_id: str
    channel_id: str
    user_id: str
    message_ts: str
    thread_ts: Optional[str] = None
    text: str

    @field_validator("team_id", "channel_id", "user_id", "message_ts")
    @classmethod
    def _required(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("must be a non-empty string")
        return value

    @field_validator("thread_ts")
    @classmethod
    def _blank_thread_is_none(cls, value: Optional[str]) -> Optional[str]:
        # a blank thread_ts means "not in a thread", same as a missing one
        if value is None or not value.strip():
            return None
        return value.strip()


@dataclass(frozen=True)
class SubmitResult:
    prompt_id: str
    is_new_thread: bool
    agent_name: Optional[str] = None


class CorrelationEngine:
    """
    Turns an inbound platform event into exactly one Prompt row.

    Raises IdentityNotResolvedError, AgentNotFoundError or DuplicatePromptError
    for the expected drop paths; the store insert is the only side effect.
    """

    def __init__(
        self,
        store: PromptStore,
        identity: IdentityResolver,
        agents: AgentDirectory,
    ):
        self.store = store
        self.identity = identity
        self.agents = agents

    def submit_prompt(self, event: PromptEvent, created_from: Optional[Prompt] = None) -> SubmitResult:
        user_id = self.identity.resolve_user(event.team_id)

        if created_from is None:
            organization_id = self.identity.resolve_organization(event.team_id)
            agent = self.agents.find_agent_by_channel(organization_id, event.channel_id)
        else:
            # follow-ups inherit ownership from the prompt they came from
            organization_id = created_from.organization_id
            agent = AgentConfig(
                agent_id=created_from.agent_id,
                project_id=created_from.project_id,
                name="",
            )

        thread_ts = event.thread_ts or event.message_ts
        if created_from is not None and created_from.external_thread_ts != thread_ts:
            raise PromptLinkageError(
                f"Follow-up thread {thread_ts} does not match thread "
                f"{created_from.external_thread_ts} of prompt {created_from.prompt_id}"
            )

        prompt = self.store.create_if_absent(
            {
                "organization_id": organization_id,
                "project_id": agent.project_id,
                "agent_id": agent.agent_id,
                "user_id": user_id,
                "external_user_id": event.user_id,
                "external_channel_id": event.channel_id,
                "external_thread_ts": thread_ts,
                "external_prompt_ts": event.message_ts,
                "prompt_text": event.text,
                "created_from_prompt_id": created_from.prompt_id if created_from else None,
            }
        )
        logger.debug(
            "Created prompt %s (channel=%s ts=%s thread=%s)",
            prompt.prompt_id, event.channel_id, event.message_ts, thread_ts,
        )
        return SubmitResult(
            prompt_id=prompt.prompt_id,
            is_new_thread=event.thread_ts is None,
            agent_name=agent.name or None,
        )
