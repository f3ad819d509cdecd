# prompt_relay/service.py
import logging
from typing import Mapping

from sqlalchemy.orm import sessionmaker

from prompt_relay.agent_directory import AgentDirectory, SqlAgentDirectory
from prompt_relay.correlation_engine import CorrelationEngine, PromptEvent, SubmitResult
from prompt_relay.entities import Prompt
from prompt_relay.feedback import FeedbackAggregator, FeedbackDirective
from prompt_relay.follow_up import FollowUpDispatcher
from prompt_relay.identity import IdentityResolver, InstallationIdentityResolver
from prompt_relay.job_service import JobHandoff, Scheduler
from prompt_relay.prompt_store import PromptStore

logger = logging.getLogger("prompt_relay.service")


class PromptService:
    """
    The prompt handler the platform adapter talks to. Bundles the engine,
    the feedback aggregator, the follow-up dispatcher and the job handoff
    over one store.
    """

    def __init__(
        self,
        store: PromptStore,
        engine: CorrelationEngine,
        feedback: FeedbackAggregator,
        follow_ups: FollowUpDispatcher,
        handoff: JobHandoff,
    ):
        self.store = store
        self.engine = engine
        self.feedback = feedback
        self.follow_ups = follow_ups
        self.handoff = handoff

    @property
    def follow_up_tool_names(self) -> list[str]:
        return self.follow_ups.tool_names

    def submit_prompt(self, event: PromptEvent) -> SubmitResult:
        return self.engine.submit_prompt(event)

    def apply_feedback(self, prompt_id: str, delta: int, external_user_id: str) -> FeedbackDirective:
        return self.feedback.apply_feedback(prompt_id, delta, external_user_id)

    def follow_up_text(self, tool_name: str) -> str:
        return self.follow_ups.text_for(tool_name)

    def get_prompt(self, prompt_id: str) -> Prompt:
        return self.store.get(prompt_id)

    def dispatch_follow_up(
        self,
        previous_prompt_id: str,
        tool_name: str,
        *,
        message_ts: str,
        team_id: str,
        external_user_id: str,
    ) -> SubmitResult:
        return self.follow_ups.dispatch_follow_up(
            previous_prompt_id,
            tool_name,
            message_ts=message_ts,
            team_id=team_id,
            external_user_id=external_user_id,
        )

    def record_response(self, prompt_id: str, response_ts: str) -> None:
        self.store.set_response_timestamp(prompt_id, response_ts)

    def hand_off(self, prompt_id: str) -> bool:
        prompt = self.store.get(prompt_id)
        return self.handoff.enqueue(
            prompt.prompt_id,
            prompt.organization_id,
            prompt.project_id,
            user_id=prompt.user_id,
        )


def build_prompt_service(
    session_factory: sessionmaker,
    tools: Mapping[str, str],
    scheduler: Scheduler,
    identity: IdentityResolver | None = None,
    agents: AgentDirectory | None = None,
) -> PromptService:
    store = PromptStore(session_factory)
    engine = CorrelationEngine(
        store,
        identity or InstallationIdentityResolver(session_factory),
        agents or SqlAgentDirectory(session_factory),
    )
    return PromptService(
        store=store,
        engine=engine,
        feedback=FeedbackAggregator(store),
        follow_ups=FollowUpDispatcher(store, engine, tools),
        handoff=JobHandoff(scheduler),
    )
