# prompt_relay/agent_directory.py
from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from prompt_relay.entities import Agent
from prompt_relay.errors import AgentNotFoundError


@dataclass(frozen=True)
class AgentConfig:
    agent_id: Optional[str]
    project_id: str
    name: str


class AgentDirectory(Protocol):
    def find_agent_by_channel(self, organization_id: str, channel_id: str) -> AgentConfig: ...


class SqlAgentDirectory:
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def find_agent_by_channel(self, organization_id: str, channel_id: str) -> AgentConfig:
        session: Session = self.session_factory()
        try:
            agent = (
                session.query(Agent)
                .filter(
                    Agent.organization_id == str(organization_id),
                    Agent.external_channel_id == str(channel_id),
                )
                .one_or_none()
            )
            if agent is None:
                raise AgentNotFoundError(organization_id, channel_id)
            return AgentConfig(
                agent_id=agent.agent_id,
                project_id=agent.project_id,
                name=agent.name,
            )
        finally:
            session.close()
