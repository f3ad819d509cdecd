"""Root conftest: temp-file SQLite database, seeded workspace/agent, service wiring."""

from types import SimpleNamespace

import pytest

from prompt_relay.config import create_session_factory, get_db_engine, init_db
from prompt_relay.entities import Agent, WorkspaceInstallation
from prompt_relay.job_service import QueueScheduler
from prompt_relay.service import build_prompt_service

FOLLOW_UP_TOOLS = {
    "summarize": "Summarize the above",
    "drill_down": "Break this down further",
}


@pytest.fixture
def session_factory(tmp_path):
    """A real SQLite file so several threads can share the database."""
    engine = get_db_engine(f"sqlite:///{tmp_path / 'prompts.db'}")
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def seeded(session_factory):
    """T1 -> org O1 / user USER1, and agent A1 on channel C1 for project P1."""
    session = session_factory()
    try:
        session.add(WorkspaceInstallation(external_team_id="T1", organization_id="O1", user_id="USER1"))
        session.add(
            Agent(
                agent_id="A1",
                organization_id="O1",
                project_id="P1",
                name="Data Bot",
                external_channel_id="C1",
            )
        )
        session.commit()
    finally:
        session.close()
    return SimpleNamespace(team_id="T1", organization_id="O1", user_id="USER1",
                           agent_id="A1", project_id="P1", channel_id="C1")


@pytest.fixture
def service(session_factory, seeded):
    return build_prompt_service(
        session_factory,
        tools=FOLLOW_UP_TOOLS,
        scheduler=QueueScheduler(session_factory, receiver_id="ai_scheduler"),
    )
