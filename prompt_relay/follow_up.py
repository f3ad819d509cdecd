# prompt_relay/follow_up.py
import logging
from pathlib import Path
from typing import Dict, Mapping

import commentjson

from prompt_relay.correlation_engine import CorrelationEngine, PromptEvent, SubmitResult
from prompt_relay.entities import Prompt
from prompt_relay.errors import UnknownFollowUpToolError
from prompt_relay.prompt_store import PromptStore

logger = logging.getLogger("prompt_relay.follow_up")


def load_follow_up_tools(path: str | Path) -> Dict[str, str]:
    """
    Load the tool-name -> instruction-text mapping from a JSON-with-comments file.
    Fails fast if the file is missing or the mapping is malformed.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Follow-up tools config file not found at '{cfg_path}'.")

    with cfg_path.open("r", encoding="utf-8") as f:
        data = commentjson.load(f)

    tools = data.get("FOLLOW_UP_TOOLS") if isinstance(data, dict) else None
    if not isinstance(tools, dict) or not tools:
        raise ValueError("Follow-up tools config missing or invalid key: FOLLOW_UP_TOOLS")

    for name, text in tools.items():
        if not isinstance(text, str) or not text.strip():
            raise ValueError(f"Follow-up tool '{name}' must map to a non-empty string")

    return dict(tools)


class FollowUpDispatcher:
    def __init__(
        self,
        store: PromptStore,
        engine: CorrelationEngine,
        tools: Mapping[str, str],
    ):
        self.store = store
        self.engine = engine
        self.tools = dict(tools)

    @property
    def tool_names(self) -> list[str]:
        return list(self.tools)

    def text_for(self, tool_name: str) -> str:
        try:
            return self.tools[tool_name]
        except KeyError:
            raise UnknownFollowUpToolError(tool_name) from None

    def previous_prompt(self, previous_prompt_id: str) -> Prompt:
        return self.store.get(previous_prompt_id)

    def dispatch_follow_up(
        self,
        previous_prompt_id: str,
        tool_name: str,
        *,
        message_ts: str,
        team_id: str,
        external_user_id: str,
    ) -> SubmitResult:
        """
        Create a prompt linked to previous_prompt_id, in the same thread, whose
        text is the configured instruction for tool_name.

        message_ts is the platform timestamp of the synthesized message, so
        triggering the same follow-up message twice is a duplicate.
        """
        previous = self.store.get(previous_prompt_id)
        text = self.text_for(tool_name)

        event = PromptEvent(
            team_id=team_id,
            channel_id=previous.external_channel_id,
            user_id=external_user_id,
            message_ts=message_ts,
            thread_ts=previous.external_thread_ts,
            text=text,
        )
        return self.engine.submit_prompt(event, created_from=previous)
