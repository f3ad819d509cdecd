# prompt_relay/slack_listeners.py
import logging
from typing import Iterable

from slack_bolt import App

from prompt_relay.event_adapter import EventAdapter

logger = logging.getLogger("prompt_relay.slack")

UPVOTE_ACTION_ID = "prompt_human_score.upvote"
DOWNVOTE_ACTION_ID = "prompt_human_score.downvote"
EXPLORE_ACTION_ID = "actions.explore_button_click"
FOLLOW_UP_ACTION_PREFIX = "execute_follow_up_tool."


def register_listeners(app: App, adapter: EventAdapter, tool_names: Iterable[str], enabled: bool = True) -> bool:
    """
    Wire slack_bolt listeners to the adapter. Action listeners ack before any
    store or scheduler work. Returns False when the copilot is disabled.
    """
    if not enabled:
        logger.info("AI Copilot is disabled, skipping event listener registration")
        return False

    @app.event("app_mention")
    def _on_app_mention(event, context, say):
        adapter.handle_app_mention(event, context.get("team_id"), say)

    @app.action(UPVOTE_ACTION_ID)
    def _on_upvote(ack, body, respond):
        ack()
        adapter.handle_feedback(body, 1, respond)

    @app.action(DOWNVOTE_ACTION_ID)
    def _on_downvote(ack, body, respond):
        ack()
        adapter.handle_feedback(body, -1, respond)

    @app.action(EXPLORE_ACTION_ID)
    def _on_explore_click(ack, body):
        ack()
        adapter.handle_explore_click(body)

    for tool in tool_names:
        _register_follow_up(app, adapter, tool)

    return True


def _register_follow_up(app: App, adapter: EventAdapter, tool: str) -> None:
    @app.action(f"{FOLLOW_UP_ACTION_PREFIX}{tool}")
    def _on_follow_up(ack, body, context, say):
        ack()
        adapter.handle_follow_up(
            tool,
            body,
            context.get("team_id"),
            context.get("bot_user_id"),
            say,
        )


def create_bolt_app(token: str | None, signing_secret: str | None) -> App:
    if not token or not signing_secret:
        raise RuntimeError("SLACK_BOT_TOKEN and SLACK_SIGNING_SECRET are required")
    return App(token=token, signing_secret=signing_secret)
