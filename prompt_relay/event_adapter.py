# prompt_relay/event_adapter.py
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from prompt_relay.correlation_engine import PromptEvent, SubmitResult
from prompt_relay.entities import Prompt
from prompt_relay.errors import PromptRelayError
from prompt_relay.feedback import FeedbackDirective, render_feedback_block, replace_block_by_id

logger = logging.getLogger("prompt_relay.adapter")

Say = Callable[..., Any]
Respond = Callable[..., Any]

RESPONSE_TIME_NOTICE = "It can take up to 15s to get a response."


class PromptHandler(Protocol):
    def submit_prompt(self, event: PromptEvent) -> SubmitResult: ...

    def apply_feedback(self, prompt_id: str, delta: int, external_user_id: str) -> FeedbackDirective: ...

    def follow_up_text(self, tool_name: str) -> str: ...

    def get_prompt(self, prompt_id: str) -> Prompt: ...

    def dispatch_follow_up(
        self,
        previous_prompt_id: str,
        tool_name: str,
        *,
        message_ts: str,
        team_id: str,
        external_user_id: str,
    ) -> SubmitResult: ...

    def record_response(self, prompt_id: str, response_ts: str) -> None: ...

    def hand_off(self, prompt_id: str) -> bool: ...


def placeholder_blocks(result: SubmitResult, external_user_id: str) -> List[Dict[str, Any]]:
    greeting = (
        f"Hi <@{external_user_id}>, working on your request now :rocket:"
        if result.is_new_thread
        else "Let me check that for you. One moment! :books:"
    )
    return [
        {"type": "section", "text": {"type": "mrkdwn", "text": greeting}},
        {"type": "divider"},
        {
            "type": "context",
            "elements": [
                {"type": "plain_text", "text": RESPONSE_TIME_NOTICE},
                {"type": "plain_text", "text": f"Reference: {result.prompt_id}"},
            ],
        },
    ]


def _response_ts(response: Any) -> Optional[str]:
    if response is None:
        return None
    try:
        return response.get("ts")
    except AttributeError:
        return None


def _button_value(body: Dict[str, Any]) -> Optional[str]:
    if body.get("type") != "block_actions":
        return None
    actions = body.get("actions") or []
    if not actions:
        return None
    action = actions[0]
    if action.get("type") != "button":
        return None
    return action.get("value") or None


class EventAdapter:
    """
    Platform-facing glue. Holds a PromptHandler and does all platform I/O
    (placeholder posts, message patches) after the core call returns.

    Expected PromptRelayError outcomes are logged at DEBUG and dropped.
    """

    def __init__(self, handler: PromptHandler):
        self.handler = handler

    def handle_app_mention(self, event: Dict[str, Any], team_id: Optional[str], say: Say) -> Optional[str]:
        logger.info("Got app_mention event %s", event.get("text"))

        user = event.get("user")
        channel = event.get("channel")
        message_ts = event.get("ts")
        if not team_id or not user or not channel or not message_ts:
            logger.debug("Dropping app_mention without team, user, channel or ts")
            return None

        try:
            result = self.handler.submit_prompt(
                PromptEvent(
                    team_id=team_id,
                    channel_id=channel,
                    user_id=user,
                    message_ts=message_ts,
                    thread_ts=event.get("thread_ts"),
                    text=event.get("text") or "",
                )
            )
        except PromptRelayError as e:
            logger.debug("Dropping app_mention: %s", e)
            return None

        posted = say(
            username=result.agent_name,
            thread_ts=message_ts,
            blocks=placeholder_blocks(result, user),
            text=RESPONSE_TIME_NOTICE,
        )
        response_ts = _response_ts(posted)
        if response_ts:
            self.handler.record_response(result.prompt_id, response_ts)

        self.handler.hand_off(result.prompt_id)
        return result.prompt_id

    def handle_feedback(self, body: Dict[str, Any], delta: int, respond: Respond) -> Optional[FeedbackDirective]:
        prompt_id = _button_value(body)
        if not prompt_id:
            return None

        user_id = (body.get("user") or {}).get("id", "")
        try:
            directive = self.handler.apply_feedback(prompt_id, delta, user_id)
        except PromptRelayError as e:
            logger.debug("Dropping feedback: %s", e)
            return None

        message = body.get("message")
        if message:
            respond(
                replace_original=True,
                blocks=replace_block_by_id(
                    message.get("blocks") or [],
                    directive.block_id,
                    render_feedback_block(directive),
                ),
            )
        return directive

    def handle_follow_up(
        self,
        tool_name: str,
        body: Dict[str, Any],
        team_id: Optional[str],
        bot_user_id: Optional[str],
        say: Optional[Say],
    ) -> Optional[str]:
        previous_prompt_id = _button_value(body)
        if not previous_prompt_id or not say:
            return None

        action_id = (body.get("actions") or [{}])[0].get("action_id", "")
        if tool_name not in action_id:
            return None

        try:
            previous = self.handler.get_prompt(previous_prompt_id)
            text = self.handler.follow_up_text(tool_name)
        except PromptRelayError as e:
            logger.debug("Dropping follow-up %s: %s", tool_name, e)
            return None

        posted = say(thread_ts=previous.external_thread_ts, text=text)

        message_ts = _response_ts(posted)
        channel = body.get("channel") or {}
        if not team_id or not bot_user_id or not channel.get("id") or not message_ts:
            return None

        try:
            result = self.handler.dispatch_follow_up(
                previous_prompt_id,
                tool_name,
                message_ts=message_ts,
                team_id=team_id,
                external_user_id=bot_user_id,
            )
        except PromptRelayError as e:
            logger.debug("Dropping follow-up %s: %s", tool_name, e)
            return None

        self.handler.record_response(result.prompt_id, message_ts)
        self.handler.hand_off(result.prompt_id)
        return result.prompt_id

    def handle_explore_click(self, body: Dict[str, Any]) -> None:
        # acknowledged only; nothing is tracked yet
        return None
