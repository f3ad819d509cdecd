"""Unit tests for prompt_relay.event_adapter: platform glue around the prompt service."""

import logging
from unittest.mock import MagicMock

import pytest

from prompt_relay.entities import QueueMessage
from prompt_relay.event_adapter import EventAdapter, RESPONSE_TIME_NOTICE
from prompt_relay.feedback import HUMAN_SCORE_BLOCK_ID


def _mention(**overrides):
    event = {"type": "app_mention", "user": "U1", "channel": "C1", "ts": "100", "text": "help"}
    event.update(overrides)
    return event


def _button_body(value, action_id="prompt_human_score.upvote", with_message=True):
    body = {
        "type": "block_actions",
        "user": {"id": "U7"},
        "channel": {"id": "C1"},
        "actions": [{"type": "button", "action_id": action_id, "value": value}],
    }
    if with_message:
        body["message"] = {
            "blocks": [
                {"type": "section", "block_id": "answer"},
                {"type": "actions", "block_id": HUMAN_SCORE_BLOCK_ID},
            ]
        }
    return body


def _queued(session_factory):
    session = session_factory()
    try:
        return session.query(QueueMessage).all()
    finally:
        session.close()


def _assert_dropped_at_debug(caplog):
    dropped = [
        r for r in caplog.records
        if r.name == "prompt_relay.adapter" and r.getMessage().startswith("Dropping")
    ]
    assert dropped
    assert all(r.levelno == logging.DEBUG for r in dropped)
    assert not any(r.levelno >= logging.WARNING for r in caplog.records)


@pytest.fixture
def adapter(service):
    return EventAdapter(service)


class TestAppMention:
    def test_new_thread_flow(self, adapter, service, session_factory):
        say = MagicMock(return_value={"ok": True, "ts": "100.5"})

        prompt_id = adapter.handle_app_mention(_mention(), "T1", say)

        kwargs = say.call_args.kwargs
        assert kwargs["username"] == "Data Bot"
        assert kwargs["thread_ts"] == "100"
        assert kwargs["text"] == RESPONSE_TIME_NOTICE
        assert "working on your request now" in kwargs["blocks"][0]["text"]["text"]
        assert kwargs["blocks"][2]["elements"][1]["text"] == f"Reference: {prompt_id}"

        assert service.get_prompt(prompt_id).external_response_ts == "100.5"
        rows = _queued(session_factory)
        assert len(rows) == 1
        assert rows[0].payload["prompt_id"] == prompt_id
        assert rows[0].payload["project_id"] == "P1"

    def test_in_thread_uses_continue_variant(self, adapter):
        say = MagicMock(return_value={"ts": "201.5"})
        adapter.handle_app_mention(_mention(ts="201", thread_ts="150"), "T1", say)
        text = say.call_args.kwargs["blocks"][0]["text"]["text"]
        assert text == "Let me check that for you. One moment! :books:"

    def test_duplicate_delivery_is_silent(self, adapter, session_factory, caplog):
        say = MagicMock(return_value={"ts": "100.5"})
        adapter.handle_app_mention(_mention(), "T1", say)
        caplog.clear()
        caplog.set_level(logging.DEBUG, logger="prompt_relay")

        assert adapter.handle_app_mention(_mention(), "T1", say) is None
        assert say.call_count == 1
        assert len(_queued(session_factory)) == 1
        _assert_dropped_at_debug(caplog)

    def test_unconfigured_channel_is_silent(self, adapter, session_factory, caplog):
        caplog.set_level(logging.DEBUG, logger="prompt_relay")
        say = MagicMock()
        assert adapter.handle_app_mention(_mention(channel="C9"), "T1", say) is None
        say.assert_not_called()
        assert _queued(session_factory) == []
        _assert_dropped_at_debug(caplog)

    def test_unmapped_team_is_silent(self, adapter):
        say = MagicMock()
        assert adapter.handle_app_mention(_mention(), "T9", say) is None
        say.assert_not_called()

    @pytest.mark.parametrize("team_id, user", [(None, "U1"), ("T1", None)])
    def test_missing_team_or_user_is_ignored(self, adapter, team_id, user):
        say = MagicMock()
        assert adapter.handle_app_mention(_mention(user=user), team_id, say) is None
        say.assert_not_called()

    @pytest.mark.parametrize("missing", ["channel", "ts"])
    def test_missing_channel_or_ts_is_ignored(self, adapter, session_factory, caplog, missing):
        caplog.set_level(logging.DEBUG, logger="prompt_relay")
        event = _mention()
        del event[missing]
        say = MagicMock()

        assert adapter.handle_app_mention(event, "T1", say) is None
        say.assert_not_called()
        assert _queued(session_factory) == []
        _assert_dropped_at_debug(caplog)

    def test_store_failure_propagates(self, service):
        service.store.create_if_absent = MagicMock(side_effect=RuntimeError("db down"))
        with pytest.raises(RuntimeError):
            EventAdapter(service).handle_app_mention(_mention(), "T1", MagicMock())


class TestFeedback:
    def test_upvote_patches_score_block(self, adapter, service):
        prompt_id = adapter.handle_app_mention(_mention(), "T1", MagicMock(return_value={"ts": "1"}))
        respond = MagicMock()

        directive = adapter.handle_feedback(_button_body(prompt_id), 1, respond)

        assert directive.fragment == "upvoted"
        assert service.get_prompt(prompt_id).human_score == 1
        blocks = respond.call_args.kwargs["blocks"]
        assert respond.call_args.kwargs["replace_original"] is True
        assert blocks[0]["block_id"] == "answer"
        assert blocks[1]["elements"][0]["text"] == "<@U7> upvoted this answer :thumbsup:"

    def test_up_then_down_returns_to_zero(self, adapter, service):
        prompt_id = adapter.handle_app_mention(_mention(), "T1", MagicMock(return_value={"ts": "1"}))
        adapter.handle_feedback(_button_body(prompt_id), 1, MagicMock())
        adapter.handle_feedback(_button_body(prompt_id, "prompt_human_score.downvote"), -1, MagicMock())
        assert service.get_prompt(prompt_id).human_score == 0

    def test_missing_value_is_ignored(self, adapter):
        respond = MagicMock()
        assert adapter.handle_feedback(_button_body(""), 1, respond) is None
        respond.assert_not_called()

    def test_unknown_prompt_is_silent(self, adapter, caplog):
        caplog.set_level(logging.DEBUG, logger="prompt_relay")
        respond = MagicMock()
        assert adapter.handle_feedback(_button_body("missing"), 1, respond) is None
        respond.assert_not_called()
        _assert_dropped_at_debug(caplog)

    def test_score_recorded_without_message(self, adapter, service):
        prompt_id = adapter.handle_app_mention(_mention(), "T1", MagicMock(return_value={"ts": "1"}))
        respond = MagicMock()
        adapter.handle_feedback(_button_body(prompt_id, with_message=False), -1, respond)
        respond.assert_not_called()
        assert service.get_prompt(prompt_id).human_score == -1


class TestFollowUp:
    def _first(self, adapter):
        return adapter.handle_app_mention(_mention(), "T1", MagicMock(return_value={"ts": "100.5"}))

    def test_posts_tool_text_and_links_prompt(self, adapter, service, session_factory):
        first_id = self._first(adapter)
        say = MagicMock(return_value={"ts": "120", "message": {"text": "Summarize the above"}})
        body = _button_body(first_id, action_id="execute_follow_up_tool.summarize")

        new_id = adapter.handle_follow_up("summarize", body, "T1", "B1", say)

        say.assert_called_once_with(thread_ts="100", text="Summarize the above")
        prompt = service.get_prompt(new_id)
        assert prompt.created_from_prompt_id == first_id
        assert prompt.external_prompt_ts == "120"
        assert prompt.external_response_ts == "120"
        assert prompt.external_user_id == "B1"
        assert len(_queued(session_factory)) == 2

    def test_repeat_click_on_same_message_is_silent(self, adapter, session_factory):
        first_id = self._first(adapter)
        say = MagicMock(return_value={"ts": "120"})
        body = _button_body(first_id, action_id="execute_follow_up_tool.summarize")

        adapter.handle_follow_up("summarize", body, "T1", "B1", say)
        assert adapter.handle_follow_up("summarize", body, "T1", "B1", say) is None
        assert len(_queued(session_factory)) == 2

    def test_action_for_other_tool_is_ignored(self, adapter):
        first_id = self._first(adapter)
        say = MagicMock()
        body = _button_body(first_id, action_id="execute_follow_up_tool.drill_down")
        assert adapter.handle_follow_up("summarize", body, "T1", "B1", say) is None
        say.assert_not_called()

    def test_unknown_previous_prompt_is_silent(self, adapter):
        say = MagicMock()
        body = _button_body("missing", action_id="execute_follow_up_tool.summarize")
        assert adapter.handle_follow_up("summarize", body, "T1", "B1", say) is None
        say.assert_not_called()

    def test_missing_bot_user_stops_after_post(self, adapter, session_factory):
        first_id = self._first(adapter)
        say = MagicMock(return_value={"ts": "120"})
        body = _button_body(first_id, action_id="execute_follow_up_tool.summarize")
        assert adapter.handle_follow_up("summarize", body, "T1", None, say) is None
        assert len(_queued(session_factory)) == 1
