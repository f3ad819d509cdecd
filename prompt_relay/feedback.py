# prompt_relay/feedback.py
from dataclasses import dataclass
from typing import Any, Dict, List

from prompt_relay.prompt_store import PromptStore

HUMAN_SCORE_BLOCK_ID = "prompt_human_score"

_FRAGMENTS = {
    1: "upvoted",
    -1: "downvoted",
}

_FRAGMENT_TEXT = {
    "upvoted": "<@{user}> upvoted this answer :thumbsup:",
    "downvoted": "<@{user}> downvoted this answer :thumbsdown:",
}


@dataclass(frozen=True)
class FeedbackDirective:
    """Which fragment replaces the human-score block, and who acted."""
    block_id: str
    fragment: str
    external_user_id: str
    human_score: int


class FeedbackAggregator:
    def __init__(self, store: PromptStore):
        self.store = store

    def apply_feedback(self, prompt_id: str, delta: int, external_user_id: str) -> FeedbackDirective:
        if delta not in _FRAGMENTS:
            raise ValueError(f"Feedback delta must be +1 or -1, got {delta!r}")

        score = self.store.add_score(prompt_id, delta)
        return FeedbackDirective(
            block_id=HUMAN_SCORE_BLOCK_ID,
            fragment=_FRAGMENTS[delta],
            external_user_id=external_user_id,
            human_score=score,
        )


def render_feedback_block(directive: FeedbackDirective) -> Dict[str, Any]:
    return {
        "type": "context",
        "block_id": directive.block_id,
        "elements": [
            {
                "type": "mrkdwn",
                "text": _FRAGMENT_TEXT[directive.fragment].format(user=directive.external_user_id),
            },
        ],
    }


def replace_block_by_id(
    blocks: List[Dict[str, Any]],
    block_id: str,
    new_block: Dict[str, Any],
) -> List[Dict[str, Any]]:
    return [new_block if block.get("block_id") == block_id else block for block in blocks]
