# prompt_relay/errors.py
"""
Expected outcomes of an at-least-once, loosely coupled integration.

Callers treat every PromptRelayError as a silent no-op (log at DEBUG at most).
Anything else raised from the core is unexpected and propagates unchanged.
"""


class PromptRelayError(Exception):
    pass


class IdentityNotResolvedError(PromptRelayError):
    def __init__(self, team_id: str):
        super().__init__(f"No workspace installation for team: {team_id}")
        self.team_id = team_id


class AgentNotFoundError(PromptRelayError):
    def __init__(self, organization_id: str, channel_id: str):
        super().__init__(
            f"No agent configured for channel {channel_id} in organization {organization_id}"
        )
        self.organization_id = organization_id
        self.channel_id = channel_id


class DuplicatePromptError(PromptRelayError):
    def __init__(self, channel_id: str, message_ts: str):
        super().__init__(f"Prompt already exists for channel={channel_id} ts={message_ts}")
        self.channel_id = channel_id
        self.message_ts = message_ts


class PromptNotFoundError(PromptRelayError):
    def __init__(self, prompt_id: str):
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class UnknownFollowUpToolError(PromptRelayError):
    def __init__(self, tool_name: str):
        super().__init__(f"Unknown follow-up tool: {tool_name}")
        self.tool_name = tool_name


class PromptLinkageError(ValueError):
    """A follow-up must stay in the thread of the prompt it was created from."""
