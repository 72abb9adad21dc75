"""Chat session and message policy configuration."""

from pydantic import BaseModel


class ChatConfig(BaseModel, frozen=True):
    """Chat limits, history window and idle-termination settings."""

    default_max_user_message_length: int
    default_max_session_duration_minutes: int
    admin_max_message_length: int
    history_limit: int
    admin_sessions_limit: int
    idle_termination_seconds: int
    idle_sweep_batch_size: int
    idle_sweep_interval_seconds: int
    idle_termination_notice: str
