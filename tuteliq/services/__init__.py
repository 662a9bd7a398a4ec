"""Long-lived connections to Tuteliq services."""

from .voice_stream import VoiceStreamSession, VoiceStreamState, open_voice_stream

__all__ = [
    "VoiceStreamSession",
    "VoiceStreamState",
    "open_voice_stream",
]
