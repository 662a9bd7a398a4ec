#!/usr/bin/env python3
"""
DEMO: LIVE VOICE MODERATION

Streams a raw audio file to the Tuteliq voice endpoint in small chunks,
prints transcription flushes and safety alerts as they arrive, then ends
the session and prints the summary.

Requirements:
- TUTELIQ_API_KEY set in the environment or a .env file
- A raw audio file (16-bit PCM, 16kHz mono)

Usage:
    python demos/demo_voice_stream.py path/to/audio.raw
"""

import asyncio
import logging
import sys
from pathlib import Path

from tuteliq import (
    Tuteliq,
    TuteliqError,
    VoiceStreamConfig,
    VoiceStreamContext,
    VoiceStreamError,
    VoiceStreamHandlers,
    settings,
)

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# 100ms of 16-bit PCM at 16kHz
CHUNK_SIZE = 3200
CHUNK_INTERVAL = 0.1


class Colors:
    """ANSI color codes for terminal output."""

    HEADER = "\033[95m"
    OKBLUE = "\033[94m"
    OKGREEN = "\033[92m"
    WARNING = "\033[93m"
    FAIL = "\033[91m"
    ENDC = "\033[0m"
    BOLD = "\033[1m"


def print_header(text: str):
    print(f"\n{Colors.HEADER}{Colors.BOLD}{'=' * 80}{Colors.ENDC}")
    print(f"{Colors.HEADER}{Colors.BOLD}{text.center(80)}{Colors.ENDC}")
    print(f"{Colors.HEADER}{Colors.BOLD}{'=' * 80}{Colors.ENDC}\n")


def on_transcription(event):
    print(f"{Colors.OKBLUE}[flush {event.flush_index}]{Colors.ENDC} {event.text}")


def on_alert(event):
    print(
        f"{Colors.WARNING}{Colors.BOLD}ALERT{Colors.ENDC} {event.category} "
        f"({event.severity}, risk {event.risk_score:.2f})"
    )


def on_close(code, reason):
    logger.info(f"Voice stream closed (code: {code}, reason: {reason!r})")


async def stream_file(path: Path):
    handlers = VoiceStreamHandlers(
        on_transcription=on_transcription,
        on_alert=on_alert,
        on_close=on_close,
    )
    config = VoiceStreamConfig(
        interval_seconds=10,
        analysis_types=["bullying", "unsafe", "grooming"],
        context=VoiceStreamContext(language="en", age_group="13-15"),
    )

    async with Tuteliq() as client:
        async with client.voice_stream(config, handlers) as session:
            print(f"{Colors.OKGREEN}✓ Session ready: {session.session_id}{Colors.ENDC}")

            with path.open("rb") as audio:
                while chunk := audio.read(CHUNK_SIZE):
                    session.send_audio(chunk)
                    await asyncio.sleep(CHUNK_INTERVAL)

            summary = await asyncio.wait_for(session.end(), timeout=60)

    print_header("SESSION SUMMARY")
    print(f"Overall risk:  {summary.overall_risk} ({summary.overall_risk_score:.2f})")
    print(f"Duration:      {summary.duration_seconds:.1f}s")
    print(f"Flushes:       {summary.total_flushes}")
    print(f"Transcript:    {summary.transcript}")


async def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    path = Path(sys.argv[1])
    if not path.exists():
        print(f"{Colors.FAIL}Audio file not found: {path}{Colors.ENDC}")
        sys.exit(1)

    print_header("TUTELIQ LIVE VOICE MODERATION")

    try:
        await stream_file(path)
    except (TuteliqError, VoiceStreamError) as e:
        print(f"{Colors.FAIL}✗ {e}{Colors.ENDC}")
        sys.exit(1)
    except asyncio.TimeoutError:
        print(f"{Colors.FAIL}✗ Timed out waiting for session summary{Colors.ENDC}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
