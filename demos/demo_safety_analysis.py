#!/usr/bin/env python3
"""
DEMO: SAFETY ANALYSIS - MESSAGE SCREENING AND FOLLOW-UP

Screens a chat message for bullying and unsafe content, checks a short
conversation for grooming, and asks for a parent action plan when a risk is
found. Prints monthly usage after the run.

Requirements:
- TUTELIQ_API_KEY set in the environment or a .env file
"""

import asyncio
import json
import logging
import sys
from dataclasses import asdict

from tuteliq import GroomingMessage, Tuteliq, TuteliqError, settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

CONVERSATION = [
    GroomingMessage(role="adult", content="you're really mature for your age"),
    GroomingMessage(role="child", content="thanks i guess"),
    GroomingMessage(role="adult", content="don't tell your parents we talk, ok?"),
]


def print_step(step_num: int, description: str):
    print(f"\n\033[96m\033[1m[STEP {step_num}]\033[0m {description}")


def print_data(label: str, data: dict):
    print(f"\033[1m{label}:\033[0m")
    print(json.dumps(data, indent=2, default=str))


async def main():
    async with Tuteliq() as client:
        print_step(1, "Screening a chat message")
        analysis = await client.analyze(
            "nobody wants you here, just leave",
            context="school_chat",
            external_id="demo-msg-1",
        )
        print_data("Analysis", {
            "risk_level": analysis.risk_level,
            "risk_score": analysis.risk_score,
            "summary": analysis.summary,
            "recommended_action": analysis.recommended_action,
        })

        print_step(2, "Checking a conversation for grooming")
        grooming = await client.detect_grooming(CONVERSATION, child_age=12)
        print_data("Grooming", asdict(grooming))

        if analysis.risk_level in ("high", "critical") or grooming.risk_score >= 0.7:
            print_step(3, "Requesting a parent action plan")
            plan = await client.get_action_plan(
                "My 12-year-old received messages asking to keep conversations secret",
                child_age=12,
                severity="high",
            )
            for number, step in enumerate(plan.steps, 1):
                print(f"  {number}. {step}")

        if client.usage:
            print(f"\nMonthly usage: {client.usage.used}/{client.usage.limit}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except TuteliqError as e:
        print(f"\033[91m✗ {e.kind.value}: {e}\033[0m")
        sys.exit(1)
