#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
generate_devotionals.py
Produces:
  - public/devotionals/<YYYY-MM-DD>.md  (one Markdown devotional per day)

Key behaviors:
- Each day is built around a random KJV verse from Proverbs (bible-api.com).
- If the verse lookup fails, Psalm 23:1 is used instead.
- Generation failures stop the run; files already written are kept.
"""

import argparse
import os
import random
import time
from datetime import date, timedelta
from typing import Optional, Tuple

import requests
from dotenv import load_dotenv
from requests import RequestException

from ministry_func.shared.generation import GenerationClient, OpenAIGenerationClient, UpstreamError
from ministry_func.shared.logging_utils import get_json_logger, log_exception

OUT_DIR = os.path.join("public", "devotionals")
BIBLE_API_URL = "https://bible-api.com/proverbs+{chapter}:{verse}?translation=kjv"
FALLBACK_VERSE = ("The LORD is my shepherd; I shall not want.", "Psalm 23:1")
PAUSE_SECONDS = 1.0

LOGGER = get_json_logger("ministry.devotionals")

DEVOTIONAL_PROMPT = (
    "You are an AI assistant creating content for a Baptist resource website. "
    "Your theology must strictly align with Southern Baptist and Independent Baptist beliefs. "
    'Here is the scripture for today from the King James Version: "{text}" ({reference}).\n\n'
    "Write a 400-word devotional based on this specific verse. The output must be in simple "
    "Markdown format. It should include a title using a heading (e.g., # A Reflection on {reference}), "
    "the devotional text, and a concluding one-sentence prayer."
)


def random_verse(session: Optional[requests.Session] = None, rng: Optional[random.Random] = None) -> Tuple[str, str]:
    """Return ``(text, reference)`` for a random Proverbs verse, or the fallback."""
    rng = rng or random.Random()
    url = BIBLE_API_URL.format(chapter=rng.randint(1, 31), verse=rng.randint(1, 30))
    http = session or requests
    try:
        resp = http.get(url, timeout=15)
        resp.raise_for_status()
        data = resp.json()
        text = (data.get("text") or "").strip()
        reference = data.get("reference") or ""
    except (RequestException, ValueError):
        log_exception(LOGGER, "Verse lookup failed; using fallback", extra={"event": "verse_lookup_error", "url": url})
        return FALLBACK_VERSE
    if not text or not reference:
        return FALLBACK_VERSE
    return text, reference


def write_devotionals(
    generator: GenerationClient,
    out_dir: str,
    days: int,
    start: Optional[date] = None,
    session: Optional[requests.Session] = None,
    pause: float = PAUSE_SECONDS,
):
    start = start or date.today()
    os.makedirs(out_dir, exist_ok=True)
    written = []
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        text, reference = random_verse(session)
        LOGGER.info("Generating devotional", extra={"event": "devotional_start", "day": day, "reference": reference})

        markdown = generator.generate_text(
            DEVOTIONAL_PROMPT.format(text=text, reference=reference),
            purpose="devotional",
        )
        path = os.path.join(out_dir, f"{day}.md")
        with open(path, "w", encoding="utf-8") as f:
            f.write(markdown)
        written.append(path)
        LOGGER.info("Devotional saved", extra={"event": "devotional_saved", "day": day, "path": path})

        if pause and offset < days - 1:
            time.sleep(pause)
    return written


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Generate daily Markdown devotionals.")
    ap.add_argument("--days", type=int, default=7, help="Number of days to generate, starting today (default: 7).")
    ap.add_argument("--out", default=OUT_DIR, help=f"Output directory (default: {OUT_DIR}).")
    default_model = os.environ.get("MINISTRY_TEXT_MODEL", "gpt-4.1")
    ap.add_argument("--model", default=default_model, help=f"OpenAI model to use (default: {default_model}).")
    return ap.parse_args()


def main():
    load_dotenv()
    args = parse_args()
    api_key = os.environ.get("OPENAI_API_KEY", "")
    if not api_key:
        raise SystemExit("OPENAI_API_KEY is not set")

    generator = OpenAIGenerationClient(api_key, text_model=args.model, timeout=60)
    try:
        paths = write_devotionals(generator, args.out, args.days)
    except UpstreamError as exc:
        raise SystemExit(f"Devotional generation failed: {exc}")

    for path in paths:
        print(path)

if __name__ == "__main__":
    main()
