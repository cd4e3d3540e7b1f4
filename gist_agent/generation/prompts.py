"""Prompt templates for gist generation."""

import re
from datetime import date
from typing import Dict, List, Optional

from gist_agent.types import SourceArticle

CELEBRITY_PATTERN = re.compile(
    r"drake|taylor swift|messi|rihanna|beyonce|kanye|cristiano|ronaldo|lebron|"
    r"kim kardashian|ariana grande|justin bieber|selena gomez|bad bunny|dua lipa",
    re.IGNORECASE,
)

SYSTEM_PROMPT = """You write short social news updates that read like a friend texting about what just happened.

Today's date is {today}.

RULES:
- Respond with a single JSON object with the string fields: headline, context, narration, image_keyword.
- Tone: casual, warm and a little playful. You are talking to one person, not an audience.
- narration is 60 to 90 words: open with a one-sentence quick take, then two or three short paragraphs.
  No bullet points, no section titles. Address the reader as "you".
- context is one punchy sentence under 200 characters that anyone worldwide can follow.
- image_keyword is two to four words describing a fitting illustration.
- When ARTICLE_TEXT is provided, use only facts from it. Do not invent details or mention missing information.
- Sports: keep leagues apart. The Premier League is English football (Arsenal, Liverpool, Chelsea,
  Manchester City, Manchester United, Tottenham...). The NFL is American football (Chiefs, Giants, Lions,
  Ravens, Patriots, Jets...). Never put a team from one league into a story about the other, and check
  every team name belongs to the sport the topic is about.
- Skip stiff newsroom phrases and never include accusations or disclaimers."""

GROUNDED_SUFFIX = (
    "\nYou have verified ARTICLE_TEXT from a news API. "
    "Tell me about it like you just read it."
)

UNGROUNDED_SUFFIX = (
    "\nNo article text is available. Write a plausible, timely update "
    "without stating specific facts you cannot know."
)

IMAGE_PROMPT = "Simple {subject} illustration, minimal, clean design"


def is_celebrity_topic(topic: str) -> bool:
    return bool(CELEBRITY_PATTERN.search(topic))


def build_messages(
    topic: str,
    article: Optional[SourceArticle] = None,
    article_text: str = "",
    today: Optional[date] = None,
) -> List[Dict[str, str]]:
    """
    Build chat messages for a gist.

    Args:
        topic: Topic of the gist
        article: Grounding article, if any
        article_text: Sanitized grounding text
        today: Date stated in the system prompt

    Returns:
        System and user messages
    """
    today = today or date.today()
    system = SYSTEM_PROMPT.format(today=today.strftime("%B %d, %Y"))

    if article is not None:
        user = (
            f"TOPIC: {topic}\n"
            f"SOURCE: {article.source or 'Unknown'}\n"
            f"PUBLISHED_AT: {article.published_at or 'Unknown'}\n"
            f"URL: {article.url or 'Unknown'}\n\n"
            f"ARTICLE_TEXT:\n{article_text}"
        )
        return [
            {"role": "system", "content": system + GROUNDED_SUFFIX},
            {"role": "user", "content": user},
        ]

    user = (
        f"Create a short gist about: {topic}. "
        "Focus on what is likely happening right now and keep it engaging."
    )
    return [
        {"role": "system", "content": system + UNGROUNDED_SUFFIX},
        {"role": "user", "content": user},
    ]


def build_image_prompt(topic: str, image_keyword: Optional[str]) -> str:
    return IMAGE_PROMPT.format(subject=image_keyword or topic)
