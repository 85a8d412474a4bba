"""Crawler / bot detection from the User-Agent header."""
from typing import Optional

# Lower-case substrings; any hit marks the caller as an automated client.
CRAWLER_TOKENS: tuple[str, ...] = (
    # social preview fetchers
    "facebookexternalhit", "facebookcatalog", "facebookplatform", "facebot",
    "facebookbot", "twitterbot", "linkedinbot", "whatsapp", "slackbot",
    "discordbot", "telegrambot", "skypeuripreview", "pinterestbot",
    # search engines
    "googlebot", "bingbot", "baiduspider", "yandex", "duckduckbot", "slurp",
    "applebot", "yahoobot", "ia_archiver", "semrushbot", "ahrefsbot", "dotbot",
    # generic
    "bot", "crawler", "spider",
)

_TRUTHY = {"1", "true", "yes", "on"}


def is_automated_client(user_agent: Optional[str], force: bool = False) -> bool:
    """Return True for crawlers/bots. ``force`` always wins; missing UA is human."""
    if force:
        return True
    if not user_agent or not isinstance(user_agent, str):
        return False
    ua = user_agent.lower()
    return any(token in ua for token in CRAWLER_TOKENS)


def parse_force_flag(value: Optional[str]) -> bool:
    """Interpret the force-bot query parameter."""
    if value is None:
        return False
    return value.strip().lower() in _TRUTHY
