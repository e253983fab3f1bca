from typing import Optional

# Keeps log lines readable when a target carries a huge query string
MAX_LOGGED_URL = 300


def shorten_url(text: Optional[str], limit: int = MAX_LOGGED_URL) -> str:
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...({len(text) - limit} more chars)"
