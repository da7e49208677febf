"""Helpers shared by test modules."""

import re
from base64 import b64encode
from urllib.parse import parse_qs, urlparse

BASE_URL = "http://newsletter.test"
ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "correct horse battery staple"

_LINK_PATTERN = re.compile(r"https?://\S+/subscriptions/confirm\?subscription_token=[\w\-%]+")


def extract_confirmation_link(text_body: str) -> str:
    """Pull the single confirmation link out of a confirmation email."""
    links = _LINK_PATTERN.findall(text_body)
    assert len(links) == 1, f"Expected one confirmation link, found {links}"
    return links[0]


def token_from_link(link: str) -> str:
    return parse_qs(urlparse(link).query)["subscription_token"][0]


def basic_auth_header(username: str, password: str) -> dict:
    """Create HTTP BASIC AUTH header for testing."""
    credentials = f"{username}:{password}"
    encoded = b64encode(credentials.encode()).decode()
    return {"Authorization": f"Basic {encoded}"}


def newsletter_body(title: str = "Newsletter title") -> dict:
    return {
        "title": title,
        "content": {
            "text": "Newsletter body as plain text",
            "html": "<p>Newsletter body as HTML</p>",
        },
    }
