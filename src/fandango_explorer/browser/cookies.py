"""Consent and visitor cookies seeded into a fresh browser context."""

import random
import time
from datetime import datetime, timezone

COOKIE_DOMAIN = ".fandango.com"


def _now_ms() -> int:
    return int(time.time() * 1000)


def visit_token(rng: random.Random | None = None) -> str:
    """Visitor token in the site's "<epoch ms><random>" shape."""
    rng = rng or random
    return f"{_now_ms()}{rng.randint(0, 999_999)}"


def abck_token(rng: random.Random | None = None) -> str:
    """Simplified Akamai ``_abck`` sensor cookie value."""
    rng = rng or random
    return f"0~{rng.randint(0, 999_999)}~{_now_ms()}~AAA_~_~-1~-1~-1"


def consent_cookies(rng: random.Random | None = None) -> list[dict]:
    """
    Build the cookie set that dismisses the consent banner and marks the
    visitor as returning. Token values are regenerated on every call.
    """
    stamp = datetime.now(timezone.utc).isoformat()
    values = {
        "OptanonAlertBoxClosed": stamp,
        "OptanonConsent": f"isGpcEnabled=0&datestamp={stamp}&version=6.26.0",
        "fdvisttyp": "returning",
        "fdprefercookies": "true",
        "fd_usertk": str(_now_ms()),
        "fdexperience": "browser",
        "fdvisittk": visit_token(rng),
        "_abck": abck_token(rng),
    }
    return [
        {"name": name, "value": value, "domain": COOKIE_DOMAIN, "path": "/"}
        for name, value in values.items()
    ]
