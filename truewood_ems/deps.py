from __future__ import annotations

from datetime import date


def get_today() -> date:
    return date.today()
