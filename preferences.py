from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Optional, Protocol

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from models import Preference

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "INR": "₹"}
DEFAULT_CATEGORIES = ("Food", "Transportation", "Entertainment", "Bills", "Other")
PRIVACY_MASK = "****"


@dataclass(frozen=True)
class UserPreferences:
    currency: str = "USD"
    theme: str = "light"
    privacy_mode: bool = False
    categories: tuple[str, ...] = field(default=DEFAULT_CATEGORIES)

    @property
    def currency_symbol(self) -> str:
        return CURRENCY_SYMBOLS[self.currency]

    def with_category(self, name: str) -> "UserPreferences":
        clean = name.strip()
        if not clean:
            raise ValueError("Category name cannot be empty")
        if clean.lower() in {c.lower() for c in self.categories}:
            return self
        return replace(self, categories=self.categories + (clean,))


class PreferencesStore(Protocol):
    def load(self) -> UserPreferences:  # pragma: no cover - interface
        ...

    def save(self, prefs: UserPreferences) -> UserPreferences:  # pragma: no cover
        ...

    def reset(self) -> int:  # pragma: no cover - interface
        ...


def validate_preferences(prefs: UserPreferences) -> UserPreferences:
    if prefs.currency not in CURRENCY_SYMBOLS:
        raise ValueError(f"Unsupported currency: {prefs.currency}")
    if prefs.theme not in {"light", "dark"}:
        raise ValueError(f"Unsupported theme: {prefs.theme}")
    seen: set[str] = set()
    categories: list[str] = []
    for name in prefs.categories:
        clean = name.strip()
        if clean and clean.lower() not in seen:
            seen.add(clean.lower())
            categories.append(clean)
    return replace(prefs, categories=tuple(categories) or DEFAULT_CATEGORIES)


class SQLPreferencesStore:
    """Key/value persistence of ``UserPreferences`` in the preferences table."""

    def __init__(self, session: Session, user_id: int = 1) -> None:
        self.session = session
        self.user_id = user_id

    def _rows(self) -> dict[str, Preference]:
        stmt = select(Preference).where(Preference.user_id == self.user_id)
        return {row.key: row for row in self.session.scalars(stmt)}

    def load(self) -> UserPreferences:
        rows = self._rows()
        prefs = UserPreferences()
        if "currency" in rows:
            prefs = replace(prefs, currency=rows["currency"].value)
        if "theme" in rows:
            prefs = replace(prefs, theme=rows["theme"].value)
        if "privacy_mode" in rows:
            prefs = replace(prefs, privacy_mode=rows["privacy_mode"].value == "true")
        if "categories" in rows:
            prefs = replace(
                prefs, categories=tuple(json.loads(rows["categories"].value))
            )
        return prefs

    def save(self, prefs: UserPreferences) -> UserPreferences:
        prefs = validate_preferences(prefs)
        values = {
            "currency": prefs.currency,
            "theme": prefs.theme,
            "privacy_mode": "true" if prefs.privacy_mode else "false",
            "categories": json.dumps(list(prefs.categories)),
        }
        rows = self._rows()
        for key, value in values.items():
            if key in rows:
                rows[key].value = value
            else:
                self.session.add(Preference(user_id=self.user_id, key=key, value=value))
        self.session.commit()
        return prefs

    def reset(self) -> int:
        result = self.session.execute(
            delete(Preference).where(Preference.user_id == self.user_id)
        )
        self.session.commit()
        return result.rowcount or 0


def format_currency(cents: int, prefs: Optional[UserPreferences] = None) -> str:
    prefs = prefs or UserPreferences()
    if prefs.privacy_mode:
        return f"{prefs.currency_symbol}{PRIVACY_MASK}"
    sign = "-" if cents < 0 else ""
    return f"{sign}{prefs.currency_symbol}{abs(cents) / 100:,.2f}"
