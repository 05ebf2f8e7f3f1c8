"""Display preferences: theme, recent searches and expanded cards."""

from __future__ import annotations

from storage import Collection, DurableStore

THEMES = ("light", "dark")
SEARCH_HISTORY_LIMIT = 10


class ThemePreference:
    def __init__(self, store: DurableStore) -> None:
        self.store = store
        theme = store.read(Collection.THEME)
        self.theme = theme if theme in THEMES else "light"

    @property
    def dark_mode(self) -> bool:
        return self.theme == "dark"

    def set_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {', '.join(THEMES)}")
        self.theme = theme
        self.store.write(Collection.THEME, theme)
        return theme

    def toggle(self) -> str:
        return self.set_theme("light" if self.dark_mode else "dark")


class SearchHistory:
    """Most recent distinct queries first, capped at SEARCH_HISTORY_LIMIT."""

    def __init__(self, store: DurableStore) -> None:
        self.store = store
        saved = store.read(Collection.SEARCH_HISTORY)
        self.queries: list[str] = [q for q in saved if isinstance(q, str)][:SEARCH_HISTORY_LIMIT]

    def add(self, query: str) -> list[str]:
        query = query.strip()
        if not query:
            return self.queries
        rest = [q for q in self.queries if q.lower() != query.lower()]
        self.queries = [query, *rest][:SEARCH_HISTORY_LIMIT]
        self.store.write(Collection.SEARCH_HISTORY, self.queries)
        return self.queries

    def clear(self) -> None:
        self.queries = []
        self.store.clear(Collection.SEARCH_HISTORY)


class ExpandedCards:
    def __init__(self, store: DurableStore) -> None:
        self.store = store
        saved = store.read(Collection.EXPANDED)
        self.expanded: dict[str, bool] = {str(k): bool(v) for k, v in saved.items()}

    def toggle(self, card_id: str) -> bool:
        self.expanded[card_id] = not self.expanded.get(card_id, False)
        self.store.write(Collection.EXPANDED, self.expanded)
        return self.expanded[card_id]

    def is_expanded(self, card_id: str) -> bool:
        return self.expanded.get(card_id, False)
