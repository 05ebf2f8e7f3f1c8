"""
Learning catalog — categories of cards plus search and completion helpers.

The card content itself is static; this module only exposes what the progress
engine needs: card ids, category membership, and difficulty/search filtering.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced")


# ── Data classes ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class Card:
    id: str                     # "closures"
    title: str
    description: str = ""
    difficulty: str = "Beginner"


@dataclass(frozen=True)
class Category:
    id: str                     # "core-js"
    title: str
    description: str = ""
    cards: tuple[Card, ...] = field(default_factory=tuple)

    @property
    def card_ids(self) -> set[str]:
        return {c.id for c in self.cards}


# ── Default catalog ────────────────────────────────────────────────────

def _cards(*rows: tuple[str, str, str, str]) -> tuple[Card, ...]:
    return tuple(Card(id=r[0], title=r[1], description=r[2], difficulty=r[3]) for r in rows)


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category("core-js", "Core JavaScript", "Language fundamentals every developer needs", _cards(
        ("variables", "Variables: var, let, const", "Declaration keywords, block scope and reassignment.", "Beginner"),
        ("functions", "Functions", "Declarations, expressions and parameters.", "Beginner"),
        ("closures", "Closures", "Functions that capture their lexical environment.", "Beginner"),
        ("event-loop", "Event Loop", "Call stack, task queue and microtasks.", "Intermediate"),
        ("promises", "Promises", "Chaining, error propagation and combinators.", "Intermediate"),
        ("async-await", "Async/Await", "Writing asynchronous code sequentially.", "Intermediate"),
    )),
    Category("advanced-js", "Advanced JavaScript", "Deeper language mechanics", _cards(
        ("prototypes", "Prototype, this, and Object Inheritance", "The prototype chain and binding rules.", "Advanced"),
        ("generators", "Generators and Iterators", "Lazy sequences and the iteration protocol.", "Advanced"),
        ("proxy-reflect", "Proxy and Reflect API", "Intercepting object operations.", "Advanced"),
        ("currying", "Currying and Partial Application", "Transforming multi-argument functions.", "Advanced"),
        ("bigint", "BigInt", "Arbitrary-precision integers.", "Intermediate"),
    )),
    Category("react", "React.js & Frontend", "Modern React patterns", _cards(
        ("react-fundamentals", "React Fundamentals", "JSX, components, props and state.", "Beginner"),
        ("use-effect", "useEffect Hook", "Side effects, dependencies and cleanup.", "Intermediate"),
        ("forms-controlled", "Forms and Controlled Components", "Binding inputs to state.", "Intermediate"),
        ("code-splitting", "Code Splitting & Lazy Loading", "Loading components on demand.", "Advanced"),
        ("custom-hooks", "Custom Hooks", "Extracting reusable stateful logic.", "Intermediate"),
    )),
    Category("nodejs", "Node.js Backend", "Server-side JavaScript", _cards(
        ("node-fundamentals", "Node.js Fundamentals", "Modules, globals and the runtime.", "Beginner"),
        ("file-system", "File System Operations", "Reading and writing files asynchronously.", "Intermediate"),
        ("streams-buffers", "Streams & Buffers", "Processing data in chunks.", "Advanced"),
        ("express-basics", "Express Basics", "Routing and middleware.", "Beginner"),
        ("authentication", "Authentication", "Sessions, tokens and password hashing.", "Advanced"),
    )),
    Category("databases", "Databases", "Storing and querying data", _cards(
        ("mongodb-crud", "MongoDB CRUD Operations", "Inserting, finding, updating and deleting documents.", "Beginner"),
        ("query-operators", "MongoDB Query Operators", "Comparison, logical and array operators.", "Intermediate"),
        ("database-design", "Database Design Principles", "Normalization and schema trade-offs.", "Intermediate"),
        ("postgresql-sql", "PostgreSQL & SQL Basics", "Tables, joins and constraints.", "Intermediate"),
        ("indexing-strategies", "Indexing Strategies", "Choosing indexes for query patterns.", "Advanced"),
    )),
    Category("system-design", "System Design", "Designing scalable systems", _cards(
        ("cap-theorem", "CAP Theorem & Consistency Models", "Trade-offs under network partitions.", "Advanced"),
        ("database-sharding", "Database Sharding & Partitioning", "Splitting data across nodes.", "Advanced"),
        ("cdn-content-delivery", "CDN and Content Delivery", "Edge caching of static assets.", "Intermediate"),
        ("idempotency", "Idempotency", "Safe retries for side-effecting requests.", "Advanced"),
        ("monitoring-observability", "Monitoring and Observability", "Metrics, logs and traces.", "Intermediate"),
    )),
)


# ── Catalog ────────────────────────────────────────────────────────────

class Catalog:
    """Read-only view over the learning categories."""

    def __init__(self, categories: Iterable[Category] = DEFAULT_CATEGORIES) -> None:
        self.categories: list[Category] = list(categories)
        self._by_id = {c.id: c for c in self.categories}

    @property
    def all_card_ids(self) -> set[str]:
        ids: set[str] = set()
        for category in self.categories:
            ids |= category.card_ids
        return ids

    @property
    def total_units(self) -> int:
        return len(self.all_card_ids)

    def get_category(self, category_id: str) -> Category | None:
        """Look up a category by id, falling back to the first category."""
        if category_id in self._by_id:
            return self._by_id[category_id]
        return self.categories[0] if self.categories else None

    def categories_fully_completed(self, completed: set[str]) -> int:
        """Count categories whose every card is completed. Empty categories never count."""
        return sum(
            1 for c in self.categories
            if c.cards and c.card_ids.issubset(completed)
        )

    def overall_progress(self, completed: set[str]) -> int:
        """Rounded percentage of catalog cards completed."""
        total = self.total_units
        if total == 0:
            return 0
        done = len(completed & self.all_card_ids)
        return round(done / total * 100)

    def category_progress(self, completed: set[str]) -> dict[str, dict]:
        result = {}
        for category in self.categories:
            total = len(category.card_ids)
            done = len(category.card_ids & completed)
            result[category.id] = {
                "completed": done,
                "total": total,
                "pct": round(done / total * 100) if total else 0,
            }
        return result

    def search(self, category_id: str, query: str = "", difficulty: str = "all") -> list[Card]:
        """Filter one category's cards by difficulty and a case-insensitive query."""
        category = self.get_category(category_id)
        if category is None:
            return []
        cards = list(category.cards)

        if difficulty and difficulty.lower() != "all":
            wanted = difficulty.lower()
            if wanted not in DIFFICULTY_LEVELS:
                raise ValueError(f"Unknown difficulty: {difficulty}")
            cards = [c for c in cards if (c.difficulty or "Beginner").lower() == wanted]

        q = query.strip().lower()
        if q:
            cards = [
                c for c in cards
                if q in c.title.lower() or q in c.description.lower()
            ]
        return cards
