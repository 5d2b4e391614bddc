"""Event tracking and the numbers behind the admin dashboards.

Events are append-only rows in ``analytics_events``; reports are plain
aggregate queries over the operational tables.
"""

import json
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from cineverse._internal.clock import to_db, utcnow
from cineverse.auth.models import User
from cineverse.data.manager import DatabaseManager
from cineverse.http.request import Request

EVENT_TYPES = frozenset({"event", "page_view", "movie_view"})


class Analytics:
    __slots__ = ("_clock", "db")

    def __init__(self, db: DatabaseManager, *, clock: Callable[[], datetime] = utcnow) -> None:
        self.db = db
        self._clock = clock

    async def track(
        self,
        event_type: str,
        request: Request,
        *,
        user: User | None = None,
        name: str | None = None,
        movie_id: int | None = None,
        page_url: str | None = None,
        properties: Mapping[str, Any] | None = None,
    ) -> int | None:
        session = request.state.get("session")
        return await self.db.insert(
            "analytics_events",
            {
                "user_id": user.id if user else None,
                "event_type": event_type,
                "event_name": name,
                "movie_id": movie_id,
                "page_url": page_url,
                "properties": json.dumps(dict(properties or {}), default=str),
                "session_id": session.id if session is not None else None,
                "ip_address": request.client_ip,
                "user_agent": request.user_agent,
                "created_at": to_db(self._clock()),
            },
        )

    def _since(self, days: int) -> str:
        return to_db(self._clock() - timedelta(days=days))

    async def _count(self, table: str, **where: Any) -> int:
        query = self.db.table(table)
        for column, value in where.items():
            query.where(column, value)
        return await query.count()

    # -- Reports --

    async def platform_stats(self) -> dict[str, int]:
        """Public headline numbers."""
        return {
            "movies": await self._count("movies", status="published"),
            "genres": await self._count("genres"),
            "users": await self._count("users", status="active"),
            "reviews": await self._count("reviews", status="published"),
        }

    async def overview(self, days: int = 30) -> dict[str, Any]:
        since = self._since(days)
        revenue = await self.db.fetch_val(
            "SELECT COALESCE(SUM(amount), 0) FROM payment_transactions "
            "WHERE status = 'completed' AND created_at >= :since",
            {"since": since},
        )
        return {
            "period_days": days,
            "total_users": await self._count("users"),
            "new_users": await self.db.table("users").where("created_at", ">=", since).count(),
            "total_movies": await self._count("movies"),
            "active_subscriptions": await self._count("subscriptions", status="active"),
            "revenue": float(revenue or 0),
            "events": await self.db.table("analytics_events").where("created_at", ">=", since).count(),
        }

    async def users(self, days: int = 30) -> dict[str, Any]:
        since = self._since(days)
        signups = await self.db.fetch_all(
            "SELECT substr(created_at, 1, 10) AS day, COUNT(*) AS total FROM users "
            "WHERE created_at >= :since GROUP BY day ORDER BY day",
            {"since": since},
        )
        by_status = await self.db.fetch_all("SELECT status, COUNT(*) AS total FROM users GROUP BY status")
        return {"signups": signups, "by_status": by_status}

    async def movies(self, limit: int = 10) -> dict[str, Any]:
        most_viewed = await (
            self.db.table("movies")
            .select("id", "title", "view_count")
            .order_by("view_count", "DESC")
            .limit(limit)
            .get()
        )
        best_rated = await (
            self.db.table("movies")
            .select("id", "title", "vote_average", "vote_count")
            .where("vote_count", ">", 0)
            .order_by("vote_average", "DESC")
            .limit(limit)
            .get()
        )
        return {"most_viewed": most_viewed, "best_rated": best_rated}

    async def payments(self, days: int = 30) -> dict[str, Any]:
        since = self._since(days)
        by_status = await self.db.fetch_all(
            "SELECT status, COUNT(*) AS total, COALESCE(SUM(amount), 0) AS amount "
            "FROM payment_transactions WHERE created_at >= :since GROUP BY status",
            {"since": since},
        )
        by_method = await self.db.fetch_all(
            "SELECT payment_method, COUNT(*) AS total FROM payment_transactions "
            "WHERE created_at >= :since GROUP BY payment_method",
            {"since": since},
        )
        return {"by_status": by_status, "by_method": by_method}

    async def engagement(self, days: int = 30) -> dict[str, Any]:
        since = self._since(days)
        events = await self.db.fetch_all(
            "SELECT event_type, COUNT(*) AS total FROM analytics_events "
            "WHERE created_at >= :since GROUP BY event_type",
            {"since": since},
        )
        return {
            "events": events,
            "ratings": await self.db.table("ratings").where("created_at", ">=", since).count(),
            "reviews": await self.db.table("reviews").where("created_at", ">=", since).count(),
            "watchlist_adds": await self.db.table("watchlists").where("created_at", ">=", since).count(),
        }

    async def user_statistics(self, user: User) -> dict[str, int]:
        return {
            "watchlist": await self._count("watchlists", user_id=user.id),
            "ratings": await self._count("ratings", user_id=user.id),
            "reviews": await self._count("reviews", user_id=user.id),
            "movie_views": await self._count("analytics_events", user_id=user.id, event_type="movie_view"),
        }
