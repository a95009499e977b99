"""
api/routes/v1/stats.py -- Public activity statistics.

Routes:
  GET /stats/online -- users active in the last online_window_minutes, users
                       who joined today, posts published today (UTC day)
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Request

from api.models import OnlineStatsResponse
from auth.store import UserStore
from core.config import get_settings
from forum.store import ForumStore

_settings = get_settings()

# Auth policy:
# - GET /stats/online: public
router = APIRouter()


@router.get("/stats/online", response_model=OnlineStatsResponse)
def online_stats(request: Request) -> OnlineStatsResponse:
    user_store: UserStore = request.app.state.user_store
    forum_store: ForumStore = request.app.state.forum_store

    now = datetime.now(timezone.utc)
    online_since = (now - timedelta(minutes=_settings.online_window_minutes)).isoformat()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0).isoformat()

    return OnlineStatsResponse(
        online_users=user_store.count_active_since(online_since),
        today_users=user_store.count_joined_since(today),
        today_posts=forum_store.count_published_since(today),
        timestamp=now.isoformat(),
    )
