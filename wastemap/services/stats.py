# wastemap/services/stats.py
from datetime import datetime, timedelta, timezone
from io import BytesIO

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from wastemap.core.policy import Role
from wastemap.core.states import PICKUP_STATES


async def compute_overview(repo, now: datetime | None = None, recent_days: int = 7, recent_limit: int = 10):
    """
    Returns a dict that matches the AdminStats schema.
    "pending" counts pickups still waiting on a collector (pending + assigned).
    """
    now = now or datetime.now(timezone.utc)
    by_status = await repo.count_by_status()
    recent = await repo.recent_pickups(now - timedelta(days=recent_days), limit=recent_limit)
    return {
        "total_users": await repo.count_users(),
        "total_collectors": await repo.count_users(Role.COLLECTOR.value),
        "total_pickups": sum(by_status.values()),
        "completed_pickups": by_status.get("completed", 0),
        "pending_pickups": by_status.get("pending", 0) + by_status.get("assigned", 0),
        "by_status": {s: by_status.get(s, 0) for s in PICKUP_STATES},
        "recent_pickups": recent,
    }


async def plot_status_png(repo) -> BytesIO:
    """
    Bar chart of pickups per status. Returns a BytesIO PNG buffer.
    """
    by_status = await repo.count_by_status()
    values = [by_status.get(s, 0) for s in PICKUP_STATES]

    fig, ax = plt.subplots(figsize=(6, 3))
    ax.bar(PICKUP_STATES, values)
    ax.set_title("Pickups by Status")
    ax.set_ylabel("Pickups")
    plt.setp(ax.get_xticklabels(), rotation=30, ha="right")
    fig.tight_layout()

    buf = BytesIO()
    fig.savefig(buf, format="png")
    plt.close(fig)
    buf.seek(0)
    return buf
