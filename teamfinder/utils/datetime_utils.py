"""Time helpers shared by models and services."""

from datetime import datetime
import pytz


def utcnow() -> datetime:
    """Timezone-aware now, in UTC. Used for every created/updated timestamp."""
    return datetime.now(pytz.UTC)
