"""JSON export of everything Pomotrack knows."""

import json
import logging
from datetime import date, timedelta

from .local_store import TASKS_KEY, sessions_key

logger = logging.getLogger(__name__)

LOCAL_EXPORT_DAYS = 30
LOCAL_EXPORT_VERSION = "2.0"


class DataExporter:
    """Dumps the remote store, or local storage when the remote is down."""

    def __init__(self, remote, local, gateway, clock):
        self.remote = remote
        self.local = local
        self.gateway = gateway
        self.clock = clock

    def export(self) -> str:
        """Export all data as pretty-printed JSON."""
        data = self.gateway.perform(
            self.remote.export_data,
            self._export_local,
            description="export_data",
        )
        return json.dumps(data, indent=2, ensure_ascii=False)

    def _export_local(self) -> dict:
        today = date.fromisoformat(self.clock.today())
        sessions = {}
        for offset in range(LOCAL_EXPORT_DAYS):
            day = (today - timedelta(days=offset)).isoformat()
            bucket = self.local.get(sessions_key(day))
            if bucket is not None:
                sessions[day] = bucket

        logger.info(f"Exporting local data ({len(sessions)} days of sessions)")
        return {
            "tasks": self.local.get(TASKS_KEY) or [],
            "sessions": sessions,
            "exported_at": self.clock.now().isoformat(),
            "version": LOCAL_EXPORT_VERSION,
        }
