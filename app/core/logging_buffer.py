import threading
from collections import Counter, deque
from datetime import datetime, timezone

from app.core.config import settings


class DecisionBuffer:
    """Journal of recent access decisions.

    Entries are bounded by maxlen; the per-verdict totals and the denied
    country counts cover every decision since the last clear().
    """

    def __init__(self, maxlen: int = 1000):
        self._buffer: deque = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._totals: Counter = Counter()
        self._denied_countries: Counter = Counter()
        self._since = datetime.now(timezone.utc)
        self.enabled: bool = False

    def add(self, verdict: str, client_ip: str | None, method: str, path: str, attributes: dict | None = None):
        if not self.enabled:
            return
        attributes = dict(attributes or {})
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "verdict": verdict,
            "client_ip": client_ip,
            "method": method,
            "path": path,
            "attributes": attributes,
        }
        with self._lock:
            self._buffer.append(entry)
            self._totals[verdict] += 1
            if verdict == "deny":
                self._denied_countries[attributes.get("country_code", "")] += 1

    def get_logs(
        self,
        verdict: str | None = None,
        limit: int = 200,
        offset: int = 0,
        country_code: str | None = None,
    ) -> list[dict]:
        with self._lock:
            items = list(self._buffer)
        if verdict and verdict != "all":
            items = [i for i in items if i["verdict"] == verdict]
        if country_code:
            items = [i for i in items if i["attributes"].get("country_code") == country_code]
        items.reverse()
        return items[offset:offset + limit]

    def summary(self, top: int = 10) -> dict:
        with self._lock:
            totals = dict(self._totals)
            denied = self._denied_countries.most_common(top)
            since = self._since
        return {
            "since": since.isoformat(),
            "permit": totals.get("permit", 0),
            "deny": totals.get("deny", 0),
            "top_denied_countries": [{"country_code": code, "count": count} for code, count in denied],
        }

    def clear(self):
        with self._lock:
            self._buffer.clear()
            self._totals.clear()
            self._denied_countries.clear()
            self._since = datetime.now(timezone.utc)

    def start(self):
        self.enabled = True

    def stop(self):
        self.enabled = False


decision_buffer = DecisionBuffer(maxlen=settings.GEOIP_DECISION_LOG_MAXLEN)
if settings.GEOIP_DECISION_LOG_ENABLED:
    decision_buffer.start()
