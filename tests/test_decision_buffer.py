import unittest
from datetime import datetime

from app.core.logging_buffer import DecisionBuffer


class DecisionBufferTests(unittest.TestCase):
    def test_disabled_buffer_drops_entries(self):
        buf = DecisionBuffer(maxlen=10)
        buf.add("deny", "192.0.2.1", "GET", "/")
        self.assertEqual(buf.get_logs(), [])

    def test_newest_first_with_filter_and_paging(self):
        buf = DecisionBuffer(maxlen=10)
        buf.start()
        buf.add("permit", "192.0.2.1", "GET", "/a", {"country_code": "SE"})
        buf.add("deny", "192.0.2.2", "GET", "/b", {"country_code": "TW"})
        buf.add("deny", None, "POST", "/c", {"country_code": "!!"})

        paths = [e["path"] for e in buf.get_logs()]
        self.assertEqual(paths, ["/c", "/b", "/a"])
        denied = buf.get_logs(verdict="deny")
        self.assertEqual([e["path"] for e in denied], ["/c", "/b"])
        self.assertIsNone(denied[0]["client_ip"])
        self.assertEqual([e["path"] for e in buf.get_logs(limit=1, offset=1)], ["/b"])

    def test_bounded(self):
        buf = DecisionBuffer(maxlen=2)
        buf.start()
        for i in range(5):
            buf.add("permit", f"192.0.2.{i}", "GET", "/")
        self.assertEqual([e["client_ip"] for e in buf.get_logs()], ["192.0.2.4", "192.0.2.3"])

    def test_stop_and_clear(self):
        buf = DecisionBuffer()
        buf.start()
        buf.add("permit", "192.0.2.1", "GET", "/")
        buf.stop()
        buf.add("permit", "192.0.2.2", "GET", "/")
        self.assertEqual(len(buf.get_logs()), 1)
        buf.clear()
        self.assertEqual(buf.get_logs(), [])


    def test_summary_counts_verdicts_and_denied_countries(self):
        buf = DecisionBuffer(maxlen=2)
        buf.start()
        buf.add("deny", "192.0.2.1", "GET", "/", {"country_code": "TW"})
        buf.add("permit", "192.0.2.2", "GET", "/", {"country_code": "SE"})
        buf.add("deny", "192.0.2.3", "GET", "/", {"country_code": "TW"})
        buf.add("deny", None, "GET", "/", {"country_code": "!!"})

        summary = buf.summary()
        # Totals outlive entries evicted by maxlen.
        self.assertEqual(len(buf.get_logs()), 2)
        self.assertEqual(summary["permit"], 1)
        self.assertEqual(summary["deny"], 3)
        self.assertEqual(summary["top_denied_countries"], [
            {"country_code": "TW", "count": 2},
            {"country_code": "!!", "count": 1},
        ])
        self.assertEqual(buf.summary(top=1)["top_denied_countries"], [{"country_code": "TW", "count": 2}])

    def test_country_filter(self):
        buf = DecisionBuffer()
        buf.start()
        buf.add("deny", "192.0.2.1", "GET", "/a", {"country_code": "TW"})
        buf.add("permit", "192.0.2.2", "GET", "/b", {"country_code": "SE"})
        buf.add("permit", "192.0.2.3", "GET", "/c", {"country_code": "TW"})
        self.assertEqual([e["path"] for e in buf.get_logs(country_code="TW")], ["/c", "/a"])
        self.assertEqual([e["path"] for e in buf.get_logs(verdict="permit", country_code="TW")], ["/c"])
        self.assertEqual(buf.get_logs(country_code="US"), [])

    def test_clear_resets_summary(self):
        buf = DecisionBuffer()
        buf.start()
        buf.add("deny", "192.0.2.1", "GET", "/", {"country_code": "TW"})
        before = buf.summary()["since"]
        buf.clear()
        summary = buf.summary()
        self.assertEqual((summary["permit"], summary["deny"]), (0, 0))
        self.assertEqual(summary["top_denied_countries"], [])
        self.assertGreaterEqual(datetime.fromisoformat(summary["since"]), datetime.fromisoformat(before))

if __name__ == "__main__":
    unittest.main()
