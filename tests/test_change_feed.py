import logging

import psycopg2

from services.persistence.postgres import PostgresChangeFeed


class FakeConn:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


class ScriptedFeed(PostgresChangeFeed):
    """Feed whose connections fail in a fixed order, then stop cleanly."""

    def __init__(self, failures, connect_failures=()):
        super().__init__("postgresql://unused", poll_s=0.001)
        self.failures = list(failures)
        self.connect_failures = list(connect_failures)
        self.conns = []

    def _connect(self):
        if self.connect_failures:
            raise self.connect_failures.pop(0)
        conn = FakeConn()
        self.conns.append(conn)
        return conn

    def _pump(self, conn):
        if self.failures:
            raise self.failures.pop(0)
        self._stop.set()


def test_listener_survives_any_error_and_closes_each_connection(caplog):
    feed = ScriptedFeed([OSError("select failed"), psycopg2.OperationalError("server gone")])
    with caplog.at_level(logging.ERROR, logger="services.persistence.postgres"):
        feed._listen()

    assert len(feed.conns) == 3
    assert all(c.closed for c in feed.conns)
    assert caplog.text.count("change-feed connection lost") == 2


def test_listener_retries_when_connect_fails():
    feed = ScriptedFeed([], connect_failures=[psycopg2.OperationalError("refused")])
    feed._listen()
    assert len(feed.conns) == 1
    assert feed.conns[0].closed
