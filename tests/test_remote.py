"""Tests for the HTTP collector client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import requests

from learning_time import http_client
from learning_time.remote import HttpRemoteCollector

from conftest import make_record


def make_collector(status_code=200, side_effect=None):
    session = MagicMock()
    if side_effect is not None:
        session.post.side_effect = side_effect
    else:
        session.post.return_value = MagicMock(status_code=status_code, text="nope")
    return HttpRemoteCollector("https://lms.example.com/", timeout=5, session=session), session


class TestHttpRemoteCollector:
    def test_posts_batch_payload(self):
        collector, session = make_collector(200)
        records = [make_record("a", minutes=3), make_record("b")]

        assert collector.submit_time_batch(records) is True

        session.post.assert_called_once_with(
            "https://lms.example.com/api/learning-time/batch",
            json={"records": [r.to_payload() for r in records]},
            timeout=5,
        )

    def test_empty_batch_is_not_sent(self):
        collector, session = make_collector(200)
        assert collector.submit_time_batch([]) is True
        session.post.assert_not_called()

    def test_server_error_is_failure(self):
        collector, _ = make_collector(500)
        assert collector.submit_time_batch([make_record()]) is False

    def test_unauthorized_is_failure(self):
        collector, _ = make_collector(401)
        assert collector.submit_time_batch([make_record()]) is False

    def test_network_error_is_failure_and_resets_session(self):
        collector, session = make_collector(side_effect=requests.ConnectionError("offline"))
        with patch.object(http_client, "create_session") as create:
            assert collector.submit_time_batch([make_record()]) is False
        session.close.assert_called_once()
        create.assert_called_once_with(None)


class TestCreateSession:
    def test_token_sets_bearer_header(self):
        session = http_client.create_session("secret")
        try:
            assert session.headers["Authorization"] == "Bearer secret"
            assert session.get_adapter("https://x").max_retries.total == 3
        finally:
            session.close()

    def test_no_token_no_auth_header(self):
        session = http_client.create_session()
        try:
            assert "Authorization" not in session.headers
        finally:
            session.close()
