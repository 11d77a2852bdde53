"""Tests for replaying recorded navigation event logs."""

from __future__ import annotations

import io
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest
import yaml

from oauthview.exceptions import EventLogError
from oauthview.models import EventLog, NavigationEventType
from oauthview.monitor import UNSET_TARGET_PREFIX
from oauthview.replay import load_event_log, replay
from oauthview.trust.prompts import RejectingCredentialsPrompt, RejectingTrustDialog
from oauthview.trust.store import KnownServersStore

TARGET = "https://app.example.com/callback"


def _log(*events: dict, target_prefix: str | None = TARGET) -> EventLog:
    return EventLog.model_validate({"target_prefix": target_prefix, "events": list(events)})


@pytest.fixture()
def store(tmp_path: Path) -> KnownServersStore:
    return KnownServersStore(tmp_path / "known_servers.json")


def _replay(log: EventLog, store: KnownServersStore, **kwargs):
    return replay(
        log,
        trust_store=store,
        trust_dialog=RejectingTrustDialog(),
        credentials_prompt=RejectingCredentialsPrompt(),
        **kwargs,
    )


def _actions(report) -> list[str]:
    return [c.action for c in report.commands]


# ------------------------------------------------------------------ #
# Loading
# ------------------------------------------------------------------ #


class TestLoadEventLog:
    DATA = {
        "target_prefix": TARGET,
        "events": [{"type": "page_finished", "url": TARGET + "?code=1"}],
    }

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_text(json.dumps(self.DATA))
        log = load_event_log(str(path))
        assert log.target_prefix == TARGET
        assert log.events[0].type == NavigationEventType.PAGE_FINISHED

    def test_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "session.yaml"
        path.write_text(yaml.safe_dump(self.DATA))
        assert load_event_log(str(path)).events[0].url == TARGET + "?code=1"

    def test_yaml_without_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "session.log"
        path.write_text(yaml.safe_dump(self.DATA))
        assert len(load_event_log(str(path)).events) == 1

    def test_stdin(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stdin", io.StringIO(json.dumps(self.DATA)))
        assert load_event_log("-").target_prefix == TARGET

    def test_url(self) -> None:
        response = httpx.Response(
            200,
            text=json.dumps(self.DATA),
            headers={"content-type": "application/json"},
            request=httpx.Request("GET", "https://logs.example.com/s.json"),
        )
        with patch("oauthview.replay.httpx.get", return_value=response) as get:
            log = load_event_log("https://logs.example.com/s.json")
        get.assert_called_once()
        assert log.target_prefix == TARGET

    def test_url_http_error(self) -> None:
        response = httpx.Response(
            404, text="missing", request=httpx.Request("GET", "https://logs.example.com/x")
        )
        with patch("oauthview.replay.httpx.get", return_value=response):
            with pytest.raises(EventLogError, match="HTTP 404"):
                load_event_log("https://logs.example.com/x")

    def test_url_connection_error(self) -> None:
        with patch(
            "oauthview.replay.httpx.get",
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(EventLogError, match="Failed to fetch"):
                load_event_log("https://logs.example.com/x")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(EventLogError, match="not found"):
            load_event_log(str(tmp_path / "nope.json"))

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("  \n")
        with pytest.raises(EventLogError, match="empty"):
            load_event_log(str(path))

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{nope")
        with pytest.raises(EventLogError, match="Invalid JSON"):
            load_event_log(str(path))

    def test_not_an_object(self, tmp_path: Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(EventLogError, match="must be an object"):
            load_event_log(str(path))

    def test_unknown_event_type(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"events": [{"type": "teleport", "url": "x"}]}))
        with pytest.raises(EventLogError, match="Invalid event log"):
            load_event_log(str(path))

    def test_unknown_event_field(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"events": [{"type": "page_started", "uri": "x"}]}))
        with pytest.raises(EventLogError):
            load_event_log(str(path))


# ------------------------------------------------------------------ #
# Replay
# ------------------------------------------------------------------ #


class TestReplay:
    def test_full_flow_captures_redirect(self, store) -> None:
        log = _log(
            {"type": "page_started", "url": "https://idp.example.com/login"},
            {"type": "page_finished", "url": "https://idp.example.com/login"},
            {"type": "page_started", "url": TARGET + "?code=abc&state=xyz"},
            {"type": "page_finished", "url": TARGET + "?code=abc&state=xyz"},
        )
        report = _replay(log, store)

        assert report.target_prefix == TARGET
        assert report.captured_uri == TARGET + "?code=abc&state=xyz"
        assert report.captured_query == {"code": ["abc"], "state": ["xyz"]}
        assert _actions(report) == ["clear_cache", "clear_cache", "hide"]

    def test_retry_then_default_error(self, store) -> None:
        url = "https://idp.example.com/login"
        log = _log(
            {"type": "received_error", "url": url, "error_code": -2, "description": "DNS"},
            {"type": "received_error", "url": url, "error_code": -2, "description": "DNS"},
        )
        report = _replay(log, store)

        assert _actions(report) == ["reload", "default_error"]
        assert report.commands[1].args == {"url": url, "error_code": -2, "description": "DNS"}
        assert report.captured_uri is None

    def test_success_resets_retry(self, store) -> None:
        url = "https://idp.example.com/login"
        log = _log(
            {"type": "received_error", "url": url, "error_code": 500},
            {"type": "page_finished", "url": url},
            {"type": "received_error", "url": url, "error_code": 500},
        )
        assert _actions(_replay(log, store)) == ["reload", "reload"]

    def test_form_resubmission_and_intercept(self, store) -> None:
        log = _log(
            {"type": "form_resubmission", "url": "https://idp.example.com/post"},
            {"type": "should_intercept", "url": TARGET},
        )
        report = _replay(log, store)

        assert _actions(report) == ["form.resend", "intercept"]
        assert report.commands[1].args == {"url": TARGET, "intercept": False}

    def test_untrusted_certificate_is_cancelled(self, store, certificate_pem: bytes) -> None:
        log = _log({
            "type": "ssl_error",
            "url": "https://idp.example.com",
            "certificate_pem": certificate_pem.decode(),
        })
        assert _actions(_replay(log, store)) == ["ssl.cancel"]

    def test_trusted_certificate_file_proceeds(
        self, store, certificate, certificate_file: Path
    ) -> None:
        store.add(certificate)
        log = _log({
            "type": "ssl_error",
            "url": "https://idp.example.com",
            "certificate_file": certificate_file.name,
        })
        report = _replay(log, store, base_dir=certificate_file.parent)
        assert _actions(report) == ["ssl.proceed"]

    def test_missing_certificate_file(self, store, tmp_path: Path) -> None:
        log = _log({"type": "ssl_error", "url": "https://x", "certificate_file": "gone.pem"})
        with pytest.raises(EventLogError, match="cannot read certificate file"):
            _replay(log, store, base_dir=tmp_path)

    def test_ssl_error_without_certificate_is_cancelled(self, store) -> None:
        log = _log({"type": "ssl_error", "url": "https://idp.example.com"})
        assert _actions(_replay(log, store)) == ["ssl.cancel"]

    def test_http_auth_rejected(self, store) -> None:
        log = _log({"type": "http_auth", "host": "idp.example.com", "realm": "Corp"})
        report = _replay(log, store)
        assert _actions(report) == ["http_auth.cancel"]
        assert report.commands[0].args == {"url": "idp.example.com"}

    def test_http_auth_credentials_not_recorded(self, store) -> None:
        def answer(surface, auth_host, realm, handle):
            handle.proceed("alice", "s3cret")

        prompt = MagicMock()
        prompt.present_auth_challenge.side_effect = answer
        log = _log({"type": "http_auth", "host": "idp.example.com"})
        report = replay(
            log,
            trust_store=store,
            trust_dialog=RejectingTrustDialog(),
            credentials_prompt=prompt,
        )
        assert _actions(report) == ["http_auth.proceed"]
        assert "s3cret" not in report.model_dump_json()

    def test_handle_resolved_once(self, store, certificate_pem: bytes) -> None:
        def twice(certificate, error, handle):
            handle.cancel()
            handle.proceed()

        dialog = MagicMock()
        dialog.present_untrusted.side_effect = twice
        log = _log({
            "type": "ssl_error",
            "url": "https://idp.example.com",
            "certificate_pem": certificate_pem.decode(),
        })
        report = replay(
            log,
            trust_store=store,
            trust_dialog=dialog,
            credentials_prompt=RejectingCredentialsPrompt(),
        )
        assert _actions(report) == ["ssl.cancel"]

    def test_target_prefix_override(self, store) -> None:
        log = _log(
            {"type": "page_finished", "url": TARGET + "?code=1"},
            {"type": "page_finished", "url": "myapp://done?code=2"},
        )
        report = _replay(log, store, target_prefix="myapp://done")
        assert report.captured_uri == "myapp://done?code=2"

    def test_set_target_prefix_event(self, store) -> None:
        log = _log(
            {"type": "page_finished", "url": "myapp://done?code=2"},
            {"type": "set_target_prefix", "prefix": "myapp://done"},
            {"type": "page_finished", "url": "myapp://done?code=3"},
            target_prefix=None,
        )
        report = _replay(log, store)
        assert report.target_prefix == "myapp://done"
        assert report.captured_uri == "myapp://done?code=3"

    def test_no_prefix_captures_nothing(self, store) -> None:
        log = _log({"type": "page_finished", "url": TARGET + "?code=1"}, target_prefix=None)
        report = _replay(log, store)
        assert report.target_prefix == UNSET_TARGET_PREFIX
        assert report.captured_uri is None

    def test_capture_only_once(self, store) -> None:
        log = _log(
            {"type": "page_finished", "url": TARGET + "?code=1"},
            {"type": "page_finished", "url": TARGET + "?code=2"},
        )
        report = _replay(log, store)
        assert report.captured_uri == TARGET + "?code=1"
        assert _actions(report) == ["hide"]

    def test_clear_cache_disabled(self, store) -> None:
        log = _log({"type": "page_started", "url": "https://idp.example.com"})
        assert _actions(_replay(log, store, clear_cache_on_page_start=False)) == []

    @pytest.mark.parametrize(
        "event, field",
        [
            ({"type": "page_finished"}, "url"),
            ({"type": "http_auth"}, "host"),
            ({"type": "set_target_prefix"}, "prefix"),
        ],
    )
    def test_missing_required_field(self, store, event: dict, field: str) -> None:
        with pytest.raises(EventLogError, match=f"Event 0 .* requires '{field}'"):
            _replay(_log(event), store)
