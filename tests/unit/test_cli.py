"""
Unit tests for the daily overview command line.

Related: daily_overview/cli.py
"""

import json
from datetime import timedelta
from unittest.mock import patch

from daily_overview.cli import main, render_text
from daily_overview.exceptions import SourceFetchError
from daily_overview.models import AggregationResult, Category, CompletionEvent
from daily_overview.overview_service import DailyOverviewService


class TestRenderText:

    def test_empty_sections_show_nothing_today(self, reference_now):
        text = render_text(AggregationResult(), reference_now)

        assert text.startswith("📅 Heutige Fertigstellungen (19.10.2026)")
        assert "Heute werden keine Lagerräume fertig." in text
        assert "Heute enden keine Lehrgänge." in text

    def test_events_are_listed(self, reference_now):
        result = AggregationResult.from_buckets({
            Category.STORAGE_UPGRADE: [CompletionEvent(
                category=Category.STORAGE_UPGRADE, label="initial_containers",
                completes_at=reference_now + timedelta(hours=1), context="B")],
            Category.SCHOOLING: [CompletionEvent(
                category=Category.SCHOOLING, label="GW-Messtechnik",
                completes_at=reference_now + timedelta(minutes=30), source_ref="x")],
        })

        text = render_text(result, reference_now)

        assert "  B: initial_containers (Fertig am 19.10.2026 13:00)" in text
        assert "  GW-Messtechnik (Endet am 19.10.2026 12:30)" in text


class TestMain:

    def test_prints_text_overview(self, fake_sources, capsys, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        with patch("daily_overview.cli.build_default_service",
                   return_value=DailyOverviewService(fake_sources)):
            exit_code = main([])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Gebäude-Erweiterungen" in out
        assert fake_sources.closed is True

    def test_prints_json(self, fake_sources, capsys, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        with patch("daily_overview.cli.build_default_service",
                   return_value=DailyOverviewService(fake_sources)):
            exit_code = main(["--json"])

        data = json.loads(capsys.readouterr().out)
        assert exit_code == 0
        assert set(data) == {"extensions", "storage_upgrades", "specialization", "schoolings"}

    def test_source_failure_exits_with_error(self, fake_sources, capsys, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        fake_sources.failing_sources["buildings"] = SourceFetchError("buildings", "HTTP 503")
        with patch("daily_overview.cli.build_default_service",
                   return_value=DailyOverviewService(fake_sources)):
            exit_code = main([])

        assert exit_code == 1
        assert "Fehler beim Laden der Daten" in capsys.readouterr().err

    def test_source_failure_is_logged_as_structured_error(self, fake_sources, monkeypatch):
        monkeypatch.delenv("SENTRY_DSN", raising=False)
        fake_sources.failing_sources["courses"] = SourceFetchError("courses", "HTTP 502", "/schoolings")
        with patch("daily_overview.cli.build_default_service",
                   return_value=DailyOverviewService(fake_sources)), \
                patch("daily_overview.cli.log_error") as log_error:
            assert main([]) == 1

        log_error.assert_called_once()
        args, kwargs = log_error.call_args
        assert args[0] == "SourceFetchError"
        assert kwargs == {"source": "courses", "url": "/schoolings"}
