from __future__ import annotations

import logging
import urllib.error
from pathlib import Path

import pytest

import scraper
from mleague_config import Period, merge_config
from scraper import (
    build_schedule_url,
    fetch_all,
    fetch_month,
    fetch_period,
    fetch_periods,
    fetch_url,
    save_to_file,
)


class FakeFetcher:
    """Stands in for the HTTP transport; responses are keyed by (year, month)."""

    def __init__(self, pages: dict, default=(200, "<html></html>")):
        self.pages = pages
        self.default = default
        self.calls = []

    def __call__(self, url: str):
        self.calls.append(url)
        for (year, month), response in self.pages.items():
            if f"mly={year}&mlm={month}#" in url:
                if isinstance(response, Exception):
                    raise response
                return response
        return self.default


def test_build_schedule_url() -> None:
    assert build_schedule_url(2025, 9) == "https://m-league.jp/games/?mly=2025&mlm=9#schedule"
    assert build_schedule_url(2026, 1) == "https://m-league.jp/games/?mly=2026&mlm=1#schedule"


def test_fetch_month_parses_page(load_fixture) -> None:
    fetcher = FakeFetcher({(2025, 9): (200, load_fixture("2025-09.html"))})

    records = fetch_month(2025, 9, fetcher)

    assert fetcher.calls == ["https://m-league.jp/games/?mly=2025&mlm=9#schedule"]
    assert len(records) == 3
    assert records[0].date == "2025-09-15"


def test_fetch_period_uses_period_fields(load_fixture) -> None:
    fetcher = FakeFetcher({(2025, 9): (200, load_fixture("2025-09.html"))})
    assert len(fetch_period(Period(2025, 9), fetcher)) == 3


def test_fetch_month_without_schedule_data(caplog) -> None:
    caplog.set_level(logging.INFO)
    fetcher = FakeFetcher({}, default=(200, "<html><body>No schedule</body></html>"))

    assert fetch_month(2025, 4, fetcher) == []
    assert "No schedule data available for 2025/4" in caplog.text


def test_fetch_month_off_season_page(load_fixture) -> None:
    fetcher = FakeFetcher({(2026, 4): (200, load_fixture("2026-04.html"))})
    assert fetch_month(2026, 4, fetcher) == []


def test_fetch_month_http_error_status(caplog) -> None:
    fetcher = FakeFetcher({(2025, 9): (500, "")})

    assert fetch_month(2025, 9, fetcher) == []
    assert "Error fetching schedule for 2025/9" in caplog.text
    assert "500" in caplog.text


def test_fetch_month_network_error(caplog) -> None:
    fetcher = FakeFetcher({(2025, 9): urllib.error.URLError("connection refused")})

    assert fetch_month(2025, 9, fetcher) == []
    assert "Error fetching schedule for 2025/9" in caplog.text
    assert "connection refused" in caplog.text


def test_fetch_all_continues_past_failed_period(load_fixture) -> None:
    periods = [Period(2026, 3), Period(2026, 4), Period(2026, 5), Period(2026, 6)]
    config = merge_config({"periods": [{"year": p.year, "month": p.month} for p in periods]})
    off_season = (200, load_fixture("2026-04.html"))
    fetcher = FakeFetcher({(2026, 5): ConnectionError("boom")}, default=off_season)

    records = fetch_all(fetcher, config)

    assert records == []
    assert len(fetcher.calls) == len(periods)


def test_fetch_periods_concatenates_in_period_order(load_fixture, caplog) -> None:
    caplog.set_level(logging.INFO)
    page = load_fixture("2025-09.html")
    fetcher = FakeFetcher({
        (2025, 9): (200, page),
        (2025, 10): (404, ""),
        (2026, 9): (200, page),
    })

    records = fetch_periods([Period(2025, 9), Period(2025, 10), Period(2026, 9)], fetcher)

    assert [r.date for r in records] == [
        "2025-09-15", "2025-09-16", "2025-09-18",
        "2026-09-15", "2026-09-16", "2026-09-18",
    ]
    assert "Found 3 matches for 2025/9" in caplog.text
    assert "Found 0 matches for 2025/10" in caplog.text


def test_fetch_url_returns_status_and_body(monkeypatch) -> None:
    class FakeResponse:
        status = 200

        def read(self):
            return "<html>日程</html>".encode("utf-8")

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

    seen = {}

    def fake_urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["timeout"] = timeout
        return FakeResponse()

    monkeypatch.setattr(scraper.urllib.request, "urlopen", fake_urlopen)

    assert fetch_url("https://m-league.jp/games/") == (200, "<html>日程</html>")
    assert seen == {"url": "https://m-league.jp/games/", "timeout": 30}


def test_fetch_url_returns_http_error_status(monkeypatch) -> None:
    def fake_urlopen(req, timeout):
        raise urllib.error.HTTPError(req.full_url, 404, "Not Found", hdrs=None, fp=None)

    monkeypatch.setattr(scraper.urllib.request, "urlopen", fake_urlopen)

    assert fetch_url("https://m-league.jp/games/") == (404, "")


def test_save_to_file_writes_and_overwrites(tmp_path, caplog) -> None:
    caplog.set_level(logging.INFO)
    target = tmp_path / "docs" / "test.ics"

    save_to_file(target, "First content")
    save_to_file(target, "テスト内容: 日本語テキスト 🎌")

    assert target.read_text(encoding="utf-8") == "テスト内容: 日本語テキスト 🎌"
    assert f"Saved to {target}" in caplog.text


def test_main_writes_calendar(tmp_path, monkeypatch, load_fixture) -> None:
    page = load_fixture("2025-09.html")
    monkeypatch.setattr(scraper, "fetch_url", FakeFetcher({(2025, 9): (200, page)}))
    output = tmp_path / "m-league-schedule.ics"

    scraper.main(["--period", "2025-09", "--period", "2025-10", "--output", str(output)])

    content = output.read_bytes().decode("utf-8")
    assert content.count("BEGIN:VEVENT") == 3
    assert "\r\n" in content


def test_main_keeps_existing_file_when_nothing_found(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(scraper, "fetch_url", FakeFetcher({}))
    output = tmp_path / "m-league-schedule.ics"
    output.write_text("previous", encoding="utf-8")

    scraper.main(["--period", "2025-09", "--output", str(output)])

    assert output.read_text(encoding="utf-8") == "previous"


def test_main_exits_on_bad_config(tmp_path) -> None:
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        scraper.main(["--config", str(config_file)])

    assert exc.value.code == 1


def test_main_exits_on_write_failure(tmp_path, monkeypatch, load_fixture) -> None:
    page = load_fixture("2025-09.html")
    monkeypatch.setattr(scraper, "fetch_url", FakeFetcher({(2025, 9): (200, page)}))
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        scraper.main(["--period", "2025-09", "--output", str(Path(blocker) / "out.ics")])

    assert exc.value.code == 1


def test_main_rejects_invalid_end_time_before_fetching(tmp_path, monkeypatch) -> None:
    fetcher = FakeFetcher({})
    monkeypatch.setattr(scraper, "fetch_url", fetcher)
    config_file = tmp_path / "config.json"
    config_file.write_text('{"calendar": {"event_end_time": "24:00:00"}}', encoding="utf-8")

    with pytest.raises(SystemExit) as exc:
        scraper.main(["--config", str(config_file)])

    assert exc.value.code == 1
    assert fetcher.calls == []
