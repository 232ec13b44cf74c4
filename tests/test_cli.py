"""Tests for the command-line interface."""

import json

import pytest

from jobharvest.cli import async_main, build_config, parse_args

from tests.conftest import BOARD, FEED, feed_of, jobs_page


def routes():
    return {
        BOARD.url: jobs_page("Board job", 3),
        FEED.rss_url: feed_of("Feed job", 2),
    }


class TestParseArgs:
    def test_sources(self):
        args = parse_args(["sources"])

        assert args.command == "sources"
        assert args.json is False
        assert args.concurrency == 10

    def test_probe(self):
        args = parse_args(["probe", "LinkedIn", "--json"])

        assert args.command == "probe"
        assert args.site == "LinkedIn"
        assert args.json is True

    def test_scrape(self):
        args = parse_args([
            "scrape", "--source", "Board", "--limit", "50",
            "--query", "python", "-l", "berlin", "--remote", "-v",
        ])

        assert args.source == "Board"
        assert args.limit == 50
        assert args.query == "python"
        assert args.location == "berlin"
        assert args.remote is True
        assert args.verbose is True

    def test_scrape_defaults(self):
        args = parse_args(["scrape"])

        assert args.source == "all"
        assert args.limit == 1000
        assert args.query is None
        assert args.remote is False

    def test_stats_accepts_shared_options(self):
        args = parse_args(["stats", "--json", "--threads", "-c", "4", "--timeout", "30", "-q"])

        assert args.command == "stats"
        assert args.json is True
        assert args.quiet is True

        config = build_config(args)
        assert config.max_concurrent_requests == 4
        assert config.scrape_timeout_s == 30.0
        assert config.parser_pool == "thread"

    def test_command_is_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_unknown_option(self):
        with pytest.raises(SystemExit):
            parse_args(["sources", "--bogus"])


class TestAsyncMain:
    async def test_scrape_json(self, make_service, capsys):
        service = make_service(routes(), [BOARD, FEED])

        code = await async_main(parse_args(["scrape", "--json", "--limit", "10"]), service=service)

        assert code == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload["totalJobs"] == 5
        assert len(payload["jobs"]) == 5
        assert payload["fromCache"] is False

    async def test_probe_summary(self, make_service, capsys):
        service = make_service(routes(), [BOARD, FEED])

        code = await async_main(parse_args(["probe", "feed"]), service=service)

        assert code == 0
        assert capsys.readouterr().out.strip() == "feed: scrapable via rss (2 sample jobs)"

    async def test_stats_json(self, make_service, capsys):
        service = make_service(routes(), [BOARD, FEED])

        code = await async_main(parse_args(["stats", "--json"]), service=service)

        assert code == 0
        stats = json.loads(capsys.readouterr().out)
        assert stats["totalJobs"] == 5

    async def test_sources_listing(self, make_service, capsys):
        service = make_service(routes(), [BOARD, FEED])

        code = await async_main(parse_args(["sources"]), service=service)

        out = capsys.readouterr().out
        assert code == 0
        assert "Board" in out and FEED.url in out
        assert service.send.calls == []
