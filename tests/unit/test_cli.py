"""Tests for the command line interface."""

import json
import socket
from datetime import datetime, timedelta, timezone

import pytest
import yaml

from helpers import FakeSource
from tag_aggregation.cli import build_config, build_parser, build_sources, main, run_collect
from tag_aggregation.config import Config
from tag_aggregation.errors import StatsServerError
from tag_aggregation.sources import FileSource, MastodonSource


def write_statuses(path, statuses):
    path.write_text(json.dumps(statuses), encoding="utf-8")
    return str(path)


def status(status_id, tags, hours_ago=1):
    created = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return {
        "id": status_id,
        "uri": f"https://mastodon.example/statuses/{status_id}",
        "account": {"id": "42"},
        "language": None,
        "content": f"<p>status {status_id}</p>",
        "created_at": created.isoformat(),
        "tags": [{"name": name} for name in tags],
    }


class TestBuildConfig:
    """Tests for flag handling."""

    def test_flags_override_config(self, tmp_path):
        """Test command line flags override the configuration."""
        args = build_parser().parse_args([
            "-v", "collect",
            "-t", "outage,#power", "-t", "outage",
            "-s", "https://hachyderm.io/",
            "-d", str(tmp_path / "posts.db"),
            "-i", "120",
            "--port", "0",
        ])

        config = build_config(args)

        assert config.report.tags == ["outage", "power"]
        assert config.source.servers == ["hachyderm.io"]
        assert config.database.in_memory is False
        assert config.collector.poll_interval_seconds == 120
        assert config.web.port == 0
        assert config.logging.level == "DEBUG"

    def test_invalid_interval(self):
        """Test an invalid interval fails validation."""
        args = build_parser().parse_args(["collect", "-t", "outage", "-i", "0"])

        with pytest.raises(ValueError):
            build_config(args)

    def test_yaml_tags_kept_without_flag(self, tmp_path):
        """Test tags from the YAML file are used when no -t is given."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.safe_dump({"report": {"tags": ["outage"]}}))
        args = build_parser().parse_args(["-c", str(config_file), "collect"])

        assert build_config(args).report.tags == ["outage"]

    @pytest.mark.parametrize(
        "argv",
        [
            ["-v", "-c", "{config}", "collect"],
            ["collect", "-v", "-c", "{config}"],
            ["-c", "{config}", "collect", "--verbose"],
        ],
    )
    def test_common_flags_before_or_after_command(self, tmp_path, argv):
        """Test -c and -v are accepted on either side of the subcommand."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.safe_dump({"report": {"tags": ["outage"]}}))
        args = build_parser().parse_args([a.format(config=config_file) for a in argv])

        config = build_config(args)

        assert config.report.tags == ["outage"]
        assert config.logging.level == "DEBUG"

    def test_defaults_without_common_flags(self):
        """Test omitting -c and -v keeps the default configuration."""
        args = build_parser().parse_args(["collect", "-t", "outage"])

        config = build_config(args)

        assert config.logging.level == "INFO"
        assert config.report.tags == ["outage"]


class TestBuildSources:
    """Tests for source construction."""

    def test_servers(self):
        """Test one Mastodon source per server, in order."""
        args = build_parser().parse_args(["collect", "-s", "a.example", "-s", "b.example"])

        sources = build_sources(build_config(args))

        assert all(isinstance(s, MastodonSource) for s in sources)
        assert [s.name for s in sources] == ["a.example", "b.example"]

    def test_file(self, tmp_path):
        """Test a file replaces the configured servers."""
        args = build_parser().parse_args(["collect"])

        sources = build_sources(build_config(args), str(tmp_path / "statuses.json"))

        assert len(sources) == 1
        assert isinstance(sources[0], FileSource)


class TestMain:
    """Tests for the collect command."""

    def test_collect_from_file(self, tmp_path, capsys):
        """Test a one-shot collection prints the report as JSON."""
        path = write_statuses(tmp_path / "statuses.json", [
            status("1", ["outage"], hours_ago=3),
            status("2", ["outage", "power"], hours_ago=1),
            status("3", ["weather"]),
            status("4", ["outage"], hours_ago=72),
        ])

        exit_code = main(["collect", "-t", "outage", "--file", path])

        assert exit_code == 0
        report = json.loads(capsys.readouterr().out)
        assert [p["uri"] for p in report] == [
            "https://mastodon.example/statuses/2",
            "https://mastodon.example/statuses/1",
        ]
        assert report[0]["tag_list"] == ["outage", "power"]
        assert report[0]["lang"] == "en"

    def test_collect_into_database(self, tmp_path, capsys):
        """Test collected posts persist across runs."""
        path = write_statuses(tmp_path / "statuses.json", [status("1", ["outage"])])
        database = str(tmp_path / "posts.db")

        assert main(["collect", "-t", "outage", "--file", path, "-d", database]) == 0
        write_statuses(tmp_path / "statuses.json", [])
        capsys.readouterr()

        assert main(["collect", "-t", "outage", "--file", path, "-d", database]) == 0

        report = json.loads(capsys.readouterr().out)
        assert len(report) == 1

    def test_verbose_after_command(self, tmp_path, capsys):
        """Test -v given after the subcommand is accepted."""
        path = write_statuses(tmp_path / "statuses.json", [status("1", ["outage"])])

        exit_code = main(["collect", "-t", "outage", "--file", path, "-v"])

        assert exit_code == 0
        report = json.loads(capsys.readouterr().out)
        assert [p["uri"] for p in report] == ["https://mastodon.example/statuses/1"]

    def test_http_port_in_use(self, tmp_path):
        """Test an occupied stats port fails the command."""
        path = write_statuses(tmp_path / "statuses.json", [])

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupied:
            occupied.bind(("127.0.0.1", 0))
            occupied.listen()
            port = occupied.getsockname()[1]

            exit_code = main([
                "collect", "-t", "outage", "--file", path,
                "--http", "--host", "127.0.0.1", "--port", str(port),
            ])

        assert exit_code == 1

    def test_http_port_in_use_never_starts_collector(self):
        """Test the collector is not started when the stats server cannot bind."""
        calls = []
        config = Config()
        config.report.tags = ["outage"]
        config.web.host = "127.0.0.1"

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as occupied:
            occupied.bind(("127.0.0.1", 0))
            occupied.listen()
            config.web.port = occupied.getsockname()[1]

            with pytest.raises(StatsServerError):
                run_collect(config, [FakeSource("a", call_log=calls)], http=True)

        assert calls == []

    def test_no_results(self, tmp_path, capsys):
        """Test an empty report."""
        path = write_statuses(tmp_path / "statuses.json", [status("1", ["weather"])])

        exit_code = main(["collect", "-t", "outage", "--file", path])

        assert exit_code == 0
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "no results" in captured.err

    def test_unreadable_file_still_reports(self, tmp_path, capsys):
        """Test a failed collection is logged and the report still printed."""
        exit_code = main(["collect", "-t", "outage", "--file", str(tmp_path / "missing.json")])

        assert exit_code == 0
        assert "no results" in capsys.readouterr().err

    def test_no_tags(self, tmp_path):
        """Test collecting without tags fails."""
        path = write_statuses(tmp_path / "statuses.json", [])

        assert main(["collect", "--file", path]) == 1

    def test_missing_config_file(self, tmp_path, capsys):
        """Test a missing configuration file fails."""
        exit_code = main(["-c", str(tmp_path / "missing.yaml"), "collect", "-t", "outage"])

        assert exit_code == 1
        assert "Invalid configuration" in capsys.readouterr().err

    def test_command_required(self):
        """Test a subcommand is required."""
        with pytest.raises(SystemExit):
            main([])
