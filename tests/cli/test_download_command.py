"""
Test download command functionality
"""

from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from vsco_downloader.cli.main import cli
from vsco_downloader.core.runner import RunResult
from vsco_downloader.core.stats_tracker import StatsTracker
from vsco_downloader.integration.profile_scraper import ProfileNotFoundError
from vsco_downloader.models.download_models import DownloadResult

RUNNER_PATH = "vsco_downloader.cli.commands.download.VscoDownloadRunner"


def make_run(failed=0):
    stats = StatsTracker()
    stats.set_total(3)
    results = [
        DownloadResult(success=True, work_item_id="someuser/a", size_bytes=1024),
        DownloadResult(success=True, work_item_id="someuser/b", skipped=True, size_bytes=10),
    ]
    results += [
        DownloadResult(success=False, work_item_id=f"someuser/f{n}", error="HTTP 500")
        for n in range(failed)
    ]
    for result in results:
        stats.record(result)
    return RunResult(
        username="someuser",
        results=results,
        stats=stats,
        total_storage=1034,
        failed_results=[r for r in results if not r.success],
    )


class TestDownloadValidation:
    """Test argument validation before any browser work"""

    def test_invalid_username(self):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            result = runner.invoke(cli, ["download", "not a user!"])

        assert result.exit_code == 2
        assert "Validation Error" in result.output
        mock_runner.assert_not_called()

    def test_concurrency_out_of_range(self, tmp_path):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            result = runner.invoke(
                cli, ["download", "someuser", "-c", "11", "-o", str(tmp_path)]
            )

        assert result.exit_code == 2
        assert "Concurrency cannot exceed 10" in result.output
        mock_runner.assert_not_called()

    def test_download_dir_is_a_file(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("x")
        runner = CliRunner()

        result = runner.invoke(cli, ["download", "someuser", "-o", str(target)])

        assert result.exit_code == 2

    def test_missing_explicit_config(self, tmp_path):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            result = runner.invoke(
                cli,
                [
                    "download",
                    "someuser",
                    "-o",
                    str(tmp_path),
                    "--config",
                    str(tmp_path / "missing.yaml"),
                ],
            )

        assert result.exit_code == 1
        assert "Configuration Error" in result.output
        mock_runner.assert_not_called()


class TestDownloadRun:
    """Test the command with the runner mocked out"""

    def test_options_reach_configuration(self, tmp_path):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            mock_runner.return_value.run = AsyncMock(return_value=make_run())
            result = runner.invoke(
                cli,
                [
                    "download",
                    "@SomeUser",
                    "-o",
                    str(tmp_path / "out"),
                    "-c",
                    "5",
                    "--batch-size",
                    "10",
                    "--delay-between-batches",
                    "250",
                    "--retries",
                    "2",
                    "--limit",
                    "40",
                    "--dry-run",
                ],
            )

        assert result.exit_code == 0, result.output
        config = mock_runner.call_args.args[0]
        assert config.username == "someuser"
        assert config.download.max_concurrency == 5
        assert config.download.batch_size == 10
        assert config.download.delay_between_batches_ms == 250
        assert config.download.retries == 2
        assert config.download.limit == 40
        assert config.download.dry_run is True
        assert config.download.enable_batching is True
        assert config.storage.download_dir == (tmp_path / "out").resolve()
        mock_runner.return_value.run.assert_awaited_once_with("someuser")
        assert "Download Results" in result.output

    def test_no_batching_flag(self, tmp_path):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            mock_runner.return_value.run = AsyncMock(return_value=make_run())
            result = runner.invoke(
                cli, ["download", "someuser", "-o", str(tmp_path), "--no-batching"]
            )

        assert result.exit_code == 0, result.output
        assert mock_runner.call_args.args[0].download.enable_batching is False
        assert "Batching: disabled" in result.output

    def test_failures_are_listed(self, tmp_path):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            mock_runner.return_value.run = AsyncMock(return_value=make_run(failed=2))
            result = runner.invoke(cli, ["download", "someuser", "-o", str(tmp_path)])

        assert result.exit_code == 0
        assert "Failed Downloads" in result.output
        assert "HTTP 500" in result.output

    def test_runner_error_exits_one(self, tmp_path):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            mock_runner.return_value.run = AsyncMock(
                side_effect=ProfileNotFoundError("VSCO profile @someuser not found", "someuser")
            )
            result = runner.invoke(cli, ["download", "someuser", "-o", str(tmp_path)])

        assert result.exit_code == 1
        assert "Download Error" in result.output
        assert "Check the spelling of the username" in result.output

    def test_result_callback_is_passed(self, tmp_path):
        runner = CliRunner()
        with patch(RUNNER_PATH) as mock_runner:
            mock_runner.return_value.run = AsyncMock(return_value=make_run())
            runner.invoke(cli, ["download", "someuser", "-o", str(tmp_path)])

        assert callable(mock_runner.call_args.kwargs["on_result"])
