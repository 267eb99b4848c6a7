"""
Integration Tests for the Batch Pipeline
========================================

Full runs from dataset scan to result file and error log, with the
in-memory render engine standing in for Chromium.
"""

import json
from unittest.mock import patch

import pytest

from tier_render.cli import cluster_main, format_summary, main, run_batch
from tier_render.core.aggregator import ResultAggregator, load_results
from tier_render.models.schemas import RenderFailure, RenderSuccess, success_for

from tests.utils.helpers import make_tasks
from tests.utils.mocks import DocumentBehavior, MockRenderEngine

pytestmark = pytest.mark.integration


def cli_args(settings):
    return [
        "--dataset-dir", str(settings.dataset_dir),
        "--output-dir", str(settings.output_dir),
        "--concurrency", "2",
        "--page-timeout", str(settings.page_timeout_ms),
        "--screenshot-timeout", str(settings.screenshot_timeout_ms),
    ]


class TestRunBatch:
    """Test the async batch runner."""

    @pytest.mark.asyncio
    async def test_all_documents_succeed(self, test_settings, dataset, mock_engine, output_stream):
        summary = await run_batch(test_settings, engine=mock_engine, stream=output_stream)

        document = json.loads(test_settings.output_file.read_text(encoding="utf-8"))
        assert sorted(document) == ["a", "b"]
        assert len(document["a"]) == 3
        assert len(document["b"]) == 1
        assert all("error" not in record for records in document.values() for record in records)
        assert test_settings.error_log_file.read_text() == ""

        for record in document["a"]:
            assert record["screenshot"].endswith(".html.jpg")
            assert (test_settings.screenshot_dir / "a" / f"{record['filename']}.jpg").exists()

        assert summary.files_processed == 4
        assert summary.error_count == 0
        assert summary.output_file == str(test_settings.output_file)
        assert "🔎 Total files to process: 4" in output_stream.getvalue()

    @pytest.mark.asyncio
    async def test_navigation_timeout_is_not_fatal(
        self, test_settings, dataset, behaviors, mock_engine, output_stream
    ):
        behaviors["2.html"] = DocumentBehavior(load_delay=5)

        summary = await run_batch(test_settings, engine=mock_engine, stream=output_stream)

        document = json.loads(test_settings.output_file.read_text(encoding="utf-8"))
        failed = [r for r in document["a"] if r.get("error")]
        assert [r["filename"] for r in failed] == ["2.html"]
        assert failed[0]["tierIndex"] == 2
        assert failed[0]["tierTotal"] == 3

        lines = test_settings.error_log_file.read_text().splitlines()
        assert len(lines) == 1
        assert str(dataset / "a" / "2.html") in lines[0]
        assert summary.error_count == 1
        assert summary.failed == 1

    @pytest.mark.asyncio
    async def test_screenshot_failure_counts_as_error(
        self, test_settings, dataset, behaviors, mock_engine, output_stream
    ):
        behaviors["only.html"] = DocumentBehavior(screenshot_error="Target crashed")

        summary = await run_batch(test_settings, engine=mock_engine, stream=output_stream)

        (record,) = json.loads(test_settings.output_file.read_text())["b"]
        assert record["screenshot"] is None
        assert record["screenshotFailed"] is True
        assert record["text"] == "Hello\nWorld"
        assert summary.error_count == 1
        assert summary.screenshot_failures == 1
        assert summary.failed == 0

    @pytest.mark.asyncio
    async def test_output_round_trips(
        self, test_settings, dataset, behaviors, mock_engine, output_stream
    ):
        behaviors["1.html"] = DocumentBehavior(nav_error="net::ERR_ABORTED")
        behaviors["3.html"] = DocumentBehavior(screenshot_error="boom", text="Ünïcode ✓")

        await run_batch(test_settings, engine=mock_engine, stream=output_stream)

        loaded = load_results(test_settings.output_file)
        assert sum(len(v) for v in loaded.values()) == 4
        by_name = {o.filename: o for o in loaded["a"]}
        assert isinstance(by_name["1.html"], RenderFailure)
        assert by_name["3.html"].text == "Ünïcode ✓"

        rewritten = test_settings.output_dir / "rewritten.json"
        ResultAggregator().write(loaded, rewritten)
        assert load_results(rewritten) == loaded

    @pytest.mark.asyncio
    async def test_empty_dataset(self, test_settings, mock_engine, output_stream):
        test_settings.dataset_dir.mkdir(parents=True)

        summary = await run_batch(test_settings, engine=mock_engine, stream=output_stream)

        assert summary.files_processed == 0
        assert json.loads(test_settings.output_file.read_text()) == {}

    def test_format_summary(self):
        from tier_render.models.schemas import RunSummary

        text = format_summary(
            RunSummary(
                files_processed=4,
                error_count=1,
                elapsed_seconds=1.5,
                output_file="out.json",
                error_log_file="errors.txt",
            )
        )
        assert "4 files processed with 1 errors" in text
        assert "1.50s" in text
        assert "errors.txt" in text


class TestMain:
    """Test exit statuses of the console entry point."""

    def test_success_exit_zero(self, test_settings, dataset, capsys):
        engine = MockRenderEngine()
        with patch("tier_render.core.queue.worker_pool.PlaywrightRenderEngine", return_value=engine):
            status = main(cli_args(test_settings))

        assert status == 0
        assert "4 files processed with 0 errors" in capsys.readouterr().out
        assert engine.stats.sessions_opened == 2

    def test_task_failure_exit_zero(self, test_settings, dataset, capsys):
        engine = MockRenderEngine({"only.html": DocumentBehavior(load_delay=5)})
        with patch("tier_render.core.queue.worker_pool.PlaywrightRenderEngine", return_value=engine):
            status = main(cli_args(test_settings))

        assert status == 0
        assert "with 1 errors" in capsys.readouterr().out

    def test_engine_startup_failure_exit_one(self, test_settings, dataset, capsys):
        engine = MockRenderEngine(fail_start=True)
        with patch("tier_render.core.queue.worker_pool.PlaywrightRenderEngine", return_value=engine):
            status = main(cli_args(test_settings))

        assert status == 1
        assert "Critical error" in capsys.readouterr().err
        assert not test_settings.output_file.exists()

    def test_output_write_failure_exit_one(self, test_settings, dataset, capsys):
        test_settings.output_dir.parent.mkdir(parents=True, exist_ok=True)
        test_settings.output_dir.write_text("a file where the output directory should be")
        engine = MockRenderEngine()
        with patch("tier_render.core.queue.worker_pool.PlaywrightRenderEngine", return_value=engine):
            status = main(cli_args(test_settings))

        assert status == 1
        assert engine.stats.stopped == 1

    def test_missing_dataset_exit_one(self, test_settings, capsys):
        assert main(cli_args(test_settings)) == 1

    def test_invalid_configuration(self, test_settings, dataset, capsys):
        args = cli_args(test_settings) + ["--screenshot-timeout", "99999"]
        assert main(args) == 2

    def test_invalid_environment_configuration(self, test_settings, dataset, monkeypatch, capsys):
        monkeypatch.setenv("TIER_RENDER_SCREENSHOT_TIMEOUT_MS", "99999")
        args = [
            "--dataset-dir", str(test_settings.dataset_dir),
            "--output-dir", str(test_settings.output_dir),
        ]

        assert main(args) == 2
        assert "Invalid configuration" in capsys.readouterr().err
        assert not test_settings.output_dir.exists()


class TestClusterMain:
    """Test clustering an existing result file."""

    def test_clusters_written_per_tier(self, test_settings, dataset, capsys):
        engine = MockRenderEngine({"3.html": DocumentBehavior(text="Something else entirely")})
        with patch("tier_render.core.queue.worker_pool.PlaywrightRenderEngine", return_value=engine):
            assert main(cli_args(test_settings)) == 0

        status = cluster_main(["--output-dir", str(test_settings.output_dir)])

        assert status == 0
        clusters = json.loads(test_settings.clusters_file.read_text(encoding="utf-8"))
        assert clusters == {"a": [["1.html", "2.html"], ["3.html"]], "b": [["only.html"]]}
        assert "📁 a: 2 clusters" in capsys.readouterr().out

    def test_explicit_paths_and_threshold(self, tmp_path, capsys):
        tasks = make_tasks({"a": 2})
        results = tmp_path / "results.json"
        ResultAggregator().write(
            {"a": [success_for(tasks[0], "red green", None), success_for(tasks[1], "red blue", None)]},
            results,
        )
        destination = tmp_path / "out" / "groups.json"

        status = cluster_main(
            ["--results", str(results), "--clusters", str(destination), "--threshold", "0.4"]
        )

        assert status == 0
        assert json.loads(destination.read_text()) == {"a": [["doc1.html", "doc2.html"]]}

    def test_missing_results_exit_one(self, tmp_path, capsys):
        status = cluster_main(["--results", str(tmp_path / "missing.json")])

        assert status == 1
        assert "Cannot read results" in capsys.readouterr().err

    def test_invalid_threshold_exit_two(self, tmp_path, capsys):
        assert cluster_main(["--output-dir", str(tmp_path), "--threshold", "1.5"]) == 2
