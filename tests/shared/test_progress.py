"""Tests for progress module."""

import logging

import pytest

from shared.progress import ConsoleProgress


class TestConsoleProgress:
    """Tests for ConsoleProgress class."""

    def test_total_at_least_one(self):
        """Zero total should not divide by zero."""
        progress = ConsoleProgress(total=0)
        assert progress.total == 1

    def test_reports_every_n_steps(self, caplog):
        progress = ConsoleProgress(total=10, label='Work', report_every=5)
        with caplog.at_level(logging.INFO, logger='shared.progress'):
            for _ in range(4):
                progress.step_sync()
            assert caplog.records == []
            progress.step_sync()
        assert len(caplog.records) == 1
        assert 'Work' in caplog.text
        assert '5/10' in caplog.text

    def test_done_clamped_to_total(self):
        progress = ConsoleProgress(total=3)
        progress.step_sync(10)
        assert progress.done == 3

    def test_close_renders_unfinished_once(self, caplog):
        progress = ConsoleProgress(total=100, report_every=50)
        progress.step_sync(3)
        with caplog.at_level(logging.INFO, logger='shared.progress'):
            progress.close()
            progress.close()
        assert len(caplog.records) == 1
        assert '3/100' in caplog.text

    def test_format_eta(self):
        progress = ConsoleProgress(total=1)
        assert progress._format_eta(float('inf')) == '--:--'
        assert progress._format_eta(65) == '01:05'
        assert progress._format_eta(3725) == '01:02:05'

    @pytest.mark.asyncio
    async def test_async_step(self):
        progress = ConsoleProgress(total=4)
        for _ in range(4):
            await progress.step()
        assert progress.done == 4
