import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class ConsoleProgress:
    """Progress reporter for step-by-step operations.

    Renders into the log at most every ``report_every`` steps and once more
    when the work completes.
    """

    def __init__(
        self,
        total: int,
        label: str = 'Progress',
        report_every: int = 25,
    ) -> None:
        self.total = max(1, int(total))
        self.done = 0
        self.start = time.monotonic()
        self.label = label
        self.report_every = max(1, int(report_every))
        self._lock = asyncio.Lock()
        self._closed = False

    def _format_eta(self, remaining: float) -> str:
        if remaining == float('inf'):
            return '--:--'
        m, s = divmod(int(remaining), 60)
        h, m = divmod(m, 60)
        if h > 0:
            return f'{h:02d}:{m:02d}:{s:02d}'
        return f'{m:02d}:{s:02d}'

    def _render(self) -> None:
        elapsed = max(1e-6, time.monotonic() - self.start)
        rps = self.done / elapsed
        remaining = (self.total - self.done) / rps if rps > 0 else float('inf')
        bar_len = 30
        filled = int(bar_len * self.done / self.total)
        bar = '#' * filled + '.' * (bar_len - filled)
        logger.info(
            '%s: [%s] %d/%d | %4.1f/s | ETA %s',
            self.label,
            bar,
            self.done,
            self.total,
            rps,
            self._format_eta(remaining),
        )

    def _advance(self, n: int) -> None:
        before = self.done
        self.done = min(self.total, self.done + n)
        crossed = self.done // self.report_every != before // self.report_every
        if crossed or self.done == self.total:
            self._render()

    def step_sync(self, n: int = 1) -> None:
        self._advance(n)

    async def step(self, n: int = 1) -> None:
        async with self._lock:
            self._advance(n)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self.done < self.total:
            self._render()
