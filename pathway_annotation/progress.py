import logging
from datetime import timedelta
from typing import Protocol

from tqdm import tqdm

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):

    def report(self, completed: int, total: int, elapsed: timedelta) -> None:
        ...


class NullProgress:

    def report(self, completed, total, elapsed):
        pass


class LoggingProgress:

    def report(self, completed, total, elapsed):
        logger.info(f'chunk {completed}/{total} done ({elapsed.total_seconds():.2f}s)')


class TqdmProgress:
    """Progress bar over chunks; closes itself after the last chunk."""

    def __init__(self, desc='KEGG', **kwargs):
        self.desc = desc
        self.kwargs = kwargs
        self.bar = None

    def report(self, completed, total, elapsed):
        if self.bar is None:
            self.bar = tqdm(total=total, desc=self.desc, unit='chunk', **self.kwargs)
        self.bar.update(completed - self.bar.n)
        self.bar.set_postfix(elapsed=f'{elapsed.total_seconds():.2f}s')
        if completed >= total:
            self.close()

    def close(self):
        if self.bar is not None:
            self.bar.close()
            self.bar = None
