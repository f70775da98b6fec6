"""
Batch KEGG enrichment of significant DAA features.

The selected rows are cut into consecutive chunks of at most ``kegg_limit``
feature ids. Each chunk is sent to the remote lookup once, retried with
exponential backoff on failure, and the returned entries are matched back to
the chunk's rows by id. Ids the remote side does not know are left with
absent pathway fields.
"""
import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterator, Optional, Sequence, Tuple

import pandas as pd
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    stop_when_event_set,
    wait_exponential,
)

from pathway_annotation.errors import EnrichmentCancelled, RemoteUnavailable
from pathway_annotation.extract import ABSENT, RemoteEntry, safe_field
from pathway_annotation.progress import NullProgress, ProgressSink
from pathway_annotation.query.query_kegg import QueryKeggABC

logger = logging.getLogger(__name__)

# output column -> remote entry field
ENRICHMENT_FIELDS = {
    'pathway_name': 'NAME',
    'pathway_description': 'DESCRIPTION',
    'pathway_class': 'CLASS',
    'pathway_map': 'PATHWAY_MAP',
}


@dataclass(frozen=True)
class Chunk:
    index: int
    start: int
    end: int
    ids: Tuple[str, ...]


def count_chunks(n: int, limit: int) -> int:
    return math.ceil(n / limit)


def iter_chunks(features: Sequence[str], limit: int) -> Iterator[Chunk]:
    if limit < 1:
        raise ValueError(f'chunk limit must be positive, got {limit}')
    for idx in range(count_chunks(len(features), limit)):
        start = idx * limit
        end = min(start + limit, len(features))
        yield Chunk(index=idx, start=start, end=end, ids=tuple(features[start:end]))


class KeggEnrichment:

    def __init__(self, query: QueryKeggABC,
                 kegg_limit: int = 10,
                 max_attempts: Optional[int] = 5,
                 backoff_min: float = 1.0,
                 backoff_max: float = 30.0,
                 backoff_multiplier: float = 1.0,
                 progress: Optional[ProgressSink] = None,
                 cancel_event: Optional[threading.Event] = None,
                 sleep=time.sleep):
        if not 1 <= kegg_limit <= query.max_ids:
            raise ValueError(f'kegg_limit must be between 1 and the remote limit of {query.max_ids} ids, '
                             f'got {kegg_limit}')
        self.query = query
        self.kegg_limit = kegg_limit
        self.max_attempts = max_attempts
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self.backoff_multiplier = backoff_multiplier
        self.progress = progress or NullProgress()
        self.cancel_event = cancel_event
        self.sleep = sleep

    @classmethod
    def from_config(cls, query, config, **kwargs):
        return cls(query,
                   kegg_limit=config.kegg_limit,
                   max_attempts=config.max_attempts,
                   backoff_min=config.backoff_min,
                   backoff_max=config.backoff_max,
                   backoff_multiplier=config.backoff_multiplier,
                   **kwargs)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    @staticmethod
    def _log_retry(retry_state):
        logger.warning(f'An error occurred (attempt {retry_state.attempt_number}): '
                       f'{retry_state.outcome.exception()}. Retrying...')

    def _retrying(self) -> Retrying:
        stop = stop_never if self.max_attempts is None else stop_after_attempt(self.max_attempts)
        if self.cancel_event is not None:
            stop = stop | stop_when_event_set(self.cancel_event)
        return Retrying(
            stop=stop,
            wait=wait_exponential(multiplier=self.backoff_multiplier, min=self.backoff_min, max=self.backoff_max),
            retry=retry_if_exception_type(Exception),
            before_sleep=self._log_retry,
            sleep=self.sleep,
        )

    def fetch_chunk(self, chunk: Chunk, completed: int = 0, total: int = 0) -> Dict[str, RemoteEntry]:
        """Query one chunk with retry and return its entries keyed by entry id."""
        try:
            entries = self._retrying()(self.query.query, list(chunk.ids))
        except RetryError as e:
            last = e.last_attempt
            if self._cancelled():
                raise EnrichmentCancelled(completed, total) from last.exception()
            raise RemoteUnavailable(chunk.start, chunk.end, last.attempt_number) from last.exception()
        return {entry.entry_id: entry for entry in entries}

    def enrich(self, daa_results_df: pd.DataFrame, feature_column: str = 'feature') -> pd.DataFrame:
        """
        Return a copy of ``daa_results_df`` with the pathway columns of
        ``ENRICHMENT_FIELDS`` added. Row order and index are unchanged.
        """
        features = list(daa_results_df[feature_column])
        n = len(features)
        total = count_chunks(n, self.kegg_limit)
        values = {col: [ABSENT] * n for col in ENRICHMENT_FIELDS}

        logger.info('Processing pathways in chunks...')
        start_time = time.monotonic()
        for chunk in iter_chunks(features, self.kegg_limit):
            if self._cancelled():
                raise EnrichmentCancelled(chunk.index, total)
            lookup = self.fetch_chunk(chunk, chunk.index, total)

            matched_idx = [i for i in range(chunk.start, chunk.end) if features[i] in lookup]
            for i in matched_idx:
                entry = lookup[features[i]]
                for col, field in ENRICHMENT_FIELDS.items():
                    values[col][i] = safe_field(entry, field)

            self.progress.report(chunk.index + 1, total, timedelta(seconds=time.monotonic() - start_time))

        logger.info(f'Finished processing chunks. Time taken: {time.monotonic() - start_time:.2f} seconds.')

        enriched = daa_results_df.copy()
        for col in ENRICHMENT_FIELDS:
            enriched[col] = pd.Series(values[col], index=enriched.index, dtype=object)
        return enriched
