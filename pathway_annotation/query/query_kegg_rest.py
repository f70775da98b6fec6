import logging
from typing import Dict, List, Sequence

import requests

from pathway_annotation.config import KEGG_GET_LIMIT
from pathway_annotation.errors import RemoteTransientError
from pathway_annotation.extract import RemoteEntry
from pathway_annotation.query.query_kegg import QueryKeggABC

logger = logging.getLogger(__name__)

# free-text fields whose continuation lines belong to the same value
_JOINED_KEYS = {'NAME', 'DESCRIPTION', 'DEFINITION', 'CLASS', 'COMMENT'}
# "<id>  <label>" lines; the label is kept
_LABELLED_KEYS = {'PATHWAY_MAP', 'PATHWAY', 'MODULE', 'DISEASE'}


def _strip_label_id(value: str) -> str:
    _parts = value.split(None, 1)
    return _parts[1].strip() if len(_parts) == 2 else value


def parse_flat_file(text: str) -> List[Dict[str, List[str]]]:
    """
    Parse a KEGG flat file response into one dict per entry, mapping each
    top-level key to its list of values.
    """
    records = []
    record = {}
    key = None
    for line in text.split('\n'):
        if line.startswith('///'):
            if record:
                records.append(record)
            record = {}
            key = None
            continue
        if not line.strip():
            continue
        if line[0] != ' ':
            key = line[:12].strip()
            value = line[12:].strip()
            if key == 'ENTRY':
                value = value.split()[0] if value else value
            elif key in _LABELLED_KEYS:
                value = _strip_label_id(value)
            record.setdefault(key, []).append(value)
        elif key is not None and not line[:12].strip():
            value = line[12:].strip()
            if key in _JOINED_KEYS:
                record[key][-1] = f'{record[key][-1]} {value}'
            elif key in _LABELLED_KEYS:
                record[key].append(_strip_label_id(value))
            else:
                record[key].append(value)
    if record:
        records.append(record)
    return records


class QueryKeggREST(QueryKeggABC):

    KEGG_API_URL = "https://rest.kegg.jp"
    max_ids = KEGG_GET_LIMIT

    def __init__(self, timeout=30, base_url=None):
        self.timeout = timeout
        self.base_url = base_url or self.KEGG_API_URL

    def query(self, ids: Sequence[str]) -> List[RemoteEntry]:
        ids = list(ids)
        if not ids:
            return []
        if len(ids) > self.max_ids:
            raise ValueError(f'KEGG accepts at most {self.max_ids} ids per request, got {len(ids)}')

        url = f"{self.base_url}/get/{'+'.join(ids)}"
        try:
            response = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise RemoteTransientError(f'KEGG request failed: {e}') from e

        # KEGG answers 404 when none of the ids exist
        if response.status_code == 404:
            return []
        if response.status_code != 200:
            raise RemoteTransientError(f'KEGG API error {response.status_code}: {response.text[:200]}')

        entries = []
        for record in parse_flat_file(response.text):
            try:
                entries.append(RemoteEntry.from_record(record))
            except ValueError as e:
                logger.warning(f'skipping malformed KEGG record: {e}')
        logger.debug(f'KEGG returned {len(entries)} of {len(ids)} entries')
        return entries
