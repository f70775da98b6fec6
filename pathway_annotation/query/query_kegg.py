from abc import ABC, abstractmethod
from typing import List, Sequence

from pathway_annotation.extract import RemoteEntry


class QueryKeggABC(ABC):

    max_ids = 10

    @abstractmethod
    def query(self, ids: Sequence[str]) -> List[RemoteEntry]:
        """
        Return the entries known for ``ids``; unknown ids are omitted.
        Raise RemoteTransientError when the request itself fails.
        """
        raise NotImplementedError
