from .query_reference import QueryReferenceABC, QueryReferenceMemory, build_reference_index
from .query_reference_local import QueryReferenceLocal
from .query_kegg import QueryKeggABC
from .query_kegg_rest import QueryKeggREST

__all__ = [
    'QueryReferenceABC',
    'QueryReferenceMemory',
    'QueryReferenceLocal',
    'QueryKeggABC',
    'QueryKeggREST',
    'build_reference_index',
]
