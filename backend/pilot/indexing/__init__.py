from .base import Indexer
from .files import WorkspaceFiles
from .indexer import DefaultIndexer, IndexingIssue, IndexSummary, build_index

__all__ = ["Indexer", "WorkspaceFiles", "DefaultIndexer", "IndexingIssue", "IndexSummary", "build_index"]
