from src.graph_construction.categories import Category
from src.graph_construction.errors import (
    DataIntegrityError,
    AliasCollisionError,
    UnknownCategoryError
)
from src.graph_construction.models import (
    AccountRecord,
    Transaction,
    OperationKind,
    Direction,
    GraphNode,
    GraphEdge,
    NodeStats
)
from src.graph_construction.resolver import IdentityResolver
from src.graph_construction.assembler import TransactionGraph
from src.graph_construction.builder import GraphBuilder, GraphConfig, build_graph
from src.graph_construction.summary import summarize_graph, write_summary
from src.graph_construction.patterns import PatternDetector, SuspiciousPattern, detect_patterns, write_patterns
