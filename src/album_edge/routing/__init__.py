"""Request classification and caching strategies."""

from album_edge.routing.background import BackgroundJobs
from album_edge.routing.classifier import RequestClass, classify
from album_edge.routing.dispatcher import StrategyDispatcher
from album_edge.routing.range_engine import RangeReconstructionEngine, parse_range

__all__ = [
    "BackgroundJobs",
    "RangeReconstructionEngine",
    "RequestClass",
    "StrategyDispatcher",
    "classify",
    "parse_range",
]
