from .extractor import AIHeadingExtractor, OutlineResult, parse_headings
from .coordinator import ParallelExtractionCoordinator

__all__ = ["AIHeadingExtractor", "OutlineResult", "parse_headings", "ParallelExtractionCoordinator"]
