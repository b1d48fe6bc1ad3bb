from .matcher import RelevanceMatcher, build_heading_corpus, parse_sections

__all__ = ["RelevanceMatcher", "build_heading_corpus", "parse_sections"]
