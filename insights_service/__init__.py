from .generator import INSIGHT_TYPES, InsightsGenerator

__all__ = ["INSIGHT_TYPES", "InsightsGenerator"]
