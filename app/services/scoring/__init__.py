from .confidence import ConfidenceScore, grounding_found_evidence, score_confidence

__all__ = ["ConfidenceScore", "grounding_found_evidence", "score_confidence"]
