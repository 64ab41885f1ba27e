"""Cuisine similarity analysis: recipes -> ingredient matrix -> clusters -> similarity graph."""

from .errors import CuisineSimilarityError, EmptyCorpusError, MalformedRecordError, ZeroRowError
from .pipeline import AnalysisParams, AnalysisResult, analyze, analyze_documents
from .runner import PIPELINE_ORDER, PipelineRunner, StageName

__all__ = [
    "PIPELINE_ORDER",
    "PipelineRunner",
    "StageName",
    "AnalysisParams",
    "AnalysisResult",
    "analyze",
    "analyze_documents",
    "CuisineSimilarityError",
    "EmptyCorpusError",
    "MalformedRecordError",
    "ZeroRowError",
]
