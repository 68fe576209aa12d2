from app.analysis.models import (
    AnalysisRequest,
    AnalysisResponse,
    AnalysisResult,
    LevelAnalysis,
    UploadStrategy,
)

__all__ = [
    "AnalysisRequest",
    "AnalysisResponse",
    "AnalysisResult",
    "LevelAnalysis",
    "UploadStrategy",
]
