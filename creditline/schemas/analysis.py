"""Schemas for text analysis requests and results."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from creditline.schemas.subscription import CamelModel

DEFAULT_FRAMEWORK = "3W1H"


class AnalyzeTextRequest(CamelModel):
    text: str = Field(..., min_length=1)
    framework: str = Field(default=DEFAULT_FRAMEWORK, min_length=1)


class AnalysisResult(CamelModel):
    """Normalized analyzer output; the only shape used past the analyzer boundary."""

    framework: str
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    detected_language: str = "en"
    was_translated: bool = False
    translated_text: Optional[str] = None
    confidence_score: int = 0


def normalize_analysis(raw: Any, framework: str) -> AnalysisResult:
    """Normalize raw analyzer output.

    Accepts either a bare list of rows or an object with a ``rows`` list and
    optional language metadata. Anything else yields no rows.
    """
    metadata: Dict[str, Any] = {}
    if isinstance(raw, list):
        rows = raw
    elif isinstance(raw, dict) and isinstance(raw.get("rows"), list):
        rows = raw["rows"]
        metadata = raw
    else:
        rows = []

    rows = [row for row in rows if isinstance(row, dict)]
    return AnalysisResult(
        framework=framework,
        rows=rows,
        detected_language=metadata.get("detectedLanguage") or "en",
        was_translated=bool(metadata.get("wasTranslated", False)),
        translated_text=metadata.get("translatedText"),
        confidence_score=95 if rows else 40,
    )
