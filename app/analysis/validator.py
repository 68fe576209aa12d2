"""Validates parsed model output against the analysis result shape."""

import unicodedata
from typing import Any

from app.analysis.exceptions import MalformedResponseError
from app.analysis.models import AnalysisResult, AnatomicalLevel, CollapsePattern, LevelAnalysis

_REQUIRED_FIELDS = (
    *(level.value for level in AnatomicalLevel),
    "nivel_confianca",
    "analise_clinica",
)


def validate_and_build(data: dict[str, Any]) -> AnalysisResult:
    """Validate raw parsed JSON and build an AnalysisResult.

    Percentages must be whole numbers within 0-100; out-of-range values are
    rejected rather than clamped.

    Raises:
        MalformedResponseError: on any validation failure.
    """
    _require_top_level_fields(data)
    levels = {
        level: _build_level(data[level.value], level.value) for level in AnatomicalLevel
    }
    analise_clinica = data["analise_clinica"]
    if not isinstance(analise_clinica, str):
        raise MalformedResponseError("'analise_clinica' must be a string")
    return AnalysisResult(
        velo_palato=levels[AnatomicalLevel.VELO_PALATO],
        orofaringe=levels[AnatomicalLevel.OROFARINGE],
        epiglote_base_lingua=levels[AnatomicalLevel.EPIGLOTE_BASE_LINGUA],
        nivel_confianca=_build_percentage(data["nivel_confianca"], "nivel_confianca"),
        analise_clinica=analise_clinica,
    )


def _require_top_level_fields(data: dict[str, Any]) -> None:
    for field in _REQUIRED_FIELDS:
        if field not in data:
            raise MalformedResponseError(f"Missing required top-level field: {field}")


def _build_level(raw: Any, name: str) -> LevelAnalysis:
    if not isinstance(raw, dict):
        raise MalformedResponseError(f"'{name}' must be an object")
    for field in ("obstrucao_percentual", "padrao_colapso", "descricao"):
        if field not in raw:
            raise MalformedResponseError(f"'{name}.{field}' is required")
    descricao = raw["descricao"]
    if not isinstance(descricao, str):
        raise MalformedResponseError(f"'{name}.descricao' must be a string")
    return LevelAnalysis(
        obstrucao_percentual=_build_percentage(
            raw["obstrucao_percentual"], f"{name}.obstrucao_percentual"
        ),
        padrao_colapso=_build_pattern(raw["padrao_colapso"], name),
        descricao=descricao,
    )


def _build_percentage(raw: Any, label: str) -> int:
    # bool is an int subclass
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise MalformedResponseError(f"'{label}' must be a number")
    if isinstance(raw, float) and not raw.is_integer():
        raise MalformedResponseError(f"'{label}' must be a whole number, got {raw}")
    value = int(raw)
    if not 0 <= value <= 100:
        raise MalformedResponseError(f"'{label}' must be within 0-100, got {value}")
    return value


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


_PATTERNS_BY_KEY = {_fold(pattern.value): pattern for pattern in CollapsePattern}


def _build_pattern(raw: Any, name: str) -> CollapsePattern:
    if not isinstance(raw, str):
        raise MalformedResponseError(f"'{name}.padrao_colapso' must be a string")
    pattern = _PATTERNS_BY_KEY.get(_fold(raw.strip()))
    if pattern is None:
        raise MalformedResponseError(
            f"'{name}.padrao_colapso' must be one of "
            f"{[p.value for p in CollapsePattern]}, got {raw!r}"
        )
    return pattern
