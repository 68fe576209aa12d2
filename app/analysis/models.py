from dataclasses import dataclass
from enum import Enum


class AnatomicalLevel(str, Enum):
    """Airway levels reported by the analysis, in anatomical order."""

    VELO_PALATO = "velo_palato"
    OROFARINGE = "orofaringe"
    EPIGLOTE_BASE_LINGUA = "epiglote_base_lingua"


class CollapsePattern(str, Enum):
    """Collapse configuration observed at a level."""

    ANTEROPOSTERIOR = "Anteroposterior"
    LATERAL = "Lateral"
    CONCENTRICO = "Concêntrico"
    AUSENTE = "Ausente"


class UploadStrategy(str, Enum):
    """How the media reaches the inference service."""

    INLINE = "inline"
    SIGNED_URL = "signed_url"
    URI_PASSTHROUGH = "uri_passthrough"


@dataclass(frozen=True)
class AnalysisRequest:
    """One submission: an inline payload or a reference to a storage object."""

    mime_type: str
    size_bytes: int
    display_name: str = ""
    payload: bytes | None = None
    object_key: str | None = None

    @classmethod
    def inline(cls, payload: bytes, mime_type: str, display_name: str = "") -> "AnalysisRequest":
        return cls(
            mime_type=mime_type,
            size_bytes=len(payload),
            display_name=display_name,
            payload=payload,
        )

    @classmethod
    def from_storage(
        cls, object_key: str, mime_type: str, size_bytes: int = 0
    ) -> "AnalysisRequest":
        return cls(
            mime_type=mime_type,
            size_bytes=size_bytes,
            display_name=object_key,
            object_key=object_key,
        )


@dataclass(frozen=True)
class LevelAnalysis:
    """Obstruction measurement for a single anatomical level."""

    obstrucao_percentual: int
    padrao_colapso: CollapsePattern
    descricao: str

    @property
    def severity(self) -> str:
        if self.obstrucao_percentual <= 25:
            return "Leve"
        if self.obstrucao_percentual <= 50:
            return "Moderada"
        if self.obstrucao_percentual <= 75:
            return "Significativa"
        return "Severa"

    def to_dict(self) -> dict[str, object]:
        return {
            "obstrucao_percentual": self.obstrucao_percentual,
            "padrao_colapso": self.padrao_colapso.value,
            "descricao": self.descricao,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """Structured report produced for one video."""

    velo_palato: LevelAnalysis
    orofaringe: LevelAnalysis
    epiglote_base_lingua: LevelAnalysis
    nivel_confianca: int
    analise_clinica: str

    def level(self, level: AnatomicalLevel) -> LevelAnalysis:
        analysis: LevelAnalysis = getattr(self, level.value)
        return analysis

    @property
    def nadir_level(self) -> AnatomicalLevel:
        """Level with the highest obstruction; the first one wins on ties."""
        return max(AnatomicalLevel, key=lambda lvl: self.level(lvl).obstrucao_percentual)

    @property
    def max_obstruction(self) -> int:
        return self.level(self.nadir_level).obstrucao_percentual

    def to_dict(self) -> dict[str, object]:
        return {
            "velo_palato": self.velo_palato.to_dict(),
            "orofaringe": self.orofaringe.to_dict(),
            "epiglote_base_lingua": self.epiglote_base_lingua.to_dict(),
            "nivel_confianca": self.nivel_confianca,
            "analise_clinica": self.analise_clinica,
        }


@dataclass(frozen=True)
class AnalysisResponse:
    """Tagged outcome returned to the caller of one analysis."""

    success: bool
    data: AnalysisResult | None = None
    error: str | None = None
    status_code: int = 200

    @classmethod
    def ok(cls, data: AnalysisResult) -> "AnalysisResponse":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, status_code: int = 500) -> "AnalysisResponse":
        return cls(success=False, error=error, status_code=status_code)

    def to_dict(self) -> dict[str, object]:
        """JSON body; the status code travels separately."""
        body: dict[str, object] = {"success": self.success}
        if self.data is not None:
            body["data"] = self.data.to_dict()
        if self.error is not None:
            body["error"] = self.error
        return body
