"""Command-line client for the DISE analysis service.

Usage:
    dise-analyze exame.mp4 --url http://localhost:8000
"""

import argparse
import sys
from pathlib import Path

from app.analysis.models import AnalysisResult, AnatomicalLevel
from app.analysis.pipeline import CancellationToken
from app.client.submitter import VideoSubmitter
from app.config.settings import Settings
from app.logging.logger import Log
from app.progress.models import ProgressState

_LEVEL_LABELS = {
    AnatomicalLevel.VELO_PALATO: "Velo-palato",
    AnatomicalLevel.OROFARINGE: "Orofaringe",
    AnatomicalLevel.EPIGLOTE_BASE_LINGUA: "Epiglote / base da língua",
}


def render_progress(state: ProgressState) -> None:
    eta = ""
    if state.estimated_seconds_remaining:
        eta = f" (~{state.estimated_seconds_remaining:.0f}s)"
    print(
        f"  [{state.stage.value}] {state.progress:5.1f}% {state.message}{eta}        ",
        end="\r",
        flush=True,
    )


def format_report(result: AnalysisResult) -> str:
    lines = []
    for level in AnatomicalLevel:
        analysis = result.level(level)
        lines.append(
            f"{_LEVEL_LABELS[level]}: {analysis.obstrucao_percentual}% "
            f"({analysis.severity}, {analysis.padrao_colapso.value}) - {analysis.descricao}"
        )
    lines.append(f"Nadir: {_LEVEL_LABELS[result.nadir_level]} ({result.max_obstruction}%)")
    lines.append(f"Confiança: {result.nivel_confianca}%")
    lines.append(f"Análise clínica: {result.analise_clinica}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    settings = Settings()
    parser = argparse.ArgumentParser(description="DISE video analysis client")
    parser.add_argument("video", type=Path, help="Path to the endoscopy video")
    parser.add_argument("--url", default="http://localhost:8000", help="Analysis service URL")
    parser.add_argument("--mime-type", default=None, help="Override the detected MIME type")
    parser.add_argument(
        "--inline-threshold",
        type=int,
        default=settings.inline_upload_threshold_bytes,
        help="Largest file size (bytes) sent inline instead of via signed URL",
    )
    args = parser.parse_args(argv)

    Log.configure(settings.log_level)
    if not args.video.is_file():
        print(f"File not found: {args.video}", file=sys.stderr)
        return 2

    submitter = VideoSubmitter(
        base_url=args.url,
        inline_threshold_bytes=args.inline_threshold,
        chunk_bytes=settings.upload_chunk_bytes,
        tick_seconds=settings.progress_tick_seconds,
    )
    token = CancellationToken()
    try:
        response = submitter.submit(
            args.video, args.mime_type, cancellation=token, progress_sink=render_progress
        )
    except KeyboardInterrupt:
        token.cancel()
        print("\nCancelled", file=sys.stderr)
        return 130
    print()

    if not response.success or response.data is None:
        print(f"Failed: {response.error}", file=sys.stderr)
        return 1
    print(format_report(response.data))
    return 0


if __name__ == "__main__":
    sys.exit(main())
