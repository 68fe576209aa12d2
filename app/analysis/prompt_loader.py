import json
from pathlib import Path

from app.analysis.exceptions import ConfigurationError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_system_instruction(path: Path | None = None) -> str:
    """Load the system instruction sent with every analysis.

    Args:
        path: Path to the instruction file.
              Defaults to the bundled analysis_instruction.txt.

    Raises:
        ConfigurationError: if the file cannot be read.
    """
    return _read(path or _DEFAULT_PROMPT_DIR / "analysis_instruction.txt", "system instruction")


def load_user_prompt(path: Path | None = None) -> str:
    """Load the user prompt placed after the video reference."""
    return _read(path or _DEFAULT_PROMPT_DIR / "analysis_prompt.txt", "user prompt").strip()


def load_response_schema(path: Path | None = None) -> dict[str, object]:
    """Load the response schema requested from the vendor.

    Raises:
        ConfigurationError: if the file cannot be read or is not a JSON object.
    """
    raw = _read(path or _DEFAULT_PROMPT_DIR / "analysis_schema.json", "response schema")
    try:
        schema = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Response schema is not valid JSON: {exc}") from exc
    if not isinstance(schema, dict):
        raise ConfigurationError("Response schema must be a JSON object")
    return schema


def _read(path: Path, label: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Failed to load {label}: {exc}") from exc
