"""
DuckStage configuration

Settings come from the environment, a .env file in the working directory,
and, for Canvas credentials only, the encrypted DuckWorks key store.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from duckworks_framework import DuckWorksConfig
from secure_key_manager import CanvasCredentialStore
from submission_processor import README_DISCLAIMER

logger = logging.getLogger(__name__)

TOOL_NAME = "DuckStage"


class ConfigurationError(Exception):
    """Raised when DuckStage cannot be configured (fatal before grading starts)"""


@dataclass
class StageSettings:
    canvas_url: str
    canvas_token: str
    destination_root: Path
    progress_file: Path
    readme_disclaimer: str = README_DISCLAIMER
    report_format: str = "xlsx"
    http_timeout: float = 30.0
    editor: Optional[str] = None
    shell: Optional[str] = None
    log_level: str = "INFO"
    log_file: str = "duckstage_log.txt"


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv_path: Optional[str] = None,
                  credential_store: Optional[CanvasCredentialStore] = None,
                  config_home: Optional[str] = None) -> StageSettings:
    """
    Build the settings for a DuckStage run

    Args:
        env: Environment mapping (os.environ after loading .env when omitted)
        dotenv_path: Explicit .env file; the working directory's .env by default
        credential_store: Encrypted store consulted when credentials are not in env
        config_home: Base DuckWorks config directory (~/.duckworks by default)

    Returns:
        Populated StageSettings
    """
    if env is None:
        # Real environment variables win over .env entries
        load_dotenv(dotenv_path=dotenv_path or os.path.join(os.getcwd(), ".env"), override=False)
        env = os.environ

    tool_config = DuckWorksConfig(TOOL_NAME, base_dir=config_home)

    canvas_url = env.get("CANVAS_BASE_URL")
    canvas_token = env.get("CANVAS_ACCESS_TOKEN")

    if not (canvas_url and canvas_token):
        if credential_store is None:
            credential_store = CanvasCredentialStore(tool_config.tool_config_dir)
        if credential_store.has_credentials():
            logger.info("Canvas credentials not in environment; using encrypted store")
            try:
                stored = credential_store.get_canvas_credentials()
            except ValueError as e:
                raise ConfigurationError(f"Could not unlock stored Canvas credentials: {e}") from e
            canvas_url = canvas_url or stored.get('canvas_url')
            canvas_token = canvas_token or stored.get('canvas_api_token')

    if not canvas_url:
        raise ConfigurationError("CANVAS_BASE_URL is not set (environment, .env, or --save-credentials)")
    if not canvas_token:
        raise ConfigurationError("CANVAS_ACCESS_TOKEN is not set (environment, .env, or --save-credentials)")

    report_format = env.get("DUCKSTAGE_REPORT_FORMAT", "xlsx").lower()
    if report_format not in ("xlsx", "csv"):
        raise ConfigurationError(f"DUCKSTAGE_REPORT_FORMAT must be 'xlsx' or 'csv', got {report_format!r}")

    return StageSettings(
        canvas_url=canvas_url,
        canvas_token=canvas_token,
        destination_root=Path(env.get("DUCKSTAGE_DEST") or "submissions"),
        progress_file=Path(env.get("DUCKSTAGE_PROGRESS_FILE")
                           or tool_config.get_config_path("progress.json")),
        readme_disclaimer=env.get("DUCKSTAGE_README_DISCLAIMER") or README_DISCLAIMER,
        report_format=report_format,
        http_timeout=_positive_float(env, "DUCKSTAGE_HTTP_TIMEOUT", 30.0),
        editor=env.get("EDITOR"),
        shell=env.get("SHELL"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        log_file=env.get("LOG_FILE") or "duckstage_log.txt",
    )
