import logging
from importlib import metadata
from typing import Optional

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from core.assistant import AssistantService
from core.config import (
    Settings,
    get_transport_mode,
    load_environment,
    set_transport_mode as _set_transport_mode,
)
from core.services import (
    GoogleAuthenticationError,
    build_docs_service,
    build_sheets_service,
    load_credentials,
)
from gdocs.managers.edit_manager import DocumentEditManager
from gsheets.sheets_edit_manager import SpreadsheetEditManager
from llm.registry import build_registry

load_environment()

logging.basicConfig(level=Settings.from_env().log_level)
logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
logger = logging.getLogger(__name__)

_assistant: Optional[AssistantService] = None

server = FastMCP(name="workspace_edit_assistant")


def set_transport_mode(mode: str):
    """Sets the transport mode for the server."""
    _set_transport_mode(mode)
    logger.info(f"Transport: {mode}")


def build_assistant(settings: Settings) -> AssistantService:
    """Wire providers, Google services and managers into an AssistantService."""
    registry = build_registry(settings)
    docs_manager = sheets_manager = None
    try:
        credentials = load_credentials(settings.google_token_file)
        docs_manager = DocumentEditManager(build_docs_service(credentials))
        sheets_manager = SpreadsheetEditManager(build_sheets_service(credentials))
    except GoogleAuthenticationError as e:
        logger.warning(f"Google services unavailable: {e}")
    return AssistantService(settings, registry, docs_manager=docs_manager, sheets_manager=sheets_manager)


def get_assistant() -> AssistantService:
    """Process-wide assistant, built on first use."""
    global _assistant
    if _assistant is None:
        _assistant = build_assistant(Settings.from_env())
    return _assistant


def set_assistant(assistant: Optional[AssistantService]) -> None:
    global _assistant
    _assistant = assistant


@server.custom_route("/health", methods=["GET"])
async def health_check(request: Request):
    try:
        version = metadata.version("workspace-edit-assistant")
    except metadata.PackageNotFoundError:
        version = "dev"
    return JSONResponse(
        {
            "status": "healthy",
            "service": "workspace-edit-assistant",
            "version": version,
            "transport": get_transport_mode(),
        }
    )
