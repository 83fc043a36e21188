"""
rttypes command line interface and API server
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRouter
from pydantic import BaseModel

from rttypes.config import load_settings
from rttypes.features import Feature, FeatureRegistry, OperationResult
from rttypes.version import get_version

# Module-level logger
logger = logging.getLogger("rttypes.main")


# Create CLI app with Typer
app = typer.Typer(
    name="rttypes",
    help="rttypes - runtime struct and array layouts",
    add_completion=False,
)

# Create FastAPI app for API server
api_app = FastAPI(
    title="rttypes API",
    description="Compute runtime struct layouts from schema text",
    version=get_version(),
)

api_app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API router for versioned endpoints
api_router = APIRouter(prefix="/api/v1")


# Request models
class LayoutRequest(BaseModel):
    source: str


# ----------------- Helper Functions -----------------


class ElapsedMsFormatter(logging.Formatter):
    """Formatter that shows milliseconds since program start, right-aligned for up to 9999 seconds."""

    def __init__(self, fmt=None, datefmt=None, *args, **kwargs):
        super().__init__(fmt, datefmt, *args, **kwargs)
        self.start_time = time.monotonic()
        self.width = 8  # Enough for '9999000ms'

    def format(self, record):
        elapsed_ms = int((time.monotonic() - self.start_time) * 1000)
        if elapsed_ms < 10**7:  # up to 9999.999s
            elapsed = f"[{elapsed_ms:>{self.width}}ms]"
        else:
            elapsed = f"[{elapsed_ms}ms]"
        record.elapsed = elapsed
        return super().format(record)


VERBOSE_LEVEL = 15  # Between INFO (20) and DEBUG (10)
logging.addLevelName(VERBOSE_LEVEL, "VERBOSE")


def setup_logging(debug: bool = False, verbose: bool = False) -> None:
    """Set up logging configuration"""
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = VERBOSE_LEVEL
    else:
        log_level = load_settings().log_level_number
    formatter = ElapsedMsFormatter("%(elapsed)s %(message)s")
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.handlers = []  # Remove any existing handlers
    root.addHandler(handler)
    root.setLevel(log_level)


def _feature_or_exit(name: str) -> Feature:
    feature = FeatureRegistry.get_feature(name)
    if not feature:
        logger.error("Unknown feature: %s", name)
        raise typer.Exit(code=1)
    return feature


def _handle_cli_result(feature_name: str, result: OperationResult) -> Any:
    if not result.success:
        logger.error("%s failed: %s", feature_name, result.error or "Unknown error")
        raise typer.Exit(code=1)
    return result.data


def _format_layout_table(data: Dict[str, Any]) -> str:
    lines = []
    for struct in data["structs"]:
        lines.append(f"struct {struct['name']} (size {struct['size']}, align {struct['alignment']})")
        lines.append(f"  {'offset':>6}  {'size':>4}  {'align':>5}  name: type")
        for field in struct["fields"]:
            lines.append(
                f"  {field['offset']:>6}  {field['size']:>4}  {field['alignment']:>5}  "
                f"{field['name']}: {field['type']}"
            )
    return "\n".join(lines)


# ----------------- CLI Commands -----------------


@app.command()
def version() -> None:
    """Show the rttypes version"""
    setup_logging(False)
    data = _handle_cli_result("version", _feature_or_exit("version").handler())
    typer.echo(f"rttypes version: {data.get('version', 'unknown')}")


@app.command()
def layout(
    filename: str = typer.Argument(..., help="Schema file"),
    as_json: bool = typer.Option(False, "--json", help="Print the layout report as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging (between info and debug)"),
) -> None:
    """Compute and print the layout of every struct in a schema file"""
    setup_logging(debug, verbose)

    try:
        source = Path(filename).read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.error("File not found: %s", filename)
        raise typer.Exit(code=1)
    except OSError as e:
        logger.error("Error reading file %s: %s", filename, str(e))
        raise typer.Exit(code=1)

    data = _handle_cli_result("layout", _feature_or_exit("layout").handler(source=source))
    if as_json:
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(_format_layout_table(data))


@app.command()
def demo(
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
) -> None:
    """Run the vec2/line/vector demonstration"""
    setup_logging(debug)
    data = _handle_cli_result("demo", _feature_or_exit("demo").handler())
    for line in data["lines"]:
        typer.echo(line)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind the API server"),
    port: Optional[int] = typer.Option(None, help="Port to bind the API server"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
):
    """Start the rttypes API server"""
    setup_logging(debug)
    settings = load_settings()
    host = host or settings.serve_host
    port = port or settings.serve_port

    logger.info(f"Starting rttypes API server version {get_version()} on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")
    uvicorn.run(api_app, host=host, port=port)


# ----------------- API Endpoints -----------------


def _api_feature(name: str) -> Feature:
    feature = FeatureRegistry.get_feature(name)
    if not feature:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{name.capitalize()} feature not found",
        )
    return feature


@api_app.get("/version")
@api_router.get("/version")
async def get_version_endpoint():
    """Get rttypes version"""
    return _api_feature("version").handler().data


@api_router.post("/layout")
async def layout_endpoint(request: LayoutRequest):
    """Compute struct layouts from schema text"""
    try:
        result = _api_feature("layout").handler(source=request.source)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error in layout endpoint: %s", str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e

    if not result.success:
        diagnostics = result.diagnostics or {"code": "E_LAYOUT", "message": result.error}
        status_code = 413 if diagnostics.get("code") == "E_SCHEMA_TOO_LARGE" else status.HTTP_400_BAD_REQUEST
        raise HTTPException(status_code=status_code, detail=diagnostics)
    return result.data


# Include the router in the FastAPI app
api_app.include_router(api_router)


if __name__ == "__main__":
    app()
