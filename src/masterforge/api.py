"""FastAPI interface for MasterForge."""

import json
from uuid import uuid4

from fastapi import FastAPI, File, Form, Header, HTTPException, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from .audio_contract import DEFAULT_EXPORT_BASENAME, DEFAULT_EXPORT_SAMPLE_RATE_HZ
from .errors import (
    DecodeError,
    EncodingUnavailableError,
    InvalidParameterError,
    MasteringEngineError,
    NothingToProcessError,
    RenderBusyError,
)
from .interfaces.api_handlers import analyze_uploaded_bytes, master_uploaded_bytes
from .mastering_options import (
    ExportFormat,
    Platform,
    enum_values,
    parse_case_insensitive_enum,
)
from .parameters import MasteringParameters
from .platforms import PLATFORM_TARGETS
from .utils.config import default_platform, parse_mastering_parameters

app = FastAPI(title="MasterForge API", version="0.1.0")


def _status_for(error: MasteringEngineError) -> int:
    if isinstance(error, (InvalidParameterError, DecodeError, NothingToProcessError)):
        return 400
    if isinstance(error, RenderBusyError):
        return 409
    if isinstance(error, EncodingUnavailableError):
        return 503
    return 422


def _engine_http_error(error: MasteringEngineError) -> HTTPException:
    return HTTPException(status_code=_status_for(error), detail=error.as_dict())


def _parse_query_enum(raw_value: str, enum_cls, parameter: str):
    try:
        return parse_case_insensitive_enum(raw_value, enum_cls)
    except ValueError as error:
        raise HTTPException(
            status_code=400,
            detail={
                "code": "invalid_query_parameter",
                "message": str(error),
                "parameter": parameter,
                "allowed_values": list(enum_values(enum_cls)),
            },
        ) from error


def _parse_params_field(raw_params: str | None) -> MasteringParameters:
    """Accept either a flat parameter object or a recommendation with ``params``."""

    if not raw_params:
        return MasteringParameters()
    try:
        data = json.loads(raw_params)
    except json.JSONDecodeError as error:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_parameter", "message": f"params is not valid JSON: {error}"},
        ) from error
    if isinstance(data, dict) and "params" in data:
        return MasteringParameters.from_recommendation(data)
    return parse_mastering_parameters(data)


def _basename(filename: str | None) -> str:
    if not filename:
        return DEFAULT_EXPORT_BASENAME
    stem = filename.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    return stem or DEFAULT_EXPORT_BASENAME


@app.get("/health")
def health() -> dict[str, str]:
    """Health check endpoint."""

    return {"status": "ok"}


@app.get("/platforms")
def platforms() -> list[dict]:
    """Platform loudness targets."""

    return [
        {"id": target.platform.value, "label": target.label, "target_lufs": target.target_lufs}
        for target in PLATFORM_TARGETS.values()
    ]


@app.post("/analyze")
async def analyze(
    audio: UploadFile = File(..., description="Audio file to measure"),
    platform: str | None = Query(None, description="Platform for the loudness gap."),
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> Response:
    """Measure an uploaded file and report meters and the gap to the platform target."""

    try:
        parsed_platform = (
            _parse_query_enum(platform, Platform, "platform") if platform else default_platform()
        )
    except InvalidParameterError as error:
        raise _engine_http_error(error) from error

    correlation_id = x_correlation_id or str(uuid4())
    payload = await audio.read()
    try:
        report = await run_in_threadpool(
            analyze_uploaded_bytes, payload, parsed_platform, correlation_id
        )
    except MasteringEngineError as error:
        raise _engine_http_error(error) from error

    response = Response(
        content=json.dumps(report.to_dict()), media_type="application/json"
    )
    response.headers["X-Correlation-Id"] = correlation_id
    return response


@app.post("/master")
async def master(
    audio: UploadFile = File(..., description="Audio file to master"),
    params: str | None = Form(None, description="JSON mastering parameters or recommendation."),
    export_format: str = Query(
        ExportFormat.WAV24.value, alias="format", description="Export format: wav16, wav24, mp3."
    ),
    sample_rate: int = Query(DEFAULT_EXPORT_SAMPLE_RATE_HZ, description="Export sample rate in Hz."),
    platform: str | None = Query(None, description="Tune ceiling/intensity for a platform."),
    multiband: bool | None = Query(None, description="Override the dynamics topology."),
    x_correlation_id: str | None = Header(default=None, alias="X-Correlation-Id"),
) -> Response:
    """Master an uploaded file and return the encoded export."""

    parsed_format = _parse_query_enum(export_format, ExportFormat, "format")
    parsed_platform = _parse_query_enum(platform, Platform, "platform") if platform else None

    try:
        parameters = _parse_params_field(params)
    except InvalidParameterError as error:
        raise _engine_http_error(error) from error
    if multiband is not None:
        parameters = parameters.with_overrides(multiband_enabled=multiband)

    correlation_id = x_correlation_id or str(uuid4())
    payload = await audio.read()
    try:
        outcome = await run_in_threadpool(
            master_uploaded_bytes,
            payload,
            parameters,
            parsed_format,
            sample_rate,
            _basename(audio.filename),
            parsed_platform,
            correlation_id,
        )
    except MasteringEngineError as error:
        raise _engine_http_error(error) from error

    export = outcome.export
    response = Response(content=export.payload, media_type=export.media_type)
    response.headers["Content-Disposition"] = f'attachment; filename="{export.filename}"'
    response.headers["X-Correlation-Id"] = correlation_id
    response.headers["X-Source-Lufs"] = f"{outcome.source.integrated_lufs:.1f}"
    response.headers["X-Mastered-Lufs"] = f"{outcome.mastered.integrated_lufs:.1f}"
    response.headers["X-Mastered-True-Peak-Dbtp"] = f"{outcome.mastered.true_peak_dbtp:.1f}"
    return response
