from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import base64
import binascii
import logging

from clipengine import config
from clipengine.analysis.prosody import DEFAULT_HOP_SIZE, DEFAULT_WINDOW_SIZE, analyze, to_series
from clipengine.batch import BatchOrchestrator
from clipengine.core.errors import DecodeFailure, EncodeFailure, InvalidBufferError, InvalidSettingsError
from clipengine.core.io import AudioIO
from clipengine.core.types import SampleBuffer, SequenceItem
from clipengine.dsp.chain import ClipChain
from clipengine.dsp.segments import split_at
from clipengine.export.exporter import Exporter
from clipengine.params import clamp_settings, resolve_settings, settings_to_dict
from clipengine.qc import analyze as qc_analyze
from clipengine.sequence.scheduler import schedule

# Configure Logging
logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("clipengine")

app = FastAPI(
    title="Clip Engine",
    version="1.0.0",
    description="Voice clip trimming, normalization, prosody analysis and sequencing"
)

# CORS (Allow Frontend)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _decode_audio(encoded) -> SampleBuffer:
    """base64 string -> SampleBuffer; any failure is a DecodeFailure."""
    if not isinstance(encoded, str) or not encoded:
        raise DecodeFailure("missing base64 'audio' field")
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeFailure(f"audio is not valid base64: {e}") from e
    return AudioIO.decode(raw)


def _encode_audio(buffer: SampleBuffer) -> str:
    return base64.b64encode(AudioIO.encode(buffer)).decode("utf-8")


def _bad_request(e: Exception) -> HTTPException:
    logger.info("Rejected request: %s", e)
    return HTTPException(status_code=400, detail=str(e))


def _settings_from_request(body: dict):
    settings = resolve_settings(body.get("settings") or {})
    if body.get("mode") == "safe":
        settings = clamp_settings(settings)
    return settings


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "clipengine"}


@app.post("/process")
async def process_clip(body: dict):
    """
    Trim/pad/fade + normalize one clip.
    Returns JSON with base64-encoded WAV, boundaries, QC report and resolved settings.
    """
    try:
        buffer = _decode_audio(body.get("audio"))
        settings = _settings_from_request(body)
        result = ClipChain.process(buffer, settings)
        audio = _encode_audio(result.output)
    except (DecodeFailure, EncodeFailure, InvalidBufferError, InvalidSettingsError) as e:
        raise _bad_request(e)

    bounds = result.boundaries
    return {
        "audio": audio,
        "boundaries": None if bounds is None else {
            "start": bounds.start,
            "end": bounds.end,
            "signal_detected": bounds.signal_detected,
        },
        "qc": qc_analyze(result.output),
        "resolved_settings": settings_to_dict(settings),
    }


@app.post("/analyze")
async def analyze_prosody(body: dict):
    """Pitch / intensity / voiced series for channel 0."""
    try:
        buffer = _decode_audio(body.get("audio"))
        frames = analyze(
            buffer,
            window_size=int(body.get("window_size", DEFAULT_WINDOW_SIZE)),
            hop_size=int(body.get("hop_size", DEFAULT_HOP_SIZE)),
            method=body.get("method", "direct"),
        )
        series = to_series(frames)
    except (DecodeFailure, InvalidBufferError, ValueError) as e:
        raise _bad_request(e)
    return {"sample_rate": buffer.sample_rate, **series}


@app.post("/sequence/schedule")
async def schedule_sequence(body: dict):
    """
    Body: { clips: {ref: base64 wav | duration_s}, items: [{clip_ref, delay_after_ms}], lead_in_ms? }
    """
    try:
        clips = {}
        for ref, value in (body.get("clips") or {}).items():
            clips[ref] = float(value) if isinstance(value, (int, float)) else _decode_audio(value)
        items = [
            SequenceItem(clip_ref=str(raw["clip_ref"]), delay_after_ms=int(raw.get("delay_after_ms", 0)))
            for raw in body.get("items") or []
        ]
        lead_in_ms = body.get("lead_in_ms")
        lead_in_s = None if lead_in_ms is None else float(lead_in_ms) / 1000.0
    except (DecodeFailure, InvalidBufferError, KeyError, TypeError, ValueError) as e:
        raise _bad_request(e)

    plan = schedule(items, clips, lead_in_s=lead_in_s)
    return {
        "lead_in_s": plan.lead_in_s,
        "complete_at_s": plan.complete_at_s,
        "starts": [
            {"item_id": s.item_id, "clip_ref": s.clip_ref, "offset_s": s.offset_s, "duration_s": s.duration_s}
            for s in plan
        ],
    }


@app.post("/split")
async def split_clip(body: dict):
    """Cut one recording at the given times; returns a ZIP of segment WAVs."""
    try:
        buffer = _decode_audio(body.get("audio"))
        cut_points = [float(t) for t in body.get("cut_points_s") or []]
        zip_bytes = Exporter.create_segments_zip(buffer, split_at(buffer, cut_points))
    except (DecodeFailure, EncodeFailure, InvalidBufferError, TypeError, ValueError) as e:
        raise _bad_request(e)
    return Response(
        content=zip_bytes,
        media_type="application/zip",
        headers={"Content-Disposition": "attachment; filename=segments.zip"}
    )


@app.post("/export/batch")
async def export_batch(body: dict):
    """
    Processes every item with its own settings (falling back to the batch settings)
    and returns a ZIP of the processed WAVs plus batch_info.json.
    """
    try:
        default_settings = _settings_from_request(body)
    except InvalidSettingsError as e:
        raise _bad_request(e)

    orchestrator = BatchOrchestrator(default_settings=default_settings)
    skipped = []
    for raw in body.get("items") or []:
        name = str(raw.get("name", "clip.wav"))
        try:
            source = _decode_audio(raw.get("audio"))
            item_settings = resolve_settings(raw["settings"]) if raw.get("settings") else None
        except (DecodeFailure, InvalidSettingsError) as e:
            logger.warning("Skipping %s: %s", name, e)
            skipped.append(name)
            continue
        orchestrator.add(name, source, item_settings)

    orchestrator.run_all()
    zip_bytes = Exporter.create_batch_zip(orchestrator.items, body.get("name", "batch"), skipped)
    return Response(
        content=zip_bytes,
        media_type="application/zip",
        headers={"Content-Disposition": "attachment; filename=processed_batch.zip"}
    )


if __name__ == "__main__":
    uvicorn.run("clipengine.main:app", host="0.0.0.0", port=8000, reload=True)
