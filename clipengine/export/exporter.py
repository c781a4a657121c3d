import zipfile
import io
import json
from datetime import datetime
from typing import Iterable, Sequence

from clipengine.core.io import AudioIO
from clipengine.core.types import BatchItem, BatchStatus, SampleBuffer
from clipengine.dsp.segments import Segment, slice_buffer
from clipengine.params import settings_to_dict


def processed_filename(name: str) -> str:
    """'take 3.mp3' -> 'take 3_processed.wav'. Only the last extension is dropped."""
    parts = name.split(".")
    if len(parts) > 1:
        parts.pop()
    return f"{'.'.join(parts)}_processed.wav"


class Exporter:
    @staticmethod
    def create_batch_zip(
        items: Iterable[BatchItem],
        batch_name: str = "batch",
        skipped: Sequence[str] = (),
    ) -> bytes:
        """
        Packs every DONE item as <stem>_processed.wav plus batch_info.json
        describing all items (status, error, warnings, settings). skipped lists
        inputs that never became items (e.g. undecodable uploads).
        """
        buffer = io.BytesIO()
        items = list(items)

        files = {}
        used = set()
        for item in items:
            if item.status != BatchStatus.DONE or item.result_bytes is None:
                continue
            filename = processed_filename(item.name)
            if filename in used:
                filename = f"{filename[:-len('_processed.wav')]}_{item.id[:8]}_processed.wav"
            used.add(filename)
            files[item.id] = filename

        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
            meta = {
                "batch_name": batch_name,
                "created_at": datetime.now().isoformat(),
                "skipped": list(skipped),
                "items": [
                    {
                        "id": item.id,
                        "name": item.name,
                        "status": item.status.value,
                        "error": item.error,
                        "warnings": item.warnings,
                        "settings": settings_to_dict(item.settings),
                        "file": files.get(item.id),
                    }
                    for item in items
                ],
            }
            zip_file.writestr("batch_info.json", json.dumps(meta, indent=2))

            for item in items:
                if item.id in files:
                    zip_file.writestr(files[item.id], item.result_bytes)

        return buffer.getvalue()

    @staticmethod
    def create_segments_zip(source: SampleBuffer, segments: Sequence[Segment]) -> bytes:
        """One <segment name>.wav per segment."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
            for seg in segments:
                part = slice_buffer(source, seg.start_s, seg.end_s)
                zip_file.writestr(f"{seg.name}.wav", AudioIO.encode(part))
        return buffer.getvalue()
