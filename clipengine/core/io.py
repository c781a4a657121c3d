"""
PCM WAV container: exact 16-bit encoder plus a soundfile-backed decoder.

The encoder is written out by hand because its quantization is part of the
output contract: clamp to [-1, 1], scale negatives by 32768 and non-negatives
by 32767, truncate toward zero. soundfile's own float->PCM16 conversion rounds,
so it is only used for decoding.
"""
import io
import struct
from typing import BinaryIO, Union

import numpy as np
import soundfile as sf

from clipengine.core.errors import DecodeFailure, EncodeFailure, InvalidBufferError
from clipengine.core.types import SampleBuffer

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
PCM_FORMAT = 1

# "RIFF" <size> "WAVE" "fmt " <16> <fmt> <ch> <sr> <byte rate> <align> <bits> "data" <size>
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def wav_header(num_channels: int, sample_rate: int, num_frames: int) -> bytes:
    block_align = num_channels * 2
    data_size = num_frames * block_align
    return _HEADER.pack(
        b"RIFF",
        HEADER_SIZE - 8 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        num_channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )


def quantize(samples: np.ndarray) -> np.ndarray:
    """float -> int16 with the asymmetric scale; input shape is preserved."""
    x = np.clip(samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    return np.trunc(scaled).astype("<i2")


class AudioIO:
    @staticmethod
    def encode(buffer: SampleBuffer) -> bytes:
        """Canonical 44-byte-header PCM16 little-endian WAV, frames interleaved channel 0..N-1."""
        if buffer.num_channels == 0:
            raise EncodeFailure("cannot encode a buffer with zero channels")
        data = buffer.to_numpy()
        if not np.isfinite(data).all():
            raise EncodeFailure("buffer contains NaN or infinite samples")

        # [channels, frames] -> [frames, channels] so C-order flattening interleaves
        pcm = quantize(data).T.copy(order="C")
        return wav_header(buffer.num_channels, buffer.sample_rate, buffer.length) + pcm.tobytes()

    @staticmethod
    def save_wav(buffer: SampleBuffer, path: Union[str, BinaryIO]):
        """Writes the encoded bytes to a path or a binary file object."""
        data = AudioIO.encode(buffer)
        if hasattr(path, "write"):
            path.write(data)
            return
        with open(path, "wb") as f:
            f.write(data)

    @staticmethod
    def decode(data: Union[bytes, BinaryIO]) -> SampleBuffer:
        """Decode any container soundfile understands into a float32 SampleBuffer."""
        source = io.BytesIO(data) if isinstance(data, (bytes, bytearray)) else data
        try:
            frames, sample_rate = sf.read(source, dtype="float32", always_2d=True)
        except (RuntimeError, TypeError, ValueError) as e:  # LibsndfileError is a RuntimeError
            raise DecodeFailure(f"could not decode audio: {e}") from e
        try:
            return SampleBuffer.from_numpy(frames, sample_rate, channels_last=True)
        except InvalidBufferError as e:
            raise DecodeFailure(str(e)) from e

    @staticmethod
    def load(path: str) -> SampleBuffer:
        with open(path, "rb") as f:
            return AudioIO.decode(f.read())
