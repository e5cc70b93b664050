"""Audio extraction by shelling out to ffmpeg."""
import subprocess
from pathlib import Path
from typing import Protocol, runtime_checkable

from segment_harvester.constants import AUDIO_QUALITY
from segment_harvester.utils.logging import get_logger


class TranscodeError(Exception):
    pass


@runtime_checkable
class Transcoder(Protocol):
    def extract_audio(self, source: str | Path, output: Path) -> None:
        """Write an audio-only file to `output`. Raises TranscodeError on failure."""
        ...


class FfmpegTranscoder:
    """
    Audio-only MP3 at a fixed VBR quality.

    `source` may be a local video file or a stream manifest URL; ffmpeg reads
    either.
    """

    def __init__(self, binary: str = 'ffmpeg', quality: str = AUDIO_QUALITY):
        self.binary = binary
        self.quality = str(quality)

    def command(self, source: str | Path, output: Path) -> list[str]:
        return [self.binary, '-y', '-loglevel', 'error', '-i', str(source),
                '-vn', '-map', 'a', '-q:a', self.quality, str(output)]

    def extract_audio(self, source: str | Path, output: Path) -> None:
        log = get_logger()
        args = self.command(source, output)
        log.debug(f"Running {' '.join(args)}")
        try:
            result = subprocess.run(args, capture_output=True, text=True)
        except OSError as e:
            raise TranscodeError(f"Could not run {self.binary}: {e}") from e

        if result.returncode != 0:
            log.error(f"{self.binary} failed with return code {result.returncode}")
            if result.stderr:
                log.error(f"STDERR:\n{result.stderr}")
            # ffmpeg may leave a truncated output behind
            Path(output).unlink(missing_ok=True)
            raise TranscodeError(f"{self.binary} exited with {result.returncode} for {source}")
