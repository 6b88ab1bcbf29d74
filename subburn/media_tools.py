"""Probing, analysis proxies and plain time-range crops."""

import logging
import os
import time
from typing import Optional, Union

import ffmpeg

from .exceptions import InvalidSegment, MissingArtifact, SubBurnError, TransientEncodeFailure
from .progress import ProgressSink
from .utils import ensure_dir_exists, format_time, is_nonempty_file, parse_time, remove_file

logger = logging.getLogger(__name__)


def probe_duration(video_path: str, ffprobe_path: Optional[str] = None) -> float:
    """
    Returns the container duration of a media file in seconds.

    Raises:
        FileNotFoundError: If the file does not exist.
        SubBurnError: If ffprobe fails or reports no duration.
    """
    if not os.path.exists(video_path):
        raise FileNotFoundError(f"Media file not found: {video_path}")
    try:
        info = ffmpeg.probe(video_path, cmd=ffprobe_path or 'ffprobe')
    except ffmpeg.Error as e:
        stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
        raise SubBurnError(f"ffprobe failed for {video_path}: {stderr_output}") from e
    duration = float(info.get('format', {}).get('duration') or 0)
    if duration <= 0:
        raise SubBurnError(f"Could not read duration of {video_path}")
    return duration


class MediaTools:
    """ffmpeg operations outside the subtitle render path."""

    def __init__(self, ffmpeg_path: Optional[str] = None, ffprobe_path: Optional[str] = None):
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'
        self.ffprobe_path = ffprobe_path

    def _run(self, stream, description: str, output_path: str) -> None:
        try:
            stream.overwrite_output().run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffmpeg {description} failed: {stderr_output}")
            remove_file(output_path)
            raise TransientEncodeFailure(f"{description} failed: {stderr_output.strip()[-500:]}") from e
        if not is_nonempty_file(output_path):
            raise MissingArtifact(f"{description} produced no output: {output_path}")

    def create_analysis_proxy(self, source_path: str, output_path: str) -> str:
        """
        Writes a 480p, low bitrate copy used for transcription and preview.
        """
        if not os.path.exists(source_path):
            raise FileNotFoundError(f"Input video file not found: {source_path}")
        ensure_dir_exists(os.path.dirname(os.path.abspath(output_path)))
        logger.info(f"Creating analysis proxy {output_path} from {source_path}")
        stream = ffmpeg.input(source_path).output(
            output_path,
            vf='scale=-2:480',
            vcodec='libx264',
            preset='fast',
            crf=28,
            acodec='aac',
            audio_bitrate='128k',
            ar=44100,
            movflags='+faststart',
        )
        self._run(stream, "analysis proxy", output_path)
        logger.info(f"Analysis proxy ready: {os.path.getsize(output_path) / (1024 * 1024):.2f} MB")
        return output_path

    def crop_video(
        self,
        source_path: str,
        start: Union[str, float, None],
        end: Union[str, float, None],
        output_dir: str,
        progress_sink: Optional[ProgressSink] = None,
    ) -> str:
        """
        Cuts ``[start, end)`` out of ``source_path`` with a stream copy.

        Args:
            source_path: Input video.
            start: Start time string or seconds. Empty means the beginning.
            end: End time string or seconds. Empty means the end of the file.
            output_dir: Directory for the cropped file.
            progress_sink: Receives coarse stage updates.

        Returns:
            Path of the cropped video.

        Raises:
            InvalidTimeFormat: If a time string is malformed.
            InvalidSegment: If the range is empty or inverted.
        """
        if not os.path.exists(source_path):
            raise FileNotFoundError(f"Input video file not found: {source_path}")

        start_seconds = parse_time(start)
        if end is None or (isinstance(end, str) and not end.strip()):
            end_seconds = probe_duration(source_path, self.ffprobe_path)
        else:
            end_seconds = parse_time(end)
        duration = end_seconds - start_seconds
        if duration <= 0:
            raise InvalidSegment(f"Invalid crop range {format_time(start_seconds)} -> {format_time(end_seconds)}")

        ensure_dir_exists(output_dir)
        output_path = os.path.join(output_dir, f"cropped_{int(time.time() * 1000)}.mp4")
        logger.info(
            f"Cropping {source_path}: {format_time(start_seconds)} -> {format_time(end_seconds)} "
            f"({duration:.3f}s) into {output_path}"
        )

        if progress_sink:
            progress_sink.on_stage('crop', 10, "Starting crop")
        stream = ffmpeg.input(source_path, ss=f"{start_seconds:.3f}").output(
            output_path,
            t=f"{duration:.3f}",
            vcodec='copy',
            acodec='copy',
            avoid_negative_ts='make_zero',
            movflags='+faststart',
        )
        if progress_sink:
            progress_sink.on_stage('crop', 20, "Cropping")
        try:
            self._run(stream, "crop", output_path)
        except Exception as e:
            if progress_sink:
                progress_sink.on_stage('crop', 0, f"Error: {e}")
            raise
        if progress_sink:
            progress_sink.on_stage('crop', 100, "Crop complete")
        logger.info(f"Crop complete: {output_path}")
        return output_path
