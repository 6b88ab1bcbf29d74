"""Joins rendered segment clips into a single video."""

import logging
import os
from typing import Optional, Sequence

import ffmpeg

from .exceptions import MissingArtifact, TransientEncodeFailure
from .utils import is_nonempty_file, remove_file

logger = logging.getLogger(__name__)


def _manifest_line(clip_path: str) -> str:
    escaped = os.path.abspath(clip_path).replace("'", r"'\''")
    return f"file '{escaped}'"


class ClipConcatenator:
    """Stream-copy concatenation through ffmpeg's concat demuxer."""

    def __init__(self, ffmpeg_path: Optional[str] = None):
        self.ffmpeg_cmd = ffmpeg_path or 'ffmpeg'

    def write_manifest(self, clip_paths: Sequence[str], manifest_path: str) -> str:
        with open(manifest_path, 'w', encoding='utf-8') as f:
            f.write("\n".join(_manifest_line(p) for p in clip_paths) + "\n")
        return manifest_path

    def concatenate(self, clip_paths: Sequence[str], output_path: str) -> str:
        """
        Concatenates ``clip_paths`` in order into ``output_path``.

        Args:
            clip_paths: Finished clips in segment order.
            output_path: Destination file.

        Returns:
            ``output_path``.

        Raises:
            MissingArtifact: If a clip is missing or empty before the join, or
                             the joined file is missing or empty afterwards.
            TransientEncodeFailure: If ffmpeg fails. The join is not retried.
        """
        if not clip_paths:
            raise MissingArtifact("No clips to concatenate.")
        for index, clip_path in enumerate(clip_paths):
            if not is_nonempty_file(clip_path):
                raise MissingArtifact(f"Clip {index + 1} is missing or empty at join time: {clip_path}")

        logger.info(f"Concatenating {len(clip_paths)} clips into {output_path}")
        manifest_path = os.path.splitext(output_path)[0] + "_list.txt"
        self.write_manifest(clip_paths, manifest_path)
        try:
            (
                ffmpeg
                .input(manifest_path, format='concat', safe=0)
                .output(output_path, c='copy')
                .overwrite_output()
                .run(cmd=self.ffmpeg_cmd, capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as e:
            stderr_output = e.stderr.decode('utf-8', errors='replace') if e.stderr else "No stderr output"
            logger.error(f"ffmpeg concat failed: {stderr_output}")
            remove_file(output_path)
            raise TransientEncodeFailure(f"Concatenation failed: {stderr_output.strip()[-500:]}") from e
        except OSError as e:
            remove_file(output_path)
            raise TransientEncodeFailure(f"Concatenation could not start ffmpeg: {e}") from e
        finally:
            remove_file(manifest_path)

        if not is_nonempty_file(output_path):
            raise MissingArtifact(f"Concatenated output is missing or empty: {output_path}")
        logger.info(f"Clip concatenation complete: {os.path.getsize(output_path) / (1024 * 1024):.2f} MB")
        return output_path
