"""Container probing using ffprobe."""

import json
import logging
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..common.errors import ProbeError, ToolNotFoundError
from .normalize import parse_int, parse_number

logger = logging.getLogger(__name__)


@dataclass
class ProbeFormat:
    duration: Optional[float] = None
    size: Optional[int] = None
    tags: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ProbeStream:
    codec_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    rotation: Optional[int] = None
    r_frame_rate: Optional[str] = None


@dataclass
class ProbeResult:
    format: ProbeFormat
    streams: List[ProbeStream] = field(default_factory=list)

    @property
    def video_streams(self) -> List[ProbeStream]:
        return [s for s in self.streams if s.codec_type == 'video']


def _stream_rotation(stream: Dict[str, Any]) -> Optional[int]:
    """Rotation from the stream, its tags, or (ffprobe >= 5) its side data."""
    if stream.get('rotation') is not None:
        return parse_int(stream['rotation'])

    rotate = (stream.get('tags') or {}).get('rotate')
    if rotate is not None:
        return parse_int(rotate)

    for side_data in stream.get('side_data_list') or []:
        if side_data.get('rotation') is not None:
            return parse_int(side_data['rotation'])
    return None


def parse_probe_output(data: Dict[str, Any]) -> ProbeResult:
    """Build a ProbeResult from ffprobe's JSON document."""
    fmt = data.get('format') or {}
    probe_format = ProbeFormat(
        duration=parse_number(fmt.get('duration')),
        size=parse_int(fmt.get('size')),
        tags=dict(fmt.get('tags') or {}),
    )

    streams = [
        ProbeStream(
            codec_type=stream.get('codec_type'),
            width=parse_int(stream.get('width')),
            height=parse_int(stream.get('height')),
            rotation=_stream_rotation(stream),
            r_frame_rate=stream.get('r_frame_rate'),
        )
        for stream in data.get('streams') or []
    ]
    return ProbeResult(format=probe_format, streams=streams)


def probe_container(
    file_path: Union[str, Path],
    ffprobe_path: str = 'ffprobe',
    timeout: float = 30,
) -> ProbeResult:
    """
    Probe a media container for its format and streams.

    Raises:
        ToolNotFoundError: If ffprobe is not available
        ProbeError: If ffprobe fails, times out or returns invalid output
    """
    try:
        result = subprocess.run(
            [
                ffprobe_path,
                '-v', 'quiet',
                '-print_format', 'json',
                '-show_format',
                '-show_streams',
                str(file_path)
            ],
            capture_output=True,
            text=True,
            encoding='utf-8',  # Explicitly use UTF-8 to handle non-ASCII paths
            check=True,
            timeout=timeout
        )
    except FileNotFoundError as e:
        raise ToolNotFoundError(
            f"ffprobe not found: {ffprobe_path}", tool='ffprobe'
        ) from e
    except subprocess.CalledProcessError as e:
        raise ProbeError(
            f"ffprobe failed: {(e.stderr or '').strip()}",
            file_path=str(file_path),
            returncode=e.returncode
        ) from e
    except subprocess.TimeoutExpired as e:
        raise ProbeError(
            f"ffprobe timed out after {timeout}s", file_path=str(file_path)
        ) from e

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ProbeError(
            f"Failed to parse ffprobe output: {e}", file_path=str(file_path)
        ) from e

    if not isinstance(data, dict) or 'format' not in data:
        raise ProbeError("ffprobe reported no container format", file_path=str(file_path))

    probe = parse_probe_output(data)
    logger.debug(
        f"Probed container: {{'path': {str(file_path)!r}, 'streams': {len(probe.streams)}}}"
    )
    return probe
