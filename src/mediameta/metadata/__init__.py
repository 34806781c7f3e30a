"""Metadata extraction from embedded tags and media containers."""

from .exiftool_reader import read_tags
from .ffprobe import ProbeFormat, ProbeResult, ProbeStream, probe_container
from .image_extractor import ImageMetadataExtractor
from .location import Coordinates, parse, parse_container_location
from .normalize import format_duration, parse_frame_rate
from .raster import RasterHeader, decode_raster_header
from .video_extractor import VideoMetadataExtractor

__all__ = [
    'Coordinates',
    'ImageMetadataExtractor',
    'ProbeFormat',
    'ProbeResult',
    'ProbeStream',
    'RasterHeader',
    'VideoMetadataExtractor',
    'decode_raster_header',
    'format_duration',
    'parse',
    'parse_container_location',
    'parse_frame_rate',
    'probe_container',
    'read_tags',
]
