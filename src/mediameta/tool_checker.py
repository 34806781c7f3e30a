"""Tool availability checker for external dependencies."""

import logging
import shutil
from typing import Dict

logger = logging.getLogger(__name__)

# What each tool is needed for, and what happens without it
TOOL_ROLES = {
    'exiftool': ('embedded tag reading', 'image and video records lose tag-derived fields'),
    'ffprobe': ('video container probing', 'video extraction jobs fail'),
}


def check_tool_availability(
    exiftool_path: str = 'exiftool',
    ffprobe_path: str = 'ffprobe',
) -> Dict[str, bool]:
    """
    Check availability of external tools for metadata extraction.

    Returns:
        Dictionary mapping tool names ('exiftool', 'ffprobe') to availability
    """
    return {
        'exiftool': shutil.which(exiftool_path) is not None,
        'ffprobe': shutil.which(ffprobe_path) is not None,
    }


def warn_missing_tools(exiftool_path: str = 'exiftool', ffprobe_path: str = 'ffprobe') -> Dict[str, bool]:
    """Log availability of each tool, with installation instructions when missing."""
    tools = check_tool_availability(exiftool_path, ffprobe_path)

    for tool_name, available in tools.items():
        capability, impact = TOOL_ROLES[tool_name]
        if available:
            logger.info(f"Tool available: {{'tool': {tool_name!r}, 'capability': {capability!r}}}")
        else:
            logger.warning(
                f"Tool not found: {{'tool': {tool_name!r}, 'impact': {impact!r}}}\n"
                f"{get_installation_instructions(tool_name)}"
            )
    return tools


def get_installation_instructions(tool_name: str) -> str:
    """Get installation instructions for a missing tool."""
    instructions = {
        'ffprobe': (
            "ffprobe is part of FFmpeg. Install it:\n"
            "  - Windows: Download from https://ffmpeg.org/download.html\n"
            "  - macOS: brew install ffmpeg\n"
            "  - Linux: sudo apt-get install ffmpeg (Debian/Ubuntu)\n"
            "           sudo yum install ffmpeg (RHEL/CentOS)"
        ),
        'exiftool': (
            "ExifTool reads embedded photo and video tags. Install it:\n"
            "  - Windows: Download from https://exiftool.org/\n"
            "  - macOS: brew install exiftool\n"
            "  - Linux: sudo apt-get install libimage-exiftool-perl"
        ),
    }

    return instructions.get(tool_name, f"Please install {tool_name}")
