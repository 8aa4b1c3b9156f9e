"""Platform-specific utilities for cross-platform compatibility."""

import os
import platform
import shutil
import subprocess
from typing import List, Optional

from .logger import get_logger

logger = get_logger(__name__)


def get_platform() -> str:
    system = platform.system()
    if system == "Darwin":
        return "macos"
    return system.lower()


def is_wayland() -> bool:
    if get_platform() != "linux":
        return False
    return bool(os.environ.get("WAYLAND_DISPLAY")) or (
        os.environ.get("XDG_SESSION_TYPE", "").lower() == "wayland"
    )


def find_tool(*candidates: str) -> Optional[str]:
    """Return the first executable from candidates found on PATH."""
    for name in candidates:
        if shutil.which(name):
            return name
    return None


def get_subprocess_kwargs(**kwargs) -> dict:
    """
    Build subprocess.run keyword arguments.

    On Windows, adds the flag that keeps helper tools from flashing a
    console window.
    """
    if get_platform() == "windows":
        kwargs.setdefault("creationflags", getattr(subprocess, "CREATE_NO_WINDOW", 0))
    return kwargs


def get_clipboard_command() -> Optional[List[str]]:
    system = get_platform()

    if system == "macos":
        return ["pbcopy"]
    if system == "windows":
        return ["clip"]
    if system == "linux":
        if is_wayland() and find_tool("wl-copy"):
            return ["wl-copy"]
        if find_tool("xclip"):
            return ["xclip", "-selection", "clipboard"]
        if find_tool("xsel"):
            return ["xsel", "--clipboard", "--input"]
        return None

    logger.warning(f"Unknown platform {system}, no clipboard tool available")
    return None
