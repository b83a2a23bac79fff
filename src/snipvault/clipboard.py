"""
Clipboard helpers.

Pipes text into whichever platform copy tool is installed. Nothing here
is required: when no tool is found the CLI prints the value instead.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import Optional

logger = logging.getLogger("snipvault.clipboard")

COPY_COMMANDS = [
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["clip.exe"],
]


def copy_command() -> Optional[list[str]]:
    """First available copy command on this machine, if any."""
    for cmd in COPY_COMMANDS:
        if shutil.which(cmd[0]):
            return cmd
    return None


def copy_to_clipboard(text: str) -> bool:
    """Put ``text`` on the system clipboard.

    Returns:
        True if a copy tool accepted the text.
    """
    cmd = copy_command()
    if cmd is None:
        logger.debug("No clipboard tool available")
        return False
    try:
        proc = subprocess.run(
            cmd,
            input=text.encode("utf-8"),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
            timeout=5,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logger.warning("Clipboard copy via %s failed: %s", cmd[0], exc)
        return False
    if proc.returncode != 0:
        logger.warning("Clipboard copy via %s exited with %d", cmd[0], proc.returncode)
        return False
    return True
