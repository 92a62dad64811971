# src/toons_library/utils/headless_detection.py

import os
import sys
import logging
from typing import Mapping, Optional

lib_logger = logging.getLogger("toons_library")

CI_VARIABLES = (
    "CI",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "JENKINS_URL",
    "BUILDKITE",
    "TF_BUILD",
)


def is_headless_environment(env: Optional[Mapping[str, str]] = None) -> bool:
    """
    Detects whether a browser can be opened on this machine.

    The auth flow still prints the authorization URL either way; this only
    decides whether webbrowser.open() is worth attempting.
    """
    env = os.environ if env is None else env
    reasons = []

    # DISPLAY is X11 only; macOS and Windows have a GUI without it.
    if os.name != "nt" and sys.platform != "darwin":
        if not env.get("DISPLAY", "").strip() and not env.get("WAYLAND_DISPLAY"):
            reasons.append("no DISPLAY")

    if env.get("SSH_CONNECTION") or env.get("SSH_CLIENT") or env.get("SSH_TTY"):
        reasons.append("SSH session")

    for var in CI_VARIABLES:
        if env.get(var):
            reasons.append(f"CI ({var})")
            break

    if reasons:
        lib_logger.debug(f"Headless environment detected: {', '.join(reasons)}")
        return True
    return False
