from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Optional


logger = logging.getLogger(__name__)


def load_env_dir(env_dir: Optional[Path], blacklist: str) -> Dict[str, str]:
    """Read an environment directory into a dict.

    Each regular file is one variable: the file name is the variable name and
    the contents (minus the trailing newline) its value. Names matching the
    ``blacklist`` regex are skipped so the platform cannot clobber variables
    the build relies on.
    """
    if env_dir is None or not env_dir.is_dir():
        return {}

    pattern = re.compile(blacklist)
    env: Dict[str, str] = {}
    for entry in sorted(env_dir.iterdir()):
        if not entry.is_file():
            continue
        if pattern.search(entry.name):
            logger.debug(f"Skipping blacklisted env var {entry.name}")
            continue
        env[entry.name] = entry.read_text().rstrip("\n")
    return env
