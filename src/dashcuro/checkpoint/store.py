#!/usr/bin/env python3
"""
DASHCURO CHECKPOINT STORE
-------------------------
Newline-delimited UID files that hand work from the scan stage to the fix
stage, across process invocations. The operator may edit them by hand
between runs.

Author: DashCuro Team
Date: 2026-10-18
"""

import os
import logging
from pathlib import Path
from typing import Iterable, List, Union

from dashcuro.core.errors import CheckpointError

logger = logging.getLogger("dashcuro.checkpoint")

DEFAULT_CHECKPOINT = "exemplar-dashboards"
FAILURES_SUFFIX = "-failed-transactions"

PathLike = Union[str, Path]

def write_lines(lines: Iterable[str], path: PathLike) -> Path:
    """
    Writes one identifier per line, truncating whatever was there. The
    content goes to a temp file first and is swapped in with os.replace.
    """
    target = Path(path)
    lines = list(lines)
    for line in lines:
        if "\n" in line or "\r" in line:
            raise CheckpointError(f"Identifier {line!r} contains a line terminator")

    temp_file = target.with_name(target.name + ".dashcuro.tmp")
    try:
        with open(temp_file, "w", encoding="utf-8", newline="\n") as f:
            for line in lines:
                f.write(f"{line}\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_file, target)
    except OSError as e:
        if temp_file.exists():
            temp_file.unlink()
        raise CheckpointError(f"Failed to write {target}: {e}") from e

    logger.debug(f"Wrote {len(lines)} identifiers to {target}")
    return target

def read_lines(path: PathLike) -> List[str]:
    """Reads identifiers back in file order. Blank lines are ignored."""
    target = Path(path)
    try:
        content = target.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        raise CheckpointError(f"Failed to read {target}: {e}") from e
    return [line.strip() for line in content.splitlines() if line.strip()]

def failures_path_for(path: PathLike) -> Path:
    target = Path(path)
    return target.with_name(target.name + FAILURES_SUFFIX)

class CheckpointStore:
    """The candidate checkpoint and its companion failures file."""

    def __init__(self, path: PathLike = DEFAULT_CHECKPOINT):
        self.path = Path(path)
        self.failures_path = failures_path_for(self.path)

    def write_candidates(self, uids: List[str]) -> Path:
        return write_lines(uids, self.path)

    def read_candidates(self) -> List[str]:
        return read_lines(self.path)

    def write_failures(self, uids: List[str]) -> Path:
        return write_lines(uids, self.failures_path)

    def read_failures(self) -> List[str]:
        return read_lines(self.failures_path)
