"""Reading the pseudocode files that threads execute."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Union

logger = logging.getLogger(__name__)


def parse_instructions(lines: Iterable[str]) -> List[str]:
    """One instruction per line, with line terminators removed."""
    return [line.rstrip("\r\n") for line in lines]


def read_instructions(directory: Union[str, os.PathLike], filename: str) -> List[str]:
    """Read the pseudocode file ``filename`` found in ``directory``."""
    path = Path(directory) / filename
    try:
        with open(path, encoding="utf-8") as handle:
            instructions = parse_instructions(handle)
    except OSError:
        logger.error("cannot open instruction file %s", path)
        raise
    logger.debug("read %d instructions from %s", len(instructions), path)
    return instructions