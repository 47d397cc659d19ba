from __future__ import annotations

import logging
import shutil
from pathlib import Path

from kiln.common import safe_rmpath
from kiln.core.errors import AssetNotFoundError

logger = logging.getLogger(__name__)


def copy_asset(source: Path, destination: Path) -> None:
    """Copy the file at *source* to *destination*, replacing any file that exists there and creating the parent
    directories as needed.

    :raise AssetNotFoundError: If *source* does not exist.
    """

    if not source.is_file():
        raise AssetNotFoundError(source)
    safe_rmpath(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, destination)
    logger.info("copied asset %s => %s", source, destination)
