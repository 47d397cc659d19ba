import errno
import os
import shutil
from pathlib import Path


def safe_rmpath(path: Path) -> None:
    """
    Removes the specified *path* from the file system. If it is a directory, :func:`shutil.rmtree` will be used
    with `ignore_errors` enabled. A path that does not exist is ignored.
    """

    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    else:
        try:
            path.unlink()
        except OSError as exc:
            if exc.errno != errno.ENOENT:
                raise


def mtime_ns(path: Path) -> int | None:
    """
    Returns the modification time of *path* in nanoseconds, or `None` if the path does not exist.
    """

    try:
        return os.stat(path).st_mtime_ns
    except FileNotFoundError:
        return None
