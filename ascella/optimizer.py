"""Lossless PNG re-encoding before upload."""

import io
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from pathlib import Path

from PIL import Image

from .config import Config

__all__ = ["optimize_png", "prepare_upload"]

logger = logging.getLogger(__name__)


def _reencode(data: bytes) -> bytes:
    with Image.open(io.BytesIO(data)) as image:
        image.load()
        buf = io.BytesIO()
        image.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def optimize_png(data: bytes, timeout_ms: int) -> bytes:
    """Re-encode PNG bytes, giving up after ``timeout_ms``.

    Returns:
        The smaller of the optimized and original bytes. The original
        bytes on timeout or any decoding/encoding failure.
    """
    start = time.monotonic()
    # One executor per pass: an overrunning pass finishes on its own thread
    # and never delays the next upload
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ascella-optimize")
    try:
        optimized = executor.submit(_reencode, data).result(timeout=timeout_ms / 1000)
    except FutureTimeout:
        logger.info(f"PNG optimization exceeded {timeout_ms}ms, uploading original")
        return data
    except Exception as e:
        logger.warning(f"PNG optimization failed, uploading original: {e}")
        return data
    finally:
        executor.shutdown(wait=False)

    elapsed_ms = (time.monotonic() - start) * 1000
    logger.info(
        f"Optimized image in {elapsed_ms:.0f}ms before: {len(data)} after: {len(optimized)}"
    )
    if len(optimized) >= len(data):
        return data
    return optimized


def prepare_upload(path: Path, config: Config) -> bytes:
    """Read a captured file, optimizing it when enabled for its type.

    Raises:
        OSError: If the file cannot be read
    """
    data = path.read_bytes()
    if config.optimize_png and path.suffix.lower() == ".png":
        logger.debug("Optimizing PNG")
        return optimize_png(data, config.optimize_timeout)
    return data
