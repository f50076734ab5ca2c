from __future__ import annotations

import io
import logging
import threading
from typing import Any, Optional, Protocol

from PIL import Image

from passportstudio.core.errors import BackgroundRemovalError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "isnet-general-use"


class CancellationToken(Protocol):
    @property
    def cancelled(self) -> bool: ...


class BackgroundRemover:
    """
    Wraps rembg: returns an RGBA copy of the image with background pixels at alpha 0.

    The rembg session (model download + ONNX runtime) is created on first use and
    reused afterwards. rembg is imported lazily so the rest of the pipeline works
    without it installed.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL):
        self.model_name = model_name
        self._session: Any = None
        self._lock = threading.Lock()

    def _get_session(self) -> Any:
        with self._lock:
            if self._session is None:
                try:
                    from rembg import new_session  # type: ignore
                except ImportError as e:
                    raise BackgroundRemovalError(
                        "Background removal is unavailable (install the 'rembg' extra)."
                    ) from e
                logger.info("Loading background-removal model %s", self.model_name)
                self._session = new_session(self.model_name)
            return self._session

    def _remove(self, img: Image.Image) -> Image.Image:
        session = self._get_session()
        from rembg import remove  # type: ignore

        cut = remove(img.convert("RGB"), session=session)
        if isinstance(cut, bytes):
            cut = Image.open(io.BytesIO(cut))
        return cut.convert("RGBA")

    def remove(self, img: Image.Image, token: Optional[CancellationToken] = None) -> Image.Image:
        if token is not None and token.cancelled:
            raise BackgroundRemovalError("Background removal was cancelled.")

        try:
            out = self._remove(img)
        except BackgroundRemovalError:
            raise
        except Exception as e:
            logger.warning("Background removal failed: %s", e)
            raise BackgroundRemovalError() from e

        if token is not None and token.cancelled:
            raise BackgroundRemovalError("Background removal was cancelled.")
        if out.size != img.size:
            raise BackgroundRemovalError("Background removal returned an image of the wrong size.")

        logger.info("Removed background from %dx%d image", img.width, img.height)
        return out
