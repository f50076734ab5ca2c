from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Generic, Optional, TypeVar

from PIL import Image

from passportstudio.app.session import EditSession, SessionStore, to_transform_spec
from passportstudio.core.errors import PreviewCancelled
from passportstudio.core.pipeline import render_photo, render_sheet

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")


class CancelToken:
    """Cooperative cancellation flag shared between the scheduler and one render."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PreviewCancelled()


class PreviewScheduler(Generic[S, R]):
    """
    Debounced preview rendering tagged with a monotonically increasing generation.

    Every `submit` starts a new generation, cancels the pending timer and the token
    of any render still in flight, and schedules `render(settings, token)` after
    `delay` seconds on a worker thread. A result is delivered to `on_result` only
    if its generation is still the latest; superseded renders are dropped silently.
    """

    def __init__(
        self,
        render: Callable[[S, CancelToken], R],
        on_result: Callable[[int, R], None],
        on_error: Optional[Callable[[int, BaseException], None]] = None,
        delay: float = 0.3,
    ):
        self.render = render
        self.on_result = on_result
        self.on_error = on_error
        self.delay = delay

        self._lock = threading.RLock()
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._token: Optional[CancelToken] = None

    @property
    def generation(self) -> int:
        return self._generation

    def _supersede(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def submit(self, settings: S) -> int:
        with self._lock:
            self._supersede()
            self._generation += 1
            gen = self._generation
            token = CancelToken()
            timer = threading.Timer(self.delay, self._run, args=(gen, settings, token))
            timer.daemon = True
            self._token = token
            self._timer = timer
        timer.start()
        return gen

    def cancel(self) -> None:
        """Drop anything pending or in flight; nothing already queued will be delivered."""
        with self._lock:
            self._supersede()
            self._generation += 1

    def attach(self, store: SessionStore) -> Callable[[], None]:
        """Re-render whenever the store's session changes. Returns the unsubscribe function."""
        return store.subscribe(self.submit)  # type: ignore[arg-type]

    def _is_current(self, gen: int, token: CancelToken) -> bool:
        return gen == self._generation and not token.cancelled

    def _run(self, gen: int, settings: S, token: CancelToken) -> None:
        with self._lock:
            if not self._is_current(gen, token):
                return

        try:
            result = self.render(settings, token)
        except PreviewCancelled:
            logger.debug("Preview generation %d cancelled", gen)
            return
        except Exception as e:
            with self._lock:
                current = self._is_current(gen, token)
            if not current:
                logger.debug("Ignoring failure of superseded preview %d: %s", gen, e)
                return
            logger.warning("Preview generation %d failed: %s", gen, e)
            if self.on_error is not None:
                self.on_error(gen, e)
            return

        # Callbacks run outside the lock; a consumer that must not show a result
        # superseded during delivery compares `gen` with `generation`.
        with self._lock:
            current = self._is_current(gen, token)
        if not current:
            logger.debug("Discarding stale preview %d (current is %d)", gen, self._generation)
            return
        self.on_result(gen, result)


def render_session_preview(session: EditSession, token: CancelToken) -> Optional[Image.Image]:
    """Render what exporting `session` would produce (sheet or single photo)."""
    source = session.source
    if source is None:
        return None
    token.raise_if_cancelled()

    spec = to_transform_spec(session)
    sheet = session.print_sheet
    size = session.passport_size
    if sheet is not None and not sheet.is_custom and not size.is_custom:
        out, _plan = render_sheet(source, spec, size.size_px, sheet.size_px)
    else:
        out = render_photo(source, spec)

    token.raise_if_cancelled()
    return out


def remove_background_task(remover: Any) -> Callable[[EditSession, CancelToken], Image.Image]:
    """Adapt a BackgroundRemover into a scheduler render function."""

    def run(session: EditSession, token: CancelToken) -> Image.Image:
        if session.original is None:
            raise PreviewCancelled()
        try:
            return remover.remove(session.original, token=token)
        except Exception:
            if token.cancelled:
                raise PreviewCancelled()
            raise

    return run
