"""Minimal browser-like globals for running browser-oriented code at build time."""

from __future__ import annotations

import logging
import threading
import time
from functools import partial
from types import SimpleNamespace
from typing import Any, Callable, Mapping

import httpx
from bs4 import BeautifulSoup

from .bindings import GlobalBindings
from .resources import AssetTransport, FetchResource
from .runtime import Console, Timers
from .sandbox import evaluate

logger = logging.getLogger(__name__)

DEFAULT_HTML = "<script></script>"
DEFAULT_URL = "http://localhost/"
DEFAULT_USER_AGENT = "isomorphic-html"
PYTHON_SCRIPT_TYPES = ("text/python", "application/python")
FORWARDED_WINDOW_PROPERTIES = ("document", "set_timeout", "clear_timeout", "console")
FRAME_INTERVAL_MS = 1000 / 60


class ResourceLoader:
    """Routes a window's outbound resource requests through *fetch*."""

    def __init__(self, fetch: FetchResource | None = None, user_agent: str = DEFAULT_USER_AGENT) -> None:
        self._fetch = fetch
        self.user_agent = user_agent

    def fetch(self, url: str, options: Mapping[str, Any] | None = None) -> bytes:
        if self._fetch is None:
            raise RuntimeError(f"No resource loader configured, cannot fetch '{url}'")
        return self._fetch(url, dict(options or {}))

    def client(self, base_url: str = DEFAULT_URL) -> httpx.Client:
        return httpx.Client(
            transport=AssetTransport(self.fetch, base_url),
            base_url=base_url,
            headers={"User-Agent": self.user_agent},
        )


class FakeWindow:
    """Headless window around a BeautifulSoup document.

    With ``run_scripts`` enabled, ``<script type="text/python">`` elements are
    evaluated on construction. ``pretend_to_be_visual`` adds viewport
    dimensions and animation frame scheduling.
    """

    def __init__(
        self,
        html: str = DEFAULT_HTML,
        *,
        resources: ResourceLoader | None = None,
        run_scripts: bool = False,
        pretend_to_be_visual: bool = False,
        url: str = DEFAULT_URL,
    ) -> None:
        self.url = url
        self.resources = resources or ResourceLoader()
        self.document = BeautifulSoup(html, "html5lib")
        self.console = Console()
        self.navigator = SimpleNamespace(user_agent=self.resources.user_agent)
        self._timers = Timers()
        self._http: httpx.Client | None = None
        self.closed = False
        if pretend_to_be_visual:
            self.inner_width = 1024
            self.inner_height = 768
            self.device_pixel_ratio = 1
            self.request_animation_frame = self._request_animation_frame
            self.cancel_animation_frame = self._timers.clear_timeout
        if run_scripts:
            self.run_scripts()

    @property
    def window(self) -> "FakeWindow":
        return self

    @property
    def self(self) -> "FakeWindow":
        return self

    @property
    def http(self) -> httpx.Client:
        """httpx client whose requests are served from build assets."""

        if self._http is None:
            self._http = self.resources.client(self.url)
        return self._http

    def set_timeout(self, callback: Callable[..., Any], delay_ms: float = 0, *args: Any) -> int:
        return self._timers.set_timeout(callback, delay_ms, *args)

    def clear_timeout(self, timer_id: int | None) -> None:
        self._timers.clear_timeout(timer_id)

    def set_interval(self, callback: Callable[..., Any], delay_ms: float = 0, *args: Any) -> int:
        return self._timers.set_interval(callback, delay_ms, *args)

    def clear_interval(self, timer_id: int | None) -> None:
        self._timers.clear_interval(timer_id)

    def _request_animation_frame(self, callback: Callable[[float], Any]) -> int:
        return self._timers.set_timeout(lambda: callback(time.monotonic() * 1000), FRAME_INTERVAL_MS)

    def fetch(self, url: str, options: Mapping[str, Any] | None = None) -> bytes:
        return self.resources.fetch(url, options)

    def scope(self) -> GlobalBindings:
        """Globals for scripts running inside this window."""

        bindings = GlobalBindings()
        bindings.define_readonly("window", lambda: self)
        bindings.define_readonly("self", lambda: self)
        for key in FORWARDED_WINDOW_PROPERTIES:
            bindings.define_readonly(key, partial(getattr, self, key))
        return bindings

    def load_script(self, url: str) -> Any:
        """Fetch a Python script through the resource loader, run it, return its exports."""

        source = self.fetch(url, {"element": "script"})
        return evaluate(source, url, self.scope(), timers=self._timers)

    def run_scripts(self) -> None:
        for index, script in enumerate(self.document.find_all("script")):
            if script.get("type") not in PYTHON_SCRIPT_TYPES:
                continue
            src = script.get("src")
            if src:
                self.load_script(src)
            else:
                evaluate(script.string or "", f"{self.url}#script-{index}", self.scope(), timers=self._timers)

    def close(self) -> None:
        self._timers.close()
        if self._http is not None:
            self._http.close()
            self._http = None
        self.closed = True

    def __repr__(self) -> str:
        return f"FakeWindow({self.url!r})"


class LazyWindow:
    """Memoized factory building one window on first call."""

    def __init__(self, factory: Callable[[], FakeWindow]) -> None:
        self._factory = factory
        self._window: FakeWindow | None = None
        self._lock = threading.Lock()

    @property
    def created(self) -> bool:
        return self._window is not None

    def __call__(self) -> FakeWindow:
        if self._window is None:
            with self._lock:
                if self._window is None:
                    logger.debug("creating fake browser window")
                    self._window = self._factory()
        return self._window

    def close(self) -> None:
        if self._window is not None:
            self._window.close()


def create_window(fetch: FetchResource | None) -> FakeWindow:
    return FakeWindow(
        DEFAULT_HTML,
        resources=ResourceLoader(fetch),
        run_scripts=True,
        pretend_to_be_visual=True,
    )


def _window_property(globals_: GlobalBindings, key: str) -> Any:
    return getattr(globals_["window"], key)


def prepare_fake_browser(globals_: GlobalBindings, fetch: FetchResource | None) -> LazyWindow | None:
    """Install read-only browser globals that the caller has not supplied.

    *globals_* must be a :class:`GlobalBindings`, since plain dicts cannot hold
    read-only entries; wrap a mapping with :func:`~isomorphic_html.bindings.as_bindings`
    first (``prepare_fake_browser(as_bindings({}), fetch)``). The same object is
    updated in place.

    Returns the lazy window factory when ``window`` was installed here.
    """

    if not isinstance(globals_, GlobalBindings):
        raise TypeError("prepare_fake_browser needs GlobalBindings; wrap plain mappings with as_bindings()")
    lazy_window: LazyWindow | None = None
    if "window" not in globals_:
        lazy_window = LazyWindow(partial(create_window, fetch))
        globals_.define_readonly("window", lazy_window)
    if "self" not in globals_:
        globals_.define_readonly("self", partial(_window_property, globals_, "window"))
    for key in FORWARDED_WINDOW_PROPERTIES:
        if key not in globals_:
            globals_.define_readonly(key, partial(_window_property, globals_, key))
    return lazy_window
