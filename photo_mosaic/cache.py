"""Single-slot cache of the most recently built tile library."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from photo_mosaic.config import EngineConfig
from photo_mosaic.library import TileLibrary, load_library

logger = logging.getLogger(__name__)

Loader = Callable[[Path, int, EngineConfig], TileLibrary]


class LibraryCache:
    """Holds one TileLibrary keyed by ``(directory, tile_size)``.

    A request for a different key builds a new library and swaps it into
    the slot. Callers keep the reference they were handed, so a generation
    running against the previous snapshot is unaffected by the swap. A
    failed build leaves the slot as it was.

    Attributes:
        builds: Number of libraries built so far.
    """

    def __init__(self, config: EngineConfig | None = None, loader: Loader = load_library) -> None:
        self.config = config or EngineConfig()
        self._loader = loader
        self._lock = threading.Lock()
        self._library: TileLibrary | None = None
        self.builds = 0

    @staticmethod
    def make_key(directory: str | Path, tile_size: int) -> tuple[Path, int]:
        return Path(directory).expanduser().resolve(), tile_size

    def peek(self) -> TileLibrary | None:
        """The cached library, if any, without building anything."""
        return self._library

    def get(self, directory: str | Path, tile_size: int) -> TileLibrary:
        """Return the library for this key, building it on a miss."""
        key = self.make_key(directory, tile_size)
        with self._lock:
            current = self._library
            if current is not None and current.key == key:
                logger.debug("Library cache hit for %s @ %dpx", *key)
                return current

            logger.info("Library cache miss for %s @ %dpx; rebuilding", *key)
            library = self._loader(key[0], tile_size, self.config)
            self._library = library
            self.builds += 1
            return library

    def clear(self) -> None:
        with self._lock:
            self._library = None
