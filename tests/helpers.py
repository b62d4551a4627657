"""
Helpers shared by the image-sorter test suite.
"""
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import Image

from image_sorter.errors import GeoLookupError, MetadataError
from image_sorter.models import PhotoRecord


# ── File-creation helpers ─────────────────────────────────────────────────────

def make_file(path: Path, content: bytes = b"dummy content") -> Path:
    """Create a file with the given content; create parent dirs as needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def make_jpeg(path: Path, model: Optional[str] = None, taken: Optional[str] = None) -> Path:
    """Write a small JPEG, optionally carrying Model and DateTime EXIF tags."""
    path.parent.mkdir(parents=True, exist_ok=True)
    exif = Image.Exif()
    if model is not None:
        exif[0x0110] = model
    if taken is not None:
        exif[0x0132] = taken
    kwargs = {"exif": exif} if len(exif) else {}
    Image.new("RGB", (8, 8), color=(200, 100, 50)).save(path, "JPEG", **kwargs)
    return path


def tree(root: Path) -> List[Tuple[str, bytes]]:
    """Relative path and content of every file under root, sorted."""
    return sorted(
        (p.relative_to(root).as_posix(), p.read_bytes())
        for p in root.rglob("*") if p.is_file()
    )


# ── Stubs ─────────────────────────────────────────────────────────────────────

class StubBackend:
    """Geocoding backend answering from a dict keyed by rounded coordinates."""

    def __init__(self, places: Optional[Dict[Tuple[float, float], str]] = None,
                 default: Optional[str] = "Somewhere", fail: bool = False):
        self.places = places or {}
        self.default = default
        self.fail = fail
        self.calls: List[Tuple[float, float]] = []
        self._lock = threading.Lock()

    def __call__(self, latitude: float, longitude: float) -> Optional[str]:
        with self._lock:
            self.calls.append((latitude, longitude))
        if self.fail:
            raise GeoLookupError(f"service unavailable for ({latitude}, {longitude})")
        return self.places.get((latitude, longitude), self.default)


class StubExtractor:
    """Metadata extractor answering from a dict keyed by file name."""

    def __init__(self, records: Dict[str, dict], corrupt: Tuple[str, ...] = ()):
        self.records = records
        self.corrupt = corrupt

    def extract(self, file_path) -> PhotoRecord:
        path = Path(file_path)
        if path.name in self.corrupt:
            raise MetadataError(f"Unreadable or corrupt image: {path}")
        return PhotoRecord(source_path=path, **self.records.get(path.name, {}))
