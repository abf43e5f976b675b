"""
Content-Addressed Disk Cache for Synthesized Audio.

Identical requests (same backend configuration, same voice, same text)
always map to the same file, so repeated announcements are served from
disk without touching the network.

File Organization:
    {base_dir}/
        en_US_p225_Ana_Florence_5d41402abc4b2a76b9719d911017c592.wav
        en_US_p225_Ana_Florence_5d41402abc4b2a76b9719d911017c592.txt

    The .txt sidecar records what produced the audio:
        Config: hostname=tts.local,port=5002,voice=en_US_p225_Ana_Florence
        Text: Hello world.

Cache Key:
    MD5 over "<fingerprint>|<voice technical name>|<text>". The digest is
    used for addressing only, not for security.

Guarantees:
    - Entries are never mutated; the whole directory can be purged.
    - Audio is written to a temp file and renamed, so readers never see
      a partial file.
    - Write failures are logged and counted, never raised: the caller
      still gets the audio it just computed.
    - get_or_compute() is single-flight: concurrent requests for the same
      entry wait for the first one and share its bytes (or its error).

Usage:
    cache = ContentCache("./cache")
    key = make_cache_key(backend.fingerprint(), voice.technical_name, text)
    audio = cache.get_or_compute(key, lambda: synthesize(text), extension="wav")
"""
from __future__ import annotations

import hashlib
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from tts_bridge.core.logging import get_logger, info, verbose, warn
from tts_bridge.core.metrics import metrics
from tts_bridge.utils.timeit import timeit

_LOG = get_logger("tts-bridge.cache")

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class CacheKey:
    """
    Address of one cache entry.

    Equality is (digest, voice_name); fingerprint and text are carried
    along for the sidecar file.
    """
    digest: str
    voice_name: str
    fingerprint: str = field(default="", compare=False)
    text: str = field(default="", compare=False, repr=False)

    @property
    def stem(self) -> str:
        return f"{self.voice_name}_{self.digest}"


def make_cache_key(fingerprint: str, voice_name: str, text: str) -> CacheKey:
    """
    Build the cache key for one synthesis request.

    Args:
        fingerprint: Backend configuration fingerprint.
        voice_name: Voice technical name; also the file name prefix.
        text: Trimmed request text.

    Returns:
        CacheKey with a 32-character hex MD5 digest.
    """
    h = hashlib.md5()
    h.update((fingerprint or "").encode("utf-8"))
    h.update(b"|")
    h.update((voice_name or "").encode("utf-8"))
    h.update(b"|")
    h.update(text.encode("utf-8"))
    safe_name = _UNSAFE_NAME.sub("", voice_name or "") or "voice"
    return CacheKey(digest=h.hexdigest(), voice_name=safe_name, fingerprint=fingerprint, text=text)


class _Flight:
    """One in-progress computation that followers can wait on."""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Optional[bytes] = None
        self.error: Optional[BaseException] = None


class ContentCache:
    """
    Disk cache keyed by CacheKey.

    Thread-safe. Counters are exposed through stats().
    """

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir)
        self._lock = threading.Lock()
        self._inflight: Dict[Tuple[CacheKey, str], _Flight] = {}

        self._hits = 0
        self._misses = 0
        self._shared = 0
        self._write_failures = 0
        self._purges = 0

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    def path_for(self, key: CacheKey, extension: str) -> Path:
        return self._base_dir / f"{key.stem}.{extension}"

    def sidecar_path_for(self, key: CacheKey) -> Path:
        return self._base_dir / f"{key.stem}.txt"

    # -------------------------------------------------------------------------
    # Load / store
    # -------------------------------------------------------------------------

    def try_load(self, key: CacheKey, extension: str) -> Optional[bytes]:
        """
        Read a cached entry.

        Returns:
            The audio bytes, or None if absent or unreadable.
        """
        p = self.path_for(key, extension)
        if not p.is_file():
            return None
        try:
            return p.read_bytes()
        except OSError as e:
            warn(_LOG, "cache_read_error", key=key.digest[:8], error=str(e))
            return None

    def store(self, key: CacheKey, extension: str, audio: bytes) -> bool:
        """
        Persist audio and its sidecar description.

        Returns:
            True if both files were written. Failures are logged at WARN
            and counted; they never raise.
        """
        p = self.path_for(key, extension)
        tmp = p.with_name(p.name + ".tmp")
        try:
            self._base_dir.mkdir(parents=True, exist_ok=True)
            with timeit("cache_write") as t:
                tmp.write_bytes(audio)
                tmp.replace(p)
                self.sidecar_path_for(key).write_text(
                    f"Config: {key.fingerprint},voice={key.voice_name}\nText: {key.text}\n",
                    encoding="utf-8",
                )
        except OSError as e:
            with self._lock:
                self._write_failures += 1
            metrics.inc_cache_write_failures()
            warn(_LOG, "cache_write_error", key=key.digest[:8], error=str(e))
            try:
                tmp.unlink()
            except OSError:
                pass  # never created
            return False

        verbose(_LOG, "cache_saved", key=key.digest[:8], bytes=len(audio), seconds=round(t.seconds, 4))
        return True

    def get_or_compute(
        self,
        key: CacheKey,
        compute: Callable[[], bytes],
        extension: str = "wav",
    ) -> bytes:
        """
        Return cached audio, computing and storing it on a miss.

        ``compute`` runs at most once per entry at a time; concurrent
        callers for the same (key, extension) share the leader's outcome.

        Raises:
            Whatever ``compute`` raises. Nothing is stored in that case.
        """
        slot = (key, extension)
        with self._lock:
            flight = self._inflight.get(slot)
            leader = flight is None
            if leader:
                flight = self._inflight[slot] = _Flight()

        assert flight is not None
        if not leader:
            flight.done.wait()
            with self._lock:
                self._shared += 1
            if flight.error is not None:
                raise flight.error
            assert flight.result is not None
            verbose(_LOG, "cache_shared", key=key.digest[:8])
            return flight.result

        try:
            data = self.try_load(key, extension)
            if data is not None:
                with self._lock:
                    self._hits += 1
                metrics.record_cache("hit")
                info(_LOG, "cache_hit", key=key.digest[:8], voice=key.voice_name, bytes=len(data))
            else:
                with self._lock:
                    self._misses += 1
                metrics.record_cache("miss")
                info(_LOG, "cache_miss", key=key.digest[:8], voice=key.voice_name)
                data = compute()
                self.store(key, extension, data)
            flight.result = data
            return data
        except BaseException as e:
            flight.error = e
            raise
        finally:
            with self._lock:
                self._inflight.pop(slot, None)
            flight.done.set()

    def contains(self, key: CacheKey, extension: str = "wav") -> bool:
        return self.path_for(key, extension).is_file()

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def purge(self) -> int:
        """
        Delete every file in the cache directory.

        Returns:
            Number of files removed. Files that cannot be removed are
            logged and skipped.
        """
        removed = 0
        if self._base_dir.is_dir():
            for p in self._base_dir.iterdir():
                if not p.is_file():
                    continue
                try:
                    p.unlink()
                    removed += 1
                except OSError as e:
                    warn(_LOG, "cache_purge_error", file=p.name, error=str(e))
        with self._lock:
            self._purges += 1
        metrics.inc_cache_purges()
        info(_LOG, "cache_purged", files_removed=removed, base_dir=str(self._base_dir))
        return removed

    def stats(self) -> Dict[str, object]:
        with self._lock:
            return {
                "base_dir": str(self._base_dir),
                "hits": self._hits,
                "misses": self._misses,
                "shared": self._shared,
                "write_failures": self._write_failures,
                "purges": self._purges,
            }
