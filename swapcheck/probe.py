"""
Backend version detection.

A probe decides whether the live backend is the old or the new one. There
is one implementation per way an engine exposes its identity; ``get_probe``
picks the one named by ``config.BACKEND_PROBE``.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Optional, Tuple

from swapcheck import config
from swapcheck.core.constants import PROBE_DOC_ID
from swapcheck.domain.commands import (
    BuildInfoCommand, BuildInfoReply, GetLogCommand, GetLogReply,
)
from swapcheck.domain.enums import BackendVersion
from swapcheck.errors import CommandFailed, DetectionFailure

logger = logging.getLogger(__name__)

_NUMERIC_SUFFIX_LEN = 2
_VERSION_RE = re.compile(r"^\s*v?(\d+(?:\.\d+)*)")


# ---------------------------------------------------------------------------
# Classification helpers
# ---------------------------------------------------------------------------

def classify_version_message(msg: str, new_substring: Optional[str] = None) -> BackendVersion:
    """Classify a startup message as the old or the new backend.

    The new backend is recognised either by ``new_substring`` appearing in
    the message or, without one, by the last two characters of the message
    reading as a number (the new backend appends its storage version, e.g.
    ``"... PostgreSQL 15.4."`` ends in ``".4"``).  Trailing whitespace and
    periods are ignored.
    """
    if not msg or not msg.strip():
        raise DetectionFailure("empty startup message")

    if new_substring:
        return BackendVersion.NEW if new_substring in msg else BackendVersion.OLD

    suffix = msg.rstrip().rstrip(".")[-_NUMERIC_SUFFIX_LEN:]
    if _is_numeric(suffix):
        return BackendVersion.NEW
    return BackendVersion.OLD


def _is_numeric(text: str) -> bool:
    if not text.strip() or "_" in text:
        return False
    try:
        return math.isfinite(float(text))
    except ValueError:
        return False


def extract_log_message(entry: str) -> str:
    """Decode one structured log line and return its ``msg`` text."""
    try:
        decoded = json.loads(entry)
    except (TypeError, ValueError) as exc:
        raise DetectionFailure(f"startup log entry is not JSON: {entry!r}") from exc

    if not isinstance(decoded, dict) or "msg" not in decoded:
        raise DetectionFailure(f"startup log entry has no msg: {entry!r}")

    msg = decoded["msg"]
    # Some builds log msg as a list of fragments; the first one names the backend.
    if isinstance(msg, list):
        msg = msg[0] if msg else ""
    if not isinstance(msg, str):
        raise DetectionFailure(f"startup log msg is not text: {msg!r}")
    return msg


def parse_version(version: str) -> Tuple[int, ...]:
    """``"7.0.2-rc1"`` -> ``(7, 0, 2)``."""
    m = _VERSION_RE.match(version or "")
    if not m:
        raise DetectionFailure(f"unparsable version string: {version!r}")
    return tuple(int(p) for p in m.group(1).split("."))


# ---------------------------------------------------------------------------
# Probes
# ---------------------------------------------------------------------------

class BackendVersionProbe:
    name: str = "none"

    def __init__(self, db, warmup_collection: Optional[str] = None) -> None:
        self._db = db
        self._warmup_collection = warmup_collection or config.STATE_COLLECTION

    def detect(self) -> BackendVersion:
        self.warm_up()
        version = self.classify()
        logger.info("Backend detected by %s probe: %s", self.name, version.value)
        return version

    def warm_up(self) -> None:
        """Write then read a throwaway document.

        Some backends only initialise their storage (and log what it is)
        on first access, so the diagnostics are read after this.
        """
        col = self._db[self._warmup_collection]
        col.update_one({"_id": PROBE_DOC_ID}, {"$set": {"probed": True}}, upsert=True)
        col.find_one({"_id": PROBE_DOC_ID})

    def classify(self) -> BackendVersion:
        raise NotImplementedError


class StartupLogProbe(BackendVersionProbe):
    """Reads the first ``getLog`` startup entry (FerretDB style)."""
    name = "startup_log"

    def __init__(
        self,
        db,
        warmup_collection: Optional[str] = None,
        log_name: Optional[str] = None,
        new_substring: Optional[str] = None,
    ) -> None:
        super().__init__(db, warmup_collection)
        self._log_name = log_name or config.PROBE_LOG_NAME
        self._new_substring = new_substring if new_substring is not None else config.NEW_BACKEND_SUBSTRING

    def classify(self) -> BackendVersion:
        try:
            reply = self._db.run_command(GetLogCommand(get_log=self._log_name), GetLogReply)
        except CommandFailed as exc:
            raise DetectionFailure(f"getLog {self._log_name} failed: {exc}") from exc

        if not reply.log:
            raise DetectionFailure(f"getLog {self._log_name} returned no entries")

        msg = extract_log_message(reply.log[0])
        logger.debug("Startup message: %s", msg)
        return classify_version_message(msg, self._new_substring or None)


class BuildInfoProbe(BackendVersionProbe):
    """Compares ``buildInfo.version`` against a minimum "new" version."""
    name = "build_info"

    def __init__(
        self,
        db,
        warmup_collection: Optional[str] = None,
        min_new_version: Optional[str] = None,
    ) -> None:
        super().__init__(db, warmup_collection)
        self._min_new = parse_version(min_new_version or config.NEW_BACKEND_MIN_VERSION)

    def classify(self) -> BackendVersion:
        try:
            reply = self._db.run_command(BuildInfoCommand(), BuildInfoReply)
        except CommandFailed as exc:
            raise DetectionFailure(f"buildInfo failed: {exc}") from exc

        version = parse_version(reply.version)
        logger.debug("buildInfo version %s (new from %s)", reply.version, self._min_new)
        return BackendVersion.NEW if version >= self._min_new else BackendVersion.OLD


_PROBES: dict[str, Any] = {
    StartupLogProbe.name: StartupLogProbe,
    BuildInfoProbe.name: BuildInfoProbe,
}


def get_probe(db, kind: Optional[str] = None) -> BackendVersionProbe:
    """Instantiate the probe configured for this deployment."""
    kind = (kind or config.BACKEND_PROBE).strip().lower()
    try:
        probe_cls = _PROBES[kind]
    except KeyError:
        raise DetectionFailure(
            f"unknown BACKEND_PROBE {kind!r} (expected one of {sorted(_PROBES)})"
        ) from None
    return probe_cls(db)
