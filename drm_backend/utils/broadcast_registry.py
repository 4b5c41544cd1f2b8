"""
In-memory registry of WHIP broadcast sessions, keyed by stream id.
"""

import itertools
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class BroadcastSession:
    stream_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    endpoint: Optional[str] = None
    merchant: Optional[str] = None
    user_id_for_drm: Optional[str] = None
    encrypted: bool = False
    ice_servers: Optional[List[Dict[str, Any]]] = None
    connection_state: str = "creating"
    is_active: bool = True
    local_sdp: Optional[str] = None
    remote_sdp: Optional[str] = None
    ice_candidates: Optional[List[Any]] = None
    last_ping_at: Optional[str] = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
    revision: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "streamId": self.stream_id,
            "endpoint": self.endpoint,
            "merchant": self.merchant,
            "userIdForDrm": self.user_id_for_drm,
            "encrypted": self.encrypted,
            "iceServers": self.ice_servers,
            "connectionState": self.connection_state,
            "isActive": self.is_active,
            "localSdp": self.local_sdp,
            "remoteSdp": self.remote_sdp,
            "iceCandidates": self.ice_candidates,
            "lastPingAt": self.last_ping_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


class BroadcastRegistry:
    def __init__(self):
        self._sessions: Dict[str, BroadcastSession] = {}
        self._lock = Lock()
        self._revisions = itertools.count(1)

    def _touch(self, session: BroadcastSession) -> None:
        session.updated_at = _now()
        session.revision = next(self._revisions)

    def upsert(
        self,
        stream_id: str,
        endpoint: Optional[str] = None,
        merchant: Optional[str] = None,
        user_id_for_drm: Optional[str] = None,
        encrypted: bool = False,
        ice_servers: Optional[List[Dict[str, Any]]] = None,
    ) -> Tuple[BroadcastSession, bool]:
        """Create the session or reactivate an existing one. Returns (session, is_existing)."""
        with self._lock:
            session = self._sessions.get(stream_id)
            is_existing = session is not None
            if session is None:
                session = BroadcastSession(stream_id=stream_id)
                self._sessions[stream_id] = session
            session.is_active = True
            session.connection_state = "creating"
            session.endpoint = endpoint or None
            session.merchant = merchant or None
            session.user_id_for_drm = user_id_for_drm or None
            session.encrypted = bool(encrypted)
            session.ice_servers = ice_servers or None
            self._touch(session)
        logger.info(
            f"📡 Broadcast session {'updated' if is_existing else 'created'}: "
            f"{stream_id} (encrypted={session.encrypted})"
        )
        return session, is_existing

    def get(self, stream_id: str) -> Optional[BroadcastSession]:
        with self._lock:
            return self._sessions.get(stream_id)

    def update_state(
        self,
        stream_id: str,
        connection_state: Optional[str] = None,
        local_sdp: Any = _UNSET,
        remote_sdp: Any = _UNSET,
        ice_candidates: Any = _UNSET,
    ) -> Optional[BroadcastSession]:
        with self._lock:
            session = self._sessions.get(stream_id)
            if session is None:
                return None
            if connection_state:
                session.connection_state = connection_state
            if local_sdp is not _UNSET:
                session.local_sdp = local_sdp
            if remote_sdp is not _UNSET:
                session.remote_sdp = remote_sdp
            if ice_candidates is not _UNSET:
                session.ice_candidates = ice_candidates
            self._touch(session)
        logger.info(f"📡 Broadcast session state: {stream_id} -> {session.connection_state}")
        return session

    def ping(self, stream_id: str) -> Optional[BroadcastSession]:
        with self._lock:
            session = self._sessions.get(stream_id)
            if session is None:
                return None
            session.last_ping_at = _now()
            self._touch(session)
        return session

    def deactivate(self, stream_id: str) -> Optional[BroadcastSession]:
        with self._lock:
            session = self._sessions.get(stream_id)
            if session is None:
                return None
            session.is_active = False
            session.connection_state = "disconnected"
            self._touch(session)
        logger.info(f"📡 Broadcast session deactivated: {stream_id}")
        return session

    def list_active(self) -> List[BroadcastSession]:
        """Active sessions, most recently updated first."""
        with self._lock:
            active = [s for s in self._sessions.values() if s.is_active]
        return sorted(active, key=lambda s: s.revision, reverse=True)
