"""
Application context: configuration and state shared by the routers.

One AppContext is created per app and stored on ``app.state.context``;
routes receive it through ``Depends(get_context)``.
"""

import time
from dataclasses import dataclass, field

from fastapi import Request

from drm_backend.config.env import Env
from drm_backend.utils.broadcast_registry import BroadcastRegistry
from drm_backend.utils.settings_store import SettingsStore


@dataclass
class AppContext:
    env: Env
    settings: SettingsStore
    broadcasts: BroadcastRegistry = field(default_factory=BroadcastRegistry)
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime(self) -> float:
        return time.monotonic() - self.started_at


def get_context(request: Request) -> AppContext:
    return request.app.state.context
