# ideaboard/extensions.py
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from flask import Flask, current_app

from ideaboard.api.client import IdeaBoardApiClient

ClientFactory = Callable[[Optional[str]], IdeaBoardApiClient]


@dataclass(slots=True)
class _BackendState:
    client_factory: ClientFactory
    reaction_query_enabled: bool


class ApiBackend:
    """
    Hands out per-request REST clients configured from the current Flask app.

    State lives in ``app.extensions`` so several apps (tests) can coexist;
    ``client_factory`` lets tests point the routes at in-memory backends.
    """

    def init_app(self, app: Flask, client_factory: Optional[ClientFactory] = None):
        base_url = app.config.get("IDEABOARD_API_URL")
        if not base_url:
            raise ValueError("IDEABOARD_API_URL must be configured in .env or the config object.")
        timeout = float(app.config.get("IDEABOARD_API_TIMEOUT_SECONDS", 10.0))
        reaction_query_enabled = bool(app.config.get("REACTION_QUERY_ENABLED", False))

        if client_factory is None:
            def client_factory(token: Optional[str]) -> IdeaBoardApiClient:
                return IdeaBoardApiClient(
                    base_url,
                    token=token,
                    timeout=timeout,
                    reaction_query_enabled=reaction_query_enabled,
                )

        app.extensions["ideaboard_backend"] = _BackendState(client_factory, reaction_query_enabled)
        logging.getLogger(__name__).info("ApiBackend initialized (base_url=%s)", base_url)

    @property
    def _state(self) -> _BackendState:
        state = current_app.extensions.get("ideaboard_backend")
        if state is None:
            raise RuntimeError("ApiBackend is not initialized; call init_app first.")
        return state

    @property
    def reaction_query_enabled(self) -> bool:
        return self._state.reaction_query_enabled

    def open_client(self, token: Optional[str]):
        return self._state.client_factory(token)


api_backend = ApiBackend()
