"""
Episode persistence collaborators.

A save is only successful when the store confirms it and returns an
identifier; every other outcome is a PersistenceError.
"""
from typing import Dict, Optional, Protocol
import logging

import requests

from studycast.errors import PersistenceError
from studycast.models import Episode


class EpisodeStore(Protocol):
    """Protocol for classes that persist an assembled Episode."""
    def save(self, episode: Episode) -> str:
        """
        Persists the episode.

        Returns:
            str: The identifier assigned by the store.

        Raises:
            PersistenceError: If the store does not confirm the save.
        """
        ...


class HttpEpisodeStore(EpisodeStore):
    """Saves episodes through the application's podcast REST endpoint."""

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: int = 30):
        self.url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def save(self, episode: Episode) -> str:
        logging.info("Persisting episode %s to %s", episode.episode_id, self.url)
        try:
            r = requests.post(
                self.url, json=episode.to_payload(), headers=self._headers(), timeout=self.timeout
            )
            r.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logging.error("HTTP error occurred while persisting episode: %s", e)
            raise PersistenceError("Episode store rejected the episode", detail=str(e)) from e
        except requests.exceptions.Timeout as e:
            logging.error("Request timed out after %d seconds: %s", self.timeout, e)
            raise PersistenceError("Episode store timed out", detail=str(e)) from e
        except requests.exceptions.RequestException as e:
            logging.error("Could not reach the episode store: %s", e)
            raise PersistenceError("Episode store unreachable", detail=str(e)) from e

        try:
            body = r.json()
        except ValueError as e:
            logging.error("Episode store returned a non-JSON body: %s", e)
            raise PersistenceError("Episode store returned an invalid response", detail=str(e)) from e

        if not isinstance(body, dict) or not body.get("success") or body.get("id") is None:
            detail = body.get("error") if isinstance(body, dict) else None
            raise PersistenceError("Episode store did not confirm the save", detail=detail or str(body))

        persisted_id = str(body["id"])
        logging.info("Episode %s persisted with id %s.", episode.episode_id, persisted_id)
        return persisted_id


class InMemoryEpisodeStore(EpisodeStore):
    """Keeps episodes in a dict; used for dry runs and local generation."""

    def __init__(self):
        self.episodes: Dict[str, Episode] = {}

    def save(self, episode: Episode) -> str:
        persisted_id = str(len(self.episodes) + 1)
        self.episodes[persisted_id] = episode.with_persisted_id(persisted_id)
        return persisted_id
