from __future__ import annotations
"""Saved bucket connections and their keychain-held secrets."""
from dataclasses import dataclass
import json
import logging
from pathlib import Path

import keyring
from keyring.errors import KeyringError

LOGGER = logging.getLogger(__name__)

SERVICE_NAME = "s3-index"


@dataclass
class ConnectionProfile:
    """Represents a saved S3 connection."""

    name: str
    endpoint_url: str
    access_key: str
    secret_key: str
    region: str = ""


class KeychainStore:
    """Encapsulates OS keychain access for secrets."""

    def __init__(self, service_name: str = SERVICE_NAME):
        self._service_name = service_name

    def get_secret(self, profile_name: str) -> str:
        if not profile_name:
            return ""
        try:
            return keyring.get_password(self._service_name, profile_name) or ""
        except KeyringError:
            LOGGER.warning("keychain lookup failed for profile '%s'", profile_name)
            return ""

    def set_secret(self, profile_name: str, secret_key: str) -> None:
        if not profile_name or not secret_key:
            return
        try:
            keyring.set_password(self._service_name, profile_name, secret_key)
        except KeyringError:
            LOGGER.warning("could not store secret for profile '%s'", profile_name)


class ProfileStorage:
    """Reads connection profiles from JSON; secrets stay in the keychain.

    A profile written with a plaintext ``secret_key`` has the secret moved into
    the keychain and the file rewritten without it on first load.
    """

    def __init__(self, storage_path: str | Path | None = None, keychain: KeychainStore | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_index_connections.json"
        self._path = Path(storage_path)
        self._keychain = keychain or KeychainStore()

    def get(self, name: str) -> ConnectionProfile:
        for profile in self.load():
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' does not exist")

    def load(self) -> list[ConnectionProfile]:
        if not self._path.exists():
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            LOGGER.warning("ignoring unreadable profile file %s", self._path)
            return []
        if not isinstance(data, list):
            LOGGER.warning("ignoring profile file %s: expected a list of profiles", self._path)
            return []

        profiles: list[ConnectionProfile] = []
        sanitized: list[dict[str, str]] = []
        saw_plaintext = False
        for entry in data:
            if not isinstance(entry, dict):
                LOGGER.warning("skipping malformed profile entry %r", entry)
                continue
            try:
                name = entry["name"]
                endpoint_url = entry["endpoint_url"]
                access_key = entry["access_key"]
            except KeyError:
                LOGGER.warning("skipping profile entry without name/endpoint_url/access_key")
                continue
            secret_key = entry.get("secret_key", "")
            if secret_key:
                saw_plaintext = True
                self._keychain.set_secret(name, secret_key)
            else:
                secret_key = self._keychain.get_secret(name)
            profile = ConnectionProfile(
                name=name,
                endpoint_url=endpoint_url,
                access_key=access_key,
                secret_key=secret_key,
                region=entry.get("region", ""),
            )
            profiles.append(profile)
            sanitized.append(self._public_fields(profile))
        if saw_plaintext:
            LOGGER.info("moved plaintext secrets from %s into the keychain", self._path)
            self._path.write_text(json.dumps(sanitized, indent=2), encoding="utf-8")
        return profiles

    @staticmethod
    def _public_fields(profile: ConnectionProfile) -> dict[str, str]:
        data = {
            "name": profile.name,
            "endpoint_url": profile.endpoint_url,
            "access_key": profile.access_key,
        }
        if profile.region:
            data["region"] = profile.region
        return data
