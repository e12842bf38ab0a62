"""
Mojang skin resolution.

Two lookups composed in sequence:
    1. username -> profile id      (api.mojang.com)
    2. profile id -> properties    (sessionserver.mojang.com)
then the "textures" property is base64-decoded into JSON and the skin URL is
read from ``textures.SKIN.url``.

Each step returns a ``(value, error)`` tuple; exactly one side is None.
Nothing here raises for an expected failure.

Usage:
    resolver = SkinResolver()
    skin, error = resolver.resolve("Notch")
    if error:
        ...
"""

import base64
import binascii
import json
import logging
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from core.skins.models import ResolvedSkin
from core.utils.exceptions import (
    IdentityProviderError,
    NoSkinUrlError,
    NoTexturesError,
    ProfileNotFoundError,
    SkinLookupError,
)

logger = logging.getLogger(__name__)

PROFILE_URL = "https://api.mojang.com/users/profiles/minecraft"
SESSION_URL = "https://sessionserver.mojang.com/session/minecraft/profile"
DEFAULT_TIMEOUT = 10.0

# Status codes Mojang uses for "no such profile"
NOT_FOUND_STATUSES = (204, 404)


def _get_json(
    session: requests.Session, url: str, timeout: float
) -> Tuple[Optional[Dict], Optional[SkinLookupError]]:
    """GET a JSON document, mapping every failure onto a lookup error"""
    try:
        response = session.get(url, timeout=timeout)
    except requests.RequestException as e:
        logger.error(f"Identity provider request failed for {url}: {e}")
        return None, IdentityProviderError()

    if response.status_code in NOT_FOUND_STATUSES:
        return None, ProfileNotFoundError()

    if response.status_code != 200:
        logger.error(f"Identity provider returned HTTP {response.status_code} for {url}")
        return None, IdentityProviderError()

    try:
        payload = response.json()
    except ValueError:
        logger.error(f"Identity provider returned a non-JSON body for {url}")
        return None, IdentityProviderError()

    if not isinstance(payload, dict):
        logger.error(f"Identity provider returned unexpected JSON for {url}")
        return None, IdentityProviderError()

    return payload, None


def lookup_profile_id(
    session: requests.Session,
    username: str,
    profile_url: str = PROFILE_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> Tuple[Optional[str], Optional[SkinLookupError]]:
    """Resolve a display name to its profile id"""
    if not username or not username.strip():
        return None, ProfileNotFoundError()

    url = f"{profile_url.rstrip('/')}/{quote(username, safe='')}"
    payload, error = _get_json(session, url, timeout)
    if error:
        return None, error

    profile_id = payload.get("id")
    if not profile_id:
        return None, ProfileNotFoundError()

    return str(profile_id), None


def fetch_profile_properties(
    session: requests.Session,
    profile_id: str,
    session_url: str = SESSION_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> Tuple[Optional[List[Dict]], Optional[SkinLookupError]]:
    """Fetch the signed property list of a profile"""
    url = f"{session_url.rstrip('/')}/{quote(profile_id, safe='')}"
    payload, error = _get_json(session, url, timeout)
    if error:
        return None, error

    properties = payload.get("properties") or []
    if not isinstance(properties, list):
        return None, IdentityProviderError()

    return properties, None


def decode_textures(value: str) -> Tuple[Optional[Dict], Optional[SkinLookupError]]:
    """Decode a base64 "textures" property value into its JSON document"""
    try:
        decoded = json.loads(base64.b64decode(value).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as e:
        logger.error(f"Could not decode textures property: {e}")
        return None, IdentityProviderError()

    if not isinstance(decoded, dict):
        return None, IdentityProviderError()

    return decoded, None


def extract_skin_url(
    properties: List[Dict],
) -> Tuple[Optional[str], Optional[SkinLookupError]]:
    """Find the "textures" property and read the skin URL from it"""
    textures_prop = next(
        (p for p in properties if isinstance(p, dict) and p.get("name") == "textures"),
        None,
    )
    if textures_prop is None:
        return None, NoTexturesError()

    decoded, error = decode_textures(textures_prop.get("value", ""))
    if error:
        return None, error

    textures = decoded.get("textures")
    skin = textures.get("SKIN") if isinstance(textures, dict) else None
    skin_url = skin.get("url") if isinstance(skin, dict) else None
    if not skin_url or not isinstance(skin_url, str):
        return None, NoSkinUrlError()

    return skin_url, None


class SkinResolver:
    """
    Resolves usernames to skin texture URLs through the Mojang APIs.

    resolve() runs on threadpool workers. Without an injected session each call
    opens and closes its own requests.Session, since a Session is not
    documented as thread-safe. An injected session is shared by every calling
    thread, which suits mocks and single-threaded use.
    """

    def __init__(
        self,
        profile_url: str = PROFILE_URL,
        session_url: str = SESSION_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Params:
            profile_url: base URL of the name -> id endpoint
            session_url: base URL of the id -> profile endpoint
            timeout: per-request timeout in seconds
            session: optional requests.Session used for every call
        """
        self.profile_url = profile_url
        self.session_url = session_url
        self.timeout = timeout
        self.session = session

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> "SkinResolver":
        identity = settings.identity
        return cls(
            profile_url=identity.profile_url,
            session_url=identity.session_url,
            timeout=identity.timeout_seconds,
            session=session,
        )

    def resolve(self, username: str) -> Tuple[Optional[ResolvedSkin], Optional[SkinLookupError]]:
        """
        Resolve a username to its current skin.

        Returns:
            Tuple of (ResolvedSkin, error). If successful, error is None.
        """
        if self.session is not None:
            return self._resolve(self.session, username)

        with requests.Session() as session:
            return self._resolve(session, username)

    def _resolve(
        self, session: requests.Session, username: str
    ) -> Tuple[Optional[ResolvedSkin], Optional[SkinLookupError]]:
        profile_id, error = lookup_profile_id(
            session, username, self.profile_url, self.timeout
        )
        if error:
            logger.info(f"Profile lookup for {username!r} failed: {error.error_code}")
            return None, error

        properties, error = fetch_profile_properties(
            session, profile_id, self.session_url, self.timeout
        )
        if error:
            logger.info(f"Profile fetch for {profile_id} failed: {error.error_code}")
            return None, error

        skin_url, error = extract_skin_url(properties)
        if error:
            logger.info(f"No usable skin for {username!r}: {error.error_code}")
            return None, error

        logger.info(f"Resolved {username!r} -> {profile_id}")
        return ResolvedSkin(username=username, uuid=profile_id, skin_url=skin_url), None

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
