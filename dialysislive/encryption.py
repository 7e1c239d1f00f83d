"""
This module handles encrypted local storage for the DialysisLive client.

It uses the `cryptography` library (Fernet symmetric encryption) so that anything the
client keeps on disk, most importantly the API tokens when token persistence is
enabled, is unreadable without the key. The module is responsible for:
- Generating a secret key if one does not already exist.
- Storing and loading the secret key from a key file (`secret.key` by default).
- `SecureStorage`, an encrypted JSON key/value file.
- `TokenStore`, which holds the access and refresh tokens in memory and can mirror
  them into a `SecureStorage`.

Security Note: The key file must be kept secure and should not be committed to
version control.
"""
# dialysislive/encryption.py

import hashlib
import json
import logging
import os

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "auth_token"
REFRESH_TOKEN_KEY = "refresh_token"


def write_key(path="secret.key") -> bytes:
    """Generates a new Fernet key and saves it to `path`.

    Returns:
        bytes: The generated key.
    """
    key = Fernet.generate_key()
    with open(path, "wb") as key_file:
        key_file.write(key)
    return key


def load_key(path="secret.key") -> bytes:
    """Loads the Fernet key from `path`.

    Returns:
        bytes: The encryption key.
    """
    with open(path, "rb") as key_file:
        return key_file.read()


def load_or_create_key(path="secret.key") -> bytes:
    """Loads the key at `path`, generating it first if it does not exist."""
    try:
        return load_key(path)
    except FileNotFoundError:
        logger.info("Encryption key not found at %s. Generating a new one.", path)
        return write_key(path)


class SecureStorage:
    """An encrypted JSON key/value file.

    The whole mapping is encrypted as one Fernet token and rewritten on every
    change. A missing, empty or undecryptable file is treated as empty.
    """

    def __init__(self, path, key: bytes):
        self.path = path
        self._fernet = Fernet(key)
        self._data = self._load()

    def _load(self) -> dict:
        try:
            with open(self.path, "r") as f:
                encrypted = f.read()
            if not encrypted:
                return {}
            data = json.loads(self._fernet.decrypt(encrypted.encode()).decode())
            return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            return {}
        except (InvalidToken, json.JSONDecodeError) as e:
            logger.warning("Could not read secure storage at %s (%s). Starting fresh.", self.path, type(e).__name__)
            return {}

    def _save(self):
        encrypted = self._fernet.encrypt(json.dumps(self._data).encode())
        with open(self.path, "w") as f:
            f.write(encrypted.decode())

    def get_item(self, key, default=None):
        return self._data.get(key, default)

    def set_item(self, key, value):
        self._data[key] = value
        self._save()

    def remove_item(self, key):
        if key in self._data:
            del self._data[key]
            self._save()

    def clear(self):
        """Removes every item and deletes the backing file."""
        self._data = {}
        if os.path.exists(self.path):
            os.remove(self.path)

    def keys(self):
        return list(self._data.keys())


class TokenStore:
    """Holds the API access and refresh tokens for one user session."""

    def __init__(self, storage: SecureStorage = None):
        self._storage = storage
        self._access_token = None
        self._refresh_token = None
        if storage is not None:
            self._access_token = storage.get_item(ACCESS_TOKEN_KEY)
            self._refresh_token = storage.get_item(REFRESH_TOKEN_KEY)

    @property
    def access_token(self):
        return self._access_token

    @property
    def refresh_token(self):
        return self._refresh_token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token)

    def set_tokens(self, access_token, refresh_token):
        self._access_token = access_token
        self._refresh_token = refresh_token
        if self._storage is not None:
            self._storage.set_item(ACCESS_TOKEN_KEY, access_token)
            self._storage.set_item(REFRESH_TOKEN_KEY, refresh_token)

    def clear(self):
        self._access_token = None
        self._refresh_token = None
        if self._storage is not None:
            self._storage.remove_item(ACCESS_TOKEN_KEY)
            self._storage.remove_item(REFRESH_TOKEN_KEY)


def token_storage_path(storage_file, session_id) -> str:
    """Returns the token file for one browser session.

    The session id is hashed into a file name beside `storage_file`, so two
    sessions never read or overwrite each other's tokens.
    """
    root, ext = os.path.splitext(storage_file)
    digest = hashlib.sha256(str(session_id).encode()).hexdigest()[:16]
    return f"{root}-{digest}{ext}"


def open_token_store(settings, session_id=None) -> TokenStore:
    """Creates the `TokenStore` for one browser session.

    Tokens stay in memory unless `settings.persist_tokens` is set, in which case
    they are mirrored into an encrypted file scoped to `session_id`. Without a
    session id there is no file to scope them to, so they stay in memory.
    """
    if not settings.persist_tokens:
        return TokenStore()
    if not session_id:
        logger.warning("Token persistence is enabled but no session id was given. Keeping tokens in memory.")
        return TokenStore()
    key = load_or_create_key(settings.key_file)
    return TokenStore(SecureStorage(token_storage_path(settings.storage_file, session_id), key))
