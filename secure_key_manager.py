"""
Secure Key Manager
Handles encrypted storage and retrieval of Canvas credentials
"""

import base64
import getpass
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)


class SecureKeyManager:
    """Manages encrypted storage of API tokens and sensitive configuration"""

    def __init__(self, config_dir: str):
        """
        Initialize the secure key manager

        Args:
            config_dir: Directory to store encrypted config files
        """
        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.config_file = self.config_dir / "secure_config.enc"
        self.salt_file = self.config_dir / "config.salt"

        # In-memory storage for current session
        self._decrypted_config = {}

    def _generate_key(self, password: str, salt: bytes) -> bytes:
        """Generate encryption key from password and salt"""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def _get_or_create_salt(self) -> bytes:
        """Get existing salt or create new one"""
        if self.salt_file.exists():
            return self.salt_file.read_bytes()
        salt = os.urandom(16)
        self.salt_file.write_bytes(salt)
        return salt

    def has_config(self) -> bool:
        """Check if encrypted configuration exists"""
        return self.config_file.exists() and self.salt_file.exists()

    def save_config(self, config_data: Dict[str, Any], password: str) -> None:
        """Encrypt and save configuration data"""
        if len(password) < 8:
            raise ValueError("Password must be at least 8 characters long")

        fernet = Fernet(self._generate_key(password, self._get_or_create_salt()))
        encrypted_data = fernet.encrypt(json.dumps(config_data, indent=2).encode())
        self.config_file.write_bytes(encrypted_data)

        self._decrypted_config = dict(config_data)
        logger.info(f"Encrypted configuration saved to {self.config_file}")

    def load_config(self, password: str) -> Dict[str, Any]:
        """
        Load and decrypt configuration data

        Args:
            password: Master password

        Returns:
            Decrypted configuration dictionary ({} when nothing is stored)
        """
        if self._decrypted_config:
            return dict(self._decrypted_config)
        if not self.has_config():
            return {}

        fernet = Fernet(self._generate_key(password, self._get_or_create_salt()))
        try:
            decrypted_data = fernet.decrypt(self.config_file.read_bytes())
        except InvalidToken as e:
            raise ValueError("Wrong master password or corrupted configuration") from e

        self._decrypted_config = json.loads(decrypted_data.decode())
        return dict(self._decrypted_config)


def prompt_password(action: str = "unlock") -> str:
    """Console password prompt used when no callback is supplied"""
    if action == "create":
        password = getpass.getpass("   Enter new master password: ")
        confirm = getpass.getpass("   Confirm master password: ")
        if password != confirm:
            raise ValueError("Passwords do not match")
        return password
    return getpass.getpass(f"   Enter master password to {action} Canvas credentials: ")


class CanvasCredentialStore:
    """Simplified interface for the Canvas URL and token"""

    def __init__(self, config_dir: str, password_callback: Callable[[str], str] = prompt_password):
        self.key_manager = SecureKeyManager(config_dir)
        self.password_callback = password_callback

    def has_credentials(self) -> bool:
        return self.key_manager.has_config()

    def save_canvas_credentials(self, canvas_url: str, api_token: str) -> None:
        """Save Canvas LMS credentials"""
        action = "update" if self.key_manager.has_config() else "create"
        password = self.password_callback(action)
        config = self.key_manager.load_config(password) if action == "update" else {}
        config['canvas_url'] = canvas_url
        config['canvas_api_token'] = api_token
        self.key_manager.save_config(config, password)

    def get_canvas_credentials(self) -> Dict[str, Optional[str]]:
        """Get saved Canvas credentials (prompts for the master password)"""
        if not self.key_manager.has_config():
            return {'canvas_url': None, 'canvas_api_token': None}
        config = self.key_manager.load_config(self.password_callback("unlock"))
        return {
            'canvas_url': config.get('canvas_url'),
            'canvas_api_token': config.get('canvas_api_token'),
        }
