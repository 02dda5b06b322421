"""Configuration management for the ReelPress uploader."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional


class Config:
    """Manages uploader configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "server_host": os.environ.get("REELPRESS_SERVER_HOST", "localhost"),
        "server_port": int(os.environ.get("REELPRESS_SERVER_PORT", "8000")),
        "timeout": 60,
        "max_retries": 0,
        "retry_backoff_multiplier": 2,
        "pending_upload": None,
    }

    def __init__(self, config_path: Path):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.reelpress/config.json)
        """
        self.config_path = config_path
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        A corrupt file is copied aside to config.json.bak and defaults are used.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.reelpress' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, IOError):
                backup_path = self.config_path.with_suffix('.json.bak')
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError:
                    pass
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except IOError:
                pass
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError:
            pass

    def get_base_url(self) -> str:
        """
        Get upload server base URL.

        Returns:
            Base URL string (e.g., "http://localhost:8000")
        """
        host = self.data.get('server_host', 'localhost')
        port = self.data.get('server_port', 8000)
        return f"http://{host}:{port}"

    def get_timeout(self) -> int:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', 60)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 0),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }

    def get_pending_upload(self) -> Optional[dict]:
        """
        Get the last started upload that has not been reassembled.

        Returns:
            Dictionary with 'path', 'file_name' and 'total_chunks', or None
        """
        return self.data.get('pending_upload')

    def set_pending_upload(self, path: str, file_name: str, total_chunks: int) -> None:
        """
        Remember an in-progress upload so 'resume' can pick it up.

        Args:
            path: Local path of the file being uploaded
            file_name: Upload name generated at split time
            total_chunks: Number of chunks in the upload
        """
        self.data['pending_upload'] = {
            'path': path,
            'file_name': file_name,
            'total_chunks': total_chunks,
        }
        self.save()

    def clear_pending_upload(self) -> None:
        """Forget the pending upload after a successful reassembly."""
        self.data['pending_upload'] = None
        self.save()
