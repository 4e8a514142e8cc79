import os
import json
import logging
import tempfile
from datetime import datetime
from typing import Any, Optional, Dict
import hashlib

logger = logging.getLogger(__name__)

class CacheHelper:
    DEFAULT_CACHE_DIR = ".cache"

    def __init__(self, cache_dir: Optional[str] = None, component_name: str = ""):
        """Initialize cache helper with specific cache directory
        Args:
            cache_dir: Base cache directory from config, if None uses DEFAULT_CACHE_DIR
            component_name: Component specific subdirectory
        """
        base_dir = os.path.expanduser(cache_dir or self.DEFAULT_CACHE_DIR)
        self.cache_dir = os.path.join(base_dir, component_name) if component_name else base_dir
        os.makedirs(self.cache_dir, exist_ok=True)

    def _get_cache_file(self, key: str) -> str:
        """Generate cache filename from key"""
        key_hash = hashlib.md5(key.encode()).hexdigest()
        return os.path.join(self.cache_dir, f"{key_hash}.json")

    def get_cached_content(self, key: str) -> Optional[Dict[str, Any]]:
        """Get cached content for key, None if missing or unreadable"""
        try:
            cache_file = self._get_cache_file(key)
            if not os.path.exists(cache_file):
                return None

            with open(cache_file, 'r', encoding='utf-8') as f:
                cached = json.load(f)
            return cached['content']

        except Exception as e:
            logger.error(f"Error reading cache: {e}")
            return None

    def save_to_cache(self, key: str, content: Dict[str, Any]) -> None:
        """Replace the cached content for key"""
        cache_file = self._get_cache_file(key)
        cache_data = {
            'saved_at': datetime.now().isoformat(),
            'content': content
        }
        # Readers only ever see a complete file
        fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(cache_data, f)
            os.replace(tmp_path, cache_file)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
