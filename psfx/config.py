"""
psfx Configuration
Single source of truth for all settings.
Load once at startup, pass to all components.
"""
import copy
import json
from pathlib import Path
from .utils.logger import logger


# Default config values
DEFAULTS = {
    "expansion": {
        "verify_source_hash": True,
        "verify_output_hash": True,
        "atomic_writes": True,
        "abort_on_first_error": False,
        "max_failures": None  # None = never abort
    },
    "batch": {
        "max_workers": 1  # 1 = sequential, None = auto detect
    },
    "container": {
        "package_pattern": r"Windows(\d+\.\d+)-(KB\d+)-(.*)\.cab",
        "manifest_name": "express.psf.cix.xml",
        "manifest_suffix": ".psf.cix.xml",
        "patch_blob_suffix": ".psf",
        "max_nesting_depth": 2,
        "extractor_timeout": 600  # seconds, system extractor for LZX cabinets
    }
}


class PsfxConfig:
    def __init__(self, config_path: str = None):
        self._config = copy.deepcopy(DEFAULTS)

        if config_path:
            self.config_path = Path(config_path)
        else:
            # Look for config in project root
            self.config_path = Path(__file__).parent.parent / 'psfx.config.json'

        if self.config_path.exists():
            self._load()
        else:
            logger.debug(f"No config file found at {self.config_path} — using defaults")

    def _load(self):
        """Load and merge config file over defaults"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)
            self._deep_merge(self._config, user_config)
            logger.info(f"Loaded config from {self.config_path}")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file: {e} — using defaults")
        except OSError as e:
            logger.error(f"Failed to load config: {e} — using defaults")

    def save(self, path: str = None):
        """Save current config to file"""
        out_path = Path(path) if path else self.config_path
        with open(out_path, 'w', encoding='utf-8') as f:
            json.dump(self._config, f, indent=2)
        logger.info(f"Config saved to {out_path}")

    def get(self, *keys, default=None):
        """
        Get a nested config value by key path.
        e.g. config.get('expansion', 'verify_output_hash')
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys_and_value):
        """
        Set a nested config value.
        e.g. config.set('batch', 'max_workers', 8)
        """
        *keys, value = keys_and_value
        target = self._config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    # ── Convenience properties ─────────────────────────────────────────────

    @property
    def verify_source_hash(self) -> bool:
        return self.get('expansion', 'verify_source_hash', default=True)

    @property
    def verify_output_hash(self) -> bool:
        return self.get('expansion', 'verify_output_hash', default=True)

    @property
    def atomic_writes(self) -> bool:
        return self.get('expansion', 'atomic_writes', default=True)

    @property
    def max_failures(self):
        """Failure count that aborts a run, or None"""
        if self.get('expansion', 'abort_on_first_error', default=False):
            return 1
        return self.get('expansion', 'max_failures', default=None)

    @property
    def max_workers(self):
        return self.get('batch', 'max_workers', default=1)

    @property
    def package_pattern(self) -> str:
        return self.get('container', 'package_pattern', default=DEFAULTS['container']['package_pattern'])

    @property
    def manifest_name(self) -> str:
        return self.get('container', 'manifest_name', default='express.psf.cix.xml')

    @property
    def manifest_suffix(self) -> str:
        return self.get('container', 'manifest_suffix', default='.psf.cix.xml')

    @property
    def patch_blob_suffix(self) -> str:
        return self.get('container', 'patch_blob_suffix', default='.psf')

    @property
    def max_nesting_depth(self) -> int:
        return self.get('container', 'max_nesting_depth', default=2)

    # ── Helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _deep_merge(base: dict, override: dict):
        """Merge override into base recursively, in place"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                PsfxConfig._deep_merge(base[key], value)
            else:
                base[key] = value


# Singleton, import this everywhere
config = PsfxConfig()

__all__ = ["PsfxConfig", "DEFAULTS", "config"]
