"""
Settings file loading for Fast Search.

Runtime settings (worker pool, shutdown timeouts, content decoding, logging) come
from an optional YAML file. This module locates that file, validates it into
SearchSettings, and also turns raw criteria values into a validated
SearchCriteria. Every invalid input surfaces as a ConfigurationError.
"""

import yaml
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
import logging
from dataclasses import dataclass, field
from pydantic import ValidationError

from ..models.config import SearchSettings, validate_settings_dict
from ..models.search_criteria import SearchCriteria


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SETTINGS_FILE_NAMES = (
    '.fastsearch.yaml',
    '.fastsearch.yml',
    'fastsearch.yaml',
    'fastsearch.yml',
)

SECTION_COMMENTS = {
    'pool': "Content search worker pool (worker_count: null sizes the pool from the CPU count)",
    'shutdown': "Shutdown timeouts in seconds (drain_timeout: null waits until the queue is empty)",
    'content': "How candidate files are decoded",
    'logging': "Log output",
}


class ConfigurationError(Exception):
    """Raised when search criteria or settings are missing or invalid."""
    pass


@dataclass
class ConfigParseResult:
    """
    Outcome of loading settings.

    Attributes:
        settings: Validated runtime settings
        source: Settings file that was read, None when defaults were used
        warnings: Suspicious but valid values found in the settings
    """
    settings: SearchSettings
    source: Optional[Path] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def is_default(self) -> bool:
        return self.source is None


class ConfigParser:
    """
    Reads and validates Fast Search settings files.

    An explicit path must exist. Without one, the first settings file found in
    the current directory, the home directory or ``~/.config/fast-search`` is
    used, falling back to built-in defaults.
    """

    def __init__(self, strict_mode: bool = False):
        """
        Args:
            strict_mode: Reject settings that only produce warnings
        """
        self.strict_mode = strict_mode
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @staticmethod
    def search_dirs() -> List[Path]:
        """Directories searched for a settings file, in priority order."""
        return [Path.cwd(), Path.home(), Path.home() / '.config' / 'fast-search']

    def load_config(self, config_path: Optional[PathLike] = None) -> ConfigParseResult:
        """
        Load settings from a file, a discovered file, or the defaults.

        Args:
            config_path: Explicit settings file; None enables discovery

        Returns:
            ConfigParseResult with the validated settings

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        try:
            if config_path is not None:
                source: Optional[Path] = self._require_file(Path(config_path))
                data = self._read_settings_file(source)
            else:
                source, data = self._discover()

            settings = self._build_settings(data)
            warnings = settings.validate_configuration() + self._consistency_warnings(settings)
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load settings: {e}") from e

        if warnings and self.strict_mode:
            raise ConfigurationError("Settings rejected in strict mode: " + "; ".join(warnings))

        for warning in warnings:
            self.logger.warning(warning)
        self.logger.info(f"Settings loaded from {source if source else 'built-in defaults'}")

        return ConfigParseResult(settings=settings, source=source, warnings=warnings)

    def _require_file(self, path: Path) -> Path:
        if not path.is_file():
            raise ConfigurationError(f"Settings file not found: {path}")
        return path

    def _candidate_files(self) -> Iterator[Path]:
        for directory in self.search_dirs():
            for name in SETTINGS_FILE_NAMES:
                candidate = directory / name
                if candidate.is_file():
                    yield candidate

    def _discover(self) -> Tuple[Optional[Path], Dict[str, Any]]:
        """
        Find the first readable settings file.

        Returns:
            (path, data) for the file found, or (None, {}) when none is usable
        """
        for candidate in self._candidate_files():
            try:
                data = self._read_settings_file(candidate)
            except ConfigurationError as e:
                self.logger.warning(f"Skipping settings file {candidate}: {e}")
                continue
            self.logger.debug(f"Using settings file {candidate}")
            return candidate, data

        self.logger.debug("No settings file found; using built-in defaults")
        return None, {}

    def _read_settings_file(self, path: Path) -> Dict[str, Any]:
        """
        Parse a YAML settings file into a mapping. An empty file is an empty mapping.

        Raises:
            ConfigurationError: If the file cannot be read, is not YAML, or is not a mapping
        """
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in settings file {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings file {path} must contain a mapping, not a {type(data).__name__}"
            )
        return data

    def _build_settings(self, data: Dict[str, Any]) -> SearchSettings:
        try:
            return SearchSettings.from_dict(validate_settings_dict(data))
        except ValueError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

    def _consistency_warnings(self, settings: SearchSettings) -> List[str]:
        """Warnings about combinations of values that are each valid on their own."""
        warnings = []
        pool = settings.pool

        if pool.worker_count is not None and pool.worker_count < pool.min_workers:
            warnings.append(
                f"worker_count ({pool.worker_count}) is below min_workers "
                f"({pool.min_workers}); worker_count wins"
            )

        if settings.shutdown.drain_timeout is not None:
            warnings.append("drain_timeout is set; queued files may be left unscanned on slow disks")

        return warnings

    def validate_config_file(self, config_path: PathLike) -> List[str]:
        """
        Check a settings file without loading it for use.

        Returns:
            Error messages; empty when the file is valid
        """
        try:
            path = self._require_file(Path(config_path))
            self._build_settings(self._read_settings_file(path))
        except ConfigurationError as e:
            return [str(e)]
        return []

    def get_config_template(self) -> str:
        """
        Render the default settings as commented YAML.

        Returns:
            Template text that loads back into the default settings
        """
        defaults = SearchSettings().to_dict()
        blocks = [
            "# Fast Search settings\n"
            "# Runtime options for the content search worker pool and its shutdown\n"
        ]

        for section, values in defaults.items():
            body = yaml.dump({section: values}, default_flow_style=False, sort_keys=False)
            blocks.append(f"# {SECTION_COMMENTS[section]}\n{body}")

        return "\n".join(blocks)


def load_config(config_path: Optional[PathLike] = None, strict_mode: bool = False) -> ConfigParseResult:
    """
    Load settings with a one-off parser.

    Raises:
        ConfigurationError: If the settings are invalid
    """
    return ConfigParser(strict_mode=strict_mode).load_config(config_path)


def validate_config_file(config_path: PathLike) -> List[str]:
    """Return the errors found in a settings file (empty when valid)."""
    return ConfigParser().validate_config_file(config_path)


def create_config_template(output_path: PathLike) -> Path:
    """
    Write the commented default settings to a file, creating parent directories.

    Returns:
        The path written

    Raises:
        ConfigurationError: If the file cannot be written
    """
    path = Path(output_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(ConfigParser().get_config_template(), encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"Cannot write settings template {path}: {e}") from e
    return path


def build_criteria(require_constraint: bool = True, **values: Any) -> SearchCriteria:
    """
    Build validated search criteria from raw values.

    Args:
        require_constraint: Reject criteria that configure no constraint group at all
        **values: SearchCriteria fields (roots, name_prefixes, size_range, ...)

    Returns:
        Immutable SearchCriteria

    Raises:
        ConfigurationError: If any value is invalid or no constraint is configured
    """
    try:
        criteria = SearchCriteria(**values)
    except ValidationError as e:
        messages = "; ".join(error['msg'] for error in e.errors())
        raise ConfigurationError(f"Invalid search criteria: {messages}") from e

    if require_constraint and not criteria.has_constraints():
        raise ConfigurationError("no search condition found!")

    return criteria
