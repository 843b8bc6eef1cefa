'''
Configuration management for apop.

Settings are organized into dataclass sections and resolved in layers:

1. Defaults built into the package
2. An optional user configuration file (JSON)
3. Environment variables named ``APOP_<SECTION>_<OPTION>``
4. Runtime modifications through :func:`set_config`

The MLE driver reads its default tolerance, iteration cap, step size and
method names from the ``numerical`` section, so a whole session can be tuned
without touching call sites.
'''

import os
import json
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .exceptions import ConfigurationError
from .types import LogLevel, OptimizationAlgorithm

logger = logging.getLogger("apop.core.config")

CONFIG_ENV_PREFIX = "APOP_"
DEFAULT_CONFIG_FILENAME = "apop_config.json"
USER_CONFIG_DIR_ENV = "APOP_CONFIG_DIR"


class ConfigSection(Enum):
    """Enumeration of configuration sections."""
    NUMERICAL = "numerical"
    LOGGING = "logging"


@dataclass
class NumericalConfig:
    """
    Numerical settings used by the estimation routines.

    Attributes:
        optimization_method: Method used when the model supplies a gradient
        derivative_free_method: Method used when it does not
        tolerance: Relative change in the objective treated as no change
        max_iterations: Iteration cap handed to the optimizer
        step_size: Scale of the optimizer's first trial step
        convergence_streak: Consecutive small changes required to stop
        finite_difference_step: Step for numerical derivatives
    """
    optimization_method: str = "bfgs"
    derivative_free_method: str = "nelder-mead"
    tolerance: float = 1e-8
    max_iterations: int = 5000
    step_size: float = 0.05
    convergence_streak: int = 3
    finite_difference_step: float = 1e-5


@dataclass
class LoggingConfig:
    """
    Logging configuration settings.

    Attributes:
        log_level: Level of the package logger
        log_format: Format string for log messages
        log_date_format: Format string for log message timestamps
        console_logging: Whether to log to the console
    """
    log_level: LogLevel = "WARNING"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"
    console_logging: bool = True


@dataclass
class ApopConfig:
    """Complete configuration, one attribute per section."""
    numerical: NumericalConfig = field(default_factory=NumericalConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _coerce(current_value: Any, value: Any) -> Any:
    value_type = type(current_value)
    if value_type is bool:
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in ('true', 'yes', '1', 'y', 'on'):
                return True
            if lowered in ('false', 'no', '0', 'n', 'off'):
                return False
            raise ValueError(f"cannot interpret {value!r} as a boolean")
        return bool(value)
    if value_type is int:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"{value!r} is not an integer")
        return int(value)
    if value_type is float:
        return float(value)
    return value_type(value)


class ConfigManager:
    """
    Configuration manager for apop.

    Holds the current :class:`ApopConfig`, applies the file and environment
    layers on :meth:`initialize`, and provides get/set/reset access that
    raises :class:`ConfigurationError` for unknown sections or options.

    Attributes:
        _config: The current configuration object
        _initialized: Whether the configuration manager has been initialized
        _config_file: Path to the user configuration file
    """

    def __init__(self):
        self._config = ApopConfig()
        self._initialized = False
        self._config_file = None
        self._modified_keys = set()

    def initialize(self) -> None:
        """
        Initialize the configuration manager.

        Loads the user configuration file if one exists, applies environment
        overrides, validates the result and configures logging.
        """
        if self._initialized:
            return

        self._config_file = self._locate_config_file()
        self._load_user_config()
        self._apply_env_overrides()
        self._validate_config()
        self._setup_logging()

        self._initialized = True
        logger.debug("Configuration manager initialized")

    def _locate_config_file(self) -> Path:
        env_config_dir = os.environ.get(USER_CONFIG_DIR_ENV)
        if env_config_dir:
            return Path(env_config_dir) / DEFAULT_CONFIG_FILENAME
        return Path.home() / ".apop" / DEFAULT_CONFIG_FILENAME

    def _load_user_config(self) -> None:
        if not self._config_file or not self._config_file.exists():
            logger.debug("No user configuration file found")
            return

        try:
            with open(self._config_file, 'r') as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                "Failed to read user configuration file",
                config_file=self._config_file,
                issue=str(e)
            ) from e

        self._update_from_dict(user_config)
        logger.debug(f"Loaded user configuration from {self._config_file}")

    def _apply_env_overrides(self) -> None:
        """
        Apply ``APOP_<SECTION>_<OPTION>`` environment variables.

        Variables naming an unknown section or option are ignored; variables
        naming a known option with a value that cannot be converted raise.
        """
        for env_var, value in os.environ.items():
            if not env_var.startswith(CONFIG_ENV_PREFIX) or env_var == USER_CONFIG_DIR_ENV:
                continue

            key = env_var[len(CONFIG_ENV_PREFIX):]
            parts = key.lower().split('_', 1)
            if len(parts) != 2:
                continue

            section, option = parts
            try:
                ConfigSection(section)
            except ValueError:
                continue

            section_obj = getattr(self._config, section)
            if option not in _field_names(section_obj):
                continue

            try:
                typed_value = _coerce(getattr(section_obj, option), value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid environment override {env_var}",
                    setting=f"{section}.{option}",
                    value=value,
                    issue=str(e)
                ) from e

            setattr(section_obj, option, typed_value)
            logger.debug(f"Applied environment override: {env_var}={value}")

    def _setup_logging(self) -> None:
        """Configure the package logger from the logging section."""
        root_logger = logging.getLogger("apop")

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        root_logger.setLevel(getattr(logging, self._config.logging.log_level.upper()))

        if self._config.logging.console_logging:
            formatter = logging.Formatter(
                fmt=self._config.logging.log_format,
                datefmt=self._config.logging.log_date_format
            )
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            root_logger.addHandler(console_handler)

    def _validate_config(self) -> None:
        numerical = self._config.numerical
        checks = [
            ("tolerance", numerical.tolerance > 0, "must be positive"),
            ("max_iterations", numerical.max_iterations > 0, "must be positive"),
            ("step_size", numerical.step_size > 0, "must be positive"),
            ("convergence_streak", numerical.convergence_streak > 0, "must be positive"),
            ("finite_difference_step", numerical.finite_difference_step > 0, "must be positive"),
        ]
        for option, ok, issue in checks:
            if not ok:
                raise ConfigurationError(
                    f"Invalid value for numerical.{option}",
                    config_file=self._config_file,
                    setting=f"numerical.{option}",
                    value=getattr(numerical, option),
                    issue=issue
                )

        for option in ("optimization_method", "derivative_free_method"):
            name = getattr(numerical, option)
            try:
                OptimizationAlgorithm.from_name(name)
            except ValueError as e:
                raise ConfigurationError(
                    f"Invalid value for numerical.{option}",
                    setting=f"numerical.{option}",
                    value=name,
                    issue=str(e)
                ) from e

        level = self._config.logging.log_level
        if not isinstance(getattr(logging, str(level).upper(), None), int):
            raise ConfigurationError(
                "Invalid value for logging.log_level",
                setting="logging.log_level",
                value=level,
                issue="not a logging level name"
            )

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        for section_name, section_dict in config_dict.items():
            if not isinstance(section_dict, dict) or not self.has_section(section_name):
                logger.warning(f"Unknown configuration section: {section_name}")
                continue

            for option_name, option_value in section_dict.items():
                if not self.has_option(section_name, option_name):
                    logger.warning(f"Unknown configuration option: {section_name}.{option_name}")
                    continue
                self.set(section_name, option_name, option_value)

    def save_user_config(self) -> Path:
        """
        Write the current configuration to the user configuration file.

        Returns:
            The path that was written
        """
        if self._config_file is None:
            self._config_file = self._locate_config_file()

        self._config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_file, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

        logger.debug(f"Saved user configuration to {self._config_file}")
        return self._config_file

    def to_dict(self) -> Dict[str, Any]:
        return {
            section.value: {
                name: getattr(getattr(self._config, section.value), name)
                for name in _field_names(getattr(self._config, section.value))
            }
            for section in ConfigSection
        }

    def get(self, section: str, option: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            section: The configuration section
            option: The configuration option
            default: Default value if the option is not found

        Returns:
            The configuration value, or the default if not found
        """
        if not self.has_option(section, option):
            return default
        return getattr(getattr(self._config, section), option)

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Set a configuration value.

        Args:
            section: The configuration section
            option: The configuration option
            value: The value to set

        Raises:
            ConfigurationError: If the section or option is not found, or the
                value cannot be converted to the option's type
        """
        if not self.has_section(section):
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=f"{section}.{option}",
                value=value,
                issue="Section not found"
            )

        if not self.has_option(section, option):
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue="Option not found"
            )

        section_obj = getattr(self._config, section)
        previous = getattr(section_obj, option)
        try:
            typed_value = _coerce(previous, value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to set configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                value=value,
                issue=str(e)
            ) from e

        setattr(section_obj, option, typed_value)
        try:
            self._validate_config()
        except ConfigurationError:
            setattr(section_obj, option, previous)
            raise

        self._modified_keys.add(f"{section}.{option}")
        if section == ConfigSection.LOGGING.value and self._initialized:
            self._setup_logging()
        logger.debug(f"Set configuration option: {section}.{option}={value}")

    def reset(self, section: Optional[str] = None, option: Optional[str] = None) -> None:
        """
        Reset configuration to default values.

        Args:
            section: The configuration section to reset, or None to reset all
            option: The configuration option to reset, or None to reset the entire section

        Raises:
            ConfigurationError: If the section or option is not found
        """
        if section is None:
            self._config = ApopConfig()
            self._modified_keys.clear()
            logger.debug("Reset all configuration to defaults")
            return

        if not self.has_section(section):
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue="Section not found"
            )

        defaults = getattr(ApopConfig(), section)
        if option is None:
            setattr(self._config, section, defaults)
            self._modified_keys = {k for k in self._modified_keys if not k.startswith(f"{section}.")}
            logger.debug(f"Reset configuration section: {section}")
            return

        if not self.has_option(section, option):
            raise ConfigurationError(
                f"Unknown configuration option: {section}.{option}",
                setting=f"{section}.{option}",
                issue="Option not found"
            )

        setattr(getattr(self._config, section), option, getattr(defaults, option))
        self._modified_keys.discard(f"{section}.{option}")
        logger.debug(f"Reset configuration option: {section}.{option}")

    def get_modified_options(self) -> List[str]:
        return sorted(self._modified_keys)

    def has_section(self, section: str) -> bool:
        return section in {s.value for s in ConfigSection}

    def has_option(self, section: str, option: str) -> bool:
        return self.has_section(section) and option in _field_names(getattr(self._config, section))

    def get_section(self, section: str) -> Any:
        if not self.has_section(section):
            raise ConfigurationError(
                f"Unknown configuration section: {section}",
                setting=section,
                issue="Section not found"
            )
        return getattr(self._config, section)

    def get_config_file(self) -> Optional[Path]:
        return self._config_file


def _field_names(section_obj: Any) -> List[str]:
    return [f.name for f in fields(section_obj)]


_config_manager = ConfigManager()


def initialize_config() -> None:
    """Initialize the global configuration manager."""
    _config_manager.initialize()


def get_config(section: str, option: str, default: Any = None) -> Any:
    """
    Get a configuration value.

    Args:
        section: The configuration section
        option: The configuration option
        default: Default value if the option is not found

    Returns:
        The configuration value, or the default if not found
    """
    if not _config_manager._initialized:
        initialize_config()

    return _config_manager.get(section, option, default)


def set_config(section: str, option: str, value: Any) -> None:
    """
    Set a configuration value.

    Raises:
        ConfigurationError: If the section or option is not found
    """
    if not _config_manager._initialized:
        initialize_config()

    _config_manager.set(section, option, value)


def reset_config(section: Optional[str] = None, option: Optional[str] = None) -> None:
    """Reset configuration to default values."""
    if not _config_manager._initialized:
        initialize_config()

    _config_manager.reset(section, option)


def save_config() -> Path:
    """Save the current configuration to the user configuration file."""
    if not _config_manager._initialized:
        initialize_config()

    return _config_manager.save_user_config()


def get_config_manager() -> ConfigManager:
    """Return the global configuration manager, initializing it on first use."""
    if not _config_manager._initialized:
        initialize_config()

    return _config_manager


def get_numerical_config() -> NumericalConfig:
    """Return the numerical configuration section."""
    return get_config_manager().get_section("numerical")


def get_logging_config() -> LoggingConfig:
    """Return the logging configuration section."""
    return get_config_manager().get_section("logging")
