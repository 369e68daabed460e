"""Contains exceptions raised when reconciling application configuration."""


class ConfigError(Exception):
    """Raised when the configuration is missing, unreadable, or unusable. Aborts before any discovery."""

    pass


class ConfigurationFileError(ConfigError):
    """Raised when the JSON configuration file cannot be read or validated."""

    def __init__(self, path: str, reason: str) -> None:
        """Initializes the exception with the offending path and the reason."""
        super().__init__(f"Invalid configuration file {path}: {reason}")
        self.path = path
        self.reason = reason


class RequiredConfigurationElementError(ConfigError):
    """Raised when a required configuration element is missing."""

    def __init__(self, name: str, cli_name: str, env_name: str) -> None:
        """Initializes the exception with the name of the missing element."""
        super().__init__(f"Missing required configuration element: {name} (command line option {cli_name}, environment variable {env_name})")
        self.name = name
        self.cli_name = cli_name
        self.env_name = env_name


class MissingDependencyError(ConfigError):
    """Raised when an executable the sync relies on is not installed."""

    def __init__(self, executable: str) -> None:
        """Initializes the exception with the missing executable."""
        super().__init__(f"Required executable not found on PATH: {executable}")
        self.executable = executable
