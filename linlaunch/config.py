"""Global configuration — loaded from environment variables."""

from pydantic_settings import BaseSettings


class LauncherSettings(BaseSettings):
    log_level: str = "INFO"

    # Exit status of a child whose execve failed
    exec_failure_exit_code: int = 127
    default_signal: int = 15  # SIGTERM

    # Reject wait/signal on PIDs this launcher did not spawn
    enforce_ownership: bool = True

    # Foreign root defaults
    default_path: str = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
    default_working_dir: str = "/home"

    model_config = {"env_prefix": "LINLAUNCH_"}


settings = LauncherSettings()
