"""Runtime settings and Temporal client setup."""
import os
import pathlib
import platform
from dataclasses import dataclass
from typing import Optional

from temporalio.client import Client
from temporalio.envconfig import ClientConfig

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off')


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw.strip().lower() in _TRUE:
        return True
    if raw.strip().lower() in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a {cast.__name__}, got {raw!r}") from None


@dataclass
class Settings:
    temporal_address: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_profile: Optional[str] = None
    task_queue: str = "minesweeper-task-queue"
    workflow_name: str = "MinesweeperWorkflow"
    poll_interval: float = 0.25
    danger_mode: bool = False
    port: int = 3000

    @classmethod
    def from_env(cls) -> 'Settings':
        poll_interval = _env_number("SWEEPER_POLL_INTERVAL", cls.poll_interval, float)
        if poll_interval <= 0:
            raise ValueError("SWEEPER_POLL_INTERVAL must be positive")
        return cls(
            temporal_address=os.getenv("TEMPORAL_ADDRESS", cls.temporal_address),
            temporal_namespace=os.getenv("TEMPORAL_NAMESPACE", cls.temporal_namespace),
            temporal_profile=os.getenv("TEMPORAL_PROFILE") or None,
            task_queue=os.getenv("SWEEPER_TASK_QUEUE", cls.task_queue),
            workflow_name=os.getenv("SWEEPER_WORKFLOW", cls.workflow_name),
            poll_interval=poll_interval,
            danger_mode=_env_bool("SWEEPER_DANGER_MODE", cls.danger_mode),
            port=_env_number("PORT", cls.port, int),
        )


# Uses the named profile from the Temporal config file when one is set and
# the file exists, otherwise the address and namespace from the settings.
async def get_temporal_client(settings: Settings) -> Client:
    config_file_path = get_config_file_path()
    if settings.temporal_profile and config_file_path.is_file():
        connect_config = ClientConfig.load_client_connect_config(
            profile=settings.temporal_profile,
            config_file=str(config_file_path),
        )
        return await Client.connect(**connect_config)
    return await Client.connect(
        settings.temporal_address,
        namespace=settings.temporal_namespace,
    )


# Default location of the Temporal config file for the current OS.
def get_config_file_path() -> pathlib.Path:
    home = pathlib.Path.home()
    system = platform.system()

    if system == "Darwin":
        return home / "Library/Application Support/temporalio/temporal.toml"
    if system == "Windows":
        app_data = os.getenv("AppData")
        if app_data is None:
            raise RuntimeError("AppData environment variable not set")
        return pathlib.Path(app_data) / "temporalio/temporal.toml"

    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        return pathlib.Path(xdg_config_home) / "temporalio/temporal.toml"
    return home / ".config/temporalio/temporal.toml"
