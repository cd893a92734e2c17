"""Health subsystem — config models, probe engine, command runner, state machine."""

from .command import CommandError, CommandResult, run_command
from .engine import (
    BodyUnreadableError,
    InvalidHeaderError,
    InvalidMethodError,
    InvalidURLError,
    ProbeResult,
    RequestBuildError,
    build_request,
    create_client,
    probe,
)
from .models import Command, Config, ConfigError, Grace, Request, load_config
from .service import Service, State
