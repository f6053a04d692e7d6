"""
Configuration models and data structures.

The file format uses the camelCase keys of the `.sshforwardrc` file
(`sshServer`, `remoteTargetHost`, ...). from_dict also accepts the
snake_case attribute names so environment overrides and programmatic
callers can use either.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from ...core.interfaces.ssh import ForwardSpec, ServerEndpoint

SSH_SERVER_KEYS = {
    "host": "host",
    "port": "port",
    "username": "username",
    "password": "password",
    "knownHostsFile": "known_hosts_file",
    "clientKeys": "client_keys",
}

FORWARD_KEYS = {
    "name": "name",
    "remoteTargetHost": "remote_target_host",
    "remoteTargetPort": "remote_target_port",
    "localBindingPort": "local_binding_port",
    "localBindingHost": "local_binding_host",
}

SUPERVISOR_KEYS = {
    "connectTimeout": "connect_timeout",
    "reconnectInterval": "reconnect_interval",
    "probeInterval": "probe_interval",
    "probeCommand": "probe_command",
    "probeTimeout": "probe_timeout",
    "keepaliveInterval": "keepalive_interval",
}

LOGGING_KEYS = {
    "level": "level",
    "logDirectory": "log_directory",
    "consoleEnabled": "console_enabled",
    "fileEnabled": "file_enabled",
    "rotation": "rotation",
    "retention": "retention",
}


def _translate(data: Dict[str, Any], keys: Dict[str, str], section: str) -> Dict[str, Any]:
    """Map file keys to attribute names, rejecting unknown keys."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{section} entries must be mappings, got {type(data).__name__}: {data!r}")

    attributes = set(keys.values())
    result: Dict[str, Any] = {}
    for key, value in data.items():
        if key in keys:
            result[keys[key]] = value
        elif key in attributes:
            result[key] = value
        else:
            raise ValueError(f"Unknown key in {section}: {key}")
    return result


def _to_file_keys(data: Dict[str, Any], keys: Dict[str, str]) -> Dict[str, Any]:
    reverse = {attr: key for key, attr in keys.items()}
    return {reverse.get(attr, attr): value for attr, value in data.items()}


def _check_port(name: str, port: Any) -> None:
    if not isinstance(port, int) or isinstance(port, bool) or not (1 <= port <= 65535):
        raise ValueError(f"{name} must be between 1 and 65535, got {port!r}")


def _check_number(name: str, value: Any) -> None:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number, got {value!r}")


def _check_str(name: str, value: Any, optional: bool = False) -> None:
    if optional and value is None:
        return
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {value!r}")


def _check_bool(name: str, value: Any) -> None:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")


@dataclass
class SSHServerConfig:
    """SSH server connection settings."""
    host: str = ""
    port: int = 22
    username: str = ""
    password: Optional[str] = None
    known_hosts_file: Optional[str] = None
    client_keys: List[str] = field(default_factory=list)

    def validate(self) -> None:
        _check_str("sshServer.host", self.host)
        _check_str("sshServer.username", self.username)
        _check_str("sshServer.password", self.password, optional=True)
        _check_str("sshServer.knownHostsFile", self.known_hosts_file, optional=True)
        if not isinstance(self.client_keys, list) or not all(isinstance(k, str) for k in self.client_keys):
            raise ValueError(f"sshServer.clientKeys must be a list of paths, got {self.client_keys!r}")
        if not self.host:
            raise ValueError("sshServer.host is required")
        if not self.username:
            raise ValueError("sshServer.username is required")
        if not self.password and not self.client_keys:
            raise ValueError("sshServer needs a password or clientKeys")
        _check_port("sshServer.port", self.port)


@dataclass
class ForwardConfig:
    """One configured forward."""
    name: str = ""
    remote_target_host: str = "localhost"
    remote_target_port: int = 0
    local_binding_port: int = 0
    local_binding_host: str = ""

    def validate(self) -> None:
        _check_str("forward name", self.name)
        label = self.name or "forward"
        _check_str(f"{label}: remoteTargetHost", self.remote_target_host)
        _check_str(f"{label}: localBindingHost", self.local_binding_host)
        if not self.remote_target_host:
            raise ValueError(f"{label}: remoteTargetHost is required")
        _check_port(f"{label}: remoteTargetPort", self.remote_target_port)
        _check_port(f"{label}: localBindingPort", self.local_binding_port)

    def to_spec(self) -> ForwardSpec:
        return ForwardSpec(
            name=self.name or f"forward-{self.local_binding_port}",
            remote_host=self.remote_target_host,
            remote_port=self.remote_target_port,
            local_port=self.local_binding_port,
            bind_host=self.local_binding_host
        )


@dataclass
class SupervisorConfig:
    """Reconnect loop and health probe settings."""
    connect_timeout: float = 5.0
    reconnect_interval: float = 5.0
    probe_interval: float = 5.0
    probe_command: str = "echo"
    probe_timeout: Optional[float] = None
    keepalive_interval: float = 0.0

    def validate(self) -> None:
        timeouts = [
            ("connectTimeout", self.connect_timeout),
            ("reconnectInterval", self.reconnect_interval),
            ("probeInterval", self.probe_interval),
        ]
        if self.probe_timeout is not None:
            timeouts.append(("probeTimeout", self.probe_timeout))

        for name, value in timeouts:
            _check_number(name, value)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        _check_number("keepaliveInterval", self.keepalive_interval)
        if self.keepalive_interval < 0:
            raise ValueError(f"keepaliveInterval must not be negative, got {self.keepalive_interval}")

        _check_str("probeCommand", self.probe_command)
        if not self.probe_command:
            raise ValueError("probeCommand must not be empty")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    log_directory: str = "logs"
    console_enabled: bool = True
    file_enabled: bool = False
    rotation: str = "10 MB"
    retention: int = 5

    def validate(self) -> None:
        valid_levels = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")
        _check_str("logging.level", self.level)
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")
        _check_str("logging.logDirectory", self.log_directory)
        _check_bool("logging.consoleEnabled", self.console_enabled)
        _check_bool("logging.fileEnabled", self.file_enabled)


@dataclass
class ForwarderConfig:
    """Main application configuration."""

    ssh_server: SSHServerConfig = field(default_factory=SSHServerConfig)
    forwards: List[ForwardConfig] = field(default_factory=list)
    supervisor: SupervisorConfig = field(default_factory=SupervisorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    config_file_path: Optional[str] = None

    def validate(self) -> None:
        """Validate the whole configuration, raising ValueError on the first problem."""
        self.ssh_server.validate()
        self.supervisor.validate()
        self.logging.validate()

        if not self.forwards:
            raise ValueError("At least one forward must be configured")

        seen: Dict[Tuple[str, int], str] = {}
        for forward in self.forwards:
            forward.validate()
            key = (forward.local_binding_host, forward.local_binding_port)
            if key in seen:
                raise ValueError(
                    f"Forwards {seen[key]!r} and {forward.name!r} both bind local port {forward.local_binding_port}"
                )
            seen[key] = forward.name

    def to_endpoint(self) -> ServerEndpoint:
        server = self.ssh_server
        return ServerEndpoint(
            host=server.host,
            port=server.port,
            username=server.username,
            password=server.password,
            known_hosts=server.known_hosts_file,
            client_keys=tuple(server.client_keys)
        )

    def to_forward_specs(self) -> List[ForwardSpec]:
        return [forward.to_spec() for forward in self.forwards]

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to the camelCase file format."""
        return {
            "sshServer": _to_file_keys(asdict(self.ssh_server), SSH_SERVER_KEYS),
            "forwards": [_to_file_keys(asdict(f), FORWARD_KEYS) for f in self.forwards],
            "supervisor": _to_file_keys(asdict(self.supervisor), SUPERVISOR_KEYS),
            "logging": _to_file_keys(asdict(self.logging), LOGGING_KEYS),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ForwarderConfig':
        """Create configuration from dictionary. Does not validate."""
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a mapping")

        server_data = data.get("sshServer", data.get("ssh_server", {}))
        forwards_data = data.get("forwards") or []
        if not isinstance(forwards_data, list):
            raise ValueError("forwards must be a list")

        return cls(
            ssh_server=SSHServerConfig(**_translate(server_data, SSH_SERVER_KEYS, "sshServer")),
            forwards=[ForwardConfig(**_translate(f, FORWARD_KEYS, "forwards")) for f in forwards_data],
            supervisor=SupervisorConfig(**_translate(data.get("supervisor", {}), SUPERVISOR_KEYS, "supervisor")),
            logging=LoggingConfig(**_translate(data.get("logging", {}), LOGGING_KEYS, "logging")),
            config_file_path=data.get("config_file_path")
        )

    @classmethod
    def sample(cls) -> 'ForwarderConfig':
        """Configuration written by `init-config`."""
        return cls(
            ssh_server=SSHServerConfig(host="ssh.example.com", port=22, username="user", password="change-me"),
            forwards=[
                ForwardConfig(
                    name="web",
                    remote_target_host="127.0.0.1",
                    remote_target_port=80,
                    local_binding_port=8080
                )
            ]
        )
