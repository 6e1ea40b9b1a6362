"""Configuration model, YAML defaults loading and invariant checks"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from uxlaunch.common.errors import ConfigValidationError
from uxlaunch.common.settings import settings
from uxlaunch.common.types import DisplaySettings, FlipAxis, RotateAxis
from uxlaunch.common.validation import (
    boundedCount_parse,
    displayGeometry_parse,
    flip_parse,
    portGroup_parse,
    rotate_parse,
    selector_parse,
)

DYNAMIC_PORTS: tuple[int, int, int] = (0, 0, 0)


@dataclass(frozen=True)
class ServerConfig:
    """Validated launch configuration, immutable for the whole process run"""
    name: str = settings.DEFAULT_NAME
    display_width: int = 0
    display_height: int = 0
    refresh_rate: int = 0
    max_fps: int = 0
    overscanned: bool = False
    tcp_ports: tuple[int, int, int] = DYNAMIC_PORTS
    udp_ports: tuple[int, int, int] = DYNAMIC_PORTS
    flip: FlipAxis = FlipAxis.NONE
    rotate: RotateAxis = RotateAxis.NONE
    video_sink: str = settings.DEFAULT_VIDEO_SINK
    audio_sink: str = settings.DEFAULT_AUDIO_SINK
    debug_log: bool = False
    idle_timeout: int = 0  # Seconds without sessions before relaunch, 0 = never
    random_identifier: bool = False

    def __post_init__(self) -> None:
        """Enforce range and port-group invariants"""
        selector_parse(self.name, "-n")
        selector_parse(self.video_sink, "-vs")
        selector_parse(self.audio_sink, "-as")
        geometry_limit: int = 10 ** settings.MAX_GEOMETRY_DIGITS - 1
        rangeField_check("-s", "width", self.display_width, geometry_limit)
        rangeField_check("-s", "height", self.display_height, geometry_limit)
        rangeField_check("-s", "refresh", self.refresh_rate, settings.MAX_REFRESH_RATE)
        rangeField_check("-fps", "max fps", self.max_fps, settings.MAX_FPS)
        if self.idle_timeout < 0:
            raise ConfigValidationError("-t", self.idle_timeout, "must not be negative")
        portTriple_check("-p tcp", self.tcp_ports)
        portTriple_check("-p udp", self.udp_ports)

    @property
    def video_enabled(self) -> bool:
        return self.video_sink != settings.SINK_DISABLED

    @property
    def audio_enabled(self) -> bool:
        return self.audio_sink != settings.SINK_DISABLED

    @property
    def ports_configured(self) -> bool:
        return self.tcp_ports != DYNAMIC_PORTS or self.udp_ports != DYNAMIC_PORTS

    def displaySettings_get(self) -> DisplaySettings:
        """
        Display parameters to push into the engine

        The framerate drops to the minimum when video is disabled.
        """
        max_fps: int = self.max_fps if self.video_enabled else settings.DISABLED_VIDEO_FPS
        return DisplaySettings(
            width=self.display_width,
            height=self.display_height,
            refresh_rate=self.refresh_rate,
            max_fps=max_fps,
            overscanned=self.overscanned,
        )


def rangeField_check(flag: str, label: str, value: int, maximum: int) -> None:
    """Raise unless 0 <= value <= maximum (0 is the engine-default sentinel)"""
    if not 0 <= value <= maximum:
        raise ConfigValidationError(flag, value, f"{label} must be in range [1,{maximum}]")


def portTriple_check(flag: str, ports: tuple[int, ...]) -> None:
    """Raise unless ports are all dynamic or all set, distinct and in range"""
    if len(ports) != settings.PORT_GROUP_SIZE:
        raise ConfigValidationError(flag, ports, f"exactly {settings.PORT_GROUP_SIZE} ports required")
    if tuple(ports) == DYNAMIC_PORTS:
        return
    in_range: bool = all(
        settings.LOWEST_ALLOWED_PORT <= port <= settings.HIGHEST_PORT for port in ports
    )
    if not in_range or len(set(ports)) != len(ports):
        raise ConfigValidationError(
            flag,
            ",".join(str(port) for port in ports),
            f"ports must be distinct and in range "
            f"[{settings.LOWEST_ALLOWED_PORT},{settings.HIGHEST_PORT}]",
        )



def flag_parse(value: Any, flag: str) -> bool:
    """Accept only YAML booleans; quoted "false" and numbers are rejected"""
    if not isinstance(value, bool):
        raise ConfigValidationError(flag, value, "must be true or false")
    return value

@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    file: Optional[str] = None
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class CollaboratorPaths:
    """Import paths (`module:attribute`) of collaborator factories"""
    engine: Optional[str] = None
    video_renderer: Optional[str] = None
    audio_renderer: Optional[str] = None
    discovery: Optional[str] = "uxlaunch.discovery.zeroconf_registrar:registrar_create"


@dataclass
class Config:
    """Complete application configuration"""
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    collaborators: CollaboratorPaths = field(default_factory=CollaboratorPaths)


class ConfigLoader:
    """Loads optional YAML defaults that command-line options override"""

    DEFAULT_CONFIG_PATHS = [
        "uxlaunch.yml",
        "~/.config/uxlaunch/config.yml",
        "/etc/uxlaunch/config.yml",
    ]

    SERVER_KEYS = {
        "name",
        "display",
        "fps",
        "overscan",
        "flip",
        "rotate",
        "ports",
        "tcp_ports",
        "udp_ports",
        "video_sink",
        "audio_sink",
        "debug_log",
        "idle_timeout",
        "random_identifier",
    }

    @staticmethod
    def configFile_find() -> Optional[Path]:
        """
        Find configuration file via environment or standard locations

        Returns:
            Path to config file, or None if not found

        Raises:
            FileNotFoundError: If the environment names a missing file
        """
        env_path: Optional[str] = os.environ.get(settings.CONFIG_ENV_VAR)
        if env_path:
            path = Path(env_path).expanduser()
            if not path.is_file():
                raise FileNotFoundError(f"{settings.CONFIG_ENV_VAR} points to missing file {path}")
            return path.resolve()

        for config_path in ConfigLoader.DEFAULT_CONFIG_PATHS:
            path = Path(config_path).expanduser().resolve()
            if path.exists() and path.is_file():
                return path
        return None

    @staticmethod
    def yaml_load(file_path: Path) -> Dict[str, Any]:
        """
        Load YAML configuration file

        Args:
            file_path: Path to YAML file

        Returns:
            Parsed configuration dictionary (empty for an empty file)

        Raises:
            FileNotFoundError: If file does not exist
            yaml.YAMLError: If file is not valid YAML
            ValueError: If the document is not a mapping
        """
        with open(file_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {file_path} must contain a YAML dictionary")

        return data

    @staticmethod
    def serverSection_parse(data: Dict[str, Any]) -> ServerConfig:
        """
        Parse the `server` section into a ServerConfig

        Values use the same textual forms as the command line and run
        through the same validators.

        Raises:
            ConfigValidationError: If a value is invalid
            ValueError: If the section contains unknown keys
        """
        unknown = set(data) - ConfigLoader.SERVER_KEYS
        if unknown:
            raise ValueError(f"Unknown server config keys: {sorted(unknown)}")

        fields: Dict[str, Any] = {}
        if "name" in data:
            fields["name"] = selector_parse(str(data["name"]), "server.name")
        if "display" in data:
            width, height, refresh = displayGeometry_parse(str(data["display"]), flag="server.display")
            fields.update(display_width=width, display_height=height, refresh_rate=refresh)
        if "fps" in data:
            fields["max_fps"] = boundedCount_parse(str(data["fps"]), settings.MAX_FPS, "server.fps")
        if "overscan" in data:
            fields["overscanned"] = flag_parse(data["overscan"], "server.overscan")
        if "flip" in data:
            fields["flip"] = flip_parse(str(data["flip"]), "server.flip")
        if "rotate" in data:
            fields["rotate"] = rotate_parse(str(data["rotate"]), "server.rotate")
        if "ports" in data:
            ports = portGroup_parse(str(data["ports"]), flag="server.ports")
            fields.update(tcp_ports=ports, udp_ports=ports)
        if "tcp_ports" in data:
            fields["tcp_ports"] = portGroup_parse(str(data["tcp_ports"]), flag="server.tcp_ports")
        if "udp_ports" in data:
            fields["udp_ports"] = portGroup_parse(str(data["udp_ports"]), flag="server.udp_ports")
        if "video_sink" in data:
            fields["video_sink"] = selector_parse(str(data["video_sink"]), "server.video_sink")
        if "audio_sink" in data:
            fields["audio_sink"] = selector_parse(str(data["audio_sink"]), "server.audio_sink")
        if "debug_log" in data:
            fields["debug_log"] = flag_parse(data["debug_log"], "server.debug_log")
        if "idle_timeout" in data:
            idle_text = str(data["idle_timeout"])
            # 0 keeps idle relaunch disabled
            fields["idle_timeout"] = (
                0 if idle_text == "0" else boundedCount_parse(idle_text, 0, "server.idle_timeout")
            )
        if "random_identifier" in data:
            fields["random_identifier"] = flag_parse(
                data["random_identifier"], "server.random_identifier"
            )

        return ServerConfig(**fields)

    @staticmethod
    def config_parse(data: Dict[str, Any]) -> Config:
        """
        Parse configuration dictionary into Config object

        Every section is optional; omitted values keep built-in defaults.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object
        """
        server = ConfigLoader.serverSection_parse(data.get("server") or {})

        logging_data = data.get("logging") or {}
        logging_defaults = LoggingConfig()
        logging = LoggingConfig(
            level=logging_data.get("level", logging_defaults.level),
            file=logging_data.get("file"),
            format=logging_data.get("format", logging_defaults.format),
        )

        collaborator_data = data.get("collaborators") or {}
        collaborator_defaults = CollaboratorPaths()
        collaborators = CollaboratorPaths(
            engine=collaborator_data.get("engine"),
            video_renderer=collaborator_data.get("video_renderer"),
            audio_renderer=collaborator_data.get("audio_renderer"),
            discovery=collaborator_data.get("discovery", collaborator_defaults.discovery),
        )

        return Config(server=server, logging=logging, collaborators=collaborators)

    @staticmethod
    def config_load(file_path: Optional[Path] = None) -> Config:
        """
        Load configuration from file, or built-in defaults when none exists

        Args:
            file_path: Optional path to config file. If None, searches standard locations.

        Returns:
            Parsed Config object

        Raises:
            FileNotFoundError: If an explicit config file is missing
            ValueError: If config file is invalid
        """
        if file_path is None:
            file_path = ConfigLoader.configFile_find()
            if file_path is None:
                return Config()

        data = ConfigLoader.yaml_load(file_path)
        return ConfigLoader.config_parse(data)
