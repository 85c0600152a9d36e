"""Loading and validating the memory module's configuration file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Mapping, Tuple, Union

TRACE = 5

REQUIRED_PROPERTIES = (
    "PUERTO_ESCUCHA",
    "IP_FILESYSTEM",
    "PUERTO_FILESYSTEM",
    "TAM_MEMORIA",
    "PATH_INSTRUCCIONES",
    "RETARDO_RESPUESTA",
    "ESQUEMA",
    "ALGORITMO_BUSQUEDA",
    "PARTICIONES",
    "LOG_LEVEL",
)

LOG_LEVELS = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class ConfigError(ValueError):
    """The configuration file is missing, incomplete or invalid."""


class Scheme(str, Enum):
    """How user memory is partitioned."""

    FIXED = "FIJAS"
    DYNAMIC = "DINAMICAS"


class FitAlgorithm(str, Enum):
    """How a free partition is chosen for a new process."""

    FIRST = "FIRST"
    BEST = "BEST"
    WORST = "WORST"


def parse_properties(text: str) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` lines; blank lines and ``#`` comments are ignored."""
    properties: Dict[str, str] = {}
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise ConfigError(f"line {number} has no '=': {raw!r}")
        properties[key.strip()] = value.strip()
    return properties


def has_all_properties(properties: Mapping[str, str], keys: Iterable[str]) -> bool:
    """Tell whether every key in ``keys`` is present in ``properties``."""
    return all(key in properties for key in keys)


def _parse_int(key: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from exc
    if number < 0:
        raise ConfigError(f"{key} must not be negative, got {number}")
    return number


def _parse_array(key: str, value: str) -> Tuple[str, ...]:
    text = value.strip()
    if not (text.startswith("[") and text.endswith("]")):
        raise ConfigError(f"{key} must be a list like [a,b], got {value!r}")
    inner = text[1:-1].strip()
    if not inner:
        return ()
    return tuple(item.strip() for item in inner.split(","))


@dataclass(frozen=True)
class MemoryConfig:
    """Settings of the memory module."""

    listen_port: str
    filesystem_ip: str
    filesystem_port: str
    memory_size: int
    instructions_path: str
    response_delay: int
    scheme: Scheme
    algorithm: FitAlgorithm
    partitions: Tuple[int, ...]
    log_level: str

    @property
    def response_delay_seconds(self) -> float:
        """The response delay, which the file gives in milliseconds."""
        return self.response_delay / 1000

    @property
    def logging_level(self) -> int:
        """The ``logging`` level that matches ``log_level``."""
        return LOG_LEVELS[self.log_level]

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "MemoryConfig":
        """Build a configuration from parsed properties."""
        missing = [key for key in REQUIRED_PROPERTIES if key not in properties]
        if missing:
            raise ConfigError(f"missing properties: {', '.join(missing)}")

        try:
            scheme = Scheme(properties["ESQUEMA"])
        except ValueError as exc:
            raise ConfigError(f"unknown ESQUEMA {properties['ESQUEMA']!r}") from exc
        try:
            algorithm = FitAlgorithm(properties["ALGORITMO_BUSQUEDA"])
        except ValueError as exc:
            raise ConfigError(
                f"unknown ALGORITMO_BUSQUEDA {properties['ALGORITMO_BUSQUEDA']!r}"
            ) from exc

        log_level = properties["LOG_LEVEL"].upper()
        if log_level not in LOG_LEVELS:
            raise ConfigError(f"unknown LOG_LEVEL {properties['LOG_LEVEL']!r}")

        partitions = tuple(
            _parse_int("PARTICIONES", item)
            for item in _parse_array("PARTICIONES", properties["PARTICIONES"])
        )

        return cls(
            listen_port=properties["PUERTO_ESCUCHA"],
            filesystem_ip=properties["IP_FILESYSTEM"],
            filesystem_port=properties["PUERTO_FILESYSTEM"],
            memory_size=_parse_int("TAM_MEMORIA", properties["TAM_MEMORIA"]),
            instructions_path=properties["PATH_INSTRUCCIONES"],
            response_delay=_parse_int("RETARDO_RESPUESTA", properties["RETARDO_RESPUESTA"]),
            scheme=scheme,
            algorithm=algorithm,
            partitions=partitions,
            log_level=log_level,
        )

    @classmethod
    def from_file(cls, path: Union[str, os.PathLike]) -> "MemoryConfig":
        """Read and validate a configuration file."""
        try:
            with open(path, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc
        return cls.from_properties(parse_properties(text))


def load_config(path: Union[str, os.PathLike]) -> MemoryConfig:
    """Read and validate the configuration file at ``path``."""
    return MemoryConfig.from_file(path)