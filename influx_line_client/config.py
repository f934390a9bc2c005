import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, PositiveInt, ValidationError, field_validator

from .client import ContentEncoding, HTTPConfig
from .point import PointConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/write_config.yaml"
DEFAULT_BATCH_SIZE = 5000
VALID_PRECISIONS = ("ns", "us", "ms", "s")

_ENV_PATTERN = re.compile(r"\$\{([^}^{]+)\}|\$([a-zA-Z_][a-zA-Z0-9_]*)")


class DestinationSection(BaseModel):
    """
    Sección 'destination' del archivo de configuración.

    pydantic convierte a su tipo los textos procedentes de variables de
    entorno ("false", "20"...).
    """

    url: str
    user: str = ""
    password: str = ""
    user_agent: str = "InfluxDBClient"
    timeout: Optional[float] = None
    verify_ssl: bool = True
    gzip: bool = False

    @field_validator("url")
    @classmethod
    def _url_required(cls, value):
        if not value:
            raise ValueError(
                "La URL del InfluxDB de destino ('destination.url') es requerida."
            )
        return value

    @field_validator("user", "password", "timeout", mode="before")
    @classmethod
    def _empty_as_default(cls, value, info):
        if value is None or value == "":
            return None if info.field_name == "timeout" else ""
        return value


class OptionsSection(BaseModel):
    """Sección 'options'. Las claves de logging se leen con Config.get()."""

    batch_size: PositiveInt = DEFAULT_BATCH_SIZE
    log_level: str = "INFO"


def replace_env_vars(value: str) -> str:
    """
    Sustituye ${VAR}, $VAR y ${VAR:-defecto} por el valor de la variable de entorno.
    """

    def replace_var(match):
        env_var = match.group(1) or match.group(2)
        if ":-" in env_var:
            env_var, default = env_var.split(":-", 1)
        else:
            default = ""
        return os.getenv(env_var, default)

    return _ENV_PATTERN.sub(replace_var, value)


def process_config(value: Any) -> Any:
    """Aplica replace_env_vars a todas las cadenas de la configuración."""
    if isinstance(value, dict):
        return {key: process_config(item) for key, item in value.items()}
    if isinstance(value, list):
        return [process_config(item) for item in value]
    if isinstance(value, str):
        return replace_env_vars(value)
    return value


class Config:
    """
    Carga y gestiona la configuración desde un archivo YAML.

    Las variables de entorno (y las de un archivo .env, si existe) pueden
    usarse dentro de cualquier valor de texto con la sintaxis ${VAR}.
    """

    def __init__(self, config_path=DEFAULT_CONFIG_PATH):
        self.config_path = Path(config_path)
        self.config = self._load_config()
        self._validate_config()

    def _load_config(self) -> Dict[str, Any]:
        """Carga el archivo de configuración YAML."""
        logger.info(f"Cargando configuración desde: {self.config_path}")
        if not self.config_path.is_file():
            logger.error(
                f"El archivo de configuración no se encuentra en: {self.config_path}"
            )
            raise FileNotFoundError(
                f"El archivo de configuración no se encuentra en: {self.config_path}"
            )

        load_dotenv()
        with open(self.config_path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.error(f"Error al parsear el archivo YAML: {e}")
                raise

        if not isinstance(raw, dict):
            raise ValueError(
                f"El archivo {self.config_path} debe contener un diccionario YAML."
            )
        return process_config(raw)

    def _validate_config(self):
        """Valida que la configuración contenga las claves esenciales."""
        for key in ("destination", "database"):
            if key not in self.config:
                raise ValueError(
                    f"Clave de configuración requerida '{key}' no encontrada."
                )

        if not self.get("database.name"):
            raise ValueError(
                "El nombre de la base de datos ('database.name') es requerido."
            )

        precision = self.get("database.precision", "ns")
        if precision not in VALID_PRECISIONS:
            raise ValueError(
                f"La precisión '{precision}' no es válida. Debe ser una de {VALID_PRECISIONS}."
            )

        # Los valores sustituidos desde variables de entorno llegan como texto
        try:
            self.destination = DestinationSection.model_validate(
                self.config["destination"]
            )
            self.options = OptionsSection.model_validate(
                self.config.get("options") or {}
            )
        except ValidationError as e:
            logger.error(f"Configuración no válida en {self.config_path}: {e}")
            raise ValueError(
                f"Configuración no válida en {self.config_path}: {e}"
            ) from e

        logger.info("Configuración cargada y validada correctamente.")

    def get(self, key_path, default=None):
        """
        Obtiene un valor de la configuración usando una ruta de claves anidadas.
        Ejemplo: get('destination.url')
        """
        value = self.config
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def http_config(self) -> HTTPConfig:
        """Construye la configuración del cliente HTTP a partir de 'destination'."""
        destination = self.destination
        return HTTPConfig(
            addr=destination.url,
            username=destination.user,
            password=destination.password,
            user_agent=destination.user_agent,
            timeout=destination.timeout,
            verify_ssl=destination.verify_ssl,
            write_encoding=(
                ContentEncoding.GZIP
                if destination.gzip
                else ContentEncoding.DEFAULT
            ),
        )

    def point_config(self) -> PointConfig:
        """Construye la configuración de los puntos a partir de 'database'."""
        return PointConfig(
            database=self.get("database.name"),
            retention_policy=self.get("database.retention_policy") or "",
            precision=self.get("database.precision", "ns"),
            write_consistency=self.get("database.write_consistency") or "",
        )
