import gzip
import logging
import time
from enum import Enum
from typing import Dict, Optional, Tuple, Union

import requests
from pydantic import BaseModel, field_validator
from requests.auth import HTTPBasicAuth
from requests.exceptions import RequestException

from .batch import BatchPoint
from .exceptions import RemoteRejection, TransportFailure
from .point import Point, PointConfig

logger = logging.getLogger(__name__)

SUCCESS_STATUS = (200, 204)


class ContentEncoding(str, Enum):
    DEFAULT = ""
    GZIP = "gzip"


class HTTPConfig(BaseModel):
    """
    Parámetros de conexión con el servidor InfluxDB.

    :param addr: Dirección con la forma "http://host:puerto".
    :param username: Usuario, opcional. Si se indica se usa autenticación básica.
    :param password: Contraseña del usuario.
    :param user_agent: Cabecera User-Agent de las peticiones.
    :param timeout: Tiempo máximo de espera en segundos. None para no limitarlo.
    :param verify_ssl: Verificar el certificado del servidor en https.
    :param proxies: Proxies que se pasan tal cual a requests.
    :param write_encoding: Compresión del cuerpo de las escrituras.
    """

    addr: str
    username: str = ""
    password: str = ""
    user_agent: str = "InfluxDBClient"
    timeout: Optional[float] = None
    verify_ssl: bool = True
    proxies: Optional[Dict[str, str]] = None
    write_encoding: ContentEncoding = ContentEncoding.DEFAULT

    @field_validator("addr")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class InfluxClient:
    """
    Cliente HTTP de escritura para InfluxDB.

    Mantiene una sesión de requests y un buffer para el cuerpo de las
    peticiones que se reutiliza en cada escritura. No es seguro compartir una
    instancia entre hilos.
    """

    def __init__(self, config: HTTPConfig):
        self.config = config
        self.session = requests.Session()
        self.session.verify = config.verify_ssl
        if config.proxies:
            self.session.proxies.update(config.proxies)
        self._auth = (
            HTTPBasicAuth(config.username, config.password)
            if config.username
            else None
        )
        self._buf = bytearray()

    def write_url(self, point_config: PointConfig) -> str:
        return f"{self.config.addr}/write?{point_config.query_string()}"

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "",
            "User-Agent": self.config.user_agent,
        }
        if self.config.write_encoding != ContentEncoding.DEFAULT:
            headers["Content-Encoding"] = self.config.write_encoding.value
        return headers

    def _encode_body(self, point: Union[Point, BatchPoint]) -> bytes:
        if isinstance(point, BatchPoint):
            raw = point.payload()
        else:
            self._buf.clear()
            point.write_to(self._buf)
            raw = self._buf
        if self.config.write_encoding == ContentEncoding.GZIP:
            return gzip.compress(raw)
        return bytes(raw)

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        kwargs.setdefault("timeout", self.config.timeout)
        try:
            return self.session.request(method, url, auth=self._auth, **kwargs)
        except RequestException as e:
            logger.error(f"Error de conexión con {self.config.addr}: {e}")
            raise TransportFailure(
                f"No se pudo conectar con InfluxDB en {self.config.addr}: {e}"
            ) from e

    def _check_status(self, response: requests.Response) -> None:
        if response.status_code not in SUCCESS_STATUS:
            logger.error(
                f"InfluxDB rechazó la petición a {response.url} "
                f"({response.status_code}): {response.text}"
            )
            raise RemoteRejection(response.status_code, response.text)

    def write(self, point: Union[Point, BatchPoint]) -> None:
        """
        Escribe un punto o un lote de puntos.

        :param point: Punto o lote a escribir. La base de datos, la política
            de retención, la precisión y la consistencia se toman de su
            configuración.
        :raises TransportFailure: Si falla la conexión.
        :raises RemoteRejection: Si el servidor no responde 200 o 204.
        """
        if isinstance(point, BatchPoint) and len(point) == 0:
            logger.debug("Lote vacío, no se envía ninguna petición.")
            return

        url = self.write_url(point.config)
        body = self._encode_body(point)
        logger.debug(f"Escribiendo {len(body)} bytes en {url}")

        with self._send("POST", url, data=body, headers=self._headers()) as response:
            self._check_status(response)

    def ping(self, timeout: Optional[float] = None) -> Tuple[float, str]:
        """
        Comprueba que el servidor responde.

        Devuelve el tiempo de respuesta en segundos y la versión de InfluxDB
        indicada en la cabecera X-Influxdb-Version.
        """
        url = f"{self.config.addr}/ping"
        start = time.monotonic()
        kwargs = {"timeout": timeout} if timeout is not None else {}
        with self._send(
            "GET", url, headers={"User-Agent": self.config.user_agent}, **kwargs
        ) as response:
            self._check_status(response)
            version = response.headers.get("X-Influxdb-Version", "")
        elapsed = time.monotonic() - start
        logger.debug(f"Ping a {self.config.addr} en {elapsed:.3f}s, versión '{version}'")
        return elapsed, version

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
