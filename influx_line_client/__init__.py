"""
Cliente ligero de escritura para InfluxDB usando el protocolo de línea.
"""

from .batch import BatchPoint
from .client import ContentEncoding, HTTPConfig, InfluxClient
from .exceptions import InfluxClientError, RemoteRejection, TransportFailure
from .point import LineBuffers, Point, PointConfig
from .records import PointRecord

__version__ = "0.1.0"

__all__ = [
    "BatchPoint",
    "ContentEncoding",
    "HTTPConfig",
    "InfluxClient",
    "InfluxClientError",
    "LineBuffers",
    "Point",
    "PointConfig",
    "PointRecord",
    "RemoteRejection",
    "TransportFailure",
]
