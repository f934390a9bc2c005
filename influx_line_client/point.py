"""
Codificación de puntos en el protocolo de línea de InfluxDB.

    weather,location=us-midwest temperature=82 1465839830100400200
    +-----------+--------+-+---------+-+---------+
    |measurement|,tag_set| |field_set| |timestamp|
    +-----------+--------+-+---------+-+---------+

No se realiza ningún escapado ni validación: las claves y valores se escriben
tal cual. Es responsabilidad del llamador no pasar comas, espacios o signos
igual sin escapar.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict

BytesLike = Union[str, bytes, bytearray, memoryview]

Precision = Literal["", "ns", "us", "ms", "s"]

DEFAULT_PRECISION = "ns"


class PointConfig(BaseModel):
    """
    Destino de escritura de un punto o lote de puntos.

    :param database: Base de datos de destino.
    :param retention_policy: Política de retención.
    :param precision: Unidad del timestamp ("ns", "us", "ms" o "s").
    :param write_consistency: Número de réplicas que deben confirmar la escritura.
    """

    model_config = ConfigDict(validate_assignment=True)

    database: str = ""
    retention_policy: str = ""
    precision: Precision = DEFAULT_PRECISION
    write_consistency: str = ""

    def query_string(self) -> str:
        """Parámetros del endpoint /write. Los valores no se codifican para URL."""
        return (
            f"db={self.database}"
            f"&rp={self.retention_policy}"
            f"&precision={self.precision}"
            f"&consistency={self.write_consistency}"
        )


def _bind_config(config: Optional[PointConfig]) -> PointConfig:
    # Cada punto trabaja sobre su propia copia de la configuración
    bound = config.model_copy() if config is not None else PointConfig()
    if not bound.precision:
        bound.precision = DEFAULT_PRECISION
    return bound


def _to_bytes(value: BytesLike) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    # Copia: un bytearray del llamador puede cambiar después
    return bytes(value)


class LineBuffers:
    """
    Buffers de etiquetas y campos de un único punto.

    Es el componente compartido por Point y BatchPoint. reset() vacía los
    mismos objetos bytearray en lugar de crear otros nuevos, pero CPython
    libera su memoria al vaciarlos: la capacidad reservada no se conserva.
    """

    __slots__ = ("tags", "fields", "measurement", "timestamp")

    def __init__(self):
        self.tags = bytearray()
        self.fields = bytearray()
        self.measurement = b""
        self.timestamp = 0

    def set_measurement(self, name: BytesLike) -> None:
        self.measurement = _to_bytes(name)

    def set_time(self, ts: int) -> None:
        self.timestamp = ts

    def append_tag(self, key: BytesLike, value: BytesLike) -> None:
        self.tags += b","
        self.tags += _to_bytes(key)
        self.tags += b"="
        self.tags += _to_bytes(value)

    def append_field(
        self, key: BytesLike, value: BytesLike, quoted: bool = False
    ) -> None:
        if self.fields:
            self.fields += b","

        self.fields += _to_bytes(key)
        self.fields += b"="
        if quoted:
            self.fields += b'"'
        self.fields += _to_bytes(value)
        if quoted:
            self.fields += b'"'

    def reset(self) -> None:
        self.tags.clear()
        self.fields.clear()

    def write_line(self, out: bytearray) -> None:
        """Añade la línea completa del punto actual al final de `out`."""
        out.extend(self.measurement)
        out.extend(self.tags)
        out.extend(b" ")
        out.extend(self.fields)
        out.extend(b" ")
        out.extend(str(self.timestamp).encode("ascii"))
        out.extend(b"\n")


class Point:
    """
    Un punto de una serie temporal, listo para escribirse en InfluxDB.

    Uso habitual::

        point = Point(PointConfig(database="data"))
        point.set_measurement("weather")
        point.append_tag("location", "us-midwest")
        point.append_field("temperature", "82")
        point.set_time(1465839830100400200)
        point.render()

    Nota de compatibilidad: reset() solo vacía las etiquetas y los campos. El
    nombre de la medición y el timestamp se conservan hasta que se vuelvan a
    asignar, de modo que un punto reutilizado sin llamar a set_measurement()
    y set_time() arrastra los valores anteriores.
    """

    def __init__(self, config: Optional[PointConfig] = None):
        self.config = _bind_config(config)
        self._line = LineBuffers()

    @property
    def measurement(self) -> bytes:
        return bytes(self._line.measurement)

    @property
    def timestamp(self) -> int:
        return self._line.timestamp

    def set_measurement(self, name: BytesLike) -> None:
        self._line.set_measurement(name)

    def append_tag(self, key: BytesLike, value: BytesLike) -> None:
        """Añade `,key=value` al final del conjunto de etiquetas."""
        self._line.append_tag(key, value)

    def append_field(
        self, key: BytesLike, value: BytesLike, quoted: bool = False
    ) -> None:
        """
        Añade un campo al punto.

        :param key: Nombre del campo.
        :param value: Valor ya formateado (no se infiere el tipo).
        :param quoted: Si es True el valor se escribe entre comillas dobles.
        """
        self._line.append_field(key, value, quoted)

    def set_time(self, ts: int) -> None:
        self._line.set_time(ts)

    def reset(self) -> None:
        """Vacía etiquetas y campos. Ver la nota de compatibilidad de la clase."""
        self._line.reset()

    def render(self) -> bytes:
        """Devuelve la línea del punto terminada en salto de línea."""
        buf = bytearray()
        self._line.write_line(buf)
        return bytes(buf)

    def write_to(self, buf: bytearray) -> None:
        self._line.write_line(buf)

    def __repr__(self):
        return f"Point({self.render()!r})"
