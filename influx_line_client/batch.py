"""
Acumulador de líneas para escrituras por lotes.
"""

from typing import Optional

from .point import BytesLike, LineBuffers, PointConfig, _bind_config


class BatchPoint:
    """
    Lote de puntos que se envían en una única petición de escritura.

    El punto actual se construye con las mismas operaciones que Point y se
    confirma con commit_line(), que lo añade al buffer principal y deja las
    etiquetas y campos vacíos para el siguiente punto::

        batch = BatchPoint(PointConfig(database="data"))
        for sample in samples:
            batch.set_measurement("cpu")
            batch.append_tag("host", sample.host)
            batch.append_field("usage", sample.usage)
            batch.set_time(sample.ts)
            batch.commit_line()

    Igual que en Point, la medición y el timestamp no se borran al confirmar
    una línea.
    """

    def __init__(self, config: Optional[PointConfig] = None):
        self.config = _bind_config(config)
        self._line = LineBuffers()
        self._buf = bytearray()
        self._lines = 0

    def set_measurement(self, name: BytesLike) -> None:
        self._line.set_measurement(name)

    def append_tag(self, key: BytesLike, value: BytesLike) -> None:
        self._line.append_tag(key, value)

    def append_field(
        self, key: BytesLike, value: BytesLike, quoted: bool = False
    ) -> None:
        self._line.append_field(key, value, quoted)

    def set_time(self, ts: int) -> None:
        self._line.set_time(ts)

    def render(self) -> bytes:
        """Devuelve la línea del punto en construcción, sin añadirla al lote."""
        buf = bytearray()
        self._line.write_line(buf)
        return bytes(buf)

    def commit_line(self) -> None:
        """Añade el punto actual al lote y vacía sus etiquetas y campos."""
        self._line.write_line(self._buf)
        self._line.reset()
        self._lines += 1

    def reset(self) -> None:
        """Vacía el lote completo y el punto en construcción."""
        self._buf.clear()
        self._line.reset()
        self._line.set_measurement(b"")
        self._line.set_time(0)
        self._lines = 0

    def payload(self) -> bytearray:
        """
        Devuelve las líneas confirmadas.

        El resultado es el propio buffer interno, sin copia: no debe
        conservarse más allá de la siguiente llamada que modifique el lote.
        """
        return self._buf

    def write_to(self, buf: bytearray) -> None:
        buf.extend(self._buf)

    def __len__(self):
        return self._lines

    def __repr__(self):
        return f"BatchPoint(lines={self._lines}, size={len(self._buf)})"
