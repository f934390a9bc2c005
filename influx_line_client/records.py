import time
from typing import Dict, Optional, Union

from pydantic import BaseModel, field_validator

from .batch import BatchPoint
from .point import Point

FieldValue = Union[bool, int, float, str]

PRECISION_DIVISORS = {"ns": 1, "us": 10**3, "ms": 10**6, "s": 10**9}

_MEASUREMENT_ESCAPES = str.maketrans({",": r"\,", " ": r"\ ", "\n": r"\n"})
_KEY_ESCAPES = str.maketrans({",": r"\,", "=": r"\=", " ": r"\ ", "\n": r"\n"})
_STRING_ESCAPES = str.maketrans({"\\": "\\\\", '"': r"\"", "\n": r"\n"})


def escape_measurement(name: str) -> str:
    return name.translate(_MEASUREMENT_ESCAPES)


def escape_key(value: str) -> str:
    """Escapa claves y valores de etiqueta, y nombres de campo."""
    return value.translate(_KEY_ESCAPES)


def format_field(value: FieldValue):
    """
    Formatea el valor de un campo según su tipo.

    :return: Tupla (valor formateado, si debe ir entre comillas).
    """
    # bool antes que int: bool es subclase de int
    if isinstance(value, bool):
        return ("true" if value else "false"), False
    if isinstance(value, int):
        return f"{value}i", False
    if isinstance(value, float):
        return repr(value), False
    return value.translate(_STRING_ESCAPES), True


def now_in_precision(precision: str) -> int:
    return time.time_ns() // PRECISION_DIVISORS.get(precision or "ns", 1)


class PointRecord(BaseModel):
    """
    Registro de entrada con la forma de un punto de InfluxDB.

    :param measurement: Nombre de la medición.
    :param tags: Etiquetas, escritas en el orden del diccionario.
    :param fields: Campos (al menos uno).
    :param time: Timestamp en la unidad de la precisión configurada. Si no se
        indica se usa la hora actual.
    """

    measurement: str
    tags: Dict[str, str] = {}
    fields: Dict[str, FieldValue]
    time: Optional[int] = None

    @field_validator("fields")
    @classmethod
    def _at_least_one_field(cls, value):
        if not value:
            raise ValueError("El punto debe tener al menos un campo.")
        return value

    def apply_to(self, encoder: Union[Point, BatchPoint], precision: str = "ns"):
        """Carga el registro en el punto actual de `encoder`, escapando lo necesario."""
        encoder.set_measurement(escape_measurement(self.measurement))
        for key, value in self.tags.items():
            # InfluxDB no admite etiquetas con clave o valor vacíos
            if not key or not value:
                continue
            encoder.append_tag(escape_key(key), escape_key(value))
        for key, value in self.fields.items():
            formatted, quoted = format_field(value)
            encoder.append_field(escape_key(key), formatted, quoted)
        encoder.set_time(
            self.time if self.time is not None else now_in_precision(precision)
        )
