"""
Escritor de puntos en InfluxDB desde archivos JSON Lines.

Cada línea de entrada es un objeto con la forma::

    {"measurement": "cpu", "tags": {"host": "a"}, "fields": {"usage": 0.5}, "time": 1465839830100400200}

Los puntos se agrupan en lotes de 'options.batch_size' líneas y cada lote se
envía en una única petición.
"""

import argparse
import logging
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from .batch import BatchPoint
from .client import InfluxClient
from .config import DEFAULT_CONFIG_PATH, Config
from .exceptions import InfluxClientError
from .logger_config import setup_logging
from .records import PointRecord

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_WRITE_ERROR = 2
EXIT_INPUT_ERROR = 3


def iter_input_lines(paths):
    """Devuelve (origen, número de línea, texto) de cada línea de las entradas."""
    if not paths:
        paths = ["-"]
    for path in paths:
        if path == "-":
            for number, line in enumerate(sys.stdin, start=1):
                yield "<stdin>", number, line
            continue
        with open(path, "r", encoding="utf-8") as f:
            for number, line in enumerate(f, start=1):
                yield path, number, line


class BatchWriter:
    """
    Acumula registros en un BatchPoint y lo envía al alcanzar el tamaño de lote.
    """

    def __init__(self, client: InfluxClient, batch: BatchPoint, batch_size: int):
        self.client = client
        self.batch = batch
        self.batch_size = batch_size
        self.written = 0
        self.skipped = 0

    def add(self, record: PointRecord) -> None:
        record.apply_to(self.batch, self.batch.config.precision)
        self.batch.commit_line()
        if len(self.batch) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        lines = len(self.batch)
        if lines == 0:
            return
        self.client.write(self.batch)
        self.written += lines
        logger.info(
            f"Lote de {lines} puntos escrito en '{self.batch.config.database}'."
        )
        self.batch.reset()

    def consume(self, lines) -> None:
        for source, number, text in lines:
            if not text.strip():
                continue
            try:
                record = PointRecord.model_validate_json(text)
            except ValidationError as e:
                self.skipped += 1
                logger.warning(
                    f"Línea {number} de {source} ignorada, no es un punto válido: {e}"
                )
                continue
            self.add(record)
        self.flush()


def build_parser():
    parser = argparse.ArgumentParser(
        description="Escribe puntos JSON Lines en InfluxDB usando el protocolo de línea",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  influx-line-write -c config/write_config.yaml points.jsonl
  cat points.jsonl | influx-line-write -c config/write_config.yaml
  influx-line-write -c config/write_config.yaml --validate-only

Códigos de salida:
  0  escritura completada
  1  configuración no válida
  2  InfluxDB rechazó la escritura o no se pudo conectar
  3  no se pudo leer una entrada
        """,
    )
    parser.add_argument(
        "--config",
        "-c",
        default=DEFAULT_CONFIG_PATH,
        help=f"Archivo de configuración YAML (por defecto: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Activa el nivel DEBUG",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Solo valida la configuración, no escribe nada",
    )
    parser.add_argument(
        "--ping",
        action="store_true",
        help="Comprueba la conexión con el servidor antes de escribir",
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        help="Archivos JSON Lines de entrada ('-' o nada para stdin)",
    )
    return parser


def main(argv=None):
    """Función principal."""
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "INFO", None, process_name="main")

    try:
        config = Config(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.critical(f"Error al cargar la configuración {args.config}: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(
        "DEBUG" if args.verbose else config.options.log_level,
        config.get("options.log_file"),
        process_name=Path(args.config).stem,
        rotation_config=config.get("options.log_rotation", {}),
        loki_config=config.get("options.loki", {}),
    )

    if args.validate_only:
        logger.info(f"Configuración '{args.config}' válida.")
        return EXIT_OK

    batch_size = config.options.batch_size

    with InfluxClient(config.http_config()) as client:
        writer = BatchWriter(client, BatchPoint(config.point_config()), batch_size)
        try:
            if args.ping:
                elapsed, version = client.ping()
                logger.info(
                    f"Conexión exitosa a {client.config.addr} ({elapsed:.3f}s). "
                    f"Versión de InfluxDB: {version or 'desconocida'}"
                )
            writer.consume(iter_input_lines(args.inputs))
        except InfluxClientError as e:
            logger.error(
                f"Error al escribir en InfluxDB tras {writer.written} puntos: {e}"
            )
            return EXIT_WRITE_ERROR
        except OSError as e:
            logger.error(f"No se pudo leer la entrada: {e}")
            return EXIT_INPUT_ERROR

    logger.info(
        f"Escritura completada: {writer.written} puntos escritos, "
        f"{writer.skipped} líneas ignoradas."
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
