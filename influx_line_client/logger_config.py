import logging
import sys
from logging import FileHandler
from logging.handlers import TimedRotatingFileHandler

from logging_loki import LokiHandler


def _file_handler(log_file, rotation_config):
    if not rotation_config.get("enabled", False):
        return FileHandler(log_file, encoding="utf-8")

    return TimedRotatingFileHandler(
        log_file,
        when=rotation_config.get("when", "D"),
        interval=rotation_config.get("interval", 1),
        backupCount=rotation_config.get("backup_count", 5),
        encoding="utf-8",
    )


def _loki_handler(loki_config, process_name):
    host = loki_config.get("url", "loki")
    port = loki_config.get("port", 3100)

    tags = dict(loki_config.get("tags", {}))
    if process_name:
        tags["process"] = process_name

    return LokiHandler(
        url=f"http://{host}:{port}/loki/api/v1/push",
        tags=tags,
        version="1",
    )


def setup_logging(
    log_level_str,
    log_file=None,
    process_name=None,
    rotation_config=None,
    loki_config=None,
):
    """
    Configura el logger raíz: consola, archivo opcional (con o sin rotación)
    y envío opcional a Loki.

    :param log_level_str: Nivel de log ("DEBUG", "INFO"...).
    :param log_file: Ruta del archivo de log o None para usar solo la consola.
    :param process_name: Nombre que se añade al formato y a las etiquetas de Loki.
    :param rotation_config: Diccionario con enabled, when, interval y backup_count.
    :param loki_config: Diccionario con enabled, url, port y tags.
    """
    rotation_config = rotation_config or {}
    loki_config = loki_config or {}

    log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)

    if process_name:
        log_format = f"%(asctime)s - [{process_name}] - %(name)s - %(levelname)s - %(message)s"
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    formatter = logging.Formatter(log_format)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Evitar handlers duplicados si se llama más de una vez
    if root_logger.hasHandlers():
        root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = _file_handler(log_file, rotation_config)
        except OSError as e:
            logging.error(
                f"No se pudo configurar el logging en el archivo {log_file}: {e}. "
                "Los logs solo se mostrarán en la consola."
            )
        else:
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging en archivo configurado para '{log_file}'.")

    if loki_config.get("enabled"):
        try:
            root_logger.addHandler(_loki_handler(loki_config, process_name))
        except (ValueError, TypeError) as e:
            logging.error(f"No se pudo configurar el handler para Loki: {e}")
        else:
            logging.info("Logging hacia Loki habilitado.")

    logging.info(f"Nivel de log establecido en: {logging.getLevelName(log_level)}")
