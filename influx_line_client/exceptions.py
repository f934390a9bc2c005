"""
Excepciones del cliente de escritura de InfluxDB.

La codificación de puntos nunca falla, por lo que todos los errores proceden
del transporte HTTP.
"""


class InfluxClientError(Exception):
    """Error base del cliente."""


class TransportFailure(InfluxClientError):
    """Fallo de red o de conexión al hablar con el servidor."""


class RemoteRejection(InfluxClientError):
    """
    El servidor respondió con un código distinto de 200/204.

    :param status_code: Código HTTP devuelto por el servidor.
    :param body: Cuerpo de la respuesta tal cual, normalmente un JSON de error.
    """

    def __init__(self, status_code: int, body: str):
        super().__init__(body)
        self.status_code = status_code
        self.body = body
