import logging
from typing import Tuple

from .exceptions import PayloadError, RenderError, TransportError
from .models import RobotResponse

Response = Tuple[str, int]

OK: Response = ("OK", 200)
NOT_FOUND: Response = ("Not Found", 404)
BAD_REQUEST: Response = ("Bad Request", 400)
ROBOT_ERROR: Response = ("Unable to talk to DingTalk", 400)
INTERNAL_ERROR: Response = ("Internal Server Error", 500)

# mensagem de log por tipo de falha
_FAILURE_MESSAGES = (
    (PayloadError, "Não foi possível decodificar o JSON do webhook do Prometheus"),
    (RenderError, "Falha ao construir a notificação"),
    (TransportError, "Falha ao enviar a notificação"),
)


def target_not_found(logger: logging.LoggerAdapter) -> Response:
    logger.warning("target não encontrado")
    return NOT_FOUND


def failure(logger: logging.LoggerAdapter, exc: Exception) -> Response:
    for kind, msg in _FAILURE_MESSAGES:
        if isinstance(exc, kind):
            logger.error("%s: %s", msg, exc)
            return BAD_REQUEST
    logger.error("Erro inesperado ao processar o alerta: %s", exc, exc_info=exc)
    return INTERNAL_ERROR


def robot_response(logger: logging.LoggerAdapter, resp: RobotResponse) -> Response:
    if resp.ok:
        return OK
    logger.error(
        "Falha ao enviar a notificação ao DingTalk: respCode=%s respMsg=%s",
        resp.errcode,
        resp.errmsg,
    )
    return ROBOT_ERROR
