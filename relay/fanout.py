import dataclasses
import logging
from typing import Optional

import requests

from .config import Target
from .constants import HTTP_THIRD_API_SOURCE, HTTP_THIRD_API_URL, HTTP_TIMEOUT_SECONDS
from .exceptions import TransportError
from .models import WebhookMessage
from .services import HttpClient

logger = logging.getLogger(__name__)


def send_third_api(message: WebhookMessage, url: str, http_client: Optional[HttpClient] = None) -> bool:
    """Envia o payload bruto para o sink secundário. Só HTTP 200 conta como sucesso; sem retry."""
    if not url:
        raise TransportError("url do sink secundário vazia")

    # cliente próprio: o sink não compartilha conexão nem política com o robô
    client = http_client or HttpClient(timeout=HTTP_TIMEOUT_SECONDS)
    try:
        resp = client.post_json(url, message.to_dict())
    except (requests.RequestException, ValueError) as exc:
        raise TransportError(f"erro ao enviar para o sink secundário: {exc}") from exc

    if resp.status_code != 200:
        raise TransportError(f"código de resposta inaceitável {resp.status_code}")
    return True


def forward_copy(
    message: WebhookMessage,
    target: Target,
    url: str = HTTP_THIRD_API_URL,
    source: str = HTTP_THIRD_API_SOURCE,
    http_client: Optional[HttpClient] = None,
) -> None:
    """
    Cópia best-effort do alerta para o sink secundário.

    Não retorna nada e nunca levanta: o resultado só aparece no log, então o
    envio principal não depende dele.
    """
    if not url:
        return

    augmented = dataclasses.replace(message, source=source, dingtalk_webhook_url=target.url)
    try:
        send_third_api(augmented, url, http_client)
    except TransportError as exc:
        logger.error("Falha ao enviar para o sink secundário (target=%s): %s", target.name, exc)
        return
    except Exception as exc:
        logger.error("Erro inesperado no sink secundário (target=%s): %s", target.name, exc, exc_info=exc)
        return
    logger.debug("Cópia enviada ao sink secundário (target=%s)", target.name)
