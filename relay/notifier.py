import base64
import hashlib
import hmac
import logging
import time
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import requests

from .config import Config, MessageTemplate, Target
from .exceptions import TransportError
from .models import Notification, RobotResponse, WebhookMessage
from .services import HttpClient
from .template import Template

logger = logging.getLogger(__name__)


class NotificationBuilder:
    """Renderiza título e texto do target; não faz nenhuma chamada de rede."""

    def __init__(self, template: Template, config: Config, target: Target):
        self.template = template
        self.config = config
        self.target = target

    def _message(self) -> MessageTemplate:
        default = self.config.default_message
        custom = self.target.message
        if custom is None:
            return default
        return MessageTemplate(title=custom.title or default.title, text=custom.text or default.text)

    def build(self, message: WebhookMessage) -> Notification:
        sources = self._message()
        title = self.template.render(sources.title, message)
        text = self.template.render(sources.text, message)

        mention = self.target.mention
        if mention is None:
            return Notification(title=title, text=text)
        return Notification(
            title=title,
            text=text,
            at_mobiles=mention.mobiles,
            is_at_all=mention.all,
            mention=True,
        )


def sign_url(url: str, secret: str, now_ms: Optional[int] = None) -> str:
    """
    Assinatura do robô: HMAC-SHA256 de "{timestamp}\\n{secret}" em base64,
    enviada como ``timestamp`` e ``sign`` na query string.
    """
    if not secret:
        return url
    timestamp = str(now_ms if now_ms is not None else int(time.time() * 1000))
    string_to_sign = f"{timestamp}\n{secret}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), string_to_sign, hashlib.sha256).digest()
    signature = base64.b64encode(digest).decode("ascii")

    parsed = urlparse(url)
    # lista de pares: chaves repetidas da url original são preservadas
    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key not in ("timestamp", "sign")
    ]
    query.append(("timestamp", timestamp))
    query.append(("sign", signature))
    return urlunparse(parsed._replace(query=urlencode(query)))


def send_notification(notification: Notification, http_client: HttpClient, target: Target) -> RobotResponse:
    """
    Uma única chamada POST ao robô do target.

    Falha de transporte (rede, timeout, status != 200, corpo ilegível) vira
    TransportError. Um errcode diferente de zero NÃO é exceção: a resposta
    volta para quem chamou checar ``RobotResponse.ok``.
    """
    url = sign_url(target.url, target.secret)
    try:
        resp = http_client.post_json(url, notification.to_dict())
    except (requests.RequestException, ValueError) as exc:
        # ValueError: urllib3 recusa o host só na conexão (LocationParseError, rótulo IDNA inválido)
        raise TransportError(f"erro ao enviar notificação: {exc}") from exc

    if resp.status_code != 200:
        raise TransportError(f"código de resposta inaceitável {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as exc:
        raise TransportError(f"resposta do robô não é JSON: {resp.text[:200]!r}") from exc

    robot_resp = RobotResponse.from_dict(data)
    if robot_resp is None:
        raise TransportError(f"envelope de resposta inesperado: {data!r}")
    logger.debug("Resposta do robô: errcode=%s errmsg=%s", robot_resp.errcode, robot_resp.errmsg)
    return robot_resp
