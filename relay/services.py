import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests
import urllib3

from .constants import HTTP_TIMEOUT_SECONDS, HTTP_VERIFY_TLS

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Cliente HTTP de saída de uma geração da configuração.

    Cada chamada usa ``requests.post`` sem Session e com ``Connection: close``:
    nenhuma conexão é reaproveitada entre requisições nem entre recargas.
    Proxy vem das variáveis de ambiente (HTTP_PROXY/HTTPS_PROXY/NO_PROXY).

    ``timeout`` limita a fase de conexão e cada leitura do socket, não a
    duração total: um servidor que responde um byte por vez pode segurar a
    chamada além de ``timeout`` segundos.
    """

    def __init__(self, timeout: float = HTTP_TIMEOUT_SECONDS, verify: bool = HTTP_VERIFY_TLS):
        self.timeout = timeout
        self.verify = verify
        if not verify:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def post_json(self, url: str, body: Any, headers: Optional[Dict[str, str]] = None) -> requests.Response:
        request_headers = {
            "Content-Type": "application/json",
            "Connection": "close",
        }
        if headers:
            request_headers.update(headers)
        # só o host: a query string carrega o access_token do robô
        logger.debug("POST %s (timeout=%ss)", urlparse(url).netloc, self.timeout)
        return requests.post(
            url,
            json=body,
            headers=request_headers,
            timeout=self.timeout,
            verify=self.verify,
        )
